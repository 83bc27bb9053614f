"""Pytest fixtures: sample snapshot files, a stub search backend, service factory."""

import json

import pytest

from qa_insights.integrations.clients.local.snapshot import LocalSnapshotClient
from qa_insights.services.data_service import DataService
from qa_insights.services.source_resolver import SourceResolver


SAMPLE_TEST_RESULTS = [
    {
        "testCaseId": "TC-1",
        "testTitle": "Login works",
        "testSuiteName": "Authentication",
        "journeyId": "J-1",
        "status": "passed",
        "runTimestamp": "2025-01-02T10:00:00Z",
        "durationdurationMs": 1200,
        "buildId": "b-1",
        "product": "CMS",
    },
    {
        "testCaseId": "TC-2",
        "testTitle": "Password reset",
        "testSuiteName": "Authentication",
        "journeyId": "J-2",
        "status": "failed",
        "runTimestamp": "2025-01-02T10:01:00Z",
        "durationdurationMs": 3400,
        "buildId": "b-1",
        "error": "Timeout",
        "product": "CMS",
    },
    {
        "testCaseId": "TC-3",
        "testTitle": "Upload asset",
        "testSuiteName": "Assets",
        "journeyId": "J-3",
        "status": "flaky",
        "runTimestamp": "2025-01-02T10:02:00Z",
        "durationdurationMs": 5000,
        "buildId": "b-2",
        "product": "DAM",
    },
    {
        "testCaseId": "TC-4",
        "testTitle": "Publish entry",
        "testSuiteName": "Publishing",
        "journeyId": "J-4",
        "status": "passed",
        "runTimestamp": "2025-01-02T10:03:00Z",
        "durationdurationMs": 800,
        "buildId": "b-3",
    },
    {
        "testCaseId": "TC-5",
        "testTitle": "Schedule entry",
        "testSuiteName": "Publishing",
        "journeyId": "J-5",
        "status": "passed",
        "runTimestamp": "2025-01-02T10:04:00Z",
        "buildId": "b-3",
    },
]

SAMPLE_TEST_SCENARIOS = {
    "Authentication": [
        {"journeyId": "J-1", "automationStatus": "Done", "priority": "High", "product": "CMS"},
        {"journeyId": "J-2", "automationStatus": "In Progress", "priority": "low"},
    ],
    "Assets": [
        {"journeyId": "J-3", "automationStatus": "Not Started", "priority": "medium", "product": "DAM"},
    ],
}

SAMPLE_HISTORICAL_RUNS = [
    {"id": "run-1", "date": "2025-01-01", "testSuite": "Authentication", "passed": 8, "failed": 2, "flaky": 0, "totalTests": 10},
    {"id": "run-2", "date": "2025-01-02", "testSuite": "Authentication", "passed": 9, "failed": 0, "flaky": 1, "totalTests": 10},
]

SAMPLE_SUITE_DATA = [
    {"name": "Authentication", "totalJourneys": 4, "done": 2, "inProgress": 1, "notStarted": 1, "coverage": 50, "product": "CMS"},
    {"name": "Assets", "totalJourneys": 2, "done": 1, "inProgress": 0, "notStarted": 1, "coverage": 50, "product": "DAM"},
    {"name": "Publishing", "totalJourneys": 3, "done": 2, "inProgress": 1, "notStarted": 0, "coverage": 67},
]


def write_snapshot(directory, **collections):
    """Write snapshot files; defaults to the SAMPLE_* data for omitted collections."""
    data = {
        "test_results": SAMPLE_TEST_RESULTS,
        "test_scenarios": SAMPLE_TEST_SCENARIOS,
        "historical_runs": SAMPLE_HISTORICAL_RUNS,
        "suite_data": SAMPLE_SUITE_DATA,
    }
    data.update(collections)
    directory.mkdir(parents=True, exist_ok=True)
    for name, records in data.items():
        if records is None:
            continue
        (directory / f"{name}.json").write_text(json.dumps(records), encoding="utf-8")
    return directory


class StubSearchClient:
    """Stands in for SearchBackendClient; answers from ``responses`` or raises ``error``."""

    def __init__(self, available=True, error=None, events=None, **responses):
        self.available = available
        self.error = error
        self.responses = responses
        self.calls = []
        self.ping_calls = 0
        self.events = events if events is not None else []

    async def ping(self):
        self.ping_calls += 1
        if isinstance(self.available, BaseException):
            raise self.available
        return self.available

    async def _answer(self, name, **kwargs):
        self.calls.append((name, kwargs))
        self.events.append(f"remote:{name}")
        if self.error is not None:
            raise self.error
        return self.responses[name]

    async def get_test_results(self, **kwargs):
        return await self._answer("get_test_results", **kwargs)

    async def get_test_scenarios(self, product=None):
        return await self._answer("get_test_scenarios", product=product)

    async def get_historical_runs(self, **kwargs):
        return await self._answer("get_historical_runs", **kwargs)

    async def get_suite_data(self, product=None):
        return await self._answer("get_suite_data", product=product)

    async def get_pass_rate_trend(self, days=15, product=None):
        return await self._answer("get_pass_rate_trend", days=days, product=product)

    async def get_test_status_counts(self, product=None):
        return await self._answer("get_test_status_counts", product=product)


@pytest.fixture
def snapshot_dir(tmp_path):
    return write_snapshot(tmp_path / "snapshot")


@pytest.fixture
def make_service(snapshot_dir):
    def _make(remote=None, *, enabled=True, data_dir=None, check_interval_seconds=60.0):
        remote = remote if remote is not None else StubSearchClient()
        local = LocalSnapshotClient(data_dir or snapshot_dir)
        resolver = SourceResolver(remote, enabled=enabled, check_interval_seconds=check_interval_seconds)
        return DataService(remote, local, resolver)

    return _make
