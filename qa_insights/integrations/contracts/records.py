from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import ErrorKind


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Product(str, Enum):
    DAM = "DAM"
    CMS = "CMS"
    AGENT_OS = "AgentOS"
    LAUNCH = "Launch"
    BRANDKIT = "Brandkit"
    MARKETPLACE = "Marketplace"
    DEVELOPER_HUB = "DeveloperHub"


class TestStatus(str, Enum):
    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    FLAKY = "flaky"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNSET = "unset"


class DataSource(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


# ---------------------------------------------------------------------------
# Record models
# ---------------------------------------------------------------------------

class _Record(BaseModel):
    # camelCase on the wire (search backend and snapshot files), snake_case in Python
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class TestResult(_Record):
    """One executed test case within a run."""

    __test__ = False

    test_case_id: str = Field(alias="testCaseId")
    test_title: str = Field(alias="testTitle")
    test_suite_name: str = Field(alias="testSuiteName")
    journey_id: str = Field(default="", alias="journeyId")
    status: TestStatus
    run_timestamp: str = Field(alias="runTimestamp")
    duration_ms: float = Field(default=0, ge=0, alias="durationdurationMs")
    build_id: str = Field(default="", alias="buildId")
    report_link: Optional[str] = Field(default=None, alias="reportLink")
    branch: Optional[str] = None
    error: Optional[str] = None
    error_stack: Optional[str] = Field(default=None, alias="error_stack")
    product: Optional[Product] = None


class TestScenario(_Record):
    """A planned user journey, independent of any execution."""

    __test__ = False

    journey_id: str = Field(alias="journeyId")
    automation_status: str = Field(default="", alias="automationStatus")
    priority: Priority = Priority.UNSET
    test_type: str = Field(default="", alias="testType")
    jira_ticket: Optional[str] = Field(default=None, alias="jiraTicket")
    journey_short_description: str = Field(default="", alias="journeyShortDescription")
    primary_user_goal: str = Field(default="", alias="primaryUserGoal")
    potential_starting_points: str = Field(default="", alias="potentialStartingPoints")
    high_level_steps: str = Field(default="", alias="highLevelSteps")
    success_outcome: str = Field(default="", alias="successOutcome")
    tear_down_steps: str = Field(default="", alias="tearDownSteps")
    product: Optional[Product] = None

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value):
        raw = str(value or "").strip().lower()
        try:
            return Priority(raw)
        except ValueError:
            return Priority.UNSET


class HistoricalRun(_Record):
    """Aggregate record of one suite execution."""

    id: str
    date: str
    timestamp: str = ""
    test_suite: str = Field(alias="testSuite")
    total_tests: int = Field(ge=0, alias="totalTests")
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    flaky: int = Field(default=0, ge=0)
    duration: float = Field(default=0, ge=0)
    pass_rate: float = Field(default=0.0, alias="passRate")
    build_id: str = Field(default="", alias="buildId")
    branch: str = ""
    status: RunStatus = RunStatus.PASSED
    product: Optional[Product] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_pass_rate(cls, data):
        if not isinstance(data, dict):
            return data
        if data.get("passRate") is None and data.get("pass_rate") is None:
            try:
                total = int(data.get("totalTests", data.get("total_tests")) or 0)
                passed = int(data.get("passed") or 0)
            except (TypeError, ValueError):
                # left to field validation
                return data
            data = dict(data)
            data["passRate"] = round(passed / total * 100, 1) if total > 0 else 0.0
        return data

    @model_validator(mode="after")
    def _check_counts(self) -> "HistoricalRun":
        if self.passed + self.failed + self.flaky > self.total_tests:
            raise ValueError(
                f"Run {self.id}: passed+failed+flaky ({self.passed + self.failed + self.flaky}) "
                f"exceeds totalTests ({self.total_tests})"
            )
        return self


class SuiteData(_Record):
    """Automation coverage rollup for one suite."""

    name: str
    total_journeys: int = Field(ge=0, alias="totalJourneys")
    done: int = Field(default=0, ge=0)
    in_progress: int = Field(default=0, ge=0, alias="inProgress")
    not_started: int = Field(default=0, ge=0, alias="notStarted")
    coverage: float = 0
    product: Optional[Product] = None

    @model_validator(mode="after")
    def _check_journeys(self) -> "SuiteData":
        if self.done + self.in_progress + self.not_started != self.total_journeys:
            raise ValueError(
                f"Suite {self.name}: done+inProgress+notStarted must equal totalJourneys ({self.total_journeys})"
            )
        return self


ScenarioGroups = Dict[str, List[TestScenario]]


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

class PassRatePoint(_Record):
    date: str
    pass_rate: float = Field(alias="passRate")


class StatusCounts(_Record):
    passed: int = 0
    failed: int = 0
    flaky: int = 0
    skipped: int = 0


class DashboardSnapshot(_Record):
    test_results: List[TestResult] = Field(default_factory=list, alias="testResults")
    test_scenarios: ScenarioGroups = Field(default_factory=dict, alias="testScenarios")
    historical_runs: List[HistoricalRun] = Field(default_factory=list, alias="historicalRuns")
    suite_data: List[SuiteData] = Field(default_factory=list, alias="suiteData")
    # remote only when every collection came from the search backend
    data_source: DataSource = Field(default=DataSource.LOCAL, alias="dataSource")
    collection_sources: Dict[str, DataSource] = Field(default_factory=dict, alias="collectionSources")


class DashboardMetrics(_Record):
    pass_rate_trend: List[PassRatePoint] = Field(default_factory=list, alias="passRateTrend")
    status_counts: StatusCounts = Field(default_factory=StatusCounts, alias="statusCounts")


class KPISummary(_Record):
    pass_rate: float = Field(alias="passRate")
    total_runs: int = Field(alias="totalRuns")
    latest_run_duration_seconds: float = Field(alias="latestRunDurationSeconds")
    automation_coverage: int = Field(alias="automationCoverage")
    passed_tests: int = Field(alias="passedTests")
    failed_tests: int = Field(alias="failedTests")
    flaky_tests: int = Field(alias="flakyTests")
    total_tests: int = Field(alias="totalTests")


class DataSourceStatus(_Record):
    source: DataSource
    remote_enabled: bool = Field(alias="remoteEnabled")
    remote_available: bool = Field(alias="remoteAvailable")
    last_checked_at: Optional[datetime] = Field(default=None, alias="lastCheckedAt")
    last_fallback: Optional[ErrorKind] = Field(default=None, alias="lastFallback")
