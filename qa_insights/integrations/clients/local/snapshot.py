"""
Local Snapshot Client.

Purpose:
- Serves the four analytics collections from bundled JSON files when the
  search backend is disabled or failing
- Loads each collection lazily on first access and keeps it in memory for the
  lifetime of the process

Sources:
- ``data_dir/<collection>.json`` on disk (default), read in a worker thread
- ``base_url/<collection>.json`` when the snapshot is hosted on a static file server

Important:
- This client IS the fallback: read, JSON and top-level shape failures raise
  SnapshotLoadError and are never swallowed here.
- Individual records failing validation are logged and skipped; the rest of
  the collection is still served.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from qa_insights.integrations.contracts.errors import SnapshotLoadError
from qa_insights.integrations.contracts.records import (
    HistoricalRun,
    ScenarioGroups,
    SuiteData,
    TestResult,
    TestScenario,
)

logger = logging.getLogger(__name__)


class SnapshotCollection(str, Enum):
    TEST_RESULTS = "test_results"
    TEST_SCENARIOS = "test_scenarios"
    HISTORICAL_RUNS = "historical_runs"
    SUITE_DATA = "suite_data"


_RECORD_TYPES = {
    SnapshotCollection.TEST_RESULTS: TestResult,
    SnapshotCollection.HISTORICAL_RUNS: HistoricalRun,
    SnapshotCollection.SUITE_DATA: SuiteData,
}


class LocalSnapshotClient:
    def __init__(
        self,
        data_dir: Union[str, Path] = "data/snapshot",
        *,
        base_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._cache: Dict[SnapshotCollection, Any] = {}
        self._locks: Dict[SnapshotCollection, asyncio.Lock] = {}

    async def get(self, collection: SnapshotCollection) -> Any:
        """Parsed records of ``collection``; read from the source at most once."""
        collection = SnapshotCollection(collection)
        if collection in self._cache:
            return self._cache[collection]

        lock = self._locks.setdefault(collection, asyncio.Lock())
        async with lock:
            # a concurrent caller may have filled the cache while we waited
            if collection in self._cache:
                return self._cache[collection]
            raw = await self._fetch_raw(collection)
            records = self._parse(collection, raw)
            self._cache[collection] = records
            logger.info("Loaded local snapshot %s", collection.value)
            return records

    async def get_test_results(self) -> List[TestResult]:
        return list(await self.get(SnapshotCollection.TEST_RESULTS))

    async def get_test_scenarios(self) -> ScenarioGroups:
        grouped = await self.get(SnapshotCollection.TEST_SCENARIOS)
        return {suite: list(scenarios) for suite, scenarios in grouped.items()}

    async def get_historical_runs(self) -> List[HistoricalRun]:
        return list(await self.get(SnapshotCollection.HISTORICAL_RUNS))

    async def get_suite_data(self) -> List[SuiteData]:
        return list(await self.get(SnapshotCollection.SUITE_DATA))

    def clear_cache(self) -> None:
        self._cache.clear()

    # --- Loading -------------------------------------------------------------

    async def _fetch_raw(self, collection: SnapshotCollection) -> Any:
        if self.base_url:
            return await self._fetch_http(collection)
        return await self._read_file(collection)

    async def _read_file(self, collection: SnapshotCollection) -> Any:
        path = self.data_dir / f"{collection.value}.json"
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as exc:
            raise SnapshotLoadError(collection.value, f"cannot read {path}: {exc}") from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise SnapshotLoadError(collection.value, f"invalid JSON in {path}: {exc}") from exc

    async def _fetch_http(self, collection: SnapshotCollection) -> Any:
        url = f"{self.base_url}/{collection.value}.json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise SnapshotLoadError(collection.value, f"cannot fetch {url}: {exc}") from exc
        if not response.is_success:
            raise SnapshotLoadError(collection.value, f"{url} answered {response.status_code} {response.reason_phrase}")
        try:
            return response.json()
        except ValueError as exc:
            raise SnapshotLoadError(collection.value, f"invalid JSON at {url}: {exc}") from exc

    @staticmethod
    def _parse(collection: SnapshotCollection, raw: Any) -> Any:
        if collection is SnapshotCollection.TEST_SCENARIOS:
            if not isinstance(raw, dict):
                raise SnapshotLoadError(collection.value, "expected a mapping of suite name to scenarios")
            return {
                str(suite): _valid_records(collection, TestScenario, items or [])
                for suite, items in raw.items()
            }
        if not isinstance(raw, list):
            raise SnapshotLoadError(collection.value, "expected an array of records")
        return _valid_records(collection, _RECORD_TYPES[collection], raw)


def _valid_records(collection: SnapshotCollection, record_type, items: List[Any]) -> List[Any]:
    """Validate each item; invalid rows are logged and skipped."""
    records = []
    for position, item in enumerate(items):
        try:
            records.append(record_type.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping invalid %s record at index %d: %s", collection.value, position, exc)
    return records
