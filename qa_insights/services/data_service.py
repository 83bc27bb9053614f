"""
Unified data access for the analytics dashboard.

Design rules:
- Callers use ONLY this service; they never talk to a client directly.
- Every search-backend call is wrapped so any failure falls back to the
  local snapshot. Only snapshot failures reach the caller.
- Product filtering happens here on the local path; the search backend
  already filters server-side.
"""

from __future__ import annotations

import asyncio
import logging
from contextvars import ContextVar
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from qa_insights.integrations.clients.local.snapshot import LocalSnapshotClient
from qa_insights.integrations.clients.real_http.search_backend import SearchBackendClient
from qa_insights.integrations.contracts.errors import DataAccessError, ErrorKind
from qa_insights.integrations.contracts.records import (
    DashboardMetrics,
    DashboardSnapshot,
    DataSource,
    DataSourceStatus,
    HistoricalRun,
    PassRatePoint,
    Product,
    ScenarioGroups,
    StatusCounts,
    SuiteData,
    TestResult,
    TestStatus,
)
from qa_insights.integrations.policy.search_queries import DEFAULT_RUN_WINDOW_DAYS, DEFAULT_TREND_DAYS
from qa_insights.services import metrics
from qa_insights.services.source_resolver import SourceResolver
from qa_insights.utils.config_loader import DataAccessConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# source of the latest _serve in the current task; gather() gives each call its own copy
_served_by_call: ContextVar[Optional[DataSource]] = ContextVar("served_by_call", default=None)


class DataService:
    def __init__(
        self,
        remote: SearchBackendClient,
        local: LocalSnapshotClient,
        resolver: SourceResolver,
    ) -> None:
        self.remote = remote
        self.local = local
        self.resolver = resolver
        self._served_by: Optional[DataSource] = None
        self._last_fallback: Optional[ErrorKind] = None

    @classmethod
    def from_config(cls, config: DataAccessConfig) -> "DataService":
        remote = SearchBackendClient(config.search_backend)
        local = LocalSnapshotClient(
            Path(config.snapshot.data_dir),
            base_url=config.snapshot.base_url,
            timeout_seconds=config.search_backend.timeout_seconds,
        )
        resolver = SourceResolver(
            remote,
            enabled=config.search_backend.enabled,
            check_interval_seconds=config.source_selection.check_interval_seconds,
        )
        return cls(remote, local, resolver)

    # --- Source state ----------------------------------------------------------

    async def initialize(self) -> DataSource:
        return await self.resolver.resolve()

    def get_data_source(self) -> DataSource:
        """Source that served the most recent request."""
        return self._served_by or self.resolver.current_source

    def is_remote_available(self) -> bool:
        return self.resolver.remote_available

    def status(self) -> DataSourceStatus:
        last_fallback = self._last_fallback
        if not self.resolver.enabled:
            last_fallback = ErrorKind.CONFIG_DISABLED
        return DataSourceStatus(
            source=self.get_data_source(),
            remote_enabled=self.resolver.enabled,
            remote_available=self.resolver.remote_available,
            last_checked_at=self.resolver.checked_at,
            last_fallback=last_fallback,
        )

    async def _serve(
        self,
        operation: str,
        fetch_remote: Callable[[], Awaitable[T]],
        fetch_local: Callable[[], Awaitable[T]],
    ) -> T:
        source = await self.resolver.resolve()

        if source is DataSource.REMOTE:
            try:
                result = await fetch_remote()
            except Exception as exc:
                kind = exc.kind if isinstance(exc, DataAccessError) else ErrorKind.BACKEND
                logger.warning(
                    "Failed to fetch %s from search backend (%s), falling back to local: %s",
                    operation,
                    kind.value,
                    exc,
                )
            else:
                self._last_fallback = None
                self._mark_served(DataSource.REMOTE)
                return result
        elif not self.resolver.enabled:
            kind = ErrorKind.CONFIG_DISABLED
        else:
            # liveness check failed, the backend was not tried
            kind = ErrorKind.TRANSPORT

        self._last_fallback = kind
        result = await fetch_local()
        self._mark_served(DataSource.LOCAL)
        return result

    def _mark_served(self, source: DataSource) -> None:
        self._served_by = source
        _served_by_call.set(source)

    # --- Collections -----------------------------------------------------------

    async def get_test_results(
        self,
        *,
        status: Optional[TestStatus] = None,
        test_suite: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        product: Optional[Product] = None,
    ) -> List[TestResult]:
        return await self._serve(
            "test results",
            lambda: self.remote.get_test_results(
                status=status,
                test_suite=test_suite,
                date_from=date_from,
                date_to=date_to,
                product=product,
            ),
            lambda: self._local_test_results(product),
        )

    async def _local_test_results(self, product: Optional[Product]) -> List[TestResult]:
        return metrics.filter_by_product(await self.local.get_test_results(), product)

    async def get_test_scenarios(self, product: Optional[Product] = None) -> ScenarioGroups:
        return await self._serve(
            "test scenarios",
            lambda: self.remote.get_test_scenarios(product),
            lambda: self._local_test_scenarios(product),
        )

    async def _local_test_scenarios(self, product: Optional[Product]) -> ScenarioGroups:
        return metrics.filter_scenarios_by_product(await self.local.get_test_scenarios(), product)

    async def get_historical_runs(
        self,
        *,
        days: int = DEFAULT_RUN_WINDOW_DAYS,
        test_suite: Optional[str] = None,
        product: Optional[Product] = None,
    ) -> List[HistoricalRun]:
        return await self._serve(
            "historical runs",
            lambda: self.remote.get_historical_runs(days=days, test_suite=test_suite, product=product),
            lambda: self._local_historical_runs(product),
        )

    async def _local_historical_runs(self, product: Optional[Product]) -> List[HistoricalRun]:
        return metrics.filter_by_product(await self.local.get_historical_runs(), product)

    async def get_suite_data(self, product: Optional[Product] = None) -> List[SuiteData]:
        return await self._serve(
            "suite data",
            lambda: self.remote.get_suite_data(product),
            lambda: self._local_suite_data(product),
        )

    async def _local_suite_data(self, product: Optional[Product]) -> List[SuiteData]:
        return metrics.filter_by_product(await self.local.get_suite_data(), product)

    # --- Aggregates --------------------------------------------------------------

    async def get_pass_rate_trend(
        self,
        days: int = DEFAULT_TREND_DAYS,
        product: Optional[Product] = None,
    ) -> List[PassRatePoint]:
        async def _local() -> List[PassRatePoint]:
            return metrics.pass_rate_trend(await self._local_historical_runs(product), days)

        return await self._serve(
            "pass rate trend",
            lambda: self.remote.get_pass_rate_trend(days, product),
            _local,
        )

    async def get_test_status_counts(self, product: Optional[Product] = None) -> StatusCounts:
        async def _local() -> StatusCounts:
            return metrics.status_counts(await self._local_test_results(product))

        return await self._serve(
            "status counts",
            lambda: self.remote.get_test_status_counts(product),
            _local,
        )

    # --- Composite loads ---------------------------------------------------------

    async def load_dashboard(self, product: Optional[Product] = None) -> DashboardSnapshot:
        """Fetch the four collections concurrently, recording which source served each."""
        loaded = await asyncio.gather(
            _with_source(self.get_test_results(product=product)),
            _with_source(self.get_test_scenarios(product)),
            _with_source(self.get_historical_runs(product=product)),
            _with_source(self.get_suite_data(product)),
        )
        results, scenarios, runs, suites = [data for data, _ in loaded]
        collection_sources = {
            name: source
            for name, (_, source) in zip(("testResults", "testScenarios", "historicalRuns", "suiteData"), loaded)
        }
        all_remote = all(source is DataSource.REMOTE for source in collection_sources.values())
        return DashboardSnapshot(
            test_results=results,
            test_scenarios=scenarios,
            historical_runs=runs,
            suite_data=suites,
            data_source=DataSource.REMOTE if all_remote else DataSource.LOCAL,
            collection_sources=collection_sources,
        )

    async def get_metrics(self, product: Optional[Product] = None, days: int = DEFAULT_TREND_DAYS) -> DashboardMetrics:
        trend, counts = await asyncio.gather(
            self.get_pass_rate_trend(days, product),
            self.get_test_status_counts(product),
        )
        return DashboardMetrics(pass_rate_trend=trend, status_counts=counts)


async def _with_source(call: Awaitable[T]) -> Tuple[T, DataSource]:
    result = await call
    return result, _served_by_call.get() or DataSource.LOCAL
