"""
Contracts (data models).

This folder defines the record shapes served by the data-access layer:
- test results, test scenarios, historical runs, suite coverage data
- aggregate shapes (pass-rate trend points, status counts, KPI summary)
- the tagged error taxonomy raised by data sources

Both the search-backend client and the local snapshot client return these
models, so callers see the same shape regardless of which source served them.
"""

from .errors import (
    BackendError,
    DataAccessError,
    ErrorKind,
    RemoteDisabledError,
    ResponseShapeError,
    SnapshotLoadError,
    TransportError,
)
from .records import (
    DashboardMetrics,
    DashboardSnapshot,
    DataSource,
    DataSourceStatus,
    HistoricalRun,
    KPISummary,
    PassRatePoint,
    Priority,
    Product,
    RunStatus,
    ScenarioGroups,
    StatusCounts,
    SuiteData,
    TestResult,
    TestScenario,
    TestStatus,
)

__all__ = [
    # errors
    "BackendError", "DataAccessError", "ErrorKind", "RemoteDisabledError",
    "ResponseShapeError", "SnapshotLoadError", "TransportError",
    # records
    "DataSource", "HistoricalRun", "Priority", "Product", "RunStatus",
    "ScenarioGroups", "SuiteData", "TestResult", "TestScenario", "TestStatus",
    # aggregates
    "DashboardMetrics", "DashboardSnapshot", "DataSourceStatus", "KPISummary",
    "PassRatePoint", "StatusCounts",
]
