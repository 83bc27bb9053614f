"""
Local computations over snapshot collections.

When the search backend cannot answer, the aggregate queries are recomputed
here from the raw collections with the same arithmetic the backend
aggregations use:
- pass-rate trend: average ``passRate`` per calendar day (date histogram + avg)
- status counts: number of test results per status (terms), 0 when absent
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

from qa_insights.integrations.contracts.records import (
    DashboardSnapshot,
    HistoricalRun,
    KPISummary,
    PassRatePoint,
    Product,
    ScenarioGroups,
    StatusCounts,
    TestResult,
    TestStatus,
)

T = TypeVar("T")


def matches_product(record_product: Optional[Product], requested: Optional[Product]) -> bool:
    if requested is None:
        return True
    # untagged legacy records belong to every product
    # TODO: drop the untagged match once every snapshot record carries a product tag
    if record_product is None:
        return True
    return record_product == requested


def filter_by_product(records: Iterable[T], product: Optional[Product]) -> List[T]:
    return [r for r in records if matches_product(getattr(r, "product", None), product)]


def filter_scenarios_by_product(groups: ScenarioGroups, product: Optional[Product]) -> ScenarioGroups:
    if product is None:
        return {suite: list(scenarios) for suite, scenarios in groups.items()}
    filtered: ScenarioGroups = {}
    for suite, scenarios in groups.items():
        kept = filter_by_product(scenarios, product)
        if kept:
            filtered[suite] = kept
    return filtered


def pass_rate_trend(runs: Iterable[HistoricalRun], days: int) -> List[PassRatePoint]:
    """Daily average pass rate of the last ``days`` calendar days present in ``runs``."""
    daily: Dict[str, List[float]] = defaultdict(list)
    for run in runs:
        daily[run.date[:10]].append(run.pass_rate)

    dates = sorted(daily)
    if days > 0:
        dates = dates[-days:]
    return [PassRatePoint(date=d, pass_rate=sum(daily[d]) / len(daily[d])) for d in dates]


def status_counts(results: Iterable[TestResult]) -> StatusCounts:
    counts = {status.value: 0 for status in TestStatus}
    for result in results:
        counts[TestStatus(result.status).value] += 1
    return StatusCounts(**counts)


def compute_kpis(snapshot: DashboardSnapshot) -> KPISummary:
    results: Sequence[TestResult] = snapshot.test_results
    counts = status_counts(results)
    total = len(results)

    total_journeys = sum(s.total_journeys for s in snapshot.suite_data)
    automated = sum(s.done for s in snapshot.suite_data)
    # remote runs arrive newest first, snapshot runs oldest first
    latest_run = max(snapshot.historical_runs, key=lambda r: (r.date, r.timestamp), default=None)

    return KPISummary(
        pass_rate=round(counts.passed / total * 100, 1) if total else 0.0,
        total_runs=len(snapshot.historical_runs),
        latest_run_duration_seconds=latest_run.duration if latest_run else 0,
        automation_coverage=round(automated / total_journeys * 100) if total_journeys else 0,
        passed_tests=counts.passed,
        failed_tests=counts.failed,
        flaky_tests=counts.flaky,
        total_tests=total,
    )
