from conftest import SAMPLE_HISTORICAL_RUNS, SAMPLE_TEST_RESULTS, SAMPLE_TEST_SCENARIOS
from qa_insights.integrations.contracts.records import (
    DashboardSnapshot,
    HistoricalRun,
    Product,
    SuiteData,
    TestResult,
    TestScenario,
)
from qa_insights.services import metrics


def _results():
    return [TestResult.model_validate(r) for r in SAMPLE_TEST_RESULTS]


def _run(run_id, date, passed, total, **extra):
    return HistoricalRun.model_validate(
        {"id": run_id, "date": date, "testSuite": "A", "passed": passed, "failed": total - passed, "totalTests": total, **extra}
    )


def test_untagged_records_match_every_product():
    assert metrics.matches_product(None, Product.CMS)
    assert metrics.matches_product(Product.CMS, Product.CMS)
    assert not metrics.matches_product(Product.DAM, Product.CMS)
    assert metrics.matches_product(Product.DAM, None)


def test_filter_by_product_keeps_matching_and_untagged():
    kept = metrics.filter_by_product(_results(), Product.CMS)

    assert [r.test_case_id for r in kept] == ["TC-1", "TC-2", "TC-4", "TC-5"]


def test_filter_by_product_without_product_keeps_everything():
    assert len(metrics.filter_by_product(_results(), None)) == len(SAMPLE_TEST_RESULTS)


def test_scenario_filter_drops_emptied_suites():
    groups = {
        suite: [TestScenario.model_validate(s) for s in scenarios]
        for suite, scenarios in SAMPLE_TEST_SCENARIOS.items()
    }

    filtered = metrics.filter_scenarios_by_product(groups, Product.CMS)

    assert list(filtered) == ["Authentication"]
    assert [s.journey_id for s in filtered["Authentication"]] == ["J-1", "J-2"]


def test_pass_rate_trend_from_computed_rates():
    runs = [HistoricalRun.model_validate(r) for r in SAMPLE_HISTORICAL_RUNS]

    trend = metrics.pass_rate_trend(runs, 2)

    assert [(p.date, p.pass_rate) for p in trend] == [("2025-01-01", 80.0), ("2025-01-02", 90.0)]


def test_pass_rate_trend_averages_runs_on_the_same_day():
    runs = [
        _run("r1", "2025-01-05", 10, 10),
        _run("r2", "2025-01-05T18:30:00Z", 5, 10),
        _run("r3", "2025-01-04", 7, 10),
    ]

    trend = metrics.pass_rate_trend(runs, 15)

    assert [(p.date, p.pass_rate) for p in trend] == [("2025-01-04", 70.0), ("2025-01-05", 75.0)]


def test_pass_rate_trend_keeps_latest_days():
    runs = [_run(f"r{day}", f"2025-01-0{day}", day, 10) for day in range(1, 6)]

    trend = metrics.pass_rate_trend(runs, 3)

    assert [p.date for p in trend] == ["2025-01-03", "2025-01-04", "2025-01-05"]


def test_status_counts_tally_every_status():
    counts = metrics.status_counts(_results())

    assert counts.passed == 3
    assert counts.failed == 1
    assert counts.flaky == 1
    assert counts.skipped == 0
    assert counts.passed + counts.failed + counts.flaky + counts.skipped == len(SAMPLE_TEST_RESULTS)


def test_status_counts_of_nothing_are_zero():
    counts = metrics.status_counts([])

    assert (counts.passed, counts.failed, counts.flaky, counts.skipped) == (0, 0, 0, 0)


def test_compute_kpis():
    snapshot = DashboardSnapshot(
        test_results=_results(),
        historical_runs=[
            _run("new", "2025-01-02", 9, 10, duration=420),
            _run("old", "2025-01-01", 8, 10, duration=300),
        ],
        suite_data=[
            SuiteData(name="A", total_journeys=3, done=2, in_progress=1, not_started=0),
            SuiteData(name="B", total_journeys=0),
        ],
    )

    kpis = metrics.compute_kpis(snapshot)

    assert kpis.pass_rate == 60.0
    assert kpis.total_runs == 2
    assert kpis.latest_run_duration_seconds == 420
    assert kpis.automation_coverage == 67
    assert (kpis.passed_tests, kpis.failed_tests, kpis.flaky_tests, kpis.total_tests) == (3, 1, 1, 5)


def test_compute_kpis_of_empty_snapshot():
    kpis = metrics.compute_kpis(DashboardSnapshot())

    assert kpis.pass_rate == 0.0
    assert kpis.total_runs == 0
    assert kpis.latest_run_duration_seconds == 0
    assert kpis.automation_coverage == 0
