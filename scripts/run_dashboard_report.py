#!/usr/bin/env python3
"""
Print a dashboard report from the data-access layer:
- which source served the data (search backend or local snapshot)
- KPI summary (pass rate, runs, coverage, test counts)
- daily pass-rate trend and status counts

Examples:
  python scripts/run_dashboard_report.py
  python scripts/run_dashboard_report.py --product CMS --days 7 --verbose
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

from qa_insights.integrations.contracts.records import Product
from qa_insights.services.data_service import DataService
from qa_insights.services.metrics import compute_kpis
from qa_insights.utils.config_loader import load_data_access_config


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


async def run_report(service: DataService, product, days: int) -> None:
    snapshot, dashboard_metrics = await asyncio.gather(
        service.load_dashboard(product),
        service.get_metrics(product, days),
    )
    kpis = compute_kpis(snapshot)
    status = service.status()

    print("\n### Data source\n")
    print(f"Serving from: {status.source.value}")
    print(f"Search backend enabled: {status.remote_enabled}, available: {status.remote_available}")
    if status.last_fallback:
        print(f"Last fallback reason: {status.last_fallback.value}")

    print(f"\n### KPIs ({product.value if product else 'all products'})\n")
    print(f"Pass rate:            {kpis.pass_rate}%")
    print(f"Suite runs:           {kpis.total_runs}")
    print(f"Latest run duration:  {kpis.latest_run_duration_seconds:.0f}s")
    print(f"Automation coverage:  {kpis.automation_coverage}%")
    print(f"Tests:                {kpis.total_tests} (passed {kpis.passed_tests}, failed {kpis.failed_tests}, flaky {kpis.flaky_tests})")

    print(f"\n### Pass rate trend (last {days} days)\n")
    if not dashboard_metrics.pass_rate_trend:
        print("(no runs in window)")
    for point in dashboard_metrics.pass_rate_trend:
        print(f"{point.date}  {point.pass_rate:5.1f}%")

    counts = dashboard_metrics.status_counts
    print("\n### Status counts\n")
    print(f"passed={counts.passed} failed={counts.failed} flaky={counts.flaky} skipped={counts.skipped}")

    failing = [r for r in snapshot.test_results if r.status.value == "failed"]
    if failing:
        print("\n### Failed tests\n")
        for r in failing[:10]:
            print(f"- [{r.test_suite_name}] {r.test_title}: {(r.error or '').strip()[:120]}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Print the QA analytics dashboard report.")
    parser.add_argument("--config", type=Path, default=None, help="Path to data_access.yml")
    parser.add_argument(
        "--product",
        type=str,
        default=None,
        choices=[p.value for p in Product],
        help="Restrict the report to one product",
    )
    parser.add_argument("--days", type=int, default=15, help="Pass-rate trend window in days")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging (shows search requests)")
    args = parser.parse_args()

    setup_logging(args.verbose)
    cfg = load_data_access_config(args.config)
    service = DataService.from_config(cfg)
    product = Product(args.product) if args.product else None

    try:
        asyncio.run(run_report(service, product, args.days))
    except Exception as e:
        print(f"Failed to load data: {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
