"""
Search request bodies for the four analytics indices.

Pure functions: each returns the JSON body for ``POST /<index>/_search``.
No predicates -> ``match_all``; several predicates -> ``bool.must`` (AND).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from qa_insights.integrations.contracts.records import Product, TestStatus

TEST_RESULTS_PAGE_SIZE = 1000
SCENARIOS_MAX_SIZE = 10000
HISTORICAL_RUNS_PAGE_SIZE = 100
SUITE_DATA_PAGE_SIZE = 100
DEFAULT_RUN_WINDOW_DAYS = 30
DEFAULT_TREND_DAYS = 15


def combine_filters(must: List[Dict[str, Any]]) -> Dict[str, Any]:
    # empty bool/must arrays behave differently across backend versions
    if not must:
        return {"match_all": {}}
    return {"bool": {"must": list(must)}}


def _product_term(product: Optional[Product]) -> List[Dict[str, Any]]:
    if product is None:
        return []
    return [{"term": {"product": Product(product).value}}]


def _day_window(field: str, days: int) -> Dict[str, Any]:
    return {"range": {field: {"gte": f"now-{days}d/d", "lte": "now/d"}}}


def results_query(
    *,
    status: Optional[TestStatus] = None,
    test_suite: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    product: Optional[Product] = None,
    size: int = TEST_RESULTS_PAGE_SIZE,
    offset: int = 0,
) -> Dict[str, Any]:
    must = _product_term(product)
    if status:
        must.append({"term": {"status": TestStatus(status).value}})
    if test_suite:
        must.append({"term": {"testSuiteName": test_suite}})
    if date_from or date_to:
        window: Dict[str, str] = {}
        if date_from:
            window["gte"] = date_from
        if date_to:
            window["lte"] = date_to
        must.append({"range": {"runTimestamp": window}})

    return {
        "query": combine_filters(must),
        "size": size,
        "from": offset,
        "sort": [{"runTimestamp": {"order": "desc"}}],
    }


def scenarios_query(product: Optional[Product] = None) -> Dict[str, Any]:
    return {
        "query": combine_filters(_product_term(product)),
        "size": SCENARIOS_MAX_SIZE,
        "sort": [{"suiteName": {"order": "asc"}}],
    }


def historical_runs_query(
    *,
    days: int = DEFAULT_RUN_WINDOW_DAYS,
    test_suite: Optional[str] = None,
    product: Optional[Product] = None,
    size: int = HISTORICAL_RUNS_PAGE_SIZE,
) -> Dict[str, Any]:
    must = _product_term(product)
    if test_suite:
        must.append({"term": {"testSuite": test_suite}})
    if days > 0:
        must.append(_day_window("date", days))

    return {
        "query": combine_filters(must),
        "size": size,
        "sort": [{"date": {"order": "desc"}}],
    }


def suite_data_query(product: Optional[Product] = None) -> Dict[str, Any]:
    return {
        "query": combine_filters(_product_term(product)),
        "size": SUITE_DATA_PAGE_SIZE,
        "sort": [{"name": {"order": "asc"}}],
    }


def pass_rate_trend_query(days: int = DEFAULT_TREND_DAYS, product: Optional[Product] = None) -> Dict[str, Any]:
    must = [_day_window("date", days)] + _product_term(product)
    return {
        "size": 0,
        "query": combine_filters(must),
        "aggs": {
            "daily": {
                "date_histogram": {"field": "date", "calendar_interval": "day"},
                "aggs": {"pass_rate": {"avg": {"field": "passRate"}}},
            }
        },
    }


def status_counts_query(product: Optional[Product] = None) -> Dict[str, Any]:
    return {
        "size": 0,
        "query": combine_filters(_product_term(product)),
        "aggs": {"status_counts": {"terms": {"field": "status", "size": len(TestStatus)}}},
    }
