from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from qa_insights.integrations.contracts.errors import SnapshotLoadError
from qa_insights.integrations.contracts.records import Product, TestStatus
from qa_insights.integrations.policy.search_queries import DEFAULT_RUN_WINDOW_DAYS, DEFAULT_TREND_DAYS
from qa_insights.services import metrics
from qa_insights.services.data_service import DataService

logger = logging.getLogger(__name__)

api = APIRouter()
analytics_api = api


def get_data_service(request: Request) -> DataService:
    return request.app.state.data_service


def _load_failed(exc: SnapshotLoadError) -> HTTPException:
    logger.error("Both data sources failed for %s: %s", exc.collection, exc)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to load data")


@api.get("/data-source", tags=["Data source"])
async def data_source(service: DataService = Depends(get_data_service)):
    await service.initialize()
    return service.status()


@api.get("/test-results", tags=["Collections"])
async def test_results(
    status_filter: Optional[TestStatus] = Query(default=None, alias="status"),
    test_suite: Optional[str] = Query(default=None, alias="testSuite"),
    date_from: Optional[str] = Query(default=None, alias="dateFrom"),
    date_to: Optional[str] = Query(default=None, alias="dateTo"),
    product: Optional[Product] = None,
    service: DataService = Depends(get_data_service),
):
    try:
        return await service.get_test_results(
            status=status_filter,
            test_suite=test_suite,
            date_from=date_from,
            date_to=date_to,
            product=product,
        )
    except SnapshotLoadError as exc:
        raise _load_failed(exc) from exc


@api.get("/test-scenarios", tags=["Collections"])
async def test_scenarios(product: Optional[Product] = None, service: DataService = Depends(get_data_service)):
    try:
        return await service.get_test_scenarios(product)
    except SnapshotLoadError as exc:
        raise _load_failed(exc) from exc


@api.get("/historical-runs", tags=["Collections"])
async def historical_runs(
    days: int = Query(default=DEFAULT_RUN_WINDOW_DAYS, ge=0, le=3650),
    test_suite: Optional[str] = Query(default=None, alias="testSuite"),
    product: Optional[Product] = None,
    service: DataService = Depends(get_data_service),
):
    try:
        return await service.get_historical_runs(days=days, test_suite=test_suite, product=product)
    except SnapshotLoadError as exc:
        raise _load_failed(exc) from exc


@api.get("/suites", tags=["Collections"])
async def suites(product: Optional[Product] = None, service: DataService = Depends(get_data_service)):
    try:
        return await service.get_suite_data(product)
    except SnapshotLoadError as exc:
        raise _load_failed(exc) from exc


@api.get("/metrics/pass-rate-trend", tags=["Metrics"])
async def pass_rate_trend(
    days: int = Query(default=DEFAULT_TREND_DAYS, ge=1, le=365),
    product: Optional[Product] = None,
    service: DataService = Depends(get_data_service),
):
    try:
        return await service.get_pass_rate_trend(days, product)
    except SnapshotLoadError as exc:
        raise _load_failed(exc) from exc


@api.get("/metrics/status-counts", tags=["Metrics"])
async def status_counts(product: Optional[Product] = None, service: DataService = Depends(get_data_service)):
    try:
        return await service.get_test_status_counts(product)
    except SnapshotLoadError as exc:
        raise _load_failed(exc) from exc


@api.get("/dashboard", tags=["Dashboard"])
async def dashboard(product: Optional[Product] = None, service: DataService = Depends(get_data_service)):
    try:
        snapshot = await service.load_dashboard(product)
    except SnapshotLoadError as exc:
        raise _load_failed(exc) from exc
    return {
        "snapshot": snapshot,
        "kpis": metrics.compute_kpis(snapshot),
    }
