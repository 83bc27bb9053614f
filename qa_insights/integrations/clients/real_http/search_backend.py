"""
Search Backend HTTP Client (Elasticsearch / OpenSearch).

Purpose:
- Builds structured search requests for the four analytics indices
- Executes them over HTTP and normalizes hits into the canonical record shapes
- Exposes a lightweight liveness probe used by SourceResolver

Implementation notes:
- httpx for async requests, one AsyncClient per request
- Every request is bounded by ``timeout_seconds`` (httpx timeouts plus an
  overall asyncio bound), expiry raises TransportError
- Non-2xx responses raise BackendError with status code and reason
- Errors are always raised to the caller; falling back is DataService's job

Important:
- Keep this client as the ONLY place where search-backend HTTP calls are made.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from qa_insights.integrations.contracts.errors import (
    BackendError,
    RemoteDisabledError,
    ResponseShapeError,
    TransportError,
)
from qa_insights.integrations.contracts.records import (
    HistoricalRun,
    PassRatePoint,
    Product,
    ScenarioGroups,
    StatusCounts,
    SuiteData,
    TestResult,
    TestStatus,
)
from qa_insights.integrations.policy import response_wrappers, search_queries
from qa_insights.utils.config_loader import SearchBackendConfig

logger = logging.getLogger(__name__)

HEALTH_ENDPOINT = "/_cluster/health"


class SearchBackendClient:
    def __init__(
        self,
        config: SearchBackendConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.base_url = config.host.rstrip("/")
        self.timeout_seconds = config.timeout_seconds
        self.indices = config.indices
        self._transport = transport
        self._headers = self._build_headers(config)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @staticmethod
    def _build_headers(config: SearchBackendConfig) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if config.use_proxy:
            return headers
        if config.api_key:
            headers["Authorization"] = f"ApiKey {config.api_key}"
        elif config.username and config.password:
            credentials = base64.b64encode(f"{config.username}:{config.password}".encode("utf-8")).decode("ascii")
            headers["Authorization"] = f"Basic {credentials}"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
        *,
        expect_json: bool = True,
    ) -> Dict[str, Any]:
        if not self.enabled:
            raise RemoteDisabledError("Search backend is disabled in configuration.")

        url = f"{self.base_url}{endpoint}"
        logger.debug("%s %s body=%s", method, url, body)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                verify=self.config.verify_tls,
                transport=self._transport,
            ) as client:
                response = await asyncio.wait_for(
                    client.request(method, url, json=body, headers=self._headers),
                    timeout=self.timeout_seconds,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise TransportError(f"Search backend request timed out after {self.timeout_seconds}s: {url}") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"Search backend unreachable: {exc.__class__.__name__}: {exc}") from exc

        if not response.is_success:
            raise BackendError(response.status_code, response.reason_phrase)

        if not expect_json or not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise ResponseShapeError("Search backend returned invalid JSON", status_code=response.status_code) from exc
        if not isinstance(data, dict):
            raise ResponseShapeError("Search backend returned a non-object JSON body", status_code=response.status_code)
        return data

    async def _search(self, index: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/{index}/_search", body)

    async def ping(self) -> bool:
        """True when the health endpoint answers 2xx; never raises."""
        if not self.enabled:
            return False
        try:
            await self._request("GET", HEALTH_ENDPOINT, expect_json=False)
            return True
        except (TransportError, BackendError) as exc:
            logger.warning("Search backend not available, falling back to local data: %s", exc)
            return False

    async def get_test_results(
        self,
        *,
        status: Optional[TestStatus] = None,
        test_suite: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        product: Optional[Product] = None,
        size: int = search_queries.TEST_RESULTS_PAGE_SIZE,
        offset: int = 0,
    ) -> List[TestResult]:
        body = search_queries.results_query(
            status=status,
            test_suite=test_suite,
            date_from=date_from,
            date_to=date_to,
            product=product,
            size=size,
            offset=offset,
        )
        data = await self._search(self.indices.test_results, body)
        return response_wrappers.normalize_test_result_hits(data)

    async def get_test_scenarios(self, product: Optional[Product] = None) -> ScenarioGroups:
        data = await self._search(self.indices.test_scenarios, search_queries.scenarios_query(product))
        return response_wrappers.normalize_scenario_hits(data)

    async def get_historical_runs(
        self,
        *,
        days: int = search_queries.DEFAULT_RUN_WINDOW_DAYS,
        test_suite: Optional[str] = None,
        product: Optional[Product] = None,
        size: int = search_queries.HISTORICAL_RUNS_PAGE_SIZE,
    ) -> List[HistoricalRun]:
        body = search_queries.historical_runs_query(days=days, test_suite=test_suite, product=product, size=size)
        data = await self._search(self.indices.historical_runs, body)
        return response_wrappers.normalize_historical_run_hits(data)

    async def get_suite_data(self, product: Optional[Product] = None) -> List[SuiteData]:
        data = await self._search(self.indices.suite_data, search_queries.suite_data_query(product))
        return response_wrappers.normalize_suite_data_hits(data)

    async def get_pass_rate_trend(
        self,
        days: int = search_queries.DEFAULT_TREND_DAYS,
        product: Optional[Product] = None,
    ) -> List[PassRatePoint]:
        data = await self._search(self.indices.historical_runs, search_queries.pass_rate_trend_query(days, product))
        return response_wrappers.normalize_pass_rate_buckets(data)

    async def get_test_status_counts(self, product: Optional[Product] = None) -> StatusCounts:
        data = await self._search(self.indices.test_results, search_queries.status_counts_query(product))
        return response_wrappers.normalize_status_buckets(data)

    async def count_documents(self, index: str) -> int:
        data = await self._search(index, {"query": {"match_all": {}}, "size": 0, "track_total_hits": True})
        total = (data.get("hits") or {}).get("total")
        # older clusters report a bare integer
        if isinstance(total, dict):
            total = total.get("value")
        if not isinstance(total, int):
            raise ResponseShapeError("Search response has no hits.total", payload=data)
        return total
