import asyncio
import base64
import json

import httpx
import pytest

from qa_insights.integrations.clients.real_http.search_backend import SearchBackendClient
from qa_insights.integrations.contracts.errors import (
    BackendError,
    ErrorKind,
    RemoteDisabledError,
    ResponseShapeError,
    TransportError,
)
from qa_insights.integrations.contracts.records import Product
from qa_insights.utils.config_loader import IndexNames, SearchBackendConfig


def make_client(handler, **overrides):
    settings = {"enabled": True, "host": "http://search.test", "timeout_seconds": 2.0}
    settings.update(overrides)
    return SearchBackendClient(SearchBackendConfig(**settings), transport=httpx.MockTransport(handler))


def _hits_response(*sources):
    return httpx.Response(200, json={"hits": {"hits": [{"_id": f"d{i}", "_source": s} for i, s in enumerate(sources)]}})


def test_api_key_takes_precedence_over_basic_auth():
    client = make_client(lambda r: httpx.Response(200), api_key="secret", username="u", password="p")

    assert client._headers["Authorization"] == "ApiKey secret"
    assert client._headers["Content-Type"] == "application/json"


def test_basic_auth_header_from_username_and_password():
    client = make_client(lambda r: httpx.Response(200), username="elastic", password="changeme")

    expected = base64.b64encode(b"elastic:changeme").decode("ascii")
    assert client._headers["Authorization"] == f"Basic {expected}"


def test_proxy_mode_sends_no_credentials():
    client = make_client(lambda r: httpx.Response(200), use_proxy=True, api_key="secret")

    assert "Authorization" not in client._headers


@pytest.mark.asyncio
async def test_ping_true_on_healthy_cluster():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path))
        return httpx.Response(200, text="green")

    client = make_client(handler)

    assert await client.ping() is True
    assert seen == [("GET", "/_cluster/health")]


@pytest.mark.asyncio
async def test_ping_false_on_error_status():
    client = make_client(lambda r: httpx.Response(503))

    assert await client.ping() is False


@pytest.mark.asyncio
async def test_ping_false_when_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    assert await make_client(handler).ping() is False


@pytest.mark.asyncio
async def test_ping_false_when_disabled_without_request():
    calls = []
    client = make_client(lambda r: calls.append(r) or httpx.Response(200), enabled=False)

    assert await client.ping() is False
    assert calls == []


@pytest.mark.asyncio
async def test_get_test_results_posts_query_and_normalizes_hits():
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return _hits_response({
            "testCaseId": "TC-9",
            "testTitle": "Upload",
            "testSuiteName": "Assets",
            "status": "passed",
            "runTimestamp": "2025-01-02T10:00:00Z",
            "durationMs": 4200,
            "product": "DAM",
        })

    client = make_client(handler)
    results = await client.get_test_results(product=Product.DAM)

    assert captured["method"] == "POST"
    assert captured["path"] == "/test_results/_search"
    assert captured["body"]["query"] == {"bool": {"must": [{"term": {"product": "DAM"}}]}}
    assert results[0].test_case_id == "TC-9"
    assert results[0].duration_ms == 4200


@pytest.mark.asyncio
async def test_configured_index_names_are_used():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return _hits_response()

    client = make_client(handler, indices=IndexNames(suite_data="suites-v2"))
    assert await client.get_suite_data() == []
    assert paths == ["/suites-v2/_search"]


@pytest.mark.asyncio
async def test_historical_runs_take_document_id_when_run_id_missing():
    def handler(request):
        return httpx.Response(200, json={"hits": {"hits": [
            {"_id": "es-42", "_source": {"date": "2025-01-05", "testSuite": "A", "totalTests": 2, "passed": 2}},
        ]}})

    runs = await make_client(handler).get_historical_runs()

    assert runs[0].id == "es-42"
    assert runs[0].pass_rate == 100.0


@pytest.mark.asyncio
async def test_scenarios_are_grouped():
    def handler(request):
        return _hits_response(
            {"suiteName": "Auth", "journeyId": "J-1"},
            {"suiteName": "Auth", "journeyId": "J-2"},
        )

    groups = await make_client(handler).get_test_scenarios()

    assert list(groups) == ["Auth"]
    assert len(groups["Auth"]) == 2


@pytest.mark.asyncio
async def test_aggregations_are_parsed():
    def handler(request):
        body = json.loads(request.content)
        if "daily" in body["aggs"]:
            return httpx.Response(200, json={"aggregations": {"daily": {"buckets": [
                {"key_as_string": "2025-01-01T00:00:00.000Z", "pass_rate": {"value": 85.5}},
            ]}}})
        return httpx.Response(200, json={"aggregations": {"status_counts": {"buckets": [
            {"key": "flaky", "doc_count": 2},
        ]}}})

    client = make_client(handler)
    trend = await client.get_pass_rate_trend(7)
    counts = await client.get_test_status_counts()

    assert [(p.date, p.pass_rate) for p in trend] == [("2025-01-01", 85.5)]
    assert counts.flaky == 2
    assert counts.passed == 0


@pytest.mark.asyncio
async def test_error_status_raises_backend_error():
    client = make_client(lambda r: httpx.Response(500))

    with pytest.raises(BackendError) as exc_info:
        await client.get_suite_data()

    assert exc_info.value.status_code == 500
    assert exc_info.value.reason == "Internal Server Error"
    assert exc_info.value.kind is ErrorKind.BACKEND


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error():
    def handler(request):
        raise httpx.ConnectError("name resolution failed", request=request)

    with pytest.raises(TransportError) as exc_info:
        await make_client(handler).get_test_results()

    assert exc_info.value.kind is ErrorKind.TRANSPORT


@pytest.mark.asyncio
async def test_slow_backend_raises_transport_error():
    async def handler(request):
        await asyncio.sleep(1)
        return httpx.Response(200, json={})

    client = make_client(handler, timeout_seconds=0.05)

    with pytest.raises(TransportError):
        await client.get_test_results()


@pytest.mark.asyncio
async def test_non_json_body_is_shape_error():
    client = make_client(lambda r: httpx.Response(200, text="<html>proxy login</html>"))

    with pytest.raises(ResponseShapeError):
        await client.get_suite_data()


@pytest.mark.asyncio
async def test_disabled_client_refuses_queries():
    client = make_client(lambda r: httpx.Response(200), enabled=False)

    with pytest.raises(RemoteDisabledError) as exc_info:
        await client.get_test_results()

    assert exc_info.value.kind is ErrorKind.CONFIG_DISABLED


@pytest.mark.asyncio
@pytest.mark.parametrize("total", [{"value": 17, "relation": "eq"}, 17])
async def test_count_documents_reads_total(total):
    def handler(request):
        assert json.loads(request.content)["size"] == 0
        return httpx.Response(200, json={"hits": {"total": total, "hits": []}})

    assert await make_client(handler).count_documents("test_results") == 17
