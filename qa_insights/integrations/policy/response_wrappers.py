"""
Normalization of search-backend responses into the canonical record shapes.

Input: the decoded JSON of ``POST /<index>/_search``::

    {"hits": {"total": {"value": n}, "hits": [{"_id": "...", "_source": {...}}]},
     "aggregations": {...}}

Output: the models in ``qa_insights.integrations.contracts.records``.

Schema differences reconciled here:
- test duration is ``durationMs`` in the search index and ``durationdurationMs``
  in the canonical shape; the canonical field wins when both are present,
  0 when neither is
- historical runs carry ``runId`` in the index; when it is missing the
  document ``_id`` becomes the run id
- scenarios are stored flat with a ``suiteName`` field and grouped by it
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import ValidationError

from qa_insights.integrations.contracts.errors import ResponseShapeError
from qa_insights.integrations.contracts.records import (
    HistoricalRun,
    PassRatePoint,
    ScenarioGroups,
    StatusCounts,
    SuiteData,
    TestResult,
    TestScenario,
    TestStatus,
)

CANONICAL_DURATION_FIELD = "durationdurationMs"
REMOTE_DURATION_FIELD = "durationMs"


def normalize_duration(source: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``source`` with the duration under the canonical field name."""
    normalized = dict(source)
    remote_value = normalized.pop(REMOTE_DURATION_FIELD, None)
    canonical_value = normalized.get(CANONICAL_DURATION_FIELD)
    if canonical_value is None:
        canonical_value = remote_value if remote_value is not None else 0
    normalized[CANONICAL_DURATION_FIELD] = canonical_value
    return normalized


def extract_hits(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    try:
        hits = response["hits"]["hits"]
    except (KeyError, TypeError) as exc:
        raise ResponseShapeError("Search response has no hits.hits array", payload=_safe_payload(response)) from exc
    if not isinstance(hits, list):
        raise ResponseShapeError("Search response hits.hits is not an array", payload=_safe_payload(response))
    return hits


def _source_of(hit: Dict[str, Any]) -> Dict[str, Any]:
    source = hit.get("_source") if isinstance(hit, dict) else None
    if not isinstance(source, dict):
        raise ResponseShapeError("Search hit has no _source document", payload={"hit": hit})
    return source


def normalize_test_result_hits(response: Dict[str, Any]) -> List[TestResult]:
    return [
        _build_model(TestResult, normalize_duration(_source_of(hit)))
        for hit in extract_hits(response)
    ]


def normalize_scenario_hits(response: Dict[str, Any]) -> ScenarioGroups:
    grouped: ScenarioGroups = {}
    for hit in extract_hits(response):
        source = dict(_source_of(hit))
        suite_name = source.pop("suiteName", None)
        if not suite_name:
            raise ResponseShapeError("Scenario document has no suiteName", payload=source)
        grouped.setdefault(str(suite_name), []).append(_build_model(TestScenario, source))
    return grouped


def normalize_historical_run_hits(response: Dict[str, Any]) -> List[HistoricalRun]:
    runs = []
    for hit in extract_hits(response):
        source = dict(_source_of(hit))
        source["id"] = str(_first_non_empty(source, "runId", "id", default=hit.get("_id", "")))
        source.pop("runId", None)
        runs.append(_build_model(HistoricalRun, source))
    return runs


def normalize_suite_data_hits(response: Dict[str, Any]) -> List[SuiteData]:
    return [_build_model(SuiteData, _source_of(hit)) for hit in extract_hits(response)]


def normalize_pass_rate_buckets(response: Dict[str, Any]) -> List[PassRatePoint]:
    buckets = _aggregation_buckets(response, "daily")
    points = []
    for bucket in buckets:
        key_as_string = bucket.get("key_as_string")
        if key_as_string:
            day = str(key_as_string)[:10]
        elif isinstance(bucket.get("key"), (int, float)):
            day = datetime.fromtimestamp(bucket["key"] / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
        else:
            raise ResponseShapeError("Histogram bucket has no key", payload=bucket)
        avg = (bucket.get("pass_rate") or {}).get("value")
        points.append(PassRatePoint(date=day, pass_rate=avg or 0))
    return points


def normalize_status_buckets(response: Dict[str, Any]) -> StatusCounts:
    counts = {status.value: 0 for status in TestStatus}
    for bucket in _aggregation_buckets(response, "status_counts"):
        key = bucket.get("key")
        if key in counts:
            counts[key] = int(bucket.get("doc_count") or 0)
    return StatusCounts(**counts)


def _aggregation_buckets(response: Dict[str, Any], name: str) -> List[Dict[str, Any]]:
    try:
        buckets = response["aggregations"][name]["buckets"]
    except (KeyError, TypeError) as exc:
        raise ResponseShapeError(
            f"Search response has no aggregations.{name}.buckets",
            payload=_safe_payload(response),
        ) from exc
    if not isinstance(buckets, list):
        raise ResponseShapeError(f"aggregations.{name}.buckets is not an array", payload=_safe_payload(response))
    return buckets


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def _build_model(model_type, payload: Dict[str, Any]):
    try:
        return model_type.model_validate(payload)
    except ValidationError as exc:
        raise ResponseShapeError(
            f"{model_type.__name__} validation failed: {exc}",
            payload=payload,
        ) from exc


def _safe_payload(response: Any) -> Dict[str, Any]:
    return response if isinstance(response, dict) else {"response": response}
