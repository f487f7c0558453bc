# tests/test_api_endpoints.py
from __future__ import annotations

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

import api  # imports app + module-level objects


@pytest.fixture()
def client() -> TestClient:
    return TestClient(api.app)


def _ok(r: Any) -> Dict[str, Any]:
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["meta"]["credits"] == 1
    assert isinstance(body["meta"]["processingMs"], int)
    return body["data"]


def _err(r: Any, status: int, code: str) -> str:
    assert r.status_code == status, r.text
    body = r.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    return body["error"]["message"]


# -------------------------------------------------------------------
# Info endpoints
# -------------------------------------------------------------------
def test_health_ok(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["service"] == "json-transform"
    assert body["version"] == "1.0.1"
    assert isinstance(body["uptime"], int)


def test_healthz_ok(client: TestClient) -> None:
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_root_lists_endpoints_and_pricing(client: TestClient) -> None:
    body = client.get("/").json()

    assert body["name"] == "json-transform"
    assert body["pricing"] == {"credits": 1, "usd": "$0.01"}
    assert {e["path"] for e in body["endpoints"]} == {
        "/api/transform",
        "/api/flatten",
        "/api/unflatten",
        "/api/query",
        "/api/diff",
        "/api/validate",
    }


def test_mcp_tool_descriptor(client: TestClient) -> None:
    body = client.get("/mcp-tool.json").json()

    assert body["name"] == "json_transform"
    assert body["inputSchema"]["required"] == ["action"]
    assert body["inputSchema"]["properties"]["input"]["enum"] == ["csv", "json", "toml", "xml", "yaml"]


# -------------------------------------------------------------------
# Middleware / routing
# -------------------------------------------------------------------
def test_correlation_id_is_echoed(client: TestClient) -> None:
    r = client.get("/health", headers={"X-Correlation-Id": "corr-123"})
    assert r.headers["X-Correlation-Id"] == "corr-123"


def test_correlation_id_is_generated_when_absent(client: TestClient) -> None:
    r = client.get("/health")
    assert r.headers["X-Correlation-Id"].startswith("corr_")


def test_cors_allows_any_origin(client: TestClient) -> None:
    r = client.get("/health", headers={"Origin": "https://example.com"})
    assert r.headers["access-control-allow-origin"] == "*"


def test_unknown_route_is_not_found(client: TestClient) -> None:
    r = client.get("/api/nope", headers={"X-Correlation-Id": "corr-404"})

    assert _err(r, 404, "NOT_FOUND") == "Endpoint not found"
    assert r.headers["X-Correlation-Id"] == "corr-404"


def test_wrong_method_is_rejected(client: TestClient) -> None:
    _err(client.get("/api/transform"), 405, "METHOD_NOT_ALLOWED")


def test_malformed_json_body_is_invalid_input(client: TestClient) -> None:
    r = client.post("/api/query", content="{bad", headers={"Content-Type": "application/json"})
    assert _err(r, 400, "INVALID_INPUT") == "Request body must be valid JSON"


def test_unhandled_exception_is_generic_internal_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(original: Any, modified: Any) -> Any:
        raise RuntimeError("secret internals")

    monkeypatch.setattr(api, "compute_diff", boom)
    client = TestClient(api.app, raise_server_exceptions=False)

    r = client.post("/api/diff", json={"original": {}, "modified": {}}, headers={"X-Correlation-Id": "corr-500"})

    message = _err(r, 500, "INTERNAL_ERROR")
    assert message == "An unexpected error occurred"
    assert "secret" not in r.text
    assert r.headers["X-Correlation-Id"] == "corr-500"


# -------------------------------------------------------------------
# /api/transform
# -------------------------------------------------------------------
def test_transform_json_to_csv(client: TestClient) -> None:
    payload = {
        "input": "json",
        "output": "csv",
        "data": [{"name": "NK", "age": 25}, {"name": "Bob", "age": 30}],
    }

    data = _ok(client.post("/api/transform", json=payload))
    lines = data["result"].split("\n")

    assert "name" in lines[0] and "age" in lines[0]
    assert "NK" in lines[1] and "25" in lines[1]
    assert data["inputFormat"] == "json"
    assert data["outputFormat"] == "csv"
    assert data["outputSize"] == len(data["result"].encode("utf-8"))


def test_transform_reports_utf8_sizes(client: TestClient) -> None:
    data = _ok(client.post("/api/transform", json={"input": "json", "output": "yaml", "data": {"a": 1}}))

    assert data["result"] == "a: 1\n"
    assert data["inputSize"] == len('{"a":1}')
    assert data["outputSize"] == 5


def test_transform_csv_to_json_with_options(client: TestClient) -> None:
    payload = {"input": "csv", "output": "json", "data": "name;age\nNK;25", "options": {"pretty": False}}

    data = _ok(client.post("/api/transform", json=payload))

    assert data["result"] == '[{"name":"NK","age":25}]'


def test_transform_xml_root_element_option(client: TestClient) -> None:
    payload = {
        "input": "json",
        "output": "xml",
        "data": {"name": "NK"},
        "options": {"rootElement": "person", "pretty": False},
    }

    assert _ok(client.post("/api/transform", json=payload))["result"] == "<person><name>NK</name></person>"


def test_transform_xml_uses_configured_root_by_default(client: TestClient) -> None:
    payload = {"input": "json", "output": "xml", "data": {"name": "NK"}, "options": {"pretty": False}}
    assert _ok(client.post("/api/transform", json=payload))["result"] == "<root><name>NK</name></root>"


def test_transform_same_format_is_unsupported(client: TestClient) -> None:
    r = client.post("/api/transform", json={"input": "json", "output": "json", "data": {}})
    _err(r, 400, "UNSUPPORTED_CONVERSION")


@pytest.mark.parametrize("field", ["input", "output"])
def test_transform_unknown_format_is_invalid_format(client: TestClient, field: str) -> None:
    payload = {"input": "json", "output": "yaml", "data": {"a": 1}}
    payload[field] = "ini"

    message = _err(client.post("/api/transform", json=payload), 400, "INVALID_FORMAT")
    assert "ini" in message


def test_transform_missing_data_is_invalid_input(client: TestClient) -> None:
    r = client.post("/api/transform", json={"input": "json", "output": "yaml"})
    assert _err(r, 400, "INVALID_INPUT") == "Missing required field: data"


def test_transform_missing_format_tag_is_invalid_input(client: TestClient) -> None:
    r = client.post("/api/transform", json={"output": "yaml", "data": {}})
    assert _err(r, 400, "INVALID_INPUT") == "Missing required field: input"


def test_transform_null_data_is_invalid_input(client: TestClient) -> None:
    r = client.post("/api/transform", json={"input": "json", "output": "yaml", "data": None})
    _err(r, 400, "INVALID_INPUT")


def test_transform_text_format_requires_string_data(client: TestClient) -> None:
    r = client.post("/api/transform", json={"input": "csv", "output": "json", "data": {"a": 1}})
    assert _err(r, 400, "INVALID_INPUT") == "CSV input must be a string"


def test_transform_parse_error(client: TestClient) -> None:
    r = client.post("/api/transform", json={"input": "xml", "output": "json", "data": "<root><a></root>"})
    assert _err(r, 400, "PARSE_ERROR").startswith("Invalid XML")


def test_transform_xml_with_latin1_declaration_keeps_text(client: TestClient) -> None:
    payload = {
        "input": "xml",
        "output": "json",
        "data": "<?xml version='1.0' encoding='ISO-8859-1'?><r>é</r>",
        "options": {"pretty": False},
    }

    assert _ok(client.post("/api/transform", json=payload))["result"] == '{"r":"é"}'


def test_transform_toml_needs_mapping_root(client: TestClient) -> None:
    r = client.post("/api/transform", json={"input": "json", "output": "toml", "data": [1, 2]})
    _err(r, 400, "UNSUPPORTED_CONVERSION")


def test_transform_payload_too_large(client: TestClient) -> None:
    payload = {"input": "csv", "output": "json", "data": "a" * (5 * 1024 * 1024 + 1)}

    r = client.post("/api/transform", json=payload)

    _err(r, 413, "PAYLOAD_TOO_LARGE")


def test_transform_payload_at_limit_is_accepted(client: TestClient) -> None:
    payload = {"input": "csv", "output": "json", "data": "a" * (5 * 1024 * 1024)}
    _ok(client.post("/api/transform", json=payload))


# -------------------------------------------------------------------
# /api/flatten and /api/unflatten
# -------------------------------------------------------------------
def test_flatten(client: TestClient) -> None:
    data = _ok(client.post("/api/flatten", json={"data": {"user": {"name": {"first": "NK"}}}}))

    assert data["result"] == {"user.name.first": "NK"}
    assert data["keysFlattened"] == 1
    assert data["originalDepth"] == 3


def test_flatten_max_depth_and_delimiter(client: TestClient) -> None:
    payload = {"data": {"a": {"b": {"c": 1}}}, "delimiter": "/", "maxDepth": 1}
    assert _ok(client.post("/api/flatten", json=payload))["result"] == {"a/b": {"c": 1}}


def test_flatten_requires_object(client: TestClient) -> None:
    _err(client.post("/api/flatten", json={"data": [1, 2]}), 400, "INVALID_INPUT")


def test_unflatten_keeps_caller_keys_verbatim(client: TestClient) -> None:
    payload = {"data": {"user_info.first_name": "NK", "user_info.tags.0": "a"}}

    data = _ok(client.post("/api/unflatten", json=payload))

    assert data["result"] == {"user_info": {"first_name": "NK", "tags": ["a"]}}
    assert data["keysExpanded"] == 2


def test_unflatten_conflicting_keys_are_invalid_input(client: TestClient) -> None:
    r = client.post("/api/unflatten", json={"data": {"a.0": 1, "a.b": 2}})
    _err(r, 400, "INVALID_INPUT")


# -------------------------------------------------------------------
# /api/query
# -------------------------------------------------------------------
def test_query(client: TestClient) -> None:
    payload = {
        "data": {"users": [{"name": "NK", "role": "admin"}, {"name": "Bob", "role": "user"}]},
        "query": "users[?role=='admin'].name",
    }

    data = _ok(client.post("/api/query", json=payload))

    assert data["result"] == ["NK"]
    assert data["matchCount"] == 1
    assert data["query"] == payload["query"]


def test_query_result_keys_are_not_renamed(client: TestClient) -> None:
    payload = {"data": {"user_list": [{"first_name": "NK"}]}, "query": "user_list[0]"}
    assert _ok(client.post("/api/query", json=payload))["result"] == {"first_name": "NK"}


def test_query_invalid_expression(client: TestClient) -> None:
    r = client.post("/api/query", json={"data": {}, "query": "users[?"})
    _err(r, 400, "QUERY_ERROR")


def test_query_empty_expression_is_invalid_input(client: TestClient) -> None:
    _err(client.post("/api/query", json={"data": {}, "query": ""}), 400, "INVALID_INPUT")


def test_query_null_data_is_invalid_input(client: TestClient) -> None:
    _err(client.post("/api/query", json={"data": None, "query": "a"}), 400, "INVALID_INPUT")


# -------------------------------------------------------------------
# /api/diff
# -------------------------------------------------------------------
def test_diff(client: TestClient) -> None:
    payload = {"original": {"name": "NK", "age": 25}, "modified": {"name": "NK", "age": 26, "city": "SF"}}

    data = _ok(client.post("/api/diff", json=payload))

    assert data["summary"] == {"added": 1, "removed": 0, "changed": 1, "unchanged": 1}
    assert {"path": "age", "type": "changed", "from": 25, "to": 26} in data["changes"]
    assert {"path": "city", "type": "added", "value": "SF"} in data["changes"]


def test_diff_identical(client: TestClient) -> None:
    data = _ok(client.post("/api/diff", json={"original": [1, 2], "modified": [1, 2]}))
    assert data["changes"] == []
    assert data["summary"]["unchanged"] == 2


def test_diff_missing_modified_is_invalid_input(client: TestClient) -> None:
    r = client.post("/api/diff", json={"original": {}})
    assert _err(r, 400, "INVALID_INPUT") == "Missing required field: modified"


# -------------------------------------------------------------------
# /api/validate
# -------------------------------------------------------------------
def test_validate_reports_format_error(client: TestClient) -> None:
    payload = {
        "data": {"name": "NK", "email": "not-an-email"},
        "schema": {
            "type": "object",
            "required": ["name", "email"],
            "properties": {"email": {"type": "string", "format": "email"}},
        },
    }

    data = _ok(client.post("/api/validate", json=payload))

    assert data["valid"] is False
    assert any(e["keyword"] == "format" for e in data["errors"])


def test_validate_valid_document(client: TestClient) -> None:
    payload = {"data": {"name": "NK"}, "schema": {"type": "object", "required": ["name"]}}

    data = _ok(client.post("/api/validate", json=payload))

    assert data == {"valid": True, "errors": []}


def test_validate_malformed_schema(client: TestClient) -> None:
    r = client.post("/api/validate", json={"data": {}, "schema": {"type": 12}})
    assert _err(r, 400, "VALIDATION_ERROR").startswith("Invalid JSON Schema")


def test_validate_missing_schema_is_invalid_input(client: TestClient) -> None:
    r = client.post("/api/validate", json={"data": {}})
    assert _err(r, 400, "INVALID_INPUT") == "Missing required field: schema"
