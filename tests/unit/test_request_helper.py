from __future__ import annotations

import json

import requests

from jobtracker.api.request_helper import RequestHelper, build_session
from jobtracker.config import ApiConfig


def _helper(session, base_url: str = "https://api.example.test/prod") -> RequestHelper:
    return RequestHelper(ApiConfig(base_url=base_url, timeout_sec=5), session=session)


def test_success_returns_payload_and_sends_json_headers(http_session_factory, response_factory) -> None:
    session = http_session_factory([response_factory(200, {"success": True, "items": []})])
    result = _helper(session).request("/applications", method="POST", body={"companyName": "Acme"})

    assert result.success is True
    assert result.failure is None
    assert result.data == {"success": True, "items": []}

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.example.test/prod/applications"
    assert call["headers"]["Content-Type"] == "application/json"
    assert json.loads(call["data"]) == {"companyName": "Acme"}


def test_get_without_body_sends_no_data(http_session_factory, response_factory) -> None:
    session = http_session_factory([response_factory(200, {"success": True})])
    _helper(session, base_url="https://api.example.test/prod/").request("/applications")

    assert session.calls[0]["data"] is None
    assert session.calls[0]["url"] == "https://api.example.test/prod/applications"


def test_body_envelope_is_unwrapped(http_session_factory, response_factory) -> None:
    inner = {"success": True, "items": [{"applicationId": "a1"}]}
    session = http_session_factory([response_factory(200, {"statusCode": 200, "body": json.dumps(inner)})])

    result = _helper(session).request("/applications")

    assert result.success is True
    assert result.data == inner


def test_non_2xx_is_http_failure_without_parsing_body(http_session_factory, response_factory) -> None:
    response = response_factory(500, {"success": True})
    session = http_session_factory([response])

    result = _helper(session).request("/applications")

    assert result.success is False
    assert result.failure == "http"
    assert result.status_code == 500
    assert result.error == "HTTP error! status: 500"
    assert response.json_calls == 0


def test_transport_error_becomes_failure_result(http_session_factory) -> None:
    session = http_session_factory([requests.ConnectionError("connection refused")])

    result = _helper(session).request("/applications")

    assert result.success is False
    assert result.failure == "transport"
    assert "connection refused" in result.error


def test_timeout_is_a_transport_failure(http_session_factory) -> None:
    session = http_session_factory([requests.Timeout("read timed out")])
    assert _helper(session).request("/applications").failure == "transport"


def test_invalid_response_json_is_malformed(http_session_factory, response_factory) -> None:
    session = http_session_factory([response_factory(200, text="<html>gateway</html>")])

    result = _helper(session).request("/applications")

    assert result.success is False
    assert result.failure == "malformed_envelope"


def test_invalid_body_envelope_is_malformed(http_session_factory, response_factory) -> None:
    session = http_session_factory([response_factory(200, {"body": "{oops"})])

    result = _helper(session).request("/applications")

    assert result.success is False
    assert result.failure == "malformed_envelope"
    assert "not valid JSON" in result.error


def test_non_object_payload_is_malformed(http_session_factory, response_factory) -> None:
    session = http_session_factory([response_factory(200, [1, 2, 3])])
    assert _helper(session).request("/applications").failure == "malformed_envelope"


def test_server_reported_failure_passes_error_through(http_session_factory, response_factory) -> None:
    session = http_session_factory([response_factory(200, {"success": False, "error": "Application not found"})])

    result = _helper(session).request("/applications/zzz", method="PUT", body={})

    assert result.success is False
    assert result.failure == "api"
    assert result.error == "Application not found"
    assert result.data["success"] is False


def test_payload_without_success_flag_is_not_success(http_session_factory, response_factory) -> None:
    session = http_session_factory([response_factory(200, {"items": []})])

    result = _helper(session).request("/applications")

    assert result.success is False
    assert result.error == "Unknown error"


def test_built_session_ignores_environment_credentials() -> None:
    session = build_session()
    try:
        assert session.trust_env is False
    finally:
        session.close()
