from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import unquote, urlparse

import pytest
import requests

from jobtracker.api.client import ApplicationApiClient
from jobtracker.api.request_helper import RequestHelper
from jobtracker.config import ApiConfig, get_settings
from jobtracker.core.runtime import reset_runtime

API_URL = "https://api.example.test/prod"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, *, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self._text = text
        self.json_calls = 0

    def json(self) -> Any:
        self.json_calls += 1
        if self._text is not None:
            return json.loads(self._text)
        return self._payload


class FakeHttpSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: list[Any] | None = None):
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("POST", url, **kwargs)

    def close(self) -> None:
        pass


class FakeBackend:
    """In-memory stand-in for the applications API behind a requests session."""

    def __init__(self, records: list[dict[str, Any]] | None = None, *, base_url: str = API_URL):
        self.base_path = urlparse(base_url).path.rstrip("/")
        self.records: dict[str, dict[str, Any]] = {}
        for record in records or []:
            self.records[record["applicationId"]] = dict(record)
        self.calls: list[tuple[str, str, Any]] = []
        self.events: list[str] = []
        self.echo_key: str | None = "application"
        self.wrap_in_body = False
        self.rejected_methods: set[str] = set()
        self.delays: dict[str, float] = {}
        self.hooks: dict[str, Callable[[], None]] = {}
        self._next_id = 1

    def request(self, method: str, url: str, data: str | None = None, **kwargs: Any) -> FakeResponse:
        path = urlparse(url).path[len(self.base_path):]
        body = json.loads(data) if data else None
        self.calls.append((method, path, body))

        if method in self.rejected_methods:
            raise requests.ConnectionError(f"{method} blocked before reaching the API")

        self.events.append(f"{method}:start")
        if method in self.hooks:
            self.hooks[method]()
        if method in self.delays:
            time.sleep(self.delays[method])
        payload = self._route(method, path, body)
        self.events.append(f"{method}:end")

        if self.wrap_in_body:
            return FakeResponse(200, {"statusCode": 200, "body": json.dumps(payload)})
        return FakeResponse(200, payload)

    def close(self) -> None:
        pass

    @property
    def methods(self) -> list[str]:
        return [method for method, _, _ in self.calls]

    def _route(self, method: str, path: str, body: Any) -> dict[str, Any]:
        parts = [unquote(part) for part in path.strip("/").split("/")]
        if parts == ["applications"]:
            if method == "GET":
                return {"success": True, "items": list(self.records.values())}
            if method == "POST":
                return self._create(body or {})

        if len(parts) == 2 and parts[0] == "applications":
            application_id = parts[1]
            if application_id not in self.records:
                return {"success": False, "error": "Application not found"}
            if method == "PUT":
                self.records[application_id].update(body or {})
                self.records[application_id]["applicationId"] = application_id
                return {"success": True}
            if method == "DELETE" or (method == "POST" and (body or {}).get("_method") == "DELETE"):
                del self.records[application_id]
                return {"success": True}

        return {"success": False, "error": f"unsupported route {method} {path}"}

    def _create(self, body: dict[str, Any]) -> dict[str, Any]:
        application_id = f"app-{self._next_id}"
        self._next_id += 1
        record = {**body, "applicationId": application_id, "createdAt": "2024-05-01T00:00:00Z"}
        self.records[application_id] = record
        payload: dict[str, Any] = {"success": True}
        if self.echo_key:
            payload[self.echo_key] = record
        return payload


@pytest.fixture(autouse=True)
def app_env(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("API_URL", API_URL)
    monkeypatch.setenv("COGNITO_USER_POOL_ID", "ap-southeast-2_TestPool")
    monkeypatch.setenv("COGNITO_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("SESSION_FILE", str(tmp_path / "session.json"))
    monkeypatch.setenv("NOTICE_CLEAR_DELAY_SEC", "3")
    get_settings.cache_clear()
    reset_runtime()
    yield
    get_settings.cache_clear()
    reset_runtime()


@pytest.fixture
def acme_record() -> dict[str, Any]:
    return {
        "applicationId": "a1",
        "companyName": "Acme",
        "jobTitle": "Engineer",
        "status": "Applied",
        "dateApplied": "2024-01-01",
    }


@pytest.fixture
def backend(acme_record) -> FakeBackend:
    return FakeBackend([acme_record])


@pytest.fixture
def api_client(backend) -> ApplicationApiClient:
    return ApplicationApiClient(RequestHelper(ApiConfig(base_url=API_URL, timeout_sec=5), session=backend))


@pytest.fixture
def http_session_factory() -> Callable[..., FakeHttpSession]:
    return FakeHttpSession


@pytest.fixture
def response_factory() -> Callable[..., FakeResponse]:
    return FakeResponse
