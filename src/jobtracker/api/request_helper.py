from __future__ import annotations

import json
import logging
from http.cookiejar import DefaultCookiePolicy
from typing import Any

import requests

from jobtracker.api.envelope import MalformedEnvelope, unwrap_envelope
from jobtracker.config import ApiConfig
from jobtracker.types import ApiResult

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


def build_session() -> requests.Session:
    session = requests.Session()
    # no cookies are stored or replayed; every call goes out without credentials
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    # otherwise requests picks up ~/.netrc auth and proxy settings from the environment
    session.trust_env = False
    return session


class RequestHelper:
    """Issue JSON requests against the API and never raise.

    Every outcome comes back as an :class:`ApiResult`. Transport errors,
    non-2xx statuses and undecodable payloads are classified into
    ``ApiResult.failure`` instead of propagating.
    """

    def __init__(self, config: ApiConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or build_session()

    def url_for(self, endpoint: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{endpoint}"

    def request(self, endpoint: str, method: str = "GET", body: Any = None) -> ApiResult:
        url = self.url_for(endpoint)
        data = json.dumps(body) if body is not None else None
        logger.debug("Request %s %s body=%s", method, url, data)

        try:
            response = self.session.request(
                method,
                url,
                data=data,
                headers=dict(JSON_HEADERS),
                timeout=self.config.timeout_sec,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            logger.warning("Transport failure %s %s: %s", method, url, exc)
            return ApiResult.failed("transport", str(exc) or exc.__class__.__name__)

        status_code = response.status_code
        logger.debug("Response status %s for %s %s", status_code, method, url)
        if not 200 <= status_code < 300:
            logger.warning("HTTP failure %s %s: status %s", method, url, status_code)
            return ApiResult.failed("http", f"HTTP error! status: {status_code}", status_code=status_code)

        try:
            raw = response.json()
        except ValueError as exc:
            logger.warning("Response from %s %s is not JSON: %s", method, url, exc)
            return ApiResult.failed("malformed_envelope", "response is not valid JSON", status_code=status_code)

        try:
            payload = unwrap_envelope(raw)
        except MalformedEnvelope as exc:
            logger.warning("Malformed envelope from %s %s: %s", method, url, exc)
            return ApiResult.failed("malformed_envelope", str(exc), status_code=status_code)

        if not isinstance(payload, dict):
            logger.warning("Unexpected payload type %s from %s %s", type(payload).__name__, method, url)
            return ApiResult.failed(
                "malformed_envelope",
                f"expected a JSON object, got {type(payload).__name__}",
                status_code=status_code,
            )

        result = ApiResult.from_payload(payload, status_code=status_code)
        if not result.success:
            logger.info("API reported failure for %s %s: %s", method, url, result.error)
        return result

    def close(self) -> None:
        self.session.close()
