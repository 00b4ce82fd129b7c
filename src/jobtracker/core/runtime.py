from __future__ import annotations

from jobtracker.api.client import ApplicationApiClient
from jobtracker.api.request_helper import RequestHelper
from jobtracker.auth.cognito import CognitoAuthService
from jobtracker.auth.session_store import SessionStore
from jobtracker.config import Settings, get_settings

_API_CLIENT: ApplicationApiClient | None = None
_AUTH_SERVICE: CognitoAuthService | None = None


def build_api_client(settings: Settings) -> ApplicationApiClient:
    return ApplicationApiClient(RequestHelper(settings.api_config()))


def build_auth_service(settings: Settings) -> CognitoAuthService:
    return CognitoAuthService(settings.auth_config(), SessionStore(settings.session_file))


def get_api_client() -> ApplicationApiClient:
    global _API_CLIENT
    if _API_CLIENT is None:
        _API_CLIENT = build_api_client(get_settings())
    return _API_CLIENT


def get_auth_service() -> CognitoAuthService:
    global _AUTH_SERVICE
    if _AUTH_SERVICE is None:
        _AUTH_SERVICE = build_auth_service(get_settings())
    return _AUTH_SERVICE


def reset_runtime() -> None:
    global _API_CLIENT, _AUTH_SERVICE
    _API_CLIENT = None
    _AUTH_SERVICE = None
