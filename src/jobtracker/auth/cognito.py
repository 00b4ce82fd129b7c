from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import requests

from jobtracker.auth.session_store import SessionStore, StoredSession
from jobtracker.config import AuthConfig
from jobtracker.types import AuthSession

logger = logging.getLogger(__name__)

_TARGET_PREFIX = "AWSCognitoIdentityProviderService"


class AuthError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message


class CognitoAuthService:
    """Sign-up, sign-in and password flows against a Cognito user pool.

    Talks to the public Cognito Identity Provider JSON API, which needs no
    request signing for these actions. The app client must allow the
    ``USER_PASSWORD_AUTH`` flow. Tokens of the signed-in user live in a
    :class:`SessionStore`.
    """

    def __init__(
        self,
        config: AuthConfig,
        store: SessionStore,
        *,
        http: requests.Session | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.store = store
        self.http = http or requests.Session()
        self._clock = clock or (lambda: datetime.now(UTC))

    def sign_up(self, email: str, password: str) -> dict[str, Any]:
        data = self._call(
            "SignUp",
            {"ClientId": self.config.client_id, "Username": email, "Password": password, "UserAttributes": []},
        )
        logger.info("Signed up %s (confirmed=%s)", email, data.get("UserConfirmed"))
        return {"username": email, "user_sub": data.get("UserSub"), "confirmed": bool(data.get("UserConfirmed"))}

    def confirm_sign_up(self, email: str, code: str) -> None:
        self._call(
            "ConfirmSignUp",
            {
                "ClientId": self.config.client_id,
                "Username": email,
                "ConfirmationCode": code,
                "ForceAliasCreation": True,
            },
        )

    def sign_in(self, email: str, password: str) -> AuthSession:
        data = self._call(
            "InitiateAuth",
            {
                "AuthFlow": "USER_PASSWORD_AUTH",
                "ClientId": self.config.client_id,
                "AuthParameters": {"USERNAME": email, "PASSWORD": password},
            },
        )
        challenge = data.get("ChallengeName")
        if challenge:
            raise AuthError(challenge, "additional sign-in challenge is not supported")

        stored = self._store_tokens(email, data.get("AuthenticationResult") or {})
        logger.info("Signed in %s", email)
        return AuthSession(token=stored.access_token, email=email)

    def sign_out(self) -> None:
        self.store.clear()

    def get_current_session(self) -> AuthSession | None:
        stored = self.store.load()
        if stored is None:
            return None

        if stored.is_expired(now=self._clock()):
            stored = self._refresh(stored)

        data = self._call("GetUser", {"AccessToken": stored.access_token})
        email = next(
            (attr.get("Value") for attr in data.get("UserAttributes", []) if attr.get("Name") == "email"),
            None,
        )
        return AuthSession(token=stored.access_token, email=email or stored.username)

    def forgot_password(self, email: str) -> dict[str, Any]:
        data = self._call("ForgotPassword", {"ClientId": self.config.client_id, "Username": email})
        return data.get("CodeDeliveryDetails") or {}

    def confirm_password(self, email: str, code: str, new_password: str) -> None:
        self._call(
            "ConfirmForgotPassword",
            {
                "ClientId": self.config.client_id,
                "Username": email,
                "ConfirmationCode": code,
                "Password": new_password,
            },
        )

    def _refresh(self, stored: StoredSession) -> StoredSession:
        if not stored.refresh_token:
            self.store.clear()
            raise AuthError("NotAuthorizedException", "session expired; sign in again")

        logger.debug("Refreshing access token for %s", stored.username)
        try:
            data = self._call(
                "InitiateAuth",
                {
                    "AuthFlow": "REFRESH_TOKEN_AUTH",
                    "ClientId": self.config.client_id,
                    "AuthParameters": {"REFRESH_TOKEN": stored.refresh_token},
                },
            )
        except AuthError:
            self.store.clear()
            raise

        result = dict(data.get("AuthenticationResult") or {})
        result.setdefault("RefreshToken", stored.refresh_token)
        return self._store_tokens(stored.username, result)

    def _store_tokens(self, username: str, result: dict[str, Any]) -> StoredSession:
        access_token = result.get("AccessToken")
        if not access_token:
            raise AuthError("InvalidResponse", "authentication result carried no access token")

        stored = StoredSession(
            username=username,
            access_token=access_token,
            id_token=result.get("IdToken", ""),
            refresh_token=result.get("RefreshToken", ""),
            expires_at=self._clock() + timedelta(seconds=int(result.get("ExpiresIn", 3600))),
        )
        self.store.save(stored)
        return stored

    def _call(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Content-Type": "application/x-amz-json-1.1",
            "X-Amz-Target": f"{_TARGET_PREFIX}.{action}",
        }
        try:
            response = self.http.post(
                self.config.endpoint,
                data=json.dumps(payload),
                headers=headers,
                timeout=self.config.timeout_sec,
            )
        except requests.RequestException as exc:
            logger.warning("Cognito %s failed to send: %s", action, exc)
            raise AuthError("NetworkError", str(exc)) from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not 200 <= response.status_code < 300:
            code = str(data.get("__type") or f"HTTP{response.status_code}").rsplit("#", 1)[-1]
            message = str(data.get("message") or data.get("Message") or "")
            logger.info("Cognito %s rejected: %s %s", action, code, message)
            raise AuthError(code, message)
        return data
