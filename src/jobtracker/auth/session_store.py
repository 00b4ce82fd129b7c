from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class StoredSession(BaseModel):
    username: str
    access_token: str
    id_token: str = ""
    refresh_token: str = ""
    expires_at: datetime

    def is_expired(self, *, now: datetime | None = None, leeway_sec: int = 30) -> bool:
        current = now or datetime.now(UTC)
        return (self.expires_at - current).total_seconds() <= leeway_sec


class SessionStore:
    """Keeps the signed-in user's tokens in a small JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> StoredSession | None:
        if not self.path.exists():
            return None
        try:
            return StoredSession.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None

    def save(self, session: StoredSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(session.model_dump(mode="json"), indent=2), encoding="utf-8")
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug("Could not restrict permissions on %s", self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
