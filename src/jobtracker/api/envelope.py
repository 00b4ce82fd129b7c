from __future__ import annotations

import json
from typing import Any


class MalformedEnvelope(ValueError):
    """The envelope carried a ``body`` string that is not valid JSON."""


def unwrap_envelope(value: Any) -> Any:
    """Collapse a ``{"body": "<json text>"}`` envelope into its parsed payload.

    Gateways in front of the API sometimes return the handler's response as a
    serialized string under ``body``. Anything else is returned unchanged.
    """
    if not isinstance(value, dict):
        return value

    body = value.get("body")
    if not isinstance(body, str):
        return value

    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedEnvelope(f"envelope body is not valid JSON: {exc.msg}") from exc
