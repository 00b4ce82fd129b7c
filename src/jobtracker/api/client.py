from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from jobtracker.api.request_helper import RequestHelper
from jobtracker.types import ApiResult, ApplicationRecord, CreateOutcome, ListOutcome

logger = logging.getLogger(__name__)

COLLECTION_PATH = "/applications"
METHOD_OVERRIDE_FIELD = "_method"

# statuses an intermediary answers with when it refuses the verb itself
_METHOD_REJECTED_STATUSES = {405}


def record_path(application_id: str) -> str:
    return f"{COLLECTION_PATH}/{quote(str(application_id), safe='')}"


def is_method_rejection(result: ApiResult) -> bool:
    """True when the call never reached application logic because of its HTTP method."""
    if result.success:
        return False
    if result.failure == "transport":
        return True
    return result.failure == "http" and result.status_code in _METHOD_REJECTED_STATUSES


def _parse_record(raw: Any) -> ApplicationRecord | None:
    if not isinstance(raw, dict):
        return None
    try:
        return ApplicationRecord.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Skipping invalid application record: %s", exc.errors(include_url=False))
        return None


class ApplicationApiClient:
    def __init__(self, helper: RequestHelper):
        self.helper = helper

    def list(self) -> ListOutcome:
        result = self.helper.request(COLLECTION_PATH)
        if not result.success:
            return ListOutcome(result=result)

        raw_items = result.data.get("items")
        if not isinstance(raw_items, list):
            logger.info("List response carried no items array")
            return ListOutcome(result=result)

        items: list[ApplicationRecord] = []
        seen: set[str] = set()
        for raw in raw_items:
            record = _parse_record(raw)
            if record is None:
                continue
            if record.application_id in seen:
                logger.warning("Duplicate applicationId %s in list response", record.application_id)
                continue
            seen.add(record.application_id)
            items.append(record)
        return ListOutcome(result=result, items=items)

    def create(self, payload: dict[str, Any]) -> CreateOutcome:
        body = {key: value for key, value in payload.items() if key != "applicationId"}
        result = self.helper.request(COLLECTION_PATH, method="POST", body=body)
        if not result.success:
            return CreateOutcome(kind="failed", result=result)

        for key in ("application", "item"):
            record = _parse_record(result.data.get(key))
            if record is not None:
                return CreateOutcome(kind="created", result=result, record=record)

        logger.info("Create succeeded without echoing the record; caller should refresh")
        return CreateOutcome(kind="unknown", result=result)

    def update(self, application_id: str, payload: dict[str, Any]) -> ApiResult:
        return self.helper.request(record_path(application_id), method="PUT", body=payload)

    def delete(self, application_id: str) -> ApiResult:
        path = record_path(application_id)
        logger.info("Deleting application %s", application_id)

        result = self.helper.request(path, method="DELETE")
        if not is_method_rejection(result):
            return result

        logger.warning(
            "DELETE rejected for %s (%s); retrying as POST with %s=DELETE",
            application_id,
            result.error,
            METHOD_OVERRIDE_FIELD,
        )
        return self.helper.request(path, method="POST", body={METHOD_OVERRIDE_FIELD: "DELETE"})
