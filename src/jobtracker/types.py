from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ApplicationStatus = Literal["Applied", "Interview", "Offer", "Rejected"]
APPLICATION_STATUSES: tuple[str, ...] = ("Applied", "Interview", "Offer", "Rejected")
STATUS_FILTER_ALL = "All"
UNKNOWN_STATUS = "Unknown"

FailureKind = Literal["transport", "http", "malformed_envelope", "api"]


class ApplicationRecord(BaseModel):
    """One tracked job application as the API returns it.

    Field names are snake_case in Python and camelCase on the wire. Fields the
    server adds beyond the known set are kept so that a local merge after an
    update does not lose them.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    application_id: str = Field(alias="applicationId")
    company_name: str = Field(default="", alias="companyName")
    job_title: str = Field(default="", alias="jobTitle")
    job_post_url: str | None = Field(default=None, alias="jobPostUrl")
    status: str | None = None
    date_applied: str | None = Field(default=None, alias="dateApplied")
    follow_up_date: str | None = Field(default=None, alias="followUpDate")
    notes: str | None = None

    @field_validator("application_id", mode="before")
    @classmethod
    def coerce_application_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("application_id")
    @classmethod
    def validate_application_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("applicationId must not be empty")
        return value

    @property
    def has_known_status(self) -> bool:
        return self.status in APPLICATION_STATUSES

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ApiResult(BaseModel):
    """Uniform outcome of a single API request.

    ``failure`` is ``None`` on success; otherwise it says which layer failed.
    ``data`` holds the unwrapped payload when one was received.
    """

    success: bool
    error: str | None = None
    failure: FailureKind | None = None
    status_code: int | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failed(cls, failure: FailureKind, error: str, *, status_code: int | None = None) -> ApiResult:
        return cls(success=False, failure=failure, error=error, status_code=status_code)

    @classmethod
    def from_payload(cls, payload: dict[str, Any], *, status_code: int | None = None) -> ApiResult:
        if payload.get("success") is True:
            return cls(success=True, status_code=status_code, data=payload)
        error = payload.get("error") or payload.get("message") or "Unknown error"
        return cls(success=False, failure="api", error=str(error), status_code=status_code, data=payload)


class ListOutcome(BaseModel):
    result: ApiResult
    items: list[ApplicationRecord] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.result.success


class CreateOutcome(BaseModel):
    """Result of a create call, normalized over the backend's response variants.

    ``created``: the server echoed the new record. ``unknown``: the call
    succeeded but the record is not in the payload, so the caller must refresh
    to learn the server-assigned id. ``failed``: see ``result.error``.
    """

    kind: Literal["created", "unknown", "failed"]
    result: ApiResult
    record: ApplicationRecord | None = None


class AuthSession(BaseModel):
    token: str
    email: str | None = None
