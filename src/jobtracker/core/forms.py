from __future__ import annotations

import re
from datetime import date
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from jobtracker.types import APPLICATION_STATUSES, ApplicationRecord

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_HIERARCHICAL_SCHEMES = {"http", "https", "ftp", "ws", "wss"}

FORM_FIELDS: tuple[str, ...] = (
    "companyName",
    "jobTitle",
    "jobPostUrl",
    "status",
    "dateApplied",
    "followUpDate",
    "notes",
)


def today_iso() -> str:
    return date.today().isoformat()


class ApplicationForm(BaseModel):
    """Editable form values. Everything is text, the way an input box holds it."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    company_name: str = Field(default="", alias="companyName")
    job_title: str = Field(default="", alias="jobTitle")
    job_post_url: str = Field(default="", alias="jobPostUrl")
    status: str = "Applied"
    date_applied: str = Field(default_factory=today_iso, alias="dateApplied")
    follow_up_date: str = Field(default="", alias="followUpDate")
    notes: str = ""

    @classmethod
    def from_record(cls, record: ApplicationRecord) -> ApplicationForm:
        return cls(
            company_name=record.company_name or "",
            job_title=record.job_title or "",
            job_post_url=record.job_post_url or "",
            status=record.status or "Applied",
            date_applied=record.date_applied or today_iso(),
            follow_up_date=record.follow_up_date or "",
            notes=record.notes or "",
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def is_valid_url(value: str) -> bool:
    candidate = value.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return False
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return False
    if not parsed.scheme or not _SCHEME_RE.match(parsed.scheme):
        return False
    if parsed.scheme.lower() in _HIERARCHICAL_SCHEMES:
        return bool(parsed.hostname)
    return bool(parsed.netloc or parsed.path)


def validate_form(form: ApplicationForm) -> dict[str, str]:
    """Return a field-keyed map of problems; empty means the form may be submitted."""
    errors: dict[str, str] = {}
    if not form.company_name.strip():
        errors["companyName"] = "Company name is required"
    if not form.job_title.strip():
        errors["jobTitle"] = "Job title is required"
    if form.job_post_url and not is_valid_url(form.job_post_url):
        errors["jobPostUrl"] = "Please enter a valid URL"
    if form.status not in APPLICATION_STATUSES:
        errors["status"] = "Please choose a valid status"
    return errors
