from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from jobtracker.types import APPLICATION_STATUSES, STATUS_FILTER_ALL, UNKNOWN_STATUS, ApplicationRecord


@dataclass(frozen=True, slots=True)
class StatusStyle:
    label: str
    color: str


_STATUS_STYLES = {
    "Applied": StatusStyle(label="Applied", color="blue"),
    "Interview": StatusStyle(label="Interview", color="yellow"),
    "Offer": StatusStyle(label="Offer", color="green"),
    "Rejected": StatusStyle(label="Rejected", color="red"),
}


def status_style(status: str | None) -> StatusStyle:
    style = _STATUS_STYLES.get(status or "")
    if style is not None:
        return style
    return StatusStyle(label=status or UNKNOWN_STATUS, color="white")


def matches(record: ApplicationRecord, search_term: str, status_filter: str) -> bool:
    needle = search_term.lower()
    matches_search = not needle or (
        needle in (record.company_name or "").lower() or needle in (record.job_title or "").lower()
    )
    matches_status = status_filter == STATUS_FILTER_ALL or record.status == status_filter
    return matches_search and matches_status


def date_sort_key(record: ApplicationRecord) -> date:
    raw = (record.date_applied or "").strip()
    if not raw:
        return date.min
    try:
        # accept full timestamps too; only the calendar day matters
        return date.fromisoformat(raw[:10])
    except ValueError:
        return date.min


def filter_and_sort(
    records: Iterable[ApplicationRecord],
    *,
    search_term: str = "",
    status_filter: str = STATUS_FILTER_ALL,
) -> list[ApplicationRecord]:
    visible = [record for record in records if matches(record, search_term, status_filter)]
    return sorted(visible, key=date_sort_key, reverse=True)


def status_counts(records: Iterable[ApplicationRecord]) -> dict[str, int]:
    counts = Counter(record.status or UNKNOWN_STATUS for record in records)
    summary = {status: counts.get(status, 0) for status in APPLICATION_STATUSES}
    for status, count in counts.items():
        if status not in summary:
            summary[status] = count
    summary["total"] = sum(counts.values())
    return summary
