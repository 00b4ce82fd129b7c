from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Literal

from jobtracker.api.client import ApplicationApiClient
from jobtracker.config import Settings, get_settings
from jobtracker.core.forms import ApplicationForm, validate_form
from jobtracker.core.notices import Notice, NoticeBoard
from jobtracker.core.views import filter_and_sort, status_counts
from jobtracker.types import STATUS_FILTER_ALL, ApplicationRecord

logger = logging.getLogger(__name__)

ModalMode = Literal["closed", "creating", "editing"]

_FIELD_BY_ALIAS = {
    (info.alias or name): name for name, info in ApplicationForm.model_fields.items()
}


@dataclass(slots=True)
class DashboardState:
    applications: list[ApplicationRecord] = field(default_factory=list)
    loading: bool = False
    api_status: str = ""
    modal: ModalMode = "closed"
    editing: ApplicationRecord | None = None
    form: ApplicationForm = field(default_factory=ApplicationForm)
    form_errors: dict[str, str] = field(default_factory=dict)
    submitting: bool = False
    search_term: str = ""
    filter_status: str = STATUS_FILTER_ALL
    pending_delete: str | None = None
    last_created: ApplicationRecord | None = None


class DashboardController:
    """Local cache of the user's applications plus the add/edit/delete UI state.

    Network calls run in worker threads so the event loop stays responsive.
    Mutations on the same ``applicationId`` are serialized with a per-record
    lock and apply in the order they were issued; different records proceed
    independently. After :meth:`close`, results that arrive late are dropped.
    """

    def __init__(self, client: ApplicationApiClient, *, settings: Settings | None = None):
        self.client = client
        self.settings = settings or get_settings()
        self.state = DashboardState()
        self.notices = NoticeBoard(self.settings.notice_clear_delay_sec)
        self._record_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def notice(self) -> Notice | None:
        return self.notices.current

    @property
    def visible_applications(self) -> list[ApplicationRecord]:
        return filter_and_sort(
            self.state.applications,
            search_term=self.state.search_term,
            status_filter=self.state.filter_status,
        )

    @property
    def status_counts(self) -> dict[str, int]:
        return status_counts(self.state.applications)

    def find(self, application_id: str) -> ApplicationRecord | None:
        for record in self.state.applications:
            if record.application_id == application_id:
                return record
        return None

    def close(self) -> None:
        self._closed = True
        self.notices.clear()

    async def refresh(self) -> bool:
        self.state.loading = True
        self.state.api_status = "Connecting to backend..."
        try:
            outcome = await asyncio.to_thread(self.client.list)
        finally:
            self.state.loading = False

        if self._closed:
            logger.debug("Dropping list result; dashboard closed")
            return False

        result = outcome.result
        if result.success and isinstance(result.data.get("items"), list):
            self.state.applications = list(outcome.items)
            self.state.api_status = f"Connected! Found {len(outcome.items)} applications"
            return True

        if result.failure in {"transport", "http", "malformed_envelope"}:
            self.state.api_status = f"Connection failed: {result.error}"
        else:
            self.state.api_status = "Connected but no data received"
        self.state.applications = []
        return False

    def set_search(self, term: str) -> None:
        self.state.search_term = term

    def set_filter(self, status: str) -> None:
        self.state.filter_status = status or STATUS_FILTER_ALL

    def open_create(self) -> None:
        self._reset_form()
        self.state.modal = "creating"

    def open_edit(self, application_id: str) -> None:
        record = self.find(application_id)
        if record is None:
            raise ValueError(f"application {application_id} not found")
        self.state.form = ApplicationForm.from_record(record)
        self.state.form_errors = {}
        self.state.editing = record
        self.state.modal = "editing"

    def cancel(self) -> None:
        self._close_modal()

    def set_field(self, name: str, value: str) -> None:
        attr = _FIELD_BY_ALIAS.get(name, name)
        if attr not in ApplicationForm.model_fields:
            raise ValueError(f"unknown form field '{name}'")
        setattr(self.state.form, attr, value)
        alias = ApplicationForm.model_fields[attr].alias or attr
        self.state.form_errors.pop(alias, None)

    async def submit(self) -> bool:
        if self.state.modal == "closed":
            raise ValueError("no application form is open")

        errors = validate_form(self.state.form)
        if errors:
            self.state.form_errors = errors
            return False
        self.state.form_errors = {}

        payload = self.state.form.to_payload()
        editing = self.state.editing if self.state.modal == "editing" else None
        self.state.submitting = True
        try:
            if editing is not None:
                saved = await self._submit_update(editing.application_id, payload)
            else:
                saved = await self._submit_create(payload)
        finally:
            self.state.submitting = False

        if saved and not self._closed:
            self._close_modal()
        return saved

    def request_delete(self, application_id: str) -> None:
        if self.find(application_id) is None:
            raise ValueError(f"application {application_id} not found")
        self.state.pending_delete = application_id

    def cancel_delete(self) -> None:
        self.state.pending_delete = None

    async def confirm_delete(self) -> bool:
        application_id = self.state.pending_delete
        if application_id is None:
            raise ValueError("no delete is awaiting confirmation")
        self.state.pending_delete = None

        async with self._record_locks[application_id]:
            result = await asyncio.to_thread(self.client.delete, application_id)
            if self._closed:
                return False
            if not result.success:
                self.notices.post(f"Failed to delete: {result.error or 'Unknown error'}", "error")
                return False
            self.state.applications = [
                record for record in self.state.applications if record.application_id != application_id
            ]
        self._record_locks.pop(application_id, None)

        self.notices.post("Application deleted successfully!", "success")
        return True

    async def _submit_create(self, payload: dict[str, Any]) -> bool:
        self.state.last_created = None
        known = {record.application_id for record in self.state.applications}
        outcome = await asyncio.to_thread(self.client.create, payload)
        if self._closed:
            return False
        if outcome.kind == "failed":
            self.notices.post(f"Failed to create: {outcome.result.error or 'Unknown error'}", "error")
            return False

        if outcome.kind == "created" and outcome.record is not None:
            self._upsert(outcome.record)
            self.state.last_created = outcome.record
        else:
            await self.refresh()
            # without an echo the new record is whatever the reload added
            added = [record for record in self.state.applications if record.application_id not in known]
            if len(added) == 1:
                self.state.last_created = added[0]
            else:
                logger.debug("Could not single out the created record; %d new after reload", len(added))
        self.notices.post("Application added", "success")
        return True

    async def _submit_update(self, application_id: str, payload: dict[str, Any]) -> bool:
        async with self._record_locks[application_id]:
            result = await asyncio.to_thread(self.client.update, application_id, payload)
            if self._closed:
                return False
            if not result.success:
                self.notices.post(f"Failed to update: {result.error or 'Unknown error'}", "error")
                return False
            self._merge(application_id, payload)

        self.notices.post("Application updated", "success")
        return True

    def _upsert(self, record: ApplicationRecord) -> None:
        for index, existing in enumerate(self.state.applications):
            if existing.application_id == record.application_id:
                self.state.applications[index] = record
                return
        self.state.applications.append(record)

    def _merge(self, application_id: str, payload: dict[str, Any]) -> None:
        merged: list[ApplicationRecord] = []
        for record in self.state.applications:
            if record.application_id == application_id:
                # identity stays with the local record whatever the payload says
                record = ApplicationRecord.model_validate(
                    {**record.to_wire(), **payload, "applicationId": record.application_id}
                )
            merged.append(record)
        self.state.applications = merged

    def _reset_form(self) -> None:
        self.state.form = ApplicationForm()
        self.state.form_errors = {}
        self.state.editing = None

    def _close_modal(self) -> None:
        self.state.modal = "closed"
        self._reset_form()
