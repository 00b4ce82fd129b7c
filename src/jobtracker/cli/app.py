from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, NoReturn

import typer

from jobtracker.auth.cognito import AuthError, CognitoAuthService
from jobtracker.config import ConfigError, get_settings
from jobtracker.core.dashboard import DashboardController
from jobtracker.core.runtime import get_api_client, get_auth_service
from jobtracker.core.views import status_style
from jobtracker.logging_config import configure_logging
from jobtracker.types import STATUS_FILTER_ALL, ApplicationRecord, AuthSession

app = typer.Typer(help="Job application tracker CLI")
auth_app = typer.Typer(help="Sign up, sign in and manage passwords")
apps_app = typer.Typer(help="List, add, edit and delete tracked applications")

app.add_typer(auth_app, name="auth")
app.add_typer(apps_app, name="apps")


class StatusChoice(str, Enum):
    applied = "Applied"
    interview = "Interview"
    offer = "Offer"
    rejected = "Rejected"


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _fail(message: str, **extra: Any) -> NoReturn:
    typer.echo(json.dumps({"ok": False, "error": message, **extra}, indent=2), err=True)
    raise typer.Exit(code=1)


def _auth_service() -> CognitoAuthService:
    try:
        return get_auth_service()
    except ConfigError as exc:
        _fail(str(exc))


def _controller() -> DashboardController:
    try:
        client = get_api_client()
    except ConfigError as exc:
        _fail(str(exc))
    return DashboardController(client, settings=get_settings())


def _require_session() -> AuthSession | None:
    if not get_settings().require_login:
        return None
    try:
        session = _auth_service().get_current_session()
    except AuthError as exc:
        _fail(f"could not restore session: {exc}")
    if session is None:
        _fail("not signed in; run `jobtracker auth login` first")
    return session


def _load(controller: DashboardController) -> None:
    if not asyncio.run(controller.refresh()):
        _fail(controller.state.api_status)


def _form_fields(**values: str | None) -> dict[str, str]:
    return {name: value for name, value in values.items() if value is not None}


async def _submit(controller: DashboardController, fields: dict[str, str]) -> tuple[bool, str | None]:
    for name, value in fields.items():
        controller.set_field(name, value)
    saved = await controller.submit()
    notice = controller.notice
    return saved, notice.text if notice else None


def _report_submit(controller: DashboardController, saved: bool, message: str | None) -> None:
    if controller.state.form_errors:
        _fail("validation failed", fields=controller.state.form_errors)
    if not saved:
        _fail(message or "request failed")
    created = controller.state.last_created
    _echo_json({"ok": True, "message": message, "application": created.to_wire() if created else None})


@auth_app.command("signup")
def auth_signup(
    email: str = typer.Option(..., "--email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    configure_logging()
    try:
        result = _auth_service().sign_up(email, password)
    except AuthError as exc:
        _fail(str(exc), code=exc.code)
    _echo_json({"ok": True, **result})


@auth_app.command("confirm")
def auth_confirm(
    email: str = typer.Option(..., "--email"),
    code: str = typer.Option(..., "--code"),
) -> None:
    configure_logging()
    try:
        _auth_service().confirm_sign_up(email, code)
    except AuthError as exc:
        _fail(str(exc), code=exc.code)
    _echo_json({"ok": True, "email": email, "confirmed": True})


@auth_app.command("login")
def auth_login(
    email: str = typer.Option(..., "--email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
) -> None:
    configure_logging()
    try:
        session = _auth_service().sign_in(email, password)
    except AuthError as exc:
        _fail(str(exc), code=exc.code)
    _echo_json({"ok": True, "email": session.email})


@auth_app.command("logout")
def auth_logout() -> None:
    configure_logging()
    _auth_service().sign_out()
    _echo_json({"ok": True})


@auth_app.command("whoami")
def auth_whoami() -> None:
    configure_logging()
    try:
        session = _auth_service().get_current_session()
    except AuthError as exc:
        _fail(str(exc), code=exc.code)
    _echo_json({"signed_in": session is not None, "email": session.email if session else None})


@auth_app.command("forgot-password")
def auth_forgot_password(email: str = typer.Option(..., "--email")) -> None:
    configure_logging()
    try:
        delivery = _auth_service().forgot_password(email)
    except AuthError as exc:
        _fail(str(exc), code=exc.code)
    _echo_json({"ok": True, "delivery": delivery})


@auth_app.command("reset-password")
def auth_reset_password(
    email: str = typer.Option(..., "--email"),
    code: str = typer.Option(..., "--code"),
    new_password: str = typer.Option(..., "--new-password", prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    configure_logging()
    try:
        _auth_service().confirm_password(email, code, new_password)
    except AuthError as exc:
        _fail(str(exc), code=exc.code)
    _echo_json({"ok": True})


def _render_line(record: ApplicationRecord) -> str:
    style = status_style(record.status)
    badge = typer.style(f"[{style.label}]", fg=style.color, bold=True)
    line = f"{badge} {record.company_name} - {record.job_title}  applied {record.date_applied or '-'}"
    if record.follow_up_date:
        line += f"  follow up {record.follow_up_date}"
    if record.job_post_url:
        line += f"\n    {record.job_post_url}"
    if record.notes:
        line += f"\n    {record.notes}"
    return f"{line}\n    id: {record.application_id}"


@apps_app.command("list")
def apps_list(
    search: str = typer.Option("", "--search"),
    status: str = typer.Option(STATUS_FILTER_ALL, "--status"),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    configure_logging()
    _require_session()
    controller = _controller()
    _load(controller)
    controller.set_search(search)
    controller.set_filter(status)
    visible = controller.visible_applications

    if as_json:
        _echo_json([record.to_wire() for record in visible])
        return

    typer.echo(controller.state.api_status)
    if not visible:
        typer.echo("No applications yet" if not controller.state.applications else "No matching applications")
        return
    for record in visible:
        typer.echo(_render_line(record))
    typer.echo(f"Showing {len(visible)} of {len(controller.state.applications)}")


@apps_app.command("stats")
def apps_stats() -> None:
    configure_logging()
    _require_session()
    controller = _controller()
    _load(controller)
    _echo_json(controller.status_counts)


@apps_app.command("add")
def apps_add(
    company: str = typer.Option(..., "--company"),
    title: str = typer.Option(..., "--title"),
    url: str | None = typer.Option(None, "--url"),
    status: StatusChoice | None = typer.Option(None, "--status", case_sensitive=False),
    date_applied: str | None = typer.Option(None, "--date-applied"),
    follow_up: str | None = typer.Option(None, "--follow-up"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    configure_logging()
    _require_session()
    controller = _controller()
    _load(controller)
    controller.open_create()
    fields = _form_fields(
        companyName=company,
        jobTitle=title,
        jobPostUrl=url,
        status=status.value if status else None,
        dateApplied=date_applied,
        followUpDate=follow_up,
        notes=notes,
    )
    saved, message = asyncio.run(_submit(controller, fields))
    _report_submit(controller, saved, message)


@apps_app.command("edit")
def apps_edit(
    application_id: str = typer.Argument(...),
    company: str | None = typer.Option(None, "--company"),
    title: str | None = typer.Option(None, "--title"),
    url: str | None = typer.Option(None, "--url"),
    status: StatusChoice | None = typer.Option(None, "--status", case_sensitive=False),
    date_applied: str | None = typer.Option(None, "--date-applied"),
    follow_up: str | None = typer.Option(None, "--follow-up"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    configure_logging()
    _require_session()
    controller = _controller()
    _load(controller)
    try:
        controller.open_edit(application_id)
    except ValueError as exc:
        _fail(str(exc))

    fields = _form_fields(
        companyName=company,
        jobTitle=title,
        jobPostUrl=url,
        status=status.value if status else None,
        dateApplied=date_applied,
        followUpDate=follow_up,
        notes=notes,
    )
    saved, message = asyncio.run(_submit(controller, fields))
    if controller.state.form_errors:
        _fail("validation failed", fields=controller.state.form_errors)
    if not saved:
        _fail(message or "request failed")
    record = controller.find(application_id)
    _echo_json({"ok": True, "message": message, "application": record.to_wire() if record else None})


@apps_app.command("delete")
def apps_delete(
    application_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    configure_logging()
    _require_session()
    controller = _controller()
    _load(controller)
    try:
        controller.request_delete(application_id)
    except ValueError as exc:
        _fail(str(exc))

    if not yes and not typer.confirm("Are you sure you want to delete this application?", default=False):
        controller.cancel_delete()
        _echo_json({"ok": False, "cancelled": True})
        return

    async def _confirm() -> tuple[bool, str | None]:
        deleted = await controller.confirm_delete()
        notice = controller.notice
        return deleted, notice.text if notice else None

    deleted, message = asyncio.run(_confirm())
    if not deleted:
        _fail(message or "delete failed")
    _echo_json({"ok": True, "message": message, "remaining": len(controller.state.applications)})


def main() -> None:
    app()
