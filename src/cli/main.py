"""psa-connect command line.

All prompting happens here; the core receives already-resolved inputs.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.connectedcar import ConnectedCarClient
from adapters.session_store import JsonSessionStore, load_vehicles, save_vehicles
from cli import doctor
from cli.ui_components import (
    build_error_panel,
    build_locales_table,
    build_vehicles_table,
    print_banner,
)
from core.config import AppSettings
from core.domain.models import VehiclesList
from core.errors import PSAConnectError
from core.services.package_extractor import extract, list_locales
from core.services.session_manager import SessionManager, SessionState

app = typer.Typer(no_args_is_help=True, help="Connected-car credentials and session bootstrap.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging.")) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except PSAConnectError as exc:
        _console.print(build_error_panel(exc))
        raise typer.Exit(code=1) from exc


def _choose_locale(apk: Path, locale: str | None) -> str:
    if locale:
        return locale
    _console.print(build_locales_table(list_locales(apk)))
    return typer.prompt("Locale").strip()


@app.command()
def setup(
    apk: Optional[Path] = typer.Option(None, "--apk", help="Path to the vendor app package (.apk)."),
    locale: Optional[str] = typer.Option(None, "--locale", help="Locale such as fr-FR; prompted when omitted."),
    email: Optional[str] = typer.Option(None, "--email", help="Account e-mail."),
    password: Optional[str] = typer.Option(None, "--password", help="Account password."),
    force: bool = typer.Option(False, "--force", help="Re-extract credentials even when cached."),
    reset_tokens: bool = typer.Option(False, "--reset-tokens", help="Forget cached OAuth tokens."),
) -> None:
    """Extract package credentials, register the account and resolve the customer id."""

    settings = AppSettings()
    print_banner(_console)

    with _reported_errors():
        sessions = SessionManager(repository=JsonSessionStore(settings.session_path), settings=settings)

        if force or sessions.state is SessionState.NO_SESSION:
            apk_path = apk or Path(typer.prompt("Path to the car app package").strip())
            chosen = _choose_locale(apk_path, locale)
            sessions.seed(extract(apk_path, chosen, settings))

        if email or password or not sessions.has_operator():
            sessions.set_operator(
                email or typer.prompt("Account e-mail").strip(),
                password or typer.prompt("Account password", hide_input=True),
            )

        if reset_tokens:
            sessions.reset_tokens()

        try:
            sessions.bootstrap()
        finally:
            sessions.save()

    _console.print(f"[green]Session ready[/green] ({sessions.record.brand_code}, {sessions.record.culture})")


def _vehicles(client: ConnectedCarClient, path: Path, refresh: bool) -> VehiclesList:
    cached = None if refresh else load_vehicles(path)
    if cached is not None:
        return cached
    vehicles = client.list_vehicles().embedded
    save_vehicles(path, vehicles)
    return vehicles


@app.command()
def vehicles(refresh: bool = typer.Option(False, "--refresh", help="Ignore the vehicle cache.")) -> None:
    """List the vehicles attached to the account."""

    settings = AppSettings()
    with _reported_errors():
        sessions = SessionManager(repository=JsonSessionStore(settings.session_path), settings=settings)
        try:
            result = _vehicles(ConnectedCarClient(sessions, settings), settings.vehicles_path, refresh)
        finally:
            sessions.save()
    _console.print(build_vehicles_table(result))


@app.command()
def status(vin: str = typer.Argument(..., help="VIN of the vehicle.")) -> None:
    """Print the current status of one vehicle as JSON."""

    settings = AppSettings()
    with _reported_errors():
        sessions = SessionManager(repository=JsonSessionStore(settings.session_path), settings=settings)
        client = ConnectedCarClient(sessions, settings)
        try:
            known = _vehicles(client, settings.vehicles_path, refresh=False)
            vehicle = next((v for v in known.vehicles if v.vin == vin.strip()), None)
            if vehicle is None:
                raise PSAConnectError(f"Unknown VIN {vin}", hint="Run `psa-connect vehicles --refresh`")
            result = client.get_vehicle_status(vehicle.id)
        finally:
            sessions.save()
    _console.print_json(result.model_dump_json(by_alias=True))


def run() -> None:
    app()
