"""Doctor command for environment diagnostics."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_client, send
from adapters.pkcs12 import legacy_ciphers_available
from adapters.session_store import JsonSessionStore
from core.config import AppSettings
from core.errors import PSAConnectError
from core.services.session_manager import SessionManager, SessionState

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        with build_client(settings) as client:
            response = send(client.get, url)
        return True, f"HTTP {response.status_code}"
    except PSAConnectError as exc:
        return False, exc.message


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="PSA-CONNECT Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Crypto
    if legacy_ciphers_available():
        table.add_row("Legacy ciphers", "OK", "OpenSSL legacy provider loaded (RC2/PBES1)")
    else:
        table.add_row("Legacy ciphers", "FAIL", "Package certificates cannot be decrypted")

    # Session
    store = JsonSessionStore(settings.session_path)
    try:
        sessions = SessionManager(repository=store, settings=settings)
    except PSAConnectError as exc:
        table.add_row("Session file", "FAIL", exc.message)
        _console.print(table)
        raise typer.Exit(code=1)

    state = sessions.state
    if not store.path.exists():
        table.add_row("Session file", "MISSING", f"{store.path} (run `psa-connect setup`)")
    else:
        table.add_row("Session file", "OK", str(store.path))
    table.add_row("Session state", "OK" if state is not SessionState.NO_SESSION else "EMPTY", state.value)

    # Connectivity (best-effort)
    oauth_url = sessions.record.api.oauth_url
    if oauth_url:
        ok_http, detail_http = _check_http(oauth_url, settings)
        table.add_row("OAuth endpoint", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if state is SessionState.TOKEN_EXPIRED:
        _console.print("\n[yellow]Note:[/yellow] the access token expired; it is refreshed on the next API call.")
