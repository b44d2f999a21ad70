"""Rich UI components for the CLI.

Why keep them apart:
- Commands stay about flow; rendering details live here.
- Tables and the error panel are shared by `setup`, `vehicles` and `status`.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import VehiclesList
from core.errors import PSAConnectError


def print_banner(console: Console) -> None:
    title = Text("PSA-CONNECT", style="bold cyan")
    subtitle = Text("Package credentials • Session bootstrap • Connected car", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_locales_table(locales: list[str]) -> Table:
    table = Table(title="Available locales")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Locale", style="cyan")
    for index, locale in enumerate(locales, start=1):
        table.add_row(str(index), locale)
    return table


def build_vehicles_table(vehicles: VehiclesList) -> Table:
    table = Table(title="Vehicles")
    table.add_column("VIN", style="cyan", no_wrap=True)
    table.add_column("Id", style="white")
    table.add_column("Brand", style="magenta")
    for vehicle in vehicles.vehicles:
        table.add_row(vehicle.vin, vehicle.id, vehicle.brand or "")
    return table


def build_error_panel(error: PSAConnectError) -> Panel:
    body = Text(error.message, style="bold")
    reason = getattr(error, "reason", None)
    if reason is not None:
        body.append(f"\nReason: {reason.value}", style="dim")
    details = getattr(error, "details", None)
    if details:
        body.append(f"\nDetails: {details}", style="dim")
    if error.hint:
        body.append(f"\n\n{error.hint}", style="yellow")
    return Panel(body, title=type(error).__name__, border_style="red")
