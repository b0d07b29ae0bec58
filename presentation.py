"""Terminal rendering for charging stations and live charging data."""

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Deque, Iterable, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.table import Table
from rich.text import Text

from models import ChargingStation, LiveData

MAX_HISTORY_SIZE = 30
SPARKLINE_CHARS = "▁▂▃▄▅▆▇█"

STATUS_STYLES = {
    "CHARGING": ("⚡ Charging", "bold green"),
    "AVAILABLE": ("✓ Available", "bold bright_green"),
    "OCCUPIED": ("⏸ Occupied", "bold yellow"),
    "UNAVAILABLE": ("✗ Unavailable", "bold red"),
    "PREPARING": ("↻ Preparing", "bold yellow"),
    "FINISHING": ("⏳ Finishing", "bold yellow"),
}


@dataclass
class HistoryPoint:
    power: float
    energy: float
    time: datetime


class LiveDataHistory:
    """Last ``MAX_HISTORY_SIZE`` live data samples."""

    def __init__(self, size: int = MAX_HISTORY_SIZE) -> None:
        self.points: Deque[HistoryPoint] = deque(maxlen=size)

    def record(self, live_data: LiveData, now: Optional[datetime] = None) -> None:
        self.points.append(HistoryPoint(live_data.power, live_data.charged_energy, now or datetime.now()))

    def powers(self) -> List[float]:
        return [p.power for p in self.points]

    def span(self) -> timedelta:
        if len(self.points) < 2:
            return timedelta(0)
        return self.points[-1].time - self.points[0].time

    def __len__(self) -> int:
        return len(self.points)


def generate_sparkline(values: Sequence[float]) -> str:
    if not values:
        return ""
    low, high = min(values), max(values)
    value_range = (high - low) or 1
    top = len(SPARKLINE_CHARS) - 1
    chars = []
    for value in values:
        index = int((value - low) / value_range * top)
        chars.append(SPARKLINE_CHARS[max(0, min(index, top))])
    return "".join(chars)


def calculate_stats(values: Iterable[float]) -> Tuple[float, float, float]:
    values = list(values)
    if not values:
        return 0.0, 0.0, 0.0
    return min(values), max(values), sum(values) / len(values)


def format_duration(duration: timedelta) -> str:
    seconds = int(duration.total_seconds())
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    return f"{seconds // 3600}h{(seconds // 60) % 60}m"


def styled_status(status: str) -> Text:
    label, style = STATUS_STYLES.get(status, (status, ""))
    return Text(label, style=style)


def charging_stations_table(stations: Iterable[ChargingStation]) -> Table:
    table = Table(border_style="magenta", header_style="bold")
    table.add_column("ID")
    table.add_column("NAME")
    for header in ("STATUS", "CONNECTOR", "ONLINE"):
        table.add_column(header, justify="center")

    for station in stations:
        for box in station.charge_boxes:
            table.add_row(
                box.charge_box_id,
                box.charge_box_name,
                box.charging_process_status or "-",
                box.connector_status or "-",
                "✅" if box.online else "❌",
            )
    return table


def print_charging_stations(stations: List[ChargingStation], console: Optional[Console] = None) -> None:
    console = console or Console()
    if not stations:
        console.print("No charging stations found.")
        return
    console.print(charging_stations_table(stations))


def live_data_table(live_data: LiveData, now: Optional[datetime] = None) -> Table:
    table = Table(show_header=False, border_style="magenta")
    table.add_column(style="grey50")
    table.add_column(style="bold")
    table.add_row("Status", styled_status(live_data.status))
    table.add_row("Power", f"{live_data.power:.2f} kW")
    table.add_row("Energy", f"{live_data.charged_energy:.2f} kWh")
    table.add_row("Updated", (now or datetime.now()).strftime("%H:%M:%S"))
    return table


def print_live_data(
    live_data: LiveData,
    history: Optional[LiveDataHistory] = None,
    continuous: bool = False,
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    if continuous:
        console.clear()

    console.print(Text(" LIVE CHARGING DATA ", style="bold white on blue"))
    console.print(live_data_table(live_data))

    if continuous and history is not None and len(history) > 1:
        powers = history.powers()
        low, high, avg = calculate_stats(powers)
        console.print()
        console.print("Power Trend", style="grey50")
        console.print(generate_sparkline(powers), style="green")
        console.print(
            f"Min: {low:.1f} kW  Max: {high:.1f} kW  Avg: {avg:.1f} kW  ({format_duration(history.span())})",
            style="grey50",
        )

    if continuous:
        console.print("Press Ctrl+C to exit", style="italic grey50")
