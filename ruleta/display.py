"""Rich terminal formatting helpers."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.errors import StyleSyntaxError
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TimeRemainingColumn
from rich.style import Style
from rich.table import Table
from rich.text import Text

from ruleta.models import SpinOutcome, SpinRecord, Wheel, WheelConfiguration
from ruleta.wheel import slice_size

console = Console()


def _swatch(color: str) -> Text:
    """A colored block, or a plain marker for tokens Rich can't parse."""
    try:
        return Text("██", style=Style.parse(color))
    except StyleSyntaxError:
        return Text("??", style="dim")


def print_wheel(config: WheelConfiguration, title: str = "Wheel") -> None:
    """Print the slices of a wheel with their colors and angular spans."""
    size = slice_size(config.option_count)
    table = Table(show_header=True, box=None, pad_edge=False)
    table.add_column("#", width=3, justify="right")
    table.add_column("", width=2)
    table.add_column("option")
    table.add_column("slice", style="dim")

    for index, option in enumerate(config.options):
        start = index * size
        table.add_row(
            str(index),
            _swatch(config.color_for(index)),
            Text(option),
            f"{start:.0f}°–{start + size:.0f}°",
        )

    console.print(Panel(table, title=title, border_style="blue"))


def print_wheel_list(wheels: list[Wheel]) -> None:
    """Print saved wheels in a panel."""
    if not wheels:
        console.print(Panel("No saved wheels.", title="Wheels", border_style="dim"))
        return

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("id", width=5)
    table.add_column("name", style="bold")
    table.add_column("options")

    for wheel in wheels:
        preview = ", ".join(wheel.options[:5])
        if len(wheel.options) > 5:
            preview += f", … (+{len(wheel.options) - 5})"
        table.add_row(f"#{wheel.id}", Text(wheel.name), Text(preview))

    console.print(Panel(table, title="Wheels", border_style="blue"))


def print_history(spins: list[SpinRecord], wheel_names: Optional[dict[int, str]] = None) -> None:
    """Print past spin results, most recent first."""
    if not spins:
        console.print(Panel("No spins yet.", title="History", border_style="dim"))
        return

    names = wheel_names or {}
    table = Table(show_header=True, box=None, pad_edge=False)
    table.add_column("when", style="dim")
    table.add_column("wheel")
    table.add_column("winner", style="bold green")

    for spin in spins:
        if spin.wheel_id is None:
            wheel = "(ad hoc)"
        else:
            wheel = names.get(spin.wheel_id, f"#{spin.wheel_id}")
        table.add_row(spin.spun_at.strftime("%Y-%m-%d %H:%M"), Text(wheel), Text(spin.label))

    console.print(Panel(table, title="History", border_style="blue"))


def print_stats(counts: dict[str, int], title: str = "Winners") -> None:
    """Print how often each option has won."""
    if not counts:
        console.print(Panel("No spins yet.", title=title, border_style="dim"))
        return

    total = sum(counts.values())
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("label")
    table.add_column("wins", justify="right")
    table.add_column("share", justify="right", style="dim")
    for label, wins in counts.items():
        table.add_row(Text(label), str(wins), f"{wins / total * 100:.0f}%")

    console.print(Panel(table, title=title, border_style="green"))


def print_winner(outcome: SpinOutcome) -> None:
    """Announce the winning option in a styled panel."""
    text = Text(outcome.winning_label, justify="center", style="bold")
    console.print(Panel(text, title="Winner", border_style="magenta", padding=(1, 4)))


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[blue]{message}[/blue]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]{message}[/yellow]")


def create_spin_progress() -> Progress:
    """Create a Rich progress bar that tracks the wheel's rotation."""
    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(bar_width=40),
        TextColumn("{task.completed:>6.0f}°"),
        TimeRemainingColumn(),
        console=console,
    )
