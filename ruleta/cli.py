"""Ruleta CLI -- spin a wheel when you can't decide."""

from __future__ import annotations

import logging
import random
from typing import Optional

import typer
from pydantic import ValidationError
from rich.logging import RichHandler
from rich.markup import escape

from ruleta import config as cfg
from ruleta import db, display, spinner
from ruleta.models import SpinRecordCreate, Wheel, WheelConfiguration, WheelCreate

app = typer.Typer(
    name="ruleta",
    help="A decision wheel: save your options, spin, and let the wheel pick.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=display.console, show_path=False)],
        force=True,
    )


def _conn() -> db.sqlite3.Connection:
    """Get a database connection (convenience wrapper)."""
    return db.get_connection()


def _require_wheel(conn: db.sqlite3.Connection, ref: str) -> Wheel:
    """Resolve a wheel by ID or name, exiting with an error if missing."""
    wheel = db.resolve_wheel(conn, ref)
    if wheel is None:
        display.print_warning(f"Wheel '{escape(ref)}' not found.")
        conn.close()
        raise typer.Exit(1)
    return wheel


# ---------------------------------------------------------------------------
# Spinning
# ---------------------------------------------------------------------------


@app.command()
def spin(
    options: Optional[list[str]] = typer.Argument(None, help="Options to choose from"),
    wheel_ref: Optional[str] = typer.Option(None, "--wheel", "-w", help="Saved wheel name or ID"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed the random source"),
    animate: bool = typer.Option(True, "--animate/--no-animate", help="Show the spin animation"),
    save: bool = typer.Option(True, "--save/--no-save", help="Record the result in history"),
) -> None:
    """Spin a wheel and pick one option."""
    conn = _conn()
    wheel_id: Optional[int] = None
    app_config = cfg.load_config()

    if wheel_ref is not None:
        wheel = _require_wheel(conn, wheel_ref)
        wheel_id = wheel.id
        wheel_config = wheel.to_configuration()
        title = escape(wheel.name)
    else:
        cleaned = [o.strip() for o in options or [] if o.strip()]
        if not cleaned:
            display.print_warning("Give some options to spin, or pick a saved wheel with --wheel.")
            conn.close()
            raise typer.Exit(1)
        wheel_config = WheelConfiguration(options=cleaned)
        title = "Wheel"

    if not wheel_config.colors:
        wheel_config.colors = list(app_config.palette)

    display.print_wheel(wheel_config, title=title)
    rng = random.Random(seed) if seed is not None else None
    outcome = spinner.run_spin(
        wheel_config,
        rng=rng,
        animate=animate,
        duration_ms=app_config.spin_duration_ms,
    )
    if outcome is None:
        conn.close()
        raise typer.Exit(130)

    display.print_winner(outcome)
    if save:
        db.log_spin(conn, SpinRecordCreate.from_outcome(outcome, wheel_id=wheel_id))
    conn.close()


# ---------------------------------------------------------------------------
# Saved wheels
# ---------------------------------------------------------------------------


@app.command()
def add(
    name: str = typer.Argument(..., help="Name for the wheel"),
    options: list[str] = typer.Argument(..., help="Options on the wheel"),
    colors: Optional[list[str]] = typer.Option(
        None, "--color", "-c", help="Slice color (repeatable, cycled)"
    ),
) -> None:
    """Save a wheel of options."""
    conn = _conn()
    try:
        wheel_in = WheelCreate(name=name, options=options, colors=colors or [])
        wheel = db.add_wheel(conn, wheel_in)
    except ValidationError as err:
        display.print_warning(escape(err.errors()[0]["msg"]))
        conn.close()
        raise typer.Exit(1)
    except ValueError as err:
        display.print_warning(escape(str(err)))
        conn.close()
        raise typer.Exit(1)
    display.print_success(f"Saved wheel #{wheel.id}: {escape(wheel.name)} ({len(wheel.options)} options)")
    conn.close()


@app.command(name="list")
def list_wheels() -> None:
    """List your saved wheels."""
    conn = _conn()
    display.print_wheel_list(db.list_wheels(conn))
    conn.close()


@app.command()
def show(ref: str = typer.Argument(..., help="Wheel name or ID")) -> None:
    """Show the slices of a saved wheel."""
    conn = _conn()
    wheel = _require_wheel(conn, ref)
    wheel_config = wheel.to_configuration()
    if not wheel_config.colors:
        wheel_config.colors = list(cfg.load_config().palette)
    display.print_wheel(wheel_config, title=f"#{wheel.id} {escape(wheel.name)}")
    conn.close()


@app.command()
def rename(
    ref: str = typer.Argument(..., help="Wheel name or ID"),
    new_name: str = typer.Argument(..., help="New name"),
) -> None:
    """Rename a saved wheel."""
    conn = _conn()
    wheel = _require_wheel(conn, ref)
    if not new_name.strip():
        display.print_warning("The new name must not be blank.")
        conn.close()
        raise typer.Exit(1)
    try:
        renamed = db.rename_wheel(conn, wheel.id, new_name)
    except ValueError as err:
        display.print_warning(escape(str(err)))
        conn.close()
        raise typer.Exit(1)
    display.print_success(f"Renamed #{wheel.id} to {escape(renamed.name)}")  # type: ignore[union-attr]
    conn.close()


@app.command()
def remove(ref: str = typer.Argument(..., help="Wheel name or ID")) -> None:
    """Delete a saved wheel. Its history is kept."""
    conn = _conn()
    wheel = _require_wheel(conn, ref)
    db.delete_wheel(conn, wheel.id)
    display.print_success(f"Removed wheel #{wheel.id}: {escape(wheel.name)}")
    conn.close()


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@app.command()
def history(
    wheel_ref: Optional[str] = typer.Option(None, "--wheel", "-w", help="Only this wheel"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Number of spins to show"),
) -> None:
    """See past winners."""
    conn = _conn()
    wheel_id = None
    if wheel_ref is not None:
        wheel_id = _require_wheel(conn, wheel_ref).id
    spins = db.list_spins(conn, wheel_id=wheel_id, limit=limit)
    names = {w.id: w.name for w in db.list_wheels(conn)}
    display.print_history(spins, wheel_names=names)
    conn.close()


@app.command()
def stats(ref: str = typer.Argument(..., help="Wheel name or ID")) -> None:
    """How often each option has won on a saved wheel."""
    conn = _conn()
    wheel = _require_wheel(conn, ref)
    display.print_stats(db.winner_counts(conn, wheel.id), title=f"Winners: {escape(wheel.name)}")
    conn.close()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@app.command()
def config(
    db_path: Optional[str] = typer.Option(
        None, "--db-path",
        help="Set a custom database file path",
    ),
    palette: Optional[list[str]] = typer.Option(
        None, "--palette",
        help="Default slice color (repeatable); pass '' to restore the built-in palette",
    ),
    reset: bool = typer.Option(False, "--reset", help="Reset to default local DB"),
    show: bool = typer.Option(False, "--show", help="Show current config"),
) -> None:
    """Configure where your data is stored and the default colors."""
    if db_path:
        result = cfg.set_db_path(db_path)
        display.print_success(f"Database path set to: {escape(str(result.db_path))}")
    elif palette:
        result = cfg.set_palette(palette)
        display.print_success(f"Palette set to: {escape(', '.join(result.palette))}")
    elif reset:
        cfg.reset_db_path()
        display.print_success("Reset to default local database.")
    elif show:
        current = cfg.load_config()
        resolved = cfg.get_db_path()
        if current.db_path:
            display.print_info(f"Database: {escape(current.db_path)}")
        else:
            display.print_info(f"Database: {escape(str(resolved))} (default)")
        display.print_info(f"Palette: {escape(', '.join(current.palette))}")
        display.print_info(f"Spin duration: {current.spin_duration_ms} ms")
    else:
        display.print_info("Use --db-path, --palette, --reset, or --show.")
