"""SQLite database layer. All public functions return Pydantic models."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from ruleta.config import get_db_path as _config_get_db_path
from ruleta.models import SpinRecord, SpinRecordCreate, Wheel, WheelCreate

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS wheels (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT    NOT NULL UNIQUE,
    options     TEXT    NOT NULL,
    colors      TEXT    NOT NULL DEFAULT '[]',
    created_at  TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS spins (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    wheel_id         INTEGER REFERENCES wheels(id) ON DELETE SET NULL,
    label            TEXT    NOT NULL,
    winning_index    INTEGER NOT NULL,
    rotation_degrees REAL    NOT NULL,
    spun_at          TEXT    NOT NULL
);
"""


def _get_db_path() -> Path:
    """Return the database file path from config (or default)."""
    return _config_get_db_path()


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Open a connection and ensure the schema exists."""
    path = db_path or _get_db_path()
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.executescript(_SCHEMA)
    return conn


# ---------------------------------------------------------------------------
# Wheels
# ---------------------------------------------------------------------------


def _row_to_wheel(row: sqlite3.Row) -> Wheel:
    """Convert a database row to a Wheel model."""
    return Wheel(
        id=row["id"],
        name=row["name"],
        options=json.loads(row["options"]),
        colors=json.loads(row["colors"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def add_wheel(conn: sqlite3.Connection, wheel_in: WheelCreate) -> Wheel:
    """Save a new wheel. Raises ValueError if the name is taken."""
    now = datetime.now().isoformat()
    try:
        cur = conn.execute(
            "INSERT INTO wheels (name, options, colors, created_at) VALUES (?, ?, ?, ?)",
            (wheel_in.name, json.dumps(wheel_in.options), json.dumps(wheel_in.colors), now),
        )
    except sqlite3.IntegrityError as err:
        raise ValueError(f"A wheel named '{wheel_in.name}' already exists") from err
    conn.commit()
    log.debug("Saved wheel %r with %d options", wheel_in.name, len(wheel_in.options))
    row = conn.execute("SELECT * FROM wheels WHERE id = ?", (cur.lastrowid,)).fetchone()
    return _row_to_wheel(row)


def get_wheel(conn: sqlite3.Connection, wheel_id: int) -> Optional[Wheel]:
    """Fetch a single wheel by ID."""
    row = conn.execute("SELECT * FROM wheels WHERE id = ?", (wheel_id,)).fetchone()
    return _row_to_wheel(row) if row else None


def get_wheel_by_name(conn: sqlite3.Connection, name: str) -> Optional[Wheel]:
    """Fetch a single wheel by name (case-insensitive)."""
    row = conn.execute(
        "SELECT * FROM wheels WHERE name = ? COLLATE NOCASE", (name.strip(),)
    ).fetchone()
    return _row_to_wheel(row) if row else None


def resolve_wheel(conn: sqlite3.Connection, ref: str) -> Optional[Wheel]:
    """Look a wheel up by numeric ID or by name."""
    if ref.isdigit():
        wheel = get_wheel(conn, int(ref))
        if wheel is not None:
            return wheel
    return get_wheel_by_name(conn, ref)


def list_wheels(conn: sqlite3.Connection) -> list[Wheel]:
    """List all saved wheels, oldest first."""
    rows = conn.execute("SELECT * FROM wheels ORDER BY created_at ASC, id ASC").fetchall()
    return [_row_to_wheel(r) for r in rows]


def rename_wheel(conn: sqlite3.Connection, wheel_id: int, name: str) -> Optional[Wheel]:
    """Rename a wheel. Raises ValueError if the new name is taken."""
    try:
        conn.execute("UPDATE wheels SET name = ? WHERE id = ?", (name.strip(), wheel_id))
    except sqlite3.IntegrityError as err:
        raise ValueError(f"A wheel named '{name.strip()}' already exists") from err
    conn.commit()
    return get_wheel(conn, wheel_id)


def delete_wheel(conn: sqlite3.Connection, wheel_id: int) -> bool:
    """Delete a wheel. Its spin history is kept, detached from the wheel."""
    cur = conn.execute("DELETE FROM wheels WHERE id = ?", (wheel_id,))
    conn.commit()
    return cur.rowcount > 0


# ---------------------------------------------------------------------------
# Spin history
# ---------------------------------------------------------------------------


def _row_to_spin(row: sqlite3.Row) -> SpinRecord:
    """Convert a database row to a SpinRecord model."""
    return SpinRecord(
        id=row["id"],
        wheel_id=row["wheel_id"],
        label=row["label"],
        winning_index=row["winning_index"],
        rotation_degrees=row["rotation_degrees"],
        spun_at=datetime.fromisoformat(row["spun_at"]),
    )


def log_spin(conn: sqlite3.Connection, spin_in: SpinRecordCreate) -> SpinRecord:
    """Record a completed spin."""
    now = datetime.now().isoformat()
    cur = conn.execute(
        "INSERT INTO spins (wheel_id, label, winning_index, rotation_degrees, spun_at) "
        "VALUES (?, ?, ?, ?, ?)",
        (
            spin_in.wheel_id,
            spin_in.label,
            spin_in.winning_index,
            spin_in.rotation_degrees,
            now,
        ),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM spins WHERE id = ?", (cur.lastrowid,)).fetchone()
    return _row_to_spin(row)


def list_spins(
    conn: sqlite3.Connection,
    wheel_id: Optional[int] = None,
    limit: int = 20,
) -> list[SpinRecord]:
    """List past spins, most recent first. At least one row is requested."""
    query = "SELECT * FROM spins"
    params: list[int] = []
    if wheel_id is not None:
        query += " WHERE wheel_id = ?"
        params.append(wheel_id)
    query += " ORDER BY spun_at DESC, id DESC LIMIT ?"
    params.append(max(limit, 1))
    rows = conn.execute(query, params).fetchall()
    return [_row_to_spin(r) for r in rows]


def winner_counts(conn: sqlite3.Connection, wheel_id: int) -> dict[str, int]:
    """How often each label has won on a wheel, most frequent first."""
    rows = conn.execute(
        "SELECT label, COUNT(*) AS wins FROM spins WHERE wheel_id = ? "
        "GROUP BY label ORDER BY wins DESC, label ASC",
        (wheel_id,),
    ).fetchall()
    return {r["label"]: r["wins"] for r in rows}
