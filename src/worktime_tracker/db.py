"""SQLite persistence for the tracker's named state collections."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from .models import ActivityEvent, WorkspaceStat


STATS_COLLECTION = "stats"
CLEANED_LOGS_COLLECTION = "cleanedLogs"


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS collections (
            name TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
        );
        """
    )


def load_collection(conn: sqlite3.Connection, name: str) -> list[Any]:
    """Return the stored collection, or an empty list if it was never saved."""
    row = conn.execute(
        "SELECT payload FROM collections WHERE name = ?", (name,)
    ).fetchone()
    if row is None:
        return []
    return json.loads(row["payload"])


def save_collection(conn: sqlite3.Connection, name: str, items: list[Any]) -> None:
    conn.execute(
        """
        INSERT INTO collections (name, payload) VALUES (?, ?)
        ON CONFLICT(name) DO UPDATE SET
            payload = excluded.payload,
            updated_at = strftime('%Y-%m-%d %H:%M:%f', 'now')
        """,
        (name, json.dumps(items)),
    )


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


class StateStore:
    """Loads and saves the stat tree and the cleaned log as one unit."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def load(self) -> tuple[list[WorkspaceStat], list[ActivityEvent]]:
        with database_connection(self.db_path) as conn:
            stats = load_collection(conn, STATS_COLLECTION)
            cleaned = load_collection(conn, CLEANED_LOGS_COLLECTION)
        return (
            [WorkspaceStat.from_dict(item) for item in stats],
            [ActivityEvent.from_dict(item) for item in cleaned],
        )

    def load_stats(self) -> list[WorkspaceStat]:
        with database_connection(self.db_path) as conn:
            stats = load_collection(conn, STATS_COLLECTION)
        return [WorkspaceStat.from_dict(item) for item in stats]

    def cleaned_log_length(self) -> int:
        with database_connection(self.db_path) as conn:
            return len(load_collection(conn, CLEANED_LOGS_COLLECTION))

    def load_cleaned_logs(self, limit: Optional[int] = None) -> list[ActivityEvent]:
        with database_connection(self.db_path) as conn:
            cleaned = load_collection(conn, CLEANED_LOGS_COLLECTION)
        if limit is not None:
            cleaned = cleaned[-limit:] if limit > 0 else []
        return [ActivityEvent.from_dict(item) for item in cleaned]

    def save(
        self, stats: list[WorkspaceStat], cleaned_logs: list[ActivityEvent]
    ) -> None:
        """Write both collections in a single transaction."""
        with database_connection(self.db_path) as conn:
            with transaction(conn):
                save_collection(
                    conn, STATS_COLLECTION, [stat.to_dict() for stat in stats]
                )
                save_collection(
                    conn,
                    CLEANED_LOGS_COLLECTION,
                    [event.to_dict() for event in cleaned_logs],
                )
