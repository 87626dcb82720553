"""
SQLite adapters for the analytics event store and page name registry.

Tables (see migrations/):
- page_analytics: raw interaction events, event_data stored as JSON text
- services: service pages whose names label the dashboard rows

Timestamps are stored as UTC ISO-8601 strings with fixed microsecond
precision so that string comparison matches time order.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from site_analytics.components.analytics import (
    AnalyticsEvent,
    AtomicDeleteUnavailableError,
    EventFilter,
    EventStoreError,
    parse_event,
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_dt(dt: datetime) -> str:
    """UTC ISO string used for storage and range predicates."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def _where(event_filter: EventFilter) -> tuple[str, list[Any]]:
    """WHERE clause and params for a store filter."""
    clauses = ["1=1"]
    params: list[Any] = []

    if event_filter.start_time is not None:
        clauses.append("created_at >= ?")
        params.append(format_dt(event_filter.start_time))
    if event_filter.end_time is not None:
        clauses.append("created_at <= ?")
        params.append(format_dt(event_filter.end_time))
    if event_filter.page_type is not None:
        clauses.append("page_type = ?")
        params.append(event_filter.page_type)
    if event_filter.page_id is not None:
        clauses.append("page_id = ?")
        params.append(event_filter.page_id)

    return " AND ".join(clauses), params


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection
        if connection is not None:
            connection.row_factory = dict_factory

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Event Store
# -----------------------------------------------------------------------------


class SQLiteEventStore(SQLiteRepoBase):
    """SQLite implementation of EventStorePort."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        atomic_delete_enabled: bool = True,
    ):
        super().__init__(db_path, connection)
        self.atomic_delete_enabled = atomic_delete_enabled

    def insert_raw(self, row: Mapping[str, Any]) -> AnalyticsEvent:
        """Insert one raw event row (as written by the capture layer)."""
        event = parse_event({"id": str(uuid4()), **row})
        event_data = row.get("event_data") or {}
        if not isinstance(event_data, str):
            event_data = json.dumps(event_data)

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO page_analytics (
                    id, created_at, session_id, event_type, page_type,
                    page_id, page_slug, event_data, user_agent, referrer
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    format_dt(event.created_at),
                    event.session_id,
                    event.event_type,
                    event.page_type,
                    event.page_id,
                    event.page_slug,
                    event_data,
                    row.get("user_agent"),
                    row.get("referrer"),
                ),
            )
            if self._should_close():
                conn.commit()
        except sqlite3.Error as e:
            raise EventStoreError(f"Insert failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()
        return event

    def query(self, event_filter: EventFilter) -> list[AnalyticsEvent]:
        where, params = _where(event_filter)
        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"SELECT * FROM page_analytics WHERE {where} ORDER BY created_at DESC",
                params,
            ).fetchall()
            return [parse_event(row) for row in rows]
        except sqlite3.Error as e:
            raise EventStoreError(f"Query failed: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            # Rows come from an external writer; a corrupt one fails the query
            raise EventStoreError(f"Query failed: corrupt event row ({e})") from e
        finally:
            if self._should_close():
                conn.close()

    def bulk_delete_atomic(self, event_filter: EventFilter) -> int:
        """Delete all matching rows in one statement (one transaction)."""
        if not self.atomic_delete_enabled:
            raise AtomicDeleteUnavailableError("Atomic delete disabled for this store")

        where, params = _where(event_filter)
        conn = self._get_conn()
        try:
            cursor = conn.execute(f"DELETE FROM page_analytics WHERE {where}", params)
            deleted = cursor.rowcount
            if self._should_close():
                conn.commit()
            return deleted
        except sqlite3.Error as e:
            conn.rollback()
            raise EventStoreError(f"Atomic delete failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def list_ids(self, event_filter: EventFilter, limit: int) -> list[str]:
        where, params = _where(event_filter)
        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"SELECT id FROM page_analytics WHERE {where} ORDER BY created_at DESC LIMIT ?",
                [*params, limit],
            ).fetchall()
        except sqlite3.Error as e:
            raise EventStoreError(f"Listing ids failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()
        return [row["id"] for row in rows]

    def delete_batch(self, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                f"DELETE FROM page_analytics WHERE id IN ({placeholders})", list(ids)
            )
            deleted = cursor.rowcount
            if self._should_close():
                conn.commit()
            return deleted
        except sqlite3.Error as e:
            conn.rollback()
            raise EventStoreError(f"Batch delete failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def count(self) -> int:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT COUNT(*) AS n FROM page_analytics").fetchone()
        finally:
            if self._should_close():
                conn.close()
        return int(row["n"])


# -----------------------------------------------------------------------------
# Page Name Registry
# -----------------------------------------------------------------------------


class SQLitePageNameRegistry(SQLiteRepoBase):
    """Resolves page names from the active rows of the services table."""

    def add_service(self, slug: str, name: str, is_active: bool = True) -> str:
        service_id = str(uuid4())
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO services (id, slug, name, is_active, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (service_id, slug, name, 1 if is_active else 0, format_dt(datetime.now(UTC))),
            )
            if self._should_close():
                conn.commit()
        finally:
            if self._should_close():
                conn.close()
        return service_id

    def resolve_name(self, page_id: str | None, page_slug: str | None) -> str | None:
        if not page_id and not page_slug:
            return None
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT name FROM services
                WHERE is_active = 1 AND (id = ? OR slug = ?)
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (page_id, page_slug),
            ).fetchone()
        finally:
            if self._should_close():
                conn.close()
        if row is None:
            return None
        return str(row["name"])
