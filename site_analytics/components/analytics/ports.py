"""
Analytics component port definitions.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from .models import AnalyticsEvent, EventFilter


class EventStorePort(Protocol):
    """Queryable, filterable store of analytics events.

    Adapters raise EventStoreError (or a subclass) on failure.
    """

    def query(self, event_filter: EventFilter) -> list[AnalyticsEvent]:
        """Return matching events ordered by created_at descending."""
        ...

    def bulk_delete_atomic(self, event_filter: EventFilter) -> int:
        """Delete every matching event as one unit. Returns rows deleted.

        Raises AtomicDeleteUnavailableError if the store has no such operation.
        """
        ...

    def list_ids(self, event_filter: EventFilter, limit: int) -> list[str]:
        """Return up to `limit` ids of matching events."""
        ...

    def delete_batch(self, ids: Sequence[str]) -> int:
        """Delete events by id. Returns rows deleted."""
        ...


class PageNameRegistryPort(Protocol):
    """Lookup of human-readable names for service/product pages."""

    def resolve_name(self, page_id: str | None, page_slug: str | None) -> str | None:
        """Return the page's display name, or None if unmatched."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
