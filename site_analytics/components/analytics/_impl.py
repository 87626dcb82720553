"""
In-memory adapters for the analytics ports (testing/dev).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ._classify import parse_event
from .models import (
    AnalyticsEvent,
    AtomicDeleteUnavailableError,
    EventFilter,
)


def matches(event: AnalyticsEvent, event_filter: EventFilter) -> bool:
    """Whether an event satisfies a store filter (bounds inclusive)."""
    if event_filter.start_time is not None and event.created_at < event_filter.start_time:
        return False
    if event_filter.end_time is not None and event.created_at > event_filter.end_time:
        return False
    if event_filter.page_type is not None and event.page_type != event_filter.page_type:
        return False
    if event_filter.page_id is not None and event.page_id != event_filter.page_id:
        return False
    return True


class InMemoryEventStore:
    """In-memory event store for testing/dev."""

    def __init__(
        self,
        events: Iterable[AnalyticsEvent] = (),
        atomic_delete_enabled: bool = True,
    ) -> None:
        self._events: dict[str, AnalyticsEvent] = {e.id: e for e in events}
        self._atomic_delete_enabled = atomic_delete_enabled

    def add(self, event: AnalyticsEvent) -> None:
        """Append an event."""
        self._events[event.id] = event

    def add_raw(self, row: Mapping[str, Any]) -> AnalyticsEvent:
        """Append an event given as a raw store row."""
        event = parse_event(row)
        self.add(event)
        return event

    def query(self, event_filter: EventFilter) -> list[AnalyticsEvent]:
        found = [e for e in self._events.values() if matches(e, event_filter)]
        return sorted(found, key=lambda e: e.created_at, reverse=True)

    def bulk_delete_atomic(self, event_filter: EventFilter) -> int:
        if not self._atomic_delete_enabled:
            raise AtomicDeleteUnavailableError("Atomic delete is not available")
        doomed = [e.id for e in self._events.values() if matches(e, event_filter)]
        for event_id in doomed:
            del self._events[event_id]
        return len(doomed)

    def list_ids(self, event_filter: EventFilter, limit: int) -> list[str]:
        return [e.id for e in self.query(event_filter)][:limit]

    def delete_batch(self, ids: Sequence[str]) -> int:
        deleted = 0
        for event_id in ids:
            if self._events.pop(event_id, None) is not None:
                deleted += 1
        return deleted

    def count(self) -> int:
        return len(self._events)

    def clear(self) -> None:
        """Clear all events."""
        self._events.clear()


class InMemoryPageNameRegistry:
    """Page names keyed by page id and by slug."""

    def __init__(self, pages: Iterable[Mapping[str, Any]] = ()) -> None:
        self._by_id: dict[str, str] = {}
        self._by_slug: dict[str, str] = {}
        for page in pages:
            self.register(page["name"], page_id=page.get("id"), page_slug=page.get("slug"))

    def register(
        self,
        name: str,
        page_id: str | None = None,
        page_slug: str | None = None,
    ) -> None:
        if page_id:
            self._by_id[str(page_id)] = name
        if page_slug:
            self._by_slug[page_slug] = name

    def resolve_name(self, page_id: str | None, page_slug: str | None) -> str | None:
        if page_id and page_id in self._by_id:
            return self._by_id[page_id]
        if page_slug and page_slug in self._by_slug:
            return self._by_slug[page_slug]
        return None
