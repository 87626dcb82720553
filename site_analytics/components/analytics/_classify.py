"""
Event parsing and classification.

Key behaviors:
- Raw store rows become AnalyticsEvent with a typed payload
- Missing click element defaults to "unknown", missing scroll depth to 0
- Only clicks on allow-listed elements count as functional
- Page identity key: homepage sentinel, page id, page slug, unknown
"""

from __future__ import annotations

import json
from collections.abc import Collection, Mapping
from datetime import UTC, datetime
from typing import Any

from .models import (
    CLICK,
    HOMEPAGE,
    PAGE_VIEW,
    SCROLL,
    UNKNOWN_PAGE_KEY,
    AnalyticsEvent,
    ClickPayload,
    EventPayload,
    NoPayload,
    ScrollPayload,
)

# --- Parsing ---


def _as_text(value: Any) -> str | None:
    """Non-empty string or None."""
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _as_depth(value: Any) -> int:
    """Coerce a scroll depth to an integer percent in 0..100."""
    try:
        depth = int(float(value))
    except (TypeError, ValueError, OverflowError):
        # NaN raises ValueError, +/-inf raises OverflowError
        return 0
    return max(0, min(100, depth))


def _as_utc(value: datetime | str) -> datetime:
    """Parse a timestamp, treating naive values as UTC."""
    if isinstance(value, str):
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_payload(event_type: str, event_data: Mapping[str, Any] | str | None) -> EventPayload:
    """Build the typed payload for an event type from its loose data bag."""
    if isinstance(event_data, str):
        try:
            event_data = json.loads(event_data) if event_data else {}
        except json.JSONDecodeError:
            event_data = {}
    data: Mapping[str, Any] = event_data if isinstance(event_data, Mapping) else {}

    if event_type == CLICK:
        return ClickPayload(
            element=_as_text(data.get("element")) or "unknown",
            text=_as_text(data.get("text")),
            url=_as_text(data.get("url")),
        )
    if event_type == SCROLL:
        raw = data.get("scroll_depth", data.get("scrollDepth"))
        return ScrollPayload(depth=_as_depth(raw))
    return NoPayload()


def parse_event(row: Mapping[str, Any]) -> AnalyticsEvent:
    """
    Convert a raw store row into an AnalyticsEvent.

    Accepts the stored column names (created_at, session_id, event_type,
    page_type, page_id, page_slug, event_data).
    """
    event_type = str(row["event_type"])
    return AnalyticsEvent(
        id=str(row["id"]),
        created_at=_as_utc(row["created_at"]),
        session_id=str(row["session_id"]),
        event_type=event_type,
        page_type=str(row["page_type"]),
        payload=parse_payload(event_type, row.get("event_data")),
        page_id=_as_text(row.get("page_id")),
        page_slug=_as_text(row.get("page_slug")),
    )


# --- Classification ---


def is_page_view(event: AnalyticsEvent) -> bool:
    return event.event_type == PAGE_VIEW


def is_scroll(event: AnalyticsEvent) -> bool:
    return event.event_type == SCROLL


def is_functional_click(event: AnalyticsEvent, allow_list: Collection[str]) -> bool:
    """True for clicks whose element is in the allow-list."""
    if event.event_type != CLICK:
        return False
    payload = event.payload
    element = payload.element if isinstance(payload, ClickPayload) else "unknown"
    return element in allow_list


def scroll_depth(event: AnalyticsEvent) -> int:
    """Depth of a scroll sample; 0 for anything else."""
    payload = event.payload
    if isinstance(payload, ScrollPayload):
        return payload.depth
    return 0


def page_identity_key(event: AnalyticsEvent) -> str:
    """Grouping key attributing an event to one page."""
    if event.page_type == HOMEPAGE:
        return HOMEPAGE
    return event.page_id or event.page_slug or UNKNOWN_PAGE_KEY
