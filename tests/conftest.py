import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest

from site_analytics.adapters.clock import FrozenClock
from site_analytics.adapters.sqlite.migrator import SQLiteMigrator
from site_analytics.components.analytics import (
    AnalyticsEvent,
    ClickPayload,
    InMemoryEventStore,
    NoPayload,
    ScrollPayload,
)
from site_analytics.rules.loader import load_rules
from site_analytics.rules.models import Rules

ROOT = Path(__file__).resolve().parent.parent

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def rules() -> Rules:
    """Load REAL rules from project root."""
    return load_rules(ROOT / "rules.yaml")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def make_event() -> Callable[..., AnalyticsEvent]:
    """
    Event factory.

    make_event("click", session="a", element="whatsapp-button")
    make_event("scroll", session="a", depth=60, minutes_ago=5)
    """

    def _make(
        event_type: str = "page_view",
        *,
        session: str = "s1",
        page_type: str = "homepage",
        page_id: str | None = None,
        page_slug: str | None = None,
        minutes_ago: float = 0,
        at: datetime | None = None,
        element: str | None = None,
        text: str | None = None,
        url: str | None = None,
        depth: int | None = None,
    ) -> AnalyticsEvent:
        payload: Any = NoPayload()
        if event_type == "click":
            payload = ClickPayload(element=element or "unknown", text=text, url=url)
        elif event_type == "scroll":
            payload = ScrollPayload(depth=depth or 0)
        return AnalyticsEvent(
            id=str(uuid4()),
            created_at=at or NOW - timedelta(minutes=minutes_ago),
            session_id=session,
            event_type=event_type,
            page_type=page_type,
            payload=payload,
            page_id=page_id,
            page_slug=page_slug,
        )

    return _make


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Temporary SQLite database with all migrations applied."""
    path = os.path.join(str(tmp_path), "analytics.db")
    SQLiteMigrator(path, str(ROOT / "migrations")).run_migrations()
    return path
