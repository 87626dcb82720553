"""
Analytics component input/output models.

Events are parsed once into a typed payload variant keyed by event type;
every produced view is a frozen record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal

# --- Errors ---


@dataclass(frozen=True)
class AnalyticsError:
    """Error record carried in component outputs."""

    code: str
    message: str
    field_name: str | None = None


class EventStoreError(Exception):
    """Raised by event store adapters when a query or delete fails."""


class AtomicDeleteUnavailableError(EventStoreError):
    """The store has no server-side bulk delete (or it is switched off)."""


class PurgeError(Exception):
    """Fatal purge failure: id enumeration failed or every batch failed."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


# --- Enums ---


EventType = Literal["page_view", "click", "scroll"]

PAGE_VIEW = "page_view"
CLICK = "click"
SCROLL = "scroll"

HOMEPAGE = "homepage"
UNKNOWN_PAGE_KEY = "unknown"


class RangeToken(str, Enum):
    """Named date ranges offered by the dashboard."""

    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    ALL = "all"
    CUSTOM = "custom"


class PurgeStatus(str, Enum):
    """Outcome of a purge request."""

    NOTHING_FOUND = "nothing_found"
    DELETED = "deleted"
    PARTIAL = "partial"
    FAILED = "failed"


class PurgeStrategy(str, Enum):
    """Which deletion tier produced the outcome."""

    ATOMIC = "atomic"
    BATCHED = "batched"


# --- Event payloads ---


@dataclass(frozen=True)
class ClickPayload:
    """Payload of a click event."""

    element: str = "unknown"
    text: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class ScrollPayload:
    """Payload of a scroll sample (depth in percent, 0-100)."""

    depth: int = 0


@dataclass(frozen=True)
class NoPayload:
    """Payload for page views and event types no reducer inspects."""


EventPayload = ClickPayload | ScrollPayload | NoPayload


# --- Analytics Event Model ---


@dataclass(frozen=True)
class AnalyticsEvent:
    """One observed page interaction."""

    id: str
    created_at: datetime
    session_id: str
    event_type: str
    page_type: str
    payload: EventPayload = field(default_factory=NoPayload)
    page_id: str | None = None
    page_slug: str | None = None


# --- Filters ---


@dataclass(frozen=True)
class DateRange:
    """Concrete [start, end] instants resolved from a range token."""

    start: datetime
    end: datetime
    token: RangeToken = RangeToken.CUSTOM


@dataclass(frozen=True)
class EventFilter:
    """Filter understood by every event store adapter."""

    start_time: datetime | None = None
    end_time: datetime | None = None
    page_type: str | None = None
    page_id: str | None = None


# --- Produced views ---


@dataclass(frozen=True)
class Summary:
    """Global summary over the filtered slice."""

    total_views: int
    total_clicks: int
    unique_visitors: int
    average_scroll_depth: int
    bounce_rate: float
    click_rate: float


@dataclass(frozen=True)
class DailyStats:
    """Per-day counts (UTC calendar day)."""

    date: str
    views: int
    clicks: int
    visitors: int
    avg_scroll: int


@dataclass(frozen=True)
class PagePerformance:
    """Per-page metrics grouped by page identity key."""

    page_key: str
    page_id: str | None
    page_slug: str | None
    page_name: str
    page_type: str
    views: int
    clicks: int
    visitors: int
    avg_scroll: int
    bounce_rate: float


@dataclass(frozen=True)
class SessionRow:
    """One reconstructed session."""

    session_id: str
    page_name: str
    page_type: str
    start_time: datetime
    page_views: int
    clicks: int
    scroll_depth: int
    # Not derivable from the captured events
    duration: int = 0


@dataclass(frozen=True)
class ClickDetail:
    """One ranked clicked element."""

    element: str
    text: str
    page_name: str
    page_type: str
    count: int


@dataclass(frozen=True)
class DashboardViews:
    """The five aggregate views built from one event slice."""

    summary: Summary
    daily_stats: tuple[DailyStats, ...]
    pages: tuple[PagePerformance, ...]
    sessions: tuple[SessionRow, ...]
    click_details: tuple[ClickDetail, ...]


EMPTY_SUMMARY = Summary(
    total_views=0,
    total_clicks=0,
    unique_visitors=0,
    average_scroll_depth=0,
    bounce_rate=0.0,
    click_rate=0.0,
)


# --- Purge outcome ---


@dataclass(frozen=True)
class PurgeOutcome:
    """Result of one purge run by the retention manager."""

    status: PurgeStatus
    strategy: PurgeStrategy
    deleted_count: int
    batches_attempted: int = 0
    batches_failed: int = 0
    errors: tuple[str, ...] = ()

    @property
    def has_errors(self) -> bool:
        return self.batches_failed > 0


# --- Input Models ---


@dataclass(frozen=True)
class QueryDashboardInput:
    """Input for building the dashboard views."""

    range_token: RangeToken | str = RangeToken.LAST_30_DAYS
    explicit_start: datetime | str | None = None
    explicit_end: datetime | str | None = None
    page_type: str | None = None
    page_id: str | None = None


@dataclass(frozen=True)
class PurgeInput:
    """Input for deleting the events matching a dashboard filter."""

    range_token: RangeToken | str = RangeToken.ALL
    explicit_start: datetime | str | None = None
    explicit_end: datetime | str | None = None
    page_type: str | None = None
    page_id: str | None = None


# --- Output Models ---


DashboardStatus = Literal["ok", "empty", "failed"]


@dataclass(frozen=True)
class DashboardOutput:
    """Output of a dashboard query."""

    status: DashboardStatus
    date_range: DateRange | None
    summary: Summary | None = None
    daily_stats: tuple[DailyStats, ...] = ()
    pages: tuple[PagePerformance, ...] = ()
    sessions: tuple[SessionRow, ...] = ()
    click_details: tuple[ClickDetail, ...] = ()
    event_count: int = 0
    errors: list[AnalyticsError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PurgeOutput:
    """Output of a purge request."""

    status: PurgeStatus
    deleted_count: int
    strategy: PurgeStrategy | None = None
    batches_attempted: int = 0
    batches_failed: int = 0
    errors: list[AnalyticsError] = field(default_factory=list)
    success: bool = True
