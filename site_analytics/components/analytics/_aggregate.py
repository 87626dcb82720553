"""
Analytics aggregation - five independent reducers over one event slice.

Key behaviors:
- Every reducer is a pure function of (events, config[, registry])
- Non-functional clicks are excluded from every click metric
- Global bounce rate and per-page bounce rate use different session sets
- build_dashboard runs the reducers sequentially or on a thread pool

Invariants:
- Summed daily views/clicks equal the summary totals
- Each page view is counted in exactly one page performance row
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC
from typing import Any

from ._classify import (
    is_functional_click,
    is_page_view,
    is_scroll,
    page_identity_key,
    scroll_depth,
)
from .models import (
    HOMEPAGE,
    AnalyticsEvent,
    ClickDetail,
    ClickPayload,
    DailyStats,
    DashboardViews,
    PagePerformance,
    SessionRow,
    Summary,
)
from .ports import PageNameRegistryPort

# --- Configuration ---

DEFAULT_FUNCTIONAL_CLICK_ELEMENTS: frozenset[str] = frozenset(
    {
        "service-link",
        "related-service-link",
        "comparison-cta",
        "contact-button",
        "cta-contact",
        "whatsapp-button",
        "instagram-button",
        "email-button",
    }
)


@dataclass(frozen=True)
class AggregationConfig:
    """Aggregation configuration from rules."""

    functional_click_elements: frozenset[str] = DEFAULT_FUNCTIONAL_CLICK_ELEMENTS

    # A session bounces when its max scroll depth is at or below this
    bounce_max_scroll_depth: int = 25

    session_limit: int = 100
    click_detail_limit: int = 50

    # Click text cleanup for service cards
    service_link_elements: frozenset[str] = field(
        default_factory=lambda: frozenset({"service-link", "related-service-link"})
    )
    link_text_suffixes: tuple[str, ...] = ("Ver detalhes", "See details")

    # Display labels
    homepage_label: str = "Homepage"
    unknown_page_label: str = "Unknown page"
    unknown_service_label: str = "Unknown service"


DEFAULT_CONFIG = AggregationConfig()


# --- Helpers ---


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a dashboard does (0.5 goes up), not banker's rounding."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _mean_rounded(values: Sequence[int]) -> int:
    if not values:
        return 0
    return int(round_half_up(sum(values) / len(values)))


def _percent(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round_half_up(part / whole * 100, 1)


def title_case_slug(slug: str) -> str:
    """'design-de-sobrancelhas' -> 'Design De Sobrancelhas'."""
    return " ".join(word[:1].upper() + word[1:] for word in slug.split("-"))


def resolve_page_name(
    page_type: str,
    page_id: str | None,
    page_slug: str | None,
    registry: PageNameRegistryPort | None,
    fallback: str,
    homepage_label: str = DEFAULT_CONFIG.homepage_label,
) -> str:
    """
    Display name for a page.

    Homepage label for the homepage; else the registry name; else the
    title-cased slug; else the fallback label.
    """
    if page_type == HOMEPAGE:
        return homepage_label
    if registry is not None and (page_id or page_slug):
        name = registry.resolve_name(page_id, page_slug)
        if name:
            return name
    if page_slug:
        return title_case_slug(page_slug)
    return fallback


# --- Summary ---


def _global_bounce_rate(events: Iterable[AnalyticsEvent], threshold: int) -> float:
    """
    Bounce rate over every distinct session in the slice.

    Sessions without scroll samples count as depth 0.
    """
    max_depth: dict[str, int] = {}
    for event in events:
        depth = scroll_depth(event) if is_scroll(event) else 0
        current = max_depth.get(event.session_id)
        if current is None or depth > current:
            max_depth[event.session_id] = depth

    bounced = sum(1 for depth in max_depth.values() if depth <= threshold)
    return _percent(bounced, len(max_depth))


def calculate_summary(
    events: Sequence[AnalyticsEvent],
    config: AggregationConfig = DEFAULT_CONFIG,
) -> Summary:
    """Global totals, visitors, scroll depth, bounce and click rates."""
    allow = config.functional_click_elements

    views = [e for e in events if is_page_view(e)]
    total_clicks = sum(1 for e in events if is_functional_click(e, allow))
    depths = [scroll_depth(e) for e in events if is_scroll(e)]

    total_views = len(views)
    return Summary(
        total_views=total_views,
        total_clicks=total_clicks,
        unique_visitors=len({e.session_id for e in views}),
        average_scroll_depth=_mean_rounded(depths),
        bounce_rate=_global_bounce_rate(events, config.bounce_max_scroll_depth),
        click_rate=_percent(total_clicks, total_views),
    )


# --- Daily Stats ---


@dataclass
class _DayAccumulator:
    views: int = 0
    clicks: int = 0
    visitors: set[str] = field(default_factory=set)
    scrolls: list[int] = field(default_factory=list)


def build_daily_stats(
    events: Sequence[AnalyticsEvent],
    config: AggregationConfig = DEFAULT_CONFIG,
) -> tuple[DailyStats, ...]:
    """Per-day views, clicks, visitors and mean scroll depth, oldest first."""
    allow = config.functional_click_elements
    days: dict[str, _DayAccumulator] = {}

    for event in events:
        date = event.created_at.astimezone(UTC).date().isoformat()
        day = days.setdefault(date, _DayAccumulator())

        if is_page_view(event):
            day.views += 1
            day.visitors.add(event.session_id)
        elif is_functional_click(event, allow):
            day.clicks += 1
        elif is_scroll(event):
            day.scrolls.append(scroll_depth(event))

    return tuple(
        DailyStats(
            date=date,
            views=day.views,
            clicks=day.clicks,
            visitors=len(day.visitors),
            avg_scroll=_mean_rounded(day.scrolls),
        )
        for date, day in sorted(days.items())
    )


# --- Page Performance ---


@dataclass
class _PageAccumulator:
    page_id: str | None
    page_slug: str | None
    page_type: str
    views: int = 0
    clicks: int = 0
    visitors: set[str] = field(default_factory=set)
    scrolls: list[int] = field(default_factory=list)
    # session_id -> max scroll depth seen on this page (0 if none)
    session_depth: dict[str, int] = field(default_factory=dict)


def _page_bounce_rate(session_depth: dict[str, int], threshold: int) -> float:
    """
    Bounce rate over the sessions that viewed or scrolled one page.

    Kept apart from the global computation: the session set differs.
    """
    bounced = sum(1 for depth in session_depth.values() if depth <= threshold)
    return _percent(bounced, len(session_depth))


def build_page_performance(
    events: Sequence[AnalyticsEvent],
    config: AggregationConfig = DEFAULT_CONFIG,
    registry: PageNameRegistryPort | None = None,
) -> tuple[PagePerformance, ...]:
    """Per-page metrics keyed by page identity, most viewed first."""
    allow = config.functional_click_elements
    pages: dict[str, _PageAccumulator] = {}

    for event in events:
        key = page_identity_key(event)
        page = pages.get(key)
        if page is None:
            page = _PageAccumulator(
                page_id=event.page_id,
                page_slug=event.page_slug,
                page_type=event.page_type,
            )
            pages[key] = page

        if is_page_view(event):
            page.views += 1
            page.visitors.add(event.session_id)
            page.session_depth.setdefault(event.session_id, 0)
        elif is_functional_click(event, allow):
            page.clicks += 1
        elif is_scroll(event):
            depth = scroll_depth(event)
            page.scrolls.append(depth)
            page.session_depth[event.session_id] = max(
                depth, page.session_depth.get(event.session_id, 0)
            )

    rows = [
        PagePerformance(
            page_key=key,
            page_id=page.page_id,
            page_slug=page.page_slug,
            page_name=resolve_page_name(
                page.page_type,
                page.page_id,
                page.page_slug,
                registry,
                fallback=config.unknown_page_label,
                homepage_label=config.homepage_label,
            ),
            page_type=page.page_type,
            views=page.views,
            clicks=page.clicks,
            visitors=len(page.visitors),
            avg_scroll=_mean_rounded(page.scrolls),
            bounce_rate=_page_bounce_rate(page.session_depth, config.bounce_max_scroll_depth),
        )
        for key, page in pages.items()
    ]
    rows.sort(key=lambda row: row.views, reverse=True)
    return tuple(rows)


# --- Sessions ---


@dataclass
class _SessionAccumulator:
    first: AnalyticsEvent
    page_views: int = 0
    clicks: int = 0
    max_scroll: int = 0


def reconstruct_sessions(
    events: Sequence[AnalyticsEvent],
    config: AggregationConfig = DEFAULT_CONFIG,
    registry: PageNameRegistryPort | None = None,
) -> tuple[SessionRow, ...]:
    """
    Rebuild sessions from the slice, most recent first.

    The first event met for a session (input is newest first) supplies
    its page and start time. Duration is not derivable and stays 0.
    """
    allow = config.functional_click_elements
    sessions: dict[str, _SessionAccumulator] = {}

    for event in events:
        session = sessions.get(event.session_id)
        if session is None:
            session = _SessionAccumulator(first=event)
            sessions[event.session_id] = session

        if is_page_view(event):
            session.page_views += 1
        elif is_functional_click(event, allow):
            session.clicks += 1
        elif is_scroll(event):
            session.max_scroll = max(session.max_scroll, scroll_depth(event))

    rows = []
    for session_id, session in sessions.items():
        first = session.first
        rows.append(
            SessionRow(
                session_id=session_id,
                page_name=resolve_page_name(
                    first.page_type,
                    first.page_id,
                    first.page_slug,
                    registry,
                    fallback=config.unknown_service_label,
                    homepage_label=config.homepage_label,
                ),
                page_type=first.page_type,
                start_time=first.created_at,
                page_views=session.page_views,
                clicks=session.clicks,
                scroll_depth=session.max_scroll,
            )
        )

    rows.sort(key=lambda row: row.start_time, reverse=True)
    return tuple(rows[: config.session_limit])


# --- Click Details ---


def _clean_click_text(element: str, text: str | None, config: AggregationConfig) -> str:
    """Display text for a click; service cards lose their boilerplate suffix."""
    cleaned = (text or "").strip()
    if element in config.service_link_elements:
        for suffix in config.link_text_suffixes:
            if cleaned.endswith(suffix):
                cleaned = cleaned[: -len(suffix)].rstrip()
                break
    return cleaned or element


def click_dedup_key(event: AnalyticsEvent) -> str:
    """pageType_pageKey_element_(url or text)."""
    payload = event.payload
    if not isinstance(payload, ClickPayload):
        payload = ClickPayload()
    page_key = event.page_id or event.page_slug or HOMEPAGE
    target = payload.url or payload.text or ""
    return f"{event.page_type}_{page_key}_{payload.element}_{target}"


@dataclass
class _ClickAccumulator:
    element: str
    text: str
    page_name: str
    page_type: str
    count: int = 0


def aggregate_click_details(
    events: Sequence[AnalyticsEvent],
    config: AggregationConfig = DEFAULT_CONFIG,
    registry: PageNameRegistryPort | None = None,
) -> tuple[ClickDetail, ...]:
    """Rank functional clicks by element/page/target, most clicked first."""
    allow = config.functional_click_elements
    clicks: dict[str, _ClickAccumulator] = {}

    for event in events:
        if not is_functional_click(event, allow):
            continue
        key = click_dedup_key(event)
        entry = clicks.get(key)
        if entry is None:
            payload = event.payload if isinstance(event.payload, ClickPayload) else ClickPayload()
            entry = _ClickAccumulator(
                element=payload.element,
                text=_clean_click_text(payload.element, payload.text, config),
                page_name=resolve_page_name(
                    event.page_type,
                    event.page_id,
                    event.page_slug,
                    registry,
                    fallback=config.unknown_page_label,
                    homepage_label=config.homepage_label,
                ),
                page_type=event.page_type,
            )
            clicks[key] = entry
        entry.count += 1

    ranked = sorted(clicks.values(), key=lambda c: c.count, reverse=True)
    return tuple(
        ClickDetail(
            element=c.element,
            text=c.text,
            page_name=c.page_name,
            page_type=c.page_type,
            count=c.count,
        )
        for c in ranked[: config.click_detail_limit]
    )


# --- Dashboard ---


def build_dashboard(
    events: Sequence[AnalyticsEvent],
    config: AggregationConfig = DEFAULT_CONFIG,
    registry: PageNameRegistryPort | None = None,
    max_workers: int = 1,
) -> DashboardViews:
    """
    Run all five reducers over one slice.

    With max_workers > 1 the reducers are fanned out on a thread pool;
    the result is identical to the sequential run.
    """
    frozen = tuple(events)
    tasks: dict[str, Callable[[], Any]] = {
        "summary": lambda: calculate_summary(frozen, config),
        "daily_stats": lambda: build_daily_stats(frozen, config),
        "pages": lambda: build_page_performance(frozen, config, registry),
        "sessions": lambda: reconstruct_sessions(frozen, config, registry),
        "click_details": lambda: aggregate_click_details(frozen, config, registry),
    }

    if max_workers <= 1:
        results = {name: task() for name, task in tasks.items()}
    else:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(tasks))) as pool:
            futures = {name: pool.submit(task) for name, task in tasks.items()}
            results = {name: future.result() for name, future in futures.items()}

    return DashboardViews(**results)

