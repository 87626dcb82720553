"""
Admin Analytics API.

Provides the dashboard views and bulk deletion of analytics events.

- GET /dashboard: five aggregate views for a date range and page filter
- DELETE /events: delete the events matching the same filter
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from site_analytics.api.deps import get_clock, get_event_store, get_page_registry, get_rules
from site_analytics.components.analytics import (
    EventStorePort,
    PageNameRegistryPort,
    PurgeInput,
    PurgeStatus,
    QueryDashboardInput,
    TimePort,
    run_purge,
    run_query_dashboard,
)
from site_analytics.rules.models import Rules

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Response Models ---


class SummaryResponse(BaseModel):
    """Global summary."""

    total_views: int
    total_clicks: int
    unique_visitors: int
    average_scroll_depth: int
    bounce_rate: float
    click_rate: float


class DailyStatsItem(BaseModel):
    """One day of the daily series."""

    date: str
    views: int
    clicks: int
    visitors: int
    avg_scroll: int


class PagePerformanceItem(BaseModel):
    """Per-page metrics."""

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


class SessionItem(BaseModel):
    """Reconstructed session."""

    session_id: str
    page_name: str
    page_type: str
    start_time: str
    page_views: int
    clicks: int
    scroll_depth: int
    duration: int


class ClickDetailItem(BaseModel):
    """Ranked clicked element."""

    element: str
    text: str
    page_name: str
    page_type: str
    count: int


class DashboardResponse(BaseModel):
    """Dashboard views response."""

    status: str
    range: str
    period_start: str
    period_end: str
    event_count: int
    summary: SummaryResponse
    daily_stats: list[DailyStatsItem]
    pages: list[PagePerformanceItem]
    sessions: list[SessionItem]
    click_details: list[ClickDetailItem]


class PurgeResponse(BaseModel):
    """Purge outcome response."""

    status: str
    deleted_count: int
    strategy: str | None
    batches_attempted: int
    batches_failed: int
    errors: list[str]


# --- Routes ---


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    range_token: str | None = Query(None, alias="range", description="7d, 30d, 90d, all, custom"),
    start: str | None = Query(None, description="Custom range start (ISO format)"),
    end: str | None = Query(None, description="Custom range end (ISO format)"),
    page_type: str | None = Query(None, description="Page type filter; 'all' for none"),
    page_id: str | None = Query(None, description="Page ID filter"),
    store: EventStorePort = Depends(get_event_store),
    registry: PageNameRegistryPort = Depends(get_page_registry),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> DashboardResponse:
    """
    Get the dashboard views.

    A failed store query returns 502 rather than empty views.
    """
    inp = QueryDashboardInput(
        range_token=range_token or rules.analytics.default_range,
        explicit_start=start,
        explicit_end=end,
        page_type=page_type,
        page_id=page_id,
    )
    output = run_query_dashboard(
        inp, store=store, time_port=clock, registry=registry, rules=rules
    )

    if not output.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=output.errors[0].message if output.errors else "Analytics query failed",
        )

    assert output.date_range is not None
    assert output.summary is not None
    s = output.summary

    return DashboardResponse(
        status=output.status,
        range=output.date_range.token.value,
        period_start=output.date_range.start.isoformat(),
        period_end=output.date_range.end.isoformat(),
        event_count=output.event_count,
        summary=SummaryResponse(
            total_views=s.total_views,
            total_clicks=s.total_clicks,
            unique_visitors=s.unique_visitors,
            average_scroll_depth=s.average_scroll_depth,
            bounce_rate=s.bounce_rate,
            click_rate=s.click_rate,
        ),
        daily_stats=[
            DailyStatsItem(
                date=d.date,
                views=d.views,
                clicks=d.clicks,
                visitors=d.visitors,
                avg_scroll=d.avg_scroll,
            )
            for d in output.daily_stats
        ],
        pages=[
            PagePerformanceItem(
                page_key=p.page_key,
                page_id=p.page_id,
                page_slug=p.page_slug,
                page_name=p.page_name,
                page_type=p.page_type,
                views=p.views,
                clicks=p.clicks,
                visitors=p.visitors,
                avg_scroll=p.avg_scroll,
                bounce_rate=p.bounce_rate,
            )
            for p in output.pages
        ],
        sessions=[
            SessionItem(
                session_id=row.session_id,
                page_name=row.page_name,
                page_type=row.page_type,
                start_time=row.start_time.isoformat(),
                page_views=row.page_views,
                clicks=row.clicks,
                scroll_depth=row.scroll_depth,
                duration=row.duration,
            )
            for row in output.sessions
        ],
        click_details=[
            ClickDetailItem(
                element=c.element,
                text=c.text,
                page_name=c.page_name,
                page_type=c.page_type,
                count=c.count,
            )
            for c in output.click_details
        ],
    )


@router.delete("/events", response_model=PurgeResponse)
def delete_events(
    range_token: str = Query("all", alias="range", description="7d, 30d, 90d, all, custom"),
    start: str | None = Query(None, description="Custom range start (ISO format)"),
    end: str | None = Query(None, description="Custom range end (ISO format)"),
    page_type: str | None = Query(None, description="Page type filter; 'all' for none"),
    page_id: str | None = Query(None, description="Page ID filter"),
    store: EventStorePort = Depends(get_event_store),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> PurgeResponse:
    """
    Delete the events matching the dashboard filter.

    Partial deletion is reported with status "partial". An unknown range
    returns 400 and a fatal purge returns 500.
    """
    inp = PurgeInput(
        range_token=range_token,
        explicit_start=start,
        explicit_end=end,
        page_type=page_type,
        page_id=page_id,
    )
    output = run_purge(inp, store=store, time_port=clock, rules=rules)

    if output.errors and output.errors[0].code == "invalid_range":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=output.errors[0].message,
        )

    if output.status == PurgeStatus.FAILED:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=output.errors[0].message if output.errors else "Analytics purge failed",
        )

    logger.info("Purge finished: %s (%d deleted)", output.status.value, output.deleted_count)
    return PurgeResponse(
        status=output.status.value,
        deleted_count=output.deleted_count,
        strategy=output.strategy.value if output.strategy else None,
        batches_attempted=output.batches_attempted,
        batches_failed=output.batches_failed,
        errors=[e.message for e in output.errors],
    )
