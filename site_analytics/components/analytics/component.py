"""
Analytics component - Dashboard aggregation and data retention.

Builds the five dashboard views from the event store and deletes
filtered subsets of the event log.

Invariants:
- A failed query yields no partial views: every view is reset to empty
- Zero matching events is reported as "empty", distinct from failure
- Purge outcomes are one of nothing_found / deleted / partial / failed
"""

from __future__ import annotations

import logging

from site_analytics.rules.models import Rules

from ._aggregate import AggregationConfig, build_dashboard
from ._dates import build_filter, is_known_range_token, parse_range_token, resolve_date_range
from ._retention import RetentionConfig, RetentionManager
from .models import (
    EMPTY_SUMMARY,
    AnalyticsError,
    DashboardOutput,
    EventStoreError,
    PurgeError,
    PurgeInput,
    PurgeOutput,
    PurgeStatus,
    QueryDashboardInput,
    RangeToken,
)
from .ports import EventStorePort, PageNameRegistryPort, TimePort

logger = logging.getLogger(__name__)


def _build_aggregation_config(rules: Rules | None) -> AggregationConfig:
    """Build aggregation config from rules."""
    if rules is None:
        return AggregationConfig()

    analytics = rules.analytics
    return AggregationConfig(
        functional_click_elements=frozenset(analytics.functional_click_elements),
        bounce_max_scroll_depth=analytics.bounce_max_scroll_depth,
        session_limit=analytics.session_limit,
        click_detail_limit=analytics.click_detail_limit,
        service_link_elements=frozenset(analytics.service_link_elements),
        link_text_suffixes=tuple(analytics.link_text_suffixes),
        homepage_label=analytics.labels.homepage,
        unknown_page_label=analytics.labels.unknown_page,
        unknown_service_label=analytics.labels.unknown_service,
    )


def _build_retention_config(rules: Rules | None) -> RetentionConfig:
    """Build retention config from rules."""
    if rules is None:
        return RetentionConfig()

    retention = rules.retention
    return RetentionConfig(
        atomic_enabled=retention.atomic_enabled,
        batch_size=retention.batch_size,
        max_ids=retention.max_ids,
        max_workers=retention.max_workers,
    )


def _workers(rules: Rules | None) -> int:
    return rules.analytics.aggregation_workers if rules is not None else 1


# --- Component Entry Points ---


def run_query_dashboard(
    inp: QueryDashboardInput,
    *,
    store: EventStorePort,
    time_port: TimePort,
    registry: PageNameRegistryPort | None = None,
    rules: Rules | None = None,
) -> DashboardOutput:
    """
    Build the five dashboard views for a filter.

    Args:
        inp: Range token, explicit bounds and page filters.
        store: Event store port.
        time_port: Clock used to resolve relative ranges.
        registry: Optional page name registry.
        rules: Optional rules for configuration.

    Returns:
        DashboardOutput; status "failed" with empty views if the store fails.
    """
    date_range = resolve_date_range(
        inp.range_token,
        inp.explicit_start,
        inp.explicit_end,
        now=time_port.now_utc(),
    )
    event_filter = build_filter(date_range, inp.page_type, inp.page_id)

    try:
        events = store.query(event_filter)
    except EventStoreError as e:
        logger.exception("Analytics query failed")
        return DashboardOutput(
            status="failed",
            date_range=date_range,
            errors=[AnalyticsError(code="query_failed", message=str(e))],
            success=False,
        )

    if not events:
        return DashboardOutput(status="empty", date_range=date_range, summary=EMPTY_SUMMARY)

    views = build_dashboard(
        events,
        config=_build_aggregation_config(rules),
        registry=registry,
        max_workers=_workers(rules),
    )

    return DashboardOutput(
        status="ok",
        date_range=date_range,
        summary=views.summary,
        daily_stats=views.daily_stats,
        pages=views.pages,
        sessions=views.sessions,
        click_details=views.click_details,
        event_count=len(events),
    )


def run_purge(
    inp: PurgeInput,
    *,
    store: EventStorePort,
    time_port: TimePort,
    rules: Rules | None = None,
) -> PurgeOutput:
    """
    Delete every event matching a dashboard filter.

    The "all" range deletes regardless of timestamp. An unrecognised
    range token is rejected rather than widened to "all".

    Args:
        inp: Range token, explicit bounds and page filters.
        store: Event store port.
        time_port: Clock used to resolve relative ranges.
        rules: Optional rules for configuration.

    Returns:
        PurgeOutput with the outcome; status "failed" on a fatal purge error.
    """
    if not is_known_range_token(inp.range_token):
        logger.warning("Purge rejected: unknown range token %r", inp.range_token)
        return PurgeOutput(
            status=PurgeStatus.FAILED,
            deleted_count=0,
            errors=[
                AnalyticsError(
                    code="invalid_range",
                    message=f"Unknown range token: {inp.range_token!r}",
                )
            ],
            success=False,
        )

    token = parse_range_token(inp.range_token)
    date_range = None
    if token != RangeToken.ALL:
        date_range = resolve_date_range(
            token,
            inp.explicit_start,
            inp.explicit_end,
            now=time_port.now_utc(),
        )
    event_filter = build_filter(date_range, inp.page_type, inp.page_id)

    manager = RetentionManager(store, _build_retention_config(rules))
    try:
        outcome = manager.purge(event_filter)
    except PurgeError as e:
        logger.error("Analytics purge failed: %s", e)
        return PurgeOutput(
            status=PurgeStatus.FAILED,
            deleted_count=0,
            errors=[AnalyticsError(code="purge_failed", message=str(e.cause or e))],
            success=False,
        )

    errors = [AnalyticsError(code="batch_failed", message=msg) for msg in outcome.errors]
    return PurgeOutput(
        status=outcome.status,
        deleted_count=outcome.deleted_count,
        strategy=outcome.strategy,
        batches_attempted=outcome.batches_attempted,
        batches_failed=outcome.batches_failed,
        errors=errors,
        success=True,
    )


def run(
    inp: QueryDashboardInput | PurgeInput,
    *,
    store: EventStorePort,
    time_port: TimePort,
    registry: PageNameRegistryPort | None = None,
    rules: Rules | None = None,
) -> DashboardOutput | PurgeOutput:
    """
    Main entry point for the analytics component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, QueryDashboardInput):
        return run_query_dashboard(
            inp, store=store, time_port=time_port, registry=registry, rules=rules
        )
    elif isinstance(inp, PurgeInput):
        return run_purge(inp, store=store, time_port=time_port, rules=rules)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
