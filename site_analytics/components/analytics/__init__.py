"""
Analytics component - Dashboard aggregation and data retention.
"""

from ._aggregate import (
    DEFAULT_FUNCTIONAL_CLICK_ELEMENTS,
    AggregationConfig,
    aggregate_click_details,
    build_daily_stats,
    build_dashboard,
    build_page_performance,
    calculate_summary,
    click_dedup_key,
    reconstruct_sessions,
    resolve_page_name,
    round_half_up,
    title_case_slug,
)
from ._classify import (
    is_functional_click,
    is_page_view,
    is_scroll,
    page_identity_key,
    parse_event,
    parse_payload,
    scroll_depth,
)
from ._dates import (
    EPOCH,
    build_filter,
    is_known_range_token,
    parse_bound,
    parse_range_token,
    resolve_date_range,
)
from ._impl import InMemoryEventStore, InMemoryPageNameRegistry, matches
from ._retention import (
    BatchResult,
    RetentionConfig,
    RetentionManager,
    create_retention_manager,
    partition,
)
from .component import run, run_purge, run_query_dashboard
from .models import (
    AnalyticsError,
    AnalyticsEvent,
    AtomicDeleteUnavailableError,
    ClickDetail,
    ClickPayload,
    DailyStats,
    DashboardOutput,
    DashboardViews,
    DateRange,
    EventPayload,
    EventFilter,
    EventStoreError,
    NoPayload,
    PagePerformance,
    PurgeError,
    PurgeInput,
    PurgeOutcome,
    PurgeOutput,
    PurgeStatus,
    PurgeStrategy,
    QueryDashboardInput,
    RangeToken,
    ScrollPayload,
    SessionRow,
    Summary,
)
from .ports import EventStorePort, PageNameRegistryPort, TimePort

__all__ = [
    # Component functions
    "run",
    "run_query_dashboard",
    "run_purge",
    # Reducers
    "calculate_summary",
    "build_daily_stats",
    "build_page_performance",
    "reconstruct_sessions",
    "aggregate_click_details",
    "build_dashboard",
    # Pure helpers
    "click_dedup_key",
    "resolve_page_name",
    "round_half_up",
    "title_case_slug",
    "is_functional_click",
    "is_known_range_token",
    "is_page_view",
    "is_scroll",
    "page_identity_key",
    "parse_event",
    "parse_payload",
    "scroll_depth",
    "EPOCH",
    "build_filter",
    "parse_bound",
    "parse_range_token",
    "resolve_date_range",
    "matches",
    "partition",
    # Services / adapters
    "RetentionManager",
    "RetentionConfig",
    "BatchResult",
    "create_retention_manager",
    "AggregationConfig",
    "DEFAULT_FUNCTIONAL_CLICK_ELEMENTS",
    "InMemoryEventStore",
    "InMemoryPageNameRegistry",
    # Models
    "AnalyticsError",
    "AnalyticsEvent",
    "AtomicDeleteUnavailableError",
    "ClickDetail",
    "ClickPayload",
    "DailyStats",
    "DashboardOutput",
    "DashboardViews",
    "DateRange",
    "EventPayload",
    "EventFilter",
    "EventStoreError",
    "NoPayload",
    "PagePerformance",
    "PurgeError",
    "PurgeInput",
    "PurgeOutcome",
    "PurgeOutput",
    "PurgeStatus",
    "PurgeStrategy",
    "QueryDashboardInput",
    "RangeToken",
    "ScrollPayload",
    "SessionRow",
    "Summary",
    # Ports
    "EventStorePort",
    "PageNameRegistryPort",
    "TimePort",
]
