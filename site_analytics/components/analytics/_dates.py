"""
Date range resolution for dashboard filters.

Key behaviors:
- 7d/30d/90d: [now - N days, now]
- all: [epoch, now]
- custom: explicit bounds, missing ones default to epoch/now
- Malformed explicit bounds degrade to epoch/now (logged, not rejected)
- Unknown tokens read as "all"; destructive callers check is_known_range_token first
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from .models import DateRange, EventFilter, RangeToken

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_RANGE_DAYS: dict[RangeToken, int] = {
    RangeToken.LAST_7_DAYS: 7,
    RangeToken.LAST_30_DAYS: 30,
    RangeToken.LAST_90_DAYS: 90,
}


def parse_range_token(token: RangeToken | str) -> RangeToken:
    """Parse a range token, falling back to ALL for unknown values."""
    if isinstance(token, RangeToken):
        return token
    try:
        return RangeToken(token.strip().lower())
    except (AttributeError, ValueError):
        logger.warning("Unknown date range token %r, using 'all'", token)
        return RangeToken.ALL


def is_known_range_token(token: RangeToken | str) -> bool:
    """True when a token names one of the RangeToken values."""
    if isinstance(token, RangeToken):
        return True
    try:
        RangeToken(token.strip().lower())
    except (AttributeError, ValueError):
        return False
    return True


def parse_bound(value: datetime | str | None) -> datetime | None:
    """
    Parse an explicit range bound.

    Accepts datetimes and ISO-8601 strings ("Z" suffix and date-only
    forms included). Naive values are taken as UTC. Returns None for
    missing or malformed input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            logger.warning("Malformed date bound %r ignored", value)
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def resolve_date_range(
    token: RangeToken | str,
    explicit_start: datetime | str | None = None,
    explicit_end: datetime | str | None = None,
    *,
    now: datetime,
) -> DateRange:
    """Turn a range token (plus optional explicit bounds) into instants."""
    parsed = parse_range_token(token)
    now = parse_bound(now) or now

    if parsed in _RANGE_DAYS:
        return DateRange(start=now - timedelta(days=_RANGE_DAYS[parsed]), end=now, token=parsed)

    if parsed == RangeToken.CUSTOM:
        start = parse_bound(explicit_start) or EPOCH
        end = parse_bound(explicit_end) or now
        return DateRange(start=start, end=end, token=parsed)

    return DateRange(start=EPOCH, end=now, token=RangeToken.ALL)


def build_filter(
    date_range: DateRange | None,
    page_type: str | None = None,
    page_id: str | None = None,
) -> EventFilter:
    """
    Build the store filter shared by queries and purges.

    page_type "all" (or empty) means no page type predicate. A None
    date_range produces a filter with no time bounds.
    """
    if page_type is not None and page_type.strip().lower() in ("", "all"):
        page_type = None
    return EventFilter(
        start_time=date_range.start if date_range else None,
        end_time=date_range.end if date_range else None,
        page_type=page_type,
        page_id=page_id or None,
    )
