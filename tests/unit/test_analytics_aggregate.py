"""
Tests for the analytics reducers.

Covers the summary, daily stats, page performance, session and click
detail views, and the cross-reducer consistency between them.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from site_analytics.components.analytics import (
    AggregationConfig,
    InMemoryPageNameRegistry,
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

# --- Fixtures ---


@pytest.fixture
def registry() -> InMemoryPageNameRegistry:
    return InMemoryPageNameRegistry(
        [
            {"id": "svc-1", "slug": "limpeza-de-pele", "name": "Limpeza de Pele"},
            {"id": "svc-2", "slug": "micropigmentacao", "name": "Micropigmentação"},
        ]
    )


@pytest.fixture
def mixed_events(make_event):
    """Two days, three sessions, homepage and two service pages."""
    day1 = datetime(2024, 6, 14, 10, 0, tzinfo=UTC)
    day2 = datetime(2024, 6, 15, 9, 0, tzinfo=UTC)
    events = [
        # Session a: homepage, deep scroll, functional click
        make_event("page_view", session="a", at=day1),
        make_event("scroll", session="a", depth=30, at=day1 + timedelta(seconds=10)),
        make_event("scroll", session="a", depth=80, at=day1 + timedelta(seconds=20)),
        make_event("click", session="a", element="whatsapp-button", at=day1 + timedelta(seconds=30)),
        # Session b: service page by id, shallow scroll, noise click
        make_event("page_view", session="b", page_type="service", page_id="svc-1",
                   page_slug="limpeza-de-pele", at=day2),
        make_event("scroll", session="b", page_type="service", page_id="svc-1",
                   page_slug="limpeza-de-pele", depth=20, at=day2 + timedelta(seconds=5)),
        make_event("click", session="b", page_type="service", page_id="svc-1",
                   page_slug="limpeza-de-pele", element="nav-logo", at=day2 + timedelta(seconds=8)),
        # Session c: two page views of an unregistered slug
        make_event("page_view", session="c", page_type="service",
                   page_slug="design-de-sobrancelhas", at=day2 + timedelta(hours=1)),
        make_event("page_view", session="c", page_type="service",
                   page_slug="design-de-sobrancelhas", at=day2 + timedelta(hours=2)),
        make_event("click", session="c", page_type="service", page_slug="design-de-sobrancelhas",
                   element="service-link", text="Design Ver detalhes",
                   at=day2 + timedelta(hours=2, seconds=3)),
    ]
    # Store order: newest first
    return sorted(events, key=lambda e: e.created_at, reverse=True)


# --- Helpers ---


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "digits", "expected"),
        [(2.5, 0, 3.0), (3.5, 0, 4.0), (66.66666, 1, 66.7), (12.25, 1, 12.3), (0.0, 1, 0.0)],
    )
    def test_round_half_up(self, value: float, digits: int, expected: float) -> None:
        assert round_half_up(value, digits) == expected

    def test_title_case_slug(self) -> None:
        assert title_case_slug("design-de-sobrancelhas") == "Design De Sobrancelhas"

    def test_resolve_page_name_homepage(self, registry) -> None:
        assert resolve_page_name("homepage", "svc-1", None, registry, "x") == "Homepage"

    def test_resolve_page_name_from_registry_by_id(self, registry) -> None:
        assert resolve_page_name("service", "svc-1", None, registry, "x") == "Limpeza de Pele"

    def test_resolve_page_name_from_registry_by_slug(self, registry) -> None:
        name = resolve_page_name("service", None, "micropigmentacao", registry, "x")
        assert name == "Micropigmentação"

    def test_resolve_page_name_slug_fallback(self, registry) -> None:
        name = resolve_page_name("service", "nope", "pacote-noivas", registry, "x")
        assert name == "Pacote Noivas"

    def test_resolve_page_name_label_fallback(self) -> None:
        assert resolve_page_name("service", None, None, None, "Unknown page") == "Unknown page"


# --- Summary ---


class TestSummary:
    def test_noise_click_excluded(self, make_event) -> None:
        """page_view + whatsapp click + random-div click -> 1 view, 1 click."""
        events = [
            make_event("page_view", session="A"),
            make_event("click", session="A", element="whatsapp-button"),
            make_event("click", session="A", element="random-div"),
        ]
        summary = calculate_summary(events)
        assert summary.total_views == 1
        assert summary.total_clicks == 1
        assert summary.click_rate == 100.0

    def test_shallow_and_scrollless_sessions_both_bounce(self, make_event) -> None:
        events = [
            make_event("page_view", session="A"),
            make_event("scroll", session="A", depth=10),
            make_event("page_view", session="B"),
        ]
        assert calculate_summary(events).bounce_rate == 100.0

    def test_deep_scroll_never_bounces(self, make_event) -> None:
        """Any sample above 25 wins over earlier shallow samples."""
        events = [make_event("scroll", session="A", depth=5) for _ in range(10)]
        events.append(make_event("scroll", session="A", depth=26))
        assert calculate_summary(events).bounce_rate == 0.0

    def test_depth_at_threshold_bounces(self, make_event) -> None:
        events = [make_event("scroll", session="A", depth=25)]
        assert calculate_summary(events).bounce_rate == 100.0

    def test_bounce_counts_sessions_without_page_views(self, make_event) -> None:
        events = [
            make_event("page_view", session="A"),
            make_event("scroll", session="A", depth=90),
            make_event("click", session="B", element="email-button"),
        ]
        summary = calculate_summary(events)
        assert summary.unique_visitors == 1
        assert summary.bounce_rate == 50.0

    def test_unique_visitors_only_from_page_views(self, make_event) -> None:
        events = [
            make_event("page_view", session="A"),
            make_event("page_view", session="A"),
            make_event("scroll", session="B", depth=50),
            make_event("click", session="C", element="email-button"),
        ]
        assert calculate_summary(events).unique_visitors == 1

    def test_average_scroll_depth_rounds_half_up(self, make_event) -> None:
        events = [
            make_event("scroll", session="A", depth=50),
            make_event("scroll", session="A", depth=51),
        ]
        assert calculate_summary(events).average_scroll_depth == 51

    def test_rates_round_to_one_decimal(self, make_event) -> None:
        events = [make_event("page_view", session=f"s{i}") for i in range(3)]
        events.append(make_event("click", session="s0", element="email-button"))
        events.append(make_event("scroll", session="s0", depth=50))
        summary = calculate_summary(events)
        assert summary.click_rate == 33.3
        assert summary.bounce_rate == 66.7

    def test_empty_input(self) -> None:
        summary = calculate_summary([])
        assert summary.total_views == 0
        assert summary.bounce_rate == 0.0
        assert summary.click_rate == 0.0
        assert summary.average_scroll_depth == 0

    def test_total_clicks_bounded_by_click_events(self, mixed_events) -> None:
        clicks = [e for e in mixed_events if e.event_type == "click"]
        summary = calculate_summary(mixed_events)
        assert summary.total_clicks <= len(clicks)
        assert summary.total_clicks == 2

    def test_custom_allow_list(self, make_event) -> None:
        config = AggregationConfig(functional_click_elements=frozenset({"random-div"}))
        events = [
            make_event("click", element="random-div"),
            make_event("click", element="whatsapp-button"),
        ]
        assert calculate_summary(events, config).total_clicks == 1


# --- Daily Stats ---


class TestDailyStats:
    def test_grouped_by_utc_day_ascending(self, mixed_events) -> None:
        days = build_daily_stats(mixed_events)
        assert [d.date for d in days] == ["2024-06-14", "2024-06-15"]

    def test_day_values(self, mixed_events) -> None:
        day1, day2 = build_daily_stats(mixed_events)
        assert (day1.views, day1.clicks, day1.visitors, day1.avg_scroll) == (1, 1, 1, 55)
        assert (day2.views, day2.clicks, day2.visitors, day2.avg_scroll) == (3, 1, 2, 20)

    def test_sums_match_summary(self, mixed_events) -> None:
        days = build_daily_stats(mixed_events)
        summary = calculate_summary(mixed_events)
        assert sum(d.views for d in days) == summary.total_views
        assert sum(d.clicks for d in days) == summary.total_clicks

    def test_non_utc_timestamps_use_utc_date(self, make_event) -> None:
        local = datetime(2024, 6, 15, 22, 0, tzinfo=timezone(timedelta(hours=-3)))
        days = build_daily_stats([make_event("page_view", at=local)])
        assert days[0].date == "2024-06-16"

    def test_day_with_only_noise_clicks_is_present(self, make_event) -> None:
        days = build_daily_stats([make_event("click", element="random-div")])
        assert len(days) == 1
        assert days[0].clicks == 0


# --- Page Performance ---


class TestPagePerformance:
    def test_rows_sorted_by_views(self, mixed_events, registry) -> None:
        rows = build_page_performance(mixed_events, registry=registry)
        assert [r.views for r in rows] == [2, 1, 1]
        assert rows[0].page_key == "design-de-sobrancelhas"

    def test_names_resolved(self, mixed_events, registry) -> None:
        rows = {r.page_key: r for r in build_page_performance(mixed_events, registry=registry)}
        assert rows["homepage"].page_name == "Homepage"
        assert rows["svc-1"].page_name == "Limpeza de Pele"
        assert rows["design-de-sobrancelhas"].page_name == "Design De Sobrancelhas"

    def test_page_view_partition(self, mixed_events) -> None:
        rows = build_page_performance(mixed_events)
        total = sum(1 for e in mixed_events if e.event_type == "page_view")
        assert sum(r.views for r in rows) == total

    def test_group_metrics(self, mixed_events) -> None:
        rows = {r.page_key: r for r in build_page_performance(mixed_events)}

        home = rows["homepage"]
        assert (home.clicks, home.visitors, home.avg_scroll, home.bounce_rate) == (1, 1, 55, 0.0)

        svc = rows["svc-1"]
        assert (svc.clicks, svc.visitors, svc.avg_scroll, svc.bounce_rate) == (0, 1, 20, 100.0)

        design = rows["design-de-sobrancelhas"]
        assert (design.clicks, design.visitors, design.bounce_rate) == (1, 1, 100.0)

    def test_page_bounce_uses_sessions_of_that_page(self, make_event) -> None:
        """Deep scroll on another page does not rescue a bounce here."""
        events = [
            make_event("page_view", session="A", page_type="service", page_id="p1"),
            make_event("page_view", session="A", page_type="homepage"),
            make_event("scroll", session="A", page_type="homepage", depth=90),
        ]
        rows = {r.page_key: r for r in build_page_performance(events)}
        assert rows["p1"].bounce_rate == 100.0
        assert rows["homepage"].bounce_rate == 0.0
        # Globally session A scrolled deep
        assert calculate_summary(events).bounce_rate == 0.0

    def test_unknown_page(self, make_event) -> None:
        rows = build_page_performance([make_event("page_view", page_type="service")])
        assert rows[0].page_key == "unknown"
        assert rows[0].page_name == "Unknown page"

    def test_sort_is_stable_for_ties(self, make_event) -> None:
        events = [
            make_event("page_view", page_type="service", page_id="first"),
            make_event("page_view", page_type="service", page_id="second"),
        ]
        assert [r.page_key for r in build_page_performance(events)] == ["first", "second"]


# --- Sessions ---


class TestSessions:
    def test_first_event_supplies_page_and_start(self, mixed_events, registry) -> None:
        sessions = {s.session_id: s for s in reconstruct_sessions(mixed_events, registry=registry)}
        c = sessions["c"]
        assert c.start_time == datetime(2024, 6, 15, 11, 0, 3, tzinfo=UTC)
        assert c.page_views == 2
        assert c.clicks == 1
        assert c.page_name == "Design De Sobrancelhas"

    def test_session_values(self, mixed_events, registry) -> None:
        sessions = {s.session_id: s for s in reconstruct_sessions(mixed_events, registry=registry)}
        a = sessions["a"]
        assert (a.page_views, a.clicks, a.scroll_depth, a.duration) == (1, 1, 80, 0)
        assert a.page_name == "Homepage"
        b = sessions["b"]
        assert (b.clicks, b.scroll_depth) == (0, 20)
        assert b.page_name == "Limpeza de Pele"

    def test_sorted_newest_first(self, mixed_events) -> None:
        sessions = reconstruct_sessions(mixed_events)
        assert [s.session_id for s in sessions] == ["c", "b", "a"]

    def test_truncated_to_limit(self, make_event) -> None:
        events = [make_event("page_view", session=f"s{i}", minutes_ago=i) for i in range(120)]
        sessions = reconstruct_sessions(events)
        assert len(sessions) == 100
        assert sessions[0].session_id == "s0"
        assert sessions[-1].session_id == "s99"

    def test_unmatched_service_label(self, make_event) -> None:
        sessions = reconstruct_sessions([make_event("page_view", page_type="service", page_id="x")])
        assert sessions[0].page_name == "Unknown service"


# --- Click Details ---


class TestClickDetails:
    def test_only_functional_clicks(self, mixed_events) -> None:
        details = aggregate_click_details(mixed_events)
        assert {d.element for d in details} == {"whatsapp-button", "service-link"}

    def test_suffix_stripped_for_service_links(self, mixed_events) -> None:
        details = {d.element: d for d in aggregate_click_details(mixed_events)}
        assert details["service-link"].text == "Design"

    def test_suffix_kept_for_other_elements(self, make_event) -> None:
        details = aggregate_click_details(
            [make_event("click", element="contact-button", text="Fale conosco Ver detalhes")]
        )
        assert details[0].text == "Fale conosco Ver detalhes"

    def test_missing_text_falls_back_to_element(self, make_event) -> None:
        details = aggregate_click_details([make_event("click", element="email-button")])
        assert details[0].text == "email-button"

    def test_identical_clicks_dedupe(self, make_event) -> None:
        events = [
            make_event("click", session=f"s{i}", element="whatsapp-button", url="https://wa.me/1")
            for i in range(3)
        ]
        events.append(make_event("click", element="whatsapp-button", url="https://wa.me/2"))
        details = aggregate_click_details(events)
        assert [d.count for d in details] == [3, 1]

    def test_idempotent(self, mixed_events) -> None:
        assert aggregate_click_details(mixed_events) == aggregate_click_details(mixed_events)

    def test_top_fifty(self, make_event) -> None:
        events = [make_event("click", element="email-button", text=f"t{i}") for i in range(60)]
        assert len(aggregate_click_details(events)) == 50

    def test_dedup_key_format(self, make_event) -> None:
        event = make_event("click", page_type="service", page_slug="limpeza",
                           element="service-link", text="Limpeza")
        assert click_dedup_key(event) == "service_limpeza_service-link_Limpeza"

    def test_dedup_key_prefers_url_and_homepage_sentinel(self, make_event) -> None:
        event = make_event("click", element="email-button", text="Mail", url="mailto:x")
        assert click_dedup_key(event) == "homepage_homepage_email-button_mailto:x"


# --- Dashboard ---


class TestBuildDashboard:
    def test_parallel_equals_sequential(self, mixed_events, registry) -> None:
        sequential = build_dashboard(mixed_events, registry=registry)
        parallel = build_dashboard(mixed_events, registry=registry, max_workers=5)
        assert sequential == parallel

    def test_views_populated(self, mixed_events) -> None:
        views = build_dashboard(mixed_events)
        assert views.summary.total_views == 4
        assert len(views.daily_stats) == 2
        assert len(views.pages) == 3
        assert len(views.sessions) == 3
        assert len(views.click_details) == 2
