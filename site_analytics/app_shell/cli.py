import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from site_analytics.adapters.clock import SystemClock
from site_analytics.adapters.sqlite.migrator import SQLiteMigrator
from site_analytics.adapters.sqlite.repos import SQLiteEventStore, SQLitePageNameRegistry
from site_analytics.components.analytics import (
    PurgeInput,
    PurgeStatus,
    QueryDashboardInput,
    run_purge,
    run_query_dashboard,
)
from site_analytics.rules.loader import load_rules
from site_analytics.rules.models import Rules

logger = logging.getLogger("cli")

DB_PATH = "data/analytics.db"
RULES_PATH = "rules.yaml"
MIGRATIONS_DIR = "migrations"


def get_rules(path: str) -> Rules:
    if not Path(path).exists():
        logger.error("Rules file %s not found.", path)
        sys.exit(1)
    return load_rules(Path(path))


def handle_migrate(args: argparse.Namespace) -> int:
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(args.db, args.migrations).run_migrations()
    print(f"Applied {len(applied)} migration(s).")
    return 0


def handle_report(args: argparse.Namespace, rules: Rules) -> int:
    output = run_query_dashboard(
        QueryDashboardInput(
            range_token=args.range or rules.analytics.default_range,
            explicit_start=args.start,
            explicit_end=args.end,
            page_type=args.page_type,
            page_id=args.page_id,
        ),
        store=SQLiteEventStore(args.db),
        time_port=SystemClock(),
        registry=SQLitePageNameRegistry(args.db),
        rules=rules,
    )
    if not output.success:
        logger.error("Report failed: %s", output.errors[0].message)
        return 1

    summary = dataclasses.asdict(output.summary) if output.summary else {}
    print(json.dumps({"status": output.status, "events": output.event_count, **summary}, indent=2))
    return 0


def handle_purge(args: argparse.Namespace, rules: Rules) -> int:
    output = run_purge(
        PurgeInput(
            range_token=args.range,
            explicit_start=args.start,
            explicit_end=args.end,
            page_type=args.page_type,
            page_id=args.page_id,
        ),
        store=SQLiteEventStore(args.db, atomic_delete_enabled=rules.retention.atomic_enabled),
        time_port=SystemClock(),
        rules=rules,
    )
    if output.status == PurgeStatus.FAILED:
        logger.error("Purge failed: %s", output.errors[0].message)
        return 1

    print(f"Purge {output.status.value}: {output.deleted_count} event(s) deleted.")
    for error in output.errors:
        print(f"  batch error: {error.message}")
    return 0


def _add_filter_args(parser: argparse.ArgumentParser, default_range: str | None) -> None:
    parser.add_argument("--range", default=default_range, help="7d, 30d, 90d, all, custom")
    parser.add_argument("--start", help="Custom range start (ISO format)")
    parser.add_argument("--end", help="Custom range end (ISO format)")
    parser.add_argument("--page-type", help="Page type filter ('all' for none)")
    parser.add_argument("--page-id", help="Page ID filter")


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Site Analytics CLI")
    parser.add_argument("--db", default=DB_PATH, help="SQLite database path")
    parser.add_argument("--rules", default=RULES_PATH, help="Rules file path")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply database migrations")
    migrate_parser.add_argument("--migrations", default=MIGRATIONS_DIR)

    # report
    report_parser = subparsers.add_parser("report", help="Print the dashboard summary")
    _add_filter_args(report_parser, default_range=None)

    # purge
    purge_parser = subparsers.add_parser("purge", help="Delete events matching a filter")
    _add_filter_args(purge_parser, default_range="all")

    args = parser.parse_args(argv)

    if args.command == "migrate":
        return handle_migrate(args)

    rules = get_rules(args.rules)
    if args.command == "report":
        return handle_report(args, rules)
    elif args.command == "purge":
        return handle_purge(args, rules)
    return 2


if __name__ == "__main__":
    sys.exit(main())
