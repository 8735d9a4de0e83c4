#!/usr/bin/env python3
"""
FarmOps CLI - compliance, snapshots and the daily summary from a terminal.

    python -m cli.main compliance --week 2026-01-26 --farm Musha
    python -m cli.main snapshot save --week 2026-01-19 --by ops-lead
    python -m cli.main daily-summary --date 2026-01-29
"""

import argparse
import json
import logging
import sys

from farmops import config, farm_calendar
from farmops.activity_matcher import ActivityMatcher, configured_alias_table
from farmops.compliance import ComplianceQuery, ComplianceService
from farmops.db import Database
from farmops.errors import ComplianceError
from farmops.observability import configure_logging
from farmops.repository import FarmRepository
from farmops.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

STATUS_MARKS = {"done": "✓", "missed": "✗", "pending": "•", "upcoming": "·"}


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [max(len(str(row[i])) for row in [headers] + rows) for i in range(len(headers))]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths))
    print(header_str)
    print("─" * len(header_str))
    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths)))


def _service(args) -> ComplianceService:
    db = Database(args.db) if args.db else Database()
    return ComplianceService(
        FarmRepository(db),
        SnapshotStore(db),
        ActivityMatcher(configured_alias_table()),
    )


def _print_json(data):
    print(json.dumps(data, indent=2, default=str))


def cmd_init_db(args):
    """Create or converge the schema."""
    db = Database(args.db) if args.db else Database()
    results = db.ensure_schema()
    print(f"Schema v{results['schema_version']} at {db.db_path}")
    if results["tables_created"]:
        print(f"  tables created: {', '.join(results['tables_created'])}")
    if results["columns_added"]:
        print(f"  columns added: {', '.join(results['columns_added'])}")
    for err in results["errors"]:
        print(f"  error: {err}")


def cmd_compliance(args):
    """Show a week's compliance."""
    query = ComplianceQuery.build(args.week, args.phases, farm=args.farm, force_live=args.live)
    report = _service(args).weekly_compliance(query)
    if args.json:
        _print_json(report.to_dict())
        return

    source = report.source if report.snapshot_at is None else f"{report.source} ({report.snapshot_at})"
    print_header(f"Compliance — week of {query.week_start} [{source}]")
    if not report.entries:
        print("Nothing scheduled.")
        return

    rows = [
        [
            e.phase_id,
            e.type.value,
            e.task,
            farm_calendar.DAY_NAMES[e.day_of_week][:3],
            f"{STATUS_MARKS[e.status.value]} {e.status.value}",
        ]
        for e in report.entries
    ]
    print_table(["Phase", "Type", "Task", "Day", "Status"], rows)

    s = report.summary
    rate = "n/a" if s.compliance_rate is None else f"{s.compliance_rate}%"
    print(f"\n{s.total} tasks: {s.done} done, {s.missed} missed, {s.pending} pending, {s.upcoming} upcoming")
    print(f"Compliance: {rate}")


def cmd_snapshot(args):
    """Snapshot status / save / delete."""
    service = _service(args)
    week = farm_calendar.parse_week_start(args.week)

    if args.action == "status":
        info = service.snapshot_status(week)
        if args.json:
            _print_json(info.to_dict() if info else {"exists": False})
        elif info is None:
            print(f"No snapshot for week of {week}")
        else:
            rate = info.summary.compliance_rate
            print(f"Snapshot for week of {week}: saved {info.snapshot_at} by {info.saved_by_name}")
            print(f"  {info.summary.total} entries, compliance {'n/a' if rate is None else f'{rate}%'}")

    elif args.action == "save":
        result = service.save_snapshot(week, args.by, args.name)
        if args.json:
            _print_json(result.to_dict())
        else:
            print(f"Saved {result.count} entries for week of {week} at {result.snapshot_at}")

    elif args.action == "delete":
        deleted = service.delete_snapshot(week)
        if args.json:
            _print_json({"success": True, "deleted": deleted})
        elif deleted:
            print(f"Deleted snapshot for week of {week} ({deleted} entries)")
        else:
            print(f"No snapshot for week of {week}")


def cmd_daily_summary(args):
    """Today's (or --date's) labor and nutrition plan."""
    target = farm_calendar.parse_calendar_date(args.date) if args.date else None
    summary = _service(args).daily_summary(target)
    if args.json:
        _print_json(summary.to_dict())
        return

    print_header(f"{summary.day_name} {summary.date} — week {summary.week_number}")
    if not summary.farms:
        print("Nothing scheduled today.")
        return

    for farm in summary.farms:
        print(f"\n{farm.farm} ({farm.phase_count} phases, {farm.total_acreage:g} ha)")
        if farm.labor_tasks:
            print_table(
                ["Phase", "Task", "Mandays", "Cost"],
                [[t.phase, t.task, f"{t.mandays:.1f}", f"{t.total_cost:,.0f}"] for t in farm.labor_tasks],
            )
        if farm.nutri_tasks:
            print_table(
                ["Phase", "Product", "Qty", "Cost"],
                [[t.phase, t.product, f"{t.quantity:.2f}", f"{t.total_cost:,.0f}"] for t in farm.nutri_tasks],
            )

    totals = summary.totals()
    print(
        f"\nTotal: {totals['laborMandays']:.1f} mandays, "
        f"labor {totals['laborCost']:,.0f}, nutrition {totals['nutriCost']:,.0f}"
    )


def cmd_serve(args):
    """Run the API server."""
    import uvicorn

    from api.server import create_app

    db = Database(args.db) if args.db else None
    uvicorn.run(create_app(db), host=args.host, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FarmOps — scheduled farm tasks vs. activity logs")
    parser.add_argument("--db", help="SQLite path (default: FARMOPS_DB or ~/.farmops/data/farmops.db)")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("init-db", help="Create or upgrade the database schema")

    p = subparsers.add_parser("compliance", help="Weekly compliance")
    p.add_argument("--week", "-w", required=True, help="Week start (any date in the week)")
    p.add_argument("--phases", "-p", help="Comma-separated farm phase ids")
    p.add_argument("--farm", "-f", help="Farm name (all its sown phases)")
    p.add_argument("--live", action="store_true", help="Ignore any saved snapshot")

    p = subparsers.add_parser("snapshot", help="Compliance snapshots")
    p.add_argument("action", choices=["status", "save", "delete"])
    p.add_argument("--week", "-w", required=True, help="Week start")
    p.add_argument("--by", default="cli", help="Saved-by identifier (save only)")
    p.add_argument("--name", help="Saved-by display name (save only)")

    p = subparsers.add_parser("daily-summary", help="Per-farm plan for one day")
    p.add_argument("--date", "-d", help="YYYY-MM-DD (default: today, farm time)")

    p = subparsers.add_parser("serve", help="Run the API server")
    p.add_argument("--host", default=config.API_HOST)
    p.add_argument("--port", type=int, default=config.API_PORT)

    return parser


COMMANDS = {
    "init-db": cmd_init_db,
    "compliance": cmd_compliance,
    "snapshot": cmd_snapshot,
    "daily-summary": cmd_daily_summary,
    "serve": cmd_serve,
}


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else config.LOG_LEVEL, config.LOG_JSON)

    if not args.command:
        parser.print_help()
        return 1

    try:
        COMMANDS[args.command](args)
    except ComplianceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
