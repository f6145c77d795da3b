"""CLI entry point for Sales Sentinel.

Usage:
    # Start the API server
    python -m sales_sentinel serve
    SALES_SENTINEL_DEV_MODE=true python -m sales_sentinel serve

    # Evaluate alerts for a records file (JSON, branch CSV or weekly rows CSV)
    python -m sales_sentinel check --records data/branches.json
    python -m sales_sentinel check --records data/sales.csv --settings alerts.yaml
    python -m sales_sentinel check --records data/sales.csv --quarter Q1 --json

    # Compare two quarters, or two branches within a quarter
    python -m sales_sentinel compare --rows data/sales.csv --first Q1 --second Q2
    python -m sales_sentinel compare --rows data/sales.csv --kind branch \
        --first HN --second HCM --quarter Q1

    # Detailed report with recommendations and risks
    python -m sales_sentinel insights --rows data/sales.csv --quarter Q1 \
        --report-type financial

    # Print the default settings as YAML
    python -m sales_sentinel defaults
"""

from __future__ import annotations

import argparse
import json
import sys


def _cmd_serve(args: argparse.Namespace) -> None:
    """Start the API server."""
    import uvicorn

    from .api import create_app
    from .service_config import get_settings

    settings = get_settings()
    app = create_app(settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


def _cmd_check(args: argparse.Namespace) -> None:
    """Evaluate alerts for a records file and print them."""
    from pathlib import Path

    from pydantic import ValidationError

    from .aggregation import (
        filter_branch,
        filter_period,
        load_records,
        load_sales_rows,
        to_sales_records,
    )
    from .engine import evaluate
    from .report import generate_alert_report
    from .settings import load_settings

    source = Path(args.records)
    if not source.exists():
        print(f"Error: Path not found: {source}", file=sys.stderr)
        sys.exit(1)

    try:
        snapshot = load_settings(args.settings)
    except ValidationError as e:
        print(f"Error: Invalid settings file: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.quarter or args.week or args.branch:
            rows = load_sales_rows(source)
            if args.quarter:
                rows = filter_period(rows, "quarter", args.quarter, args.year)
            elif args.week:
                rows = filter_period(rows, "week", args.week, args.year)
            rows = filter_branch(rows, args.branch)
            records = to_sales_records(rows, period=args.quarter or args.week or "")
        else:
            records = load_records(source)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    alerts = evaluate(records, snapshot)

    if args.json:
        payload = [a.model_dump(mode="json") for a in alerts]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print(f"Records evaluated: {len(records)}")
        print()
        print(generate_alert_report(alerts, snapshot.user_preferences.language))


def _load_rows_or_exit(path: str):
    from .aggregation import load_sales_rows

    try:
        return load_sales_rows(path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _cmd_compare(args: argparse.Namespace) -> None:
    """Compare two periods, branches or channels."""
    from .comparison import compare_rows

    rows = _load_rows_or_exit(args.rows)
    try:
        result = compare_rows(
            rows,
            args.kind,
            args.first,
            args.second,
            first_time_type=args.first_type,
            second_time_type=args.second_type,
            quarter=args.quarter,
            year=args.year,
            language=args.language,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    print(f"Revenue growth: {result.revenue_growth:+.1f}%")
    print(f"ROI change:     {result.roi_change:+.2f}")
    print(f"Ad cost change: {result.ad_cost_change:+.1f}%")
    print()
    print(result.top_performer)
    for line in result.insights:
        print(f"• {line}")


def _cmd_insights(args: argparse.Namespace) -> None:
    """Print a detailed report with recommendations and risks."""
    from .insights import build_detailed_report

    rows = _load_rows_or_exit(args.rows)
    if args.week:
        time_type, time_value = "week", args.week
    elif args.month:
        time_type, time_value = "month", args.month
    elif args.quarter:
        time_type, time_value = "quarter", args.quarter
    else:
        time_type, time_value = None, None

    try:
        report = build_detailed_report(
            rows,
            args.report_type,
            time_type=time_type,
            time_value=time_value,
            branch=args.branch,
            year=args.year,
            language=args.language,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return

    insights = report.insights
    print(insights.overview)
    if insights.top_performer:
        print(insights.top_performer)
    print()
    for line in insights.recommendations:
        print(f"+ {line}")
    for line in insights.risks:
        print(f"! {line}")
    print()
    print(insights.trends)


def _cmd_defaults(args: argparse.Namespace) -> None:
    """Print the default settings snapshot."""
    from .settings import DEFAULT_SETTINGS, dump_settings

    print(dump_settings(DEFAULT_SETTINGS), end="")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="sales_sentinel",
        description="Sales Sentinel: branch sales alerts",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("serve", help="Start the API server")

    check_parser = subparsers.add_parser("check", help="Evaluate alerts for a file")
    check_parser.add_argument(
        "--records",
        required=True,
        help="JSON records, branch-level CSV, or weekly sales rows CSV",
    )
    check_parser.add_argument(
        "--settings",
        default=None,
        help="YAML settings snapshot (defaults when omitted)",
    )
    check_parser.add_argument("--quarter", default=None, help="Quarter label, e.g. Q1")
    check_parser.add_argument("--week", default=None, help="Week number")
    check_parser.add_argument("--year", default="2025", help="Year for period filters")
    check_parser.add_argument("--branch", default=None, help="Single branch filter")
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Print alerts as JSON instead of the text report",
    )

    compare_parser = subparsers.add_parser(
        "compare", help="Compare two periods, branches or channels"
    )
    compare_parser.add_argument("--rows", required=True, help="Weekly sales rows CSV")
    compare_parser.add_argument(
        "--kind",
        choices=["period", "branch", "channel"],
        default="period",
        help="What the two sides are",
    )
    compare_parser.add_argument("--first", required=True, help="Side 1 value or name")
    compare_parser.add_argument("--second", required=True, help="Side 2 value or name")
    compare_parser.add_argument(
        "--first-type", default="quarter", help="Time type of side 1 (period kind)"
    )
    compare_parser.add_argument(
        "--second-type", default="quarter", help="Time type of side 2 (period kind)"
    )
    compare_parser.add_argument(
        "--quarter", default=None, help="Quarter for branch/channel comparisons"
    )
    compare_parser.add_argument("--year", default="2025", help="Year for period filters")
    compare_parser.add_argument("--language", default="vi", help="vi or en")
    compare_parser.add_argument("--json", action="store_true", help="Print JSON")

    insights_parser = subparsers.add_parser(
        "insights", help="Detailed report with recommendations and risks"
    )
    insights_parser.add_argument("--rows", required=True, help="Weekly sales rows CSV")
    insights_parser.add_argument(
        "--report-type",
        choices=["financial", "operational", "comprehensive"],
        default="comprehensive",
    )
    insights_parser.add_argument("--quarter", default=None, help="Quarter label, e.g. Q1")
    insights_parser.add_argument("--month", default=None, help="Month number")
    insights_parser.add_argument("--week", default=None, help="Week number")
    insights_parser.add_argument("--year", default="2025", help="Year for period filters")
    insights_parser.add_argument("--branch", default=None, help="Single branch filter")
    insights_parser.add_argument("--language", default="vi", help="vi or en")
    insights_parser.add_argument("--json", action="store_true", help="Print JSON")

    subparsers.add_parser("defaults", help="Print default settings as YAML")

    args = parser.parse_args()

    commands = {
        "serve": _cmd_serve,
        "check": _cmd_check,
        "compare": _cmd_compare,
        "insights": _cmd_insights,
        "defaults": _cmd_defaults,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)
    handler(args)


if __name__ == "__main__":
    main()
