from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import sessionmaker

from uxmetrics.application.assessments import initialize_assessment_types
from uxmetrics.application.reports import (
    generate_report_with_details,
    get_report_summary,
    write_report_json,
)
from uxmetrics.domain.filters import AnalyticsFilters, DateRangeFilter
from uxmetrics.domain.services import AnalyticsService, format_metrics_for_display
from uxmetrics.infrastructure.config import DatabaseConfig, get_settings
from uxmetrics.infrastructure.data_source import RepositoryMetricsSource
from uxmetrics.infrastructure.db import create_database_engine, create_session_factory
from uxmetrics.infrastructure.exceptions import (
    UXMetricsError,
    ValidationError,
    create_user_friendly_error_message,
)
from uxmetrics.infrastructure.logging import setup_logging
from uxmetrics.infrastructure.uow import UnitOfWork
from uxmetrics.utils.backup import BackupService
from uxmetrics.utils.exports import make_metrics_json_payload, make_report_xlsx_bytes
from uxmetrics.utils.seed import initialise_database, load_seed_data_if_empty, reset_demo_data


def _session_factory(args: argparse.Namespace) -> sessionmaker:
    cfg = DatabaseConfig(sqlite_path=args.sqlite_path) if args.sqlite_path else None
    engine = create_database_engine(cfg)
    initialise_database(engine)
    return create_session_factory(engine)


def _date_range(field: str, start: date | None, end: date | None) -> DateRangeFilter | None:
    if not (start or end):
        return None
    try:
        return DateRangeFilter(start=start or date.min, end=end or date.max)
    except PydanticValidationError as e:
        raise ValidationError(field, "start date must not be after end date") from e


def _filters(args: argparse.Namespace) -> AnalyticsFilters | None:
    date_range = _date_range("date_range", args.date_from, args.date_to)
    if not (args.participant or args.task or date_range):
        return None
    return AnalyticsFilters(
        participant_id=args.participant, task_description=args.task, date_range=date_range
    )


def cmd_init(args: argparse.Namespace) -> int:
    uow = UnitOfWork(_session_factory(args))
    with uow.begin() as s:
        types = initialize_assessment_types(s)
        seeded = get_settings().app.load_seed_data_if_empty and load_seed_data_if_empty(s)
    print(f"Database ready with {len(types)} assessment types.")
    if seeded:
        print("Demo data loaded.")
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    uow = UnitOfWork(_session_factory(args))
    with uow.begin() as s:
        if args.reset:
            print(f"Seed completed: {reset_demo_data(s)}")
            return 0
        loaded = load_seed_data_if_empty(s)
    if not loaded:
        print("Existing data found; use --reset to replace it.")
        return 1
    print("Seed completed.")
    return 0


def cmd_metrics(args: argparse.Namespace) -> int:
    uow = UnitOfWork(_session_factory(args))
    with uow.begin() as s:
        result = AnalyticsService(RepositoryMetricsSource(s)).get_study_metrics(
            args.study_id, _filters(args)
        )
    if args.json:
        print(make_metrics_json_payload(result))
        return 0

    print(f"Study: {result.study_id}")
    print(f"Sessions: {result.session_count}  Participants: {result.participant_count}")
    decimals = get_settings().analytics.display_decimals
    for key, value in format_metrics_for_display(result, decimals).items():
        print(f"  {key:<16} {value}")
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    baseline_period = _date_range("baseline_period", args.baseline_from, args.baseline_to)
    comparison_period = _date_range("comparison_period", args.comparison_from, args.comparison_to)
    by_period = baseline_period is not None or comparison_period is not None
    if by_period == (args.comparison is not None):
        raise ValidationError(
            "comparison", "give either a second study or period options, not both"
        )

    uow = UnitOfWork(_session_factory(args))
    with uow.begin() as s:
        service = AnalyticsService(RepositoryMetricsSource(s))
        if by_period:
            whole = DateRangeFilter(start=date.min, end=date.max)
            comparison = service.compare_time_periods(
                args.baseline, baseline_period or whole, comparison_period or whole
            )
            label = f"{args.baseline}: baseline period -> comparison period"
        else:
            comparison = service.compare_study_metrics(args.baseline, args.comparison)
            label = f"{args.baseline} -> {args.comparison}"
    payload = comparison.to_dict()
    if args.json:
        print(json.dumps(payload, indent=2))
        return 0

    print(label)
    for key, diff in payload["differences"].items():
        pct = payload["percentageChanges"][key]
        diff_txt = "N/A" if diff is None else f"{diff:+.1f}"
        pct_txt = "N/A" if pct is None else f"{pct:+.1f}%"
        print(f"  {key:<16} {diff_txt:>8}  {pct_txt:>8}")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    uow = UnitOfWork(_session_factory(args))
    with uow.begin() as s:
        report = generate_report_with_details(s, args.study_id, args.commentary)
    if report is None:
        print(f"ERROR: study {args.study_id} not found", file=sys.stderr)
        return 1

    print(get_report_summary(report))
    path = write_report_json(report, args.output_dir)
    print(f"Report written to {path}")
    if args.xlsx:
        Path(args.xlsx).write_bytes(make_report_xlsx_bytes(report))
        print(f"Spreadsheet written to {args.xlsx}")
    return 0


def cmd_backup(args: argparse.Namespace) -> int:
    uow = UnitOfWork(_session_factory(args))
    with uow.begin() as s:
        path = BackupService(s).export_all_data(args.backup_dir)
    print(f"Backup created: {path}")
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    uow = UnitOfWork(_session_factory(args))
    with uow.begin() as s:
        stats = BackupService(s).import_data(args.path)
    print(f"Restored: {stats}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="UX metrics management commands")
    parser.add_argument("--sqlite-path", default=None, help="Override DB_SQLITE_PATH")
    parser.add_argument("--log-level", default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init", help="Create tables and default assessment types")
    p.set_defaults(func=cmd_init)

    p = sub.add_parser("seed", help="Load demonstration data")
    p.add_argument("--reset", action="store_true", help="Replace existing data")
    p.set_defaults(func=cmd_seed)

    p = sub.add_parser("metrics", help="Aggregated metrics for one study")
    p.add_argument("study_id")
    p.add_argument("--participant")
    p.add_argument("--task")
    p.add_argument("--from", dest="date_from", type=date.fromisoformat)
    p.add_argument("--to", dest="date_to", type=date.fromisoformat)
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_metrics)

    p = sub.add_parser("compare", help="Compare two studies or two periods of one study")
    p.add_argument("baseline")
    p.add_argument("comparison", nargs="?", default=None)
    p.add_argument("--baseline-from", type=date.fromisoformat)
    p.add_argument("--baseline-to", type=date.fromisoformat)
    p.add_argument("--comparison-from", type=date.fromisoformat)
    p.add_argument("--comparison-to", type=date.fromisoformat)
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_compare)

    p = sub.add_parser("report", help="Generate a study report")
    p.add_argument("study_id")
    p.add_argument("--commentary", default=None)
    p.add_argument("--output-dir", default=None)
    p.add_argument("--xlsx", default=None, help="Also write a spreadsheet to this path")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("backup", help="Export all data to JSON")
    p.add_argument("--backup-dir", default=None)
    p.set_defaults(func=cmd_backup)

    p = sub.add_parser("restore", help="Replace all data from a backup file")
    p.add_argument("path")
    p.set_defaults(func=cmd_restore)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, structured=False)
    try:
        return args.func(args)
    except UXMetricsError as exc:
        print(f"ERROR: {create_user_friendly_error_message(exc)}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
