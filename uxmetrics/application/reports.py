"""
Study reports: a snapshot of a study's aggregated metrics plus free-text commentary.
"""

from __future__ import annotations

import dataclasses
import json
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy.orm import Session

from ..domain.filters import AnalyticsFilters
from ..domain.models import Report
from ..domain.services import AnalyticsService, format_metrics_for_display
from ..infrastructure.config import get_settings
from ..infrastructure.data_source import RepositoryMetricsSource
from ..infrastructure.exceptions import ExportError
from ..infrastructure.logging import get_logger, log_operation
from ..infrastructure.repositories import StudyRepo, generate_id

logger = get_logger(__name__)


def _build_report(
    session: Session,
    study_id: str,
    commentary: str | None,
    filters: AnalyticsFilters | None,
    with_details: bool,
) -> Report | None:
    study = StudyRepo(session).get(study_id)
    if study is None:
        logger.warning(f"Report requested for unknown study {study_id}")
        return None

    aggregated = AnalyticsService(RepositoryMetricsSource(session)).get_study_metrics(
        study_id, filters
    )
    report = Report(
        id=generate_id("report"),
        study_id=study_id,
        study_name=study.name,
        generated_at=datetime.now(),
        metrics=aggregated.metrics,
        session_count=aggregated.session_count,
        participant_count=aggregated.participant_count,
        commentary=commentary or None,
    )
    if with_details:
        decimals = get_settings().analytics.display_decimals
        report.formatted_metrics = format_metrics_for_display(aggregated, decimals)
        report.date_range = aggregated.date_range

    logger.info(f"Generated report {report.id} for study {study_id}")
    return report


@log_operation("generate_report")
def generate_report(
    session: Session,
    study_id: str,
    commentary: str | None = None,
    filters: AnalyticsFilters | None = None,
) -> Report | None:
    """
    Build a report for one study.

    Returns ``None`` when the study does not exist. Blank commentary is
    stored as ``None``.

    Example:
        >>> report = generate_report(s, study.id, "Checkout went well")
        >>> report.metrics.seq.count
        4
    """
    return _build_report(session, study_id, commentary, filters, with_details=False)


@log_operation("generate_report_with_details")
def generate_report_with_details(
    session: Session,
    study_id: str,
    commentary: str | None = None,
    filters: AnalyticsFilters | None = None,
) -> Report | None:
    """Like ``generate_report`` but also carries display strings and the session date range."""
    return _build_report(session, study_id, commentary, filters, with_details=True)


def export_report_as_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=2)


def default_report_filename(report: Report) -> str:
    return f"report-{report.study_id}-{report.generated_at:%Y-%m-%d}.json"


@log_operation("write_report_json")
def write_report_json(
    report: Report, directory: str | Path | None = None, filename: str | None = None
) -> Path:
    """
    Write the report as JSON and return the file path.

    ``directory`` defaults to the configured report directory.

    Raises:
        ExportError: If the file cannot be written
    """
    target_dir = Path(directory or get_settings().export.report_dir)
    path = target_dir / (filename or default_report_filename(report))
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(export_report_as_json(report), encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Failed to write report to {path}: {e}", export_format="json") from e

    logger.info(f"Report {report.id} written to {path}")
    return path


def update_report_commentary(report: Report, commentary: str | None) -> Report:
    return dataclasses.replace(report, commentary=commentary or None)


def is_valid_report(report: Any) -> bool:
    """Structural check used before exporting or re-displaying a report."""
    if not isinstance(report, Report):
        return False
    return (
        isinstance(report.id, str)
        and bool(report.id)
        and isinstance(report.study_id, str)
        and isinstance(report.generated_at, datetime)
        and isinstance(report.session_count, int)
        and isinstance(report.participant_count, int)
        and (report.commentary is None or isinstance(report.commentary, str))
    )


def get_report_summary(report: Report) -> str:
    """
    Plain-text digest of a report.

    Example:
        >>> print(get_report_summary(report))
        Study: Checkout Flow
        Generated: 2026-03-02 14:05:11
        Sessions: 4
        Participants: 3
        Task Success Rate: 75.0%
    """
    metrics = report.metrics
    lines = [
        f"Study: {report.study_name or report.study_id}",
        f"Generated: {report.generated_at:%Y-%m-%d %H:%M:%S}",
        f"Sessions: {report.session_count}",
        f"Participants: {report.participant_count}",
    ]

    if metrics.task_success_rate.mean is not None:
        lines.append(f"Task Success Rate: {metrics.task_success_rate.mean:.1f}%")

    median = metrics.time_on_task.median
    if median is not None:
        minutes = int(median // 60)
        seconds = round(median % 60)
        lines.append(f"Time on Task (Median): {minutes}m {seconds}s")

    if metrics.seq.mean is not None:
        lines.append(f"SEQ Score: {metrics.seq.mean:.1f}/7")

    if report.commentary:
        lines.append(f"\nCommentary: {report.commentary}")

    return "\n".join(lines)
