from __future__ import annotations

import io
import json
from datetime import datetime
from typing import Any

import pandas as pd

from ..domain.calculations import format_duration
from ..domain.models import (
    AggregatedMetrics,
    AssessmentResponse,
    AssessmentType,
    EvaluationSession,
    Person,
    Report,
    Study,
)
from ..infrastructure.models import question_to_dict


def _to_iso(val):
    if hasattr(val, "isoformat"):
        return val.isoformat()
    return val


def from_iso(val: Any) -> datetime:
    """Parse an ISO 8601 timestamp; offsets are converted to naive local time."""
    if isinstance(val, datetime):
        return val
    if not isinstance(val, str) or not val:
        raise ValueError(f"Invalid timestamp: {val!r}")
    parsed = datetime.fromisoformat(val.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


# ----- entity <-> JSON records (camelCase) -----


def study_to_dict(study: Study) -> dict[str, Any]:
    return {
        "id": study.id,
        "name": study.name,
        "productId": study.product_id,
        "featureId": study.feature_id,
        "createdAt": _to_iso(study.created_at),
        "updatedAt": _to_iso(study.updated_at),
        "archived": study.archived,
    }


def person_to_dict(person: Person) -> dict[str, Any]:
    return {
        "id": person.id,
        "name": person.name,
        "role": person.role.value,
        "createdAt": _to_iso(person.created_at),
    }


def session_to_dict(session: EvaluationSession) -> dict[str, Any]:
    return {
        "id": session.id,
        "studyId": session.study_id,
        "participantId": session.participant_id,
        "facilitatorId": session.facilitator_id,
        "observerIds": list(session.observer_ids),
        "createdAt": _to_iso(session.created_at),
        "completedAt": _to_iso(session.completed_at),
        "status": session.status.value,
    }


def assessment_type_to_dict(assessment_type: AssessmentType) -> dict[str, Any]:
    return {
        "id": assessment_type.id,
        "name": assessment_type.name,
        "type": assessment_type.kind.value,
        "questions": [question_to_dict(q) for q in assessment_type.questions],
    }


def response_to_dict(response: AssessmentResponse) -> dict[str, Any]:
    return {
        "id": response.id,
        "sessionId": response.session_id,
        "assessmentTypeId": response.assessment_type_id,
        "taskDescription": response.task_description,
        "responses": response.responses,
        "calculatedMetrics": response.calculated_metrics,
        "createdAt": _to_iso(response.created_at),
    }


def study_fields(record: dict[str, Any]) -> dict[str, Any]:
    """Column values for ``StudyORM`` from a backup record."""
    return {
        "id": record["id"],
        "name": record.get("name", ""),
        "product_id": record.get("productId", ""),
        "feature_id": record.get("featureId") or None,
        "archived": bool(record.get("archived", False)),
        "created_at": from_iso(record.get("createdAt")),
        "updated_at": from_iso(record.get("updatedAt") or record.get("createdAt")),
    }


def person_fields(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": record["id"],
        "name": record.get("name", ""),
        "role": record.get("role", "participant"),
        "created_at": from_iso(record.get("createdAt")),
    }


def session_fields(record: dict[str, Any]) -> dict[str, Any]:
    completed_at = record.get("completedAt")
    return {
        "id": record["id"],
        "study_id": record.get("studyId", ""),
        "participant_id": record.get("participantId", ""),
        "facilitator_id": record.get("facilitatorId", ""),
        "observer_ids": list(record.get("observerIds") or []),
        "status": record.get("status", "in_progress"),
        "created_at": from_iso(record.get("createdAt")),
        "completed_at": from_iso(completed_at) if completed_at else None,
    }


def assessment_type_fields(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": record["id"],
        "name": record.get("name", ""),
        "kind": record.get("type", ""),
        "questions": list(record.get("questions") or []),
    }


def response_fields(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": record["id"],
        "session_id": record.get("sessionId", ""),
        "assessment_type_id": record.get("assessmentTypeId", ""),
        "task_description": record.get("taskDescription", ""),
        "responses": dict(record.get("responses") or {}),
        "calculated_metrics": dict(record.get("calculatedMetrics") or {}),
        "created_at": from_iso(record.get("createdAt")),
    }


# ----- metrics and reports -----


def make_metrics_json_payload(metrics: AggregatedMetrics) -> str:
    return json.dumps(metrics.to_dict(), indent=2)


def metrics_table(report: Report) -> pd.DataFrame:
    """One row per metric with its headline value and sample size."""
    m = report.metrics
    rows = [
        ("Task Success Rate", m.task_success_rate.mean, m.task_success_rate.count, "%"),
        ("Time on Task (Median)", m.time_on_task.median, m.time_on_task.count, "s"),
        ("Time on Task (Mean)", m.time_on_task.mean, m.time_on_task.count, "s"),
        ("Task Efficiency", m.task_efficiency.mean, m.task_efficiency.count, "%"),
        ("Error Rate", m.error_rate.mean, m.error_rate.count, "%"),
        ("SEQ", m.seq.mean, m.seq.count, "/7"),
    ]
    df = pd.DataFrame(rows, columns=["Metric", "Value", "Responses", "Unit"])
    df["Display"] = [
        "N/A"
        if value is None
        else format_duration(value)
        if unit == "s"
        else f"{value:.1f}{unit}"
        for _, value, _, unit in rows
    ]
    return df


def make_report_xlsx_bytes(report: Report) -> bytes:
    """Create a single-sheet Excel export of a report's study details and metrics table."""
    header = pd.DataFrame(
        [
            ("Study", report.study_name or report.study_id),
            ("Study ID", report.study_id),
            ("Generated", report.generated_at.strftime("%Y-%m-%d %H:%M:%S")),
            ("Sessions", report.session_count),
            ("Participants", report.participant_count),
            ("Commentary", report.commentary or ""),
        ],
        columns=["Field", "Value"],
    )
    table = metrics_table(report)

    bio = io.BytesIO()
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        header.to_excel(writer, index=False, sheet_name="Report")
        table.to_excel(writer, index=False, sheet_name="Report", startrow=len(header) + 2)
    return bio.getvalue()
