from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class AssessmentKind(StrEnum):
    TASK_SUCCESS_RATE = "task_success_rate"
    TIME_ON_TASK = "time_on_task"
    TASK_EFFICIENCY = "task_efficiency"
    ERROR_RATE = "error_rate"
    SEQ = "seq"


class SessionStatus(StrEnum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PersonRole(StrEnum):
    PARTICIPANT = "participant"
    FACILITATOR = "facilitator"
    OBSERVER = "observer"


class ResponseType(StrEnum):
    BOOLEAN = "boolean"
    NUMBER = "number"
    TEXT = "text"
    RATING = "rating"


class ErrorType(StrEnum):
    WRONG_CLICK = "wrong_click"
    INVALID_SUBMISSION = "invalid_submission"
    NAVIGATION_ERROR = "navigation_error"


# camelCase keys used in serialised metrics
SUMMARY_KEYS: dict[AssessmentKind, str] = {
    AssessmentKind.TASK_SUCCESS_RATE: "taskSuccessRate",
    AssessmentKind.TIME_ON_TASK: "timeOnTask",
    AssessmentKind.TASK_EFFICIENCY: "taskEfficiency",
    AssessmentKind.ERROR_RATE: "errorRate",
    AssessmentKind.SEQ: "seq",
}


@dataclass(slots=True)
class Study:
    id: str
    name: str
    product_id: str
    feature_id: str | None
    archived: bool
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class Person:
    id: str
    name: str
    role: PersonRole
    created_at: datetime


@dataclass(slots=True)
class EvaluationSession:
    id: str
    study_id: str
    participant_id: str
    facilitator_id: str
    observer_ids: list[str]
    created_at: datetime
    status: SessionStatus
    completed_at: datetime | None = None


@dataclass(slots=True)
class ValidationRule:
    type: str  # min | max | minLength | maxLength | pattern | required
    value: Any = None


@dataclass(slots=True)
class Question:
    id: str
    text: str
    response_type: ResponseType
    validation: list[ValidationRule] = field(default_factory=list)


@dataclass(slots=True)
class AssessmentType:
    id: str
    name: str
    kind: AssessmentKind
    questions: list[Question] = field(default_factory=list)


@dataclass(slots=True)
class AssessmentResponse:
    id: str
    session_id: str
    assessment_type_id: str
    task_description: str
    responses: dict[str, Any]
    calculated_metrics: dict[str, float]
    created_at: datetime


# ----- analytics results -----


@dataclass(slots=True)
class MetricAggregate:
    mean: float | None
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"mean": self.mean, "count": self.count}


@dataclass(slots=True)
class TimeMetricAggregate:
    median: float | None
    mean: float | None
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"median": self.median, "mean": self.mean, "count": self.count}


@dataclass(slots=True)
class MetricsSummary:
    task_success_rate: MetricAggregate
    time_on_task: TimeMetricAggregate
    task_efficiency: MetricAggregate
    error_rate: MetricAggregate
    seq: MetricAggregate

    def headline(self, kind: AssessmentKind) -> float | None:
        """Return the statistic compared for ``kind`` (median for time on task)."""
        if kind == AssessmentKind.TIME_ON_TASK:
            return self.time_on_task.median
        return getattr(self, AssessmentKind(kind).value).mean

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskSuccessRate": self.task_success_rate.to_dict(),
            "timeOnTask": self.time_on_task.to_dict(),
            "taskEfficiency": self.task_efficiency.to_dict(),
            "errorRate": self.error_rate.to_dict(),
            "seq": self.seq.to_dict(),
        }


@dataclass(slots=True)
class DateRange:
    start: datetime | None = None
    end: datetime | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


@dataclass(slots=True)
class AggregatedMetrics:
    study_id: str
    session_count: int
    participant_count: int
    date_range: DateRange
    metrics: MetricsSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "studyId": self.study_id,
            "sessionCount": self.session_count,
            "participantCount": self.participant_count,
            "dateRange": self.date_range.to_dict(),
            "metrics": self.metrics.to_dict(),
        }


@dataclass(slots=True)
class MetricsComparison:
    baseline: AggregatedMetrics
    comparison: AggregatedMetrics
    differences: dict[AssessmentKind, float | None]
    percentage_changes: dict[AssessmentKind, float | None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "baseline": self.baseline.to_dict(),
            "comparison": self.comparison.to_dict(),
            "differences": {SUMMARY_KEYS[k]: v for k, v in self.differences.items()},
            "percentageChanges": {SUMMARY_KEYS[k]: v for k, v in self.percentage_changes.items()},
        }


@dataclass(slots=True)
class Report:
    id: str
    study_id: str
    study_name: str
    generated_at: datetime
    metrics: MetricsSummary
    session_count: int
    participant_count: int
    commentary: str | None = None
    formatted_metrics: dict[str, str] | None = None
    date_range: DateRange | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "studyId": self.study_id,
            "studyName": self.study_name,
            "generatedAt": self.generated_at.isoformat(),
            "metrics": self.metrics.to_dict(),
            "sessionCount": self.session_count,
            "participantCount": self.participant_count,
            "commentary": self.commentary,
        }
        if self.formatted_metrics is not None:
            data["formattedMetrics"] = self.formatted_metrics
        if self.date_range is not None:
            data["dateRange"] = self.date_range.to_dict()
        return data
