"""
Cumulative AND filters for the analytics core.

Session-level criteria (participant, date range) prune sessions before their
responses are fetched; the task criterion narrows the flat response list.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .models import AssessmentResponse, EvaluationSession


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _coerce_datetime(value: Any) -> Any:
    """Accept datetimes, dates and ISO strings; dates become midnight."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if isinstance(value, datetime):
        return _to_local_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return value


class DateRangeFilter(BaseModel):
    """
    Inclusive date window over session creation time.

    ``end`` is moved to the last instant of its day, so a window whose start
    and end fall on the same date covers that whole day.

    Example:
        >>> window = DateRangeFilter(start="2024-06-01", end="2024-06-01")
        >>> window.contains(datetime(2024, 6, 1, 23, 59))
        True
    """

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_bound(cls, v):
        return _coerce_datetime(v)

    @field_validator("end")
    @classmethod
    def end_of_day(cls, v: datetime) -> datetime:
        return datetime.combine(v.date(), time.max)

    @model_validator(mode="after")
    def start_before_end(self):
        if self.start > self.end:
            raise ValueError("Date range start must not be after its end")
        return self

    def contains(self, moment: datetime) -> bool:
        return self.start <= _to_local_naive(moment) <= self.end


class AnalyticsFilters(BaseModel):
    """
    Optional narrowing criteria for study metrics; absent criteria are no-ops.

    Example:
        >>> AnalyticsFilters(participant_id="person-1", task_description="checkout")
    """

    model_config = ConfigDict(frozen=True)

    participant_id: str | None = None
    task_description: str | None = None
    date_range: DateRangeFilter | None = None

    @field_validator("participant_id", "task_description")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v

    def matches_session(self, session: EvaluationSession) -> bool:
        if self.participant_id is not None and session.participant_id != self.participant_id:
            return False
        if self.date_range is not None and not self.date_range.contains(session.created_at):
            return False
        return True

    def matches_response(self, response: AssessmentResponse) -> bool:
        if self.task_description is None:
            return True
        return self.task_description.lower() in response.task_description.lower()


@dataclass(frozen=True, slots=True)
class MetricSet:
    """A study plus the filters to aggregate it under."""

    study_id: str
    filters: AnalyticsFilters | None = None


def filter_sessions(
    sessions: Iterable[EvaluationSession], filters: AnalyticsFilters | None
) -> list[EvaluationSession]:
    if filters is None:
        return list(sessions)
    return [s for s in sessions if filters.matches_session(s)]


def filter_responses_by_task(
    responses: Iterable[AssessmentResponse], filters: AnalyticsFilters | None
) -> list[AssessmentResponse]:
    if filters is None:
        return list(responses)
    return [r for r in responses if filters.matches_response(r)]
