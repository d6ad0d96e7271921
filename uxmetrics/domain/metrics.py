"""
Metric extraction and aggregation.

Each response carries either a pre-computed value under the kind's metric
key in ``calculated_metrics`` or only its raw answers. ``metric_source``
classifies a response into one of the two variants and ``resolve_metric``
turns the variant into a number (or ``None`` when nothing is usable).
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, assert_never

from .models import AssessmentKind, AssessmentResponse

METRIC_KEYS: dict[AssessmentKind, str] = {
    AssessmentKind.TASK_SUCCESS_RATE: "successRate",
    AssessmentKind.TIME_ON_TASK: "durationSeconds",
    AssessmentKind.TASK_EFFICIENCY: "efficiency",
    AssessmentKind.ERROR_RATE: "errorRate",
    AssessmentKind.SEQ: "seqRating",
}


@dataclass(frozen=True, slots=True)
class Computed:
    value: float


@dataclass(frozen=True, slots=True)
class Derived:
    raw_answers: Mapping[str, Any]


MetricSource = Computed | Derived


def _as_number(value: Any) -> float | None:
    # bool is an int subclass; only the success flag may be boolean
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def metric_source(response: AssessmentResponse, kind: AssessmentKind) -> MetricSource:
    value = _as_number(response.calculated_metrics.get(METRIC_KEYS[kind]))
    if value is not None:
        return Computed(value)
    return Derived(response.responses)


def _success_from_raw(raw: Mapping[str, Any]) -> float | None:
    successful = raw.get("successful")
    if isinstance(successful, bool):
        return 100.0 if successful else 0.0
    return None


def _duration_from_raw(raw: Mapping[str, Any]) -> float | None:
    manual = _as_number(raw.get("manualDurationSeconds"))
    if manual is not None and manual >= 0:
        return manual
    start, end = _as_datetime(raw.get("startTime")), _as_datetime(raw.get("endTime"))
    if start is None or end is None:
        return None
    try:
        seconds = (end - start).total_seconds()
    except TypeError:  # naive vs aware
        return None
    return seconds if seconds >= 0 else None


def _efficiency_from_raw(raw: Mapping[str, Any]) -> float | None:
    optimal, actual = _as_number(raw.get("optimalSteps")), _as_number(raw.get("actualSteps"))
    if optimal is None or actual is None or actual <= 0 or optimal < 0:
        return None
    return optimal / actual * 100


def _error_rate_from_raw(raw: Mapping[str, Any]) -> float | None:
    errors, opportunities = _as_number(raw.get("errorCount")), _as_number(raw.get("opportunities"))
    if errors is None or opportunities is None or opportunities <= 0 or errors < 0:
        return None
    return errors / opportunities * 100


def _seq_from_raw(raw: Mapping[str, Any]) -> float | None:
    return _as_number(raw.get("rating"))


def resolve_metric(source: MetricSource, kind: AssessmentKind) -> float | None:
    """Numeric value of one response for ``kind``, or ``None`` when uninterpretable."""
    match source:
        case Computed(value=value):
            return value
        case Derived(raw_answers=raw):
            match kind:
                case AssessmentKind.TASK_SUCCESS_RATE:
                    return _success_from_raw(raw)
                case AssessmentKind.TIME_ON_TASK:
                    return _duration_from_raw(raw)
                case AssessmentKind.TASK_EFFICIENCY:
                    return _efficiency_from_raw(raw)
                case AssessmentKind.ERROR_RATE:
                    return _error_rate_from_raw(raw)
                case AssessmentKind.SEQ:
                    return _seq_from_raw(raw)
                case _:
                    assert_never(kind)
        case _:
            assert_never(source)


def extract_metric_values(
    responses: Iterable[AssessmentResponse], kind: AssessmentKind
) -> list[float]:
    """
    Values for ``kind`` in input order, skipping responses with no usable value.

    Callers pass responses already narrowed to the assessment type of ``kind``.

    Example:
        >>> extract_metric_values(seq_responses, AssessmentKind.SEQ)
        [5.0, 6.0]
    """
    values: list[float] = []
    for response in responses:
        value = resolve_metric(metric_source(response, kind), kind)
        if value is not None:
            values.append(value)
    return values


def mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return statistics.fmean(values)


def median(values: Sequence[float]) -> float | None:
    """
    Middle value of ``values``; even lengths average the two central elements.

    Example:
        >>> median([1, 2, 3, 4])
        2.5
    """
    if not values:
        return None
    return statistics.median(values)
