"""
Per-response calculations for the five usability instruments.

These run when a response is recorded; their results are stored as the
response's calculated metrics. Invalid denominators yield 0 and a warning
rather than an exception.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import datetime

from ..infrastructure.logging import get_logger
from .models import ErrorType
from .schemas import ErrorDetail

logger = get_logger(__name__)

SEQ_LABELS: dict[int, str] = {
    1: "Very Difficult",
    2: "Difficult",
    3: "Somewhat Difficult",
    4: "Neutral",
    5: "Somewhat Easy",
    6: "Easy",
    7: "Very Easy",
}


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_success_rate(attempts: Sequence[bool]) -> float:
    """Share of successful attempts as a percentage; 0 for no attempts."""
    if not attempts:
        return 0.0
    return sum(1 for ok in attempts if ok) / len(attempts) * 100


def calculate_single_success_rate(successful: bool) -> float:
    return 100.0 if successful else 0.0


def calculate_duration(
    start_time: datetime | str | None = None,
    end_time: datetime | str | None = None,
    manual_duration_seconds: float | None = None,
) -> float:
    """
    Seconds spent on a task.

    A non-negative manual duration wins; otherwise the difference between the
    timestamps. Missing, unparsable or reversed timestamps give 0.

    Example:
        >>> calculate_duration("2024-06-01T10:00:00", "2024-06-01T10:02:05")
        125.0
    """
    if manual_duration_seconds is not None and manual_duration_seconds >= 0:
        return float(manual_duration_seconds)

    if not start_time or not end_time:
        return 0.0

    try:
        start = start_time if isinstance(start_time, datetime) else datetime.fromisoformat(start_time)
        end = end_time if isinstance(end_time, datetime) else datetime.fromisoformat(end_time)
    except ValueError:
        logger.warning("calculate_duration: invalid date format")
        return 0.0

    if end < start:
        logger.warning("calculate_duration: end time is before start time")
        return 0.0

    return (end - start).total_seconds()


def format_duration(seconds: float) -> str:
    """
    Example:
        >>> format_duration(125)
        '2m 5s'
    """
    if seconds < 0 or not math.isfinite(seconds):
        return "0m 0s"
    total = _round_half_up(seconds)
    return f"{total // 60}m {total % 60}s"


def format_duration_detailed(seconds: float) -> str:
    """
    Example:
        >>> format_duration_detailed(5445)
        '1h 30m 45s'
    """
    if seconds < 0 or not math.isfinite(seconds):
        return "0s"
    total = _round_half_up(seconds)
    hours, minutes, remaining = total // 3600, (total % 3600) // 60, total % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or hours > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{remaining}s")
    return " ".join(parts)


def calculate_efficiency(optimal_steps: float, actual_steps: float) -> float:
    """Optimal over actual steps as a percentage."""
    if not actual_steps or actual_steps <= 0:
        logger.warning("calculate_efficiency: actual_steps must be greater than 0")
        return 0.0
    if optimal_steps < 0:
        logger.warning("calculate_efficiency: optimal_steps cannot be negative")
        return 0.0
    return optimal_steps / actual_steps * 100


def calculate_time_based_efficiency(optimal_seconds: float, actual_seconds: float) -> float:
    if not actual_seconds or actual_seconds <= 0:
        logger.warning("calculate_time_based_efficiency: actual time must be greater than 0")
        return 0.0
    if optimal_seconds < 0:
        logger.warning("calculate_time_based_efficiency: optimal time cannot be negative")
        return 0.0
    return optimal_seconds / actual_seconds * 100


def calculate_error_rate(errors: Sequence[ErrorDetail], opportunities: int) -> float:
    if not opportunities or opportunities <= 0:
        logger.warning("calculate_error_rate: opportunities must be greater than 0")
        return 0.0
    return len(errors or []) / opportunities * 100


def calculate_error_rate_from_counts(error_count: int, opportunities: int) -> float:
    if not opportunities or opportunities <= 0:
        return 0.0
    if error_count < 0:
        return 0.0
    return error_count / opportunities * 100


def get_error_breakdown(errors: Iterable[ErrorDetail]) -> dict[str, int]:
    """
    Count errors per type; every known type is present in the result.

    Example:
        >>> get_error_breakdown([ErrorDetail(type="wrong_click")])
        {'wrong_click': 1, 'invalid_submission': 0, 'navigation_error': 0}
    """
    breakdown = {error_type.value: 0 for error_type in ErrorType}
    for error in errors or []:
        key = str(error.type)
        if key in breakdown:
            breakdown[key] += 1
    return breakdown


def validate_seq_rating(rating: object) -> bool:
    if isinstance(rating, bool):
        return False
    if isinstance(rating, float) and rating.is_integer():
        rating = int(rating)
    return isinstance(rating, int) and 1 <= rating <= 7


def get_seq_rating_label(rating: int) -> str:
    return SEQ_LABELS.get(rating, "Unknown")


def round_to_decimals(value: float, decimals: int = 2) -> float:
    factor = 10**decimals
    return math.floor(value * factor + 0.5) / factor


def format_percentage(value: float, decimals: int = 1) -> str:
    """
    Example:
        >>> format_percentage(66.666)
        '66.7%'
    """
    if not math.isfinite(value):
        return "0.0%"
    return f"{round_to_decimals(value, decimals):.{decimals}f}%"
