from datetime import datetime

import pytest

from uxmetrics.domain.calculations import (
    calculate_duration,
    calculate_efficiency,
    calculate_error_rate,
    calculate_error_rate_from_counts,
    calculate_success_rate,
    calculate_time_based_efficiency,
    format_duration,
    format_duration_detailed,
    format_percentage,
    get_error_breakdown,
    get_seq_rating_label,
    round_to_decimals,
    validate_seq_rating,
)
from uxmetrics.domain.schemas import ErrorDetail


def test_success_rate():
    assert calculate_success_rate([True, False, True, True]) == 75
    assert calculate_success_rate([]) == 0


def test_duration_prefers_manual_value():
    assert calculate_duration("2024-06-01T10:00:00", "2024-06-01T10:01:00", 12) == 12
    assert calculate_duration(manual_duration_seconds=0) == 0


def test_duration_from_timestamps():
    start = datetime(2024, 6, 1, 10, 0, 0)
    end = datetime(2024, 6, 1, 10, 2, 5)
    assert calculate_duration(start, end) == 125
    assert calculate_duration("2024-06-01T10:00:00", "2024-06-01T10:02:05") == 125


@pytest.mark.parametrize(
    "start, end",
    [
        (None, "2024-06-01T10:00:00"),
        ("2024-06-01T10:05:00", "2024-06-01T10:00:00"),
        ("not a date", "2024-06-01T10:00:00"),
    ],
)
def test_duration_invalid_inputs_give_zero(start, end):
    assert calculate_duration(start, end) == 0


def test_format_duration():
    assert format_duration(125) == "2m 5s"
    assert format_duration(59.5) == "1m 0s"
    assert format_duration(-3) == "0m 0s"
    assert format_duration_detailed(5445) == "1h 30m 45s"
    assert format_duration_detailed(45) == "45s"
    assert format_duration_detailed(3600) == "1h 0m 0s"


def test_efficiency():
    assert calculate_efficiency(3, 4) == 75
    assert calculate_efficiency(3, 0) == 0
    assert calculate_efficiency(-1, 4) == 0
    assert calculate_time_based_efficiency(30, 60) == 50


def test_error_rate_may_exceed_one_hundred():
    errors = [ErrorDetail(type="wrong_click"), ErrorDetail(type="navigation_error")]
    assert calculate_error_rate(errors, 4) == 50
    assert calculate_error_rate(errors, 0) == 0
    assert calculate_error_rate_from_counts(6, 4) == 150


def test_error_breakdown_lists_every_type():
    errors = [
        ErrorDetail(type="wrong_click"),
        ErrorDetail(type="wrong_click", description="Clicked banner"),
        ErrorDetail(type="invalid_submission"),
    ]
    assert get_error_breakdown(errors) == {
        "wrong_click": 2,
        "invalid_submission": 1,
        "navigation_error": 0,
    }


def test_seq_helpers():
    assert validate_seq_rating(1) and validate_seq_rating(7)
    assert not validate_seq_rating(0)
    assert not validate_seq_rating(8)
    assert not validate_seq_rating(True)
    assert validate_seq_rating(4.0)
    assert get_seq_rating_label(7) == "Very Easy"
    assert get_seq_rating_label(4) == "Neutral"
    assert get_seq_rating_label(9) == "Unknown"


def test_rounding_and_percentages():
    assert round_to_decimals(1.234) == 1.23
    assert round_to_decimals(2.5, 0) == 3
    assert round_to_decimals(66.666, 1) == 66.7
    assert format_percentage(66.666) == "66.7%"
    assert format_percentage(float("inf")) == "0.0%"
