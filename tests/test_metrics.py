import itertools
from datetime import datetime

import pytest

from uxmetrics.domain.metrics import (
    Computed,
    Derived,
    extract_metric_values,
    mean,
    median,
    metric_source,
    resolve_metric,
)
from uxmetrics.domain.models import AssessmentKind, AssessmentResponse


def response(responses=None, metrics=None, task="Checkout"):
    return AssessmentResponse(
        id="assessment-response-1",
        session_id="session-1",
        assessment_type_id="type-1",
        task_description=task,
        responses=responses or {},
        calculated_metrics=metrics or {},
        created_at=datetime(2024, 6, 1, 12),
    )


def test_mean_and_median_of_empty_are_none():
    assert mean([]) is None
    assert median([]) is None


def test_median_odd_and_even():
    assert median([1, 2, 3, 4, 5]) == 3
    assert median([1, 2, 3, 4]) == 2.5
    assert mean([10, 20, 30]) == 20


def test_median_is_permutation_invariant():
    values = [7.0, 1.0, 4.0, 9.0]
    for perm in itertools.permutations(values):
        assert median(list(perm)) == 5.5


def test_mean_and_median_leave_input_untouched():
    values = [5, 1, 4, 2]
    assert median(values) == 3
    assert mean(values) == 3
    assert values == [5, 1, 4, 2]


def test_precomputed_value_wins_over_raw_answers():
    r = response({"successful": False}, {"successRate": 100})
    assert metric_source(r, AssessmentKind.TASK_SUCCESS_RATE) == Computed(100.0)
    assert extract_metric_values([r], AssessmentKind.TASK_SUCCESS_RATE) == [100.0]


def test_non_numeric_precomputed_value_falls_back_to_raw():
    r = response({"successful": True}, {"successRate": "n/a"})
    assert isinstance(metric_source(r, AssessmentKind.TASK_SUCCESS_RATE), Derived)
    assert extract_metric_values([r], AssessmentKind.TASK_SUCCESS_RATE) == [100.0]


@pytest.mark.parametrize(
    "kind, raw, expected",
    [
        (AssessmentKind.TASK_SUCCESS_RATE, {"successful": True}, 100.0),
        (AssessmentKind.TASK_SUCCESS_RATE, {"successful": False}, 0.0),
        (AssessmentKind.TIME_ON_TASK, {"manualDurationSeconds": 42}, 42.0),
        (
            AssessmentKind.TIME_ON_TASK,
            {"startTime": "2024-06-01T10:00:00", "endTime": "2024-06-01T10:02:05"},
            125.0,
        ),
        (AssessmentKind.TASK_EFFICIENCY, {"optimalSteps": 3, "actualSteps": 4}, 75.0),
        (AssessmentKind.ERROR_RATE, {"errorCount": 1, "opportunities": 4}, 25.0),
        (AssessmentKind.SEQ, {"rating": 6}, 6.0),
    ],
)
def test_raw_answer_fallbacks(kind, raw, expected):
    assert resolve_metric(Derived(raw), kind) == expected


@pytest.mark.parametrize(
    "kind, raw",
    [
        (AssessmentKind.TASK_SUCCESS_RATE, {"successful": "yes"}),
        (AssessmentKind.TIME_ON_TASK, {"startTime": "2024-06-01T10:05:00"}),
        (
            AssessmentKind.TIME_ON_TASK,
            {"startTime": "2024-06-01T10:05:00", "endTime": "2024-06-01T10:00:00"},
        ),
        (AssessmentKind.TIME_ON_TASK, {"startTime": "soon", "endTime": "later"}),
        (AssessmentKind.TASK_EFFICIENCY, {"optimalSteps": 3, "actualSteps": 0}),
        (AssessmentKind.ERROR_RATE, {"errorCount": 1, "opportunities": 0}),
        (AssessmentKind.SEQ, {"rating": True}),
        (AssessmentKind.SEQ, {}),
    ],
)
def test_uninterpretable_answers_are_skipped(kind, raw):
    assert resolve_metric(Derived(raw), kind) is None
    assert extract_metric_values([response(raw)], kind) == []


def test_extract_preserves_order_and_skips_unusable():
    responses = [
        response({"rating": 5}),
        response({}),
        response({}, {"seqRating": 7}),
        response({"rating": 3}),
    ]
    assert extract_metric_values(responses, AssessmentKind.SEQ) == [5.0, 7.0, 3.0]


def test_nan_precomputed_value_is_ignored():
    r = response({}, {"durationSeconds": float("nan")})
    assert extract_metric_values([r], AssessmentKind.TIME_ON_TASK) == []
