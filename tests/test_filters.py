from datetime import date, datetime

import pytest
from pydantic import ValidationError

from uxmetrics.domain.filters import (
    AnalyticsFilters,
    DateRangeFilter,
    filter_responses_by_task,
    filter_sessions,
)
from uxmetrics.domain.models import AssessmentResponse, EvaluationSession, SessionStatus


def session(id_, participant, created_at):
    return EvaluationSession(
        id=id_,
        study_id="study-1",
        participant_id=participant,
        facilitator_id="person-f",
        observer_ids=[],
        created_at=created_at,
        status=SessionStatus.COMPLETED,
    )


def response(id_, task):
    return AssessmentResponse(
        id=id_,
        session_id="session-1",
        assessment_type_id="type-1",
        task_description=task,
        responses={},
        calculated_metrics={},
        created_at=datetime(2024, 6, 1),
    )


SESSIONS = [
    session("s1", "alice", datetime(2024, 6, 1, 9)),
    session("s2", "bob", datetime(2024, 6, 1, 18)),
    session("s3", "alice", datetime(2024, 6, 2, 0, 0, 1)),
    session("s4", "carol", datetime(2024, 5, 31, 23, 59)),
]


def ids(items):
    return {item.id for item in items}


def test_single_day_range_covers_whole_day():
    window = DateRangeFilter(start=date(2024, 6, 1), end=date(2024, 6, 1))
    assert window.contains(datetime(2024, 6, 1, 23, 59))
    assert not window.contains(datetime(2024, 6, 2, 0, 0, 1))


def test_range_accepts_iso_strings():
    window = DateRangeFilter(start="2024-06-01", end="2024-06-01T08:00:00")
    assert window.start == datetime(2024, 6, 1)
    assert window.end.date() == date(2024, 6, 1)
    assert window.end.hour == 23


def test_range_start_after_end_is_rejected():
    with pytest.raises(ValidationError):
        DateRangeFilter(start=date(2024, 6, 2), end=date(2024, 6, 1))


def test_no_filters_keep_everything():
    assert ids(filter_sessions(SESSIONS, None)) == {"s1", "s2", "s3", "s4"}
    assert ids(filter_sessions(SESSIONS, AnalyticsFilters())) == {"s1", "s2", "s3", "s4"}


def test_blank_criteria_are_ignored():
    filters = AnalyticsFilters(participant_id="  ", task_description="")
    assert filters.participant_id is None
    assert filters.task_description is None


def test_filters_combine_as_intersection():
    window = DateRangeFilter(start=date(2024, 6, 1), end=date(2024, 6, 1))
    by_participant = AnalyticsFilters(participant_id="alice")
    by_date = AnalyticsFilters(date_range=window)
    both = AnalyticsFilters(participant_id="alice", date_range=window)

    expected = ids(filter_sessions(SESSIONS, by_participant)) & ids(
        filter_sessions(SESSIONS, by_date)
    )
    assert ids(filter_sessions(SESSIONS, both)) == expected == {"s1"}


def test_filter_order_does_not_matter():
    window = DateRangeFilter(start=date(2024, 6, 1), end=date(2024, 6, 2))
    by_participant = AnalyticsFilters(participant_id="alice")
    by_date = AnalyticsFilters(date_range=window)

    a = filter_sessions(filter_sessions(SESSIONS, by_participant), by_date)
    b = filter_sessions(filter_sessions(SESSIONS, by_date), by_participant)
    assert ids(a) == ids(b) == {"s1", "s3"}


def test_task_filter_is_case_insensitive_substring():
    responses = [
        response("r1", "Complete Checkout"),
        response("r2", "Apply coupon"),
        response("r3", "checkout with saved card"),
    ]
    kept = filter_responses_by_task(responses, AnalyticsFilters(task_description="CHECKOUT"))
    assert ids(kept) == {"r1", "r3"}
