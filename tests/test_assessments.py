from datetime import datetime

import pytest

from uxmetrics.application.api import create_session
from uxmetrics.application.assessments import (
    add_question,
    create_assessment_response_with_metrics,
    delete_assessment_response,
    filter_assessment_responses,
    get_assessment_response,
    get_assessment_type_by_kind,
    get_assessment_types_for_dropdown,
    get_response_count_by_session,
    has_seq_rating_for_task,
    initialize_assessment_types,
    list_assessment_types,
    list_responses_by_session,
    list_responses_by_type,
    record_error_rate,
    record_seq_rating,
    record_task_efficiency,
    record_task_success,
    record_time_on_task,
    remove_question,
    reset_assessment_types_to_defaults,
    update_assessment_response,
    update_assessment_type,
    update_question,
)
from uxmetrics.domain.models import AssessmentKind, ResponseType
from uxmetrics.infrastructure.exceptions import (
    AssessmentResponseNotFoundError,
    BusinessLogicError,
    QuestionNotFoundError,
    SessionNotFoundError,
    ValidationError,
)


@pytest.fixture
def ev(db, study, people):
    return create_session(db, study.id, people["alice"].id, people["emma"].id)


class TestAssessmentTypes:
    def test_defaults_cover_every_kind_once(self, db):
        types = list_assessment_types(db)
        assert sorted(t.kind.value for t in types) == sorted(k.value for k in AssessmentKind)
        assert len(get_assessment_types_for_dropdown(db)) == 5

        # second call leaves existing types alone
        ids = {t.id for t in types}
        assert {t.id for t in initialize_assessment_types(db)} == ids

    def test_seq_definition(self, db):
        seq = get_assessment_type_by_kind(db, AssessmentKind.SEQ)
        rating = next(q for q in seq.questions if q.id == "seq-rating")
        assert rating.response_type == ResponseType.RATING
        assert {(r.type, r.value) for r in rating.validation} >= {("min", 1), ("max", 7)}

    def test_question_lifecycle(self, db):
        seq = get_assessment_type_by_kind(db, AssessmentKind.SEQ)
        question_id = add_question(
            db, seq.id, "Any comments?", "text", [{"type": "maxLength", "value": 500}]
        )
        assert question_id.startswith("question-")

        updated = update_question(db, seq.id, question_id, text="Any other comments?")
        added = next(q for q in updated.questions if q.id == question_id)
        assert added.text == "Any other comments?"
        assert added.validation[0].type == "maxLength"

        after = remove_question(db, seq.id, question_id)
        assert all(q.id != question_id for q in after.questions)
        with pytest.raises(QuestionNotFoundError):
            remove_question(db, seq.id, question_id)

    def test_add_question_rejects_unknown_rule(self, db):
        seq = get_assessment_type_by_kind(db, AssessmentKind.SEQ)
        with pytest.raises(ValidationError):
            add_question(db, seq.id, "Why?", "text", [{"type": "regex"}])

    def test_rename_and_reset(self, db):
        seq = get_assessment_type_by_kind(db, AssessmentKind.SEQ)
        assert update_assessment_type(db, seq.id, name="Ease rating").name == "Ease rating"
        with pytest.raises(BusinessLogicError):
            update_assessment_type(db, seq.id, name="  ")

        reset = reset_assessment_types_to_defaults(db)
        names = {t.name for t in reset}
        assert "Single Ease Question (SEQ)" in names
        assert "Ease rating" not in names


class TestRecorders:
    def test_task_success(self, db, ev):
        r = record_task_success(db, ev.id, "Checkout", True, "Order confirmation shown")
        assert r.calculated_metrics == {"successRate": 100}
        assert r.responses == {"successful": True, "successCriteria": "Order confirmation shown"}

    def test_task_success_requires_criteria(self, db, ev):
        with pytest.raises(ValidationError):
            record_task_success(db, ev.id, "Checkout", True, "")

    def test_time_on_task_from_timestamps(self, db, ev):
        r = record_time_on_task(
            db,
            ev.id,
            "Checkout",
            start_time=datetime(2024, 6, 1, 10, 0, 0),
            end_time=datetime(2024, 6, 1, 10, 2, 5),
        )
        assert r.calculated_metrics == {"durationSeconds": 125}
        assert r.responses["startTime"] == "2024-06-01T10:00:00"
        assert r.responses["manualDurationSeconds"] is None

    def test_time_on_task_manual_wins(self, db, ev):
        r = record_time_on_task(db, ev.id, "Checkout", manual_duration_seconds=42)
        assert r.calculated_metrics["durationSeconds"] == 42
        assert r.responses["startTime"] is None

    def test_time_on_task_rejects_reversed_times(self, db, ev):
        with pytest.raises(ValidationError):
            record_time_on_task(
                db,
                ev.id,
                "Checkout",
                start_time=datetime(2024, 6, 1, 10, 5),
                end_time=datetime(2024, 6, 1, 10, 0),
            )
        with pytest.raises(ValidationError):
            record_time_on_task(db, ev.id, "Checkout")

    def test_task_efficiency(self, db, ev):
        r = record_task_efficiency(db, ev.id, "Checkout", 3, 4, "Cart > Pay > Confirm")
        assert r.calculated_metrics == {"efficiency": 75}
        with pytest.raises(ValidationError):
            record_task_efficiency(db, ev.id, "Checkout", 3, 0)

    def test_error_rate_allows_more_errors_than_opportunities(self, db, ev):
        errors = [
            {"type": "wrong_click", "description": "Clicked banner"},
            {"type": "wrong_click"},
            {"type": "navigation_error"},
        ]
        r = record_error_rate(db, ev.id, "Checkout", errors, 2)
        assert r.calculated_metrics == {"errorRate": 150, "errorCount": 3, "opportunities": 2}
        assert r.responses["errorBreakdown"] == {
            "wrong_click": 2,
            "invalid_submission": 0,
            "navigation_error": 1,
        }

    def test_error_rate_rejects_unknown_type(self, db, ev):
        with pytest.raises(ValidationError):
            record_error_rate(db, ev.id, "Checkout", [{"type": "typo"}], 2)

    def test_seq_duplicate_is_rejected_case_insensitively(self, db, ev):
        r = record_seq_rating(db, ev.id, "Checkout", 6)
        assert r.responses == {"rating": 6, "ratingLabel": "Easy"}
        assert has_seq_rating_for_task(db, ev.id, "  CHECKOUT ")

        with pytest.raises(BusinessLogicError, match="already been recorded"):
            record_seq_rating(db, ev.id, "checkout", 5)

        # different wording is a different task
        record_seq_rating(db, ev.id, "Check out", 5)

    def test_seq_rating_range(self, db, ev):
        with pytest.raises(ValidationError):
            record_seq_rating(db, ev.id, "Checkout", 8)

    def test_unknown_session(self, db):
        with pytest.raises(SessionNotFoundError):
            record_seq_rating(db, "session-missing", "Checkout", 5)


class TestResponses:
    def test_listing_and_counts(self, db, ev):
        record_task_success(db, ev.id, "Checkout", True, "Done")
        record_seq_rating(db, ev.id, "Checkout", 6)
        seq_type = get_assessment_type_by_kind(db, AssessmentKind.SEQ)

        assert get_response_count_by_session(db, ev.id) == 2
        assert len(list_responses_by_session(db, ev.id)) == 2
        assert len(list_responses_by_type(db, seq_type.id)) == 1
        assert len(filter_assessment_responses(db, ev.id, seq_type.id)) == 1

    def test_update_and_delete(self, db, ev):
        seq_type = get_assessment_type_by_kind(db, AssessmentKind.SEQ)
        r = create_assessment_response_with_metrics(
            db, ev.id, seq_type.id, "Checkout", {"rating": 3}, {"seqRating": 3}
        )
        updated = update_assessment_response(db, r.id, calculated_metrics={"seqRating": 4})
        assert updated.calculated_metrics == {"seqRating": 4}
        assert updated.created_at == r.created_at

        delete_assessment_response(db, r.id)
        assert get_assessment_response(db, r.id) is None
        with pytest.raises(AssessmentResponseNotFoundError):
            delete_assessment_response(db, r.id)
