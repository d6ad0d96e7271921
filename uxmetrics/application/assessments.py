"""
Application API for assessment types, responses and the instrument recorders.

The ``record_*`` functions validate one instrument's answers, compute its
calculated metrics and store the response in a single step.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.calculations import (
    calculate_duration,
    calculate_efficiency,
    calculate_error_rate_from_counts,
    calculate_single_success_rate,
    get_error_breakdown,
    get_seq_rating_label,
)
from ..domain.defaults import DEFAULT_ASSESSMENT_TYPES
from ..domain.models import AssessmentKind, AssessmentResponse, AssessmentType
from ..domain.schemas import (
    AssessmentResponseInput,
    ErrorDetail,
    ErrorRateInput,
    QuestionInput,
    SeqInput,
    TaskEfficiencyInput,
    TaskSuccessInput,
    TimeOnTaskInput,
)
from ..infrastructure.exceptions import (
    AssessmentResponseNotFoundError,
    AssessmentTypeNotFoundError,
    BusinessLogicError,
    QuestionNotFoundError,
    SessionNotFoundError,
    handle_database_error,
)
from ..infrastructure.logging import LogContext, get_logger, log_operation
from ..infrastructure.models import AssessmentResponseORM, AssessmentTypeORM
from ..infrastructure.repositories import AssessmentResponseRepo, AssessmentTypeRepo, SessionRepo
from ..infrastructure.repositories_base import generate_id
from .api import validated

logger = get_logger(__name__)


# ----------------------------------------------------------------------------
# Assessment types
# ----------------------------------------------------------------------------


def _require_type(session: Session, assessment_type_id: str) -> AssessmentTypeORM:
    row = AssessmentTypeRepo(session).get(assessment_type_id)
    if row is None:
        raise AssessmentTypeNotFoundError(assessment_type_id)
    return row


def _default_type_rows(ids: dict[AssessmentKind, str] | None = None) -> list[dict[str, Any]]:
    return [
        {
            "id": (ids or {}).get(definition["kind"]),
            "name": definition["name"],
            "kind": definition["kind"].value,
            "questions": copy.deepcopy(definition["questions"]),
        }
        for definition in DEFAULT_ASSESSMENT_TYPES
    ]


@log_operation("initialize_assessment_types")
def initialize_assessment_types(
    session: Session, ids: dict[AssessmentKind, str] | None = None
) -> list[AssessmentType]:
    """
    Store the five default instruments if no assessment type exists yet.

    ``ids`` pins the id per kind (used by the demo data); otherwise ids are
    generated. Existing types are left untouched.
    """
    repo = AssessmentTypeRepo(session)
    if repo.count() == 0:
        for fields in _default_type_rows(ids):
            repo.create(**fields)
        logger.info("Initialized default assessment types")
    return list_assessment_types(session)


@log_operation("reset_assessment_types")
def reset_assessment_types_to_defaults(
    session: Session, ids: dict[AssessmentKind, str] | None = None
) -> list[AssessmentType]:
    """Replace all assessment types with fresh copies of the defaults."""
    repo = AssessmentTypeRepo(session)
    repo.clear()
    for fields in _default_type_rows(ids):
        repo.create(**fields)
    return list_assessment_types(session)


def list_assessment_types(session: Session) -> list[AssessmentType]:
    return [row.to_domain() for row in AssessmentTypeRepo(session).list_all()]


def get_assessment_type(session: Session, assessment_type_id: str) -> AssessmentType | None:
    row = AssessmentTypeRepo(session).get(assessment_type_id)
    return row.to_domain() if row else None


def get_assessment_type_by_kind(
    session: Session, kind: AssessmentKind | str
) -> AssessmentType | None:
    row = AssessmentTypeRepo(session).get_by_kind(AssessmentKind(kind).value)
    return row.to_domain() if row else None


@log_operation("update_assessment_type")
def update_assessment_type(
    session: Session,
    assessment_type_id: str,
    name: str | None = None,
    questions: list[dict[str, Any]] | None = None,
) -> AssessmentType:
    """Rename a type or replace its questions; ``id`` and ``kind`` are fixed."""
    row = _require_type(session, assessment_type_id)
    fields: dict[str, Any] = {}
    if name is not None:
        if not name.strip():
            raise BusinessLogicError("Assessment type name cannot be empty.", rule="name")
        fields["name"] = name.strip()
    if questions is not None:
        fields["questions"] = questions
    AssessmentTypeRepo(session).update(row, **fields)
    return row.to_domain()


def _question_payload(data: dict[str, Any], question_id: str) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": question_id,
        "text": data["text"],
        "responseType": data["response_type"],
    }
    if data.get("validation"):
        payload["validationRules"] = data["validation"]
    return payload


@log_operation("add_question")
def add_question(
    session: Session,
    assessment_type_id: str,
    text: str,
    response_type: str,
    validation: list[dict[str, Any]] | None = None,
) -> str:
    """Append a question and return its generated id."""
    row = _require_type(session, assessment_type_id)
    data = validated(
        QuestionInput,
        {"text": text, "response_type": response_type, "validation": validation or []},
        "question",
    )
    question_id = generate_id("question")
    questions = [*row.questions, _question_payload(data, question_id)]
    AssessmentTypeRepo(session).update(row, questions=questions)
    return question_id


@log_operation("update_question")
def update_question(
    session: Session, assessment_type_id: str, question_id: str, **updates: Any
) -> AssessmentType:
    row = _require_type(session, assessment_type_id)
    questions = copy.deepcopy(row.questions)
    index = next((i for i, q in enumerate(questions) if q["id"] == question_id), None)
    if index is None:
        raise QuestionNotFoundError(question_id)

    current = questions[index]
    data = validated(
        QuestionInput,
        {
            "text": updates.get("text", current["text"]),
            "response_type": updates.get("response_type", current["responseType"]),
            "validation": updates.get("validation", current.get("validationRules") or []),
        },
        "question",
    )
    questions[index] = _question_payload(data, question_id)
    AssessmentTypeRepo(session).update(row, questions=questions)
    return row.to_domain()


@log_operation("remove_question")
def remove_question(session: Session, assessment_type_id: str, question_id: str) -> AssessmentType:
    row = _require_type(session, assessment_type_id)
    if not any(q["id"] == question_id for q in row.questions):
        raise QuestionNotFoundError(question_id)
    questions = [q for q in row.questions if q["id"] != question_id]
    AssessmentTypeRepo(session).update(row, questions=questions)
    return row.to_domain()


def get_assessment_types_for_dropdown(session: Session) -> list[dict[str, str]]:
    return [{"id": t.id, "label": t.name} for t in list_assessment_types(session)]


# ----------------------------------------------------------------------------
# Assessment responses
# ----------------------------------------------------------------------------


def _require_response(session: Session, response_id: str) -> AssessmentResponseORM:
    row = AssessmentResponseRepo(session).get(response_id)
    if row is None:
        raise AssessmentResponseNotFoundError(response_id)
    return row


@log_operation("create_assessment_response")
def create_assessment_response(
    session: Session,
    session_id: str,
    assessment_type_id: str,
    task_description: str,
    responses: dict[str, Any] | None = None,
) -> AssessmentResponse:
    """Store raw answers with an empty calculated-metrics mapping."""
    return create_assessment_response_with_metrics(
        session, session_id, assessment_type_id, task_description, responses or {}, {}
    )


@log_operation("create_assessment_response_with_metrics")
def create_assessment_response_with_metrics(
    session: Session,
    session_id: str,
    assessment_type_id: str,
    task_description: str,
    responses: dict[str, Any],
    calculated_metrics: dict[str, float],
) -> AssessmentResponse:
    data = validated(
        AssessmentResponseInput,
        {
            "session_id": session_id,
            "assessment_type_id": assessment_type_id,
            "task_description": task_description,
            "responses": responses,
            "calculated_metrics": calculated_metrics,
        },
        "assessment_response",
    )
    try:
        row = AssessmentResponseRepo(session).create(
            session_id=data["session_id"],
            assessment_type_id=data["assessment_type_id"],
            task_description=data["task_description"],
            responses=data["responses"],
            calculated_metrics=data["calculated_metrics"],
            created_at=datetime.now(),
        )
    except SQLAlchemyError as e:
        raise handle_database_error(e, "create assessment response") from e
    return row.to_domain()


def get_assessment_response(session: Session, response_id: str) -> AssessmentResponse | None:
    row = AssessmentResponseRepo(session).get(response_id)
    return row.to_domain() if row else None


def list_assessment_responses(session: Session) -> list[AssessmentResponse]:
    return [row.to_domain() for row in AssessmentResponseRepo(session).list_all()]


def list_responses_by_session(session: Session, session_id: str) -> list[AssessmentResponse]:
    return [row.to_domain() for row in AssessmentResponseRepo(session).list_by_session(session_id)]


def list_responses_by_type(session: Session, assessment_type_id: str) -> list[AssessmentResponse]:
    rows = AssessmentResponseRepo(session).list_by_type(assessment_type_id)
    return [row.to_domain() for row in rows]


def filter_assessment_responses(
    session: Session, session_id: str | None = None, assessment_type_id: str | None = None
) -> list[AssessmentResponse]:
    rows = AssessmentResponseRepo(session).filter(session_id, assessment_type_id)
    return [row.to_domain() for row in rows]


@log_operation("update_assessment_response")
def update_assessment_response(
    session: Session,
    response_id: str,
    task_description: str | None = None,
    responses: dict[str, Any] | None = None,
    calculated_metrics: dict[str, float] | None = None,
) -> AssessmentResponse:
    """Update answers or metrics; ``id`` and ``created_at`` never change."""
    row = _require_response(session, response_id)
    fields: dict[str, Any] = {}
    if task_description is not None:
        if not task_description.strip():
            raise BusinessLogicError("Task description is required.", rule="task_description")
        fields["task_description"] = task_description.strip()
    if responses is not None:
        fields["responses"] = responses
    if calculated_metrics is not None:
        fields["calculated_metrics"] = calculated_metrics
    AssessmentResponseRepo(session).update(row, **fields)
    return row.to_domain()


@log_operation("delete_assessment_response")
def delete_assessment_response(session: Session, response_id: str) -> None:
    row = _require_response(session, response_id)
    AssessmentResponseRepo(session).delete(row)


def has_seq_rating_for_task(
    session: Session,
    session_id: str,
    task_description: str,
    assessment_type_id: str | None = None,
) -> bool:
    """
    True when the session already has a SEQ response for this task.

    Tasks are compared case-insensitively after trimming; any other
    difference in wording counts as a different task.
    """
    if assessment_type_id is None:
        seq_type = get_assessment_type_by_kind(session, AssessmentKind.SEQ)
        if seq_type is None:
            return False
        assessment_type_id = seq_type.id

    key = task_description.strip().lower()
    return any(
        r.assessment_type_id == assessment_type_id and r.task_description.strip().lower() == key
        for r in AssessmentResponseRepo(session).list_by_session(session_id)
    )


def get_assessment_responses_for_display(
    session: Session, session_id: str | None = None
) -> list[AssessmentResponse]:
    """Responses newest first, optionally for one session."""
    repo = AssessmentResponseRepo(session)
    if session_id:
        rows = repo.list_by_session(session_id, newest_first=True)
    else:
        rows = repo.list_all(newest_first=True)
    return [row.to_domain() for row in rows]


def get_response_count_by_session(session: Session, session_id: str) -> int:
    return AssessmentResponseRepo(session).count_by_session(session_id)


# ----------------------------------------------------------------------------
# Instrument recorders
# ----------------------------------------------------------------------------


def _type_id_for(session: Session, session_id: str, kind: AssessmentKind) -> str:
    if SessionRepo(session).get(session_id) is None:
        raise SessionNotFoundError(session_id)
    row = AssessmentTypeRepo(session).get_by_kind(kind.value)
    if row is None:
        raise AssessmentTypeNotFoundError(kind.value)
    return row.id


def _store(
    session: Session,
    kind: AssessmentKind,
    data: dict[str, Any],
    responses: dict[str, Any],
    metrics: dict[str, float],
) -> AssessmentResponse:
    with LogContext(session_id=data["session_id"]):
        type_id = _type_id_for(session, data["session_id"], kind)
        response = create_assessment_response_with_metrics(
            session, data["session_id"], type_id, data["task_description"], responses, metrics
        )
        logger.info(f"Recorded {kind.value} response {response.id}")
        return response


@log_operation("record_task_success")
def record_task_success(
    session: Session,
    session_id: str,
    task_description: str,
    successful: bool,
    success_criteria: str,
) -> AssessmentResponse:
    """
    Example:
        >>> record_task_success(s, ev.id, "Complete checkout", True, "Order confirmation shown")
    """
    data = validated(
        TaskSuccessInput,
        {
            "session_id": session_id,
            "task_description": task_description,
            "successful": successful,
            "success_criteria": success_criteria,
        },
        "task_success",
    )
    rate = calculate_single_success_rate(data["successful"])
    return _store(
        session,
        AssessmentKind.TASK_SUCCESS_RATE,
        data,
        {"successful": data["successful"], "successCriteria": data["success_criteria"]},
        {"successRate": rate},
    )


@log_operation("record_time_on_task")
def record_time_on_task(
    session: Session,
    session_id: str,
    task_description: str,
    start_time: datetime | str | None = None,
    end_time: datetime | str | None = None,
    manual_duration_seconds: float | None = None,
) -> AssessmentResponse:
    """Record a duration, either measured from timestamps or entered manually."""
    data = validated(
        TimeOnTaskInput,
        {
            "session_id": session_id,
            "task_description": task_description,
            "start_time": start_time,
            "end_time": end_time,
            "manual_duration_seconds": manual_duration_seconds,
        },
        "time_on_task",
    )
    manual = data["manual_duration_seconds"]
    start = None if manual is not None else data["start_time"]
    end = None if manual is not None else data["end_time"]
    duration = calculate_duration(start, end, manual)
    return _store(
        session,
        AssessmentKind.TIME_ON_TASK,
        data,
        {
            "startTime": start.isoformat() if start else None,
            "endTime": end.isoformat() if end else None,
            "manualDurationSeconds": manual,
            "durationSeconds": duration,
        },
        {"durationSeconds": duration},
    )


@log_operation("record_task_efficiency")
def record_task_efficiency(
    session: Session,
    session_id: str,
    task_description: str,
    optimal_steps: int,
    actual_steps: int,
    optimal_path_definition: str = "",
) -> AssessmentResponse:
    data = validated(
        TaskEfficiencyInput,
        {
            "session_id": session_id,
            "task_description": task_description,
            "optimal_steps": optimal_steps,
            "actual_steps": actual_steps,
            "optimal_path_definition": optimal_path_definition,
        },
        "task_efficiency",
    )
    efficiency = calculate_efficiency(data["optimal_steps"], data["actual_steps"])
    return _store(
        session,
        AssessmentKind.TASK_EFFICIENCY,
        data,
        {
            "optimalPathDefinition": data["optimal_path_definition"],
            "optimalSteps": data["optimal_steps"],
            "actualSteps": data["actual_steps"],
        },
        {"efficiency": efficiency},
    )


@log_operation("record_error_rate")
def record_error_rate(
    session: Session,
    session_id: str,
    task_description: str,
    errors: list[dict[str, Any] | ErrorDetail],
    opportunities: int,
) -> AssessmentResponse:
    """
    Record observed errors against the number of opportunities.

    More errors than opportunities is accepted and yields a rate above 100.
    """
    data = validated(
        ErrorRateInput,
        {
            "session_id": session_id,
            "task_description": task_description,
            "errors": [e.model_dump() if isinstance(e, ErrorDetail) else e for e in errors],
            "opportunities": opportunities,
        },
        "error_rate",
    )
    error_list = [ErrorDetail(**e) for e in data["errors"]]
    error_count = len(error_list)
    rate = calculate_error_rate_from_counts(error_count, data["opportunities"])
    return _store(
        session,
        AssessmentKind.ERROR_RATE,
        data,
        {
            "errorCount": error_count,
            "opportunities": data["opportunities"],
            "errors": data["errors"],
            "errorBreakdown": get_error_breakdown(error_list),
        },
        {"errorRate": rate, "errorCount": error_count, "opportunities": data["opportunities"]},
    )


@log_operation("record_seq_rating")
def record_seq_rating(
    session: Session, session_id: str, task_description: str, rating: int
) -> AssessmentResponse:
    """
    Record a Single Ease Question rating (1-7).

    Raises:
        BusinessLogicError: If the session already rated this task
    """
    data = validated(
        SeqInput,
        {"session_id": session_id, "task_description": task_description, "rating": rating},
        "seq",
    )
    if has_seq_rating_for_task(session, data["session_id"], data["task_description"]):
        raise BusinessLogicError(
            "A SEQ rating has already been recorded for this task in this session.",
            rule="duplicate_seq",
            details={"session_id": data["session_id"], "task": data["task_description"]},
        )
    return _store(
        session,
        AssessmentKind.SEQ,
        data,
        {"rating": data["rating"], "ratingLabel": get_seq_rating_label(data["rating"])},
        {"seqRating": data["rating"]},
    )
