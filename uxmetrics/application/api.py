"""
Application API for studies, people and evaluation sessions.

Every function takes an open SQLAlchemy ``Session`` as its first argument and
leaves committing to the caller (see ``UnitOfWork``). Results are returned as
domain dataclasses.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.models import EvaluationSession, Person, PersonRole, SessionStatus, Study
from ..domain.schemas import (
    PersonInput,
    PersonUpdateInput,
    SessionInput,
    SessionUpdateInput,
    StudyInput,
    StudyUpdateInput,
    validate_input,
)
from ..infrastructure.exceptions import (
    BusinessLogicError,
    PersonNotFoundError,
    SessionNotFoundError,
    StudyNotFoundError,
    ValidationError,
    handle_database_error,
    log_error_details,
)
from ..infrastructure.logging import get_logger, log_operation, set_context
from ..infrastructure.models import EvaluationSessionORM, PersonORM, StudyORM
from ..infrastructure.repositories import PersonRepo, SessionRepo, StudyRepo

logger = get_logger(__name__)


def validated(schema_class: type[BaseModel], data: dict[str, Any], field: str) -> dict[str, Any]:
    """Run ``validate_input`` and raise ``ValidationError`` on failure."""
    result = validate_input(schema_class, data)
    if not result.success or result.data is None:
        error_msg = "; ".join(f"{e.field}: {e.message}" for e in result.errors)
        logger.warning(f"Validation failed for {field}: {error_msg}")
        raise ValidationError(field, error_msg)
    return result.data


def _end_of_day(value: date | datetime) -> datetime:
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.max)


def _start_of_day(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


# ----------------------------------------------------------------------------
# Studies
# ----------------------------------------------------------------------------


def _require_study(session: Session, study_id: str) -> StudyORM:
    study = StudyRepo(session).get(study_id)
    if study is None:
        raise StudyNotFoundError(study_id)
    return study


@log_operation("create_study")
def create_study(
    session: Session, name: str, product_id: str, feature_id: str | None = None
) -> Study:
    """
    Create a study; names and identifiers are trimmed, a blank feature becomes ``None``.

    Raises:
        ValidationError: If name or product identifier is empty

    Example:
        >>> study = create_study(s, "Checkout Flow", "shop-app", "checkout-v2")
        >>> study.archived
        False
    """
    data = validated(
        StudyInput, {"name": name, "product_id": product_id, "feature_id": feature_id}, "study"
    )
    now = datetime.now()
    try:
        row = StudyRepo(session).create(
            name=data["name"],
            product_id=data["product_id"],
            feature_id=data["feature_id"],
            archived=False,
            created_at=now,
            updated_at=now,
        )
    except SQLAlchemyError as e:
        logger.error("Failed to create study", extra=log_error_details(e, {"name": name}))
        raise handle_database_error(e, "create study") from e

    logger.info(f"Created study '{row.name}' with ID {row.id}")
    return row.to_domain()


def get_study(session: Session, study_id: str) -> Study | None:
    row = StudyRepo(session).get(study_id)
    return row.to_domain() if row else None


def list_studies(session: Session) -> list[Study]:
    return [row.to_domain() for row in StudyRepo(session).list_all()]


def list_active_studies(session: Session) -> list[Study]:
    return [row.to_domain() for row in StudyRepo(session).list_active()]


def list_archived_studies(session: Session) -> list[Study]:
    return [row.to_domain() for row in StudyRepo(session).list_archived()]


@log_operation("update_study")
def update_study(session: Session, study_id: str, **updates: Any) -> Study:
    """
    Apply a partial update; ``id`` and ``created_at`` never change and
    ``updated_at`` is refreshed.

    Example:
        >>> update_study(s, study.id, name="Checkout Flow v2")
    """
    data = validated(StudyUpdateInput, updates, "study")
    row = _require_study(session, study_id)

    fields = {
        k: v for k, v in data.items() if k in updates and k != "feature_id" and v is not None
    }
    if "feature_id" in updates:
        fields["feature_id"] = data["feature_id"] or None
    fields["updated_at"] = datetime.now()

    try:
        StudyRepo(session).update(row, **fields)
    except SQLAlchemyError as e:
        raise handle_database_error(e, "update study") from e
    return row.to_domain()


def archive_study(session: Session, study_id: str) -> Study:
    return update_study(session, study_id, archived=True)


def unarchive_study(session: Session, study_id: str) -> Study:
    return update_study(session, study_id, archived=False)


@log_operation("delete_study")
def delete_study(session: Session, study_id: str) -> None:
    """Permanently remove a study. Its sessions are left in place."""
    row = _require_study(session, study_id)
    StudyRepo(session).delete(row)
    logger.info(f"Deleted study {study_id}")


def get_studies_for_dropdown(
    session: Session, include_archived: bool = False
) -> list[dict[str, str]]:
    studies = list_studies(session) if include_archived else list_active_studies(session)
    return [{"id": s.id, "label": s.name} for s in studies]


# ----------------------------------------------------------------------------
# People
# ----------------------------------------------------------------------------


def _require_person(session: Session, person_id: str) -> PersonORM:
    person = PersonRepo(session).get(person_id)
    if person is None:
        raise PersonNotFoundError(person_id)
    return person


@log_operation("create_person")
def create_person(session: Session, name: str, role: PersonRole | str) -> Person:
    data = validated(PersonInput, {"name": name, "role": role}, "person")
    try:
        row = PersonRepo(session).create(
            name=data["name"], role=data["role"], created_at=datetime.now()
        )
    except SQLAlchemyError as e:
        raise handle_database_error(e, "create person") from e

    logger.info(f"Created {row.role} '{row.name}' with ID {row.id}")
    return row.to_domain()


def get_person(session: Session, person_id: str) -> Person | None:
    row = PersonRepo(session).get(person_id)
    return row.to_domain() if row else None


def list_people(session: Session) -> list[Person]:
    return [row.to_domain() for row in PersonRepo(session).list_all()]


def list_people_by_role(session: Session, role: PersonRole | str) -> list[Person]:
    return [row.to_domain() for row in PersonRepo(session).list_by_role(PersonRole(role).value)]


@log_operation("update_person")
def update_person(session: Session, person_id: str, **updates: Any) -> Person:
    data = validated(PersonUpdateInput, updates, "person")
    row = _require_person(session, person_id)
    fields = {k: v for k, v in data.items() if k in updates and v is not None}
    PersonRepo(session).update(row, **fields)
    return row.to_domain()


def is_person_referenced(session: Session, person_id: str) -> bool:
    return PersonRepo(session).is_referenced(person_id)


@log_operation("delete_person")
def delete_person(session: Session, person_id: str) -> None:
    """
    Delete a person who is not named on any session.

    Raises:
        PersonNotFoundError: If the person does not exist
        BusinessLogicError: If any session still references the person
    """
    repo = PersonRepo(session)
    row = _require_person(session, person_id)
    if repo.is_referenced(person_id):
        raise BusinessLogicError(
            f'Cannot delete "{row.name}". This person is referenced by one or more sessions. '
            "Remove them from all sessions before deleting.",
            rule="person_referenced",
            details={"person_id": person_id},
        )
    repo.delete(row)
    logger.info(f"Deleted person {person_id}")


def get_people_for_dropdown(
    session: Session, role: PersonRole | str | None = None
) -> list[dict[str, str]]:
    people = list_people_by_role(session, role) if role else list_people(session)
    return [{"id": p.id, "label": p.name} for p in people]


# ----------------------------------------------------------------------------
# Evaluation sessions
# ----------------------------------------------------------------------------


def _require_session(session: Session, session_id: str) -> EvaluationSessionORM:
    row = SessionRepo(session).get(session_id)
    if row is None:
        raise SessionNotFoundError(session_id)
    return row


@log_operation("create_session")
def create_session(
    session: Session,
    study_id: str,
    participant_id: str,
    facilitator_id: str,
    observer_ids: list[str] | None = None,
    scheduled_at: datetime | None = None,
) -> EvaluationSession:
    """
    Start an evaluation session.

    ``scheduled_at`` becomes the session's ``created_at`` when given. Observer
    ids are trimmed and blanks dropped.

    Example:
        >>> ev = create_session(s, study.id, alice.id, emma.id, observer_ids=[grace.id])
        >>> ev.status
        <SessionStatus.IN_PROGRESS: 'in_progress'>
    """
    data = validated(
        SessionInput,
        {
            "study_id": study_id,
            "participant_id": participant_id,
            "facilitator_id": facilitator_id,
            "observer_ids": observer_ids or [],
            "scheduled_at": scheduled_at,
        },
        "session",
    )
    set_context(study_id=data["study_id"])
    try:
        row = SessionRepo(session).create(
            study_id=data["study_id"],
            participant_id=data["participant_id"],
            facilitator_id=data["facilitator_id"],
            observer_ids=data["observer_ids"],
            created_at=data["scheduled_at"] or datetime.now(),
            completed_at=None,
            status=SessionStatus.IN_PROGRESS.value,
        )
    except SQLAlchemyError as e:
        raise handle_database_error(e, "create session") from e

    logger.info(f"Created session {row.id} for study {row.study_id}")
    return row.to_domain()


def get_session(session: Session, session_id: str) -> EvaluationSession | None:
    row = SessionRepo(session).get(session_id)
    return row.to_domain() if row else None


def list_sessions(session: Session) -> list[EvaluationSession]:
    return [row.to_domain() for row in SessionRepo(session).list_all()]


def list_sessions_by_study(session: Session, study_id: str) -> list[EvaluationSession]:
    return [row.to_domain() for row in SessionRepo(session).list_by_study(study_id)]


def list_sessions_by_status(
    session: Session, status: SessionStatus | str
) -> list[EvaluationSession]:
    rows = SessionRepo(session).list_by_status(SessionStatus(status).value)
    return [row.to_domain() for row in rows]


def filter_sessions(
    session: Session,
    study_id: str | None = None,
    participant_id: str | None = None,
    facilitator_id: str | None = None,
    status: SessionStatus | str | None = None,
    date_from: date | datetime | None = None,
    date_to: date | datetime | None = None,
) -> list[EvaluationSession]:
    """Sessions matching every given criterion; ``date_to`` includes its whole day."""
    rows = SessionRepo(session).filter(
        study_id=study_id,
        participant_id=participant_id,
        facilitator_id=facilitator_id,
        status=SessionStatus(status).value if status else None,
        date_from=_start_of_day(date_from) if date_from is not None else None,
        date_to=_end_of_day(date_to) if date_to is not None else None,
    )
    return [row.to_domain() for row in rows]


@log_operation("update_session")
def update_session(session: Session, session_id: str, **updates: Any) -> EvaluationSession:
    """
    Partially update a session; ``id`` and ``created_at`` never change.

    Setting ``status`` keeps ``completed_at`` consistent with it.
    """
    data = validated(SessionUpdateInput, updates, "session")
    row = _require_session(session, session_id)

    fields = {k: v for k, v in data.items() if k in updates and v is not None}
    if "status" in fields:
        if fields["status"] == SessionStatus.COMPLETED.value:
            fields["completed_at"] = row.completed_at or datetime.now()
        else:
            fields["completed_at"] = None

    SessionRepo(session).update(row, **fields)
    return row.to_domain()


@log_operation("complete_session")
def complete_session(session: Session, session_id: str) -> EvaluationSession:
    """
    Mark a session completed and stamp ``completed_at``.

    Raises:
        SessionNotFoundError: If the session does not exist
        BusinessLogicError: If the session is already completed
    """
    row = _require_session(session, session_id)
    if row.status == SessionStatus.COMPLETED.value:
        raise BusinessLogicError("Session is already completed.", rule="session_completed")

    SessionRepo(session).update(
        row, status=SessionStatus.COMPLETED.value, completed_at=datetime.now()
    )
    logger.info(f"Completed session {session_id}")
    return row.to_domain()


@log_operation("delete_session")
def delete_session(session: Session, session_id: str) -> None:
    row = _require_session(session, session_id)
    SessionRepo(session).delete(row)


def get_sessions_for_display(
    session: Session, study_id: str | None = None
) -> list[EvaluationSession]:
    """Sessions newest first, optionally for one study."""
    repo = SessionRepo(session)
    if study_id:
        rows = repo.list_by_study(study_id, newest_first=True)
    else:
        rows = repo.list_all(newest_first=True)
    return [row.to_domain() for row in rows]


def get_session_count_by_study(session: Session, study_id: str) -> int:
    return SessionRepo(session).count_by_study(study_id)


def get_unique_participants_by_study(session: Session, study_id: str) -> list[str]:
    return SessionRepo(session).unique_participants(study_id)
