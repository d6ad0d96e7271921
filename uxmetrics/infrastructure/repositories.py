"""
Repository entry point.

Re-exports the per-entity repositories so callers can write
``from uxmetrics.infrastructure.repositories import SessionRepo``, and
provides ``Repositories``, a bundle of all of them bound to one session.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from .repositories_assessment import AssessmentResponseRepo, AssessmentTypeRepo
from .repositories_base import generate_id
from .repositories_person import PersonRepo
from .repositories_session import SessionRepo
from .repositories_study import StudyRepo

__all__ = [
    "AssessmentResponseRepo",
    "AssessmentTypeRepo",
    "PersonRepo",
    "Repositories",
    "SessionRepo",
    "StudyRepo",
    "generate_id",
]


class Repositories:
    """
    All repositories sharing one SQLAlchemy session.

    Example:
        >>> repos = Repositories(session)
        >>> repos.sessions.list_by_study("study-1")
    """

    def __init__(self, session: Session):
        self.session = session
        self.studies = StudyRepo(session)
        self.people = PersonRepo(session)
        self.sessions = SessionRepo(session)
        self.assessment_types = AssessmentTypeRepo(session)
        self.responses = AssessmentResponseRepo(session)

    def clear_all(self) -> dict[str, int]:
        """Remove every stored row; returns per-table counts."""
        return {
            "assessmentResponses": self.responses.clear(),
            "sessions": self.sessions.clear(),
            "assessmentTypes": self.assessment_types.clear(),
            "people": self.people.clear(),
            "studies": self.studies.clear(),
        }

    def is_empty(self) -> bool:
        return all(
            repo.count() == 0
            for repo in (self.studies, self.people, self.sessions, self.responses)
        )
