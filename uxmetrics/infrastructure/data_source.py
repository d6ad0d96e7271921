"""Read-only adapter that feeds the analytics core from the local store."""

from __future__ import annotations

from sqlalchemy.orm import Session

from ..domain.models import AssessmentKind, AssessmentResponse, AssessmentType, EvaluationSession
from .repositories import Repositories


class RepositoryMetricsSource:
    """
    ``MetricsDataSource`` backed by the SQLAlchemy repositories.

    Example:
        >>> service = AnalyticsService(RepositoryMetricsSource(session))
    """

    def __init__(self, session: Session):
        self.repos = Repositories(session)

    def get_sessions_for_study(self, study_id: str) -> list[EvaluationSession]:
        return [row.to_domain() for row in self.repos.sessions.list_by_study(study_id)]

    def get_responses_for_session(self, session_id: str) -> list[AssessmentResponse]:
        return [row.to_domain() for row in self.repos.responses.list_by_session(session_id)]

    def get_assessment_type_by_kind(self, kind: AssessmentKind) -> AssessmentType | None:
        row = self.repos.assessment_types.get_by_kind(kind.value)
        return row.to_domain() if row is not None else None

    def get_all_responses(self) -> list[AssessmentResponse]:
        return [row.to_domain() for row in self.repos.responses.list_all()]
