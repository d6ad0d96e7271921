# uxmetrics/infrastructure/repositories_assessment.py
from __future__ import annotations

import builtins

from sqlalchemy.orm import Session

from .logging import log_database_operation as log_op
from .models import AssessmentResponseORM, AssessmentTypeORM
from .repositories_base import BaseRepository as GenericBaseRepository


class AssessmentTypeRepo(GenericBaseRepository[AssessmentTypeORM]):
    """Repository for the five instrument definitions."""

    model = AssessmentTypeORM
    id_prefix = "assessment-type"

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("assessment_type.get")
    def get(self, id_: str) -> AssessmentTypeORM | None:
        return super().get(id_)

    @log_op("assessment_type.get_by_kind")
    def get_by_kind(self, kind: str) -> AssessmentTypeORM | None:
        return self.s.query(AssessmentTypeORM).filter_by(kind=kind).one_or_none()

    @log_op("assessment_type.list_all")
    def list_all(self) -> builtins.list[AssessmentTypeORM]:
        return self.list(order_by=[AssessmentTypeORM.name])

    @log_op("assessment_type.create")
    def create(self, **fields) -> AssessmentTypeORM:
        return super().create(**fields)

    @log_op("assessment_type.update")
    def update(self, obj: AssessmentTypeORM, **fields) -> AssessmentTypeORM:
        return super().update(obj, **fields)


class AssessmentResponseRepo(GenericBaseRepository[AssessmentResponseORM]):
    """
    Repository for recorded instrument responses.

    Example:
        >>> repo = AssessmentResponseRepo(session)
        >>> repo.list_by_session("session-1")
    """

    model = AssessmentResponseORM
    id_prefix = "assessment-response"

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("response.get")
    def get(self, id_: str) -> AssessmentResponseORM | None:
        return super().get(id_)

    @log_op("response.list_all")
    def list_all(self, newest_first: bool = False) -> builtins.list[AssessmentResponseORM]:
        order = AssessmentResponseORM.created_at
        return self.list(order_by=[order.desc() if newest_first else order])

    @log_op("response.list_by_session")
    def list_by_session(
        self, session_id: str, newest_first: bool = False
    ) -> builtins.list[AssessmentResponseORM]:
        order = AssessmentResponseORM.created_at
        return self.list(
            AssessmentResponseORM.session_id == session_id,
            order_by=[order.desc() if newest_first else order],
        )

    @log_op("response.list_by_type")
    def list_by_type(self, assessment_type_id: str) -> builtins.list[AssessmentResponseORM]:
        return self.list(
            AssessmentResponseORM.assessment_type_id == assessment_type_id,
            order_by=[AssessmentResponseORM.created_at],
        )

    @log_op("response.filter")
    def filter(
        self, session_id: str | None = None, assessment_type_id: str | None = None
    ) -> builtins.list[AssessmentResponseORM]:
        criteria = []
        if session_id:
            criteria.append(AssessmentResponseORM.session_id == session_id)
        if assessment_type_id:
            criteria.append(AssessmentResponseORM.assessment_type_id == assessment_type_id)
        return self.list(*criteria, order_by=[AssessmentResponseORM.created_at])

    @log_op("response.count_by_session")
    def count_by_session(self, session_id: str) -> int:
        return self.count(AssessmentResponseORM.session_id == session_id)

    @log_op("response.create")
    def create(self, **fields) -> AssessmentResponseORM:
        return super().create(**fields)

    @log_op("response.update")
    def update(self, obj: AssessmentResponseORM, **fields) -> AssessmentResponseORM:
        return super().update(obj, **fields)

    @log_op("response.delete")
    def delete(self, obj: AssessmentResponseORM) -> None:
        super().delete(obj)
