# uxmetrics/infrastructure/repositories_session.py
from __future__ import annotations

import builtins
from datetime import datetime

from sqlalchemy.orm import Session

from .logging import log_database_operation as log_op
from .models import EvaluationSessionORM
from .repositories_base import BaseRepository as GenericBaseRepository


class SessionRepo(GenericBaseRepository[EvaluationSessionORM]):
    """
    Repository for evaluation sessions.

    Example:
        >>> repo = SessionRepo(session)
        >>> repo.list_by_study("study-1")
    """

    model = EvaluationSessionORM
    id_prefix = "session"

    def __init__(self, session: Session):
        super().__init__(session)

    # -------- Read --------

    @log_op("session.get")
    def get(self, id_: str) -> EvaluationSessionORM | None:
        return super().get(id_)

    @log_op("session.list_all")
    def list_all(self, newest_first: bool = False) -> builtins.list[EvaluationSessionORM]:
        order = EvaluationSessionORM.created_at
        return self.list(order_by=[order.desc() if newest_first else order])

    @log_op("session.list_by_study")
    def list_by_study(
        self, study_id: str, newest_first: bool = False
    ) -> builtins.list[EvaluationSessionORM]:
        order = EvaluationSessionORM.created_at
        return self.list(
            EvaluationSessionORM.study_id == study_id,
            order_by=[order.desc() if newest_first else order],
        )

    @log_op("session.filter")
    def filter(
        self,
        study_id: str | None = None,
        participant_id: str | None = None,
        facilitator_id: str | None = None,
        status: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> builtins.list[EvaluationSessionORM]:
        """All given criteria combine with AND; bounds are inclusive."""
        criteria = []
        if study_id:
            criteria.append(EvaluationSessionORM.study_id == study_id)
        if participant_id:
            criteria.append(EvaluationSessionORM.participant_id == participant_id)
        if facilitator_id:
            criteria.append(EvaluationSessionORM.facilitator_id == facilitator_id)
        if status:
            criteria.append(EvaluationSessionORM.status == status)
        if date_from is not None:
            criteria.append(EvaluationSessionORM.created_at >= date_from)
        if date_to is not None:
            criteria.append(EvaluationSessionORM.created_at <= date_to)
        return self.list(*criteria, order_by=[EvaluationSessionORM.created_at])

    @log_op("session.list_by_status")
    def list_by_status(self, status: str) -> builtins.list[EvaluationSessionORM]:
        return self.list(EvaluationSessionORM.status == status)

    @log_op("session.count_by_study")
    def count_by_study(self, study_id: str) -> int:
        return self.count(EvaluationSessionORM.study_id == study_id)

    @log_op("session.unique_participants")
    def unique_participants(self, study_id: str) -> builtins.list[str]:
        rows = (
            self.s.query(EvaluationSessionORM.participant_id)
            .filter(EvaluationSessionORM.study_id == study_id)
            .distinct()
            .all()
        )
        return sorted(participant_id for (participant_id,) in rows)

    # -------- Write --------

    @log_op("session.create")
    def create(self, **fields) -> EvaluationSessionORM:
        return super().create(**fields)

    @log_op("session.update")
    def update(self, obj: EvaluationSessionORM, **fields) -> EvaluationSessionORM:
        return super().update(obj, **fields)

    @log_op("session.delete")
    def delete(self, obj: EvaluationSessionORM) -> None:
        super().delete(obj)
