# uxmetrics/infrastructure/repositories_study.py
from __future__ import annotations

import builtins

from sqlalchemy.orm import Session

from .logging import log_database_operation as log_op
from .models import StudyORM
from .repositories_base import BaseRepository as GenericBaseRepository


class StudyRepo(GenericBaseRepository[StudyORM]):
    """
    Repository for studies.

    Example:
        >>> repo = StudyRepo(session)
        >>> active = repo.list_active()
    """

    model = StudyORM
    id_prefix = "study"

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("study.get")
    def get(self, id_: str) -> StudyORM | None:
        return super().get(id_)

    @log_op("study.list_all")
    def list_all(self) -> builtins.list[StudyORM]:
        return self.list(order_by=[StudyORM.created_at.desc()])

    @log_op("study.list_by_archived")
    def list_by_archived(self, archived: bool) -> builtins.list[StudyORM]:
        return self.list(StudyORM.archived.is_(archived), order_by=[StudyORM.created_at.desc()])

    def list_active(self) -> builtins.list[StudyORM]:
        return self.list_by_archived(False)

    def list_archived(self) -> builtins.list[StudyORM]:
        return self.list_by_archived(True)

    @log_op("study.create")
    def create(self, **fields) -> StudyORM:
        return super().create(**fields)

    @log_op("study.update")
    def update(self, obj: StudyORM, **fields) -> StudyORM:
        return super().update(obj, **fields)

    @log_op("study.delete")
    def delete(self, obj: StudyORM) -> None:
        super().delete(obj)
