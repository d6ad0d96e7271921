# uxmetrics/infrastructure/repositories_person.py
from __future__ import annotations

import builtins

from sqlalchemy.orm import Session

from .logging import log_database_operation as log_op
from .models import EvaluationSessionORM, PersonORM
from .repositories_base import BaseRepository as GenericBaseRepository


class PersonRepo(GenericBaseRepository[PersonORM]):
    """Repository for participants, facilitators and observers."""

    model = PersonORM
    id_prefix = "person"

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("person.get")
    def get(self, id_: str) -> PersonORM | None:
        return super().get(id_)

    @log_op("person.list_all")
    def list_all(self) -> builtins.list[PersonORM]:
        return self.list(order_by=[PersonORM.name])

    @log_op("person.list_by_role")
    def list_by_role(self, role: str) -> builtins.list[PersonORM]:
        return self.list(PersonORM.role == role, order_by=[PersonORM.name])

    @log_op("person.is_referenced")
    def is_referenced(self, person_id: str) -> bool:
        """True when any session names the person as participant, facilitator or observer."""
        direct = self.s.query(EvaluationSessionORM).filter(
            (EvaluationSessionORM.participant_id == person_id)
            | (EvaluationSessionORM.facilitator_id == person_id)
        )
        if self.s.query(direct.exists()).scalar():
            return True
        # observer_ids is a JSON list; scan in Python to stay backend-neutral
        observer_lists = self.s.query(EvaluationSessionORM.observer_ids).all()
        return any(person_id in (ids or []) for (ids,) in observer_lists)

    @log_op("person.create")
    def create(self, **fields) -> PersonORM:
        return super().create(**fields)

    @log_op("person.update")
    def update(self, obj: PersonORM, **fields) -> PersonORM:
        return super().update(obj, **fields)

    @log_op("person.delete")
    def delete(self, obj: PersonORM) -> None:
        super().delete(obj)
