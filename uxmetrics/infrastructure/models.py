from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..domain.models import (
    AssessmentKind,
    AssessmentResponse,
    AssessmentType,
    EvaluationSession,
    Person,
    PersonRole,
    Question,
    ResponseType,
    SessionStatus,
    Study,
    ValidationRule,
)


class Base(DeclarativeBase):
    pass


class StudyORM(Base):
    __tablename__ = "studies"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_id: Mapped[str] = mapped_column(String(255), nullable=False)
    feature_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.now, nullable=False
    )

    def to_domain(self) -> Study:
        return Study(
            id=self.id,
            name=self.name,
            product_id=self.product_id,
            feature_id=self.feature_id,
            archived=self.archived,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PersonORM(Base):
    __tablename__ = "people"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.now, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('participant', 'facilitator', 'observer')", name="ck_person_role"
        ),
    )

    def to_domain(self) -> Person:
        return Person(
            id=self.id, name=self.name, role=PersonRole(self.role), created_at=self.created_at
        )


class EvaluationSessionORM(Base):
    __tablename__ = "sessions"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    study_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    participant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    facilitator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    observer_ids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), default=SessionStatus.IN_PROGRESS.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.now, nullable=False, index=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('in_progress', 'completed')", name="ck_session_status"),
    )

    def to_domain(self) -> EvaluationSession:
        return EvaluationSession(
            id=self.id,
            study_id=self.study_id,
            participant_id=self.participant_id,
            facilitator_id=self.facilitator_id,
            observer_ids=list(self.observer_ids or []),
            created_at=self.created_at,
            status=SessionStatus(self.status),
            completed_at=self.completed_at,
        )


class AssessmentTypeORM(Base):
    __tablename__ = "assessment_types"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    # list of {"id", "text", "responseType", "validationRules": [{"type", "value"}]}
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    def to_domain(self) -> AssessmentType:
        return AssessmentType(
            id=self.id,
            name=self.name,
            kind=AssessmentKind(self.kind),
            questions=[question_from_dict(q) for q in self.questions or []],
        )


class AssessmentResponseORM(Base):
    __tablename__ = "assessment_responses"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    assessment_type_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    task_description: Mapped[str] = mapped_column(Text, nullable=False)
    responses: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    calculated_metrics: Mapped[dict[str, float]] = mapped_column(
        JSON, default=dict, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.now, nullable=False
    )

    def to_domain(self) -> AssessmentResponse:
        return AssessmentResponse(
            id=self.id,
            session_id=self.session_id,
            assessment_type_id=self.assessment_type_id,
            task_description=self.task_description,
            responses=dict(self.responses or {}),
            calculated_metrics=dict(self.calculated_metrics or {}),
            created_at=self.created_at,
        )


def question_from_dict(data: dict[str, Any]) -> Question:
    return Question(
        id=data["id"],
        text=data["text"],
        response_type=ResponseType(data.get("responseType", "text")),
        validation=[
            ValidationRule(type=rule["type"], value=rule.get("value"))
            for rule in data.get("validationRules") or []
        ],
    )


def question_to_dict(question: Question) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": question.id,
        "text": question.text,
        "responseType": question.response_type.value,
    }
    if question.validation:
        data["validationRules"] = [
            {"type": r.type, "value": r.value} for r in question.validation
        ]
    return data
