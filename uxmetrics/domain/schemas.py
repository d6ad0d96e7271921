"""
Pydantic schemas for input validation across the application.

Every create/update/record operation in the application layer validates its
arguments through one of these schemas before touching the store.
"""

from __future__ import annotations

import re
from datetime import datetime
from html import unescape
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .models import ErrorType, PersonRole, ResponseType, SessionStatus


class BaseValidationSchema(BaseModel):
    """Base schema with common validation utilities."""

    model_config = ConfigDict(
        str_strip_whitespace=True, validate_assignment=True, use_enum_values=True
    )

    @field_validator("*", mode="before")
    def sanitize_strings(cls, v):
        """Strip markup and control characters from free-text inputs."""
        if isinstance(v, str):
            cleaned = unescape(v.strip())
            cleaned = re.sub(
                r"<\s*script[^>]*>.*?<\s*/\s*script\s*>",
                "",
                cleaned,
                flags=re.IGNORECASE | re.DOTALL,
            )
            cleaned = re.sub(r"<\s*/?\s*[a-zA-Z][^<>]*>", "", cleaned)
            cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", cleaned)
            return cleaned
        return v


def _required_text(value: str, label: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{label} is required.")
    return value.strip()


def _optional_text(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


# ----- studies & people -----


class StudyInput(BaseValidationSchema):
    """Validation schema for creating a study."""

    name: str = Field(..., max_length=255)
    product_id: str = Field(..., max_length=255)
    feature_id: str | None = Field(None, max_length=255)

    @field_validator("name")
    def validate_name(cls, v):
        return _required_text(v, "Study name")

    @field_validator("product_id")
    def validate_product(cls, v):
        return _required_text(v, "Product ID")

    @field_validator("feature_id")
    def validate_feature(cls, v):
        return _optional_text(v)


class StudyUpdateInput(BaseValidationSchema):
    """Partial update of a study; ``None`` leaves a field unchanged."""

    name: str | None = Field(None, max_length=255)
    product_id: str | None = Field(None, max_length=255)
    feature_id: str | None = Field(None, max_length=255)
    archived: bool | None = None

    @field_validator("name", "product_id")
    def validate_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Value cannot be empty.")
        return v


class PersonInput(BaseValidationSchema):
    name: str = Field(..., max_length=255)
    role: PersonRole

    @field_validator("name")
    def validate_name(cls, v):
        return _required_text(v, "Name")


class PersonUpdateInput(BaseValidationSchema):
    name: str | None = Field(None, max_length=255)
    role: PersonRole | None = None

    @field_validator("name")
    def validate_name(cls, v):
        if v is not None:
            return _required_text(v, "Name")
        return v


# ----- sessions -----


class SessionInput(BaseValidationSchema):
    """Validation schema for creating an evaluation session."""

    study_id: str
    participant_id: str
    facilitator_id: str
    observer_ids: list[str] = Field(default_factory=list)
    scheduled_at: datetime | None = None

    @field_validator("study_id")
    def validate_study(cls, v):
        return _required_text(v, "Study")

    @field_validator("participant_id")
    def validate_participant(cls, v):
        return _required_text(v, "Participant")

    @field_validator("facilitator_id")
    def validate_facilitator(cls, v):
        return _required_text(v, "Facilitator")

    @field_validator("observer_ids")
    def drop_blank_observers(cls, v: list[str]) -> list[str]:
        return [o.strip() for o in v if o and o.strip()]


class SessionUpdateInput(BaseValidationSchema):
    participant_id: str | None = None
    facilitator_id: str | None = None
    observer_ids: list[str] | None = None
    status: SessionStatus | None = None

    @field_validator("observer_ids")
    def drop_blank_observers(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return [o.strip() for o in v if o and o.strip()]


# ----- assessment types -----


class ValidationRuleInput(BaseValidationSchema):
    type: str
    value: Any = None

    @field_validator("type")
    def validate_rule_type(cls, v):
        allowed = {"min", "max", "minLength", "maxLength", "pattern", "required"}
        if v not in allowed:
            raise ValueError(f"Unknown validation rule '{v}'")
        return v


class QuestionInput(BaseValidationSchema):
    id: str | None = None
    text: str = Field(..., max_length=1000)
    response_type: ResponseType
    validation: list[ValidationRuleInput] = Field(default_factory=list)

    @field_validator("text")
    def validate_text(cls, v):
        return _required_text(v, "Question text")


# ----- responses -----


class AssessmentResponseInput(BaseValidationSchema):
    """Generic response payload; the instrument recorders build these."""

    session_id: str
    assessment_type_id: str
    task_description: str = Field(..., max_length=1000)
    responses: dict[str, Any] = Field(default_factory=dict)
    calculated_metrics: dict[str, float] = Field(default_factory=dict)

    @field_validator("session_id")
    def validate_session(cls, v):
        return _required_text(v, "Session")

    @field_validator("assessment_type_id")
    def validate_type(cls, v):
        return _required_text(v, "Assessment type")

    @field_validator("task_description")
    def validate_task(cls, v):
        return _required_text(v, "Task description")


class _TaskInput(BaseValidationSchema):
    session_id: str
    task_description: str = Field(..., max_length=1000)

    @field_validator("session_id")
    def validate_session(cls, v):
        return _required_text(v, "Session")

    @field_validator("task_description")
    def validate_task(cls, v):
        return _required_text(v, "Task description")


class TaskSuccessInput(_TaskInput):
    successful: bool
    success_criteria: str = Field(..., max_length=2000)

    @field_validator("success_criteria")
    def validate_criteria(cls, v):
        return _required_text(v, "Success criteria")


class TimeOnTaskInput(_TaskInput):
    """Either a manual duration or both timestamps must be given."""

    start_time: datetime | None = None
    end_time: datetime | None = None
    manual_duration_seconds: float | None = Field(None, ge=0)

    @model_validator(mode="after")
    def validate_timing(self):
        if self.manual_duration_seconds is not None:
            return self
        if self.start_time is None or self.end_time is None:
            raise ValueError("Provide a manual duration or both start and end times.")
        if self.end_time < self.start_time:
            raise ValueError("End time must be after start time.")
        return self


class TaskEfficiencyInput(_TaskInput):
    optimal_path_definition: str = Field("", max_length=2000)
    optimal_steps: int = Field(..., ge=0)
    actual_steps: int = Field(..., ge=1)


class ErrorDetail(BaseValidationSchema):
    type: ErrorType
    description: str = Field("", max_length=1000)


class ErrorRateInput(_TaskInput):
    """Errors may exceed opportunities; only opportunities must be positive."""

    errors: list[ErrorDetail] = Field(default_factory=list)
    opportunities: int = Field(..., ge=1)


class SeqInput(_TaskInput):
    rating: int = Field(..., ge=1, le=7)


# ----- validation results -----


class ValidationErrorDetail(BaseModel):
    field: str
    message: str
    value: Any = None


class ValidationResponse(BaseModel):
    success: bool
    errors: list[ValidationErrorDetail] = []
    data: dict[str, Any] | None = None


def validate_input(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationResponse:
    """
    Validate ``data`` against ``schema_class`` and return a structured result.

    Example:
        >>> result = validate_input(StudyInput, {"name": "Checkout", "product_id": "shop"})
        >>> result.success
        True
    """
    try:
        validated = schema_class(**data)
        return ValidationResponse(success=True, data=validated.model_dump())
    except ValidationError as e:
        errors = [
            ValidationErrorDetail(
                field=".".join(str(x) for x in error["loc"]) or "general",
                message=error["msg"],
                value=error.get("input"),
            )
            for error in e.errors()
        ]
        return ValidationResponse(success=False, errors=errors)
