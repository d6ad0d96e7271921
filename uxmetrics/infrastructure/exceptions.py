"""
Custom exception classes for the UX metrics application.

Provides structured error handling with user-friendly messages and proper
error categorization for the CRUD, export and import layers. The analytics
core itself never raises for missing data; it degrades to ``None``.
"""

from __future__ import annotations

from typing import Any


class UXMetricsError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        """Provide a user-friendly version of the error message."""
        return "An unexpected error occurred. Please try again."

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ValidationError(UXMetricsError):
    """Raised when input validation fails."""

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=f"Invalid {field.replace('_', ' ')}: {message}",
        )

    def _get_default_user_message(self) -> str:
        return f"Please check your input for {self.field.replace('_', ' ')} and try again."


class DatabaseError(UXMetricsError):
    """Raised when storage operations fail."""

    def __init__(self, message: str, operation: str, details: dict[str, Any] | None = None):
        self.operation = operation
        super().__init__(
            message=f"Database error during {operation}: {message}",
            details=details or {"operation": operation},
            user_message="A storage error occurred. Please try again in a moment.",
        )


class ConnectionError(DatabaseError):
    """Raised when the local store cannot be opened."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, operation="connection", details=details)

    def _get_default_user_message(self) -> str:
        return "Local storage is not available. Data will not persist."


class IntegrityError(DatabaseError):
    """Raised when storage integrity constraints are violated."""

    def __init__(
        self,
        message: str,
        constraint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.constraint = constraint
        super().__init__(
            message=message,
            operation="integrity_check",
            details=details or {"constraint": constraint},
        )
        self.user_message = self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        if self.constraint:
            if "unique" in self.constraint.lower():
                return "An item with this id already exists. Use update to modify existing items."
            elif "foreign" in self.constraint.lower():
                return "Referenced item no longer exists. Please refresh and try again."
        return "Data integrity error. Please check your input and try again."


class NotFoundError(UXMetricsError):
    """Raised when an entity lookup by id finds nothing."""

    entity = "Item"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(
            message=f'{self.entity} with id "{entity_id}" not found.',
            details={"id": entity_id, "entity": self.entity},
        )

    def _get_default_user_message(self) -> str:
        return f"The selected {self.entity.lower()} could not be found. Please refresh and try again."


class StudyNotFoundError(NotFoundError):
    entity = "Study"


class SessionNotFoundError(NotFoundError):
    entity = "Session"


class PersonNotFoundError(NotFoundError):
    entity = "Person"


class AssessmentTypeNotFoundError(NotFoundError):
    entity = "Assessment type"


class AssessmentResponseNotFoundError(NotFoundError):
    entity = "Assessment response"


class QuestionNotFoundError(NotFoundError):
    entity = "Question"


class BusinessLogicError(UXMetricsError):
    """Raised when business rules are violated."""

    def __init__(
        self, message: str, rule: str | None = None, details: dict[str, Any] | None = None
    ):
        self.rule = rule
        super().__init__(
            message=message,
            details=details or {"rule": rule},
            user_message=message,
        )


class ExportError(UXMetricsError):
    """Raised when report or data export fails."""

    def __init__(
        self,
        message: str,
        export_format: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.export_format = export_format
        super().__init__(
            message=message,
            details=details or {"export_format": export_format},
            user_message="Export failed. Please try again or choose a different format.",
        )


class DataImportError(UXMetricsError):
    """Raised when a backup file cannot be imported."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.file_path = file_path
        super().__init__(
            message=message,
            details=details or {"file_path": file_path},
            user_message=message,
        )


def handle_database_error(e: Exception, operation: str = "database operation") -> DatabaseError:
    """
    Convert generic database exceptions to appropriate custom exceptions.

    Args:
        e: The original exception
        operation: Description of the operation that failed

    Returns:
        Appropriate DatabaseError subclass

    Example:
        >>> try:
        ...     session.commit()
        >>> except Exception as e:
        ...     raise handle_database_error(e, "commit transaction")
    """
    error_msg = str(e).lower()

    if "unable to open" in error_msg or "timeout" in error_msg:
        return ConnectionError(str(e))
    elif "unique constraint" in error_msg or "duplicate" in error_msg:
        return IntegrityError(str(e), constraint="unique")
    elif "foreign key" in error_msg or "foreign_key" in error_msg:
        return IntegrityError(str(e), constraint="foreign_key")
    elif "check constraint" in error_msg:
        return IntegrityError(str(e), constraint="check")
    else:
        return DatabaseError(str(e), operation)


def create_user_friendly_error_message(error: Exception) -> str:
    """
    Create a user-friendly error message from any exception.

    Example:
        >>> error = ValidationError("name", "cannot be empty")
        >>> create_user_friendly_error_message(error)
        'Invalid name: cannot be empty'
    """
    if isinstance(error, UXMetricsError):
        return error.user_message

    error_type = type(error).__name__
    messages = {
        "ValueError": "Invalid input provided. Please check your data and try again.",
        "KeyError": "Required information is missing. Please check your input.",
        "TypeError": "Incorrect data type provided. Please check your input format.",
    }
    return messages.get(
        error_type, "An unexpected error occurred. Please try again or contact support."
    )


def log_error_details(error: Exception, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create structured error details for logging.

    Args:
        error: The exception to log
        context: Additional context information

    Returns:
        Dictionary with structured error details
    """
    details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }

    if isinstance(error, UXMetricsError):
        details.update({"user_message": error.user_message, "error_details": error.details})

    return details
