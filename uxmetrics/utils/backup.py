"""
Full-store backup and restore for the UX metrics application.

A backup is one JSON document holding every study, session, person,
assessment type and assessment response, stamped with the export time and
the backup format version. Restoring replaces the current store contents.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.models import AssessmentKind, PersonRole, SessionStatus
from ..infrastructure.config import get_settings
from ..infrastructure.exceptions import DataImportError, ExportError, handle_database_error
from ..infrastructure.logging import get_logger, log_operation
from ..infrastructure.repositories import Repositories
from .exports import (
    assessment_type_fields,
    assessment_type_to_dict,
    from_iso,
    person_fields,
    person_to_dict,
    response_fields,
    response_to_dict,
    session_fields,
    session_to_dict,
    study_fields,
    study_to_dict,
)

logger = get_logger(__name__)

COLLECTIONS = ("studies", "sessions", "people", "assessmentTypes", "assessmentResponses")

# (allowed values, value assumed when the key is absent)
ENUM_FIELDS: dict[str, dict[str, tuple[frozenset[str], str | None]]] = {
    "people": {"role": (frozenset(PersonRole), PersonRole.PARTICIPANT)},
    "sessions": {"status": (frozenset(SessionStatus), SessionStatus.IN_PROGRESS)},
    "assessmentTypes": {"type": (frozenset(AssessmentKind), None)},
}

# createdAt is required, the rest may be absent or null
TIMESTAMP_FIELDS: dict[str, tuple[str, ...]] = {
    "studies": ("createdAt", "updatedAt"),
    "people": ("createdAt",),
    "sessions": ("createdAt", "completedAt"),
    "assessmentResponses": ("createdAt",),
}


class BackupService:
    """
    Service for exporting and importing the whole data store.

    Example:
        >>> service = BackupService(session)
        >>> path = service.export_all_data("./backups")
        >>> service.import_data(path)
        {'studies': 7, 'sessions': 12, 'people': 8, 'assessmentTypes': 5, 'assessmentResponses': 40}
    """

    def __init__(self, session: Session):
        self.session = session
        self.repos = Repositories(session)
        self.logger = get_logger(self.__class__.__name__)
        self.settings = get_settings()

    def gather_all_data(self) -> dict[str, Any]:
        """Collect every stored entity into the backup document shape."""
        data = {
            "exportedAt": datetime.now().isoformat(),
            "version": self.settings.export.backup_version,
            "studies": [study_to_dict(r.to_domain()) for r in self.repos.studies.list_all()],
            "sessions": [session_to_dict(r.to_domain()) for r in self.repos.sessions.list_all()],
            "people": [person_to_dict(r.to_domain()) for r in self.repos.people.list_all()],
            "assessmentTypes": [
                assessment_type_to_dict(r.to_domain())
                for r in self.repos.assessment_types.list_all()
            ],
            "assessmentResponses": [
                response_to_dict(r.to_domain()) for r in self.repos.responses.list_all()
            ],
        }
        self.logger.info(
            f"Collected backup data: {len(data['studies'])} studies, "
            f"{len(data['sessions'])} sessions, {len(data['assessmentResponses'])} responses"
        )
        return data

    @log_operation("export_all_data")
    def export_all_data(
        self, backup_dir: str | Path | None = None, filename: str | None = None
    ) -> Path:
        """
        Write a backup file and return its path.

        The default name is ``ux-metrics-backup-{YYYY-MM-DD}.json`` in the
        configured backup directory.

        Raises:
            ExportError: If the file cannot be written
        """
        backup_dir = Path(backup_dir or self.settings.export.backup_dir)
        if filename is None:
            filename = f"ux-metrics-backup-{datetime.now():%Y-%m-%d}.json"
        backup_path = backup_dir / filename

        data = self.gather_all_data()
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
            with open(backup_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            self.logger.error(f"Failed to write backup: {e}", exc_info=True)
            if backup_path.exists():
                backup_path.unlink()
            raise ExportError(f"Backup creation failed: {e}", export_format="json") from e

        self.logger.info(f"Backup created: {backup_path} ({backup_path.stat().st_size} bytes)")
        return backup_path

    @staticmethod
    def validate_import_data(data: Any) -> None:
        """
        Check the structure of a backup document.

        Raises:
            DataImportError: Naming the first problem found
        """
        if not isinstance(data, dict):
            raise DataImportError("Invalid data format: expected an object")

        if not isinstance(data.get("exportedAt"), str):
            raise DataImportError("Invalid data format: missing or invalid exportedAt timestamp")

        if not isinstance(data.get("version"), str):
            raise DataImportError("Invalid data format: missing or invalid version")

        for field in COLLECTIONS:
            if not isinstance(data.get(field), list):
                raise DataImportError(f"Invalid data format: {field} must be an array")

        for field in COLLECTIONS:
            for i, item in enumerate(data[field]):
                if not isinstance(item, dict):
                    raise DataImportError(f"Invalid {field}[{i}]: expected an object")
                if not isinstance(item.get("id"), str):
                    raise DataImportError(f"Invalid {field}[{i}]: missing or invalid id")

                for key, (allowed, default) in ENUM_FIELDS.get(field, {}).items():
                    value = item.get(key, default)
                    if not isinstance(value, str) or value not in allowed:
                        raise DataImportError(f"Invalid {field}[{i}]: invalid {key}")

                for key in TIMESTAMP_FIELDS.get(field, ()):
                    value = item.get(key)
                    if value is None and key != "createdAt":
                        continue
                    try:
                        from_iso(value)
                    except ValueError as e:
                        raise DataImportError(
                            f"Invalid {field}[{i}]: missing or invalid {key}"
                        ) from e

    def load_import_file(self, path: str | Path) -> dict[str, Any]:
        """
        Read a backup file from disk.

        Raises:
            DataImportError: If the file is not JSON, is missing or cannot be parsed
        """
        path = Path(path)
        if path.suffix.lower() != ".json":
            raise DataImportError("Invalid file type: please select a JSON file", str(path))
        if not path.exists():
            raise DataImportError(f"Backup file not found: {path}", str(path))

        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise DataImportError(
                "Invalid JSON: the file contains malformed JSON data", str(path)
            ) from e

    @log_operation("import_data")
    def import_data(self, source: str | Path | dict[str, Any]) -> dict[str, int]:
        """
        Replace the store contents with a backup.

        ``source`` is either a path to a backup file or an already parsed
        document. Nothing is cleared unless the document validates.

        Returns:
            Number of imported items per collection

        Raises:
            DataImportError: If the document is malformed
            DatabaseError: If writing fails
        """
        data = source if isinstance(source, dict) else self.load_import_file(source)
        self.validate_import_data(data)

        try:
            cleared = self.repos.clear_all()
            self.logger.info(f"Cleared existing data before import: {cleared}")

            for record in data["studies"]:
                self.repos.studies.create(**study_fields(record))
            for record in data["people"]:
                self.repos.people.create(**person_fields(record))
            for record in data["assessmentTypes"]:
                self.repos.assessment_types.create(**assessment_type_fields(record))
            for record in data["sessions"]:
                self.repos.sessions.create(**session_fields(record))
            for record in data["assessmentResponses"]:
                self.repos.responses.create(**response_fields(record))
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to import backup: {e}", exc_info=True)
            raise handle_database_error(e, "import backup") from e

        stats = {field: len(data[field]) for field in COLLECTIONS}
        self.logger.info(f"Import completed: {stats}")
        return stats


# Convenience functions for common operations
def export_all_data(session: Session, backup_dir: str | Path | None = None) -> Path:
    """
    Example:
        >>> path = export_all_data(session, "./backups")
    """
    return BackupService(session).export_all_data(backup_dir)


def import_data(session: Session, source: str | Path | dict[str, Any]) -> dict[str, int]:
    """
    Example:
        >>> stats = import_data(session, "./backups/ux-metrics-backup-2026-03-02.json")
    """
    return BackupService(session).import_data(source)
