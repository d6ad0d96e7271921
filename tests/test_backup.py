import json

import pytest

from uxmetrics.application.api import create_session, list_people, list_sessions, list_studies
from uxmetrics.application.assessments import (
    list_assessment_responses,
    list_assessment_types,
    record_error_rate,
    record_seq_rating,
)
from uxmetrics.infrastructure.exceptions import DataImportError
from uxmetrics.utils.backup import COLLECTIONS, BackupService, export_all_data, import_data


@pytest.fixture
def populated(db, study, people):
    ev = create_session(
        db, study.id, people["alice"].id, people["emma"].id, observer_ids=[people["grace"].id]
    )
    record_seq_rating(db, ev.id, "Checkout", 6)
    record_error_rate(db, ev.id, "Checkout", [{"type": "wrong_click"}], 4)
    return ev


def by_id(items):
    return sorted(items, key=lambda item: item.id)


def valid_document(**overrides):
    doc = {"exportedAt": "2024-06-01T10:00:00", "version": "1.0.0"}
    doc.update({field: [] for field in COLLECTIONS})
    doc.update(overrides)
    return doc


def test_export_writes_dated_file(db, populated, tmp_path):
    path = export_all_data(db, tmp_path)

    assert path.parent == tmp_path
    assert path.name.startswith("ux-metrics-backup-") and path.suffix == ".json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["version"] == "1.0.0"
    assert len(data["studies"]) == 1
    assert len(data["people"]) == 4
    assert len(data["assessmentTypes"]) == 5
    assert len(data["assessmentResponses"]) == 2
    assert data["sessions"][0]["observerIds"] == populated.observer_ids


def test_round_trip_restores_everything(db, populated, tmp_path):
    listings = {
        "studies": list_studies,
        "people": list_people,
        "sessions": list_sessions,
        "types": list_assessment_types,
        "responses": list_assessment_responses,
    }
    before = {name: by_id(fn(db)) for name, fn in listings.items()}
    path = export_all_data(db, tmp_path)

    stats = import_data(db, path)

    assert stats == {
        "studies": 1,
        "sessions": 1,
        "people": 4,
        "assessmentTypes": 5,
        "assessmentResponses": 2,
    }
    for name, fn in listings.items():
        assert by_id(fn(db)) == before[name], name


def test_import_replaces_existing_data(db, populated):
    stats = import_data(db, valid_document())
    assert all(count == 0 for count in stats.values())
    assert list_studies(db) == []
    assert list_assessment_types(db) == []


@pytest.mark.parametrize(
    "document, message",
    [
        ([], "Invalid data format: expected an object"),
        (
            valid_document(exportedAt=None),
            "Invalid data format: missing or invalid exportedAt timestamp",
        ),
        (valid_document(version=1), "Invalid data format: missing or invalid version"),
        (valid_document(sessions={}), "Invalid data format: sessions must be an array"),
        (valid_document(people=["x"]), "Invalid people[0]: expected an object"),
        (valid_document(studies=[{"name": "x"}]), "Invalid studies[0]: missing or invalid id"),
        (
            valid_document(people=[{"id": "p1", "role": "admin", "createdAt": "2024-06-01"}]),
            "Invalid people[0]: invalid role",
        ),
        (
            valid_document(sessions=[{"id": "s1", "status": "paused", "createdAt": "2024-06-01"}]),
            "Invalid sessions[0]: invalid status",
        ),
        (
            valid_document(assessmentTypes=[{"id": "t1", "name": "X", "type": "bogus"}]),
            "Invalid assessmentTypes[0]: invalid type",
        ),
        (
            valid_document(assessmentTypes=[{"id": "t1", "name": "X"}]),
            "Invalid assessmentTypes[0]: invalid type",
        ),
        (
            valid_document(studies=[{"id": "s1", "name": "X", "createdAt": "yesterday"}]),
            "Invalid studies[0]: missing or invalid createdAt",
        ),
        (
            valid_document(assessmentResponses=[{"id": "r1", "sessionId": "s1"}]),
            "Invalid assessmentResponses[0]: missing or invalid createdAt",
        ),
        (
            valid_document(
                sessions=[{"id": "s1", "createdAt": "2024-06-01", "completedAt": "soon"}]
            ),
            "Invalid sessions[0]: missing or invalid completedAt",
        ),
    ],
)
def test_validation_messages(document, message):
    with pytest.raises(DataImportError) as exc:
        BackupService.validate_import_data(document)
    assert exc.value.message == message


def test_invalid_document_leaves_store_untouched(db, populated):
    with pytest.raises(DataImportError):
        import_data(db, valid_document(assessmentResponses="nope"))
    assert len(list_assessment_responses(db)) == 2


def test_unknown_assessment_kind_is_rejected_before_clearing(db, populated):
    document = valid_document(assessmentTypes=[{"id": "t1", "name": "X", "type": "bogus"}])
    with pytest.raises(DataImportError):
        import_data(db, document)
    assert len(list_assessment_types(db)) == 5
    assert len(list_assessment_responses(db)) == 2


def test_file_checks(db, tmp_path):
    service = BackupService(db)

    text_file = tmp_path / "backup.txt"
    text_file.write_text("{}", encoding="utf-8")
    with pytest.raises(DataImportError, match="Invalid file type"):
        service.import_data(text_file)

    broken = tmp_path / "backup.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(DataImportError) as exc:
        service.import_data(broken)
    assert exc.value.message == "Invalid JSON: the file contains malformed JSON data"

    with pytest.raises(DataImportError, match="not found"):
        service.load_import_file(tmp_path / "missing.json")
