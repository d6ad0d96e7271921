from datetime import date, datetime

import pytest

from uxmetrics.application.api import (
    archive_study,
    complete_session,
    create_person,
    create_session,
    create_study,
    delete_person,
    delete_study,
    filter_sessions,
    get_people_for_dropdown,
    get_session,
    get_session_count_by_study,
    get_sessions_for_display,
    get_studies_for_dropdown,
    get_study,
    get_unique_participants_by_study,
    is_person_referenced,
    list_active_studies,
    list_archived_studies,
    list_people_by_role,
    list_studies,
    unarchive_study,
    update_person,
    update_session,
    update_study,
)
from uxmetrics.domain.models import PersonRole, SessionStatus
from uxmetrics.infrastructure.exceptions import (
    BusinessLogicError,
    PersonNotFoundError,
    SessionNotFoundError,
    StudyNotFoundError,
    ValidationError,
)
from uxmetrics.infrastructure.uow import UnitOfWork


class TestStudies:
    def test_create_trims_and_defaults(self, db):
        study = create_study(db, "  Checkout Flow ", " shop-app ", "   ")
        assert study.name == "Checkout Flow"
        assert study.product_id == "shop-app"
        assert study.feature_id is None
        assert study.archived is False
        assert study.id.startswith("study-")

    def test_create_requires_name_and_product(self, db):
        with pytest.raises(ValidationError):
            create_study(db, "", "shop-app")
        with pytest.raises(ValidationError):
            create_study(db, "Checkout", "   ")

    def test_update_keeps_identity_and_refreshes_timestamp(self, db, study):
        updated = update_study(db, study.id, name="Checkout Flow v2", feature_id="")
        assert updated.id == study.id
        assert updated.created_at == study.created_at
        assert updated.updated_at >= study.updated_at
        assert updated.name == "Checkout Flow v2"
        assert updated.feature_id is None

    def test_archive_and_unarchive(self, db, study):
        other = create_study(db, "Search", "shop-app")
        archive_study(db, study.id)

        assert [s.id for s in list_active_studies(db)] == [other.id]
        assert [s.id for s in list_archived_studies(db)] == [study.id]
        assert {o["id"] for o in get_studies_for_dropdown(db)} == {other.id}
        assert len(get_studies_for_dropdown(db, include_archived=True)) == 2

        assert unarchive_study(db, study.id).archived is False

    def test_missing_study_raises(self, db):
        with pytest.raises(StudyNotFoundError) as exc:
            update_study(db, "study-missing", name="x")
        assert 'Study with id "study-missing" not found.' in str(exc.value)
        assert get_study(db, "study-missing") is None

    def test_delete(self, db, study):
        delete_study(db, study.id)
        assert list_studies(db) == []


class TestPeople:
    def test_roles(self, db, people):
        participants = list_people_by_role(db, PersonRole.PARTICIPANT)
        assert [p.name for p in participants] == ["Alice Johnson", "Bob Smith"]
        options = get_people_for_dropdown(db, "facilitator")
        assert options == [{"id": people["emma"].id, "label": "Emma Davis"}]

    def test_invalid_role_rejected(self, db):
        with pytest.raises(ValidationError):
            create_person(db, "Zed", "moderator")

    def test_update_person(self, db, people):
        updated = update_person(db, people["grace"].id, name="Grace W.")
        assert updated.name == "Grace W."
        assert updated.role == PersonRole.OBSERVER

    def test_delete_blocked_while_referenced(self, db, study, people):
        create_session(
            db, study.id, people["alice"].id, people["emma"].id, observer_ids=[people["grace"].id]
        )
        assert is_person_referenced(db, people["grace"].id)

        with pytest.raises(BusinessLogicError) as exc:
            delete_person(db, people["grace"].id)
        assert exc.value.message == (
            'Cannot delete "Grace Wilson". This person is referenced by one or more sessions. '
            "Remove them from all sessions before deleting."
        )

    def test_delete_unreferenced(self, db, people):
        delete_person(db, people["bob"].id)
        with pytest.raises(PersonNotFoundError):
            delete_person(db, people["bob"].id)


class TestSessions:
    def test_create_cleans_observers_and_uses_schedule(self, db, study, people):
        scheduled = datetime(2024, 6, 1, 9, 30)
        ev = create_session(
            db,
            study.id,
            people["alice"].id,
            people["emma"].id,
            observer_ids=[" ", f" {people['grace'].id} ", ""],
            scheduled_at=scheduled,
        )
        assert ev.observer_ids == [people["grace"].id]
        assert ev.created_at == scheduled
        assert ev.status == SessionStatus.IN_PROGRESS
        assert ev.completed_at is None

    def test_create_requires_participant(self, db, study, people):
        with pytest.raises(ValidationError):
            create_session(db, study.id, "", people["emma"].id)

    def test_complete_once(self, db, two_sessions):
        first, _ = two_sessions
        done = complete_session(db, first.id)
        assert done.status == SessionStatus.COMPLETED
        assert done.completed_at is not None

        with pytest.raises(BusinessLogicError, match="already completed"):
            complete_session(db, first.id)

    def test_update_status_keeps_completed_at_consistent(self, db, two_sessions):
        first, _ = two_sessions
        assert update_session(db, first.id, status="completed").completed_at is not None
        reopened = update_session(db, first.id, status="in_progress")
        assert reopened.completed_at is None
        assert reopened.created_at == first.created_at

    def test_filter_by_date_includes_whole_end_day(self, db, study, two_sessions, people):
        first, second = two_sessions
        found = filter_sessions(
            db, study_id=study.id, date_from=date(2024, 6, 1), date_to=date(2024, 6, 1)
        )
        assert [s.id for s in found] == [first.id]

        by_participant = filter_sessions(db, participant_id=people["bob"].id)
        assert [s.id for s in by_participant] == [second.id]

        assert filter_sessions(db, status="completed") == []

    def test_display_order_and_counts(self, db, study, two_sessions, people):
        first, second = two_sessions
        assert [s.id for s in get_sessions_for_display(db, study.id)] == [second.id, first.id]
        assert get_session_count_by_study(db, study.id) == 2
        assert get_unique_participants_by_study(db, study.id) == sorted(
            [people["alice"].id, people["bob"].id]
        )

    def test_missing_session(self, db):
        assert get_session(db, "session-missing") is None
        with pytest.raises(SessionNotFoundError):
            complete_session(db, "session-missing")


def test_unit_of_work_commits_and_rolls_back(SessionLocal):
    uow = UnitOfWork(SessionLocal)
    with uow.begin() as s:
        study = create_study(s, "Checkout", "shop-app")

    with pytest.raises(ValidationError):
        with uow.begin() as s:
            create_study(s, "Search", "shop-app")
            create_study(s, "", "shop-app")

    with uow.begin() as s:
        assert [x.id for x in list_studies(s)] == [study.id]
