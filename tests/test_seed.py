from datetime import datetime

from sqlalchemy import create_engine, inspect

from uxmetrics.application.api import (
    list_active_studies,
    list_archived_studies,
    list_people_by_role,
    list_sessions_by_status,
)
from uxmetrics.application.assessments import list_assessment_responses, list_assessment_types
from uxmetrics.domain.models import AssessmentKind
from uxmetrics.domain.services import AnalyticsService
from uxmetrics.infrastructure.data_source import RepositoryMetricsSource
from uxmetrics.utils.seed import (
    SEED_TYPE_IDS,
    initialise_database,
    load_seed_data_if_empty,
    reset_demo_data,
    seed_demo_data,
)


def test_seed_counts(SessionLocal):
    with SessionLocal() as s:
        stats = seed_demo_data(s, now=datetime(2024, 6, 30, 12))

        assert stats["studies"] == 7
        assert stats["sessions"] == 16
        assert stats["people"] == 8
        assert stats["assessmentTypes"] == 5
        assert stats["assessmentResponses"] == len(list_assessment_responses(s))

        assert len(list_active_studies(s)) == 5
        assert len(list_archived_studies(s)) == 2
        assert len(list_people_by_role(s, "participant")) == 4
        assert len(list_sessions_by_status(s, "in_progress")) == 1
        assert {t.kind: t.id for t in list_assessment_types(s)} == SEED_TYPE_IDS


def test_seed_reuses_existing_type_ids(db):
    existing = {t.kind: t.id for t in list_assessment_types(db)}
    seed_demo_data(db)

    used = {r.assessment_type_id for r in list_assessment_responses(db)}
    assert used <= set(existing.values())


def test_seeded_study_has_metrics(SessionLocal):
    with SessionLocal() as s:
        seed_demo_data(s)
        result = AnalyticsService(RepositoryMetricsSource(s)).get_study_metrics("study-seed-1")

    assert result.session_count == 8
    assert result.participant_count == 4
    for kind in AssessmentKind:
        assert result.metrics.headline(kind) is not None


def test_load_if_empty_only_once(SessionLocal):
    with SessionLocal() as s:
        assert load_seed_data_if_empty(s) is True
        assert load_seed_data_if_empty(s) is False


def test_reset_restores_demo_data(SessionLocal):
    with SessionLocal() as s:
        first = seed_demo_data(s)
        reset = reset_demo_data(s)

        assert reset == first
        assert len(list_assessment_responses(s)) == first["assessmentResponses"]


def test_initialise_database(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'ux.db'}", future=True)
    assert initialise_database(engine) is False
    assert initialise_database(engine) is True
    assert "assessment_responses" in inspect(engine).get_table_names()
    engine.dispose()
