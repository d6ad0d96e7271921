import os

os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from uxmetrics.application.api import create_person, create_session, create_study  # noqa: E402
from uxmetrics.application.assessments import initialize_assessment_types  # noqa: E402
from uxmetrics.infrastructure.config import reset_settings  # noqa: E402
from uxmetrics.infrastructure.db import create_schema  # noqa: E402


def setup_db():
    engine = create_engine("sqlite:///:memory:", future=True)
    create_schema(engine)
    SessionLocal = sessionmaker(bind=engine, future=True, expire_on_commit=False)
    return engine, SessionLocal


@pytest.fixture
def SessionLocal():
    engine, factory = setup_db()
    yield factory
    engine.dispose()


@pytest.fixture
def db(SessionLocal):
    with SessionLocal() as s:
        initialize_assessment_types(s)
        yield s


@pytest.fixture
def people(db):
    return {
        "alice": create_person(db, "Alice Johnson", "participant"),
        "bob": create_person(db, "Bob Smith", "participant"),
        "emma": create_person(db, "Emma Davis", "facilitator"),
        "grace": create_person(db, "Grace Wilson", "observer"),
    }


@pytest.fixture
def study(db):
    return create_study(db, "Checkout Flow", "shop-app", "checkout-v2")


@pytest.fixture
def two_sessions(db, study, people):
    first = create_session(
        db, study.id, people["alice"].id, people["emma"].id, scheduled_at=datetime(2024, 6, 1, 10)
    )
    second = create_session(
        db, study.id, people["bob"].id, people["emma"].id, scheduled_at=datetime(2024, 6, 3, 15)
    )
    return first, second


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()
