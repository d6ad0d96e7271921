"""
Demonstration data: people, studies, sessions and recorded responses.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, NamedTuple

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from ..application.assessments import initialize_assessment_types
from ..domain.calculations import get_seq_rating_label
from ..domain.models import AssessmentKind
from ..infrastructure.logging import get_logger, log_operation
from ..infrastructure.models import Base
from ..infrastructure.repositories import Repositories

logger = get_logger(__name__)

SEED_TYPE_IDS: dict[AssessmentKind, str] = {
    AssessmentKind.TASK_SUCCESS_RATE: "task-success-rate",
    AssessmentKind.TIME_ON_TASK: "time-on-task",
    AssessmentKind.TASK_EFFICIENCY: "task-efficiency",
    AssessmentKind.ERROR_RATE: "error-rate",
    AssessmentKind.SEQ: "seq",
}

# (index, name, role, days ago)
PEOPLE = [
    (1, "Alice Johnson", "participant", 30),
    (2, "Bob Smith", "participant", 30),
    (3, "Carol Williams", "participant", 28),
    (4, "David Brown", "participant", 25),
    (5, "Emma Davis", "facilitator", 30),
    (6, "Frank Miller", "facilitator", 30),
    (7, "Grace Wilson", "observer", 30),
    (8, "Henry Taylor", "observer", 28),
]

# (index, name, product, feature, archived, created days ago, updated days ago)
STUDIES = [
    (1, "E-Commerce Checkout Flow", "shop-app", "checkout-v2", False, 25, 5),
    (2, "Mobile App Onboarding", "mobile-app", "onboarding", False, 20, 3),
    (3, "Dashboard Navigation", "admin-portal", "nav-redesign", True, 60, 45),
    (4, "Search Results Usability", "shop-app", "search-experience", False, 15, 2),
    (5, "Account Settings Redesign", "mobile-app", "settings-v3", False, 12, 1),
    (6, "Payment Methods Interface", "shop-app", "payment-management", False, 8, 1),
    (7, "User Profile Creation", "admin-portal", "user-onboarding", True, 90, 75),
]

# (index, study, participant, facilitator, observers, days ago, completed)
SESSIONS = [
    (1, 1, 1, 5, [7], 24, True),
    (2, 1, 2, 5, [7, 8], 21, True),
    (3, 1, 3, 6, [], 18, True),
    (31, 1, 4, 5, [7], 15, True),
    (32, 1, 1, 6, [], 12, True),
    (33, 1, 2, 5, [8], 9, True),
    (34, 1, 3, 6, [], 6, True),
    (35, 1, 4, 5, [7], 3, True),
    (4, 2, 1, 6, [8], 15, True),
    (5, 2, 4, 5, [], 10, True),
    (6, 2, 2, 6, [7], 2, False),
    (7, 3, 3, 5, [], 55, True),
    (8, 4, 1, 5, [7], 12, True),
    (9, 4, 3, 6, [8], 7, True),
    (10, 5, 2, 5, [], 9, True),
    (11, 6, 4, 6, [7], 5, True),
]


class Observation(NamedTuple):
    """One participant attempt at one task, as recorded by the facilitator."""

    task: str
    successful: bool
    seconds: float
    seq: int | None = None
    steps: tuple[int, int] | None = None  # (optimal, actual)
    errors: tuple[int, int] | None = None  # (errors, opportunities)


OBSERVATIONS: dict[int, list[Observation]] = {
    1: [
        Observation("Add item to cart", True, 35, 6, (3, 4)),
        Observation("Apply coupon code", False, 95, 2, errors=(3, 5)),
        Observation("Complete checkout with saved payment", True, 145, 5, (6, 8)),
    ],
    2: [
        Observation("Add item to cart", True, 28, 7, (3, 3)),
        Observation("Complete checkout with new payment", False, 280, 2, errors=(4, 6)),
        Observation("Update shipping address", True, 75, 5),
    ],
    3: [
        Observation("Add item to cart", True, 22, 7, (3, 3)),
        Observation("Apply coupon code", True, 68, 4, errors=(1, 5)),
        Observation("Complete checkout with saved payment", True, 132, 6, (6, 7)),
    ],
    31: [
        Observation("Add item to cart", True, 31, 6),
        Observation("Complete checkout with new payment", True, 210, 3, (8, 12), (2, 6)),
    ],
    32: [
        Observation("Apply coupon code", True, 52, 5, errors=(0, 5)),
        Observation("Complete checkout with saved payment", True, 118, 6, (6, 6)),
    ],
    33: [
        Observation("Add item to cart", True, 25, 7),
        Observation("Update shipping address", False, 160, 3, errors=(2, 4)),
    ],
    34: [
        Observation("Complete checkout with new payment", True, 185, 4, (8, 10)),
        Observation("Apply coupon code", True, 47, 6, errors=(0, 5)),
    ],
    35: [
        Observation("Add item to cart", True, 19, 7, (3, 3)),
        Observation("Complete checkout with saved payment", True, 98, 6, (6, 6), (0, 8)),
    ],
    4: [
        Observation("Create account", True, 120, 5, (5, 7)),
        Observation("Enable notifications", True, 25, 6),
        Observation("Complete profile setup", False, 240, 2, errors=(3, 4)),
    ],
    5: [
        Observation("Create account", True, 95, 6, (5, 5)),
        Observation("Complete profile setup", True, 180, 4, errors=(1, 4)),
    ],
    6: [
        Observation("Create account", True, 110, 5),
    ],
    7: [
        Observation("Find user management", False, 90, 2, (2, 6), (4, 6)),
        Observation("Open recent reports", True, 40, 5),
    ],
    8: [
        Observation("Filter results by price", True, 45, 6, (3, 4)),
        Observation("Sort by customer rating", True, 20, 7),
    ],
    9: [
        Observation("Filter results by price", True, 38, 6, (3, 3)),
        Observation("Compare two products", False, 150, 3, errors=(2, 5)),
    ],
    10: [
        Observation("Change password", True, 60, 6, (4, 5)),
        Observation("Update notification preferences", True, 45, 5, errors=(1, 3)),
    ],
    11: [
        Observation("Add a new card", True, 85, 5, (5, 6)),
        Observation("Set default payment method", True, 30, 7, errors=(0, 3)),
    ],
}


def _seed_id(prefix: str, index: int) -> str:
    return f"{prefix}-seed-{index}"


def _days_ago(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)


def _observation_rows(
    session_id: str,
    created_at: datetime,
    observation: Observation,
    type_ids: dict[AssessmentKind, str],
) -> list[dict[str, Any]]:
    """Stored responses for one observation, one per instrument used."""
    rows = [
        {
            "kind": AssessmentKind.TASK_SUCCESS_RATE,
            "responses": {"successful": observation.successful, "successCriteria": "Task completed"},
            "calculated_metrics": {"successRate": 100 if observation.successful else 0},
        },
        {
            "kind": AssessmentKind.TIME_ON_TASK,
            "responses": {
                "startTime": None,
                "endTime": None,
                "manualDurationSeconds": observation.seconds,
                "durationSeconds": observation.seconds,
            },
            "calculated_metrics": {"durationSeconds": observation.seconds},
        },
    ]
    if observation.steps is not None:
        optimal, actual = observation.steps
        rows.append(
            {
                "kind": AssessmentKind.TASK_EFFICIENCY,
                "responses": {"optimalSteps": optimal, "actualSteps": actual},
                "calculated_metrics": {"efficiency": round(optimal / actual * 100, 1)},
            }
        )
    if observation.errors is not None:
        count, opportunities = observation.errors
        rows.append(
            {
                "kind": AssessmentKind.ERROR_RATE,
                "responses": {"errorCount": count, "opportunities": opportunities},
                "calculated_metrics": {
                    "errorRate": round(count / opportunities * 100, 1),
                    "errorCount": count,
                    "opportunities": opportunities,
                },
            }
        )
    if observation.seq is not None:
        rows.append(
            {
                "kind": AssessmentKind.SEQ,
                "responses": {
                    "rating": observation.seq,
                    "ratingLabel": get_seq_rating_label(observation.seq),
                },
                "calculated_metrics": {"seqRating": observation.seq},
            }
        )

    return [
        {
            "session_id": session_id,
            "assessment_type_id": type_ids[row["kind"]],
            "task_description": observation.task,
            "responses": row["responses"],
            "calculated_metrics": row["calculated_metrics"],
            "created_at": created_at,
        }
        for row in rows
    ]


@log_operation("seed_demo_data")
def seed_demo_data(session: Session, now: datetime | None = None) -> dict[str, int]:
    """
    Insert the demonstration data set. Timestamps are placed relative to ``now``.

    Returns:
        Number of inserted items per collection
    """
    now = now or datetime.now()
    repos = Repositories(session)

    # existing types keep their ids
    type_ids = {t.kind: t.id for t in initialize_assessment_types(session, ids=SEED_TYPE_IDS)}

    for index, name, role, days in PEOPLE:
        repos.people.create(
            id=_seed_id("person", index), name=name, role=role, created_at=_days_ago(now, days)
        )

    for index, name, product, feature, archived, created, updated in STUDIES:
        repos.studies.create(
            id=_seed_id("study", index),
            name=name,
            product_id=product,
            feature_id=feature,
            archived=archived,
            created_at=_days_ago(now, created),
            updated_at=_days_ago(now, updated),
        )

    response_count = 0
    for index, study, participant, facilitator, observers, days, completed in SESSIONS:
        created_at = _days_ago(now, days)
        session_id = _seed_id("session", index)
        repos.sessions.create(
            id=session_id,
            study_id=_seed_id("study", study),
            participant_id=_seed_id("person", participant),
            facilitator_id=_seed_id("person", facilitator),
            observer_ids=[_seed_id("person", o) for o in observers],
            status="completed" if completed else "in_progress",
            created_at=created_at,
            completed_at=created_at if completed else None,
        )
        for observation in OBSERVATIONS.get(index, []):
            for fields in _observation_rows(session_id, created_at, observation, type_ids):
                response_count += 1
                repos.responses.create(id=_seed_id("response", response_count), **fields)

    stats = {
        "studies": len(STUDIES),
        "sessions": len(SESSIONS),
        "people": len(PEOPLE),
        "assessmentTypes": repos.assessment_types.count(),
        "assessmentResponses": response_count,
    }
    logger.info(f"Seed data loaded: {stats}")
    return stats


def load_seed_data_if_empty(session: Session) -> bool:
    """Seed only when no studies, people, sessions or responses exist yet."""
    if not Repositories(session).is_empty():
        logger.info("Existing data found, skipping seed load")
        return False
    seed_demo_data(session)
    return True


@log_operation("reset_demo_data")
def reset_demo_data(session: Session) -> dict[str, int]:
    """Remove everything and load the demonstration data again."""
    Repositories(session).clear_all()
    return seed_demo_data(session)


def initialise_database(engine: Engine) -> bool:
    """
    Ensure all ORM tables exist.

    Returns:
        True if every table already existed before this call, False if at least one table
        needed to be created.
    """

    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    expected_tables = [table.name for table in Base.metadata.sorted_tables]
    already_exists = all(table in existing_tables for table in expected_tables)
    Base.metadata.create_all(engine)
    return already_exists
