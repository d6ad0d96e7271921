"""Built-in definitions of the five usability instruments."""

from __future__ import annotations

from typing import Any

from .models import AssessmentKind

REQUIRED: dict[str, Any] = {"type": "required"}

DEFAULT_ASSESSMENT_TYPES: list[dict[str, Any]] = [
    {
        "name": "Task Success Rate",
        "kind": AssessmentKind.TASK_SUCCESS_RATE,
        "questions": [
            {
                "id": "tsr-task-description",
                "text": "Task Description",
                "responseType": "text",
                "validationRules": [REQUIRED],
            },
            {
                "id": "tsr-success-criteria",
                "text": "Success Criteria",
                "responseType": "text",
                "validationRules": [REQUIRED],
            },
            {
                "id": "tsr-task-successful",
                "text": "Was the task completed successfully?",
                "responseType": "boolean",
                "validationRules": [REQUIRED],
            },
        ],
    },
    {
        "name": "Time on Task",
        "kind": AssessmentKind.TIME_ON_TASK,
        "questions": [
            {
                "id": "tot-task-description",
                "text": "Task Description",
                "responseType": "text",
                "validationRules": [REQUIRED],
            },
            {"id": "tot-start-time", "text": "Start Time", "responseType": "text"},
            {"id": "tot-end-time", "text": "End Time", "responseType": "text"},
            {
                "id": "tot-manual-duration",
                "text": "Manual Duration (seconds)",
                "responseType": "number",
                "validationRules": [{"type": "min", "value": 0}],
            },
        ],
    },
    {
        "name": "Task Efficiency",
        "kind": AssessmentKind.TASK_EFFICIENCY,
        "questions": [
            {
                "id": "te-task-description",
                "text": "Task Description",
                "responseType": "text",
                "validationRules": [REQUIRED],
            },
            {
                "id": "te-optimal-path",
                "text": "Optimal Path Definition",
                "responseType": "text",
                "validationRules": [REQUIRED],
            },
            {
                "id": "te-optimal-steps",
                "text": "Number of Optimal Steps",
                "responseType": "number",
                "validationRules": [REQUIRED, {"type": "min", "value": 1}],
            },
            {
                "id": "te-actual-steps",
                "text": "Number of Actual Steps Taken",
                "responseType": "number",
                "validationRules": [REQUIRED, {"type": "min", "value": 1}],
            },
        ],
    },
    {
        "name": "Error Rate",
        "kind": AssessmentKind.ERROR_RATE,
        "questions": [
            {
                "id": "er-task-description",
                "text": "Task Description",
                "responseType": "text",
                "validationRules": [REQUIRED],
            },
            {
                "id": "er-error-count",
                "text": "Number of Errors",
                "responseType": "number",
                "validationRules": [REQUIRED, {"type": "min", "value": 0}],
            },
            {
                "id": "er-opportunities",
                "text": "Number of Opportunities for Errors",
                "responseType": "number",
                "validationRules": [REQUIRED, {"type": "min", "value": 1}],
            },
            {
                "id": "er-error-types",
                "text": (
                    "Error Types (comma-separated: wrong_click, invalid_submission, "
                    "navigation_error)"
                ),
                "responseType": "text",
            },
            {"id": "er-error-descriptions", "text": "Error Descriptions", "responseType": "text"},
        ],
    },
    {
        "name": "Single Ease Question (SEQ)",
        "kind": AssessmentKind.SEQ,
        "questions": [
            {
                "id": "seq-task-description",
                "text": "Task Description",
                "responseType": "text",
                "validationRules": [REQUIRED],
            },
            {
                "id": "seq-rating",
                "text": "How easy was this task? (1 = Very Difficult, 7 = Very Easy)",
                "responseType": "rating",
                "validationRules": [
                    REQUIRED,
                    {"type": "min", "value": 1},
                    {"type": "max", "value": 7},
                ],
            },
        ],
    },
]
