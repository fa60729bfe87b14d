"""
Response schemas for controlled (JSON mode) generation.

Sent as ``generationConfig.responseSchema`` together with
``responseMimeType: application/json`` so the service emits one JSON payload of
exactly this shape. Types use the Gemini OpenAPI subset (upper-case type names).
"""

from __future__ import annotations

from enum import Enum


class SchemaKind(str, Enum):
    """The three payload shapes requested from the generative service."""

    RESOURCE_LIST = "resource_list"
    ASSIGNMENT = "assignment"
    QUESTION_SET = "question_set"


# =============================================================================
# Teacher's Picks
# =============================================================================

RESOURCE_LIST_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "url": {"type": "STRING"},
        },
        "required": ["title"],
    },
}


# =============================================================================
# Assignment
# =============================================================================

SCENARIO_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "description": {"type": "STRING"},
    },
    "required": ["title", "description"],
}

TASK_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "task_id": {"type": "STRING"},
        "task_description": {"type": "STRING"},
        "marks": {"type": "NUMBER"},
        "type": {"type": "STRING", "enum": ["text_input", "code_input"]},
        "language": {"type": "STRING"},  # code_input only
    },
    "required": ["task_id", "task_description", "marks", "type"],
}

SECTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "section_id": {"type": "STRING"},
        "section_title": {"type": "STRING"},
        "marks": {"type": "NUMBER"},
        "sub_scenario": SCENARIO_SCHEMA,
        "tasks": {"type": "ARRAY", "items": TASK_SCHEMA},
    },
    "required": ["section_id", "section_title", "marks", "sub_scenario", "tasks"],
}

ASSIGNMENT_RESOURCE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "url": {"type": "STRING"},
        "type": {"type": "STRING", "enum": ["website", "video", "pdf", "book"]},
        "category": {"type": "STRING"},
    },
    "required": ["title", "url", "type", "category"],
}

ASSIGNMENT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "total_marks": {"type": "NUMBER"},
        "scenario": SCENARIO_SCHEMA,
        "sections": {"type": "ARRAY", "items": SECTION_SCHEMA},
        "resources": {"type": "ARRAY", "items": ASSIGNMENT_RESOURCE_SCHEMA},
    },
    "required": ["title", "total_marks", "scenario", "sections", "resources"],
}


# =============================================================================
# Question Set (quiz / final test)
# =============================================================================

QUESTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "question": {"type": "STRING"},
        "options": {
            "type": "OBJECT",
            "properties": {
                "A": {"type": "STRING"},
                "B": {"type": "STRING"},
                "C": {"type": "STRING"},
                "D": {"type": "STRING"},
            },
            "required": ["A", "B", "C", "D"],
        },
        "correctAnswer": {"type": "STRING", "enum": ["A", "B", "C", "D"]},
    },
    "required": ["question", "options", "correctAnswer"],
}

QUESTION_SET_SCHEMA = {
    "type": "ARRAY",
    "items": QUESTION_SCHEMA,
}


RESPONSE_SCHEMAS: dict[SchemaKind, dict] = {
    SchemaKind.RESOURCE_LIST: RESOURCE_LIST_SCHEMA,
    SchemaKind.ASSIGNMENT: ASSIGNMENT_SCHEMA,
    SchemaKind.QUESTION_SET: QUESTION_SET_SCHEMA,
}


def get_response_schema(kind: SchemaKind) -> dict:
    return RESPONSE_SCHEMAS[kind]
