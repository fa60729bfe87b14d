"""
Prompts for module content and assessment generation.

Contains prompts for:
- Teacher's Picks: 3-5 reputable resources for a topic
- Assignment: scenario-based, multi-section assignment (structure fixed by example)
- Assessments: 5-question multiple-choice quiz or final test

The output shape is enforced by the response schema, not by the prompt text.
"""
from __future__ import annotations

from enum import Enum


class AssessmentVariant(str, Enum):
    """Same schema, different instructional framing."""

    QUIZ = "quiz"
    FINAL_TEST = "finalTest"


# =============================================================================
# Teacher's Picks
# =============================================================================

RESOURCE_PROMPT = (
    'Provide 3-5 highly recommended, reputable, and ideally open-access or widely available '
    'online resources (PDFs, websites, video series) for learning "{module_name}". '
    "Format as a JSON array of objects with 'title' and 'url' properties. "
    "If a direct URL isn't common, provide a general description/search term."
)


def get_resource_prompt(module_name: str) -> str:
    return RESOURCE_PROMPT.format(module_name=module_name)


# =============================================================================
# Assignment
# =============================================================================

ASSIGNMENT_STRUCTURE_EXAMPLE = """Assignment Structure Example (DO NOT USE THIS CONTENT, ONLY THE STRUCTURE):
Total Marks: 100
Scenario: Your assignment will have a main scenario.

Question 1: (20 Marks)
Sub-Scenario: This question will have a sub-scenario.
Task 1.1: (10 Marks) [text_input]
Task 1.2: (10 Marks) [text_input]

Question 2: (30 Marks)
Sub-Scenario: This question will have a sub-scenario.
Task 2.1: (15 Marks) [code_input, e.g., Python]
Task 2.2: (15 Marks) [code_input, e.g., Python]

Question 3: (20 Marks)
Sub-Scenario: This question will have a sub-scenario.
Task 3.1: (20 Marks) [text_input]

Question 4: (30 Marks)
Sub-Scenario: This question will have a sub-scenario.
Task 4.1: (20 Marks) [text_input]
Task 4.2: (10 Marks) [text_input]"""

ASSIGNMENT_PROMPT = """Generate a comprehensive assignment for a module on "{module_name}".
The assignment MUST strictly follow the structural layout (number of sections, number of tasks per section, marks per task, types of tasks like text_input/code_input) of a typical coding assignment.
However, the ENTIRE CONTENT (scenario, question titles, task descriptions, and resources) must be ORIGINAL and RELEVANT to "{module_name}".
For any coding tasks, assume Python is the default language unless a different language is strongly implied by the module name.
Ensure all fields in the JSON schema are populated accurately and completely.
Task marks within a question must add up to the question marks, and question marks must add up to the total marks.

{structure}

Provide the output as a JSON object strictly following the schema, including relevant resources for "{module_name}"."""


def get_assignment_prompt(module_name: str) -> str:
    return ASSIGNMENT_PROMPT.format(module_name=module_name, structure=ASSIGNMENT_STRUCTURE_EXAMPLE)


# =============================================================================
# Assessments
# =============================================================================

STANDARD_MATERIALS = "The questions must be directly based on standard academic textbooks and lectures."

ASSESSMENT_PROMPT = (
    'Generate a multiple-choice test with {count} questions about "{module_name}". '
    "Each question should have 4 options (A, B, C, D) and indicate the correct answer. "
    "{resource_context}"
)

VARIANT_FRAMING = {
    AssessmentVariant.QUIZ: "Focus on fundamental concepts and problem-solving applications. This is a practice quiz.",
    AssessmentVariant.FINAL_TEST: (
        "This is a comprehensive final test, covering both theoretical derivations "
        "and complex problem-solving."
    ),
}


def get_resource_context(resource_labels: list[str]) -> str:
    """Ground questions in the module's resources, or in standard materials when there are none."""
    if not resource_labels:
        return STANDARD_MATERIALS
    return (
        "The questions must be directly based on the following types of resources: "
        f"{', '.join(resource_labels)}."
    )


def get_assessment_prompt(
    module_name: str,
    variant: AssessmentVariant,
    resource_labels: list[str],
    count: int = 5,
) -> str:
    base = ASSESSMENT_PROMPT.format(
        count=count,
        module_name=module_name,
        resource_context=get_resource_context(resource_labels),
    )
    return f"{base} {VARIANT_FRAMING[variant]}"
