"""
Assessment Generator: multiple-choice question sets for quizzes and final tests.

Each request asks for exactly five four-option questions grounded in the module's
resources (learner-added + Teacher's Picks). There is no fallback question set:
when the payload is empty or malformed the attempt has zero questions and the
learner must generate again before submitting.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from config import get_settings
from academy.core.content import Question
from academy.core.errors import NetworkError
from academy.core.models import Module

from .gemini_client import GeminiClient
from .parsing import parse_payload
from .prompts import AssessmentVariant, get_assessment_prompt
from .schemas import SchemaKind, get_response_schema
from .single_flight import SingleFlight

GENERATION_FAILED_NOTICE = "Failed to generate questions. Please try again."


@dataclass(frozen=True)
class AssessmentMetrics:
    """Descriptive metadata shown with an assessment. Plays no part in scoring."""

    practicality_theoreticity: str
    predictability: str
    difficulty: str
    alignment: str
    learning_time: str
    proficiency_required: str


ASSESSMENT_METRICS: dict[AssessmentVariant, AssessmentMetrics] = {
    AssessmentVariant.QUIZ: AssessmentMetrics(
        practicality_theoreticity="60% Theoretical / 40% Practical",
        predictability="Highly Predictable",
        difficulty="Intermediate Graduate Level",
        alignment="100% Aligned with designated resources.",
        learning_time="5-10 minutes per attempt",
        proficiency_required="Basic understanding of concepts.",
    ),
    AssessmentVariant.FINAL_TEST: AssessmentMetrics(
        practicality_theoreticity="50% Theoretical / 50% Practical",
        predictability="Moderately Predictable (requires synthesis)",
        difficulty="High Graduate Level",
        alignment="100% Aligned with designated resources.",
        learning_time="2-3 hours for completion",
        proficiency_required="Strong, analytical understanding and problem-solving skills.",
    ),
}


def get_metrics(variant: AssessmentVariant) -> AssessmentMetrics:
    return ASSESSMENT_METRICS[variant]


def resource_labels(module: Module) -> list[str]:
    """Learner-added resources followed by Teacher's Picks (url, or title when there is none)."""
    labels = [resource for resource in module.resources if resource.strip()]
    labels.extend(pick.prompt_label() for pick in module.teacher_picks)
    return labels


@dataclass
class AssessmentSet:
    """Questions for one quiz or final-test attempt."""

    variant: AssessmentVariant
    metrics: AssessmentMetrics
    questions: list[Question] = field(default_factory=list)
    error: str | None = None

    @property
    def ready(self) -> bool:
        return bool(self.questions)


class AssessmentGenerator:
    """Generates question sets; nothing is persisted here."""

    def __init__(
        self,
        client: GeminiClient,
        question_count: int | None = None,
        single_flight: SingleFlight | None = None,
    ):
        self.client = client
        self.question_count = question_count or get_settings().assessment_question_count
        self.single_flight = single_flight or SingleFlight()

    def build_prompt(self, module: Module, variant: AssessmentVariant) -> str:
        return get_assessment_prompt(
            module.name,
            variant,
            resource_labels(module),
            count=self.question_count,
        )

    async def generate(self, module: Module, variant: AssessmentVariant) -> AssessmentSet:
        """
        Generate a question set for a module.

        Raises:
            ConfigurationError: No API key configured
        """
        self.client.require_configured()
        return await self.single_flight.run(
            f"assessment:{module.id}:{variant.value}",
            lambda: self._generate(module, variant),
        )

    async def _generate(self, module: Module, variant: AssessmentVariant) -> AssessmentSet:
        assessment = AssessmentSet(variant=variant, metrics=get_metrics(variant))
        logger.info(f"Generating {variant.value} for module {module.id}")

        try:
            text = await self.client.generate_text(
                self.build_prompt(module, variant),
                get_response_schema(SchemaKind.QUESTION_SET),
            )
        except NetworkError as e:
            assessment.error = f"Error generating test: {e}"
            return assessment

        parsed = parse_payload(SchemaKind.QUESTION_SET, text, expected_count=self.question_count)
        if not parsed.ok:
            logger.error(f"Question set for {module.id} unusable ({parsed.failure.value}): {parsed.message}")
            assessment.error = GENERATION_FAILED_NOTICE
            return assessment

        assessment.questions = parsed.value
        return assessment
