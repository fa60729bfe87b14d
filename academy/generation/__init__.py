"""
Schema-constrained content and assessment generation.
"""

from .assessment_generator import AssessmentGenerator, AssessmentMetrics, AssessmentSet
from .content_generator import ContentGenerationResult, ContentGenerator
from .gemini_client import GeminiClient
from .parsing import ParseResult, fallback_for, parse_payload
from .prompts import AssessmentVariant
from .schemas import SchemaKind
from .single_flight import SingleFlight

__all__ = [
    "AssessmentGenerator",
    "AssessmentMetrics",
    "AssessmentSet",
    "AssessmentVariant",
    "ContentGenerationResult",
    "ContentGenerator",
    "GeminiClient",
    "ParseResult",
    "SchemaKind",
    "SingleFlight",
    "fallback_for",
    "parse_payload",
]
