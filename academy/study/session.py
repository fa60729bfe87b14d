"""
Module study session: the phase state machine for one selected module.

Transitions (anything else raises TransitionError):
- assignment -> quiz          next past the last section, or explicit submit
- quiz -> finalTest           a quiz submission scoring >= threshold
                              (or proceeding later, once any quiz has passed)
- finalTest -> results        any final-test submission
- results -> assignment       reset, only for needs_revisit modules
- assignment <-> resources    navigation only
- quiz -> assignment, finalTest -> quiz   navigation only
- any -> moduleSelect         drops all in-memory state

Local state is updated before the store write completes. A failed write is
reported as a notice and is not rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from config import get_settings
from academy.core.content import OPTION_KEYS, AssignmentSection, Question
from academy.core.errors import ConfigurationError, PersistenceError, TransitionError
from academy.core.models import AssignmentProgress, Module, ModuleStatus
from academy.generation.assessment_generator import AssessmentGenerator, AssessmentMetrics, AssessmentSet
from academy.generation.content_generator import ContentGenerationResult, ContentGenerator
from academy.generation.prompts import AssessmentVariant
from academy.sync.synchronizer import PersistenceSynchronizer

from .evaluator import FinalTestResult, QuizResult, ScoreDetails, record_final_test, record_quiz
from .phases import Phase, any_quiz_passed, derive_phase


@dataclass(frozen=True)
class Notice:
    """Message surfaced to the learner."""

    message: str
    level: str = "error"
    fatal: bool = False


class ModuleSession:
    """Drives one module through assignment, quiz, final test and results."""

    def __init__(
        self,
        module: Module,
        synchronizer: PersistenceSynchronizer,
        content_generator: ContentGenerator,
        assessment_generator: AssessmentGenerator,
        pass_threshold: float | None = None,
    ):
        self.module = module
        self.synchronizer = synchronizer
        self.content_generator = content_generator
        self.assessment_generator = assessment_generator
        self.pass_threshold = pass_threshold if pass_threshold is not None else get_settings().pass_threshold

        self.phase = Phase.MODULE_SELECT
        self.loading = False
        self.notices: list[Notice] = []
        self._clear_ephemeral()

    def _clear_ephemeral(self) -> None:
        self.section_index = 0
        self.responses: dict[str, dict[str, str]] = {}
        self.assessment: AssessmentSet | None = None
        self.answers: dict[int, str] = {}
        self.last_score: float | None = None
        self.score_details: ScoreDetails | None = None

    # -------------------------------------------------------------------------
    # Notices
    # -------------------------------------------------------------------------

    @property
    def error_message(self) -> str | None:
        return self.notices[-1].message if self.notices else None

    def notify(self, message: str, level: str = "error", fatal: bool = False) -> None:
        self.notices.append(Notice(message=message, level=level, fatal=fatal))

    def dismiss_notices(self) -> None:
        self.notices.clear()

    def _require_phase(self, *phases: Phase) -> None:
        if self.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise TransitionError(f"Not allowed in phase {self.phase.value} (expected {allowed})")

    async def _write(self, partial: dict) -> None:
        try:
            await self.synchronizer.merge_update(self.module.id, partial)
        except PersistenceError as e:
            logger.error(f"Error updating module {self.module.id}: {e}")
            self.notify(f"Failed to save module progress: {e}")

    # -------------------------------------------------------------------------
    # Entering a module
    # -------------------------------------------------------------------------

    async def enter(self) -> Phase:
        """(Re)select the module and move to the phase its stored state implies."""
        self._clear_ephemeral()
        self.dismiss_notices()
        decision = derive_phase(self.module, self.pass_threshold)

        if decision.phase == Phase.RESULTS:
            self.score_details = ScoreDetails.for_module(self.module)
        elif decision.needs_generation:
            self.phase = Phase.ASSIGNMENT
            await self.ensure_content()
            decision = derive_phase(self.module, self.pass_threshold)

        self.phase = decision.phase
        logger.info(f"Module {self.module.id} opened in phase {self.phase.value}")
        return self.phase

    async def ensure_content(self) -> ContentGenerationResult | None:
        """Generate Teacher's Picks and the assignment, then reload the stored module."""
        self.loading = True
        try:
            result = await self.content_generator.generate(self.module.name, self.module.id)
        except ConfigurationError as e:
            self.notify(str(e), fatal=True)
            return None
        finally:
            self.loading = False

        if result.teacher_picks is not None:
            self.module.teacher_picks = result.teacher_picks
        if result.assignment_content is not None:
            self.module.assignment_content = result.assignment_content
        for warning in result.warnings:
            self.notify(warning, level="warning")
        for error in result.errors:
            self.notify(error)

        try:
            stored = await self.synchronizer.get_once(self.module.id)
        except PersistenceError as e:
            self.notify(f"Failed to load module: {e}")
            stored = None
        if stored is not None:
            # Keep freshly generated values when their write did not land
            stored.teacher_picks = stored.teacher_picks or self.module.teacher_picks
            stored.assignment_content = stored.assignment_content or self.module.assignment_content
            self.module = stored

        self.section_index = 0
        return result

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    def view_resources(self) -> None:
        self._require_phase(Phase.ASSIGNMENT, Phase.RESOURCES)
        self.phase = Phase.RESOURCES

    def start_assignment(self) -> None:
        self._require_phase(Phase.RESOURCES)
        self.phase = Phase.ASSIGNMENT

    async def add_resource(self, resource: str) -> None:
        """Append a learner resource; `started` modules become `resources_added`."""
        if self.phase == Phase.MODULE_SELECT:
            raise TransitionError("Select a module before adding resources")
        if not resource or not resource.strip():
            raise ValueError("Please enter a resource.")

        self.module.resources.append(resource.strip())
        update: dict = {"resources": list(self.module.resources)}
        if self.module.status == ModuleStatus.STARTED:
            self.module.status = ModuleStatus.RESOURCES_ADDED
            update["status"] = self.module.status.value
        update["lastUpdated"] = self.module.touch()
        await self._write(update)

    # -------------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------------

    @property
    def section_count(self) -> int:
        return self.module.section_count

    @property
    def current_section(self) -> AssignmentSection | None:
        if not self.module.assignment_content or not self.module.assignment_content.sections:
            return None
        return self.module.assignment_content.sections[self.section_index]

    @property
    def is_last_section(self) -> bool:
        """On the last section "next" means "submit"."""
        return self.section_index >= self.section_count - 1

    def _require_assignment(self) -> None:
        self._require_phase(Phase.ASSIGNMENT)
        if self.module.assignment_content is None:
            raise TransitionError("No assignment to submit. Generate the module content first.")

    def set_response(self, section_id: str, task_id: str, value: str) -> None:
        self._require_phase(Phase.ASSIGNMENT)
        self.responses.setdefault(section_id, {})[task_id] = value

    def previous_section(self) -> int:
        self._require_phase(Phase.ASSIGNMENT)
        if self.section_index > 0:
            self.section_index -= 1
        return self.section_index

    async def next_section(self) -> Phase:
        self._require_assignment()
        if self.section_index < self.section_count - 1:
            self.section_index += 1
            return self.phase
        await self._complete_assignment()
        return self.phase

    async def submit_assignment(self) -> Phase:
        self._require_assignment()
        await self._complete_assignment()
        return self.phase

    async def _complete_assignment(self) -> None:
        self.module.assignments = AssignmentProgress(
            completed=True,
            responses={section: dict(tasks) for section, tasks in self.responses.items()},
        )
        self.module.status = ModuleStatus.ASSIGNMENT_DONE
        last_updated = self.module.touch()
        self.phase = Phase.QUIZ
        logger.info(f"Module {self.module.id} assignment completed")
        await self._write(
            {
                "assignments": self.module.assignments.to_dict(),
                "status": self.module.status.value,
                "lastUpdated": last_updated,
            }
        )

    # -------------------------------------------------------------------------
    # Quiz / final test
    # -------------------------------------------------------------------------

    @property
    def questions(self) -> list[Question]:
        return self.assessment.questions if self.assessment else []

    @property
    def metrics(self) -> AssessmentMetrics | None:
        return self.assessment.metrics if self.assessment else None

    async def generate_assessment(self) -> AssessmentSet | None:
        """Generate questions for the current phase (quiz or final test)."""
        self._require_phase(Phase.QUIZ, Phase.FINAL_TEST)
        variant = AssessmentVariant.QUIZ if self.phase == Phase.QUIZ else AssessmentVariant.FINAL_TEST

        self.assessment = None
        self.answers = {}
        self.last_score = None
        self.loading = True
        try:
            assessment = await self.assessment_generator.generate(self.module, variant)
        except ConfigurationError as e:
            self.notify(str(e), fatal=True)
            return None
        finally:
            self.loading = False

        self.assessment = assessment
        if assessment.error:
            self.notify(assessment.error)
        return assessment

    def select_answer(self, question_index: int, option: str) -> None:
        self._require_phase(Phase.QUIZ, Phase.FINAL_TEST)
        if not 0 <= question_index < len(self.questions):
            raise IndexError(f"No question {question_index}")
        if option not in OPTION_KEYS:
            raise ValueError(f"Option must be one of {', '.join(OPTION_KEYS)}")
        self.answers[question_index] = option

    def _take_questions(self) -> tuple[list[Question], dict[int, str]]:
        if not self.questions:
            raise TransitionError("Please generate a test first.")
        questions, answers = self.questions, dict(self.answers)
        self.assessment = None
        self.answers = {}
        return questions, answers

    async def submit_quiz(self) -> QuizResult:
        self._require_phase(Phase.QUIZ)
        questions, answers = self._take_questions()
        result = record_quiz(self.module, questions, answers, self.pass_threshold)
        self.last_score = result.score
        if result.passed:
            self.phase = Phase.FINAL_TEST
        logger.info(f"Quiz for {self.module.id} scored {result.score:.1f}")
        await self._write(result.update)
        return result

    def proceed_to_final_test(self) -> None:
        self._require_phase(Phase.QUIZ)
        if not any_quiz_passed(self.module, self.pass_threshold):
            raise TransitionError(f"Pass a quiz with at least {self.pass_threshold:g}% first")
        self.assessment = None
        self.answers = {}
        self.phase = Phase.FINAL_TEST

    def return_to_assignment(self) -> None:
        self._require_phase(Phase.QUIZ)
        self.assessment = None
        self.answers = {}
        self.section_index = 0
        self.phase = Phase.ASSIGNMENT

    def return_to_quiz(self) -> None:
        self._require_phase(Phase.FINAL_TEST)
        self.assessment = None
        self.answers = {}
        self.phase = Phase.QUIZ

    async def submit_final_test(self) -> FinalTestResult:
        self._require_phase(Phase.FINAL_TEST)
        questions, answers = self._take_questions()
        result = record_final_test(self.module, questions, answers, self.pass_threshold)
        self.last_score = result.score
        self.score_details = result.details
        self.phase = Phase.RESULTS
        logger.info(f"Final test for {self.module.id} scored {result.score:.1f} ({result.status.value})")
        await self._write(result.update)
        return result

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    async def reset_for_retry(self) -> Phase:
        """Start a needs_revisit module over, keeping its resources and generated content."""
        self._require_phase(Phase.RESULTS)
        if self.module.status != ModuleStatus.NEEDS_REVISIT:
            raise TransitionError("Only modules that need revisiting can be reset")

        self.module.status = ModuleStatus.STARTED
        self.module.assignments = AssignmentProgress()
        self.module.quizzes = []
        self.module.final_test_score = 0.0
        self.module.certificate_issued = False
        last_updated = self.module.touch()

        self._clear_ephemeral()
        self.dismiss_notices()
        self.phase = Phase.ASSIGNMENT
        logger.info(f"Module {self.module.id} reset for retry")
        await self._write(
            {
                "status": self.module.status.value,
                "assignments": {},
                "quizzes": [],
                "finalTestScore": 0.0,
                "certificateIssued": False,
                "lastUpdated": last_updated,
            }
        )
        return self.phase

    def certificate_text(self, learner_name: str) -> str:
        """Plain-text certificate for a completed module."""
        if not self.module.certificate_issued:
            raise TransitionError("No certificate has been issued for this module")
        if not learner_name or not learner_name.strip():
            raise ValueError("Please enter your name for the certificate.")
        issued = self.module.last_updated.strftime("%B %d, %Y")
        return (
            "CERTIFICATE OF COMPLETION\n\n"
            f"This certifies that {learner_name.strip()}\n"
            f"has successfully completed the module \"{self.module.name}\"\n"
            f"with a final score of {self.module.final_test_score:.2f}%.\n\n"
            f"Issued {issued} by Quantum Leap Academy"
        )

    # -------------------------------------------------------------------------
    # Leaving
    # -------------------------------------------------------------------------

    def back_to_modules(self) -> None:
        self._clear_ephemeral()
        self.dismiss_notices()
        self.phase = Phase.MODULE_SELECT
