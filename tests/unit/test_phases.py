"""
Unit tests for phase derivation.
"""

import pytest

from academy.core.content import AssignmentContent, TeacherPick
from academy.core.models import Module, ModuleStatus, QuizAttempt
from academy.study.phases import Phase, derive_phase


@pytest.fixture
def module(sample_assignment):
    module = Module.new("Topology")
    module.teacher_picks = [TeacherPick(title="Munkres")]
    module.assignment_content = AssignmentContent.model_validate(sample_assignment)
    return module


class TestDerivePhase:
    @pytest.mark.parametrize("status", [ModuleStatus.COMPLETED, ModuleStatus.NEEDS_REVISIT])
    def test_finished_modules_open_in_results(self, module, status):
        module.status = status
        module.assignment_content = None  # results wins over missing content

        assert derive_phase(module).phase == Phase.RESULTS

    def test_missing_assignment_needs_generation(self, module):
        module.assignment_content = None

        decision = derive_phase(module)

        assert decision.phase == Phase.ASSIGNMENT
        assert decision.needs_generation

    def test_missing_picks_needs_generation(self, module):
        module.teacher_picks = []

        assert derive_phase(module).needs_generation

    def test_assignment_done_opens_quiz(self, module):
        module.status = ModuleStatus.ASSIGNMENT_DONE
        module.quizzes = [QuizAttempt(score=100.0)]

        assert derive_phase(module).phase == Phase.QUIZ

    def test_all_quizzes_passed_opens_final_test(self, module):
        module.status = ModuleStatus.RESOURCES_ADDED
        module.quizzes = [QuizAttempt(score=80.0), QuizAttempt(score=100.0)]

        assert derive_phase(module).phase == Phase.FINAL_TEST

    def test_one_failed_quiz_stays_in_assignment(self, module):
        module.quizzes = [QuizAttempt(score=60.0), QuizAttempt(score=100.0)]

        assert derive_phase(module).phase == Phase.ASSIGNMENT

    def test_fresh_module_opens_assignment(self, module):
        decision = derive_phase(module)

        assert decision.phase == Phase.ASSIGNMENT
        assert not decision.needs_generation

    def test_custom_threshold(self, module):
        module.quizzes = [QuizAttempt(score=60.0)]

        assert derive_phase(module, threshold=60.0).phase == Phase.FINAL_TEST
