'''
testing automatic grading
'''
import uuid
from decimal import Decimal
from types import SimpleNamespace

from tutor_hub_backend.core.grading import auto_grade, is_correct, pass_rate


def question(type_: str, correct: str | None, points: int = 5):
    return SimpleNamespace(id=uuid.uuid4(), type=type_, correct_answer=correct, points=points)


def test_is_correct_ignores_case_and_whitespace():
    q = question("multiple_choice", "Paris")
    assert is_correct(q, "  paris ")
    assert not is_correct(q, "London")
    assert not is_correct(q, None)


def test_is_correct_without_a_key():
    assert not is_correct(question("multiple_choice", None), "anything")


def test_auto_grade_scores_objective_questions():
    q1 = question("multiple_choice", "B", points=4)
    q2 = question("true_false", "true", points=6)
    answers = {str(q1.id): "b", str(q2.id): "False"}

    score, fully_graded = auto_grade([q1, q2], answers)

    assert score == 4
    assert fully_graded is True


def test_auto_grade_flags_questions_needing_a_teacher():
    q1 = question("multiple_choice", "A", points=3)
    q2 = question("essay", None, points=10)
    answers = {str(q1.id): "A", str(q2.id): "A long answer"}

    score, fully_graded = auto_grade([q1, q2], answers)

    assert score == 3
    assert fully_graded is False


def test_auto_grade_missing_answers_score_zero():
    q1 = question("multiple_choice", "A")
    assert auto_grade([q1], {}) == (0, True)


def test_pass_rate():
    assert pass_rate([50, 70, 90], 60) == Decimal("66.67")
    assert pass_rate([60, 60], 60) == Decimal("100.00")


def test_pass_rate_without_pass_mark_or_scores():
    assert pass_rate([10, 20], None) is None
    assert pass_rate([], 50) is None
