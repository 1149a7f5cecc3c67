'''
Automatic grading of assessment answers.
'''
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from ..database.db_enums import QuestionType

AUTO_GRADABLE = frozenset({QuestionType.MULTIPLE_CHOICE.value, QuestionType.TRUE_FALSE.value})


def _normalize(value: Any) -> str:
    return str(value).strip().lower()


def is_correct(question, answer: Any) -> bool:
    if answer is None or question.correct_answer is None:
        return False
    return _normalize(answer) == _normalize(question.correct_answer)


def auto_grade(questions: Iterable, answers: dict[str, Any]) -> tuple[int, bool]:
    """
    Scores the auto-gradable questions (case-insensitive match).
    Returns (score, fully_graded); fully_graded is False when any question
    (short answer, essay) needs a teacher.
    """
    score = 0
    fully_graded = True
    for question in questions:
        if question.type not in AUTO_GRADABLE:
            fully_graded = False
            continue
        if is_correct(question, answers.get(str(question.id))):
            score += question.points
    return score, fully_graded


def pass_rate(scores: list[int], passing_points: Optional[int]) -> Optional[Decimal]:
    """Percentage of scores at or above the pass mark, or None without one."""
    if passing_points is None or not scores:
        return None
    passed = sum(1 for score in scores if score >= passing_points)
    return (Decimal(passed) * 100 / len(scores)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
