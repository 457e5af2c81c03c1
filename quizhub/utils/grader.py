"""Pure grading of a submitted answer list against a quiz definition.

Answers are matched to questions by position. Missing answers are graded
as incorrect; answers beyond the last question are ignored. No I/O
happens here, so the evaluation service can call it freely.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from ..schemas import QuestionKind, QuizDefinition, QuizQuestion


@dataclass
class QuestionGrade:
    question_index: int
    question: str
    answer_text: str
    is_correct: bool
    points_awarded: float

    def as_record(self) -> dict:
        return {
            "question_index": self.question_index,
            "answer_text": self.answer_text,
            "is_correct": self.is_correct,
            "points_awarded": self.points_awarded,
        }


@dataclass
class GradeResult:
    per_question: List[QuestionGrade] = field(default_factory=list)
    total_score: float = 0
    max_score: float = 0


def question_points(question: QuizQuestion) -> float:
    """Weight of a question; unset points count as 1."""
    return 1 if question.points is None else question.points


def _is_correct(question: QuizQuestion, answer: Optional[Any]) -> bool:
    if answer is None:
        return False
    if question.kind == QuestionKind.MULTIPLE_CHOICE:
        correct_option = next((o for o in question.options if o.is_correct), None)
        return correct_option is not None and answer == correct_option.text
    if question.kind == QuestionKind.FREE_TEXT:
        if not isinstance(answer, str) or question.correct_answer is None:
            return False
        return answer.strip().lower() == question.correct_answer.strip().lower()
    if question.kind == QuestionKind.BOOLEAN:
        # exact match, unlike free text
        return question.correct_answer is not None and answer == question.correct_answer
    return False


def grade(quiz: QuizDefinition, answers: Sequence[Any]) -> GradeResult:
    """Grade `answers` positionally against `quiz.questions`.

    Each correct answer earns the full points of its question; there is
    no partial credit.
    """
    result = GradeResult()
    for idx, question in enumerate(quiz.questions):
        answer = answers[idx] if idx < len(answers) else None
        points = question_points(question)
        correct = _is_correct(question, answer)
        awarded = points if correct else 0
        result.per_question.append(QuestionGrade(
            question_index=idx,
            question=question.text,
            answer_text="" if answer is None else str(answer),
            is_correct=correct,
            points_awarded=awarded,
        ))
        result.total_score += awarded
        result.max_score += points
    return result


def percentage_of(total_score: float, max_score: float) -> int:
    """Whole percentage, rounded half up and kept within 0..100."""
    if max_score <= 0:
        return 0
    pct = math.floor(total_score / max_score * 100 + 0.5)
    return max(0, min(100, int(pct)))


def has_passed(percentage: int, max_score: float, passing_score_percent: float) -> bool:
    """A quiz without gradable points can never be passed."""
    if max_score <= 0:
        return False
    return percentage >= passing_score_percent
