"""
Grading rules for quiz submissions.

Pure functions over a quiz definition and a learner's answers:
    - grade_quiz: objective score over multiple-choice questions and whether
      a human must grade the submission
    - validate_answer_set: completeness check run before anything is stored
    - score_reviewed_submission: marks-based score once a reviewer has graded
      the free-text answers
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from academy.model.enums import QuestionType
from academy.schemas.course import QuizDefinition, QuizQuestion
from academy.schemas.submission import FreeTextGrade, SubmissionAnswer
from academy.utils.exceptions import ValidationException

logger = logging.getLogger(__name__)

DEFAULT_PASS_PERCENTAGE = 70


class QuizGradeResult(BaseModel):
    auto_score: int
    auto_total: int
    requires_manual_review: bool

    @property
    def percentage(self) -> Optional[int]:
        return percentage(self.auto_score, self.auto_total)

    def is_passing(self, threshold: int = DEFAULT_PASS_PERCENTAGE) -> bool:
        pct = self.percentage
        return pct is not None and pct >= threshold


def percentage(score: float, total: float) -> Optional[int]:
    """Whole-number percentage, halves rounded up. None when there is nothing to score."""
    if not total or total <= 0:
        return None
    value = Decimal(str(score)) / Decimal(str(total)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def index_answers(answers: Iterable[SubmissionAnswer]) -> Dict[int, SubmissionAnswer]:
    return {a.question_index: a for a in answers}


def is_answered(question: QuizQuestion, answer: Optional[SubmissionAnswer]) -> bool:
    if answer is None or answer.question_type != question.question_type:
        return False
    if question.question_type.is_multiple_choice():
        selected = answer.selected_option
        if not isinstance(selected, int):
            return False
        # Questions authored without options accept any index
        return not question.options or 0 <= selected < len(question.options)
    return bool((answer.answer_text or "").strip())


def grade_quiz(definition: QuizDefinition, answers: List[SubmissionAnswer]) -> QuizGradeResult:
    """
    Auto-grade the multiple-choice part of a quiz.

    Any free-text question forces manual review of the whole submission,
    however the multiple-choice answers scored.

    Raises:
        ValidationException: the quiz has no questions
    """
    if not definition.questions:
        raise ValidationException("Quiz has no questions")

    by_index = index_answers(answers)
    auto_score = 0
    auto_total = 0
    requires_manual_review = False

    for index, question in enumerate(definition.questions):
        if question.question_type.is_free_text():
            requires_manual_review = True
            continue

        auto_total += 1
        answer = by_index.get(index)
        if _is_correct(question, answer):
            auto_score += 1

    logger.debug(
        f"Graded quiz: {auto_score}/{auto_total}, manual review: {requires_manual_review}"
    )
    return QuizGradeResult(
        auto_score=auto_score,
        auto_total=auto_total,
        requires_manual_review=requires_manual_review,
    )


def validate_answer_set(definition: QuizDefinition, answers: List[SubmissionAnswer]) -> None:
    """
    Accept a submission only when every question carries an answer of its type.

    Raises:
        ValidationException: empty quiz, duplicate/unknown question indices,
            type mismatch or an unanswered question
    """
    if not definition.questions:
        raise ValidationException("Quiz has no questions")

    seen = set()
    for answer in answers:
        if answer.question_index in seen:
            raise ValidationException(
                f"Duplicate answer for question {answer.question_index}"
            )
        seen.add(answer.question_index)
        if answer.question_index >= len(definition.questions):
            raise ValidationException(
                f"Answer refers to unknown question {answer.question_index}"
            )

    by_index = index_answers(answers)
    missing = [
        index
        for index, question in enumerate(definition.questions)
        if not is_answered(question, by_index.get(index))
    ]
    if missing:
        raise ValidationException(
            f"All questions must be answered before submitting (missing: {missing})"
        )


def score_reviewed_submission(
        definition: QuizDefinition,
        answers: List[SubmissionAnswer],
        free_text_grades: List[FreeTextGrade],
) -> Tuple[float, float, List[SubmissionAnswer]]:
    """
    Compute the marks-based score of a manually reviewed submission.

    Correct multiple-choice answers earn the question's max marks; free-text
    answers earn the reviewer's marks floored and clamped to [0, max_marks].
    Grades for indices that are not free-text answers are ignored. A
    free-text answer without a grade keeps any mark it already had.

    Returns:
        (score, total, answers with awarded_marks filled in)
    """
    grades = {
        g.question_index: max(0, math.floor(g.awarded_marks))
        for g in free_text_grades
        if math.isfinite(g.awarded_marks)
    }

    reviewed: List[SubmissionAnswer] = []
    for answer in answers:
        if not answer.question_type.is_free_text():
            reviewed.append(answer)
            continue

        question = _question_at(definition, answer.question_index)
        max_marks = question.max_marks if question else 0.0
        awarded = grades.get(answer.question_index, answer.awarded_marks)
        if awarded is not None:
            awarded = min(max_marks, float(awarded))
        reviewed.append(answer.model_copy(update={"awarded_marks": awarded}))

    by_index = index_answers(reviewed)
    total = 0.0
    score = 0.0
    for index, question in enumerate(definition.questions):
        total += question.max_marks
        answer = by_index.get(index)
        if question.question_type == QuestionType.MULTIPLE_CHOICE:
            if _is_correct(question, answer):
                score += question.max_marks
        elif answer is not None and answer.awarded_marks is not None:
            score += min(question.max_marks, max(0.0, answer.awarded_marks))

    return score, total, reviewed


def _is_correct(question: QuizQuestion, answer: Optional[SubmissionAnswer]) -> bool:
    correct = question.correct_answer_index
    if correct is None or correct < 0:
        return False
    if question.options and correct >= len(question.options):
        return False
    if answer is None or answer.selected_option is None:
        return False
    return answer.selected_option == correct


def _question_at(definition: QuizDefinition, index: int) -> Optional[QuizQuestion]:
    if 0 <= index < len(definition.questions):
        return definition.questions[index]
    return None
