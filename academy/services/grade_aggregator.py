"""
Course grade aggregation and certificate gate.

The course grade is out of 100: 30 points spread evenly over the CAT quizzes
and 70 points for the final exam. Only graded submissions contribute; a CAT
still waiting for review keeps its share of the weight and scores nothing.
"""

import logging
from typing import Optional, Sequence

from academy.schemas.progress import EnrollmentRecord, GradeSnapshot
from academy.schemas.submission import QuizSubmissionRecord

logger = logging.getLogger(__name__)

CAT_WEIGHT_TOTAL = 30.0
FINAL_EXAM_WEIGHT_TOTAL = 70.0
COURSE_PASS_SCORE = 70.0


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def _graded_ratio(submission: Optional[QuizSubmissionRecord]) -> float:
    if submission is None or not submission.is_graded:
        return 0.0
    if submission.score is None or not submission.total or submission.total <= 0:
        return 0.0
    return _clamp(submission.score / submission.total, 0.0, 1.0)


def compute_grade(
        cat_submissions: Sequence[QuizSubmissionRecord],
        final_exam_submission: Optional[QuizSubmissionRecord],
        cat_count: Optional[int] = None,
        cat_weight_total: float = CAT_WEIGHT_TOTAL,
        final_exam_weight_total: float = FINAL_EXAM_WEIGHT_TOTAL,
) -> GradeSnapshot:
    """
    Combine CAT and final exam submissions into a GradeSnapshot.

    Args:
        cat_submissions: current submissions for the course's CAT quizzes
        final_exam_submission: current final exam submission, if any
        cat_count: number of CAT quizzes in the course; CATs the learner has
            not submitted yet count for zero. Defaults to the number of
            submissions given.
    """
    count = cat_count if cat_count is not None else len(cat_submissions)
    count = max(count, len(cat_submissions))

    cat_scaled = 0.0
    if count > 0:
        weight = cat_weight_total / count
        cat_scaled = sum(_graded_ratio(s) * weight for s in cat_submissions)
    cat_scaled = _clamp(cat_scaled, 0.0, cat_weight_total)

    exam_graded = final_exam_submission is not None and final_exam_submission.is_graded
    exam_scaled = _graded_ratio(final_exam_submission) * final_exam_weight_total

    return GradeSnapshot(
        cat_scaled_30=cat_scaled,
        exam_scaled_70=exam_scaled,
        final_score_100=_clamp(cat_scaled + exam_scaled, 0.0, 100.0),
        has_final_exam=final_exam_submission is not None,
        final_exam_pending_review=(
            final_exam_submission is not None and final_exam_submission.is_pending_review
        ),
        final_exam_graded=exam_graded,
    )


def course_pass_decision(
        is_completed: bool,
        snapshot: GradeSnapshot,
        has_pending_reviews: bool = False,
        pass_score: float = COURSE_PASS_SCORE,
) -> Optional[bool]:
    """
    Pass/fail for the whole course, independent from a single quiz's pass line.

    Undecided (None) until the course is completed and nothing is waiting
    for a reviewer.
    """
    if not is_completed:
        return None
    if has_pending_reviews or snapshot.final_exam_pending_review:
        return None
    return snapshot.final_exam_graded and snapshot.final_score_100 >= pass_score


def is_certificate_eligible(
        enrollment: Optional[EnrollmentRecord], snapshot: Optional[GradeSnapshot] = None
) -> bool:
    """The only check that may authorize issuing a certificate."""
    if enrollment is None:
        return False
    return enrollment.is_completed is True and enrollment.is_passed is True
