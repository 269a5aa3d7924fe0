"""
Review Service - reviewer side of the submission workflow.

Reviewers grade free-text quizzes and approve or reject projects. A write
is only admitted while the submission is pending review and its version
is the one the reviewer looked at.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Union
from uuid import UUID

from academy.model.enums import ProjectSubmissionStatus, QuizSubmissionStatus
from academy.repositories.protocols import EnrollmentStore, LessonCatalog, SubmissionStore
from academy.schemas.submission import (
    FreeTextGrade,
    ProjectSubmissionRecord,
    QuizSubmissionRecord,
)
from academy.services import grading_rules
from academy.services.progress_service import ProgressService
from academy.utils.exceptions import (
    ConflictException,
    ResourceNotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


def can_apply_review(submission: Union[QuizSubmissionRecord, ProjectSubmissionRecord, None]) -> bool:
    """Sole admission check for a reviewer write."""
    return submission is not None and submission.is_pending_review


def _ensure_reviewable(submission, expected_version: int) -> None:
    if not can_apply_review(submission):
        raise ConflictException(
            f"Submission {submission.id} is not awaiting review",
            current_version=submission.version,
        )
    if submission.version != expected_version:
        raise ConflictException(
            f"Submission {submission.id} changed since it was read",
            current_version=submission.version,
        )


class ReviewService:
    """
    Service for reviewer grading decisions.

    Inject via FastAPI Depends() (see academy.dependencies.services).
    """

    def __init__(
            self,
            progress_service: ProgressService,
            lesson_catalog: LessonCatalog,
            submission_store: SubmissionStore,
            enrollment_store: EnrollmentStore,
            pass_percentage: int = grading_rules.DEFAULT_PASS_PERCENTAGE,
    ):
        self._progress = progress_service
        self._catalog = lesson_catalog
        self._submissions = submission_store
        self._enrollments = enrollment_store
        self._pass_percentage = pass_percentage

    async def _resync(self, user_id: str, course_id: UUID) -> None:
        enrollment = await self._enrollments.get_enrollment(user_id, course_id)
        if enrollment is None:
            logger.warning(f"Reviewed submission of {user_id} without enrollment in {course_id}")
            return
        lessons = await self._progress.load_lessons(course_id)
        snapshot = await self._progress.load_snapshot(user_id, course_id)
        await self._progress.sync_enrollment(user_id, course_id, lessons, snapshot, enrollment)

    # =============================
    #   Quiz
    # =============================
    async def review_quiz(
            self,
            reviewer_id: str,
            submission_id: UUID,
            free_text_grades: List[FreeTextGrade],
            expected_version: int,
            is_passed: Optional[bool] = None,
    ) -> QuizSubmissionRecord:
        """
        Grade a quiz submission waiting for review.

        Score and total are marks based over every question; pass/fail is
        the reviewer's override or the quiz pass line.

        Raises:
            ResourceNotFoundException: unknown submission or lesson
            ConflictException: not pending review, or stale ``expected_version``
        """
        submission = await self._submissions.get_quiz_submission_by_id(submission_id)
        if submission is None:
            raise ResourceNotFoundException(f"Quiz submission not found with ID: {submission_id}")
        _ensure_reviewable(submission, expected_version)

        lesson = await self._catalog.get_lesson(submission.lesson_id)
        if lesson is None or lesson.quiz is None:
            raise ResourceNotFoundException(f"Quiz lesson not found with ID: {submission.lesson_id}")

        score, total, reviewed = grading_rules.score_reviewed_submission(
            lesson.quiz, submission.answers, free_text_grades
        )
        if is_passed is None:
            pct = grading_rules.percentage(score, total)
            is_passed = pct is not None and pct >= self._pass_percentage

        record = submission.model_copy(update={
            "status": QuizSubmissionStatus.GRADED,
            "answers": reviewed,
            "score": score,
            "total": total,
            "is_passed": is_passed,
            "reviewer_id": reviewer_id,
            "reviewed_at": datetime.now(timezone.utc),
        })
        saved = await self._submissions.put_quiz_submission(record, expected_version)

        await self._enrollments.mark_lesson_complete(saved.user_id, saved.course_id, saved.lesson_id)
        await self._resync(saved.user_id, saved.course_id)
        await self._enrollments.commit()

        logger.info(
            f"Quiz submission {submission_id} graded by {reviewer_id}: "
            f"{score}/{total}, passed={is_passed}"
        )
        return saved

    # =============================
    #   Project
    # =============================
    async def review_project(
            self,
            reviewer_id: str,
            submission_id: UUID,
            status: str,
            feedback: Optional[str],
            expected_version: int,
    ) -> ProjectSubmissionRecord:
        """
        Approve or reject a project submission waiting for review.

        Raises:
            ResourceNotFoundException: unknown submission
            ValidationException: status other than approved/rejected
            ConflictException: not pending review, or stale ``expected_version``
        """
        try:
            decision = ProjectSubmissionStatus(status)
        except ValueError:
            raise ValidationException(f"Invalid review status: {status}")
        if decision == ProjectSubmissionStatus.PENDING_REVIEW:
            raise ValidationException("A review must approve or reject the project")

        submission = await self._submissions.get_project_submission_by_id(submission_id)
        if submission is None:
            raise ResourceNotFoundException(f"Project submission not found with ID: {submission_id}")
        _ensure_reviewable(submission, expected_version)

        record = submission.model_copy(update={
            "status": decision,
            "feedback": feedback,
            "reviewer_id": reviewer_id,
            "reviewed_at": datetime.now(timezone.utc),
        })
        saved = await self._submissions.put_project_submission(record, expected_version)

        if decision == ProjectSubmissionStatus.APPROVED:
            await self._enrollments.mark_lesson_complete(saved.user_id, saved.course_id, saved.lesson_id)
        await self._resync(saved.user_id, saved.course_id)
        await self._enrollments.commit()

        logger.info(f"Project submission {submission_id} {decision.value} by {reviewer_id}")
        return saved

    # =============================
    #   Queues
    # =============================
    async def list_pending_quiz_reviews(self, course_id: Optional[UUID] = None) -> List[QuizSubmissionRecord]:
        return await self._submissions.list_pending_quiz_submissions(course_id)

    async def list_pending_project_reviews(
            self, course_id: Optional[UUID] = None
    ) -> List[ProjectSubmissionRecord]:
        return await self._submissions.list_pending_project_submissions(course_id)

    async def list_final_exam_submissions(self, course_id: UUID) -> List[QuizSubmissionRecord]:
        """All learners' submissions to the course's final exam, oldest first."""
        lessons = await self._progress.load_lessons(course_id)
        exam_lesson = self._progress.final_exam_lesson(lessons)
        if exam_lesson is None:
            return []
        return await self._submissions.list_quiz_submissions_for_lesson(exam_lesson.id)
