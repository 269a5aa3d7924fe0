"""
Submission Service - learner side of the quiz and project workflows.

Quiz:    submit -> graded (MCQ only) | pending_review (any free text)
Project: submit -> pending_review -> approved | rejected -> resubmit
"""

import logging
from typing import List, Optional
from uuid import UUID, uuid4

from academy.config import Settings
from academy.model.enums import ProjectSubmissionStatus, QuizSubmissionStatus
from academy.repositories.protocols import EnrollmentStore, SubmissionStore
from academy.schemas.course import QuizDefinition
from academy.schemas.submission import (
    ProjectSubmissionRecord,
    QuizSubmissionRecord,
    RetakeStatus,
    SubmissionAnswer,
)
from academy.services import grading_rules
from academy.services.progress_service import LessonContext, ProgressService
from academy.utils.exceptions import (
    AccessDeniedException,
    ConflictException,
    ResourceNotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


def normalize_urls(urls: Optional[List[str]], limit: int) -> List[str]:
    """Trim attachment URLs, drop empty ones and keep at most ``limit``."""
    cleaned = [u.strip() for u in (urls or []) if u and u.strip()]
    return cleaned[:limit]


def check_expected_version(current, expected_version: Optional[int]) -> None:
    """
    The caller's view of the record must match the stored one: no record
    and no version, or the same version.

    Raises:
        ConflictException: the record was created or changed since the caller read it
    """
    if current is None:
        if expected_version is not None:
            raise ConflictException("Submission no longer exists; reload and try again")
        return
    if expected_version is None or expected_version != current.version:
        raise ConflictException(
            "Submission was modified since it was last read",
            current_version=current.version,
        )


class SubmissionService:
    """
    Service for learner quiz and project submissions.

    Inject via FastAPI Depends() (see academy.dependencies.services).
    """

    def __init__(
            self,
            progress_service: ProgressService,
            submission_store: SubmissionStore,
            enrollment_store: EnrollmentStore,
            settings: Settings,
    ):
        self._progress = progress_service
        self._submissions = submission_store
        self._enrollments = enrollment_store
        self._settings = settings

    @property
    def attempts_allowed(self) -> int:
        return 1 + self._settings.max_quiz_retakes

    # =============================
    #   Quiz
    # =============================
    def ensure_can_replace(self, current: Optional[QuizSubmissionRecord]) -> None:
        """
        Retake admission for an existing quiz submission.

        Raises:
            ConflictException: the current submission is waiting for a reviewer
            ValidationException: the current submission already passed
            AccessDeniedException: manually graded, or retakes used up
        """
        if current is None:
            return
        if current.is_pending_review:
            raise ConflictException(
                "Submission is awaiting review and cannot be replaced",
                current_version=current.version,
            )
        if current.is_passed:
            raise ValidationException("Quiz already passed")
        if current.has_free_text:
            raise AccessDeniedException("Manually graded quizzes cannot be retaken")
        if current.attempt_count >= self.attempts_allowed:
            raise AccessDeniedException("No retakes left for this quiz")

    def retake_status(self, lesson_id: UUID, current: Optional[QuizSubmissionRecord]) -> RetakeStatus:
        used = current.attempt_count if current else 0
        try:
            self.ensure_can_replace(current)
            can_retake = current is not None
        except (ConflictException, ValidationException, AccessDeniedException):
            can_retake = False
        return RetakeStatus(
            lesson_id=lesson_id,
            can_retake=can_retake,
            attempts_used=used,
            attempts_allowed=self.attempts_allowed,
        )

    @staticmethod
    def _quiz_definition(context: LessonContext) -> QuizDefinition:
        lesson = context.lesson
        if not lesson.content_type.is_quiz():
            raise ValidationException(f"Lesson {lesson.id} is not a quiz")
        if lesson.quiz is None:
            raise ValidationException(f"Quiz lesson {lesson.id} has no questions")
        return lesson.quiz

    async def submit_quiz(
            self,
            user_id: str,
            course_id: UUID,
            lesson_id: UUID,
            answers: List[SubmissionAnswer],
            attachment_urls: Optional[List[str]] = None,
            expected_version: Optional[int] = None,
    ) -> QuizSubmissionRecord:
        """
        Submit (or retake) a quiz.

        Auto-gradable quizzes are graded immediately and complete the lesson;
        any free-text question sends the whole submission to review.

        Raises:
            ResourceNotFoundException: unknown course or lesson
            AccessDeniedException: not enrolled, lesson locked, or no retakes left
            ValidationException: not a quiz, incomplete answers, or already passed
            ConflictException: pending review, or stale ``expected_version``
        """
        context = await self._progress.load_lesson_context(user_id, course_id, lesson_id)
        definition = self._quiz_definition(context)
        grading_rules.validate_answer_set(definition, answers)
        urls = normalize_urls(attachment_urls, self._settings.max_attachment_urls)

        current = context.snapshot.quiz_submissions.get(lesson_id)
        check_expected_version(current, expected_version)
        self.ensure_can_replace(current)

        record = self._grade_attempt(
            context, definition, answers, urls, current,
            attempt_count=current.attempt_count + 1 if current else 1,
        )
        saved = await self._save_attempt(context, record, current)

        logger.info(
            f"Quiz {lesson_id} submitted by {user_id}: status={saved.status.value}, "
            f"attempt={saved.attempt_count}, passed={saved.is_passed}"
        )
        return saved

    async def retake_final_exam(
            self,
            user_id: str,
            course_id: UUID,
            answers: List[SubmissionAnswer],
            attachment_urls: Optional[List[str]] = None,
            expected_version: Optional[int] = None,
    ) -> QuizSubmissionRecord:
        """
        Sit the final exam again after the course was completed and failed.

        The new attempt replaces the exam submission whatever its own result
        was, with a fresh attempt count. The course result is recomputed from
        it; a free-text exam goes back to review.

        Raises:
            ResourceNotFoundException: unknown course
            AccessDeniedException: not enrolled, or the course is not completed and failed
            ValidationException: the course has no final exam, or incomplete answers
            ConflictException: pending review, or stale ``expected_version``
        """
        lessons = await self._progress.load_lessons(course_id)
        exam_lesson = self._progress.final_exam_lesson(lessons)
        if exam_lesson is None:
            raise ValidationException(f"Course {course_id} has no final exam")

        context = await self._progress.load_lesson_context(user_id, course_id, exam_lesson.id)
        enrollment = context.enrollment
        if not (enrollment.is_completed and enrollment.is_passed is False):
            raise AccessDeniedException(
                "The final exam can only be retaken once the course is completed and failed"
            )

        definition = self._quiz_definition(context)
        grading_rules.validate_answer_set(definition, answers)
        urls = normalize_urls(attachment_urls, self._settings.max_attachment_urls)

        current = context.snapshot.quiz_submissions.get(exam_lesson.id)
        check_expected_version(current, expected_version)
        if current is not None and current.is_pending_review:
            raise ConflictException(
                "Final exam is awaiting review and cannot be replaced",
                current_version=current.version,
            )

        record = self._grade_attempt(context, definition, answers, urls, current, attempt_count=1)
        saved = await self._save_attempt(context, record, current)

        logger.info(
            f"Final exam of course {course_id} retaken by {user_id}: "
            f"status={saved.status.value}, passed={saved.is_passed}, "
            f"course passed={context.enrollment.is_passed}"
        )
        return saved

    def _grade_attempt(
            self,
            context: LessonContext,
            definition: QuizDefinition,
            answers: List[SubmissionAnswer],
            urls: List[str],
            current: Optional[QuizSubmissionRecord],
            attempt_count: int,
    ) -> QuizSubmissionRecord:
        result = grading_rules.grade_quiz(definition, answers)
        if result.requires_manual_review:
            status = QuizSubmissionStatus.PENDING_REVIEW
            score = total = is_passed = None
        else:
            status = QuizSubmissionStatus.GRADED
            score = float(result.auto_score)
            total = float(result.auto_total)
            is_passed = result.is_passing(self._settings.quiz_pass_percentage)

        return QuizSubmissionRecord(
            id=current.id if current else uuid4(),
            user_id=context.enrollment.user_id,
            course_id=context.lesson.course_id,
            lesson_id=context.lesson.id,
            status=status,
            answers=answers,
            score=score,
            total=total,
            is_passed=is_passed,
            attachment_urls=urls,
            attempt_count=attempt_count,
        )

    async def _save_attempt(
            self,
            context: LessonContext,
            record: QuizSubmissionRecord,
            current: Optional[QuizSubmissionRecord],
    ) -> QuizSubmissionRecord:
        saved = await self._submissions.put_quiz_submission(
            record, current.version if current else None
        )
        context.snapshot.apply_quiz(saved)

        user_id, course_id, lesson_id = saved.user_id, saved.course_id, saved.lesson_id
        if saved.is_graded:
            await self._enrollments.mark_lesson_complete(user_id, course_id, lesson_id)
        elif current is not None:
            # A replaced graded attempt left a completion behind
            await self._enrollments.remove_lesson_completion(user_id, course_id, lesson_id)
        await self._progress.sync_after_write(context)
        await self._enrollments.commit()
        return saved

    async def get_quiz_submission(self, user_id: str, lesson_id: UUID) -> QuizSubmissionRecord:
        submission = await self._submissions.get_quiz_submission(user_id, lesson_id)
        if submission is None:
            raise ResourceNotFoundException(f"No quiz submission for lesson {lesson_id}")
        return submission

    async def get_retake_status(self, user_id: str, lesson_id: UUID) -> RetakeStatus:
        current = await self._submissions.get_quiz_submission(user_id, lesson_id)
        return self.retake_status(lesson_id, current)

    # =============================
    #   Project
    # =============================
    async def submit_project(
            self,
            user_id: str,
            course_id: UUID,
            lesson_id: UUID,
            submission_text: Optional[str] = None,
            submission_url: Optional[str] = None,
            attachment_urls: Optional[List[str]] = None,
            expected_version: Optional[int] = None,
    ) -> ProjectSubmissionRecord:
        """
        Submit a project for review. Resubmission is allowed after a rejection.

        Raises:
            ResourceNotFoundException: unknown course or lesson
            AccessDeniedException: not enrolled or lesson locked
            ValidationException: not a project, empty submission, or already approved
            ConflictException: pending review, or stale ``expected_version``
        """
        context = await self._progress.load_lesson_context(user_id, course_id, lesson_id)
        if not context.lesson.content_type.is_project():
            raise ValidationException(f"Lesson {lesson_id} is not a project")

        text = submission_text.strip() if submission_text else None
        url = submission_url.strip() if submission_url else None
        if not text and not url:
            raise ValidationException("A project submission needs text or a URL")
        urls = normalize_urls(attachment_urls, self._settings.max_attachment_urls)

        current = await self._submissions.get_project_submission(user_id, lesson_id)
        check_expected_version(current, expected_version)
        if current is not None:
            if current.is_pending_review:
                raise ConflictException(
                    "Project is awaiting review and cannot be replaced",
                    current_version=current.version,
                )
            if current.status == ProjectSubmissionStatus.APPROVED:
                raise ValidationException("Project already approved")

        record = ProjectSubmissionRecord(
            id=current.id if current else uuid4(),
            user_id=user_id,
            course_id=course_id,
            lesson_id=lesson_id,
            status=ProjectSubmissionStatus.PENDING_REVIEW,
            submission_text=text,
            submission_url=url,
            attachment_urls=urls,
            # Previous reviewer feedback stays visible while the resubmission waits
            feedback=current.feedback if current else None,
        )
        saved = await self._submissions.put_project_submission(
            record, current.version if current else None
        )
        context.snapshot.apply_project(saved)

        await self._progress.sync_after_write(context)
        await self._enrollments.commit()

        logger.info(f"Project {lesson_id} submitted by {user_id} for review")
        return saved

    async def get_project_submission(self, user_id: str, lesson_id: UUID) -> ProjectSubmissionRecord:
        submission = await self._submissions.get_project_submission(user_id, lesson_id)
        if submission is None:
            raise ResourceNotFoundException(f"No project submission for lesson {lesson_id}")
        return submission
