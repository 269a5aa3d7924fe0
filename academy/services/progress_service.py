"""
Progress Service - enrollment state, lesson completion, grades and certificates.

Architecture:
    - LessonCatalog: ordered lessons of a course
    - SubmissionStore: quiz/project submissions (pending ids, grade inputs)
    - EnrollmentStore: enrollments and lesson completions
    - lesson_sequencer / grade_aggregator: pure rules applied to one
      snapshot read per request
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from academy.config import Settings
from academy.repositories.protocols import EnrollmentStore, LessonCatalog, SubmissionStore
from academy.schemas.course import LessonRecord
from academy.schemas.progress import (
    CertificateResponse,
    CourseProgressResponse,
    DashboardCourseSummary,
    DashboardResponse,
    EnrollmentRecord,
    GradeSnapshot,
    LessonProgress,
    ProgressSnapshot,
)
from academy.schemas.submission import QuizSubmissionRecord
from academy.services import grade_aggregator, lesson_sequencer
from academy.utils.exceptions import (
    AccessDeniedException,
    ResourceNotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


@dataclass
class LessonContext:
    """Everything a lesson-level write needs, read once at the start of the request"""
    lesson: LessonRecord
    index: int
    lessons: List[LessonRecord]
    enrollment: EnrollmentRecord
    snapshot: ProgressSnapshot


class ProgressService:
    """
    Service for learner progress through a course.

    Inject via FastAPI Depends() (see academy.dependencies.services).
    """

    def __init__(
            self,
            lesson_catalog: LessonCatalog,
            submission_store: SubmissionStore,
            enrollment_store: EnrollmentStore,
            settings: Settings,
    ):
        self._catalog = lesson_catalog
        self._submissions = submission_store
        self._enrollments = enrollment_store
        self._settings = settings

    # =============================
    #   Reads
    # =============================
    async def load_lessons(self, course_id: UUID) -> List[LessonRecord]:
        """
        Raises:
            ResourceNotFoundException: unknown course
            ValidationException: two lessons share a step number
        """
        if not await self._catalog.course_exists(course_id):
            raise ResourceNotFoundException(f"Course not found with ID: {course_id}")
        lessons = await self._catalog.list_lessons(course_id)
        return lesson_sequencer.order_lessons(lessons)

    async def load_snapshot(self, user_id: str, course_id: UUID) -> ProgressSnapshot:
        completed = await self._enrollments.get_completed_lesson_ids(user_id, course_id)
        pending = await self._submissions.get_pending_review_lesson_ids(user_id, course_id)
        quizzes = await self._submissions.list_quiz_submissions(user_id, course_id)
        return ProgressSnapshot(
            completed_ids=set(completed),
            pending_review_ids=set(pending),
            quiz_submissions={q.lesson_id: q for q in quizzes},
        )

    async def require_enrollment(self, user_id: str, course_id: UUID) -> EnrollmentRecord:
        enrollment = await self._enrollments.get_enrollment(user_id, course_id)
        if enrollment is None:
            raise AccessDeniedException("You are not enrolled in this course")
        return enrollment

    async def load_lesson_context(
            self, user_id: str, course_id: UUID, lesson_id: UUID
    ) -> LessonContext:
        """
        Load the lesson, its course and the learner's state, and check the
        lesson is unlocked.

        Raises:
            ResourceNotFoundException: unknown course or lesson
            AccessDeniedException: not enrolled, or the lesson is locked
        """
        lessons = await self.load_lessons(course_id)
        lesson = next((l for l in lessons if l.id == lesson_id), None)
        if lesson is None:
            raise ResourceNotFoundException(
                f"Lesson {lesson_id} not found in course {course_id}"
            )

        enrollment = await self.require_enrollment(user_id, course_id)
        snapshot = await self.load_snapshot(user_id, course_id)
        index = lesson_sequencer.ensure_unlocked(
            lesson, lessons, snapshot.completed_ids, snapshot.pending_review_ids
        )
        return LessonContext(
            lesson=lesson,
            index=index,
            lessons=lessons,
            enrollment=enrollment,
            snapshot=snapshot,
        )

    @staticmethod
    def final_exam_lesson(lessons: Sequence[LessonRecord]) -> Optional[LessonRecord]:
        """The graded final exam: the last one in step order."""
        exam_lessons = [l for l in lessons if l.is_final_exam]
        if not exam_lessons:
            return None
        if len(exam_lessons) > 1:
            logger.warning(
                f"Course has {len(exam_lessons)} final exams; grading the last one"
            )
        return exam_lessons[-1]

    def compute_grade(
            self, lessons: Sequence[LessonRecord], snapshot: ProgressSnapshot
    ) -> GradeSnapshot:
        cat_lessons = [l for l in lessons if l.is_cat]
        cat_submissions = [
            snapshot.quiz_submissions[l.id]
            for l in cat_lessons
            if l.id in snapshot.quiz_submissions
        ]
        final_exam_submission: Optional[QuizSubmissionRecord] = None
        exam_lesson = self.final_exam_lesson(lessons)
        if exam_lesson is not None:
            final_exam_submission = snapshot.quiz_submissions.get(exam_lesson.id)

        return grade_aggregator.compute_grade(
            cat_submissions,
            final_exam_submission,
            cat_count=len(cat_lessons),
            cat_weight_total=self._settings.cat_weight_total,
            final_exam_weight_total=self._settings.final_exam_weight_total,
        )

    # =============================
    #   Enrollment
    # =============================
    async def enroll(self, user_id: str, course_id: UUID) -> EnrollmentRecord:
        await self.load_lessons(course_id)
        existing = await self._enrollments.get_enrollment(user_id, course_id)
        if existing is not None:
            return existing

        enrollment = await self._enrollments.create_enrollment(user_id, course_id)
        await self._enrollments.commit()
        logger.info(f"User {user_id} enrolled in course {course_id}")
        return enrollment

    async def sync_enrollment(
            self,
            user_id: str,
            course_id: UUID,
            lessons: Sequence[LessonRecord],
            snapshot: ProgressSnapshot,
            enrollment: EnrollmentRecord,
    ) -> EnrollmentRecord:
        """
        Recompute completion, pass state and score from the snapshot and
        write them if they changed.

        Raises:
            ConflictException: the enrollment was written since it was read
        """
        is_completed = lesson_sequencer.is_course_completed(
            lessons, snapshot.completed_ids, snapshot.pending_review_ids
        )
        catalog_ids = {l.id for l in lessons}
        has_pending = bool(snapshot.pending_review_ids & catalog_ids)
        grade = self.compute_grade(lessons, snapshot)
        is_passed = grade_aggregator.course_pass_decision(
            is_completed, grade, has_pending, pass_score=self._settings.course_pass_score
        )

        completed_at = enrollment.completed_at
        if is_completed and completed_at is None:
            completed_at = datetime.now(timezone.utc)
        elif not is_completed:
            completed_at = None

        patch = {
            "is_completed": is_completed,
            "is_passed": is_passed,
            "completed_at": completed_at,
            "final_score_100": grade.final_score_100 if is_completed else None,
        }
        changed = {k: v for k, v in patch.items() if getattr(enrollment, k) != v}
        if not changed:
            return enrollment

        updated = await self._enrollments.update_enrollment(
            user_id, course_id, changed, enrollment.version
        )
        logger.info(
            f"Enrollment {user_id}/{course_id} updated: completed={is_completed}, "
            f"passed={is_passed}, score={grade.final_score_100:.1f}"
        )
        return updated

    async def sync_after_write(self, context: LessonContext) -> EnrollmentRecord:
        context.enrollment = await self.sync_enrollment(
            context.enrollment.user_id,
            context.enrollment.course_id,
            context.lessons,
            context.snapshot,
            context.enrollment,
        )
        return context.enrollment

    # =============================
    #   Lesson actions
    # =============================
    async def mark_lesson_complete(
            self, user_id: str, course_id: UUID, lesson_id: UUID
    ) -> EnrollmentRecord:
        """
        Complete a video/text/code/resource lesson by direct learner action.

        Raises:
            ValidationException: quiz or project lesson
            AccessDeniedException: not enrolled or lesson locked
        """
        context = await self.load_lesson_context(user_id, course_id, lesson_id)
        lesson_sequencer.ensure_direct_completion(context.lesson)

        created = await self._enrollments.mark_lesson_complete(user_id, course_id, lesson_id)
        if not created:
            logger.debug(f"Lesson {lesson_id} already complete for {user_id}")
        context.snapshot.mark_completed(lesson_id)

        enrollment = await self.sync_after_write(context)
        await self._enrollments.commit()
        return enrollment

    async def record_lesson_access(
            self, user_id: str, course_id: UUID, lesson_id: UUID
    ) -> EnrollmentRecord:
        """Remember the lesson the learner opened so the player can resume there."""
        context = await self.load_lesson_context(user_id, course_id, lesson_id)
        enrollment = await self._enrollments.update_enrollment(
            user_id,
            course_id,
            {"last_lesson_id": lesson_id, "last_accessed_at": datetime.now(timezone.utc)},
            context.enrollment.version,
        )
        await self._enrollments.commit()
        return enrollment

    # =============================
    #   Views
    # =============================
    async def get_course_progress(self, user_id: str, course_id: UUID) -> CourseProgressResponse:
        lessons = await self.load_lessons(course_id)
        enrollment = await self.require_enrollment(user_id, course_id)
        snapshot = await self.load_snapshot(user_id, course_id)

        completed = snapshot.completed_ids
        pending = snapshot.pending_review_ids
        unlocked = lesson_sequencer.unlocked_map(lessons, completed, pending)
        resume = lesson_sequencer.resume_lesson(
            lessons, completed, pending, enrollment.last_lesson_id
        )
        grade = self.compute_grade(lessons, snapshot)

        return CourseProgressResponse(
            course_id=course_id,
            lessons=[
                LessonProgress(
                    lesson_id=l.id,
                    title=l.title,
                    step_number=l.step_number,
                    content_type=l.content_type,
                    is_preview=l.is_preview,
                    is_unlocked=unlocked[l.id],
                    is_completed=l.id in completed,
                    is_pending_review=l.id in pending,
                )
                for l in lessons
            ],
            total_lessons=len(lessons),
            completed_lessons=len({l.id for l in lessons} & completed),
            pending_review_lessons=len({l.id for l in lessons} & pending),
            progress_percentage=lesson_sequencer.completion_percentage(lessons, completed),
            resume_lesson_id=resume.id if resume else None,
            enrollment=enrollment,
            grade=grade,
            certificate_eligible=grade_aggregator.is_certificate_eligible(enrollment, grade),
        )

    async def get_grade(self, user_id: str, course_id: UUID) -> GradeSnapshot:
        lessons = await self.load_lessons(course_id)
        await self.require_enrollment(user_id, course_id)
        snapshot = await self.load_snapshot(user_id, course_id)
        return self.compute_grade(lessons, snapshot)

    async def get_certificate(self, user_id: str, course_id: UUID) -> CertificateResponse:
        """
        Certificate data for an eligible learner.

        Raises:
            AccessDeniedException: the learner is not eligible
        """
        enrollment = await self.require_enrollment(user_id, course_id)
        if not grade_aggregator.is_certificate_eligible(enrollment):
            logger.info(f"Certificate refused for {user_id}/{course_id}")
            raise AccessDeniedException(
                "Certificate not available: the course must be completed and passed"
            )

        return CertificateResponse(
            course_id=course_id,
            user_id=user_id,
            final_score_100=enrollment.final_score_100 or 0.0,
            completed_at=enrollment.completed_at,
        )

    async def get_dashboard(self, user_id: str) -> DashboardResponse:
        """
        Per-course summaries plus the learner's project, quiz and exam
        activity, read from the submission store.
        """
        enrollments = await self._enrollments.list_enrollments(user_id)
        lessons_by_id: Dict[UUID, LessonRecord] = {}
        summaries = []

        for enrollment in enrollments:
            try:
                lessons = await self.load_lessons(enrollment.course_id)
            except (ResourceNotFoundException, ValidationException) as e:
                logger.warning(f"Skipping course {enrollment.course_id} on dashboard: {e}")
                continue

            lessons_by_id.update({l.id: l for l in lessons})
            snapshot = await self.load_snapshot(user_id, enrollment.course_id)
            summaries.append(self._summarize(lessons, snapshot, enrollment))

        quizzes = await self._submissions.list_quiz_submissions(user_id)
        projects = await self._submissions.list_project_submissions(user_id)

        exams = [
            q for q in quizzes
            if q.lesson_id in lessons_by_id and lessons_by_id[q.lesson_id].is_final_exam
        ]
        exam_ids = {q.id for q in exams}

        return DashboardResponse(
            courses=summaries,
            projects=projects,
            quizzes=[q for q in quizzes if q.id not in exam_ids],
            exams=exams,
        )

    def _summarize(
            self,
            lessons: List[LessonRecord],
            snapshot: ProgressSnapshot,
            enrollment: EnrollmentRecord,
    ) -> DashboardCourseSummary:
        catalog_ids = {l.id for l in lessons}
        completed = catalog_ids & snapshot.completed_ids
        pending = catalog_ids & snapshot.pending_review_ids
        grade = self.compute_grade(lessons, snapshot)
        all_done = lesson_sequencer.is_course_completed(
            lessons, snapshot.completed_ids, snapshot.pending_review_ids
        )

        return DashboardCourseSummary(
            course_id=enrollment.course_id,
            total_lessons=len(lessons),
            completed_lessons=len(completed),
            pending_review_lessons=len(pending),
            progress_percentage=lesson_sequencer.completion_percentage(lessons, completed),
            all_lessons_completed=all_done,
            eligible_to_complete=all_done and grade.has_final_exam and grade.final_exam_graded,
            is_completed=enrollment.is_completed,
            is_passed=enrollment.is_passed,
            certificate_eligible=grade_aggregator.is_certificate_eligible(enrollment, grade),
            grade=grade,
        )
