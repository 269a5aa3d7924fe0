"""
Submission Repository - quiz and project submissions.

One current row per (learner, lesson) per table. Writes go through
``put_*`` which inserts when the caller has seen no record and otherwise
replaces the row only if its version is unchanged.
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.model.enums import ProjectSubmissionStatus, QuizSubmissionStatus
from academy.model.progress_models import ProjectSubmission, QuizSubmission
from academy.repositories.base_repo import BaseRepository
from academy.schemas.submission import ProjectSubmissionRecord, QuizSubmissionRecord

_QUIZ_WRITABLE = (
    "status",
    "answers",
    "score",
    "total",
    "is_passed",
    "attachment_urls",
    "attempt_count",
    "reviewer_id",
    "reviewed_at",
)

_PROJECT_WRITABLE = (
    "status",
    "submission_text",
    "submission_url",
    "attachment_urls",
    "feedback",
    "reviewer_id",
    "reviewed_at",
)


def _quiz_row(record: QuizSubmissionRecord) -> dict:
    row = record.model_dump(include=set(_QUIZ_WRITABLE))
    row["status"] = record.status.value
    row["answers"] = [a.model_dump(mode="json") for a in record.answers]
    return row


def _project_row(record: ProjectSubmissionRecord) -> dict:
    row = record.model_dump(include=set(_PROJECT_WRITABLE))
    row["status"] = record.status.value
    return row


class SubmissionRepository:
    """
    Repository for quiz and project submissions
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._quizzes = BaseRepository(QuizSubmission, session)
        self._projects = BaseRepository(ProjectSubmission, session)

    # ==================== QUIZ ====================

    async def get_quiz_submission(self, user_id: str, lesson_id: UUID) -> Optional[QuizSubmissionRecord]:
        row = await self._quizzes.get_one_by_filters({"user_id": user_id, "lesson_id": lesson_id})
        return QuizSubmissionRecord.model_validate(row) if row else None

    async def get_quiz_submission_by_id(self, submission_id: UUID) -> Optional[QuizSubmissionRecord]:
        row = await self._quizzes.get_by_id(submission_id)
        return QuizSubmissionRecord.model_validate(row) if row else None

    async def put_quiz_submission(
            self, record: QuizSubmissionRecord, expected_version: Optional[int]
    ) -> QuizSubmissionRecord:
        """
        Store a quiz submission.

        Args:
            record: desired state of the submission
            expected_version: version last read by the caller, None when the
                caller saw no submission

        Raises:
            ConflictException: a submission already exists, or it changed
                since ``expected_version`` was read
        """
        row = _quiz_row(record)
        if expected_version is None:
            db_obj = await self._quizzes.insert({
                **row,
                "id": record.id,
                "user_id": record.user_id,
                "course_id": record.course_id,
                "lesson_id": record.lesson_id,
                "version": 1,
            })
        else:
            db_obj = await self._quizzes.update_versioned(
                {"user_id": record.user_id, "lesson_id": record.lesson_id},
                row,
                expected_version,
            )
        return QuizSubmissionRecord.model_validate(db_obj)

    async def list_quiz_submissions(
            self, user_id: str, course_id: Optional[UUID] = None
    ) -> List[QuizSubmissionRecord]:
        filters = {"user_id": user_id}
        if course_id is not None:
            filters["course_id"] = course_id
        rows = await self._quizzes.get_by_filters(filters, order_by="updated_date", order_desc=True)
        return [QuizSubmissionRecord.model_validate(r) for r in rows]

    async def list_quiz_submissions_for_lesson(self, lesson_id: UUID) -> List[QuizSubmissionRecord]:
        rows = await self._quizzes.get_by_filters({"lesson_id": lesson_id}, order_by="updated_date")
        return [QuizSubmissionRecord.model_validate(r) for r in rows]

    async def list_pending_quiz_submissions(self, course_id: Optional[UUID] = None) -> List[QuizSubmissionRecord]:
        filters = {"status": QuizSubmissionStatus.PENDING_REVIEW.value}
        if course_id is not None:
            filters["course_id"] = course_id
        rows = await self._quizzes.get_by_filters(filters, order_by="updated_date")
        return [QuizSubmissionRecord.model_validate(r) for r in rows]

    # ==================== PROJECT ====================

    async def get_project_submission(self, user_id: str, lesson_id: UUID) -> Optional[ProjectSubmissionRecord]:
        row = await self._projects.get_one_by_filters({"user_id": user_id, "lesson_id": lesson_id})
        return ProjectSubmissionRecord.model_validate(row) if row else None

    async def get_project_submission_by_id(self, submission_id: UUID) -> Optional[ProjectSubmissionRecord]:
        row = await self._projects.get_by_id(submission_id)
        return ProjectSubmissionRecord.model_validate(row) if row else None

    async def put_project_submission(
            self, record: ProjectSubmissionRecord, expected_version: Optional[int]
    ) -> ProjectSubmissionRecord:
        row = _project_row(record)
        if expected_version is None:
            db_obj = await self._projects.insert({
                **row,
                "id": record.id,
                "user_id": record.user_id,
                "course_id": record.course_id,
                "lesson_id": record.lesson_id,
                "version": 1,
            })
        else:
            db_obj = await self._projects.update_versioned(
                {"user_id": record.user_id, "lesson_id": record.lesson_id},
                row,
                expected_version,
            )
        return ProjectSubmissionRecord.model_validate(db_obj)

    async def list_project_submissions(
            self, user_id: str, course_id: Optional[UUID] = None
    ) -> List[ProjectSubmissionRecord]:
        filters = {"user_id": user_id}
        if course_id is not None:
            filters["course_id"] = course_id
        rows = await self._projects.get_by_filters(filters, order_by="updated_date", order_desc=True)
        return [ProjectSubmissionRecord.model_validate(r) for r in rows]

    async def list_pending_project_submissions(
            self, course_id: Optional[UUID] = None
    ) -> List[ProjectSubmissionRecord]:
        filters = {"status": ProjectSubmissionStatus.PENDING_REVIEW.value}
        if course_id is not None:
            filters["course_id"] = course_id
        rows = await self._projects.get_by_filters(filters, order_by="updated_date")
        return [ProjectSubmissionRecord.model_validate(r) for r in rows]

    # ==================== PROGRESS ====================

    async def get_pending_review_lesson_ids(self, user_id: str, course_id: UUID) -> set[UUID]:
        """Lessons of a course with a quiz or project submission awaiting review."""
        pending = set()
        for model, status in (
                (QuizSubmission, QuizSubmissionStatus.PENDING_REVIEW.value),
                (ProjectSubmission, ProjectSubmissionStatus.PENDING_REVIEW.value),
        ):
            query = (
                select(model.lesson_id)
                .where(model.user_id == user_id)
                .where(model.course_id == course_id)
                .where(model.status == status)
            )
            result = await self.session.execute(query)
            pending.update(result.scalars().all())
        return pending

    async def commit(self):
        await self.session.commit()
