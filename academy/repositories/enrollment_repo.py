"""
Enrollment Repository - enrollments and lesson completions
"""
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from academy.model.progress_models import Enrollment, LessonCompletion
from academy.repositories.base_repo import BaseRepository
from academy.schemas.progress import EnrollmentRecord


class EnrollmentRepository(BaseRepository[Enrollment]):
    """
    Repository for Enrollment entity and the lesson completions it tracks
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Enrollment, session)

    async def get_enrollment(self, user_id: str, course_id: UUID) -> Optional[EnrollmentRecord]:
        row = await self.get_one_by_filters({"user_id": user_id, "course_id": course_id})
        return EnrollmentRecord.model_validate(row) if row else None

    async def list_enrollments(self, user_id: str) -> List[EnrollmentRecord]:
        rows = await self.get_by_filters({"user_id": user_id}, order_by="enrolled_at", order_desc=True)
        return [EnrollmentRecord.model_validate(r) for r in rows]

    async def create_enrollment(self, user_id: str, course_id: UUID) -> EnrollmentRecord:
        """
        Raises:
            ConflictException: the learner is already enrolled
        """
        row = await self.insert({
            "id": uuid4(),
            "user_id": user_id,
            "course_id": course_id,
            "version": 1,
        })
        return EnrollmentRecord.model_validate(row)

    async def update_enrollment(
            self, user_id: str, course_id: UUID, patch: dict, expected_version: int
    ) -> EnrollmentRecord:
        row = await self.update_versioned(
            {"user_id": user_id, "course_id": course_id}, patch, expected_version
        )
        return EnrollmentRecord.model_validate(row)

    # ==================== COMPLETIONS ====================

    async def get_completed_lesson_ids(self, user_id: str, course_id: UUID) -> set[UUID]:
        query = (
            select(LessonCompletion.lesson_id)
            .where(LessonCompletion.user_id == user_id)
            .where(LessonCompletion.course_id == course_id)
        )
        result = await self.session.execute(query)
        return set(result.scalars().all())

    async def mark_lesson_complete(self, user_id: str, course_id: UUID, lesson_id: UUID) -> bool:
        """
        Record a lesson completion. Duplicates are ignored.

        Returns:
            True when a new completion was recorded
        """
        stmt = (
            insert(LessonCompletion)
            .values(id=uuid4(), user_id=user_id, course_id=course_id, lesson_id=lesson_id)
            .on_conflict_do_nothing(constraint="uq_lesson_completions_user_lesson")
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def remove_lesson_completion(self, user_id: str, course_id: UUID, lesson_id: UUID) -> bool:
        stmt = (
            delete(LessonCompletion)
            .where(LessonCompletion.user_id == user_id)
            .where(LessonCompletion.course_id == course_id)
            .where(LessonCompletion.lesson_id == lesson_id)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0
