"""
Lesson Repository - read-only access to the course catalog
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from academy.model.course_models import Course, Lesson
from academy.repositories.base_repo import BaseRepository
from academy.schemas.course import LessonRecord


class LessonRepository(BaseRepository[Lesson]):
    """
    Repository for Lesson entity, ordered by step number within a course
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Lesson, session)

    async def list_lessons(self, course_id: UUID) -> List[LessonRecord]:
        """
        Get the published lessons of a course.

        Args:
            course_id: UUID of the course

        Returns:
            Lesson records ordered by ascending step number
        """
        query = (
            select(Lesson)
            .where(Lesson.course_id == course_id)
            .where(Lesson.is_published.is_(True))
            .order_by(Lesson.step_number)
        )
        result = await self.session.execute(query)
        return [LessonRecord.from_model(lesson) for lesson in result.scalars().all()]

    async def get_lesson(self, lesson_id: UUID) -> Optional[LessonRecord]:
        lesson = await self.get_by_id(lesson_id)
        if lesson is None or not lesson.is_published:
            return None
        return LessonRecord.from_model(lesson)

    async def course_exists(self, course_id: UUID) -> bool:
        query = select(func.count(Course.id)).where(Course.id == course_id)
        result = await self.session.execute(query)
        return (result.scalar() or 0) > 0
