"""
Repository dependency injection

All repositories of a request share one session, so a single commit
covers the submission and the enrollment written with it.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.dependencies.db import get_database
from academy.repositories import EnrollmentRepository, LessonRepository, SubmissionRepository


async def get_lesson_repository(
        session: AsyncSession = Depends(get_database),
) -> LessonRepository:
    return LessonRepository(session)


async def get_submission_repository(
        session: AsyncSession = Depends(get_database),
) -> SubmissionRepository:
    return SubmissionRepository(session)


async def get_enrollment_repository(
        session: AsyncSession = Depends(get_database),
) -> EnrollmentRepository:
    return EnrollmentRepository(session)
