import logging

from fastapi import Depends

from academy.clients.redis_client import RedisClient
from academy.config import Settings, get_settings
from academy.dependencies.repositories import (
    get_enrollment_repository,
    get_lesson_repository,
    get_submission_repository,
)
from academy.repositories import EnrollmentRepository, LessonRepository, SubmissionRepository
from academy.services.progress_service import ProgressService
from academy.services.review_service import ReviewService
from academy.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)

# =============================
#   Redis Client (Singleton)
# =============================
_redis_client_instance = None


async def get_redis_client() -> RedisClient:
    """
    Get singleton RedisClient instance.
    Connection is established on first call and reused.
    """
    global _redis_client_instance

    if _redis_client_instance is None:
        settings = get_settings()
        _redis_client_instance = RedisClient(settings)
        await _redis_client_instance.connect()
        logger.info("RedisClient singleton created")

    return _redis_client_instance


# =============================
#   Services (Per-Request)
# =============================
async def get_progress_service(
        lesson_repository: LessonRepository = Depends(get_lesson_repository),
        submission_repository: SubmissionRepository = Depends(get_submission_repository),
        enrollment_repository: EnrollmentRepository = Depends(get_enrollment_repository),
        settings: Settings = Depends(get_settings),
) -> ProgressService:
    """
    Get ProgressService with the request's repositories.

    Not a singleton: the repositories hold the per-request session.
    """
    return ProgressService(
        lesson_catalog=lesson_repository,
        submission_store=submission_repository,
        enrollment_store=enrollment_repository,
        settings=settings,
    )


async def get_submission_service(
        progress_service: ProgressService = Depends(get_progress_service),
        submission_repository: SubmissionRepository = Depends(get_submission_repository),
        enrollment_repository: EnrollmentRepository = Depends(get_enrollment_repository),
        settings: Settings = Depends(get_settings),
) -> SubmissionService:
    return SubmissionService(
        progress_service=progress_service,
        submission_store=submission_repository,
        enrollment_store=enrollment_repository,
        settings=settings,
    )


async def get_review_service(
        progress_service: ProgressService = Depends(get_progress_service),
        lesson_repository: LessonRepository = Depends(get_lesson_repository),
        submission_repository: SubmissionRepository = Depends(get_submission_repository),
        enrollment_repository: EnrollmentRepository = Depends(get_enrollment_repository),
        settings: Settings = Depends(get_settings),
) -> ReviewService:
    return ReviewService(
        progress_service=progress_service,
        lesson_catalog=lesson_repository,
        submission_store=submission_repository,
        enrollment_store=enrollment_repository,
        pass_percentage=settings.quiz_pass_percentage,
    )
