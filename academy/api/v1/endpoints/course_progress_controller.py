import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from academy.dependencies.services import get_progress_service
from academy.schemas.generic import ApiResponse
from academy.schemas.progress import (
    CertificateResponse,
    CourseProgressResponse,
    EnrollmentRecord,
    GradeSnapshot,
)
from academy.services.auth_service import AuthService
from academy.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["Course Progress"])


@router.post(
    "/{course_id}/enroll",
    response_model=ApiResponse[EnrollmentRecord],
    summary="Enroll in a course",
)
async def enroll(
        course_id: UUID,
        progress_service: ProgressService = Depends(get_progress_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[EnrollmentRecord]:
    """Enrolling twice returns the existing enrollment."""
    enrollment = await progress_service.enroll(user_id, course_id)
    return ApiResponse[EnrollmentRecord].success(data=enrollment, message="Enrolled")


@router.get(
    "/{course_id}/progress",
    response_model=ApiResponse[CourseProgressResponse],
    summary="Get course progress",
    description="Unlock state of every lesson, completion, resume lesson, grade and certificate eligibility.",
)
async def get_course_progress(
        course_id: UUID,
        progress_service: ProgressService = Depends(get_progress_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[CourseProgressResponse]:
    progress = await progress_service.get_course_progress(user_id, course_id)
    return ApiResponse[CourseProgressResponse].success(data=progress)


@router.post(
    "/{course_id}/lessons/{lesson_id}/access",
    response_model=ApiResponse[EnrollmentRecord],
    summary="Record lesson access",
)
async def record_lesson_access(
        course_id: UUID,
        lesson_id: UUID,
        progress_service: ProgressService = Depends(get_progress_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[EnrollmentRecord]:
    enrollment = await progress_service.record_lesson_access(user_id, course_id, lesson_id)
    return ApiResponse[EnrollmentRecord].success(data=enrollment)


@router.post(
    "/{course_id}/lessons/{lesson_id}/complete",
    response_model=ApiResponse[EnrollmentRecord],
    summary="Mark a lesson complete",
    description="Only for video, text, code and resource lessons.",
)
async def mark_lesson_complete(
        course_id: UUID,
        lesson_id: UUID,
        progress_service: ProgressService = Depends(get_progress_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[EnrollmentRecord]:
    """
    Raises:
        - 400 Bad Request: quiz or project lesson
        - 403 Forbidden: not enrolled or lesson locked
        - 409 Conflict: enrollment changed concurrently
    """
    enrollment = await progress_service.mark_lesson_complete(user_id, course_id, lesson_id)
    return ApiResponse[EnrollmentRecord].success(data=enrollment, message="Lesson completed")


@router.get(
    "/{course_id}/grade",
    response_model=ApiResponse[GradeSnapshot],
    summary="Get course grade",
)
async def get_grade(
        course_id: UUID,
        progress_service: ProgressService = Depends(get_progress_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[GradeSnapshot]:
    grade = await progress_service.get_grade(user_id, course_id)
    return ApiResponse[GradeSnapshot].success(data=grade)


@router.get(
    "/{course_id}/certificate",
    response_model=ApiResponse[CertificateResponse],
    summary="Get certificate data",
    description="403 unless the course is completed and passed.",
)
async def get_certificate(
        course_id: UUID,
        progress_service: ProgressService = Depends(get_progress_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[CertificateResponse]:
    certificate = await progress_service.get_certificate(user_id, course_id)
    return ApiResponse[CertificateResponse].success(data=certificate)
