import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from redis.exceptions import LockError

from academy.clients.redis_client import RedisClient
from academy.dependencies.services import get_redis_client, get_submission_service
from academy.schemas.generic import ApiResponse
from academy.schemas.submission import ProjectSubmissionRecord, SubmitProjectRequest
from academy.services.auth_service import AuthService
from academy.services.submission_service import SubmissionService
from academy.utils.exceptions import ConflictException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/project-submissions", tags=["Project Submissions"])


@router.post(
    "",
    response_model=ApiResponse[ProjectSubmissionRecord],
    summary="Submit a project",
    description="Always waits for reviewer approval. Allowed again after a rejection.",
)
async def submit_project(
        request: SubmitProjectRequest,
        submission_service: SubmissionService = Depends(get_submission_service),
        redis_client: RedisClient = Depends(get_redis_client),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[ProjectSubmissionRecord]:
    try:
        async with redis_client.acquire_submission_lock(user_id, str(request.lesson_id)):
            submission = await submission_service.submit_project(
                user_id=user_id,
                course_id=request.course_id,
                lesson_id=request.lesson_id,
                submission_text=request.submission_text,
                submission_url=request.submission_url,
                attachment_urls=request.attachment_urls,
                expected_version=request.expected_version,
            )
    except LockError:
        logger.warning(f"Concurrent project submit for {user_id}/{request.lesson_id}")
        raise ConflictException("Another submission for this lesson is in progress")

    return ApiResponse[ProjectSubmissionRecord].success(
        data=submission, message="Project submitted for review"
    )


@router.get(
    "",
    response_model=ApiResponse[ProjectSubmissionRecord],
    summary="Get my project submission",
)
async def get_project_submission(
        lesson_id: UUID = Query(...),
        submission_service: SubmissionService = Depends(get_submission_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[ProjectSubmissionRecord]:
    submission = await submission_service.get_project_submission(user_id, lesson_id)
    return ApiResponse[ProjectSubmissionRecord].success(data=submission)
