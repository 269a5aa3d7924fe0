import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from redis.exceptions import LockError

from academy.clients.redis_client import RedisClient
from academy.dependencies.services import get_redis_client, get_submission_service
from academy.schemas.generic import ApiResponse
from academy.schemas.submission import (
    QuizSubmissionRecord,
    RetakeFinalExamRequest,
    RetakeStatus,
    SubmitQuizRequest,
)
from academy.services.auth_service import AuthService
from academy.services.submission_service import SubmissionService
from academy.utils.exceptions import ConflictException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz-submissions", tags=["Quiz Submissions"])


@router.post(
    "",
    response_model=ApiResponse[QuizSubmissionRecord],
    summary="Submit a quiz",
    description="Auto-graded when the quiz is multiple choice only, otherwise sent to review.",
)
async def submit_quiz(
        request: SubmitQuizRequest,
        submission_service: SubmissionService = Depends(get_submission_service),
        redis_client: RedisClient = Depends(get_redis_client),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[QuizSubmissionRecord]:
    """
    - **answers**: one answer per question, keyed by question_index
    - **expected_version**: version of the current submission, null on first submit

    Raises:
        - 400 Bad Request: incomplete answers, not a quiz, already passed
        - 403 Forbidden: lesson locked or retakes used up
        - 409 Conflict: pending review, stale version, or a concurrent submit
    """
    logger.info(f"Quiz submit from {user_id} for lesson {request.lesson_id}")
    try:
        async with redis_client.acquire_submission_lock(user_id, str(request.lesson_id)):
            submission = await submission_service.submit_quiz(
                user_id=user_id,
                course_id=request.course_id,
                lesson_id=request.lesson_id,
                answers=request.answers,
                attachment_urls=request.attachment_urls,
                expected_version=request.expected_version,
            )
    except LockError:
        logger.warning(f"Concurrent quiz submit for {user_id}/{request.lesson_id}")
        raise ConflictException("Another submission for this lesson is in progress")

    return ApiResponse[QuizSubmissionRecord].success(
        data=submission, message=f"Quiz submission {submission.status.value}"
    )


@router.get(
    "",
    response_model=ApiResponse[QuizSubmissionRecord],
    summary="Get my quiz submission",
)
async def get_quiz_submission(
        lesson_id: UUID = Query(...),
        submission_service: SubmissionService = Depends(get_submission_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[QuizSubmissionRecord]:
    submission = await submission_service.get_quiz_submission(user_id, lesson_id)
    return ApiResponse[QuizSubmissionRecord].success(data=submission)


@router.get(
    "/{lesson_id}/retake",
    response_model=ApiResponse[RetakeStatus],
    summary="Get retake status",
)
async def get_retake_status(
        lesson_id: UUID,
        submission_service: SubmissionService = Depends(get_submission_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[RetakeStatus]:
    status = await submission_service.get_retake_status(user_id, lesson_id)
    return ApiResponse[RetakeStatus].success(data=status)


@router.post(
    "/final-exam/retake",
    response_model=ApiResponse[QuizSubmissionRecord],
    summary="Retake the final exam of a failed course",
    description="Replaces the final exam submission and recomputes the course result.",
)
async def retake_final_exam(
        request: RetakeFinalExamRequest,
        submission_service: SubmissionService = Depends(get_submission_service),
        redis_client: RedisClient = Depends(get_redis_client),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[QuizSubmissionRecord]:
    """
    - **expected_version**: version of the current final exam submission

    Raises:
        - 400 Bad Request: incomplete answers, or the course has no final exam
        - 403 Forbidden: the course is not completed and failed
        - 409 Conflict: stale version, or a concurrent retake
    """
    logger.info(f"Final exam retake from {user_id} for course {request.course_id}")
    try:
        async with redis_client.acquire_submission_lock(user_id, f"final-exam:{request.course_id}"):
            submission = await submission_service.retake_final_exam(
                user_id=user_id,
                course_id=request.course_id,
                answers=request.answers,
                attachment_urls=request.attachment_urls,
                expected_version=request.expected_version,
            )
    except LockError:
        logger.warning(f"Concurrent final exam retake for {user_id}/{request.course_id}")
        raise ConflictException("Another final exam retake for this course is in progress")

    return ApiResponse[QuizSubmissionRecord].success(
        data=submission, message=f"Final exam retake {submission.status.value}"
    )
