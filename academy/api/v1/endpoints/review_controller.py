import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from academy.dependencies.services import get_review_service
from academy.schemas.generic import ApiResponse
from academy.schemas.submission import (
    ProjectSubmissionRecord,
    QuizSubmissionRecord,
    ReviewProjectRequest,
    ReviewQuizRequest,
)
from academy.services.auth_service import AuthService
from academy.services.review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get(
    "/quiz-submissions",
    response_model=ApiResponse[List[QuizSubmissionRecord]],
    summary="List quiz submissions awaiting review",
)
async def list_pending_quiz_reviews(
        course_id: Optional[UUID] = Query(None),
        review_service: ReviewService = Depends(get_review_service),
        reviewer_id: str = Depends(AuthService.require_reviewer),
) -> ApiResponse[List[QuizSubmissionRecord]]:
    submissions = await review_service.list_pending_quiz_reviews(course_id)
    return ApiResponse[List[QuizSubmissionRecord]].success(data=submissions)


@router.patch(
    "/quiz-submissions/{submission_id}",
    response_model=ApiResponse[QuizSubmissionRecord],
    summary="Grade a quiz submission",
)
async def review_quiz(
        submission_id: UUID,
        request: ReviewQuizRequest,
        review_service: ReviewService = Depends(get_review_service),
        reviewer_id: str = Depends(AuthService.require_reviewer),
) -> ApiResponse[QuizSubmissionRecord]:
    """
    Raises:
        - 404 Not Found: unknown submission
        - 409 Conflict: not awaiting review, or changed since it was read
    """
    submission = await review_service.review_quiz(
        reviewer_id=reviewer_id,
        submission_id=submission_id,
        free_text_grades=request.free_text_grades,
        expected_version=request.expected_version,
        is_passed=request.is_passed,
    )
    return ApiResponse[QuizSubmissionRecord].success(data=submission, message="Quiz graded")


@router.get(
    "/project-submissions",
    response_model=ApiResponse[List[ProjectSubmissionRecord]],
    summary="List project submissions awaiting review",
)
async def list_pending_project_reviews(
        course_id: Optional[UUID] = Query(None),
        review_service: ReviewService = Depends(get_review_service),
        reviewer_id: str = Depends(AuthService.require_reviewer),
) -> ApiResponse[List[ProjectSubmissionRecord]]:
    submissions = await review_service.list_pending_project_reviews(course_id)
    return ApiResponse[List[ProjectSubmissionRecord]].success(data=submissions)


@router.patch(
    "/project-submissions/{submission_id}",
    response_model=ApiResponse[ProjectSubmissionRecord],
    summary="Approve or reject a project submission",
)
async def review_project(
        submission_id: UUID,
        request: ReviewProjectRequest,
        review_service: ReviewService = Depends(get_review_service),
        reviewer_id: str = Depends(AuthService.require_reviewer),
) -> ApiResponse[ProjectSubmissionRecord]:
    submission = await review_service.review_project(
        reviewer_id=reviewer_id,
        submission_id=submission_id,
        status=request.status,
        feedback=request.feedback,
        expected_version=request.expected_version,
    )
    return ApiResponse[ProjectSubmissionRecord].success(
        data=submission, message=f"Project {submission.status.value}"
    )


@router.get(
    "/final-exam-submissions",
    response_model=ApiResponse[List[QuizSubmissionRecord]],
    summary="List final exam submissions of a course",
)
async def list_final_exam_submissions(
        course_id: UUID = Query(...),
        review_service: ReviewService = Depends(get_review_service),
        reviewer_id: str = Depends(AuthService.require_reviewer),
) -> ApiResponse[List[QuizSubmissionRecord]]:
    submissions = await review_service.list_final_exam_submissions(course_id)
    return ApiResponse[List[QuizSubmissionRecord]].success(data=submissions)
