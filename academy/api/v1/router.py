from fastapi import APIRouter

from academy.api.v1.endpoints import (
    course_progress_controller,
    dashboard_controller,
    project_submission_controller,
    quiz_submission_controller,
    review_controller,
)

api_router = APIRouter()

api_router.include_router(course_progress_controller.router)
api_router.include_router(quiz_submission_controller.router)
api_router.include_router(project_submission_controller.router)
api_router.include_router(review_controller.router)
api_router.include_router(dashboard_controller.router)
