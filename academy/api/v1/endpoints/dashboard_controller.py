from fastapi import APIRouter, Depends

from academy.dependencies.services import get_progress_service
from academy.schemas.generic import ApiResponse
from academy.schemas.progress import DashboardResponse
from academy.services.auth_service import AuthService
from academy.services.progress_service import ProgressService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "",
    response_model=ApiResponse[DashboardResponse],
    summary="Learner dashboard",
    description="Per-course progress and grade plus project, quiz and exam activity.",
)
async def get_dashboard(
        progress_service: ProgressService = Depends(get_progress_service),
        user_id: str = Depends(AuthService.get_current_user),
) -> ApiResponse[DashboardResponse]:
    dashboard = await progress_service.get_dashboard(user_id)
    return ApiResponse[DashboardResponse].success(data=dashboard)
