from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from ....core.security import get_current_user
from ....models.base import ActionResult
from ....models.reading_plan import ProgressUpdate, ReadingPlan, ReadingPlanDetails, ReadingProgress
from ....models.sql_models import User
from ....services.reading_plans import ReadingPlanService, get_reading_plan_service

router = APIRouter(prefix="/reading-plans", tags=["reading-plans"])


@router.get("", response_model=List[ReadingPlan])
async def list_reading_plans(
    current_user: User = Depends(get_current_user),
    plans: ReadingPlanService = Depends(get_reading_plan_service),
) -> Any:
    return await plans.get_all_reading_plans()


@router.get("/progress", response_model=List[ReadingProgress])
async def read_progress(
    current_user: User = Depends(get_current_user),
    plans: ReadingPlanService = Depends(get_reading_plan_service),
) -> Any:
    """Progress of the current user across every plan they started."""
    return await plans.get_user_progress(current_user.id)


@router.post("/progress", response_model=ActionResult)
async def update_progress(
    data: ProgressUpdate,
    current_user: User = Depends(get_current_user),
    plans: ReadingPlanService = Depends(get_reading_plan_service),
) -> Any:
    """
    Mark a day of a plan as read.

    Args:
        data: Plan id and the day number that was read
        current_user: The current authenticated user
        plans: Reading plan service

    Returns:
        ActionResult: Message for starting, advancing or finishing the plan
    """
    return await plans.update_reading_progress(current_user, data.plan_id, data.day_number)


@router.get("/{plan_id}", response_model=ReadingPlanDetails)
async def read_reading_plan(
    plan_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    plans: ReadingPlanService = Depends(get_reading_plan_service),
) -> Any:
    plan = await plans.get_reading_plan_details(plan_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plano de leitura não encontrado.")
    return plan
