from typing import Any

from fastapi import APIRouter, Depends, Request, status

from ....core.security import client_ip, get_current_user
from ....models.activity import ActivityLogList, ClientEvent
from ....models.base import ActionResult
from ....models.sql_models import User
from ....services.activity import ActivityService, get_activity_service

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("", response_model=ActivityLogList)
async def read_activity(
    current_user: User = Depends(get_current_user),
    activity: ActivityService = Depends(get_activity_service),
) -> Any:
    return ActivityLogList(items=activity.get_activity_logs(current_user))


@router.post("/events", response_model=ActionResult, status_code=status.HTTP_201_CREATED)
async def record_event(
    event: ClientEvent,
    request: Request,
    current_user: User = Depends(get_current_user),
    activity: ActivityService = Depends(get_activity_service),
) -> Any:
    """
    Record an event that happened in the browser.

    The prayer journal, audio player and share sheet live on the client; they
    report what the user did here.

    Args:
        event: The activity type
        request: Incoming request
        current_user: The current authenticated user
        activity: Activity service

    Returns:
        ActionResult: Confirmation message
    """
    return activity.record_client_event(current_user, event.action, client_ip(request))
