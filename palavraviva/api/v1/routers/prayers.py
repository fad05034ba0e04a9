from typing import Any

from fastapi import APIRouter, Depends

from ....core.security import get_current_user
from ....models.base import ActionResult
from ....models.prayer import PrayerPairStatus
from ....models.sql_models import User
from ....services.prayers import PrayerService, get_prayer_service

router = APIRouter(prefix="/prayer-pairs", tags=["prayer"])


@router.get("/status", response_model=PrayerPairStatus)
async def read_pairing_status(
    current_user: User = Depends(get_current_user),
    prayers: PrayerService = Depends(get_prayer_service),
) -> Any:
    """
    Current pairing state of the user.

    Returns:
        PrayerPairStatus: not_started, waiting or paired, without partner identity
    """
    return await prayers.get_pairing_status(current_user)


@router.post("/request", response_model=ActionResult)
async def request_pair(
    current_user: User = Depends(get_current_user),
    prayers: PrayerService = Depends(get_prayer_service),
) -> Any:
    return await prayers.request_pair(current_user)


@router.post("/prayed", response_model=ActionResult)
async def mark_prayer_done(
    current_user: User = Depends(get_current_user),
    prayers: PrayerService = Depends(get_prayer_service),
) -> Any:
    return await prayers.mark_prayer_done(current_user)


@router.post("/acknowledge", response_model=ActionResult)
async def acknowledge_notification(
    current_user: User = Depends(get_current_user),
    prayers: PrayerService = Depends(get_prayer_service),
) -> Any:
    return await prayers.acknowledge_notification(current_user)
