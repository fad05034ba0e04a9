from datetime import date
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ....core.security import get_current_user
from ....db.base import get_db
from ....models.content import DailyContentView
from ....models.sql_models import User
from ....services.content import ContentService, get_content_service, utc_today
from ....services.users import get_account, is_user_premium

router = APIRouter(prefix="/content", tags=["content"])


@router.get("/today", response_model=DailyContentView)
async def read_today(
    current_user: User = Depends(get_current_user),
    content_service: ContentService = Depends(get_content_service),
    db: Session = Depends(get_db),
) -> Any:
    """
    Today's verse, reflection and audio (UTC day).

    Returns:
        DailyContentView: Content with the audio URL for the user's tier
    """
    premium = is_user_premium(current_user, get_account(db, current_user.id))
    return await content_service.get_content_view(utc_today(), premium)


@router.get("/{content_date}", response_model=DailyContentView)
async def read_by_date(
    content_date: date,
    current_user: User = Depends(get_current_user),
    content_service: ContentService = Depends(get_content_service),
    db: Session = Depends(get_db),
) -> Any:
    premium = is_user_premium(current_user, get_account(db, current_user.id))
    return await content_service.get_content_view(content_date, premium)
