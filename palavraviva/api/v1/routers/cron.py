import logging
import secrets
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from ....config import get_settings
from ....services.content import ContentService, format_date_for_db, get_content_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def verify_cron_secret(request: Request) -> None:
    """Require ``Authorization: Bearer <CRON_SECRET>``.

    Raises:
        HTTPException: 500 when no secret is configured, 401 when it does not match
    """
    secret = get_settings().CRON_SECRET
    if not secret:
        logger.error("CRON_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error",
        )
    header = request.headers.get("authorization", "")
    if not secrets.compare_digest(header, f"Bearer {secret}"):
        logger.warning("Unauthorized cron request")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.get("/generate-daily-content", dependencies=[Depends(verify_cron_secret)])
async def generate_daily_content(
    target_date: Optional[date] = Query(None, alias="date"),
    content_service: ContentService = Depends(get_content_service),
) -> Any:
    """
    Run the daily content pipeline, normally for tomorrow.

    Args:
        target_date: Optional day to generate instead of tomorrow
        content_service: Content service

    Returns:
        200 with the generated date, or 500 with the failure details
    """
    result = await content_service.generate_daily_content(target_date)
    if not result.success:
        logger.error("Cron content generation failed: %s", result.message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to generate daily content", "details": result.message},
        )
    return {"message": result.message, "date_generated_for": result.date}


@router.post("/regenerate-audio", dependencies=[Depends(verify_cron_secret)])
async def regenerate_audio(
    target_date: date = Query(..., alias="date"),
    content_service: ContentService = Depends(get_content_service),
) -> Any:
    content = await content_service.regenerate_audio(target_date)
    return {
        "message": f"Audio regenerated for {format_date_for_db(target_date)}",
        "audio_url_free": content.audio_url_free,
        "audio_url_premium": content.audio_url_premium,
    }
