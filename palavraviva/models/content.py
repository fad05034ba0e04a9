from datetime import date
from typing import Optional

from pydantic import BaseModel


class DailyContentView(BaseModel):
    """Daily content as served to a user, with the audio URL for their tier."""

    content_date: date
    verse_ref: str
    verse_text: str
    reflection_text: str
    audio_url: Optional[str] = None
    is_premium: bool = False


class GenerationResult(BaseModel):
    success: bool
    message: str
    date: str
