import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import uuid4

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..content import llm, storage, tts
from ..content.bible import get_verse_text
from ..db.base import get_db
from ..models.content import DailyContentView, GenerationResult
from ..models.sql_models import DailyContent

logger = logging.getLogger(__name__)


def format_date_for_db(value) -> str:
    """Render a date or datetime as the UTC ``YYYY-MM-DD`` day it falls on."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        value = value.date()
    return value.isoformat()


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def generate_audio(text: str, voice_id: str, path: Optional[str] = None) -> Optional[str]:
    """Synthesize speech for text and store it, returning the public URL."""
    audio = tts.synthesize_speech(text, voice_id)
    if audio is None:
        return None
    path = path or f"{voice_id}/{uuid4().hex}.mp3"
    return storage.upload_audio(path, audio)


def audio_url_for(content: DailyContent, premium: bool) -> Optional[str]:
    """Premium listeners get the premium voice, everyone else the free one."""
    return content.audio_url_premium if premium else content.audio_url_free


class ContentService:
    """Daily devotional content: generation pipeline and lookup."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def _generate_both_audios(self, reflection: str, day: str) -> Tuple[Optional[str], Optional[str]]:
        urls = []
        for tier, voice_id in (
            ("free", self.settings.ELEVENLABS_VOICE_ID_FREE),
            ("premium", self.settings.ELEVENLABS_VOICE_ID_PREMIUM),
        ):
            url = None
            try:
                url = generate_audio(reflection, voice_id, path=f"daily/{day}/{tier}.mp3")
            except Exception:
                # Content is still useful without audio
                logger.error("Failed to generate %s audio for %s", tier, day, exc_info=True)
            if url is None:
                logger.warning("No %s audio for %s", tier, day)
            else:
                logger.info("Generated %s audio for %s: %s", tier, day, url)
            urls.append(url)
        return urls[0], urls[1]

    async def get_daily_content(self, target_date: date) -> Optional[DailyContent]:
        try:
            return self.db.query(DailyContent).filter(DailyContent.content_date == target_date).first()
        except SQLAlchemyError:
            logger.error("Database error fetching content for %s", target_date, exc_info=True)
            return None

    async def generate_daily_content(
        self, target_date: Optional[date] = None, theme: Optional[str] = None
    ) -> GenerationResult:
        """Run the daily pipeline for a date (tomorrow by default).

        Steps: skip when content exists, suggest a verse, fetch its text,
        write the reflection, render free and premium audio, then store the row.
        Audio failures leave the URL empty instead of failing the run.
        """
        target = target_date or utc_today() + timedelta(days=1)
        day = format_date_for_db(target)
        logger.info("Generating daily content for %s", day)

        if await self.get_daily_content(target) is not None:
            message = f"Content for date {day} already exists. Skipping generation."
            logger.info(message)
            return GenerationResult(success=True, message=message, date=day)

        verse_ref = llm.get_verse_suggestion(theme)
        if not verse_ref:
            return self._failed(day, "Failed to get verse suggestion from OpenAI.")
        logger.info("Suggested verse for %s: %s", day, verse_ref)

        verse_text = get_verse_text(self.db, verse_ref)
        if not verse_text:
            message = f"Failed to get verse text for reference: {verse_ref}"
            logger.error("%s. Skipping generation for date %s.", message, day)
            return GenerationResult(success=False, message=message, date=day)

        reflection = llm.generate_reflection(verse_ref, verse_text)
        if not reflection:
            return self._failed(day, "Failed to generate reflection from OpenAI.")

        audio_url_free, audio_url_premium = self._generate_both_audios(reflection, day)

        try:
            self.db.add(
                DailyContent(
                    content_date=target,
                    verse_ref=verse_ref,
                    verse_text=verse_text,
                    reflection_text=reflection,
                    audio_url_free=audio_url_free,
                    audio_url_premium=audio_url_premium,
                )
            )
            self.db.commit()
        except IntegrityError:
            # Another run stored the same date first
            self.db.rollback()
            message = f"Content for date {day} already exists. Skipping generation."
            logger.info(message)
            return GenerationResult(success=True, message=message, date=day)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to save daily content for %s", day, exc_info=True)
            return self._failed(day, str(e))

        message = f"Successfully generated and saved content for date: {day}"
        logger.info(message)
        return GenerationResult(success=True, message=message, date=day)

    def _failed(self, day: str, reason: str) -> GenerationResult:
        message = f"Failed to generate content for date {day}: {reason}"
        logger.error(message)
        return GenerationResult(success=False, message=message, date=day)

    async def regenerate_audio(self, target_date: date) -> DailyContent:
        """Render both audios again for an existing day.

        Raises:
            HTTPException: 404 when there is no content, 400 when it has no reflection
        """
        content = await self.get_daily_content(target_date)
        if content is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No content found for date {format_date_for_db(target_date)}",
            )
        if not content.reflection_text:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Content has no reflection text to synthesize",
            )

        day = format_date_for_db(target_date)
        content.audio_url_free, content.audio_url_premium = self._generate_both_audios(
            content.reflection_text, day
        )
        try:
            self.db.commit()
            self.db.refresh(content)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to update audio for %s", day, exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update audio URLs",
            )
        return content

    async def get_content_view(self, target_date: date, premium: bool) -> DailyContentView:
        """Content for a day with the audio URL matching the listener's tier."""
        content = await self.get_daily_content(target_date)
        if content is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conteúdo do dia ainda não disponível.",
            )
        return DailyContentView(
            content_date=content.content_date,
            verse_ref=content.verse_ref,
            verse_text=content.verse_text,
            reflection_text=content.reflection_text,
            audio_url=audio_url_for(content, premium),
            is_premium=premium,
        )


def get_content_service(db: Session = Depends(get_db)) -> ContentService:
    """Dependency for getting the content service."""
    return ContentService(db)
