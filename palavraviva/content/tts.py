import logging
from typing import Optional

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)


def synthesize_speech(text: str, voice_id: str) -> Optional[bytes]:
    """Render text to MP3 bytes with ElevenLabs.

    Returns None when the API is not configured or the request fails.
    """
    settings = get_settings()
    api_key = (settings.ELEVENLABS_API_KEY or "").strip()
    if not api_key:
        logger.error("ELEVENLABS_API_KEY missing; cannot generate audio")
        return None
    if not text or not voice_id:
        logger.error("Missing text or voice id for speech synthesis")
        return None

    url = f"{settings.ELEVENLABS_API_BASE_URL.rstrip('/')}/text-to-speech/{voice_id}"
    payload = {
        "text": text,
        "model_id": settings.ELEVENLABS_MODEL_ID,
        "voice_settings": {
            "stability": settings.ELEVENLABS_STABILITY,
            "similarity_boost": settings.ELEVENLABS_SIMILARITY_BOOST,
        },
    }
    headers = {
        "Content-Type": "application/json",
        "Accept": "audio/mpeg",
        "xi-api-key": api_key,
    }
    try:
        response = httpx.post(url, json=payload, headers=headers, timeout=settings.ELEVENLABS_TIMEOUT_S)
    except httpx.HTTPError:
        logger.error("ElevenLabs request failed for voice %s", voice_id, exc_info=True)
        return None

    if response.status_code != 200:
        logger.error("ElevenLabs API error (%s): %s", response.status_code, response.text[:500])
        return None
    if not response.content:
        logger.error("ElevenLabs returned an empty body for voice %s", voice_id)
        return None
    return response.content
