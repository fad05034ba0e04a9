import logging
from typing import Optional

from supabase import Client, create_client

from ..config import get_settings

logger = logging.getLogger(__name__)


def _client() -> Optional[Client]:
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        return None
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def upload_audio(path: str, data: bytes) -> Optional[str]:
    """Upload an MP3 to the audio bucket and return its public URL.

    An existing object at the same path is overwritten, so regenerated audio
    keeps its URL.
    """
    client = _client()
    if client is None:
        logger.error("Supabase storage is not configured; cannot upload %s", path)
        return None

    bucket = client.storage.from_(get_settings().SUPABASE_AUDIO_BUCKET)
    try:
        bucket.upload(
            path=path,
            file=data,
            file_options={"content-type": "audio/mpeg", "upsert": "true"},
        )
        url = bucket.get_public_url(path)
    except Exception:
        # storage3 raises its own error types as well as httpx ones
        logger.error("Failed to upload audio to %s", path, exc_info=True)
        return None

    # Older clients append a bare '?' to public URLs
    return url.rstrip("?") if url else None
