from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_AUTH_SECRET = "dev_secret_key_change_in_production"


class Settings(BaseSettings):
    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    PROJECT_NAME: str = "Palavra Viva"
    VERSION: str = "0.1.0"
    # Public base URL of the web front end, used for Stripe redirects
    APP_URL: str = "http://localhost:3000"

    # Security
    AUTH_SECRET: str = DEV_AUTH_SECRET
    ALGORITHM: str = "HS256"
    SESSION_EXPIRE_HOURS: int = 24
    SESSION_COOKIE_NAME: str = "session"
    CRON_SECRET: str = ""

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    CORS_ORIGIN_REGEX: str = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

    # Database
    DATABASE_URL: str = "sqlite:///./palavraviva.db"
    SQL_ECHO: bool = False

    # OpenAI
    OPENAI_API_KEY: str = ""
    MODEL_NAME: str = "gpt-4o-mini"
    SUGGESTION_TEMPERATURE: float = 0.9
    REFLECTION_TEMPERATURE: float = 0.7
    REFLECTION_MAX_TOKENS: int = 250

    # ElevenLabs
    ELEVENLABS_API_KEY: str = ""
    ELEVENLABS_API_BASE_URL: str = "https://api.elevenlabs.io/v1"
    ELEVENLABS_VOICE_ID_FREE: str = ""
    ELEVENLABS_VOICE_ID_PREMIUM: str = ""
    ELEVENLABS_MODEL_ID: str = "eleven_multilingual_v2"
    ELEVENLABS_STABILITY: float = 0.5
    ELEVENLABS_SIMILARITY_BOOST: float = 0.75
    ELEVENLABS_TIMEOUT_S: int = 60

    # Supabase Storage (generated audio files)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_AUDIO_BUCKET: str = "audio-content"

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_TRIAL_DAYS: int = 7

    # Domain rules
    BIBLE_VERSION: str = "nvi"
    PAIRING_REQUEST_TIMEOUT_HOURS: int = 24
    TRIAL_DAYS: int = 7
    ACTIVITY_LOG_LIMIT: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()

    # Only enforce secrets in production
    if settings.ENVIRONMENT == "production" and settings.AUTH_SECRET == DEV_AUTH_SECRET:
        raise ValueError("AUTH_SECRET must be set in production environment")

    return settings
