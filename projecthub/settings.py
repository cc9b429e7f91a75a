from __future__ import annotations

import logging
import sys

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "dev-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    ENV: str = Field(default="dev")  # dev|prod
    LOG_LEVEL: str = Field(default="INFO")  # INFO|DEBUG
    BASE_URL: str = Field(default="http://localhost:8000")

    # Dev-only
    ALLOW_DEBUG_ENDPOINTS: bool = Field(default=False)

    # Redis / Queue
    REDIS_URL: str = Field(default="redis://redis:6379/0")
    RQ_QUEUE_NAME: str = Field(default="default")
    IDEMPOTENCY_TTL_SECONDS: int = Field(default=7 * 24 * 60 * 60)

    # Auth
    SECRET_KEY: str = Field(default=DEFAULT_SECRET_KEY)
    TOKEN_TTL_SECONDS: int = Field(default=7 * 24 * 60 * 60)
    SESSION_COOKIE_NAME: str = Field(default="projecthub_session")

    # AI collaborator (transcription, summaries, task extraction)
    AI_BASE_URL: str = Field(default="")
    AI_API_KEY: str = Field(default="")
    AI_TIMEOUT_SECONDS: float = Field(default=120.0)

    # Slack
    SLACK_WEBHOOK_URL: str = Field(default="")

    # Calendar sync
    CALENDAR_CACHE_TTL_SECONDS: int = Field(default=30 * 60)  # 30 minutes
    CALENDAR_FETCH_TIMEOUT_SECONDS: float = Field(default=20.0)

    # Recording queue
    RECORDING_MAX_RETRIES: int = Field(default=4)
    RECORDING_UNRECOVERABLE_RETRIES: int = Field(default=3)
    RECORDING_CLEANUP_DAYS: int = Field(default=7)
    RECORDING_STALE_HOURS: int = Field(default=2)
    RECORDING_STORAGE_LIMIT: int = Field(default=50)

    # Projects / meetings
    INVITATION_TTL_DAYS: int = Field(default=7)
    EXTRACTED_TASK_DUE_DAYS: int = Field(default=7)
    RECURRENCE_MAX_INSTANCES: int = Field(default=100)
    RECURRENCE_OPEN_ENDED_LIMIT: int = Field(default=104)  # ~2 years of weekly meetings

    def validate_configuration(self) -> list[str]:
        """
        Validates settings and returns list of warnings/errors.
        Critical errors should prevent startup.
        """
        errors = []
        warnings = []

        # Critical: Redis
        if not self.REDIS_URL:
            errors.append("REDIS_URL is required")

        # Critical: tokens must be signed with a real key in prod
        if self.ENV == "prod" and self.SECRET_KEY == DEFAULT_SECRET_KEY:
            errors.append("SECRET_KEY must be set when ENV=prod")

        if not self.AI_BASE_URL:
            warnings.append("AI_BASE_URL not set - recordings cannot be transcribed")

        if not self.SLACK_WEBHOOK_URL:
            warnings.append("SLACK_WEBHOOK_URL not set - failure alerts will not be sent")

        if self.RECORDING_MAX_RETRIES < 1:
            errors.append(f"RECORDING_MAX_RETRIES must be >= 1 (got: {self.RECORDING_MAX_RETRIES})")

        all_messages = []
        if errors:
            all_messages.extend([f"ERROR: {e}" for e in errors])
        if warnings:
            all_messages.extend([f"WARNING: {w}" for w in warnings])

        return all_messages

    def validate_and_fail_fast(self) -> None:
        """
        Validates configuration and exits if critical errors found.
        Logs warnings but continues.
        """
        messages = self.validate_configuration()

        errors = [msg for msg in messages if msg.startswith("ERROR:")]
        warnings = [msg for msg in messages if msg.startswith("WARNING:")]

        if warnings:
            logger.warning("Configuration warnings detected:")
            for warning in warnings:
                logger.warning("  %s", warning)

        if errors:
            logger.error("Critical configuration errors detected:")
            for error in errors:
                logger.error("  %s", error)
            logger.error("Application cannot start. Please fix configuration errors above.")
            sys.exit(1)

        logger.info("Configuration validation passed")


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
