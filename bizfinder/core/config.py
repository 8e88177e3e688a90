from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    google_places_api_key: str = ""
    default_country: str = "USA"
    language_code: str = "en"
    http_timeout_s: float = 20.0
    span_threshold_deg: float = 0.5
    detail_concurrency: int = 10
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment (and a local .env, if present)."""
    load_dotenv(override=False)

    settings = Settings(
        google_places_api_key=os.getenv("GOOGLE_PLACES_API_KEY", ""),
        default_country=os.getenv("BIZFINDER_DEFAULT_COUNTRY", "USA"),
        language_code=os.getenv("BIZFINDER_LANGUAGE", "en"),
        http_timeout_s=float(os.getenv("BIZFINDER_HTTP_TIMEOUT_S", "20")),
        span_threshold_deg=float(os.getenv("BIZFINDER_SPAN_THRESHOLD_DEG", "0.5")),
        detail_concurrency=int(os.getenv("BIZFINDER_DETAIL_CONCURRENCY", "10")),
        log_level=os.getenv("BIZFINDER_LOG_LEVEL", "INFO").upper(),
    )
    if not settings.google_places_api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not configured; searches will be rejected.")
    return settings
