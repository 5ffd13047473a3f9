"""
FeedLens Application Configuration
==================================

PURPOSE:
    Pydantic-Settings based configuration for the FeedLens service.
    All settings can be overridden via environment variables (FEEDLENS_ prefix)
    or a local .env file.

NOTES:
    The database location is taken from DATABASE_URL (see core/database.py)
    so that deployments can point at PostgreSQL without touching this file.
"""

import logging
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="FEEDLENS_", extra="ignore")

    app_name: str = "FeedLens"
    debug: bool = False

    data_directory: str = "./data"
    log_directory: str = "logs"
    log_level: str = "INFO"

    # LLM Settings (BYO-Key)
    llm_provider: Literal["gemini", "openai", "anthropic", "workers_ai"] = "workers_ai"
    llm_model: Optional[str] = None  # None -> provider default
    llm_temperature: float = 0.2
    llm_max_tokens: int = 1024
    llm_timeout_s: float = 60.0
    gemini_api_key: Optional[str] = None
    google_genai_use_gca: bool = False  # Vertex AI instead of an API key
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    cloudflare_account_id: Optional[str] = None
    cloudflare_api_token: Optional[str] = None
    cloudflare_api_base: str = "https://api.cloudflare.com/client/v4"

    # Classification
    classification_max_tokens: int = 256
    classification_timeout_s: float = 30.0

    # Ingestion
    ingest_concurrency: int = 4
    ingest_max_batch_size: int = 1000

    # Aggregation
    theme_window_size: int = 100  # most recent items considered for themes
    top_themes_limit: int = 10
    theme_health_limit: int = 10
    recent_sample_size: int = 10
    dashboard_trend_days: int = 30

    # Context assembly
    ask_context_size: int = 30
    summary_window_size: int = 100

    # Listing
    default_feedback_limit: int = 50
    max_feedback_limit: int = 500

    # CORS
    cors_origins: List[str] = ["*"]

    def log_config_summary(self) -> None:
        """Log the effective configuration with secrets masked."""
        logger.info(
            "FeedLens configuration: provider=%s model=%s theme_window=%d ingest_concurrency=%d",
            self.llm_provider,
            self.llm_model or "(provider default)",
            self.theme_window_size,
            self.ingest_concurrency,
        )
        for name in ("gemini_api_key", "openai_api_key", "anthropic_api_key", "cloudflare_api_token"):
            logger.debug("%s: %s", name, mask_sensitive_value(getattr(self, name)))


def mask_sensitive_value(value: Optional[str], show_chars: int = 4) -> str:
    """Mask a secret for logging, showing only the last few characters."""
    if not value:
        return "[NOT SET]"
    if len(value) <= show_chars:
        return "*" * len(value)
    return "*" * (len(value) - show_chars) + value[-show_chars:]


settings = Settings()
