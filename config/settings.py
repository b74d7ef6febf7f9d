"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )
    applications_table: str = Field(
        default="applications",
        description="Table holding canonical application records"
    )
    import_history_table: str = Field(
        default="import_history",
        description="Table holding fingerprints of committed imports"
    )

    # ===================
    # TEMPLATE DETECTION
    # ===================
    detection_min_confidence: float = Field(
        default=0.3,
        ge=0,
        le=1,
        description="Below this score detect returns no template"
    )
    fuzzy_match_floor: float = Field(
        default=0.72,
        ge=0.5,
        le=1,
        description="Minimum header similarity accepted by the fuzzy mapping pass"
    )
    fallback_template_id: str = Field(
        default="custom",
        description="Template used when an upload matches nothing confidently"
    )

    # ===================
    # DUPLICATE DETECTION
    # ===================
    duplicate_threshold: float = Field(
        default=0.7,
        ge=0,
        le=1,
        description="Pairwise confidence that links two records"
    )
    merge_recommendation_threshold: float = Field(
        default=0.9,
        ge=0,
        le=1,
        description="Group confidence at which merge is recommended"
    )
    date_proximity_days: int = Field(
        default=7,
        ge=0,
        le=90,
        description="Applied dates this many days apart still count as a partial match"
    )

    # ===================
    # IMPORT SESSIONS
    # ===================
    import_session_ttl_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Minutes an uncommitted import session is kept"
    )
    max_import_rows: int = Field(
        default=5000,
        ge=1,
        le=100000,
        description="Largest batch accepted by a single import session"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
