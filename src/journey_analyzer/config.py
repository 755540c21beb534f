from functools import lru_cache
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class EventBotWeights(BaseModel):
    """Weights for the per-event (pixel capture) bot score."""
    model_config = ConfigDict(frozen=True)

    user_agent: float = 0.25
    datacenter_flat: float = 10.0
    client_indicators: float = 0.15
    fingerprint: float = 0.15
    mouse: float = 0.15
    scroll: float = 0.10
    js_challenge: float = 0.10


class JourneyBotWeights(BaseModel):
    """Weights for the per-journey bot score."""
    model_config = ConfigDict(frozen=True)

    user_agent: float = 0.30
    datacenter_flat: float = 15.0
    behaviour: float = 0.50
    client_indicators: float = 0.20


class Heuristics(BaseModel):
    """Every tunable threshold used by reconstruction, bot scoring and consolidation.

    Empirically chosen; kept in one place so tests and calibration runs can move a
    single boundary without touching the heuristics themselves.
    """
    model_config = ConfigDict(frozen=True)

    # Sessions
    session_gap_minutes: int = 30
    incremental_cutoff_minutes: int = 5
    # Outcome
    search_exclusion_seconds: float = 2.0
    search_url_markers: tuple[str, ...] = ("?s=", "search")
    early_event_window: int = 5
    # Engagement / friction
    heartbeat_interval_seconds: int = 30
    rapid_navigation_seconds: float = 5.0
    rapid_navigation_min_count: int = 3
    # Downstream reporting gate (consumers treat lower confidence as unusable)
    reliable_confidence: int = 40
    # Bot detection
    bot_threshold: int = 50
    ua_override_confidence: int = 90
    good_bot_floor: int = 90
    pixel_only_floor: int = 85
    behaviour_bot_threshold: int = 40
    crawl_rate_pages_per_minute: float = 10.0
    event_weights: EventBotWeights = Field(default_factory=EventBotWeights)
    journey_weights: JourneyBotWeights = Field(default_factory=JourneyBotWeights)


DEFAULT_HEURISTICS = Heuristics()


class Settings(BaseSettings):
    environment: str = Field("development", alias="ENVIRONMENT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Explicit DSN wins; otherwise a Supabase Postgres DSN is assembled
    database_url: str | None = Field(None, alias="DATABASE_URL")
    supabase_project_ref: str | None = Field(None, alias="SUPABASE_PROJECT_REF")
    supabase_db_password: str | None = Field(None, alias="SUPABASE_DB_PASSWORD")
    supabase_db_user: str = Field("postgres", alias="SUPABASE_DB_USER")
    supabase_db_name: str = Field("postgres", alias="SUPABASE_DB_NAME")

    redis_url: str = Field("redis://localhost:6379/0", alias="REDIS_URL")
    incremental_rebuild_interval_seconds: int = Field(30, alias="INCREMENTAL_REBUILD_INTERVAL_SECONDS")
    site_id: int | None = Field(None, alias="SITE_ID")  # default tenant scope for scheduled runs

    heuristics: Heuristics = Field(default_factory=Heuristics, alias="HEURISTICS")  # JSON in env

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "allow"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def reset_settings():
    """Clear cached settings (useful in tests when env vars change)."""
    get_settings.cache_clear()
