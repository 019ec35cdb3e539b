"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Lineup Backend"
    environment: str = "dev"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://lineup@localhost:5432/lineup"

    # Sessions
    jwt_secret: str | None = None
    admin_panel_password: str = ""
    auth_cookie_name: str = "lineup_auth"
    admin_cookie_name: str = "lineup_admin_session"
    auth_token_ttl_days: int = 30
    admin_token_ttl_days: int = 7

    # YouTube metadata lookup
    youtube_api_key: str | None = None
    metadata_data_api_timeout_s: float = 8.0
    metadata_watch_page_timeout_s: float = 10.0
    metadata_oembed_timeout_s: float = 6.0
    metadata_total_timeout_s: float = 15.0

    # Timeline HTTP gateway
    api_base_url: str = "http://localhost:8000"

    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "lineup"
    opik_workspace: str | None = None
    opik_host: str | None = None

    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    metadata_repair_interval_minutes: int = 60
    metadata_repair_batch_size: int = 50
    jobs_run_on_startup: bool = False

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
