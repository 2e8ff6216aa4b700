from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "codestreak-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Codestreak")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/codestreak_dev")

    # Durable leaderboard cache
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    redis_connect_max_attempts: int = int(os.getenv("REDIS_CONNECT_MAX_ATTEMPTS", "3"))
    redis_retry_step_ms: int = int(os.getenv("REDIS_RETRY_STEP_MS", "500"))
    redis_retry_cap_ms: int = int(os.getenv("REDIS_RETRY_CAP_MS", "2000"))
    redis_socket_timeout_seconds: float = float(os.getenv("REDIS_SOCKET_TIMEOUT_SECONDS", "2"))
    leaderboard_cache_ttl_seconds: int = int(os.getenv("LEADERBOARD_CACHE_TTL_SECONDS", "60"))

    # Aggregation windows
    day_boundary_tz: str = os.getenv("DAY_BOUNDARY_TZ", "UTC")  # IANA name; "today" is computed here
    dashboard_recent_days: int = int(os.getenv("DASHBOARD_RECENT_DAYS", "7"))
    progress_history_days: int = int(os.getenv("PROGRESS_HISTORY_DAYS", "100"))
    heatmap_days: int = int(os.getenv("HEATMAP_DAYS", "365"))
    submission_chart_days: int = int(os.getenv("SUBMISSION_CHART_DAYS", "30"))

settings = Settings()
