"""Planner configuration loaded from environment variables.

Every field can be overridden with a MYPLANNER_* variable or a local .env file,
e.g. MYPLANNER_API_BASE_URL or MYPLANNER_MAX_RETRIES.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    return Path(__file__).resolve().parent / "data"


class PlannerConfig(BaseSettings):
    """Runtime settings with sensible defaults for local development."""

    model_config = SettingsConfigDict(
        env_prefix="MYPLANNER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend
    api_base_url: str = Field(
        default="http://localhost:8000/api/v2",
        description="Base URL of the planner backend API",
    )
    user_id: str = Field(
        default="guest",
        description="User identifier sent with every backend request",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout per request in seconds",
    )

    # Mutation retry policy
    max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries after the first failed attempt of a mutation",
    )
    backoff_base_ms: int = Field(
        default=1000,
        ge=0,
        description="Linear backoff base; the n-th retry waits n * base",
    )

    # Paths
    data_dir: Path = Field(
        default_factory=_default_data_dir,
        description="Directory holding the local course cache",
    )

    # Logging
    log_json: bool = Field(default=False, description="Render logs as JSON")
    log_level: str = Field(default="WARNING", description="Log level")

    @property
    def courses_path(self) -> Path:
        return self.data_dir / "courses.json"


_config: PlannerConfig | None = None


def get_config() -> PlannerConfig:
    """Return the configuration singleton, loading it on first use."""
    global _config
    if _config is None:
        _config = PlannerConfig()
    return _config


def reset_config() -> None:
    """Forget the cached configuration (used by tests after env changes)."""
    global _config
    _config = None
