"""
JobVet configuration via environment variables.

All settings are read from JOBVET_* variables (or a local .env file).
"""

import json
from functools import lru_cache
from typing import Any, List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Aggregator/marketing hosts that are never fetched directly.
DEFAULT_DENYLIST = [
    "indeed.com",
    "ziprecruiter.com",
    "glassdoor.com",
    "linkedin.com",
    "monster.com",
    "careerbuilder.com",
]


def _parse_host_list(v: Any) -> List[str]:
    """Parse a host list from a JSON array or comma-separated string."""
    if v is None:
        return []
    if isinstance(v, list):
        return [h.strip().lower() for h in v if isinstance(h, str) and h.strip()]
    if isinstance(v, str):
        if not v.strip():
            return []
        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                return [h.strip().lower() for h in parsed if isinstance(h, str) and h.strip()]
        except (json.JSONDecodeError, TypeError):
            pass
        return [h.strip().lower() for h in v.split(",") if h.strip()]
    return []


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="JOBVET_",
        env_file=".env",
        extra="ignore",
    )

    # HTTP
    user_agent: str = "JobVetBot/1.0 (+https://example.com/bot)"
    request_timeout_s: float = 15.0
    max_retries: int = 2
    base_delay_s: float = 0.25
    max_backoff_s: float = 10.0
    robots_timeout_s: float = 8.0

    # Policy
    # NOTE: Union[...] keeps pydantic-settings from JSON-decoding comma-separated env strings.
    denylist_hosts: Union[str, List[str], None] = Field(default_factory=lambda: list(DEFAULT_DENYLIST))

    @field_validator("denylist_hosts", mode="before")
    @classmethod
    def parse_denylist_hosts(cls, v: Any) -> List[str]:
        return _parse_host_list(v)

    # Pipeline
    fresh_hours: float = 24.0
    enrichment_text_limit: int = 20000
    require_enrichment: bool = False  # abort instead of degrading when the oracle fails

    # AI settings
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: Optional[str] = None

    # Storage
    db_path: str = "jobvet.db"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
