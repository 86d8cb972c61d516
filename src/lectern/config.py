# ABOUTME: Runtime configuration for the enrichment pipeline.
# ABOUTME: Frozen pydantic settings with defaults, overridable from LECTERN_* environment variables.

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "LECTERN_"


class EnrichmentConfig(BaseSettings):
    """Settings for HTTP behaviour, cover gathering, and caching.

    Each field can be set from ``LECTERN_<FIELD>``; keyword arguments win over
    the environment.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        frozen=True,
    )

    google_books_api_key: str | None = None
    request_timeout: float = Field(15.0, gt=0)
    """Seconds allowed per catalog request, retries included."""
    min_request_interval: float = Field(0.1, ge=0)
    max_retries: int = Field(2, ge=0)
    cover_candidate_limit: int = Field(8, ge=1)
    per_provider_cover_limit: int = Field(4, ge=1)
    thumbnail_concurrency: int = Field(8, ge=1)
    cache_by_content: bool = False
    """Key the result cache by file content instead of file name."""

    @field_validator("google_books_api_key")
    @classmethod
    def _blank_key_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


def env_var(field_name: str) -> str:
    """Environment variable that sets a config field."""
    return f"{ENV_PREFIX}{field_name.upper()}"
