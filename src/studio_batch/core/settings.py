"""
Environment-driven settings for the studio batch pipeline.

Per-run options live in ``BatchConfig``; the values here are process-wide
and come from ``STUDIO_BATCH_*`` environment variables or a ``.env`` file.
"""

from functools import lru_cache
from typing import FrozenSet, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class StudioSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STUDIO_BATCH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Remote generation service
    api_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("STUDIO_BATCH_API_KEY", "GEMINI_API_KEY", "API_KEY"),
    )
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 120.0
    interactive_credential_models: FrozenSet[str] = frozenset(
        {"gemini-3-pro-image-preview"}
    )

    # Local resize
    resize_worker_cap: int = 8

    @field_validator("resize_worker_cap")
    @classmethod
    def validate_worker_cap(cls, v: int) -> int:
        if v < 1:
            raise ValueError("STUDIO_BATCH_RESIZE_WORKER_CAP must be at least 1")
        return v

    def requires_credential_selection(self, model: str) -> bool:
        return model in self.interactive_credential_models


@lru_cache()
def get_settings() -> StudioSettings:
    """Return cached settings to avoid reparsing env on every call."""
    return StudioSettings()
