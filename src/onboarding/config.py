"""
Onboarding - Configuration and settings.

Read from the environment (ONBOARDING_*) or a local .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class OnboardingSettings(BaseSettings):
    """
    Settings for the onboarding wizard engine and its hosts.

    Storage settings decide where in-progress drafts live; the step flags
    shape the default step schema.
    """

    model_config = SettingsConfigDict(
        env_prefix="ONBOARDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Draft storage
    storage_namespace: str = "atlantium_onboarding_progress"
    storage_backend: Literal["memory", "file"] = "memory"
    draft_dir: Path = Path(".onboarding_drafts")

    # Step schema
    pricing_step_enabled: bool = False  # Admin grants access separately
    revalidate_on_submit: bool = False

    # Fallback when the local timezone isn't one we offer
    default_timezone: str = "America/New_York"

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> OnboardingSettings:
    """Get cached settings instance."""
    return OnboardingSettings()
