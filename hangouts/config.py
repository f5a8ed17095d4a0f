"""Application settings loaded from the environment (prefix ``HANGOUTS_``)."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = Field(default="Hangout Scheduler", description="API title")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    timezone: str = Field(
        default="UTC",
        description="IANA timezone used to decide which calendar day an event falls on",
    )
    notification_list_limit: int = Field(
        default=50, gt=0, description="Maximum notifications returned per listing"
    )
    match_notification_title: str = Field(
        default="Hangout Match Found!", description="Title of hangout_match notifications"
    )

    model_config = SettingsConfigDict(
        env_prefix="HANGOUTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
