from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Field(default=Path(".cache"), alias="CASHBOOK_DATA_DIR")

    owner_id: Optional[str] = Field(default=None, alias="CASHBOOK_OWNER_ID")

    business_tz: str = Field(default="Asia/Jakarta", alias="CASHBOOK_TZ")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    def validate_required(self) -> None:
        try:
            ZoneInfo(self.business_tz)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"CASHBOOK_TZ is not a known timezone: {self.business_tz}") from e

        if self.owner_id is not None and not self.owner_id.strip():
            raise ValueError("CASHBOOK_OWNER_ID must not be blank")


@lru_cache
def load_settings() -> Settings:
    settings = Settings()
    settings.validate_required()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
