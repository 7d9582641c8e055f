"""Configuration settings for cbdedup."""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cbdedup.cache import DEFAULT_CAPACITY, TWELVE_HOURS_MS


class DedupStrategy(str, Enum):
    """Which duplicate detection strategy a process runs with."""

    WINDOWED_DATABASE = "windowed_database"  # 12h sliding window seeded from history
    MEMORY_SET = "memory_set"  # Bounded in-memory identity set
    DISABLED = "disabled"  # Every message is new


class DedupSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    strategy: DedupStrategy = Field(DedupStrategy.MEMORY_SET, validation_alias="CBDEDUP_STRATEGY")
    capacity: int = Field(DEFAULT_CAPACITY, ge=1, validation_alias="CBDEDUP_CAPACITY")
    window_ms: int = Field(TWELVE_HOURS_MS, gt=0, validation_alias="CBDEDUP_WINDOW_MS")


class HistorySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    db_path: str = Field("cell_broadcasts.db", validation_alias="CBDEDUP_HISTORY_DB")


class Settings(BaseSettings):
    """Global Application Settings."""
    dedup: DedupSettings = Field(default_factory=DedupSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore"
    )

settings = Settings()
