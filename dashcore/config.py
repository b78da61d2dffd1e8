"""
Runtime settings for the dashboards.

Loaded from ``DASHBOARD_*`` environment variables (or a ``.env`` file) with
pydantic-settings. Invalid values fail loudly at startup.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[1] / "data"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    # Data files
    data_dir: Path = Field(DEFAULT_DATA_DIR)
    sp500_file: str = Field("sp500.csv")
    crashes_file: str = Field("crashes_california_2019_2021.csv")
    books_file: str = Field("harry_potter_books.csv")
    lexicon_file: str = Field("nrc.csv")
    stop_words_file: Optional[str] = Field(None)

    # Loading
    crash_sample_size: int = Field(20000, ge=0)
    sample_seed: int = Field(1)

    # Application
    log_level: str = Field("INFO")
    cors_origins: Annotated[Tuple[str, ...], NoDecode] = Field(("http://localhost:3000", "http://127.0.0.1:3000"))

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_log_level(cls, value: object) -> str:
        level = str(value).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {value!r}")
        return level

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(o.strip() for o in value.split(",") if o.strip())
        return value

    @field_validator("stop_words_file", mode="before")
    @classmethod
    def _blank_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def path_for(self, filename: Optional[str]) -> Optional[Path]:
        if not filename:
            return None
        p = Path(filename)
        return p if p.is_absolute() else self.data_dir / p


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached Settings instance so the environment is parsed once per process."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    logging.getLogger("dashcore").setLevel(log_level)
    logging.getLogger("api").setLevel(log_level)
