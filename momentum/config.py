"""
Momentum — Centralized configuration.

Loads all settings from .env and validates them.
Only the SQLite store and the service facade read these values, and only as
defaults: every core function takes its configuration as arguments.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

from momentum.core.calendar_days import TIMELINE_RANGES

# Load .env from project root (one level up from momentum/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite
    DATABASE_PATH: str = "data/momentum.db"

    # Timeline preview
    TIMELINE_RANGE_DAYS: int = 7       # one of 7 / 14 / 30
    TIMELINE_HORIZON_DAYS: int = 30    # how far ahead the window may start

    # Templates created without a category land here
    DEFAULT_CATEGORY: str = "Uncategorized"

    @field_validator("TIMELINE_RANGE_DAYS", mode="before")
    @classmethod
    def parse_range(cls, v: str | int) -> int:
        value = int(v)
        if value not in TIMELINE_RANGES:
            raise ValueError(f"must be one of {TIMELINE_RANGES}, got {value}")
        return value

    @field_validator("TIMELINE_HORIZON_DAYS", mode="before")
    @classmethod
    def parse_horizon(cls, v: str | int) -> int:
        value = int(v)
        if value < 1:
            raise ValueError("must be a positive number of days")
        return value

    @field_validator("DEFAULT_CATEGORY", mode="before")
    @classmethod
    def parse_category(cls, v: str) -> str:
        return (v or "").strip() or "Uncategorized"


def _load_settings() -> Settings:
    """Load settings from environment, exiting on invalid values."""
    try:
        return Settings(
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/momentum.db"),
            TIMELINE_RANGE_DAYS=os.getenv("TIMELINE_RANGE_DAYS", "7"),
            TIMELINE_HORIZON_DAYS=os.getenv("TIMELINE_HORIZON_DAYS", "30"),
            DEFAULT_CATEGORY=os.getenv("DEFAULT_CATEGORY", "Uncategorized"),
        )
    except (ValidationError, ValueError) as exc:
        print(f"ERROR: invalid settings in .env: {exc}", file=sys.stderr)
        sys.exit(1)


# Singleton — imported by other modules as:
#   from momentum.config import settings
settings = _load_settings()
