"""Configuration helpers for the field detector."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class Settings:
    """Container for environment-driven settings.

    Values are read when the instance is created, so tests can monkeypatch the
    environment and build a fresh ``Settings()``.
    """

    store_path: str = field(
        default_factory=lambda: os.getenv("FIELDSCOPE_STORE_PATH", "./data/fieldscope_learning.json")
    )
    history_limit: int = field(default_factory=lambda: _env_int("FIELDSCOPE_HISTORY_LIMIT", 1000))
    history_trim_to: int = field(default_factory=lambda: _env_int("FIELDSCOPE_HISTORY_TRIM_TO", 800))
    min_group_size: int = field(default_factory=lambda: _env_int("FIELDSCOPE_MIN_GROUP_SIZE", 3))
    majority_ratio: float = field(default_factory=lambda: _env_float("FIELDSCOPE_MAJORITY_RATIO", 0.6))
    max_induced_patterns: int = field(default_factory=lambda: _env_int("FIELDSCOPE_MAX_INDUCED_PATTERNS", 25))
    auto_retrain: bool = field(default_factory=lambda: _env_flag("FIELDSCOPE_AUTO_RETRAIN", default=True))
    log_level: str = field(default_factory=lambda: os.getenv("FIELDSCOPE_LOG_LEVEL", "INFO"))

    def resolved_store_path(self) -> Path:
        """Return the absolute path of the JSON learning store."""

        store_file = Path(self.store_path)
        if not store_file.is_absolute():
            store_file = Path.cwd() / store_file
        return store_file


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
