"""
LLKB Configuration

Settings are read from environment variables (optionally loaded from
backend/.env by python-dotenv). Every value has a default, so a bare
checkout works without any configuration.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# backend/.env (llkb -> app -> backend)
ENV_PATH = Path(__file__).resolve().parent.parent.parent / ".env"

DEFAULT_LLKB_ROOT = ".artk/llkb"
DEFAULT_CONFIDENCE_THRESHOLD = 0.7
DEFAULT_MAX_AGE_DAYS = 90
DEFAULT_HISTORY_RETENTION_DAYS = 365
DEFAULT_MAX_PATTERNS = 2000
DEFAULT_LOG_LEVEL = "INFO"

# Hard ceiling for any pattern confidence
MAX_CONFIDENCE = 0.95


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"[CONFIG] Invalid value for {name}={raw!r}, using default {default}")
        return default


@dataclass
class LLKBSettings:
    """Runtime settings for the knowledge base"""
    root: Path
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    max_age_days: int = DEFAULT_MAX_AGE_DAYS
    history_retention_days: int = DEFAULT_HISTORY_RETENTION_DAYS
    max_patterns: int = DEFAULT_MAX_PATTERNS
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "LLKBSettings":
        return cls(
            root=Path(os.getenv("LLKB_ROOT", DEFAULT_LLKB_ROOT)),
            confidence_threshold=_env_number(
                "LLKB_CONFIDENCE_THRESHOLD", DEFAULT_CONFIDENCE_THRESHOLD, float
            ),
            max_age_days=_env_number("LLKB_MAX_AGE_DAYS", DEFAULT_MAX_AGE_DAYS, int),
            history_retention_days=_env_number(
                "LLKB_HISTORY_RETENTION_DAYS", DEFAULT_HISTORY_RETENTION_DAYS, int
            ),
            max_patterns=_env_number("LLKB_MAX_PATTERNS", DEFAULT_MAX_PATTERNS, int),
            log_level=os.getenv("LLKB_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )


# Global settings instance
_settings: Optional[LLKBSettings] = None


def get_settings() -> LLKBSettings:
    """Get or create the settings instance (loads backend/.env once)."""
    global _settings
    if _settings is None:
        load_dotenv(ENV_PATH)
        _settings = LLKBSettings.from_env()
    return _settings


def reset_settings():
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
