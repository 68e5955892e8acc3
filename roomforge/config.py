"""
roomforge configuration

Defaults live on the dataclasses; `from_env()` overrides them from ROOMFORGE_*
environment variables (a .env file is loaded if present).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

ROOM_CACHE_KEY: str = "roguelike_room_cache"
CACHE_VERSION: int = 1
CACHE_MAX_AGE_SECONDS: float = 24 * 60 * 60
CACHE_MAX_ROOMS: int = 5


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CacheConfig:
    """Settings of the persistent room cache."""

    storage_key: str = ROOM_CACHE_KEY
    version: int = CACHE_VERSION
    max_age_seconds: float = CACHE_MAX_AGE_SECONDS
    max_rooms: int = CACHE_MAX_ROOMS

    @classmethod
    def from_env(cls) -> "CacheConfig":
        return cls(
            storage_key=os.getenv("ROOMFORGE_CACHE_KEY", ROOM_CACHE_KEY),
            version=int(os.getenv("ROOMFORGE_CACHE_VERSION", str(CACHE_VERSION))),
            max_age_seconds=float(
                os.getenv("ROOMFORGE_CACHE_MAX_AGE_SECONDS", str(CACHE_MAX_AGE_SECONDS))
            ),
            max_rooms=int(os.getenv("ROOMFORGE_CACHE_MAX_ROOMS", str(CACHE_MAX_ROOMS))),
        )

    def validate(self) -> None:
        if self.max_rooms < 1:
            raise ValueError(f"max_rooms must be at least 1, got {self.max_rooms}")
        if self.max_age_seconds <= 0:
            raise ValueError(f"max_age_seconds must be positive, got {self.max_age_seconds}")


@dataclass
class SessionConfig:
    """Settings of a dungeon session."""

    # Seconds to wait for cosmetic enhancement before using the plain room
    enhancement_timeout: float = 30.0
    prefetch: bool = True
    # Directory for JsonFileStore; None keeps everything in memory
    cache_dir: Optional[str] = None
    debug_events: bool = False

    @classmethod
    def from_env(cls) -> "SessionConfig":
        return cls(
            enhancement_timeout=float(os.getenv("ROOMFORGE_ENHANCEMENT_TIMEOUT", "30")),
            prefetch=_env_bool("ROOMFORGE_PREFETCH", True),
            cache_dir=os.getenv("ROOMFORGE_CACHE_DIR"),
            debug_events=_env_bool("ROOMFORGE_DEBUG_EVENTS", False),
        )

    def validate(self) -> None:
        if self.enhancement_timeout <= 0:
            raise ValueError(
                f"enhancement_timeout must be positive, got {self.enhancement_timeout}"
            )
