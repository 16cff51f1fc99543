"""
Centralized configuration for the UNO duel server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.house_rules.TARGET_SCORE)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_optional_int(key: str) -> Optional[int]:
    """Get integer environment variable, or None when unset or invalid."""
    raw = os.environ.get(key, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass
class HouseRules:
    """House rules applied to every match on this server."""
    TARGET_SCORE: int = 200       # cumulative points that win the match
    STACKING: bool = True         # +2 on +2 and +4 on +4
    MUST_PLAY_IF_CAN: bool = True  # no drawing while holding a playable card
    DRAW_TO_MATCH: bool = True    # keep drawing until playable, then auto-play
    PLUS4_CHALLENGE: bool = True  # target of a +4 may challenge it
    UNO_PENALTY: int = 2          # cards drawn when caught without calling UNO


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Room settings
    ROOM_ID_MAX_LENGTH: int = 24

    # Seed for replayable shuffles (None = system randomness)
    RANDOM_SEED: Optional[int] = None

    house_rules: HouseRules = field(default_factory=HouseRules)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 3000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            ROOM_ID_MAX_LENGTH=get_env_int("ROOM_ID_MAX_LENGTH", 24),
            RANDOM_SEED=get_env_optional_int("RANDOM_SEED"),
            house_rules=HouseRules(
                TARGET_SCORE=get_env_int("TARGET_SCORE", 200),
                STACKING=get_env_bool("STACKING", True),
                MUST_PLAY_IF_CAN=get_env_bool("MUST_PLAY_IF_CAN", True),
                DRAW_TO_MATCH=get_env_bool("DRAW_TO_MATCH", True),
                PLUS4_CHALLENGE=get_env_bool("PLUS4_CHALLENGE", True),
                UNO_PENALTY=get_env_int("UNO_PENALTY", 2),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """Reload configuration from environment (useful for testing)."""
    global config
    config = ServerConfig.from_env()
    return config
