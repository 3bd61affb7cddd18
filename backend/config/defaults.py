"""
Visual Explorer - Default Configuration Constants

Centralized configuration for the entire application.
Values can be overridden via environment variables.

Usage:
    from config.defaults import Defaults
    port = Defaults.SERVER_PORT
"""

import os
from dataclasses import dataclass, field
from typing import List


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AppDefaults:
    """Application-wide default configuration."""

    # ==========================================================================
    # Server Settings
    # ==========================================================================
    SERVER_PORT: int = 8083
    SERVER_HOST: str = "0.0.0.0"
    LOG_LEVEL: str = "INFO"

    # ==========================================================================
    # MQTT Settings (event publishing is optional)
    # ==========================================================================
    MQTT_ENABLED: bool = False
    MQTT_BROKER: str = "localhost"
    MQTT_PORT: int = 1883
    MQTT_USERNAME: str = ""
    MQTT_PASSWORD: str = ""
    MQTT_TOPIC_PREFIX: str = "visual_explorer"

    # ==========================================================================
    # Exploration Settings (used when a start request omits a value)
    # ==========================================================================
    EXPLORE_MAX_SCREENS: int = 20
    EXPLORE_MAX_DEPTH: int = 10
    EXPLORE_SCREEN_DELAY_MS: int = 1000
    EXPLORE_RELAUNCH_DELAY_MS: int = 2000
    EXPLORE_LAUNCH_DELAY_MS: int = 2000
    EXPLORE_MAX_CLICKS_PER_ELEMENT: int = 3
    EXPLORE_IGNORE_ELEMENTS: List[str] = field(
        default_factory=lambda: ["android.widget.ImageView"]
    )

    # ==========================================================================
    # Session Log Buffer
    # ==========================================================================
    LOG_BUFFER_SIZE: int = 1000

    @classmethod
    def from_env(cls) -> "AppDefaults":
        """Create config from environment variables with defaults."""
        ignore = os.getenv("EXPLORE_IGNORE_ELEMENTS")
        return cls(
            SERVER_PORT=int(os.getenv("SERVER_PORT", cls.SERVER_PORT)),
            SERVER_HOST=os.getenv("SERVER_HOST", cls.SERVER_HOST),
            LOG_LEVEL=os.getenv("LOG_LEVEL", cls.LOG_LEVEL),
            MQTT_ENABLED=_env_bool("MQTT_ENABLED", cls.MQTT_ENABLED),
            MQTT_BROKER=os.getenv("MQTT_BROKER", cls.MQTT_BROKER),
            MQTT_PORT=int(os.getenv("MQTT_PORT", cls.MQTT_PORT)),
            MQTT_USERNAME=os.getenv("MQTT_USERNAME", cls.MQTT_USERNAME),
            MQTT_PASSWORD=os.getenv("MQTT_PASSWORD", cls.MQTT_PASSWORD),
            MQTT_TOPIC_PREFIX=os.getenv("MQTT_TOPIC_PREFIX", cls.MQTT_TOPIC_PREFIX),
            EXPLORE_MAX_SCREENS=int(os.getenv("EXPLORE_MAX_SCREENS", cls.EXPLORE_MAX_SCREENS)),
            EXPLORE_MAX_DEPTH=int(os.getenv("EXPLORE_MAX_DEPTH", cls.EXPLORE_MAX_DEPTH)),
            EXPLORE_SCREEN_DELAY_MS=int(
                os.getenv("EXPLORE_SCREEN_DELAY_MS", cls.EXPLORE_SCREEN_DELAY_MS)
            ),
            EXPLORE_RELAUNCH_DELAY_MS=int(
                os.getenv("EXPLORE_RELAUNCH_DELAY_MS", cls.EXPLORE_RELAUNCH_DELAY_MS)
            ),
            EXPLORE_LAUNCH_DELAY_MS=int(
                os.getenv("EXPLORE_LAUNCH_DELAY_MS", cls.EXPLORE_LAUNCH_DELAY_MS)
            ),
            EXPLORE_MAX_CLICKS_PER_ELEMENT=int(
                os.getenv("EXPLORE_MAX_CLICKS_PER_ELEMENT", cls.EXPLORE_MAX_CLICKS_PER_ELEMENT)
            ),
            EXPLORE_IGNORE_ELEMENTS=(
                [item.strip() for item in ignore.split(",") if item.strip()]
                if ignore is not None
                else ["android.widget.ImageView"]
            ),
            LOG_BUFFER_SIZE=int(os.getenv("LOG_BUFFER_SIZE", cls.LOG_BUFFER_SIZE)),
        )


# Global defaults instance - can be overridden at runtime
Defaults = AppDefaults()


def load_defaults_from_env():
    """Reload defaults from environment variables."""
    global Defaults
    Defaults = AppDefaults.from_env()
    return Defaults
