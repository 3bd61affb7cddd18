"""
ADB Connection Configuration.
Centralized configuration for all ADB connection types.
"""
from dataclasses import dataclass


@dataclass
class ADBConfig:
    """Configuration for ADB connections."""

    CONNECTION_TIMEOUT: int = 10  # seconds

    # Default ports
    DEFAULT_ADB_PORT: int = 5555

    # Key locations
    ADB_KEY_DIR: str = "~/.android"
    ADB_KEY_NAME: str = "adbkey"

    # Timeouts
    SHELL_TIMEOUT: int = 30  # seconds
    SCREENCAP_TIMEOUT: int = 15  # seconds
    AUTH_TIMEOUT: float = 10.0  # seconds
    TRANSPORT_TIMEOUT: float = 9.0  # seconds

    # Device-side scratch file for uiautomator dumps
    UI_DUMP_PATH: str = "/sdcard/window_dump.xml"


# Global configuration instance
config = ADBConfig()
