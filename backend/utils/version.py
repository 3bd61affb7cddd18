"""
Centralized Version Management for Visual Explorer

Reads version from .build-version file to ensure consistency
across all modules (API, MQTT, logs, etc.)
"""
from pathlib import Path
import logging

logger = logging.getLogger(__name__)

FALLBACK_VERSION = "0.1.0"


def get_version() -> str:
    """
    Read version from .build-version file.

    Searches in multiple locations to support both Docker and local development:
    - /app/.build-version (Docker container)
    - backend/../.build-version (local dev - one level up from backend)

    Returns:
        Version string (e.g., "0.1.0"), or the packaged fallback if no file is found
    """
    version_paths = [
        Path("/app/.build-version"),
        Path(__file__).parent.parent.parent / ".build-version",
        Path(__file__).parent.parent / ".build-version",
    ]

    for path in version_paths:
        if path.exists():
            version = path.read_text().strip()
            logger.debug(f"[Version] Loaded version {version} from {path}")
            return version

    logger.debug(f"[Version] .build-version file not found, using {FALLBACK_VERSION}")
    return FALLBACK_VERSION


APP_VERSION = get_version()
