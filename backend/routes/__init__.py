"""
Route Dependencies - Centralized dependency injection for route modules

All manager instances are injected once at startup, which keeps route
modules free of globals and lets tests inject fakes.
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    # Type hints only - avoid runtime circular imports
    from core.adb.device_interface import DeviceInterface
    from core.exploration.session_controller import SessionController
    from core.mqtt.exploration_publisher import ExplorationPublisher
    from services.event_broadcaster import EventBroadcaster


@dataclass
class RouteDependencies:
    """
    Container for all dependencies needed by route modules

    Usage in route modules:
        from routes import get_deps

        @router.get("/endpoint")
        async def handler():
            deps = get_deps()
            return deps.session_controller.status()
    """

    # =========================================================================
    # CORE MANAGERS (Always initialized)
    # =========================================================================
    device_interface: "DeviceInterface"
    session_controller: "SessionController"
    event_broadcaster: "EventBroadcaster"

    # =========================================================================
    # OPTIONAL MANAGERS (Initialized at startup if enabled)
    # =========================================================================
    exploration_publisher: Optional["ExplorationPublisher"] = None


# Global dependencies instance (set once at startup)
_deps: Optional[RouteDependencies] = None


def set_dependencies(deps: RouteDependencies) -> None:
    """
    Set global dependencies (called once at server startup)

    Args:
        deps: RouteDependencies instance with all managers initialized
    """
    global _deps
    _deps = deps


def get_deps() -> RouteDependencies:
    """
    Get dependencies for route handlers

    Raises:
        RuntimeError: If dependencies not initialized (call set_dependencies first)
    """
    if _deps is None:
        raise RuntimeError(
            "Dependencies not initialized. "
            "Call set_dependencies() in server startup before registering routes."
        )
    return _deps


# Export public API
__all__ = [
    "RouteDependencies",
    "set_dependencies",
    "get_deps",
]
