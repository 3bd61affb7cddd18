"""
Health Routes - System Health Check

Reports server version, session state and MQTT connection status.
"""

from fastapi import APIRouter
import logging
from routes import get_deps
from utils.version import APP_VERSION

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.api_route("/health", methods=["GET", "HEAD"])
async def health_check():
    """
    Health check endpoint

    Supports both GET and HEAD methods for Docker health checks.
    """
    deps = get_deps()

    publisher = deps.exploration_publisher
    mqtt_connected = bool(publisher and publisher.is_connected)

    return {
        "status": "ok",
        "version": APP_VERSION,
        "message": "Visual Explorer is running",
        "explorer_running": deps.session_controller.running,
        "mqtt_connected": mqtt_connected,
        "mqtt_status": "connected" if mqtt_connected else "disconnected",
    }
