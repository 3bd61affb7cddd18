"""
Visual Explorer - FastAPI Server

Autonomous UI exploration of Android apps over ADB.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import load_defaults_from_env
from core.adb.adb_manager import ADBManager
from core.adb.device_interface import ADBDeviceInterface
from core.exploration.session_controller import SessionController
from core.mqtt.exploration_publisher import ExplorationPublisher
from services.event_broadcaster import EventBroadcaster
from utils.version import APP_VERSION

# Route modules
from routes import RouteDependencies, set_dependencies
from routes import explorer, health

Defaults = load_defaults_from_env()

# Configure logging
logging.basicConfig(
    level=getattr(logging, Defaults.LOG_LEVEL.upper(), logging.INFO),
    format="[%(asctime)s] %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create managers on startup and release them on shutdown"""
    logger.info(f"[Server] Starting Visual Explorer v{APP_VERSION}")

    adb_manager = ADBManager()
    _, mode = await adb_manager.ensure_adb_available()
    logger.info(f"[Server] ADB mode: {mode}")

    device_interface = ADBDeviceInterface(adb_manager)
    event_broadcaster = EventBroadcaster()
    session_controller = SessionController(
        device_interface,
        observers=[event_broadcaster],
        log_capacity=Defaults.LOG_BUFFER_SIZE,
    )

    exploration_publisher = None
    if Defaults.MQTT_ENABLED:
        logger.info(f"[Server] MQTT Broker: {Defaults.MQTT_BROKER}:{Defaults.MQTT_PORT}")
        exploration_publisher = ExplorationPublisher(
            broker=Defaults.MQTT_BROKER,
            port=Defaults.MQTT_PORT,
            username=Defaults.MQTT_USERNAME or None,
            password=Defaults.MQTT_PASSWORD or None,
            topic_prefix=Defaults.MQTT_TOPIC_PREFIX,
            device_provider=lambda: session_controller.state.device_id,
        )
        if await exploration_publisher.connect():
            session_controller.add_observer(exploration_publisher)
        else:
            logger.warning("[Server] MQTT unavailable, exploration events will not be published")

    set_dependencies(
        RouteDependencies(
            device_interface=device_interface,
            session_controller=session_controller,
            event_broadcaster=event_broadcaster,
            exploration_publisher=exploration_publisher,
        )
    )
    logger.info("[Server] Route dependencies initialized")

    yield

    logger.info("[Server] Shutting down Visual Explorer...")
    await session_controller.shutdown()
    if exploration_publisher:
        await exploration_publisher.disconnect()
    await device_interface.close()
    logger.info("[Server] Shutdown complete")


app = FastAPI(title="Visual Explorer", version=APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
logger.info("[Server] Registered route module: health (1 endpoint)")
app.include_router(explorer.router)
logger.info("[Server] Registered route module: explorer (8 HTTP endpoints + 1 WebSocket)")


if __name__ == "__main__":
    logger.info(f"Starting Visual Explorer v{APP_VERSION}")
    logger.info(f"Server: http://localhost:{Defaults.SERVER_PORT}")
    logger.info(f"API: http://localhost:{Defaults.SERVER_PORT}/api")

    uvicorn.run(app, host=Defaults.SERVER_HOST, port=Defaults.SERVER_PORT, log_level="info")
