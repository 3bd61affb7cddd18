"""
MQTT Publisher for Visual Explorer
Publishes exploration events as JSON to visual_explorer/{device}/explorer/{event}
Cross-platform: Uses aiomqtt on Linux, paho-mqtt on Windows
"""

import asyncio
import json
import logging
import sys
from typing import Any, Callable, Dict, Optional

from core.exploration.models import GraphSnapshot, LogEntry, ProgressEvent, Screen, SessionStatus
from core.exploration.observers import ExplorationObserver
from utils.version import APP_VERSION

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == 'win32'

if IS_WINDOWS:
    # Windows: Use synchronous paho-mqtt with async wrapper
    import paho.mqtt.client as mqtt
    logger.info("[ExplorationPublisher] Using paho-mqtt (Windows compatibility mode)")
else:
    # Linux: Use async aiomqtt
    from aiomqtt import Client
    logger.info("[ExplorationPublisher] Using aiomqtt (Linux async mode)")


def sanitize_device_id(device_id: str) -> str:
    """Replace characters that are not valid in MQTT topic levels"""
    return device_id.replace(":", "_").replace(".", "_").replace("/", "_").replace("+", "_").replace("#", "_")


class ExplorationPublisher(ExplorationObserver):
    """Forwards session events to an MQTT broker"""

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        topic_prefix: str = "visual_explorer",
        device_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.broker = broker
        self.port = port
        self.username = username
        self.password = password
        self.topic_prefix = topic_prefix
        self.device_provider = device_provider or (lambda: None)
        self.client = None
        self._connected = False

        logger.info(f"[ExplorationPublisher] Initialized with broker={broker}:{port} (Platform: {'Windows' if IS_WINDOWS else 'Linux'})")

    async def connect(self) -> bool:
        """Connect to MQTT broker"""
        if IS_WINDOWS:
            return await self._connect_windows()
        else:
            return await self._connect_linux()

    async def _connect_windows(self) -> bool:
        """Windows connection using paho-mqtt"""
        try:
            self.client = mqtt.Client()

            if self.username and self.password:
                self.client.username_pw_set(self.username, self.password)

            def on_connect(client, userdata, flags, rc):
                if rc == 0:
                    logger.info(f"[ExplorationPublisher] Connected to {self.broker}:{self.port}")
                    self._connected = True
                else:
                    logger.error(f"[ExplorationPublisher] Connection failed with code {rc}")
                    self._connected = False

            def on_disconnect(client, userdata, rc):
                logger.info(f"[ExplorationPublisher] Disconnected from broker (code {rc})")
                self._connected = False

            self.client.on_connect = on_connect
            self.client.on_disconnect = on_disconnect

            self.client.connect(self.broker, self.port, keepalive=60)
            self.client.loop_start()

            # Wait for connection (up to 5 seconds)
            for _ in range(50):
                if self._connected:
                    return True
                await asyncio.sleep(0.1)

            logger.error("[ExplorationPublisher] Connection timeout")
            return False

        except Exception as e:
            logger.error(f"[ExplorationPublisher] Unexpected error connecting: {e}")
            self._connected = False
            return False

    async def _connect_linux(self) -> bool:
        """Linux connection using aiomqtt"""
        try:
            client_kwargs = {
                "hostname": self.broker,
                "port": self.port
            }
            if self.username and self.password:
                client_kwargs["username"] = self.username
                client_kwargs["password"] = self.password

            self.client = Client(**client_kwargs)
            await self.client.__aenter__()
            self._connected = True
            logger.info(f"[ExplorationPublisher] Connected to {self.broker}:{self.port}")
            return True

        except Exception as e:
            logger.error(f"[ExplorationPublisher] Failed to connect: {e}")
            self._connected = False
            return False

    async def disconnect(self):
        """Disconnect from MQTT broker"""
        if not self.client or not self._connected:
            return

        try:
            if IS_WINDOWS:
                self.client.loop_stop()
                self.client.disconnect()
            else:
                await self.client.__aexit__(None, None, None)

            self._connected = False
            logger.info("[ExplorationPublisher] Disconnected from broker")
        except Exception as e:
            logger.error(f"[ExplorationPublisher] Error disconnecting: {e}")

    @property
    def is_connected(self) -> bool:
        return self._connected

    def topic(self, event: str) -> str:
        device_id = self.device_provider() or "unknown"
        return f"{self.topic_prefix}/{sanitize_device_id(device_id)}/explorer/{event}"

    async def publish(self, event: str, data: Dict[str, Any]) -> bool:
        """Publish one event; returns False when not connected or on failure"""
        if not self._connected or not self.client:
            return False

        topic = self.topic(event)
        payload = json.dumps({"event": event, "version": APP_VERSION, "data": data}, default=str)
        try:
            if IS_WINDOWS:
                result = self.client.publish(topic, payload)
                success = result.rc == mqtt.MQTT_ERR_SUCCESS
            else:
                await self.client.publish(topic, payload)
                success = True
        except Exception as e:
            logger.error(f"[ExplorationPublisher] Failed to publish {event}: {e}")
            return False

        if success:
            logger.debug(f"[ExplorationPublisher] Published {event} to {topic}")
        return success

    # =========================================================================
    # Observer hooks
    # =========================================================================

    async def on_start(self, status: SessionStatus):
        await self.publish("start", status.model_dump(mode="json"))

    async def on_new_screen(self, screen: Screen):
        await self.publish("new_screen", screen.summary())

    async def on_progress(self, progress: ProgressEvent):
        await self.publish("progress", progress.model_dump())

    async def on_log(self, entry: LogEntry):
        await self.publish("log", entry.model_dump(mode="json"))

    async def on_complete(self):
        await self.publish("complete", {})

    async def on_error(self, error: Dict[str, Any]):
        await self.publish("error", error)

    async def on_graph_snapshot(self, snapshot: GraphSnapshot):
        await self.publish("graph", snapshot.model_dump())
