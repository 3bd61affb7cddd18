"""
Visual Explorer - Device Interface

The contract the exploration engine uses to talk to a device, and the ADB
implementation of it. Every failure surfaces as TransportError so the engine
can treat the transport uniformly.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict

from utils.error_handler import TransportError
from .adb_manager import ADBManager
from .base_connection import BaseADBConnection
from .config import config

logger = logging.getLogger(__name__)

KEYCODE_BACK = 4


class DeviceInterface(ABC):
    """Commands, captures and input events for a single device id."""

    @abstractmethod
    async def execute_shell(self, device_id: str, command: str) -> str:
        """Run a shell command and return its text output."""

    @abstractmethod
    async def dump_ui_hierarchy(self, device_id: str) -> str:
        """Return the current uiautomator XML dump."""

    @abstractmethod
    async def capture_screenshot(self, device_id: str) -> bytes:
        """Return the current screen as PNG bytes."""

    @abstractmethod
    async def tap(self, device_id: str, x: int, y: int) -> None:
        """Tap at absolute screen coordinates."""

    @abstractmethod
    async def press_back(self, device_id: str) -> None:
        """Send a BACK key event."""

    @abstractmethod
    async def launch_app(self, device_id: str, package_name: str) -> None:
        """Bring the launcher activity of a package to the foreground."""


class ADBDeviceInterface(DeviceInterface):
    """
    DeviceInterface backed by ADB connections.

    Connections are opened lazily per device id and cached. A per-device lock
    serialises commands so a dump and a screencap never interleave.
    """

    def __init__(self, manager: ADBManager = None):
        self.manager = manager or ADBManager()
        self.devices: Dict[str, BaseADBConnection] = {}
        self._device_locks: Dict[str, asyncio.Lock] = {}
        logger.info("[ADBDeviceInterface] Initialized")

    def _get_device_lock(self, device_id: str) -> asyncio.Lock:
        if device_id not in self._device_locks:
            self._device_locks[device_id] = asyncio.Lock()
        return self._device_locks[device_id]

    async def _resolve_connection(self, device_id: str) -> BaseADBConnection:
        conn = self.devices.get(device_id)
        if conn and conn.available:
            return conn

        conn = self.manager.get_connection(device_id)
        if not await conn.connect():
            raise TransportError(f"Device not connected: {device_id}", device_id=device_id)
        self.devices[device_id] = conn
        return conn

    async def execute_shell(self, device_id: str, command: str) -> str:
        conn = await self._resolve_connection(device_id)
        async with self._get_device_lock(device_id):
            try:
                return await conn.shell(command)
            except TransportError:
                raise
            except Exception as e:
                logger.error(f"[ADBDeviceInterface] Command failed on {device_id}: {command}: {e}")
                raise TransportError(str(e), device_id=device_id, command=command) from e

    async def dump_ui_hierarchy(self, device_id: str) -> str:
        """
        Dump the UI hierarchy with uiautomator and read it back.

        The dump file is removed first so a failed dump never returns stale XML.
        """
        await self.execute_shell(device_id, f"rm -f {config.UI_DUMP_PATH}")
        dump_output = await self.execute_shell(
            device_id,
            f"uiautomator dump {config.UI_DUMP_PATH} && cat {config.UI_DUMP_PATH}",
        )

        # Strip the "UI hierchary dumped to: ..." banner and any trailing junk
        xml_start = dump_output.find("<?xml")
        if xml_start == -1:
            raise TransportError(
                f"No XML data in uiautomator output: {dump_output[:200]}",
                device_id=device_id,
                command="uiautomator dump",
            )
        xml_str = dump_output[xml_start:]
        xml_end = xml_str.find("</hierarchy>")
        if xml_end > 0:
            xml_str = xml_str[: xml_end + len("</hierarchy>")]

        logger.debug(f"[ADBDeviceInterface] UI dump: {len(xml_str)} chars")
        return xml_str

    async def capture_screenshot(self, device_id: str) -> bytes:
        conn = await self._resolve_connection(device_id)
        async with self._get_device_lock(device_id):
            try:
                data = await conn.exec_out("screencap -p")
            except Exception as e:
                logger.error(f"[ADBDeviceInterface] Screenshot failed on {device_id}: {e}")
                raise TransportError(str(e), device_id=device_id, command="screencap -p") from e

        logger.debug(f"[ADBDeviceInterface] Screenshot: {len(data)} bytes")
        return data

    async def tap(self, device_id: str, x: int, y: int) -> None:
        logger.debug(f"[ADBDeviceInterface] Tap at ({x}, {y}) on {device_id}")
        await self.execute_shell(device_id, f"input tap {x} {y}")

    async def press_back(self, device_id: str) -> None:
        logger.debug(f"[ADBDeviceInterface] BACK on {device_id}")
        await self.execute_shell(device_id, f"input keyevent {KEYCODE_BACK}")

    async def launch_app(self, device_id: str, package_name: str) -> None:
        logger.info(f"[ADBDeviceInterface] Launching app {package_name} on {device_id}")
        # monkey launches the LAUNCHER activity without knowing its name
        await self.execute_shell(
            device_id,
            f"monkey -p {package_name} -c android.intent.category.LAUNCHER 1",
        )

    async def close(self):
        """Close every cached connection."""
        for conn in list(self.devices.values()):
            await conn.close()
        self.devices.clear()
