"""
ADB Manager with hybrid approach.
Priority:
1. Python ADB library (port 5555 over TCP)
2. Subprocess ADB (USB serials and TLS high ports, if system ADB available)
"""

import asyncio
import logging
import subprocess
from typing import Optional, Tuple

from .adb_connection import PythonADBConnection
from .adb_subprocess import SubprocessADBConnection
from .base_connection import BaseADBConnection
from .config import config

_LOGGER = logging.getLogger(__name__)


def split_device_id(device_id: str) -> Tuple[str, Optional[int]]:
    """Split "host:port" into its parts. USB serials return (serial, None)."""
    host, sep, port = device_id.rpartition(":")
    if sep and port.isdigit() and host:
        return host, int(port)
    return device_id, None


class ADBManager:
    """Chooses an ADB connection type per device id."""

    async def ensure_adb_available(self) -> Tuple[bool, str]:
        """Report which transports are usable.

        Returns:
            Tuple of (success: bool, message: str)
        """
        def _check_adb():
            try:
                result = subprocess.run(
                    ["adb", "version"], capture_output=True, timeout=2
                )
                return result.returncode == 0
            except (FileNotFoundError, subprocess.TimeoutExpired):
                return False

        if await asyncio.to_thread(_check_adb):
            _LOGGER.info("System ADB binary available (USB + TLS support)")
            return True, "hybrid_adb"

        _LOGGER.info("Only Python ADB library available (TCP port 5555 devices)")
        return True, "python_adb_only"

    def get_connection(self, device_id: str) -> BaseADBConnection:
        """Get ADB connection instance using optimal strategy.

        Args:
            device_id: "host:port" for network devices, or a USB serial

        Returns:
            BaseADBConnection instance (not yet connected)
        """
        host, port = split_device_id(device_id)

        if port == config.DEFAULT_ADB_PORT:
            _LOGGER.info(f"Port {port} detected - using Python ADB library")
            return PythonADBConnection(host, port)

        if port is None:
            _LOGGER.info(f"USB serial {device_id} - using subprocess ADB")
        else:
            _LOGGER.info(f"Port {port} detected - using subprocess ADB (TLS support)")
        return SubprocessADBConnection(device_id)
