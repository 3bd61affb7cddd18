"""
Base ADB Connection - Abstract interface for all connection types.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

_LOGGER = logging.getLogger(__name__)


class BaseADBConnection(ABC):
    """Abstract base class for all ADB connection types.

    Both connection types (PythonADB, SubprocessADB) inherit from this
    to ensure a consistent interface for the device layer.
    """

    def __init__(self, device_id: str):
        """Initialize base connection.

        Args:
            device_id: Device identifier (e.g., "192.168.1.100:5555" or a USB serial)
        """
        self.device_id = device_id
        self._connected = False

    async def _run_in_executor(self, func, *args):
        """Run a blocking function off the event loop.

        Args:
            func: Synchronous function to run
            *args: Arguments to pass to function

        Returns:
            Result from function execution
        """
        return await asyncio.to_thread(func, *args)

    @abstractmethod
    async def connect(self) -> bool:
        """Connect to device.

        Returns:
            True if connected successfully, False otherwise
        """
        pass

    @abstractmethod
    async def shell(self, command: str) -> str:
        """Execute shell command on device and return its text output.

        Raises:
            ConnectionError: If not connected to device
            RuntimeError: If the command exits non-zero
            TimeoutError: If the command does not finish in time
        """
        pass

    @abstractmethod
    async def exec_out(self, command: str) -> bytes:
        """Execute a command and return its raw binary stdout (e.g. screencap -p)."""
        pass

    @abstractmethod
    async def close(self):
        """Close connection."""
        pass

    @property
    def available(self) -> bool:
        """Check if connection is available.

        Returns:
            True if connected, False otherwise
        """
        return self._connected
