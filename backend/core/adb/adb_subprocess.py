"""
Subprocess-based ADB Connection.
Used for USB serials and Android 11+ wireless debugging that uses TLS.
"""

import logging
import subprocess

from .base_connection import BaseADBConnection
from .config import config

_LOGGER = logging.getLogger(__name__)


class SubprocessADBConnection(BaseADBConnection):
    """Manage ADB connection using the system adb binary.

    This connection type is required for:
    - USB-attached devices (plain serial numbers)
    - Android 11+ wireless debugging with TLS on high ports (e.g., 45441)
    """

    async def connect(self) -> bool:
        """Make sure the device is visible to the adb server.

        Connection sequence:
        1. Check if device is already listed by adb devices
        2. If not and the id looks like host:port, run adb connect {device_id}

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            _LOGGER.info(f"Testing subprocess ADB connection to {self.device_id}...")

            def _check_devices():
                result = subprocess.run(
                    ["adb", "devices"], capture_output=True, text=True, timeout=5
                )
                return result.returncode == 0, result.stdout

            success, output = await self._run_in_executor(_check_devices)

            if success and self.device_id in output:
                _LOGGER.info(f"Device {self.device_id} already connected")
                self._connected = True
                return True

            if ":" not in self.device_id:
                _LOGGER.error(f"USB device {self.device_id} not listed by adb devices")
                return False

            _LOGGER.info(f"Connecting to {self.device_id}...")

            def _connect():
                result = subprocess.run(
                    ["adb", "connect", self.device_id],
                    capture_output=True,
                    text=True,
                    timeout=config.CONNECTION_TIMEOUT,
                )
                return result.returncode == 0, result.stdout

            success, output = await self._run_in_executor(_connect)

            if success and "connected" in output.lower() and "cannot" not in output.lower():
                _LOGGER.info(f"Connected to {self.device_id}")
                self._connected = True
                return True

            _LOGGER.error(f"Connection failed: {output}")
            return False

        except FileNotFoundError:
            _LOGGER.error(
                "ADB binary not found. Install android-tools to use subprocess ADB."
            )
            return False
        except subprocess.TimeoutExpired:
            _LOGGER.error(f"Connection timeout after {config.CONNECTION_TIMEOUT}s")
            return False

    async def shell(self, command: str) -> str:
        """Execute shell command on device.

        Args:
            command: Shell command to execute

        Returns:
            Decoded, stripped stdout

        Raises:
            ConnectionError: If not connected to device
            RuntimeError: If adb reports a non-zero exit status
            TimeoutError: If the command exceeds SHELL_TIMEOUT
        """
        if not self._connected:
            raise ConnectionError(f"Not connected to device {self.device_id}")

        _LOGGER.debug(f"Executing: adb -s {self.device_id} shell {command}")

        def _run_shell():
            return subprocess.run(
                ["adb", "-s", self.device_id, "shell", command],
                capture_output=True,
                timeout=config.SHELL_TIMEOUT,
            )

        try:
            result = await self._run_in_executor(_run_shell)
        except subprocess.TimeoutExpired:
            _LOGGER.error(f"Shell command timeout after {config.SHELL_TIMEOUT}s")
            raise TimeoutError(f"Command timeout: {command}")

        output = result.stdout.decode("utf-8", errors="replace").strip() if result.stdout else ""
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip() if result.stderr else ""
            raise RuntimeError(
                f"Command '{command}' exited with {result.returncode}: {stderr or output}"
            )
        return output

    async def exec_out(self, command: str) -> bytes:
        """Run a command through adb exec-out and return raw stdout bytes."""
        if not self._connected:
            raise ConnectionError(f"Not connected to device {self.device_id}")

        def _run_exec_out():
            return subprocess.run(
                ["adb", "-s", self.device_id, "exec-out"] + command.split(),
                capture_output=True,
                timeout=config.SCREENCAP_TIMEOUT,
            )

        try:
            result = await self._run_in_executor(_run_exec_out)
        except subprocess.TimeoutExpired:
            _LOGGER.error(f"exec-out timeout after {config.SCREENCAP_TIMEOUT}s")
            raise TimeoutError(f"Command timeout: {command}")

        if result.returncode != 0:
            raise RuntimeError(f"exec-out '{command}' exited with {result.returncode}")
        return result.stdout or b""

    async def close(self):
        """Forget the connection (network devices are disconnected from the adb server)."""
        if not self._connected:
            return

        try:
            if ":" in self.device_id:
                _LOGGER.info(f"Disconnecting from {self.device_id}...")

                def _disconnect():
                    subprocess.run(
                        ["adb", "disconnect", self.device_id],
                        capture_output=True,
                        timeout=5,
                    )

                await self._run_in_executor(_disconnect)
        except (OSError, subprocess.SubprocessError) as e:
            _LOGGER.debug(f"Error disconnecting: {e}")
        finally:
            self._connected = False
