"""
Pure Python ADB Connection.
Uses the adb-shell library for network devices on port 5555, no adb binary needed.
"""

import asyncio
import logging
import os
from typing import Optional, Tuple

from adb_shell.adb_device_async import AdbDeviceTcpAsync
from adb_shell.auth.keygen import keygen
from adb_shell.auth.sign_pythonrsa import PythonRSASigner

from .base_connection import BaseADBConnection
from .config import config

_LOGGER = logging.getLogger(__name__)

# adb-shell has no exit status, so shell commands echo it after a marker
EXIT_MARKER = "__VE_EXIT__:"


def _load_key_pair(key_dir: str, key_name: str) -> Tuple[str, str]:
    """Read (private, public) keys, generating them on first use."""
    adb_dir = os.path.expanduser(key_dir)
    os.makedirs(adb_dir, exist_ok=True)
    private_path = os.path.join(adb_dir, key_name)

    if not os.path.isfile(private_path):
        _LOGGER.info(f"Generating ADB keys at {private_path}")
        keygen(private_path)

    with open(private_path) as f:
        private_key = f.read()
    with open(private_path + ".pub") as f:
        public_key = f.read()
    return private_key, public_key


def split_exit_status(output: str) -> Tuple[str, Optional[int]]:
    """Strip the exit marker line from shell output and return (text, status)."""
    text, sep, tail = output.rpartition(EXIT_MARKER)
    if not sep:
        return output.strip(), None
    try:
        status = int(tail.strip())
    except ValueError:
        return output.strip(), None
    return text.strip(), status


class PythonADBConnection(BaseADBConnection):
    """ADB over TCP (port 5555) using adb-shell's async device."""

    def __init__(self, host: str, port: int = 5555):
        super().__init__(f"{host}:{port}")
        self.host = host
        self.port = port
        self._device: Optional[AdbDeviceTcpAsync] = None
        self._signer: Optional[PythonRSASigner] = None
        self._lock = asyncio.Lock()

    async def _get_signer(self) -> PythonRSASigner:
        if self._signer is None:
            private_key, public_key = await self._run_in_executor(
                _load_key_pair, config.ADB_KEY_DIR, config.ADB_KEY_NAME
            )
            self._signer = PythonRSASigner(public_key, private_key)
        return self._signer

    def _require_device(self) -> AdbDeviceTcpAsync:
        if not self.available:
            raise ConnectionError(f"Not connected to device {self.device_id}")
        return self._device

    async def connect(self) -> bool:
        """Open the TCP transport and authenticate; False on any failure."""
        async with self._lock:
            try:
                signer = await self._get_signer()
                _LOGGER.info(f"Connecting to {self.device_id} via Python ADB...")
                device = AdbDeviceTcpAsync(
                    host=self.host,
                    port=self.port,
                    default_transport_timeout_s=config.TRANSPORT_TIMEOUT,
                )
                await device.connect(rsa_keys=[signer], auth_timeout_s=config.AUTH_TIMEOUT)
            except ConnectionRefusedError:
                _LOGGER.error(f"Connection refused by {self.device_id}")
                return False
            except (TimeoutError, asyncio.TimeoutError):
                _LOGGER.error(f"Connection timeout to {self.device_id}")
                return False
            except Exception as e:
                _LOGGER.error(f"ADB connection error for {self.device_id}: {e}")
                return False

            self._device = device
            self._connected = device.available
            if self._connected:
                _LOGGER.info(f"Connected to {self.device_id}")
            else:
                _LOGGER.error(f"Failed to connect to {self.device_id}")
            return self._connected

    async def shell(self, command: str) -> str:
        """Run a shell command; RuntimeError when it exits non-zero."""
        device = self._require_device()
        async with self._lock:
            _LOGGER.debug(f"Executing: {command}")
            response = await device.shell(
                f"{command}; echo {EXIT_MARKER}$?", timeout_s=config.SHELL_TIMEOUT
            )

        output, status = split_exit_status(response or "")
        if status:
            raise RuntimeError(f"Command '{command}' exited with {status}: {output[:200]}")
        return output

    async def exec_out(self, command: str) -> bytes:
        device = self._require_device()
        async with self._lock:
            _LOGGER.debug(f"Executing (exec-out): {command}")
            response = await device.exec_out(
                command, timeout_s=config.SCREENCAP_TIMEOUT, decode=False
            )
        return response or b""

    async def close(self):
        device, self._device = self._device, None
        self._connected = False
        if device is None:
            return
        try:
            await device.close()
            _LOGGER.info(f"Disconnected from {self.device_id}")
        except (OSError, asyncio.TimeoutError) as e:
            _LOGGER.debug(f"Error closing connection to {self.device_id}: {e}")

    @property
    def available(self) -> bool:
        return self._device is not None and self._device.available
