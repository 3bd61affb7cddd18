"""Test device_interface — ADB command mapping and transport errors."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from core.adb.adb_connection import EXIT_MARKER, PythonADBConnection, split_exit_status
from core.adb.adb_manager import ADBManager, split_device_id
from core.adb.adb_subprocess import SubprocessADBConnection
from core.adb.device_interface import ADBDeviceInterface
from utils.error_handler import TransportError

DEVICE = "192.168.1.20:5555"
XML = "<?xml version='1.0' encoding='UTF-8' standalone='yes' ?><hierarchy rotation=\"0\"></hierarchy>"


def make_interface(connected: bool = True):
    conn = MagicMock()
    conn.available = False
    conn.connect = AsyncMock(return_value=connected)
    conn.shell = AsyncMock(return_value="")
    conn.exec_out = AsyncMock(return_value=b"\x89PNG")
    conn.close = AsyncMock()

    manager = MagicMock()
    manager.get_connection.return_value = conn
    return ADBDeviceInterface(manager), conn


class TestCommands:
    @pytest.mark.asyncio
    async def test_tap(self):
        device, conn = make_interface()
        await device.tap(DEVICE, 540, 960)
        conn.shell.assert_awaited_once_with("input tap 540 960")

    @pytest.mark.asyncio
    async def test_back(self):
        device, conn = make_interface()
        await device.press_back(DEVICE)
        conn.shell.assert_awaited_once_with("input keyevent 4")

    @pytest.mark.asyncio
    async def test_launch_uses_monkey(self):
        device, conn = make_interface()
        await device.launch_app(DEVICE, "com.example.app")
        command = conn.shell.await_args.args[0]
        assert command.startswith("monkey -p com.example.app")
        assert "android.intent.category.LAUNCHER" in command

    @pytest.mark.asyncio
    async def test_screenshot_uses_exec_out(self):
        device, conn = make_interface()
        assert await device.capture_screenshot(DEVICE) == b"\x89PNG"
        conn.exec_out.assert_awaited_once_with("screencap -p")

    @pytest.mark.asyncio
    async def test_connection_is_cached(self):
        device, conn = make_interface()
        await device.tap(DEVICE, 1, 1)
        conn.available = True
        await device.tap(DEVICE, 2, 2)
        device.manager.get_connection.assert_called_once_with(DEVICE)

    @pytest.mark.asyncio
    async def test_close(self):
        device, conn = make_interface()
        await device.tap(DEVICE, 1, 1)
        await device.close()
        conn.close.assert_awaited_once()
        assert device.devices == {}


class TestUiDump:
    @pytest.mark.asyncio
    async def test_strips_banner_and_trailer(self):
        device, conn = make_interface()
        conn.shell.side_effect = ["", f"UI hierchary dumped to: /sdcard/window_dump.xml\n{XML}\nexit"]
        assert await device.dump_ui_hierarchy(DEVICE) == XML
        assert conn.shell.await_args_list[0].args[0].startswith("rm -f ")

    @pytest.mark.asyncio
    async def test_missing_xml(self):
        device, conn = make_interface()
        conn.shell.side_effect = ["", "ERROR: could not get idle state."]
        with pytest.raises(TransportError) as exc_info:
            await device.dump_ui_hierarchy(DEVICE)
        assert exc_info.value.details["command"] == "uiautomator dump"


class TestTransportErrors:
    @pytest.mark.asyncio
    async def test_not_connected(self):
        device, _ = make_interface(connected=False)
        with pytest.raises(TransportError) as exc_info:
            await device.execute_shell(DEVICE, "getprop")
        assert exc_info.value.details["device_id"] == DEVICE

    @pytest.mark.asyncio
    async def test_shell_failure_is_wrapped(self):
        device, conn = make_interface()
        conn.shell.side_effect = RuntimeError("exit code 1")
        with pytest.raises(TransportError) as exc_info:
            await device.execute_shell(DEVICE, "input tap 1 1")
        assert exc_info.value.details["command"] == "input tap 1 1"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_screenshot_failure_is_wrapped(self):
        device, conn = make_interface()
        conn.exec_out.side_effect = TimeoutError("screencap timed out")
        with pytest.raises(TransportError):
            await device.capture_screenshot(DEVICE)


class TestManager:
    @pytest.mark.parametrize(
        "device_id, expected",
        [
            ("192.168.1.20:5555", ("192.168.1.20", 5555)),
            ("192.168.1.20:41233", ("192.168.1.20", 41233)),
            ("emulator-5554", ("emulator-5554", None)),
            ("R58M123ABC", ("R58M123ABC", None)),
        ],
    )
    def test_split_device_id(self, device_id, expected):
        assert split_device_id(device_id) == expected

    def test_port_5555_uses_python_adb(self):
        conn = ADBManager().get_connection("192.168.1.20:5555")
        assert isinstance(conn, PythonADBConnection)
        assert conn.host == "192.168.1.20"

    @pytest.mark.parametrize("device_id", ["192.168.1.20:41233", "emulator-5554"])
    def test_other_ids_use_subprocess(self, device_id):
        conn = ADBManager().get_connection(device_id)
        assert isinstance(conn, SubprocessADBConnection)
        assert conn.device_id == device_id


class TestPythonConnection:
    def test_split_exit_status(self):
        assert split_exit_status(f"hello\n{EXIT_MARKER}0") == ("hello", 0)
        assert split_exit_status(f"{EXIT_MARKER}137\n") == ("", 137)
        assert split_exit_status("no marker") == ("no marker", None)

    @pytest.mark.asyncio
    async def test_shell_raises_on_non_zero_exit(self):
        conn = PythonADBConnection("192.168.1.20")
        conn._device = MagicMock(available=True)
        conn._device.shell = AsyncMock(return_value=f"Error: no such file\n{EXIT_MARKER}1\n")
        with pytest.raises(RuntimeError, match="exited with 1"):
            await conn.shell("cat /sdcard/missing.xml")

    @pytest.mark.asyncio
    async def test_shell_output_without_marker(self):
        conn = PythonADBConnection("192.168.1.20")
        conn._device = MagicMock(available=True)
        conn._device.shell = AsyncMock(return_value=f"Physical size: 1080x1920\n{EXIT_MARKER}0\n")
        assert await conn.shell("wm size") == "Physical size: 1080x1920"
        assert conn._device.shell.await_args.args[0] == f"wm size; echo {EXIT_MARKER}$?"

    @pytest.mark.asyncio
    async def test_not_connected(self):
        with pytest.raises(ConnectionError):
            await PythonADBConnection("192.168.1.20").shell("id")
