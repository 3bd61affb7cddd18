"""
Shared fixtures for the Visual Explorer test suite.

Provides a scripted fake device that replays a small screen graph, so
the whole exploration stack runs WITHOUT adb or a real phone.
"""

import asyncio
import io
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pytest
from PIL import Image

from core.adb.device_interface import DeviceInterface
from core.exploration.models import ExplorationSettings
from core.exploration.observers import ExplorationObserver
from core.exploration.session_controller import SessionController
from utils.error_handler import TransportError

PACKAGE = "com.example.app"
DEVICE_ID = "emulator-5554"
LAUNCHER = "launcher"
LAUNCHER_ACTIVITY = "com.android.launcher3/.Launcher"


# ---------------------------------------------------------------------------
# Screen building helpers
# ---------------------------------------------------------------------------

_PNG_CACHE: Dict[Tuple[int, int, int], bytes] = {}


def make_png(color: Tuple[int, int, int], size: Tuple[int, int] = (8, 16)) -> bytes:
    """Deterministic PNG bytes for a solid colour."""
    key = color + size
    if key not in _PNG_CACHE:
        buf = io.BytesIO()
        Image.new("RGB", size, color).save(buf, format="PNG")
        _PNG_CACHE[key] = buf.getvalue()
    return _PNG_CACHE[key]


@dataclass
class Button:
    bounds: Tuple[int, int, int, int]
    target: Optional[str] = None
    class_name: str = "android.widget.Button"
    text: str = ""
    clickable: bool = True

    @property
    def center(self) -> Tuple[int, int]:
        left, top, right, bottom = self.bounds
        return (left + right) // 2, (top + bottom) // 2


@dataclass
class FakeScreen:
    name: str
    activity: str
    color: Tuple[int, int, int]
    buttons: List[Button] = field(default_factory=list)

    def ui_dump(self) -> str:
        nodes = []
        for i, button in enumerate(self.buttons):
            left, top, right, bottom = button.bounds
            nodes.append(
                f'<node index="{i}" text="{button.text}" resource-id="" class="{button.class_name}" '
                f'package="{PACKAGE}" content-desc="" clickable="{str(button.clickable).lower()}" '
                f'bounds="[{left},{top}][{right},{bottom}]" />'
            )
        return (
            "<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>"
            '<hierarchy rotation="0">'
            f'<node index="0" text="{self.name}" resource-id="" class="android.widget.FrameLayout" '
            f'package="{PACKAGE}" content-desc="" clickable="false" bounds="[0,0][1080,1920]">'
            + "".join(nodes)
            + "</node></hierarchy>"
        )

    def screenshot(self) -> bytes:
        return make_png(self.color)


def activity(name: str) -> str:
    return f"{PACKAGE}/.{name}Activity"


# ---------------------------------------------------------------------------
# Fake device
# ---------------------------------------------------------------------------


class FakeDevice(DeviceInterface):
    """
    Replays a screen graph.

    Taps on a button with a target navigate there and push the current
    screen on a back stack. BACK pops that stack, or lands on the launcher
    when it is empty. launch_app resets to the root screen.
    """

    def __init__(self, screens: List[FakeScreen], root: str, broken_relaunch: bool = False):
        self.screens: Dict[str, FakeScreen] = {s.name: s for s in screens}
        self.screens.setdefault(LAUNCHER, FakeScreen(LAUNCHER, LAUNCHER_ACTIVITY, (1, 1, 1)))
        self.root = root
        self.current = LAUNCHER
        self.history: List[str] = []
        self.broken_relaunch = broken_relaunch

        self.taps: List[Tuple[str, int, int]] = []
        self.commands: List[str] = []
        self.launches = 0
        self.back_presses = 0
        self.visited: List[str] = []

        self.blocked = False
        self.fail_on: set = set()
        self.screenshot_override: Optional[bytes] = None

    @property
    def screen(self) -> FakeScreen:
        return self.screens[self.current]

    async def execute_shell(self, device_id: str, command: str) -> str:
        self.commands.append(command)
        if "shell" in self.fail_on:
            raise TransportError("device offline", device_id=device_id, command=command)
        if command.startswith("dumpsys window"):
            return (
                "WINDOW MANAGER WINDOWS (dumpsys window windows)\n"
                f"  mCurrentFocus=Window{{4f2a1b u0 {self.screen.activity}}}\n"
                f"  mFocusedApp=ActivityRecord{{9c1 u0 {self.screen.activity} t12}}\n"
            )
        return ""

    async def dump_ui_hierarchy(self, device_id: str) -> str:
        while self.blocked:
            await asyncio.sleep(0.005)
        if "dump" in self.fail_on:
            raise TransportError("uiautomator dump failed", device_id=device_id, command="uiautomator dump")
        self.visited.append(self.current)
        return self.screen.ui_dump()

    async def capture_screenshot(self, device_id: str) -> bytes:
        if "screenshot" in self.fail_on:
            raise TransportError("screencap failed", device_id=device_id, command="screencap -p")
        if self.screenshot_override is not None:
            return self.screenshot_override
        return self.screen.screenshot()

    async def tap(self, device_id: str, x: int, y: int) -> None:
        self.taps.append((self.current, x, y))
        for button in self.screen.buttons:
            if button.center == (x, y) and button.target:
                self.history.append(self.current)
                self.current = button.target
                return

    async def press_back(self, device_id: str) -> None:
        self.back_presses += 1
        self.current = self.history.pop() if self.history else LAUNCHER

    async def launch_app(self, device_id: str, package_name: str) -> None:
        self.launches += 1
        if "launch" in self.fail_on:
            raise TransportError("monkey failed", device_id=device_id, command="monkey")
        if self.broken_relaunch and self.launches > 1:
            return
        self.current = self.root
        self.history.clear()


class RecordingObserver(ExplorationObserver):
    """Keeps every event in arrival order."""

    def __init__(self):
        self.events: List[tuple] = []

    def of(self, kind: str) -> list:
        return [payload for name, payload in self.events if name == kind]

    async def on_start(self, status):
        self.events.append(("start", status))

    async def on_new_screen(self, screen):
        self.events.append(("new_screen", screen))

    async def on_progress(self, progress):
        self.events.append(("progress", progress))

    async def on_log(self, entry):
        self.events.append(("log", entry))

    async def on_complete(self):
        self.events.append(("complete", None))

    async def on_error(self, error):
        self.events.append(("error", error))

    async def on_graph_snapshot(self, snapshot):
        self.events.append(("graph_snapshot", snapshot))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings_factory():
    """ExplorationSettings with zero delays and deterministic ordering."""

    def _make(**overrides) -> ExplorationSettings:
        values = dict(
            screen_delay=0,
            back_delay=0,
            relaunch_delay=0,
            launch_delay=0,
            mode="breadthFirst",
            seed=7,
        )
        values.update(overrides)
        return ExplorationSettings(**values)

    return _make


@pytest.fixture
def recorder():
    return RecordingObserver()


@pytest.fixture
def looping_app():
    """A -> B -> A -> C: B leads back to A, C is a leaf."""
    return FakeDevice(
        [
            FakeScreen("A", activity("Main"), (200, 0, 0), [
                Button((0, 100, 200, 200), target="B", text="to b"),
                Button((0, 300, 200, 400), target="C", text="to c"),
            ]),
            FakeScreen("B", activity("Detail"), (0, 200, 0), [
                Button((0, 100, 200, 200), target="A", text="home"),
            ]),
            FakeScreen("C", activity("Settings"), (0, 0, 200)),
        ],
        root="A",
    )


def chain_app(length: int) -> FakeDevice:
    """S0 -> S1 -> ... -> S(length-1), one button per screen."""
    screens = []
    for i in range(length):
        buttons = [Button((0, 100, 200, 200), target=f"S{i + 1}")] if i + 1 < length else []
        screens.append(FakeScreen(f"S{i}", activity(f"Step{i}"), (10 * i, 5, 5), buttons))
    return FakeDevice(screens, root="S0")


async def run_session(device: FakeDevice, settings: ExplorationSettings, observers=None) -> SessionController:
    """Start a session and wait for it to reach a terminal phase."""
    controller = SessionController(device, observers=observers)
    await controller.start(DEVICE_ID, PACKAGE, settings)
    await controller.wait(timeout=5)
    return controller
