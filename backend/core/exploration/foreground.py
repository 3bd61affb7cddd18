"""
Visual Explorer - Foreground Activity

Reads the focused activity from dumpsys output. The full dump is parsed
here rather than filtered with grep on the device, so an unexpected format
yields an empty result instead of a shell error.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from core.adb.device_interface import DeviceInterface

logger = logging.getLogger(__name__)

WINDOW_COMMAND = "dumpsys window"
ACTIVITY_COMMAND = "dumpsys activity activities"

# Checked in order; the first key that yields a component wins
WINDOW_KEYS = ("mCurrentFocus", "mFocusedApp")
ACTIVITY_KEYS = ("topResumedActivity", "mResumedActivity", "ResumedActivity")


@dataclass(frozen=True)
class ForegroundActivity:
    """Focused component, e.g. package='com.app', activity='com.app.MainActivity'"""
    package: Optional[str] = None
    activity: Optional[str] = None
    raw: str = ""

    @property
    def known(self) -> bool:
        return bool(self.package)

    def is_in_package(self, package_name: str) -> bool:
        return self.package == package_name

    def __str__(self) -> str:
        return self.raw or "unknown"


def parse_component(component: str) -> ForegroundActivity:
    """
    Split "com.package/.Activity" into its parts

    Shorthand activity names are expanded against the package.
    """
    if not component or "/" not in component:
        return ForegroundActivity()

    package, activity = component.split("/", 1)
    if activity.startswith("."):
        activity = package + activity
    return ForegroundActivity(package=package or None, activity=activity or None, raw=component)


def _component_from_line(line: str) -> Optional[str]:
    # Window{4f2 u0 com.app/com.app.Main} / ActivityRecord{9a1 u0 com.app/.Main t42}
    if "{" not in line:
        return None
    body = line.split("{", 1)[1].split("}", 1)[0]
    for token in body.split():
        if "/" in token:
            return token
    return None


def parse_dumpsys(output: str, keys: Iterable[str]) -> ForegroundActivity:
    """Return the first focused component found under any of keys"""
    lines = [line.strip() for line in (output or "").splitlines()]
    for key in keys:
        for line in lines:
            if not line.startswith(key):
                continue
            if line.endswith("=null"):
                continue
            component = _component_from_line(line)
            if component:
                return parse_component(component)
    return ForegroundActivity()


async def get_foreground_activity(device: DeviceInterface, device_id: str) -> ForegroundActivity:
    """
    Determine the focused activity

    Transport failures propagate. A dump that names no activity (screen
    transitions, locked keyguard) returns an empty ForegroundActivity.
    """
    output = await device.execute_shell(device_id, WINDOW_COMMAND)
    foreground = parse_dumpsys(output, WINDOW_KEYS)
    if foreground.known:
        return foreground

    logger.debug("[Foreground] No focus in window dump, trying activity dump")
    output = await device.execute_shell(device_id, ACTIVITY_COMMAND)
    foreground = parse_dumpsys(output, ACTIVITY_KEYS)
    if not foreground.known:
        logger.debug("[Foreground] Focused activity unknown")
    return foreground
