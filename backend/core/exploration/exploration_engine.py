"""
Visual Explorer - Exploration Engine

Depth-first exploration of one app:
capture -> identify -> catalog -> select -> tap -> descend -> back.

The traversal is driven by an explicit stack of frames. Each frame is one
visited screen with its ordered try-list and the navigation path that led to
it, so screens and edges are recorded in the same pre-order as the taps that
produced them.

Every device call and every delay is a suspension point. The running flag
is checked as soon as each one resumes; once it is cleared the stack unwinds
without touching the device again.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from core.adb.device_interface import DeviceInterface
from utils.error_handler import OutOfAppError
from .element_catalog import parse_elements
from .foreground import ForegroundActivity, get_foreground_activity
from .models import InteractiveElement, LogLevel, PathEntry, ProgressEvent, Screen
from .observers import ExplorationObserver
from .screen_identity import inspect_screenshot, structural_hash, visual_hash
from .session_state import SessionState

logger = logging.getLogger(__name__)


class ExplorationStopped(Exception):
    """Raised internally once the running flag has been cleared"""


@dataclass
class ExploreFrame:
    """One visited screen on the exploration stack"""
    screen: Screen
    depth: int
    path: List[PathEntry]
    candidates: List[InteractiveElement]
    index: int = 0
    # Set while the subtree behind the last tap is being explored
    awaiting_back: bool = False

    def next_candidate(self) -> Optional[InteractiveElement]:
        if self.index >= len(self.candidates):
            return None
        element = self.candidates[self.index]
        self.index += 1
        return element


@dataclass
class ExplorationResult:
    limit_reached: bool = False
    visits: int = 0
    taps: int = 0
    max_depth_seen: int = 0
    depths: List[int] = field(default_factory=list)


class ExplorationEngine:
    """
    Runs one session over a DeviceInterface

    The engine only mutates the SessionState it is given. Lifecycle
    transitions (completed, stopped, error) belong to the SessionController.
    """

    def __init__(
        self,
        device: DeviceInterface,
        state: SessionState,
        observer: Optional[ExplorationObserver] = None,
    ):
        self.device = device
        self.state = state
        self.settings = state.settings
        self.observer = observer or ExplorationObserver()
        self.result = ExplorationResult()

        self.mode = self.settings.selection_mode
        if self.mode.value != self.settings.mode:
            logger.warning(f"[ExplorationEngine] Unknown mode '{self.settings.mode}', using random selection")

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def device_id(self) -> str:
        return self.state.device_id

    @property
    def package_name(self) -> str:
        return self.state.package_name

    def _ensure_running(self):
        if not self.state.running:
            raise ExplorationStopped()

    async def _log(self, message: str, level: LogLevel = LogLevel.INFO):
        entry = self.state.logs.append(message, level)
        await self.observer.on_log(entry)

    async def _delay(self, ms: int):
        await asyncio.sleep(ms / 1000.0)
        self._ensure_running()

    async def _foreground(self) -> ForegroundActivity:
        foreground = await get_foreground_activity(self.device, self.device_id)
        self._ensure_running()
        return foreground

    async def _relaunch(self) -> ForegroundActivity:
        await self.device.launch_app(self.device_id, self.package_name)
        self._ensure_running()
        await self._delay(self.settings.relaunch_delay)
        return await self._foreground()

    # =========================================================================
    # Traversal
    # =========================================================================

    async def run(self) -> ExplorationResult:
        """
        Explore from the current screen at depth 0 with an empty path

        Returns normally when the tree is exhausted, the screen limit is hit
        or the session was stopped. Transport, parse and out-of-app errors
        propagate to the caller.
        """
        try:
            await self._explore()
        except ExplorationStopped:
            logger.info("[ExplorationEngine] Stopped, unwinding")
        return self.result

    async def _explore(self):
        root = await self._visit(path=[], depth=0)
        stack: List[ExploreFrame] = [root] if root else []

        while stack:
            self._ensure_running()
            frame = stack[-1]

            if frame.awaiting_back:
                frame.awaiting_back = False
                await self._back_to(frame)
                continue

            element = frame.next_candidate()
            if element is None:
                await self._log(f"Finished exploring screen: {frame.screen.label}")
                stack.pop()
                continue

            if self.state.budget.is_exhausted(element.element_hash):
                logger.debug(f"[ExplorationEngine] Budget exhausted for {element.class_name} {element.bounds}")
                continue

            await self._tap(element)
            frame.awaiting_back = True

            child = await self._visit(path=frame.path, depth=frame.depth + 1)
            if child:
                stack.append(child)

    async def _visit(self, path: List[PathEntry], depth: int) -> Optional[ExploreFrame]:
        """
        Observe the current screen

        Returns the frame to explore, or None for a dead end (outside the app,
        depth limit, screen limit).
        """
        self._ensure_running()
        self.result.visits += 1
        self.result.max_depth_seen = max(self.result.max_depth_seen, depth)
        self.result.depths.append(depth)

        foreground = await self._ensure_in_app()
        if foreground is None:
            return None

        ui_dump = await self.device.dump_ui_hierarchy(self.device_id)
        self._ensure_running()
        screenshot = await self.device.capture_screenshot(self.device_id)
        self._ensure_running()

        screen, elements = await self._classify(ui_dump, screenshot, foreground, depth)

        if path:
            self.state.graph.add_edge(path[-1].visual_hash, screen.visual_hash)

        if self.state.unique_screen_count >= self.settings.max_screens:
            await self._log(
                f"Reached maximum number of unique screens ({self.settings.max_screens})",
                LogLevel.SUCCESS,
            )
            self.result.limit_reached = True
            await self.observer.on_graph_snapshot(self.state.graph.snapshot())
            self.state.running = False
            return None

        if depth >= self.settings.max_depth:
            await self._log(f"Reached maximum depth ({self.settings.max_depth}) at {screen.label}")
            return None

        candidates = self.state.budget.build_try_list(elements, self.state.rng, self.mode)
        await self._log(f"Found {len(elements)} clickable elements, trying {len(candidates)}")

        return ExploreFrame(
            screen=screen,
            depth=depth,
            path=path + [PathEntry(visual_hash=screen.visual_hash, activity=screen.activity)],
            candidates=candidates,
        )

    async def _classify(self, ui_dump: str, screenshot: bytes, foreground: ForegroundActivity, depth: int):
        s_hash = structural_hash(ui_dump)
        v_hash = visual_hash(screenshot)
        width, height = inspect_screenshot(screenshot)
        catalog = parse_elements(ui_dump, s_hash, self.settings.ignore_elements)

        for kind in self.state.record_identity(s_hash, v_hash):
            logger.debug(f"[ExplorationEngine] Identity divergence ({kind}): visual={v_hash[:8]} structural={s_hash[:8]}")

        is_new = self.state.is_new_visual(v_hash)
        screen = Screen(
            structural_hash=s_hash,
            visual_hash=v_hash,
            activity=foreground.raw,
            screenshot=screenshot,
            ui_dump=ui_dump,
            element_count=catalog.element_count,
            clickable_count=catalog.clickable_count,
            depth=depth,
            is_new_visual_state=is_new,
            screen_index=self.state.unique_screen_count + 1 if is_new else None,
            width=width,
            height=height,
        )

        if is_new:
            self.state.register_screen(screen)
            await self._log(f"Found new visual state: {screen.label}", LogLevel.SUCCESS)
            await self.observer.on_new_screen(screen)
            await self.observer.on_progress(self._progress())
        else:
            await self._log(f"Found already visited visual state: {screen.label}")

        return screen, catalog.elements

    async def _tap(self, element: InteractiveElement):
        x, y = element.bounds.center
        count = self.state.budget.record_click(element.element_hash)
        await self._log(f"Clicking {element.class_name} at ({x}, {y}) [{count}/{self.state.budget.max_clicks}]")

        await self.device.tap(self.device_id, x, y)
        self.result.taps += 1
        self._ensure_running()
        await self._delay(self.settings.screen_delay)

    async def _back_to(self, frame: ExploreFrame):
        """Return from a finished subtree to the screen of frame"""
        await self.device.press_back(self.device_id)
        self._ensure_running()
        await self._delay(self.settings.back_delay)

        foreground = await self._foreground()
        if foreground.is_in_package(self.package_name):
            return

        if not self.settings.stay_in_app:
            await self._log(f"Outside {self.package_name} after going back ({foreground})", LogLevel.WARNING)
            return

        await self._log(
            f"Left the app after going back. Current activity: {foreground}. Relaunching app...",
            LogLevel.WARNING,
        )
        foreground = await self._relaunch()
        if not foreground.is_in_package(self.package_name):
            raise OutOfAppError(self.package_name, foreground.raw or None)
        await self._log(f"Successfully returned to app: {foreground}", LogLevel.SUCCESS)

    async def _ensure_in_app(self) -> Optional[ForegroundActivity]:
        """
        Entry check for a visit

        Returns the foreground activity, or None when the screen belongs to
        another package and relaunching is disabled.
        """
        foreground = await self._foreground()
        if foreground.is_in_package(self.package_name):
            await self._log(f"Current activity: {foreground}")
            return foreground

        if not self.settings.stay_in_app:
            await self._log(f"Current activity {foreground} is not part of package {self.package_name}, skipping")
            return None

        await self._log(
            f"Current activity {foreground} is outside app package {self.package_name}, returning to app",
            LogLevel.WARNING,
        )
        foreground = await self._relaunch()
        if not foreground.is_in_package(self.package_name):
            raise OutOfAppError(self.package_name, foreground.raw or None)

        await self._log(f"Successfully returned to app: {foreground}", LogLevel.SUCCESS)
        return foreground

    def _progress(self) -> ProgressEvent:
        count = self.state.unique_screen_count
        maximum = self.settings.max_screens
        return ProgressEvent(
            # Half-way values round up
            percentage=min(100, int(count * 100 / maximum + 0.5)),
            screen_count=count,
            max_screens=maximum,
        )
