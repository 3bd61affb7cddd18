"""
Visual Explorer - Session Controller

Owns the lifecycle of exploration sessions. Only one session runs at a
time. Each start builds a fresh SessionState; the previous one stays
readable (status, logs, graph, screens) until then.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from config import defaults as app_defaults
from core.adb.device_interface import DeviceInterface
from utils.error_handler import ExplorerError, SessionConflictError, get_user_friendly_message
from .exploration_engine import ExplorationEngine, ExplorationResult
from .models import (
    ExplorationSettings,
    GraphSnapshot,
    LogEntry,
    LogLevel,
    SessionPhase,
    SessionStatus,
)
from .observers import CompositeObserver, ExplorationObserver
from .session_state import SessionState

logger = logging.getLogger(__name__)


class SessionController:
    """Start, stop and inspect exploration sessions"""

    def __init__(
        self,
        device: DeviceInterface,
        observers: Optional[List[ExplorationObserver]] = None,
        log_capacity: Optional[int] = None,
    ):
        self.device = device
        self.observer = CompositeObserver(observers)
        self.log_capacity = log_capacity or app_defaults.Defaults.LOG_BUFFER_SIZE
        self.state = SessionState(log_capacity=self.log_capacity)
        self.last_result: Optional[ExplorationResult] = None
        self._task: Optional[asyncio.Task] = None
        # Tasks of stopped sessions that are still unwinding a device call
        self._stale_tasks: Set[asyncio.Task] = set()
        logger.info("[SessionController] Initialized")

    def add_observer(self, observer: ExplorationObserver):
        self.observer.add(observer)

    def remove_observer(self, observer: ExplorationObserver):
        self.observer.remove(observer)

    @property
    def running(self) -> bool:
        return self.state.running

    async def _log(self, state: SessionState, message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        entry = state.logs.append(message, level)
        await self.observer.on_log(entry)
        return entry

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(
        self,
        device_id: str,
        package_name: str,
        settings: Optional[ExplorationSettings] = None,
    ) -> SessionStatus:
        """
        Start exploring package_name on device_id

        Returns once the session is running; exploration continues in a
        background task (see wait()).

        Raises:
            SessionConflictError: If a session is already running. Nothing
                is changed in that case.
            ValueError: If device_id or package_name is empty
        """
        if self.state.running:
            raise SessionConflictError(self.state.device_id, self.state.package_name)
        if not device_id or not package_name:
            raise ValueError("device_id and package_name are required")

        settings = settings or ExplorationSettings()
        state = SessionState(
            device_id=device_id,
            package_name=package_name,
            settings=settings,
            log_capacity=self.log_capacity,
        )
        state.running = True
        state.phase = SessionPhase.RUNNING
        state.started_at = datetime.now()
        self.state = state
        self.last_result = None

        if self._task and not self._task.done():
            self._stale_tasks.add(self._task)
            self._task.add_done_callback(self._stale_tasks.discard)

        await self.observer.on_start(state.status())
        await self._log(
            state,
            f"Starting exploration of {package_name} on {device_id} "
            f"(max {settings.max_screens} screens, depth {settings.max_depth}, mode {settings.mode})",
        )
        self._task = asyncio.create_task(self._run(state))
        return state.status()

    async def _run(self, state: SessionState):
        engine = ExplorationEngine(self.device, state, self.observer)
        try:
            await self.device.launch_app(state.device_id, state.package_name)
            if state.running:
                await asyncio.sleep(state.settings.launch_delay / 1000.0)
            if state.running:
                await engine.run()
        except ExplorerError as e:
            await self._fail(state, e, e.message, e.code)
            return
        except Exception as e:
            logger.exception(f"[SessionController] Unexpected error: {e}")
            await self._fail(state, e, str(e), "UNKNOWN_ERROR")
            return
        finally:
            # A stopped session may still be unwinding after a restart
            if self.state is state:
                self.last_result = engine.result

        if state.phase != SessionPhase.RUNNING:
            return

        if not engine.result.limit_reached:
            await self.observer.on_graph_snapshot(state.graph.snapshot())
            if state.phase != SessionPhase.RUNNING:
                return
        await self._finish(state, SessionPhase.COMPLETED)
        await self._log(
            state,
            f"Exploration completed: {state.unique_screen_count} unique screens, "
            f"{state.graph.edge_count} transitions",
            LogLevel.SUCCESS,
        )
        await self.observer.on_complete()

    async def _finish(self, state: SessionState, phase: SessionPhase):
        state.running = False
        state.phase = phase
        state.finished_at = datetime.now()

    async def _fail(self, state: SessionState, error: Exception, message: str, code: str):
        if state.phase != SessionPhase.RUNNING:
            # Stopped while the failing call was in flight
            logger.info(f"[SessionController] Ignoring error after stop: {message}")
            return
        await self._finish(state, SessionPhase.ERROR)
        state.error = message
        await self._log(state, f"Exploration failed: {message}", LogLevel.ERROR)
        await self.observer.on_error({
            "message": message,
            "code": code,
            "user_message": get_user_friendly_message(error),
        })

    async def stop(self) -> bool:
        """Stop the running session; returns False if nothing was running"""
        state = self.state
        if not state.running:
            return False

        await self._finish(state, SessionPhase.STOPPED)
        await self._log(state, "Exploration stopped by user", LogLevel.WARNING)
        await self.observer.on_complete()
        return True

    async def wait(self, timeout: Optional[float] = None) -> Optional[ExplorationResult]:
        """Wait for the background exploration task to finish"""
        if self._task is None:
            return self.last_result
        await asyncio.wait_for(asyncio.shield(self._task), timeout)
        return self.last_result

    async def shutdown(self):
        """Stop any session and cancel every unfinished task (server shutdown)"""
        await self.stop()
        pending = [t for t in [self._task, *self._stale_tasks] if t and not t.done()]
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # =========================================================================
    # Inspection
    # =========================================================================

    def status(self) -> SessionStatus:
        return self.state.status()

    def logs(self, since_id: Optional[int] = None, limit: Optional[int] = None) -> List[LogEntry]:
        return self.state.logs.entries(since_id=since_id, limit=limit)

    def graph(self) -> GraphSnapshot:
        return self.state.graph.snapshot()

    def screens(self) -> List[Dict[str, Any]]:
        return [screen.summary() for screen in self.state.screens]

    def screenshot(self, visual_hash: str) -> Optional[bytes]:
        screen = self.state.screens_by_hash.get(visual_hash)
        return screen.screenshot if screen else None

    def ui_dump(self, visual_hash: str) -> Optional[str]:
        screen = self.state.screens_by_hash.get(visual_hash)
        return screen.ui_dump if screen else None
