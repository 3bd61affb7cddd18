"""
Visual Explorer - Exploration Observers

Event surface of a session. Observers never affect exploration: an exception
raised by one is logged and the engine carries on.
"""

import logging
from typing import Any, Dict, List

from .models import GraphSnapshot, LogEntry, ProgressEvent, Screen, SessionStatus

logger = logging.getLogger(__name__)


class ExplorationObserver:
    """Base observer; every hook is a no-op"""

    async def on_start(self, status: SessionStatus):
        pass

    async def on_new_screen(self, screen: Screen):
        pass

    async def on_progress(self, progress: ProgressEvent):
        pass

    async def on_log(self, entry: LogEntry):
        pass

    async def on_complete(self):
        pass

    async def on_error(self, error: Dict[str, Any]):
        pass

    async def on_graph_snapshot(self, snapshot: GraphSnapshot):
        pass


class CompositeObserver(ExplorationObserver):
    """Fans each event out to every registered observer"""

    def __init__(self, observers: List[ExplorationObserver] = None):
        self.observers: List[ExplorationObserver] = list(observers or [])

    def add(self, observer: ExplorationObserver):
        if observer not in self.observers:
            self.observers.append(observer)

    def remove(self, observer: ExplorationObserver):
        if observer in self.observers:
            self.observers.remove(observer)

    async def _dispatch(self, hook: str, *args):
        for observer in list(self.observers):
            try:
                await getattr(observer, hook)(*args)
            except Exception as e:
                logger.warning(f"[CompositeObserver] {type(observer).__name__}.{hook} failed: {e}")

    async def on_start(self, status: SessionStatus):
        await self._dispatch("on_start", status)

    async def on_new_screen(self, screen: Screen):
        await self._dispatch("on_new_screen", screen)

    async def on_progress(self, progress: ProgressEvent):
        await self._dispatch("on_progress", progress)

    async def on_log(self, entry: LogEntry):
        await self._dispatch("on_log", entry)

    async def on_complete(self):
        await self._dispatch("on_complete")

    async def on_error(self, error: Dict[str, Any]):
        await self._dispatch("on_error", error)

    async def on_graph_snapshot(self, snapshot: GraphSnapshot):
        await self._dispatch("on_graph_snapshot", snapshot)
