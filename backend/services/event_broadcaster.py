"""
Event Broadcaster - streams exploration events to WebSocket clients

Keeps a circular buffer of recent events so a client that connects mid-run
can catch up before live events arrive.
"""

import json
import logging
from typing import Any, Dict, List

from core.exploration.models import GraphSnapshot, LogEntry, ProgressEvent, Screen, SessionStatus
from core.exploration.observers import ExplorationObserver

logger = logging.getLogger(__name__)


class EventBroadcaster(ExplorationObserver):
    """Exploration observer that broadcasts JSON messages to WebSockets"""

    def __init__(self, max_buffer: int = 200):
        self.clients: set = set()
        self.event_buffer: List[Dict[str, Any]] = []
        self.max_buffer = max_buffer

    async def connect(self, websocket):
        """Register an accepted WebSocket and replay the buffer to it"""
        self.clients.add(websocket)
        for event in list(self.event_buffer):
            await websocket.send_text(json.dumps(event, default=str))
        logger.info(f"[EventBroadcaster] Client connected ({len(self.clients)} total)")

    def disconnect(self, websocket):
        self.clients.discard(websocket)
        logger.info(f"[EventBroadcaster] Client disconnected ({len(self.clients)} total)")

    async def broadcast(self, event_type: str, data: Any):
        event = {"type": event_type, "data": data}
        self.event_buffer.append(event)
        if len(self.event_buffer) > self.max_buffer:
            self.event_buffer.pop(0)

        if not self.clients:
            return

        message = json.dumps(event, default=str)
        disconnected = set()
        for client in self.clients.copy():
            try:
                await client.send_text(message)
            except Exception:
                disconnected.add(client)

        # Remove disconnected clients
        self.clients -= disconnected

    async def on_start(self, status: SessionStatus):
        # Late joiners only catch up on the current session
        self.event_buffer.clear()
        await self.broadcast("start", status.model_dump(mode="json"))

    async def on_new_screen(self, screen: Screen):
        await self.broadcast("new_screen", screen.summary())

    async def on_progress(self, progress: ProgressEvent):
        await self.broadcast("progress", progress.model_dump())

    async def on_log(self, entry: LogEntry):
        await self.broadcast("log", entry.model_dump(mode="json"))

    async def on_complete(self):
        await self.broadcast("complete", {})

    async def on_error(self, error: Dict[str, Any]):
        await self.broadcast("error", error)

    async def on_graph_snapshot(self, snapshot: GraphSnapshot):
        await self.broadcast("graph", snapshot.model_dump())
