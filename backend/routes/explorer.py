"""
Explorer Routes - Autonomous App Exploration

Thin HTTP/WebSocket layer over the SessionController:
- start/stop a session
- status, logs, graph and per-screen evidence
- live event stream
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from core.exploration.models import ExplorationSettings
from routes import get_deps
from utils.error_handler import handle_api_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["explorer"])


# ============================================================================
# Request Models
# ============================================================================


class StartExplorationRequest(BaseModel):
    """Request to start exploring an installed app"""
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(..., alias="deviceId", min_length=1)
    package_name: str = Field(..., alias="packageName", min_length=1)
    settings: ExplorationSettings = Field(default_factory=ExplorationSettings)


# ============================================================================
# Session Lifecycle
# ============================================================================


@router.post("/explorer/start")
async def start_exploration(request: StartExplorationRequest):
    """
    Start an exploration session

    Returns 409 while another session is running.
    """
    deps = get_deps()
    try:
        logger.info(f"[API] Starting exploration of {request.package_name} on {request.device_id}")
        status = await deps.session_controller.start(
            request.device_id, request.package_name, request.settings
        )
        return {"success": True, "status": status.model_dump(mode="json")}
    except Exception as e:
        logger.error(f"[API] Start exploration failed: {e}")
        return handle_api_error(e)


@router.post("/explorer/stop")
async def stop_exploration():
    """Stop the running session"""
    deps = get_deps()
    stopped = await deps.session_controller.stop()
    if stopped:
        logger.info("[API] Exploration stopped")
    return {"success": True, "stopped": stopped}


@router.get("/explorer/status")
async def get_status():
    deps = get_deps()
    return deps.session_controller.status().model_dump(mode="json")


@router.get("/explorer/logs")
async def get_logs(
    since_id: Optional[int] = Query(None, ge=0, description="Only entries newer than this id"),
    limit: Optional[int] = Query(None, ge=0, le=1000, description="Return at most this many entries"),
):
    """Session log entries, oldest first"""
    deps = get_deps()
    entries = deps.session_controller.logs(since_id=since_id, limit=limit)
    return {"logs": [entry.model_dump(mode="json") for entry in entries], "count": len(entries)}


# ============================================================================
# Results
# ============================================================================


@router.get("/explorer/graph")
async def get_graph():
    """Navigation graph snapshot: nodes, edges, unique_screen_count"""
    deps = get_deps()
    return deps.session_controller.graph().model_dump()


@router.get("/explorer/screens")
async def list_screens():
    deps = get_deps()
    screens = deps.session_controller.screens()
    return {"screens": screens, "count": len(screens)}


@router.get("/explorer/screens/{visual_hash}/screenshot")
async def get_screenshot(visual_hash: str):
    deps = get_deps()
    data = deps.session_controller.screenshot(visual_hash)
    if data is None:
        raise HTTPException(status_code=404, detail=f"Screen not found: {visual_hash}")
    return Response(content=data, media_type="image/png")


@router.get("/explorer/screens/{visual_hash}/ui-dump")
async def get_ui_dump(visual_hash: str):
    deps = get_deps()
    xml_text = deps.session_controller.ui_dump(visual_hash)
    if xml_text is None:
        raise HTTPException(status_code=404, detail=f"Screen not found: {visual_hash}")
    return Response(content=xml_text, media_type="application/xml")


# ============================================================================
# Live Events
# ============================================================================


@router.websocket("/ws/explorer")
async def explorer_events(websocket: WebSocket):
    """
    WebSocket stream of exploration events

    Message format:
    {
        "type": "start" | "new_screen" | "progress" | "log" | "complete" | "error" | "graph",
        "data": {...}
    }
    """
    deps = get_deps()
    broadcaster = deps.event_broadcaster

    await websocket.accept()
    logger.info("[WS-Explorer] Client connected")

    try:
        await broadcaster.connect(websocket)

        while True:
            try:
                message = await asyncio.wait_for(websocket.receive_text(), timeout=30.0)
                if message == "ping":
                    await websocket.send_json({"type": "pong"})
            except asyncio.TimeoutError:
                # Keepalive
                await websocket.send_json({"type": "ping"})

    except WebSocketDisconnect:
        logger.info("[WS-Explorer] Client disconnected")
    except Exception as e:
        logger.error(f"[WS-Explorer] Error: {e}")
    finally:
        broadcaster.disconnect(websocket)
