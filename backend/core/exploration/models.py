"""
Visual Explorer - Exploration Models
Pydantic models for autonomous app exploration

A session observes screens, catalogs their interactive elements, taps them
depth-first and records what it finds as a navigation graph:
- Screen: one observation (hashes, evidence, counts)
- InteractiveElement: one tappable affordance on one screen
- GraphNode / NavigationEdge: the navigation graph handed to renderers
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config import defaults as app_defaults


class SelectionMode(str, Enum):
    """How candidates are ordered inside each budget partition"""
    RANDOM = "random"
    BREADTH_FIRST = "breadthFirst"
    DEPTH_FIRST = "depthFirst"


class SessionPhase(str, Enum):
    """Session lifecycle: idle -> running -> completed | stopped | error"""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    ERROR = "error"


class LogLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    DEBUG = "debug"


class ExplorationSettings(BaseModel):
    """
    Options accepted by a start request

    Field names are snake_case; the camelCase names used by the desktop
    client (maxScreens, screenDelay, ...) are accepted as aliases.
    """
    model_config = ConfigDict(populate_by_name=True)

    max_screens: int = Field(default_factory=lambda: app_defaults.Defaults.EXPLORE_MAX_SCREENS, ge=1, alias="maxScreens", description="Stop after this many unique visual states")
    max_depth: int = Field(default_factory=lambda: app_defaults.Defaults.EXPLORE_MAX_DEPTH, ge=0, alias="maxDepth", description="Maximum navigation depth")
    screen_delay: int = Field(default_factory=lambda: app_defaults.Defaults.EXPLORE_SCREEN_DELAY_MS, ge=0, alias="screenDelay", description="Settle time after a tap (ms)")
    back_delay: Optional[int] = Field(None, ge=0, alias="backDelay", description="Settle time after BACK (ms), defaults to screen_delay")
    ignore_elements: List[str] = Field(
        default_factory=lambda: list(app_defaults.Defaults.EXPLORE_IGNORE_ELEMENTS),
        alias="ignoreElements",
        description="Class-name substrings that are never tapped",
    )
    stay_in_app: bool = Field(True, alias="stayInApp", description="Relaunch the app when it loses the foreground")
    mode: str = Field(SelectionMode.RANDOM.value, description="Candidate ordering policy")
    max_clicks_per_element: int = Field(default_factory=lambda: app_defaults.Defaults.EXPLORE_MAX_CLICKS_PER_ELEMENT, ge=1, alias="maxClicksPerElement")
    relaunch_delay: int = Field(default_factory=lambda: app_defaults.Defaults.EXPLORE_RELAUNCH_DELAY_MS, ge=0, alias="relaunchDelay", description="Settle time after a relaunch (ms)")
    launch_delay: int = Field(default_factory=lambda: app_defaults.Defaults.EXPLORE_LAUNCH_DELAY_MS, ge=0, alias="launchDelay", description="Settle time after the initial launch (ms)")
    seed: Optional[int] = Field(None, description="Seed for reproducible candidate ordering")

    @model_validator(mode="after")
    def _default_back_delay(self) -> "ExplorationSettings":
        if self.back_delay is None:
            self.back_delay = self.screen_delay
        return self

    @property
    def selection_mode(self) -> SelectionMode:
        try:
            return SelectionMode(self.mode)
        except ValueError:
            return SelectionMode.RANDOM


class Bounds(BaseModel):
    """Element bounding box in screen pixels"""
    model_config = ConfigDict(frozen=True)

    left: int
    top: int
    right: int
    bottom: int

    @property
    def center(self) -> tuple:
        return (self.left + self.right) // 2, (self.top + self.bottom) // 2


class InteractiveElement(BaseModel):
    """A tappable element on one specific screen"""
    model_config = ConfigDict(frozen=True)

    class_name: str
    bounds: Bounds
    clickable: bool = True
    element_hash: str

    # Informational only - not part of element identity
    text: str = ""
    resource_id: str = ""
    content_desc: str = ""


class Screen(BaseModel):
    """
    One observation of the device screen

    Immutable once created. The visual hash decides novelty, the structural
    hash scopes element identity.
    """
    model_config = ConfigDict(frozen=True)

    structural_hash: str
    visual_hash: str
    activity: str
    screenshot: bytes = Field(repr=False)
    ui_dump: str = Field(repr=False)
    element_count: int
    clickable_count: int
    timestamp: datetime = Field(default_factory=datetime.now)
    depth: int
    is_new_visual_state: bool
    screen_index: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def label(self) -> str:
        return short_activity_name(self.activity)

    def summary(self) -> Dict[str, Any]:
        """JSON-friendly view without the heavy evidence payloads"""
        return {
            "structural_hash": self.structural_hash,
            "visual_hash": self.visual_hash,
            "activity": self.activity,
            "label": self.label,
            "element_count": self.element_count,
            "clickable_count": self.clickable_count,
            "timestamp": self.timestamp.isoformat(),
            "depth": self.depth,
            "is_new_visual_state": self.is_new_visual_state,
            "screen_index": self.screen_index,
            "width": self.width,
            "height": self.height,
        }


class GraphNode(BaseModel):
    """A unique visual state in the navigation graph"""
    id: str
    label: str
    activity: str
    structural_hash: str
    depth: int
    screen_index: Optional[int] = None


class NavigationEdge(BaseModel):
    """A directed transition between two visual states"""
    id: str
    source: str
    target: str
    count: int = 1


class GraphSnapshot(BaseModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[NavigationEdge] = Field(default_factory=list)
    unique_screen_count: int = 0


class PathEntry(BaseModel):
    """One step of the navigation path threaded through the engine"""
    model_config = ConfigDict(frozen=True)

    visual_hash: str
    activity: str


class LogEntry(BaseModel):
    id: int
    timestamp: datetime = Field(default_factory=datetime.now)
    level: LogLevel = LogLevel.INFO
    message: str


class ProgressEvent(BaseModel):
    percentage: int
    screen_count: int
    max_screens: int


class SessionStatus(BaseModel):
    running: bool
    device_id: Optional[str] = None
    package_name: Optional[str] = None
    unique_screen_count: int = 0
    max_screens: int = 0
    phase: SessionPhase = SessionPhase.IDLE
    error: Optional[str] = None
    edge_count: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    identity_divergence: Dict[str, int] = Field(default_factory=dict)


def short_activity_name(activity: str) -> str:
    """'com.app/.ui.MainActivity' -> '.ui.MainActivity'"""
    if not activity:
        return "unknown"
    return activity.split("/")[-1]
