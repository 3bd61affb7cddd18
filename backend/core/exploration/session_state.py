"""
Visual Explorer - Session State

Everything one exploration session mutates, in a single object. The
controller builds a fresh instance on every start, so nothing leaks from
one run into the next.
"""

import logging
import random
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, List, Optional, Set

from .interaction_budget import InteractionBudget
from .models import (
    ExplorationSettings,
    LogEntry,
    LogLevel,
    Screen,
    SessionPhase,
    SessionStatus,
)
from .navigation_graph import NavigationGraph

logger = logging.getLogger(__name__)

DEFAULT_LOG_CAPACITY = 1000

# Disagreements between the two notions of "same screen"
SAME_VISUAL_NEW_STRUCTURE = "same_visual_new_structure"
SAME_STRUCTURE_NEW_VISUAL = "same_structure_new_visual"

_LOG_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LogBuffer:
    """
    Append-only ring buffer of session log entries

    Entry ids keep increasing after old entries fall off, so clients can
    poll with since_id. Each entry is mirrored to the module logger.
    """

    def __init__(self, capacity: int = DEFAULT_LOG_CAPACITY):
        self.capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._next_id = 1

    def append(self, message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        entry = LogEntry(id=self._next_id, level=level, message=message)
        self._next_id += 1
        self._entries.append(entry)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), f"[Explorer] {message}")
        return entry

    def entries(self, since_id: Optional[int] = None, limit: Optional[int] = None) -> List[LogEntry]:
        items = [e for e in self._entries if since_id is None or e.id > since_id]
        if limit is not None and limit >= 0:
            items = items[-limit:] if limit else []
        return items

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class SessionState:
    """Mutable state of one exploration run"""
    device_id: Optional[str] = None
    package_name: Optional[str] = None
    settings: ExplorationSettings = field(default_factory=ExplorationSettings)

    running: bool = False
    phase: SessionPhase = SessionPhase.IDLE
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    seen_structural: Set[str] = field(default_factory=set)
    seen_visual: Set[str] = field(default_factory=set)
    click_counts: Dict[str, int] = field(default_factory=dict)
    screens: List[Screen] = field(default_factory=list)
    screens_by_hash: Dict[str, Screen] = field(default_factory=dict)

    # visual hash -> structural hashes observed with it, and the reverse
    visual_to_structural: Dict[str, Set[str]] = field(default_factory=dict)
    structural_to_visual: Dict[str, Set[str]] = field(default_factory=dict)
    divergence: Dict[str, int] = field(
        default_factory=lambda: {SAME_VISUAL_NEW_STRUCTURE: 0, SAME_STRUCTURE_NEW_VISUAL: 0}
    )

    log_capacity: int = DEFAULT_LOG_CAPACITY
    logs: LogBuffer = field(init=False)
    graph: NavigationGraph = field(init=False)
    budget: InteractionBudget = field(init=False)
    rng: random.Random = field(init=False)

    def __post_init__(self):
        self.logs = LogBuffer(self.log_capacity)
        self.graph = NavigationGraph()
        self.budget = InteractionBudget(self.settings.max_clicks_per_element, self.click_counts)
        self.rng = random.Random(self.settings.seed)

    @property
    def unique_screen_count(self) -> int:
        return len(self.seen_visual)

    def is_new_visual(self, visual_hash: str) -> bool:
        return visual_hash not in self.seen_visual

    def record_identity(self, structural_hash: str, visual_hash: str) -> List[str]:
        """
        Track which structural and visual hashes occur together

        Returns the kinds of disagreement this observation adds. The visual
        hash stays the novelty key either way.
        """
        found = []
        structures = self.visual_to_structural.setdefault(visual_hash, set())
        visuals = self.structural_to_visual.setdefault(structural_hash, set())

        if structures and structural_hash not in structures:
            found.append(SAME_VISUAL_NEW_STRUCTURE)
        if visuals and visual_hash not in visuals:
            found.append(SAME_STRUCTURE_NEW_VISUAL)

        structures.add(structural_hash)
        visuals.add(visual_hash)
        self.seen_structural.add(structural_hash)
        for kind in found:
            self.divergence[kind] += 1
        return found

    def register_screen(self, screen: Screen) -> bool:
        """Store a newly seen visual state; returns False if already known"""
        if screen.visual_hash in self.seen_visual:
            return False
        self.seen_visual.add(screen.visual_hash)
        self.screens.append(screen)
        self.screens_by_hash[screen.visual_hash] = screen
        self.graph.add_node(screen)
        return True

    def status(self) -> SessionStatus:
        return SessionStatus(
            running=self.running,
            device_id=self.device_id,
            package_name=self.package_name,
            unique_screen_count=self.unique_screen_count,
            max_screens=self.settings.max_screens,
            phase=self.phase,
            error=self.error,
            edge_count=self.graph.edge_count,
            started_at=self.started_at,
            finished_at=self.finished_at,
            identity_divergence=dict(self.divergence),
        )
