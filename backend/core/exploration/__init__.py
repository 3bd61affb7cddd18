"""
Autonomous app exploration: screen identity, element catalog, interaction
budget, navigation graph, engine and session controller.
"""
from .models import (
    ExplorationSettings,
    GraphSnapshot,
    InteractiveElement,
    LogEntry,
    Screen,
    SelectionMode,
    SessionPhase,
    SessionStatus,
)
from .navigation_graph import NavigationGraph
from .interaction_budget import InteractionBudget
from .observers import ExplorationObserver, CompositeObserver
from .exploration_engine import ExplorationEngine
from .session_controller import SessionController

__all__ = [
    "ExplorationSettings",
    "GraphSnapshot",
    "InteractiveElement",
    "LogEntry",
    "Screen",
    "SelectionMode",
    "SessionPhase",
    "SessionStatus",
    "NavigationGraph",
    "InteractionBudget",
    "ExplorationObserver",
    "CompositeObserver",
    "ExplorationEngine",
    "SessionController",
]
