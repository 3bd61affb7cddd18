"""MQTT publishing of exploration events."""
from .exploration_publisher import ExplorationPublisher

__all__ = ["ExplorationPublisher"]
