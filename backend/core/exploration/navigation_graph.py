"""
Visual Explorer - Navigation Graph

Unique visual states (nodes) and observed transitions (edges).
"""

import logging
from typing import Dict, Optional

from .models import GraphNode, GraphSnapshot, NavigationEdge, Screen, short_activity_name

logger = logging.getLogger(__name__)


def edge_id(source: str, target: str) -> str:
    return f"{source}->{target}"


class NavigationGraph:
    """
    Directed graph keyed by visual hash

    Both insert operations are idempotent: nodes by visual hash, edges by
    (source, target). A repeated edge only bumps its count.
    """

    def __init__(self, nodes: Optional[Dict[str, GraphNode]] = None, edges: Optional[Dict[str, NavigationEdge]] = None):
        self.nodes: Dict[str, GraphNode] = nodes if nodes is not None else {}
        self.edges: Dict[str, NavigationEdge] = edges if edges is not None else {}

    def add_node(self, screen: Screen) -> bool:
        """Register a screen; returns False if its visual hash is already a node"""
        if screen.visual_hash in self.nodes:
            return False

        self.nodes[screen.visual_hash] = GraphNode(
            id=screen.visual_hash,
            label=short_activity_name(screen.activity),
            activity=screen.activity,
            structural_hash=screen.structural_hash,
            depth=screen.depth,
            screen_index=screen.screen_index,
        )
        logger.debug(f"[NavigationGraph] Node {screen.visual_hash[:8]} ({screen.label})")
        return True

    def add_edge(self, source: str, target: str) -> NavigationEdge:
        key = edge_id(source, target)
        edge = self.edges.get(key)
        if edge:
            edge.count += 1
        else:
            edge = NavigationEdge(id=key, source=source, target=target, count=1)
            self.edges[key] = edge
        logger.debug(f"[NavigationGraph] Edge {source[:8]} -> {target[:8]} (x{edge.count})")
        return edge

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(
            nodes=[node.model_copy() for node in self.nodes.values()],
            edges=[edge.model_copy() for edge in self.edges.values()],
            unique_screen_count=len(self.nodes),
        )

    def reset(self):
        self.nodes.clear()
        self.edges.clear()

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)
