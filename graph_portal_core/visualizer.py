"""
Visual payload builder for Graph Portal.

Wraps LayoutEngine output in the node/edge shape consumed by the ReactFlow
front end: string ids, a custom node type, and connection counts in `data`.
"""
import threading
from typing import Any, Dict, List, Optional, Sequence

from graph_portal_core.layout import LayoutEngine, SeedLike


class GraphVisualizer:
    """
    Usage:
        visualizer = GraphVisualizer()
        payload = visualizer.generate_visual(nodes, edges)
    """
    NODE_TYPE = "customNode"
    LAYOUT_NAME = "force-directed"
    THEME = "light"

    def __init__(self, engine: Optional[LayoutEngine] = None):
        self.engine = engine or LayoutEngine()

    def flow_nodes(self, positioned_nodes: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            {
                "id": str(node["id"]),
                "type": self.NODE_TYPE,
                "position": node["position"],
                "data": {"label": node["label"], "connections": node["degree"]},
            }
            for node in positioned_nodes
        ]

    def generate_visual(
        self,
        nodes: Optional[Sequence[Dict[str, Any]]],
        edges: Optional[Sequence[Dict[str, Any]]],
        seed: SeedLike = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        """
        Args:
            nodes, edges: extractor output.
            seed: forwarded to the force simulation.
            cancel_event: forwarded to the force simulation.
        Returns:
            Dict[str, Any]: {"nodes", "edges", "layout", "theme", "metadata"}
        """
        result = self.engine.layout(nodes, edges, seed=seed, cancel_event=cancel_event)
        return {
            "nodes": self.flow_nodes(result["positionedNodes"]),
            "edges": result["renderEdges"],
            "layout": self.LAYOUT_NAME,
            "theme": self.THEME,
            "metadata": result["metadata"],
        }
