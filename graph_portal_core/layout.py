"""
Layout engine for Graph Portal.

Assigns 2-D canvas coordinates to extracted nodes and turns label-based edges
into render edges that reference node ids.

Two placement modes:
- Small graphs (<= circular_threshold nodes) go on a circle. Deterministic.
- Larger graphs run a short heuristic force simulation (repulsion between every
  pair, logarithmic attraction along edges) seeded from a numpy Generator.
"""
import math
import sys
import threading
from typing import Any, Dict, List, Optional, Sequence, Union

import networkx as nx
import numpy as np

from exception.custom_exception import InputValidationError, LayoutCancelledError
from graph_portal_core.config import DEFAULT_LAYOUT, LayoutSettings
from logger import GLOBAL_LOGGER as log

SeedLike = Union[None, int, np.random.Generator]


def graph_density(node_count: int, edge_count: int) -> float:
    """(edges / (n * (n - 1))) * 2, the figure reported in layout metadata."""
    if node_count > 1:
        return (edge_count / (node_count * (node_count - 1))) * 2
    return 0


def label_index(nodes: Sequence[Dict[str, Any]]) -> Dict[str, int]:
    """label -> position in `nodes`. The first node wins when labels repeat."""
    index: Dict[str, int] = {}
    for i, node in enumerate(nodes):
        index.setdefault(node.get("label"), i)
    return index


def circular_positions(count: int, settings: LayoutSettings = DEFAULT_LAYOUT) -> np.ndarray:
    """Node i of n at angle 2*pi*i/n around the canvas centre."""
    if count == 0:
        return np.zeros((0, 2))
    radius = min(settings.width, settings.height) / 2.5 - settings.padding
    angles = np.arange(count) / count * 2 * math.pi
    return np.column_stack(
        (
            settings.width / 2 + radius * np.cos(angles),
            settings.height / 2 + radius * np.sin(angles),
        )
    )


class ForceSimulation:
    """
    Heuristic force-directed placement.

    Velocity is rebuilt from zero every iteration (it is a force field, not
    momentum). Per-axis steps are clamped to +/- max_step and positions are kept
    inside the padded canvas.
    """

    def __init__(self, settings: LayoutSettings = DEFAULT_LAYOUT):
        self.settings = settings

    def initial_positions(self, count: int, rng: np.random.Generator) -> np.ndarray:
        s = self.settings
        span = np.array([s.width - 2 * s.padding, s.height - 2 * s.padding])
        return s.padding + rng.random((count, 2)) * span

    def repulsion(self, positions: np.ndarray) -> np.ndarray:
        # delta[i, j] points from j to i; the diagonal is zero and adds nothing
        delta = positions[:, None, :] - positions[None, :, :]
        distance = np.maximum(np.sqrt((delta ** 2).sum(axis=2)), 1.0)
        force = self.settings.repulsion / distance ** 2
        return (delta / distance[:, :, None] * force[:, :, None]).sum(axis=1)

    def attraction(self, positions: np.ndarray, sources: np.ndarray, targets: np.ndarray) -> np.ndarray:
        velocity = np.zeros_like(positions)
        if len(sources) == 0:
            return velocity
        delta = positions[targets] - positions[sources]
        distance = np.maximum(np.sqrt((delta ** 2).sum(axis=1)), 1.0)
        force = np.maximum(np.log(distance), 0.0) * self.settings.attraction
        pull = delta / distance[:, None] * force[:, None]
        np.add.at(velocity, sources, pull)
        np.subtract.at(velocity, targets, pull)
        return velocity

    def step(self, positions: np.ndarray, sources: np.ndarray, targets: np.ndarray) -> np.ndarray:
        s = self.settings
        velocity = self.repulsion(positions) + self.attraction(positions, sources, targets)
        positions = positions + np.clip(velocity, -s.max_step, s.max_step)
        min_x, min_y, max_x, max_y = s.bounds
        return np.clip(positions, [min_x, min_y], [max_x, max_y])

    def run(
        self,
        count: int,
        sources: np.ndarray,
        targets: np.ndarray,
        rng: np.random.Generator,
        cancel_event: Optional[threading.Event] = None,
    ) -> np.ndarray:
        """
        Args:
            count: number of nodes.
            sources, targets: node indices of every resolvable edge.
            rng: random source for the initial placement.
            cancel_event: checked before each iteration.
        Returns:
            np.ndarray: (count, 2) final positions.
        """
        positions = self.initial_positions(count, rng)
        for iteration in range(self.settings.iterations):
            if cancel_event is not None and cancel_event.is_set():
                log.warning("Force simulation cancelled", iteration=iteration, node_count=count)
                raise LayoutCancelledError(f"Layout cancelled at iteration {iteration}", sys)
            positions = self.step(positions, sources, targets)
        return positions


class LayoutEngine:
    """
    Positions nodes and builds render edges.

    Usage:
        engine = LayoutEngine()
        result = engine.layout(nodes, edges, seed=7)
        result["positionedNodes"][0]["position"]  # {"x": ..., "y": ...}
    """

    def __init__(self, settings: LayoutSettings = DEFAULT_LAYOUT):
        self.settings = settings
        self.simulation = ForceSimulation(settings)

    def edge_color(self, edge: Dict[str, Any]) -> str:
        """Colour carried by the edge itself, otherwise the default stroke."""
        return edge.get("color") or self.settings.edge_color

    def _resolved_indices(self, edges: Sequence[Dict[str, Any]], index: Dict[str, int]):
        sources, targets = [], []
        for edge in edges:
            source = index.get(edge.get("from"))
            target = index.get(edge.get("to"))
            if source is None or target is None:
                continue
            sources.append(source)
            targets.append(target)
        return np.array(sources, dtype=int), np.array(targets, dtype=int)

    def generate_positions(
        self,
        nodes: Sequence[Dict[str, Any]],
        edges: Sequence[Dict[str, Any]],
        seed: SeedLike = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> np.ndarray:
        """Coordinates for every node, in input order."""
        count = len(nodes)
        if count <= self.settings.circular_threshold:
            return circular_positions(count, self.settings)

        if isinstance(seed, np.random.Generator):
            rng = seed
        else:
            try:
                rng = np.random.default_rng(seed)
            except (TypeError, ValueError) as e:
                raise InputValidationError(f"Invalid seed {seed!r}: {e}")
        sources, targets = self._resolved_indices(edges, label_index(nodes))
        log.info("Running force simulation", node_count=count, edge_count=len(sources))
        return self.simulation.run(count, sources, targets, rng, cancel_event=cancel_event)

    @staticmethod
    def degrees(nodes: Sequence[Dict[str, Any]], edges: Sequence[Dict[str, Any]]) -> Dict[str, int]:
        """Input edges touching each label, dangling ones included; a self-loop counts twice."""
        graph = nx.MultiDiGraph()
        graph.add_nodes_from(node["label"] for node in nodes if node.get("label") is not None)
        for edge in edges:
            source, target = edge.get("from"), edge.get("to")
            # networkx rejects None as a node
            if source is None or target is None:
                continue
            graph.add_edge(source, target)
        return dict(graph.degree())

    def render_edges(self, nodes: Sequence[Dict[str, Any]], edges: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Edges with both ends resolved to node ids; dangling ones are dropped."""
        index = label_index(nodes)
        rendered = []
        for edge in edges:
            source = index.get(edge.get("from"))
            target = index.get(edge.get("to"))
            if source is None or target is None:
                log.debug("Dropping unresolved edge", edge_id=edge.get("id"), source=edge.get("from"), target=edge.get("to"))
                continue
            color = self.edge_color(edge)
            rendered.append({
                "id": f"e{edge.get('id')}",
                "source": str(nodes[source]["id"]),
                "target": str(nodes[target]["id"]),
                "animated": True,
                "style": {"stroke": color, "strokeWidth": self.settings.edge_width},
                "markerEnd": {"type": "arrowclosed", "color": color},
            })
        return rendered

    def layout(
        self,
        nodes: Optional[Sequence[Dict[str, Any]]],
        edges: Optional[Sequence[Dict[str, Any]]],
        seed: SeedLike = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        """
        Lays out a graph produced by the relationship extractor.

        Args:
            nodes: [{"id", "label"}]
            edges: [{"id", "from", "to"}], "from"/"to" are labels.
            seed: int or numpy Generator for the force simulation. Unused for small graphs.
            cancel_event: set it from another thread to abort a running simulation.
        Returns:
            Dict[str, Any]: {"positionedNodes", "renderEdges", "metadata"}
        Raises:
            InputValidationError: nodes or edges is missing, or the seed is invalid.
            LayoutCancelledError: cancel_event was set mid-simulation.
        """
        if nodes is None or edges is None:
            raise InputValidationError("Both nodes and edges are required")

        positions = self.generate_positions(nodes, edges, seed=seed, cancel_event=cancel_event)
        degrees = self.degrees(nodes, edges)

        positioned = []
        for node, (x, y) in zip(nodes, positions):
            positioned.append({
                **node,
                "position": {"x": float(x), "y": float(y)},
                "degree": degrees.get(node.get("label"), 0),
            })

        return {
            "positionedNodes": positioned,
            "renderEdges": self.render_edges(nodes, edges),
            "metadata": {
                "totalNodes": len(nodes),
                "totalEdges": len(edges),
                "graphDensity": graph_density(len(nodes), len(edges)),
            },
        }


def layout(
    nodes: Optional[Sequence[Dict[str, Any]]],
    edges: Optional[Sequence[Dict[str, Any]]],
    seed: SeedLike = None,
    cancel_event: Optional[threading.Event] = None,
) -> Dict[str, Any]:
    """Module-level shortcut for LayoutEngine().layout(...)."""
    return LayoutEngine().layout(nodes, edges, seed=seed, cancel_event=cancel_event)
