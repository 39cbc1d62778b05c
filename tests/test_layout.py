"""
Unit tests for the layout engine: circular placement, force simulation,
degrees, render edges and cancellation.
"""
import math
import threading

import numpy as np
import pytest

from exception.custom_exception import InputValidationError, LayoutCancelledError
from graph_portal_core.config import LayoutSettings
from graph_portal_core.layout import (
    ForceSimulation,
    LayoutEngine,
    circular_positions,
    graph_density,
    layout,
)

LABELS_12 = [f"n{i}" for i in range(12)]
RING_12 = [(LABELS_12[i], LABELS_12[(i + 1) % 12]) for i in range(12)]


def make_graph(labels, pairs):
    """Extractor-shaped nodes/edges from labels and (from, to) pairs."""
    nodes = [{"id": i, "label": label} for i, label in enumerate(labels, start=1)]
    edges = [{"id": i, "from": a, "to": b} for i, (a, b) in enumerate(pairs, start=1)]
    return nodes, edges


def within_bounds(result, settings=LayoutSettings()):
    min_x, min_y, max_x, max_y = settings.bounds
    return all(
        min_x <= n["position"]["x"] <= max_x and min_y <= n["position"]["y"] <= max_y
        for n in result["positionedNodes"]
    )


class TestCircularLayout:
    def test_three_nodes_at_120_degrees(self, engine):
        nodes, edges = make_graph(["a", "b", "c"], [("a", "b")])
        result = engine.layout(nodes, edges)
        radius = min(800, 600) / 2.5 - 50

        angles = []
        for node in result["positionedNodes"]:
            dx = node["position"]["x"] - 400
            dy = node["position"]["y"] - 300
            assert math.hypot(dx, dy) == pytest.approx(radius)
            angles.append(math.degrees(math.atan2(dy, dx)) % 360)

        assert angles == pytest.approx([0.0, 120.0, 240.0])

    def test_first_node_on_positive_x_axis(self):
        positions = circular_positions(4)
        assert positions[0] == pytest.approx([590.0, 300.0])
        assert positions[1] == pytest.approx([400.0, 490.0])

    def test_deterministic(self, engine):
        nodes, edges = make_graph(list("abcdefgh"), [("a", "b"), ("c", "d")])
        first = engine.layout(nodes, edges)
        second = engine.layout(nodes, edges)
        assert first["positionedNodes"] == second["positionedNodes"]
        assert within_bounds(first)

    def test_single_node_centre_offset(self, engine):
        result = engine.layout([{"id": 1, "label": "solo"}], [])
        assert result["positionedNodes"][0]["position"] == {"x": 590.0, "y": 300.0}
        assert result["positionedNodes"][0]["degree"] == 0


class TestForceLayout:
    def test_seeded_runs_are_identical(self, engine):
        nodes, edges = make_graph(LABELS_12, RING_12)
        first = engine.layout(nodes, edges, seed=42)
        second = engine.layout(nodes, edges, seed=42)
        assert first["positionedNodes"] == second["positionedNodes"]

    def test_generator_accepted(self, engine):
        nodes, edges = make_graph(LABELS_12, RING_12)
        first = engine.layout(nodes, edges, seed=np.random.default_rng(3))
        second = engine.layout(nodes, edges, seed=3)
        assert first["positionedNodes"] == second["positionedNodes"]

    @pytest.mark.parametrize("seed", [0, 1, 7, 123])
    def test_positions_within_bounds(self, engine, seed):
        nodes, edges = make_graph(LABELS_12, RING_12 + [("n0", "n5"), ("n3", "n3")])
        assert within_bounds(engine.layout(nodes, edges, seed=seed))

    def test_crowded_nodes_stay_in_bounds(self):
        labels = [f"v{i}" for i in range(40)]
        pairs = [(labels[0], label) for label in labels[1:]]
        nodes, edges = make_graph(labels, pairs)
        assert within_bounds(layout(nodes, edges, seed=5))

    def test_repulsion_pushes_pair_apart(self):
        sim = ForceSimulation()
        positions = np.array([[100.0, 100.0], [103.0, 104.0]])
        velocity = sim.repulsion(positions)
        # distance 5, force 30/25 along (-3, -4)/5 for the first node
        assert velocity[0] == pytest.approx([-0.72, -0.96])
        assert velocity[1] == pytest.approx([0.72, 0.96])

    def test_attraction_is_logarithmic(self):
        sim = ForceSimulation()
        positions = np.array([[100.0, 100.0], [100.0 + math.e ** 2, 100.0]])
        velocity = sim.attraction(positions, np.array([0]), np.array([1]))
        assert velocity[0] == pytest.approx([0.6, 0.0])
        assert velocity[1] == pytest.approx([-0.6, 0.0])

    def test_attraction_ignores_close_pairs(self):
        sim = ForceSimulation()
        positions = np.array([[100.0, 100.0], [100.5, 100.0]])
        velocity = sim.attraction(positions, np.array([0]), np.array([1]))
        assert velocity == pytest.approx(np.zeros((2, 2)))

    def test_step_is_clamped(self):
        settings = LayoutSettings(repulsion=1e6)
        sim = ForceSimulation(settings)
        positions = np.array([[300.0, 300.0], [302.0, 300.0]])
        moved = sim.step(positions, np.array([], dtype=int), np.array([], dtype=int))
        assert moved[0] == pytest.approx([290.0, 300.0])
        assert moved[1] == pytest.approx([312.0, 300.0])


class TestPostProcessing:
    def test_degree_counts_self_loops_twice(self, engine):
        nodes, edges = make_graph(["a", "b", "c"], [("a", "b"), ("a", "a"), ("b", "a")])
        result = engine.layout(nodes, edges)
        degrees = {n["label"]: n["degree"] for n in result["positionedNodes"]}
        assert degrees == {"a": 4, "b": 2, "c": 0}

    def test_degree_matches_edge_list_for_large_graph(self, engine):
        pairs = RING_12 + [("n0", "n0"), ("n1", "n7"), ("n1", "n7")]
        nodes, edges = make_graph(LABELS_12, pairs)
        result = engine.layout(nodes, edges, seed=11)
        for node in result["positionedNodes"]:
            expected = sum((e["from"] == node["label"]) + (e["to"] == node["label"]) for e in edges)
            assert node["degree"] == expected

    def test_render_edges_shape(self, engine):
        nodes, edges = make_graph(["a", "b"], [("a", "b")])
        result = engine.layout(nodes, edges)
        assert result["renderEdges"] == [{
            "id": "e1",
            "source": "1",
            "target": "2",
            "animated": True,
            "style": {"stroke": "#555", "strokeWidth": 2},
            "markerEnd": {"type": "arrowclosed", "color": "#555"},
        }]

    def test_edge_color_override(self, engine):
        nodes, _ = make_graph(["a", "b"], [])
        edges = [{"id": 1, "from": "a", "to": "b", "color": "#e53935"}]
        rendered = engine.layout(nodes, edges)["renderEdges"][0]
        assert rendered["style"]["stroke"] == "#e53935"
        assert rendered["markerEnd"]["color"] == "#e53935"

    def test_dangling_edges_dropped(self, engine):
        nodes, edges = make_graph(["a", "b"], [("a", "b"), ("a", "ghost"), ("ghost", "b")])
        result = engine.layout(nodes, edges)
        assert [e["id"] for e in result["renderEdges"]] == ["e1"]
        assert result["metadata"]["totalEdges"] == 3

    def test_degree_counts_dangling_edges(self, engine):
        nodes, edges = make_graph(["a", "b"], [("a", "b"), ("a", "ghost")])
        result = engine.layout(nodes, edges)
        degrees = {n["label"]: n["degree"] for n in result["positionedNodes"]}
        assert degrees == {"a": 2, "b": 1}
        assert set(n["label"] for n in result["positionedNodes"]) == {"a", "b"}

    def test_degree_counts_dangling_edges_in_force_mode(self, engine):
        pairs = RING_12 + [("n0", "missing"), ("missing", "n0"), ("n3", "gone")]
        nodes, edges = make_graph(LABELS_12, pairs)
        result = engine.layout(nodes, edges, seed=2)
        for node in result["positionedNodes"]:
            expected = sum((e["from"] == node["label"]) + (e["to"] == node["label"]) for e in edges)
            assert node["degree"] == expected

    def test_dangling_edges_dropped_in_force_mode(self, engine):
        nodes, edges = make_graph(LABELS_12, RING_12 + [("n0", "missing")])
        result = engine.layout(nodes, edges, seed=1)
        assert len(result["renderEdges"]) == 12
        assert within_bounds(result)

    def test_metadata(self, engine):
        nodes, edges = make_graph(["a", "b", "c"], [("a", "b"), ("b", "c")])
        metadata = engine.layout(nodes, edges)["metadata"]
        assert metadata == {"totalNodes": 3, "totalEdges": 2, "graphDensity": pytest.approx(2 / 3)}

    def test_graph_density_degenerate(self):
        assert graph_density(1, 3) == 0
        assert graph_density(0, 0) == 0

    def test_original_node_fields_kept(self, engine):
        result = engine.layout([{"id": 1, "label": "a", "group": "x"}], [])
        node = result["positionedNodes"][0]
        assert node["group"] == "x"
        assert set(node) == {"id", "label", "group", "position", "degree"}


class TestInputHandling:
    def test_empty_graph(self, engine):
        result = engine.layout([], [])
        assert result["positionedNodes"] == []
        assert result["renderEdges"] == []
        assert result["metadata"] == {"totalNodes": 0, "totalEdges": 0, "graphDensity": 0}

    @pytest.mark.parametrize("nodes, edges", [(None, []), ([], None), (None, None)])
    def test_missing_input(self, engine, nodes, edges):
        with pytest.raises(InputValidationError):
            engine.layout(nodes, edges)

    def test_negative_seed_rejected(self, engine):
        nodes, edges = make_graph(LABELS_12, RING_12)
        with pytest.raises(InputValidationError):
            engine.layout(nodes, edges, seed=-1)


class TestCancellation:
    def test_pre_set_event_cancels_force_layout(self, engine):
        nodes, edges = make_graph(LABELS_12, RING_12)
        event = threading.Event()
        event.set()
        with pytest.raises(LayoutCancelledError):
            engine.layout(nodes, edges, seed=1, cancel_event=event)

    def test_cancel_mid_simulation(self):
        event = threading.Event()
        calls = []

        class CountingSimulation(ForceSimulation):
            def step(self, positions, sources, targets):
                calls.append(1)
                if len(calls) == 3:
                    event.set()
                return super().step(positions, sources, targets)

        engine = LayoutEngine()
        engine.simulation = CountingSimulation()
        nodes, edges = make_graph(LABELS_12, RING_12)
        with pytest.raises(LayoutCancelledError):
            engine.layout(nodes, edges, seed=1, cancel_event=event)
        assert len(calls) == 3

    def test_small_graph_ignores_event(self, engine):
        nodes, edges = make_graph(["a", "b"], [("a", "b")])
        event = threading.Event()
        event.set()
        assert len(engine.layout(nodes, edges, cancel_event=event)["positionedNodes"]) == 2
