"""
Graph image export for Graph Portal.

Renders a positioned graph (as edited in the front end) to a PNG that can be
pasted into documents. Nodes are rounded boxes, edges are straight arrows that
stop at the target box.
"""
import io
import math
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from exception.custom_exception import InputValidationError
from logger import GLOBAL_LOGGER as log

Box = Tuple[float, float, float, float]


class GraphImageExporter:
    """
    Usage:
        exporter = GraphImageExporter()
        png_bytes = exporter.export_png(nodes, edges)

    nodes: [{"id", "label", "position": {"x", "y"}}]
    edges: [{"id", "from", "to"}] with labels as endpoints.
    """

    MIN_SIZE = (800, 600)
    MARGIN = 60
    NODE_HEIGHT = 36
    NODE_MIN_WIDTH = 80
    NODE_PADDING_X = 14
    ARROW_SIZE = 10

    BACKGROUND = "white"
    NODE_FILL = "#f5f7fa"
    NODE_OUTLINE = "#1a192b"
    TEXT_COLOR = "#222"
    EDGE_COLOR = "#555"

    def __init__(self, font_path: Optional[str] = None, font_size: int = 14):
        # Cyrillic labels need a TrueType font; the bundled default covers Latin only
        self.font_path = font_path or os.getenv("GRAPH_EXPORT_FONT")
        self.font = self._load_font(font_size)

    def _load_font(self, size: int):
        if self.font_path:
            try:
                return ImageFont.truetype(self.font_path, size)
            except OSError as e:
                log.warning("Export font not loadable, using default", font=self.font_path, error=str(e))
        return ImageFont.load_default()

    def _canvas(self, points: List[Tuple[float, float]]) -> Tuple[int, int, float, float]:
        """Canvas size and the offset that keeps every node inside the margin."""
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        offset_x = max(0.0, self.MARGIN - min(xs))
        offset_y = max(0.0, self.MARGIN - min(ys))
        width = max(self.MIN_SIZE[0], int(math.ceil(max(xs) + offset_x + self.MARGIN * 2)))
        height = max(self.MIN_SIZE[1], int(math.ceil(max(ys) + offset_y + self.MARGIN)))
        return width, height, offset_x, offset_y

    def _node_box(self, draw: ImageDraw.ImageDraw, label: str, x: float, y: float) -> Box:
        left, top, right, bottom = draw.textbbox((0, 0), label, font=self.font)
        box_width = max(self.NODE_MIN_WIDTH, (right - left) + 2 * self.NODE_PADDING_X)
        return (x, y, x + box_width, y + self.NODE_HEIGHT)

    @staticmethod
    def _centre(box: Box) -> Tuple[float, float]:
        return ((box[0] + box[2]) / 2, (box[1] + box[3]) / 2)

    @staticmethod
    def _boundary_point(box: Box, dx: float, dy: float) -> Tuple[float, float]:
        """Where a ray from the box centre in direction (dx, dy) leaves the box."""
        cx, cy = GraphImageExporter._centre(box)
        half_w = (box[2] - box[0]) / 2
        half_h = (box[3] - box[1]) / 2
        scale = min(
            half_w / abs(dx) if dx else math.inf,
            half_h / abs(dy) if dy else math.inf,
        )
        return (cx + dx * scale, cy + dy * scale)

    def _draw_arrow(self, draw: ImageDraw.ImageDraw, start: Tuple[float, float], end: Tuple[float, float]) -> None:
        draw.line([start, end], fill=self.EDGE_COLOR, width=2)
        angle = math.atan2(end[1] - start[1], end[0] - start[0])
        spread = math.pi / 7
        left = (end[0] - self.ARROW_SIZE * math.cos(angle - spread), end[1] - self.ARROW_SIZE * math.sin(angle - spread))
        right = (end[0] - self.ARROW_SIZE * math.cos(angle + spread), end[1] - self.ARROW_SIZE * math.sin(angle + spread))
        draw.polygon([end, left, right], fill=self.EDGE_COLOR)

    def _draw_self_loop(self, draw: ImageDraw.ImageDraw, box: Box) -> None:
        cx = (box[0] + box[2]) / 2
        loop = (cx - 12, box[1] - 22, cx + 12, box[1] + 2)
        draw.arc(loop, start=180, end=360 + 90, fill=self.EDGE_COLOR, width=2)
        self._draw_arrow(draw, (cx + 12, box[1] - 10), (cx + 6, box[1]))

    def render(self, nodes: Sequence[Dict[str, Any]], edges: Sequence[Dict[str, Any]]) -> Image.Image:
        """
        Draws the graph.

        Raises:
            InputValidationError: no nodes, or a node without a position.
        """
        if not nodes:
            raise InputValidationError("No graph to export")

        points = []
        for node in nodes:
            position = node.get("position") or {}
            if "x" not in position or "y" not in position:
                raise InputValidationError(f"Node {node.get('id')!r} has no position")
            try:
                points.append((float(position["x"]), float(position["y"])))
            except (TypeError, ValueError):
                raise InputValidationError(f"Node {node.get('id')!r} has a non-numeric position")

        width, height, offset_x, offset_y = self._canvas(points)
        image = Image.new("RGB", (width, height), self.BACKGROUND)
        draw = ImageDraw.Draw(image)

        boxes: Dict[str, Box] = {}
        for node, (x, y) in zip(nodes, points):
            label = str(node.get("label", ""))
            boxes.setdefault(label, self._node_box(draw, label, x + offset_x, y + offset_y))

        # edges first so boxes sit on top of the lines
        skipped = 0
        for edge in edges or []:
            source = boxes.get(edge.get("from"))
            target = boxes.get(edge.get("to"))
            if source is None or target is None:
                skipped += 1
                continue
            if edge.get("from") == edge.get("to"):
                self._draw_self_loop(draw, source)
                continue
            sx, sy = self._centre(source)
            tx, ty = self._centre(target)
            dx, dy = tx - sx, ty - sy
            if dx == 0 and dy == 0:
                continue
            self._draw_arrow(
                draw,
                self._boundary_point(source, dx, dy),
                self._boundary_point(target, -dx, -dy),
            )
        if skipped:
            log.warning("Skipped edges with unknown labels during export", skipped=skipped)

        for label, box in boxes.items():
            draw.rounded_rectangle(box, radius=8, fill=self.NODE_FILL, outline=self.NODE_OUTLINE, width=1)
            left, top, right, bottom = draw.textbbox((0, 0), label, font=self.font)
            cx, cy = self._centre(box)
            draw.text((cx - (right - left) / 2 - left, cy - (bottom - top) / 2 - top), label, fill=self.TEXT_COLOR, font=self.font)

        return image

    def export_png(self, nodes: Sequence[Dict[str, Any]], edges: Sequence[Dict[str, Any]]) -> bytes:
        image = self.render(nodes, edges)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        log.info("Graph image exported", node_count=len(nodes), size=image.size)
        return buffer.getvalue()
