"""Chart renderer using Pillow — draws a laid-out org graph to PNG."""

from __future__ import annotations

import math
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from .models import GraphEdge, GraphNode
from .themes import ThemePalette, get_theme


# --- Font handling ---

def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a font, falling back to default if none available."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return ImageFont.load_default()


def _load_bold_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a bold font, falling back to regular."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return _load_font(size)


def _hex_to_rgba(hex_color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """Convert hex color to RGBA tuple. Supports both 3-char and 6-char hex."""
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = hex_color[0]*2 + hex_color[1]*2 + hex_color[2]*2
    r, g, b = (int(hex_color[i:i+2], 16) for i in (0, 2, 4))
    return (r, g, b, alpha)


def _text_width(font: ImageFont.FreeTypeFont | ImageFont.ImageFont, text: str) -> float:
    bbox = font.getbbox(text)
    return bbox[2] - bbox[0]


def _fit_text(text: str, font: ImageFont.FreeTypeFont | ImageFont.ImageFont, max_width: float) -> str:
    """Truncate text with an ellipsis so it fits within max_width pixels."""
    if _text_width(font, text) <= max_width:
        return text
    while text and _text_width(font, text + "...") > max_width:
        text = text[:-1]
    return text + "..." if text else ""


def _draw_arrow(
    draw: ImageDraw.ImageDraw,
    start: tuple[float, float],
    end: tuple[float, float],
    color: str,
    arrow_size: int = 10,
):
    """Draw an arrowhead at ``end`` pointing away from ``start``."""
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.sqrt(dx * dx + dy * dy)
    if length == 0:
        return

    udx = dx / length
    udy = dy / length

    ax = end[0] - arrow_size * udx + (arrow_size / 2) * udy
    ay = end[1] - arrow_size * udy - (arrow_size / 2) * udx
    bx = end[0] - arrow_size * udx - (arrow_size / 2) * udy
    by = end[1] - arrow_size * udy + (arrow_size / 2) * udx

    draw.polygon([(end[0], end[1]), (ax, ay), (bx, by)], fill=color)


# --- Main renderer ---

class ChartRenderer:
    """Renders positioned graph nodes and edges to a PNG image."""

    PADDING = 40
    TITLE_HEIGHT = 60
    CORNER_RADIUS = 4
    LABEL_PADDING = 8

    def __init__(self, scale: float = 1.0, theme: str = "light"):
        self.scale = scale
        self.theme: ThemePalette = get_theme(theme)
        self.font_label = _load_font(int(12 * scale))
        self.font_unit = _load_bold_font(int(12 * scale))
        self.font_title = _load_bold_font(int(22 * scale))

    def render(
        self,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        title: str = "",
        output_path: Optional[str] = None,
    ) -> bytes:
        """Render the graph to PNG bytes. Optionally save to file.

        Node positions are used exactly as given (top-left corners), so a
        chart with hand-dragged nodes is drawn the way the user left it.
        """
        bounds = self._calculate_bounds(nodes)
        img_width = max(1, int(bounds["width"] * self.scale))
        img_height = max(1, int(bounds["height"] * self.scale))

        img = Image.new("RGBA", (img_width, img_height), _hex_to_rgba(self.theme.background))
        draw = ImageDraw.Draw(img)

        ox = -bounds["min_x"] + self.PADDING
        oy = -bounds["min_y"] + self.PADDING + self.TITLE_HEIGHT

        if title:
            self._draw_title(draw, title, img_width)

        # Connectors first so boxes sit on top of them
        node_map = {node.id: node for node in nodes}
        for edge in edges:
            source = node_map.get(edge.source)
            target = node_map.get(edge.target)
            if source and target:
                self._draw_connection(draw, source, target, ox, oy)

        for node in nodes:
            self._draw_node(draw, node, ox, oy)

        buf = BytesIO()
        img.save(buf, format="PNG", optimize=True)
        png_bytes = buf.getvalue()

        if output_path:
            Path(output_path).write_bytes(png_bytes)

        return png_bytes

    def _calculate_bounds(self, nodes: Sequence[GraphNode]) -> dict:
        """Bounding box of all nodes plus padding and title space."""
        if not nodes:
            return {"min_x": 0, "min_y": 0, "width": 400, "height": 300}

        min_x = min(n.position.x for n in nodes)
        min_y = min(n.position.y for n in nodes)
        max_x = max(n.position.x + n.width for n in nodes)
        max_y = max(n.position.y + n.height for n in nodes)

        return {
            "min_x": min_x,
            "min_y": min_y,
            "width": max_x - min_x + 2 * self.PADDING,
            "height": max_y - min_y + 2 * self.PADDING + self.TITLE_HEIGHT,
        }

    def _draw_title(self, draw: ImageDraw.ImageDraw, title: str, img_width: int):
        """Draw the chart title centered at the top."""
        tw = _text_width(self.font_title, title)
        x = (img_width - tw) / 2
        draw.text((x, 15 * self.scale), title, fill=self.theme.title_color, font=self.font_title)

    def _port(self, node: GraphNode, side: str, ox: float, oy: float) -> tuple[float, float]:
        """Anchor point at the middle of one side of a node box."""
        x, y = node.position.x, node.position.y
        if side == "top":
            px, py = x + node.width / 2, y
        elif side == "bottom":
            px, py = x + node.width / 2, y + node.height
        elif side == "left":
            px, py = x, y + node.height / 2
        else:
            px, py = x + node.width, y + node.height / 2
        return ((px + ox) * self.scale, (py + oy) * self.scale)

    def _draw_connection(
        self,
        draw: ImageDraw.ImageDraw,
        source: GraphNode,
        target: GraphNode,
        ox: float,
        oy: float,
    ):
        """Draw a bezier S-curve from the source's out side to the target's in side."""
        sx, sy = self._port(source, source.connector_sides.source, ox, oy)
        ex, ey = self._port(target, target.connector_sides.target, ox, oy)

        if source.connector_sides.source == "bottom":
            cp_offset = max(abs(ey - sy) * 0.4, 20 * self.scale)
            cp1x, cp1y = sx, sy + (cp_offset if ey > sy else -cp_offset)
            cp2x, cp2y = ex, ey - (cp_offset if ey > sy else -cp_offset)
        else:
            cp_offset = max(abs(ex - sx) * 0.4, 20 * self.scale)
            cp1x, cp1y = sx + (cp_offset if ex > sx else -cp_offset), sy
            cp2x, cp2y = ex - (cp_offset if ex > sx else -cp_offset), ey

        points = []
        steps = 30
        for i in range(steps + 1):
            t = i / steps
            x = (1-t)**3 * sx + 3*(1-t)**2*t * cp1x + 3*(1-t)*t**2 * cp2x + t**3 * ex
            y = (1-t)**3 * sy + 3*(1-t)**2*t * cp1y + 3*(1-t)*t**2 * cp2y + t**3 * ey
            points.append((x, y))

        color = self.theme.connection
        width = max(1, int(1.5 * self.scale))
        draw.line(points, fill=color, width=width)
        _draw_arrow(draw, points[-2], points[-1], color=color, arrow_size=int(8 * self.scale))

    def _draw_node(self, draw: ImageDraw.ImageDraw, node: GraphNode, ox: float, oy: float):
        """Draw one box with its label; search matches get a red outline."""
        x = (node.position.x + ox) * self.scale
        y = (node.position.y + oy) * self.scale
        w = node.width * self.scale
        h = node.height * self.scale

        if node.emphasis:
            outline, border = self.theme.emphasis_border, 2
        else:
            outline = self.theme.unit_border if node.is_unit else self.theme.member_border
            border = 1

        draw.rounded_rectangle(
            [x, y, x + w, y + h],
            radius=int(self.CORNER_RADIUS * self.scale),
            fill=self.theme.node_fill,
            outline=outline,
            width=max(1, int(border * self.scale)),
        )

        font = self.font_unit if node.is_unit else self.font_label
        label = _fit_text(node.label, font, w - 2 * self.LABEL_PADDING * self.scale)
        bbox = font.getbbox(label or " ")
        tx = x + (w - (bbox[2] - bbox[0])) / 2
        ty = y + (h - (bbox[3] - bbox[1])) / 2 - bbox[1]
        draw.text((tx, ty), label, fill=self.theme.node_label, font=font)
