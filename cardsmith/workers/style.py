"""Geometry and style resolution for the card template.

Everything here is a pure function of card fields and the template: corner
badge width, corner caption size, body block height, and color resolution
into paints (solid colors or the rainbow gradient).
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import numpy as np
from loguru import logger
from PIL import Image, ImageColor

from cardsmith.models.card import ColorSpec, LiteralColor, Rainbow
from cardsmith.models.template import CardTemplate, RGBA

# red -> yellow -> green -> cyan -> blue -> magenta -> red
RAINBOW_COLORS: Tuple[RGBA, ...] = (
    (255, 0, 0, 255),
    (255, 255, 0, 255),
    (0, 255, 0, 255),
    (0, 255, 255, 255),
    (0, 0, 255, 255),
    (255, 0, 255, 255),
    (255, 0, 0, 255),
)

_RGBA_FUNC_RE = re.compile(
    r"^rgba?\(\s*([\d.]+%?)\s*[, ]\s*([\d.]+%?)\s*[, ]\s*([\d.]+%?)\s*(?:[,/]\s*([\d.]+%?)\s*)?\)$",
    re.IGNORECASE,
)


# ============ Paints ============

@dataclass(frozen=True)
class SolidPaint:
    """A single RGBA color."""
    color: RGBA

    def render(self, size: Tuple[int, int]) -> Image.Image:
        return Image.new("RGBA", size, self.color)


@dataclass(frozen=True)
class LinearGradient:
    """A vertical linear gradient from y0 to y1 in surface pixels.

    Colors are interpolated per channel; rows outside [y0, y1] take the end
    stop colors.
    """
    y0: float
    y1: float
    stops: Tuple[Tuple[float, RGBA], ...]

    def row_colors(self, height: int) -> np.ndarray:
        """Color of every pixel row, shape (height, 4), uint8."""
        centers = np.arange(height, dtype=np.float64) + 0.5
        span = self.y1 - self.y0
        if span == 0:
            t = np.where(centers < self.y0, 0.0, 1.0)
        else:
            t = np.clip((centers - self.y0) / span, 0.0, 1.0)
        offsets = np.array([offset for offset, _ in self.stops], dtype=np.float64)
        colors = np.array([color for _, color in self.stops], dtype=np.float64)
        rows = np.empty((height, 4), dtype=np.float64)
        for channel in range(4):
            rows[:, channel] = np.interp(t, offsets, colors[:, channel])
        return np.clip(np.rint(rows), 0, 255).astype(np.uint8)

    def render(self, size: Tuple[int, int]) -> Image.Image:
        width, height = size
        rows = self.row_colors(height)
        pixels = np.ascontiguousarray(np.broadcast_to(rows[:, None, :], (height, width, 4)))
        return Image.fromarray(pixels)


Paint = Union[SolidPaint, LinearGradient]


# ============ Colors ============

def _channel(token: str) -> int:
    if token.endswith("%"):
        return int(round(float(token[:-1]) * 255 / 100))
    return int(round(float(token)))


def _alpha(token: str) -> int:
    if token.endswith("%"):
        value = float(token[:-1]) / 100
    else:
        value = float(token)
    return int(round(max(0.0, min(1.0, value)) * 255))


def parse_color(value: str) -> RGBA:
    """Parse a CSS color string into RGBA.

    Handles hex forms, rgb()/rgba() with a 0-1 alpha, hsl(), named colors
    and ``transparent``. Raises ValueError for anything else.
    """
    text = value.strip()
    if text.lower() == "transparent":
        return (0, 0, 0, 0)

    match = _RGBA_FUNC_RE.match(text)
    if match:
        r, g, b, a = match.groups()
        rgb = tuple(max(0, min(255, _channel(c))) for c in (r, g, b))
        return (rgb[0], rgb[1], rgb[2], _alpha(a) if a is not None else 255)

    return ImageColor.getcolor(text, "RGBA")


def vertical_gradient(template: CardTemplate, stops) -> LinearGradient:
    """A gradient spanning the full surface height."""
    return LinearGradient(y0=0.0, y1=float(template.height), stops=tuple(stops))


def rainbow_gradient(template: CardTemplate) -> LinearGradient:
    """Seven evenly spaced hue stops over the full surface height."""
    count = len(RAINBOW_COLORS) - 1
    stops = tuple((i / count, color) for i, color in enumerate(RAINBOW_COLORS))
    return vertical_gradient(template, stops)


def resolve_color(
    spec: Optional[ColorSpec],
    default: Union[str, RGBA],
    template: CardTemplate,
) -> Paint:
    """Resolve a color field into a paint.

    Unset fields use ``default``. A literal that does not parse is logged
    and replaced by the default.
    """
    if isinstance(spec, Rainbow):
        return rainbow_gradient(template)

    default_rgba = parse_color(default) if isinstance(default, str) else default
    if isinstance(spec, LiteralColor):
        try:
            return SolidPaint(parse_color(spec.value))
        except ValueError:
            logger.warning(f"Invalid color {spec.value!r}, using default")
    return SolidPaint(default_rgba)


# ============ Geometry ============

def corner_width(value: str, template: CardTemplate) -> int:
    """Width of the corner badges; grows with the length of the value."""
    return template.corner_base + len(value) * template.corner_per_char


def corner_font_size(value: str, caption: str, template: CardTemplate) -> int:
    """Pick the caption font size from the template's ordered size table."""
    table = template.caption_sizes
    default = template.caption_default_size
    if len(value) != 1 and template.caption_sizes_multi:
        table = template.caption_sizes_multi
        default = template.caption_default_size_multi

    for longer_than, size in table:
        if len(caption) > longer_than:
            return size
    return default


def body_text_block_height(line_count: int, template: CardTemplate) -> int:
    """Height of the backing rectangle behind the body text."""
    return line_count * template.body_line_height + template.body_padding


def split_lines(text: Optional[str]) -> List[str]:
    """Split multi-line card text; empty text has no lines."""
    if not text:
        return []
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
