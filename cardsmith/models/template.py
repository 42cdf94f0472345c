"""Card template revisions.

A template fixes the surface size and every layout constant the renderer
uses. Two revisions exist:

- classic: 800x1200, wide corner badges
- compact: 732x1039, narrower badges and a caption size table that also
  depends on whether the corner value is a single character
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from cardsmith.exceptions import UnknownTemplateError

RGBA = Tuple[int, int, int, int]
GradientStop = Tuple[float, RGBA]
# Ordered (caption longer than N characters, font size) rows, checked top down
SizeTable = Tuple[Tuple[int, int], ...]


@dataclass(frozen=True)
class CardTemplate:
    """Layout constants for one template revision."""

    name: str
    width: int
    height: int

    # Corner badges: width = corner_base + len(value) * corner_per_char
    corner_base: int
    corner_per_char: int
    corner_height: int
    badge_radius: int

    # Card edge stroke
    border_radius: int
    border_width: int

    # Corner text
    value_font_size: int
    value_center_y: int
    caption_center_y: int
    caption_sizes: SizeTable
    caption_default_size: int
    # Used instead of caption_sizes when len(value) > 1 (empty: same table)
    caption_sizes_multi: SizeTable = ()
    caption_default_size_multi: int = 0

    # Body text block
    body_font_size: int = 44
    body_line_height: int = 56
    body_padding: int = 24
    body_center_ratio: float = 0.7
    body_backing: RGBA = (0, 0, 0, 191)

    # Description caption
    description_font_size: int = 22
    description_line_height: int = 28
    description_margin: int = 16
    description_top: int = 24
    description_color: RGBA = (255, 255, 255, 255)

    # Vignette gradients (offsets are fractions of surface height)
    top_gradient: Tuple[GradientStop, ...] = ()
    bottom_gradient: Tuple[GradientStop, ...] = ()

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


CLASSIC = CardTemplate(
    name="classic",
    width=800,
    height=1200,
    corner_base=90,
    corner_per_char=60,
    corner_height=220,
    badge_radius=40,
    border_radius=40,
    border_width=40,
    value_font_size=110,
    value_center_y=95,
    caption_center_y=180,
    caption_sizes=((10, 20), (7, 26), (5, 32)),
    caption_default_size=38,
    body_font_size=44,
    body_line_height=56,
    body_padding=24,
    description_font_size=22,
    description_line_height=28,
    description_margin=16,
    description_top=24,
    top_gradient=((0.0, (0, 0, 0, 153)), (0.4, (0, 0, 0, 0))),
    bottom_gradient=((0.6, (0, 0, 0, 0)), (1.0, (0, 0, 0, 153))),
)

COMPACT = CardTemplate(
    name="compact",
    width=732,
    height=1039,
    corner_base=80,
    corner_per_char=50,
    corner_height=190,
    badge_radius=36,
    border_radius=36,
    border_width=36,
    value_font_size=96,
    value_center_y=82,
    caption_center_y=156,
    caption_sizes=((10, 18), (7, 24), (5, 30)),
    caption_default_size=36,
    caption_sizes_multi=((10, 16), (7, 20), (5, 24)),
    caption_default_size_multi=28,
    body_font_size=40,
    body_line_height=50,
    body_padding=20,
    description_font_size=20,
    description_line_height=26,
    description_margin=14,
    description_top=20,
    top_gradient=((0.0, (0, 0, 0, 179)), (0.5, (0, 0, 0, 0))),
    bottom_gradient=((0.5, (0, 0, 0, 0)), (1.0, (0, 0, 0, 179))),
)

TEMPLATES: Dict[str, CardTemplate] = {
    CLASSIC.name: CLASSIC,
    COMPACT.name: COMPACT,
}

DEFAULT_TEMPLATE = CLASSIC


def get_template(name: str) -> CardTemplate:
    """Look up a template revision by name."""
    try:
        return TEMPLATES[name.strip().lower()]
    except KeyError:
        raise UnknownTemplateError(name) from None
