"""Card renderer - composites a card record and optional photo into card artwork.

The template is drawn as a fixed stack of layers, bottom to top:

1. white base fill
2. photo (placement + filter from the card)
3. top/bottom vignette gradients
4. body text on a dark backing block near 70% height
5. description caption, top-left and mirrored bottom-right
6. rounded card-edge border stroke
7. corner badges, top-left and point-reflected bottom-right
8. corner value text, mirrored
9. corner caption text, mirrored

Missing optional fields skip their layer; rendering never raises for bad
card data.
"""

from typing import Optional

from loguru import logger
from PIL import Image, ImageChops, ImageDraw

from cardsmith.models.card import CardRecord
from cardsmith.models.template import CardTemplate, DEFAULT_TEMPLATE
from cardsmith.workers.fonts import FontSpec, load_font, parse_font_spec
from cardsmith.workers.style import (
    SolidPaint,
    body_text_block_height,
    corner_font_size,
    corner_width,
    resolve_color,
    split_lines,
    vertical_gradient,
)
from cardsmith.workers.surface import Surface, mirror_draw

WHITE = (255, 255, 255, 255)

DEFAULT_TEXT_COLOR = "white"
DEFAULT_BORDER_COLOR = "white"
DEFAULT_BORDER_TEXT_COLOR = "black"
DEFAULT_BORDER_SMALL_TEXT_COLOR = "black"


def new_surface(template: Optional[CardTemplate] = None) -> Surface:
    """Allocate a surface sized for the template."""
    template = template or DEFAULT_TEMPLATE
    return Surface(template.width, template.height)


class CardRenderer:
    """Renders cards onto surfaces of one template revision."""

    def __init__(self, template: Optional[CardTemplate] = None):
        self.template = template or DEFAULT_TEMPLATE
        t = self.template
        self.body_font_default = FontSpec(family="serif", size=t.body_font_size)
        self.description_font = load_font(FontSpec(family="sans-serif", size=t.description_font_size, bold=True))
        self.value_font = load_font(FontSpec(family="serif", size=t.value_font_size, bold=True))

    def render(self, surface: Surface, card: CardRecord, photo: Optional[Image.Image] = None) -> None:
        """Draw the full card template onto ``surface`` in place."""
        t = self.template
        if surface.size != t.size:
            raise ValueError(
                f"Surface is {surface.width}x{surface.height}, "
                f"template {t.name} needs {t.width}x{t.height}"
            )

        surface.fill(SolidPaint(WHITE))
        self._draw_photo(surface, card, photo)
        if not card.no_gradient:
            self._draw_vignette(surface)
        self._draw_body_text(surface, card)
        cw = corner_width(card.value, t)
        self._draw_description(surface, card, cw)
        border_paint = resolve_color(card.border_color_spec, DEFAULT_BORDER_COLOR, t)
        surface.stroke_rounded_rect(t.border_radius, t.border_width, border_paint)
        self._draw_badges(surface, cw, border_paint)
        self._draw_corner_text(surface, card, cw)

    # ---- layers ----

    def _draw_photo(self, surface: Surface, card: CardRecord, photo: Optional[Image.Image]) -> None:
        if photo is None:
            return
        t = self.template
        x = card.image_x if card.image_x is not None else 0
        y = card.image_y if card.image_y is not None else 0
        width = card.image_width if card.image_width is not None else t.width
        height = card.image_height if card.image_height is not None else t.height
        if width <= 0 or height <= 0:
            logger.debug(f"Card {card.id}: photo size {width}x{height}, skipping photo layer")
            return
        surface.draw_image(photo, x, y, width, height, card.image_filter)

    def _draw_vignette(self, surface: Surface) -> None:
        t = self.template
        surface.fill_paint(vertical_gradient(t, t.bottom_gradient))
        surface.fill_paint(vertical_gradient(t, t.top_gradient))

    def _draw_body_text(self, surface: Surface, card: CardRecord) -> None:
        lines = split_lines(card.text)
        if not lines:
            return
        t = self.template

        block_height = body_text_block_height(len(lines), t)
        top = int(round(t.height * t.body_center_ratio)) - block_height // 2
        surface.fill_box((0, top, t.width, top + block_height), SolidPaint(t.body_backing))

        font = load_font(parse_font_spec(card.text_font, self.body_font_default))
        paint = resolve_color(card.text_color_spec, DEFAULT_TEXT_COLOR, t)
        center_x = t.width / 2
        first_center = top + t.body_padding / 2 + t.body_line_height / 2
        for i, line in enumerate(lines):
            surface.draw_text(
                (center_x, first_center + i * t.body_line_height),
                line,
                font,
                paint,
                anchor="mm",
            )

    def _draw_description(self, surface: Surface, card: CardRecord, cw: int) -> None:
        if not card.description:
            return
        t = self.template
        lines = [line.upper() for line in split_lines(card.description)]
        x = cw + t.description_margin
        paint = SolidPaint(t.description_color)

        def draw(layer: Surface) -> None:
            for i, line in enumerate(lines):
                y = t.description_top + i * t.description_line_height
                layer.draw_text((x, y), line, self.description_font, paint, anchor="la")

        mirror_draw(surface, draw)

    def _draw_badges(self, surface: Surface, cw: int, paint) -> None:
        t = self.template
        mask = surface.new_mask()
        ImageDraw.Draw(mask).rounded_rectangle(
            (0, 0, cw - 1, t.corner_height - 1),
            radius=t.badge_radius,
            fill=255,
            corners=(False, False, True, False),
        )
        # Bottom-right badge is the same path reflected through the center,
        # filled in surface coordinates so gradients keep their orientation.
        mirrored = mask.transpose(Image.Transpose.ROTATE_180)
        surface.fill_mask(ImageChops.lighter(mask, mirrored), paint)

    def _draw_corner_text(self, surface: Surface, card: CardRecord, cw: int) -> None:
        t = self.template
        value_paint = resolve_color(card.border_text_color_spec, DEFAULT_BORDER_TEXT_COLOR, t)
        center_x = cw / 2

        if card.value:
            mirror_draw(
                surface,
                lambda layer: layer.draw_text(
                    (center_x, t.value_center_y), card.value, self.value_font, value_paint, anchor="mm"
                ),
            )

        if card.value_description:
            size = corner_font_size(card.value, card.value_description, t)
            caption_font = load_font(FontSpec(family="serif", size=size, bold=True))
            caption_paint = resolve_color(
                card.border_small_text_color_spec, DEFAULT_BORDER_SMALL_TEXT_COLOR, t
            )
            mirror_draw(
                surface,
                lambda layer: layer.draw_text(
                    (center_x, t.caption_center_y),
                    card.value_description,
                    caption_font,
                    caption_paint,
                    anchor="mm",
                ),
            )


def render(
    surface: Surface,
    card: CardRecord,
    photo: Optional[Image.Image] = None,
    template: Optional[CardTemplate] = None,
) -> None:
    """Render ``card`` onto ``surface`` in place."""
    CardRenderer(template).render(surface, card, photo)


def render_card(
    card: CardRecord,
    photo: Optional[Image.Image] = None,
    template: Optional[CardTemplate] = None,
) -> Image.Image:
    """Render a card onto a fresh surface and return it as an RGB image."""
    renderer = CardRenderer(template)
    surface = new_surface(renderer.template)
    renderer.render(surface, card, photo)
    return surface.to_image()


def render_card_png(
    card: CardRecord,
    photo: Optional[Image.Image] = None,
    template: Optional[CardTemplate] = None,
) -> bytes:
    """Render a card and encode it as PNG."""
    renderer = CardRenderer(template)
    surface = new_surface(renderer.template)
    renderer.render(surface, card, photo)
    return surface.to_png()
