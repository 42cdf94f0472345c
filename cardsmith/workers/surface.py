"""Fixed-size raster drawing surface.

Thin layer over a Pillow RGBA image that draws every shape through a
coverage mask and a paint, so solid colors and gradients go through the same
path. All drawing is deterministic for identical inputs.
"""

import io
from typing import Callable, Optional, Tuple

import numpy as np
from PIL import Image, ImageChops, ImageDraw

from cardsmith.exceptions import EncodeFailureError
from cardsmith.workers.image_filter import apply_filter
from cardsmith.workers.style import Paint

Box = Tuple[int, int, int, int]


class Surface:
    """An RGBA raster target of fixed size."""

    def __init__(self, width: int, height: int, transparent: bool = False):
        self.width = width
        self.height = height
        background = (0, 0, 0, 0) if transparent else (255, 255, 255, 255)
        self.image = Image.new("RGBA", (width, height), background)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def blank_layer(self) -> "Surface":
        """A transparent surface of the same size."""
        return Surface(self.width, self.height, transparent=True)

    def new_mask(self) -> Image.Image:
        return Image.new("L", self.size, 0)

    # ---- compositing ----

    def composite(self, layer: Image.Image) -> None:
        """Alpha-composite a full-size RGBA layer over the surface."""
        self.image.alpha_composite(layer)

    def fill(self, paint: Paint) -> None:
        """Replace every pixel with the paint (no blending)."""
        self.image = paint.render(self.size)

    def fill_mask(self, mask: Image.Image, paint: Paint) -> None:
        """Blend the paint over the surface where the mask covers it."""
        layer = paint.render(self.size)
        alpha = ImageChops.multiply(layer.getchannel("A"), mask)
        layer.putalpha(alpha)
        self.composite(layer)

    def fill_paint(self, paint: Paint) -> None:
        """Blend the paint over the whole surface."""
        self.composite(paint.render(self.size))

    def fill_box(self, box: Box, paint: Paint) -> None:
        """Blend the paint over a box given as (left, top, right, bottom), right/bottom exclusive."""
        left, top, right, bottom = box
        if right <= left or bottom <= top:
            return
        mask = self.new_mask()
        ImageDraw.Draw(mask).rectangle((left, top, right - 1, bottom - 1), fill=255)
        self.fill_mask(mask, paint)

    # ---- shapes ----

    def rounded_rect_stroke_mask(self, radius: float, line_width: float) -> Image.Image:
        """Coverage of a stroke centered on the surface edge with rounded corners.

        Coverage is computed from the distance of each pixel center to the
        path, so the mask is exactly point-symmetric about the surface center.
        """
        half_w = self.width / 2.0
        half_h = self.height / 2.0
        radius = max(0.0, min(radius, half_w, half_h))

        xs = np.abs(np.arange(self.width, dtype=np.float64) + 0.5 - half_w)[None, :]
        ys = np.abs(np.arange(self.height, dtype=np.float64) + 0.5 - half_h)[:, None]
        qx = xs - (half_w - radius)
        qy = ys - (half_h - radius)
        outside = np.hypot(np.maximum(qx, 0.0), np.maximum(qy, 0.0))
        inside = np.minimum(np.maximum(qx, qy), 0.0)
        distance = outside + inside - radius

        coverage = np.clip(line_width / 2.0 - np.abs(distance) + 0.5, 0.0, 1.0)
        return Image.fromarray(np.rint(coverage * 255.0).astype(np.uint8))

    def stroke_rounded_rect(self, radius: float, line_width: float, paint: Paint) -> None:
        self.fill_mask(self.rounded_rect_stroke_mask(radius, line_width), paint)

    # ---- images and text ----

    def draw_image(
        self,
        image: Image.Image,
        x: float,
        y: float,
        width: float,
        height: float,
        filter_expression: Optional[str] = None,
    ) -> None:
        """Draw an image scaled into the given box, filter applied to this draw only.

        Only the part of the box that lands on the surface is resampled, so
        huge or mostly off-surface boxes cost no more than the surface itself.
        """
        target_w, target_h = int(round(width)), int(round(height))
        if target_w <= 0 or target_h <= 0:
            return

        left, top = int(round(x)), int(round(y))
        visible = (
            max(left, 0),
            max(top, 0),
            min(left + target_w, self.width),
            min(top + target_h, self.height),
        )
        if visible[2] <= visible[0] or visible[3] <= visible[1]:
            return

        source = image.convert("RGBA")
        scale_x = source.width / target_w
        scale_y = source.height / target_h
        # Visible region mapped back into source pixels
        source_box = (
            (visible[0] - left) * scale_x,
            (visible[1] - top) * scale_y,
            (visible[2] - left) * scale_x,
            (visible[3] - top) * scale_y,
        )
        size = (visible[2] - visible[0], visible[3] - visible[1])
        scaled = source.resize(size, Image.LANCZOS, box=source_box)
        scaled = apply_filter(scaled, filter_expression)

        layer = Image.new("RGBA", self.size, (0, 0, 0, 0))
        layer.paste(scaled, (visible[0], visible[1]))
        self.composite(layer)

    def draw_text(
        self,
        xy: Tuple[float, float],
        text: str,
        font,
        paint: Paint,
        anchor: str = "la",
    ) -> None:
        """Draw a single line of text through a mask."""
        if not text:
            return
        mask = self.new_mask()
        ImageDraw.Draw(mask).text(xy, text, font=font, fill=255, anchor=anchor)
        self.fill_mask(mask, paint)

    # ---- output ----

    def to_image(self) -> Image.Image:
        """Opaque RGB copy of the surface."""
        return self.image.convert("RGB")

    def to_png(self) -> bytes:
        """Encode the surface as PNG."""
        buffer = io.BytesIO()
        try:
            self.to_image().save(buffer, "PNG")
        except (OSError, ValueError) as e:
            raise EncodeFailureError(f"Failed to encode card PNG: {e}") from e
        return buffer.getvalue()


def mirror_draw(surface: Surface, draw_fn: Callable[[Surface], None]) -> None:
    """Draw once, then again rotated 180 degrees about the surface center.

    ``draw_fn`` draws onto a transparent layer; the layer is composited as-is
    and then point-reflected so the copy reads correctly upside down.
    """
    layer = surface.blank_layer()
    draw_fn(layer)
    surface.composite(layer.image)
    surface.composite(layer.image.transpose(Image.Transpose.ROTATE_180))
