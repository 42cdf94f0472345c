"""Tests for the raster surface and mirrored drawing."""

import io

import numpy as np
import pytest
from PIL import Image

from cardsmith.exceptions import EncodeFailureError
from cardsmith.workers.style import LinearGradient, SolidPaint
from cardsmith.workers.surface import Surface, mirror_draw

RED = SolidPaint((255, 0, 0, 255))


def _array(surface: Surface) -> np.ndarray:
    return np.asarray(surface.image).astype(np.int16)


class TestSurfaceBasics:
    """Tests for fills and boxes."""

    def test_new_surface_is_opaque_white(self):
        """Test the default background."""
        surface = Surface(10, 20)

        assert surface.size == (10, 20)
        assert surface.image.getpixel((5, 5)) == (255, 255, 255, 255)

    def test_blank_layer_is_transparent(self):
        """Test layers used for mirrored drawing."""
        layer = Surface(10, 20).blank_layer()
        assert layer.image.getpixel((0, 0)) == (0, 0, 0, 0)

    def test_fill_box_exclusive_edges(self):
        """Test that boxes exclude their right and bottom edges."""
        surface = Surface(10, 10)
        surface.fill_box((2, 2, 5, 5), RED)

        assert surface.image.getpixel((2, 2)) == (255, 0, 0, 255)
        assert surface.image.getpixel((4, 4)) == (255, 0, 0, 255)
        assert surface.image.getpixel((5, 5)) == (255, 255, 255, 255)

    def test_fill_box_empty(self):
        """Test that an empty box draws nothing."""
        surface = Surface(10, 10)
        surface.fill_box((5, 5, 5, 8), RED)
        assert surface.image.getpixel((5, 5)) == (255, 255, 255, 255)

    def test_semi_transparent_paint_blends(self):
        """Test that translucent paints blend over the surface."""
        surface = Surface(4, 4)
        surface.fill_paint(SolidPaint((0, 0, 0, 128)))
        r, g, b, a = surface.image.getpixel((0, 0))

        assert 120 <= r <= 135
        assert a == 255

    def test_gradient_fill(self):
        """Test filling with a vertical gradient."""
        surface = Surface(4, 100)
        surface.fill(LinearGradient(0, 100, ((0.0, (0, 0, 0, 255)), (1.0, (255, 255, 255, 255)))))

        assert surface.image.getpixel((0, 0))[0] < 10
        assert surface.image.getpixel((0, 99))[0] > 245


class TestRoundedStroke:
    """Tests for the card-edge stroke."""

    def test_mask_covers_edges_not_center(self):
        """Test that the stroke hugs the edge."""
        surface = Surface(100, 150)
        mask = surface.rounded_rect_stroke_mask(radius=20, line_width=10)

        assert mask.getpixel((0, 75)) == 255
        assert mask.getpixel((2, 75)) == 255
        assert mask.getpixel((50, 75)) == 0
        assert mask.getpixel((10, 75)) == 0

    def test_corners_are_rounded(self):
        """Test that the very corner lies outside the rounded path's stroke."""
        surface = Surface(100, 150)
        mask = surface.rounded_rect_stroke_mask(radius=30, line_width=10)
        assert mask.getpixel((0, 0)) == 0

    def test_mask_is_point_symmetric(self):
        """Test that the stroke is symmetric under a 180 degree rotation."""
        surface = Surface(101, 150)
        data = np.asarray(surface.rounded_rect_stroke_mask(radius=25, line_width=12))
        assert np.array_equal(data, data[::-1, ::-1])


class TestDrawImage:
    """Tests for drawing photos."""

    def test_scaled_into_box(self):
        """Test scaling an image into a target box."""
        surface = Surface(20, 20)
        surface.draw_image(Image.new("RGB", (5, 5), (0, 0, 255)), 5, 5, 10, 10)

        assert surface.image.getpixel((5, 5)) == (0, 0, 255, 255)
        assert surface.image.getpixel((14, 14)) == (0, 0, 255, 255)
        assert surface.image.getpixel((15, 15)) == (255, 255, 255, 255)

    def test_negative_offset(self):
        """Test that images may hang off the top-left edge."""
        surface = Surface(20, 20)
        surface.draw_image(Image.new("RGB", (10, 10), (0, 0, 255)), -5, -5, 10, 10)

        assert surface.image.getpixel((0, 0)) == (0, 0, 255, 255)
        assert surface.image.getpixel((5, 5)) == (255, 255, 255, 255)

    def test_non_positive_size_skipped(self):
        """Test that empty boxes draw nothing."""
        surface = Surface(20, 20)
        surface.draw_image(Image.new("RGB", (10, 10), (0, 0, 255)), 0, 0, 0, 10)
        assert surface.image.getpixel((0, 0)) == (255, 255, 255, 255)

    def test_filter_applies_to_image_only(self):
        """Test that the filter does not touch the rest of the surface."""
        surface = Surface(20, 20)
        surface.draw_image(Image.new("RGB", (10, 10), (255, 0, 0)), 0, 0, 10, 10, "invert(1)")

        assert surface.image.getpixel((0, 0)) == (0, 255, 255, 255)
        assert surface.image.getpixel((15, 15)) == (255, 255, 255, 255)

    def test_huge_box_only_resamples_visible_part(self):
        """Test that a box far larger than the surface is cropped before scaling."""
        surface = Surface(20, 20)
        surface.draw_image(Image.new("RGB", (10, 10), (255, 0, 0)), 0, 0, 300000, 300000)

        assert surface.image.getpixel((0, 0)) == (255, 0, 0, 255)
        assert surface.image.getpixel((19, 19)) == (255, 0, 0, 255)

    def test_visible_part_maps_to_source_region(self):
        """Test that the visible slice comes from the matching part of the image."""
        image = Image.new("RGB", (20, 10), (255, 0, 0))
        image.paste((0, 0, 255), (10, 0, 20, 10))
        surface = Surface(20, 20)
        surface.draw_image(image, -10, 0, 20, 10)

        assert surface.image.getpixel((2, 5)) == (0, 0, 255, 255)
        assert surface.image.getpixel((12, 5)) == (255, 255, 255, 255)

    def test_box_outside_surface_skipped(self):
        surface = Surface(20, 20)
        surface.draw_image(Image.new("RGB", (10, 10), (0, 0, 255)), 25, -40, 10, 10)
        assert np.array_equal(_array(surface), _array(Surface(20, 20)))


class TestMirrorDraw:
    """Tests for the draw-once, reflect-once helper."""

    def test_mirror_box(self):
        """Test that a top-left box reappears at the bottom-right."""
        surface = Surface(30, 40)
        mirror_draw(surface, lambda layer: layer.fill_box((0, 0, 5, 3), RED))

        assert surface.image.getpixel((0, 0)) == (255, 0, 0, 255)
        assert surface.image.getpixel((29, 39)) == (255, 0, 0, 255)
        assert surface.image.getpixel((25, 37)) == (255, 0, 0, 255)
        assert surface.image.getpixel((24, 36)) == (255, 255, 255, 255)

    def test_mirror_text_is_point_symmetric(self):
        """Test that mirrored text equals its own 180 degree rotation."""
        from cardsmith.workers.fonts import FontSpec, load_font

        surface = Surface(200, 300)
        font = load_font(FontSpec("sans-serif", 24, True))
        mirror_draw(
            surface,
            lambda layer: layer.draw_text((10, 10), "ACE", font, SolidPaint((0, 0, 0, 255))),
        )
        data = _array(surface)

        assert (data[:150, :, 0] < 128).any()
        assert np.array_equal(data, data[::-1, ::-1])


class TestEncoding:
    """Tests for PNG output."""

    def test_to_png_is_opaque_rgb(self):
        """Test that output decodes as an RGB PNG."""
        surface = Surface(8, 8)
        surface.fill_box((0, 0, 4, 4), RED)
        image = Image.open(io.BytesIO(surface.to_png()))

        assert image.format == "PNG"
        assert image.mode == "RGB"
        assert image.getpixel((0, 0)) == (255, 0, 0)

    def test_encode_failure(self, monkeypatch):
        """Test that encoder errors become EncodeFailureError."""
        surface = Surface(8, 8)

        def broken_save(self, fp, format=None, **params):
            raise OSError("disk on fire")

        monkeypatch.setattr(Image.Image, "save", broken_save)
        with pytest.raises(EncodeFailureError):
            surface.to_png()
