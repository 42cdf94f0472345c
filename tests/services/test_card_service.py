"""Tests for the card lifecycle service."""

import base64
import io
import struct
import tempfile
import zipfile
import zlib
from pathlib import Path

import pytest
from PIL import Image

from cardsmith.exceptions import CardNotFoundError, DecodeFailureError, MissingAssetError
from cardsmith.models.card import CardUpdate
from cardsmith.models.template import COMPACT
from cardsmith.services.asset_store import AssetStore
from cardsmith.services.card_service import CardService
from cardsmith.services.card_store import CardStore


def png_bytes(color=(255, 0, 0), size=(500, 500)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, "PNG")
    return buffer.getvalue()


def _png_chunk(tag: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", zlib.crc32(tag + data))


def oversized_png(width=20000, height=20000) -> bytes:
    """A tiny PNG whose header declares a huge image."""
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", b"")
        + _png_chunk(b"IEND", b"")
    )


@pytest.fixture
def temp_data_dir():
    """Create a temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def service(temp_data_dir):
    return CardService(
        card_store=CardStore(temp_data_dir / "cards"),
        asset_store=AssetStore(temp_data_dir / "assets"),
    )


class TestPhotos:
    """Tests for resolving photos from the asset store."""

    def test_load_photo(self, service):
        """Test decoding a stored image."""
        asset = service.assets.add_bytes(png_bytes(), "red.png")
        photo = service.load_photo(asset.id)

        assert photo.mode == "RGBA"
        assert photo.size == (500, 500)

    def test_missing(self, service):
        with pytest.raises(MissingAssetError):
            service.load_photo("nope")

    def test_undecodable(self, service):
        """Test that non-image bytes raise DecodeFailureError."""
        asset = service.assets.add_bytes(b"this is not an image", "notes.txt")
        with pytest.raises(DecodeFailureError):
            service.load_photo(asset.id)

    def test_oversized_image(self, service):
        """Test that an image over the pixel limit is a decode failure."""
        asset = service.assets.add_bytes(oversized_png(), "huge.png")
        with pytest.raises(DecodeFailureError):
            service.load_photo(asset.id)


class TestCardLifecycle:
    """Tests for creating and editing cards."""

    def test_new_card_defaults(self, service):
        """Test that new cards start as an ace with a cached render."""
        card = service.new_card()

        assert card.value == "A"
        assert card.amount == 1
        assert card.has_valid_cache
        assert service.get_card(card.id) is card

    def test_new_card_fields(self, service):
        card = service.new_card(value="Q", description="Queen")
        assert (card.value, card.description) == ("Q", "Queen")

    def test_cached_render_is_png(self, service):
        """Test that the cached base64 holds the card PNG."""
        card = service.new_card(value="9")
        image = Image.open(io.BytesIO(base64.b64decode(card.base64)))
        assert image.size == (800, 1200)

    def test_card_with_photo(self, service):
        """Test rendering a card with a stored photo."""
        asset = service.assets.add_bytes(png_bytes(), "red.png")
        card = service.new_card(value="10", image_id=asset.id, image_filter="brightness(0.9)")

        image = Image.open(io.BytesIO(service.rendered_png(card.id))).convert("RGB")
        r, g, b = image.getpixel((400, 600))
        assert abs(r - 230) <= 2
        assert g == b == 0
        assert card.has_valid_cache

    def test_missing_photo_leaves_cache_stale(self, service):
        """Test that a card whose photo is gone renders but stays uncached."""
        card = service.new_card(value="3", image_id="gone")

        assert card.base64
        assert not card.has_valid_cache

    def test_update_card(self, service):
        """Test a partial update re-renders and keeps other fields."""
        card = service.new_card(value="5", text="Five")
        before = card.base64

        updated = service.update_card(card.id, CardUpdate(border_color="rainbow"))

        assert updated.id == card.id
        assert updated.text == "Five"
        assert updated.border_color == "rainbow"
        assert updated.base64 != before
        assert updated.has_valid_cache
        assert service.get_card(card.id).border_color == "rainbow"

    def test_update_clears_field(self, service):
        """Test that an explicit None clears a field."""
        card = service.new_card(value="5", description="five")
        updated = service.update_card(card.id, CardUpdate(description=None))
        assert updated.description == ""

    def test_update_missing_card(self, service):
        with pytest.raises(CardNotFoundError):
            service.update_card("nope", CardUpdate(value="2"))

    def test_duplicate(self, service):
        """Test that duplicates copy every field under a new id."""
        card = service.new_card(value="J", description="Jack", amount=3)
        copy = service.duplicate_card(card.id)

        assert copy.id != card.id
        assert copy.value == "J"
        assert copy.amount == 3
        assert copy.base64 == card.base64
        assert [c.id for c in service.list_cards()] == [card.id, copy.id]

    def test_delete(self, service):
        card = service.new_card()

        assert service.delete_card(card.id) is True
        with pytest.raises(CardNotFoundError):
            service.get_card(card.id)

    def test_rendered_png_refreshes_stale_cache(self, service):
        """Test that an out-of-date cache is re-rendered on demand."""
        card = service.new_card(value="2")
        card.value = "3"
        assert not card.has_valid_cache

        service.rendered_png(card.id)
        assert card.has_valid_cache

    def test_compact_template(self, temp_data_dir):
        """Test a service configured for the compact template."""
        service = CardService(
            CardStore(temp_data_dir / "cards"),
            AssetStore(temp_data_dir / "assets"),
            template=COMPACT,
        )
        card = service.new_card(value="4")
        assert Image.open(io.BytesIO(service.rendered_png(card.id))).size == (732, 1039)

    def test_cache_not_shared_across_templates(self, temp_data_dir, service):
        """Test that a card cached on the classic template re-renders for compact."""
        card = service.new_card(value="K")
        assert card.has_valid_cache

        compact = CardService(
            CardStore(temp_data_dir / "cards"),
            AssetStore(temp_data_dir / "assets"),
            template=COMPACT,
        )
        assert Image.open(io.BytesIO(compact.rendered_png(card.id))).size == (732, 1039)

        result = compact.export_deck(include_sidecars=False, use_cache=True)
        with zipfile.ZipFile(io.BytesIO(result.archive)) as zf:
            assert Image.open(io.BytesIO(zf.read("0.png"))).size == (732, 1039)


class TestDeckExportImport:
    """Tests for exporting and importing decks through the service."""

    def test_export_whole_deck(self, service):
        """Test exporting every card in deck order."""
        service.new_card(value="A")
        service.new_card(value="K", amount=2)

        result = service.export_deck(include_sidecars=False)
        with zipfile.ZipFile(io.BytesIO(result.archive)) as zf:
            assert zf.namelist() == ["0.png", "1.png", "1-1.png"]

    def test_export_selected_cards(self, service):
        """Test exporting a chosen subset in the given order."""
        first = service.new_card(value="A")
        second = service.new_card(value="K")

        result = service.export_deck([second.id, first.id], include_sidecars=False)
        assert result.entries == ["0.png", "1.png"]

    def test_export_reports_missing_photo(self, service):
        """Test that missing photos are reported, not fatal."""
        service.new_card(value="3", image_id="gone")
        result = service.export_deck()
        assert [issue.kind for issue in result.issues] == ["missing_asset"]

    def test_export_with_oversized_photo(self, service):
        """Test that a photo over the pixel limit is reported and the export finishes."""
        asset = service.assets.add_bytes(oversized_png(), "huge.png")
        service.new_card(value="3", image_id=asset.id)
        service.new_card(value="4")

        result = service.export_deck(include_sidecars=False)

        assert result.entries == ["0.png", "1.png"]
        assert [issue.kind for issue in result.issues] == ["decode_failure"]
        with zipfile.ZipFile(io.BytesIO(result.archive)) as zf:
            assert zf.testzip() is None

    def test_import_round_trip(self, service):
        """Test that importing an export adds copies under new ids."""
        original = service.new_card(value="Q", value_description="Hearts", amount=2)
        archive = service.export_deck().archive

        imported = service.import_deck(archive)

        assert len(imported) == 1
        assert imported[0].id != original.id
        assert imported[0].value_description == "Hearts"
        assert imported[0].amount == 2
        assert imported[0].base64 is None
        assert len(service.list_cards()) == 2
