"""Card lifecycle service: create, edit, render-cache, duplicate, delete, export."""

import base64
import io
from typing import List, Optional, Sequence

from loguru import logger
from PIL import Image, UnidentifiedImageError

from cardsmith.exceptions import CardNotFoundError, DecodeFailureError, MissingAssetError
from cardsmith.models.asset import ImageAsset
from cardsmith.models.card import CardRecord, CardUpdate, new_card_id
from cardsmith.models.template import CardTemplate, DEFAULT_TEMPLATE
from cardsmith.services.asset_store import AssetStore
from cardsmith.services.card_store import CardStore
from cardsmith.workers.card_renderer import CardRenderer, new_surface
from cardsmith.workers.deck_export import ExportResult, ProgressCallback, export_deck, read_archive_cards

NEW_CARD_DEFAULTS = {
    "value": "A",
    "value_description": "",
    "text": "",
    "description": "",
}


def decode_asset(asset: ImageAsset) -> Image.Image:
    """Decode stored asset bytes into an RGBA bitmap."""
    try:
        with Image.open(io.BytesIO(asset.pixel_data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeFailureError(asset.id, str(e)) from e


class CardService:
    """Ties the card store, asset store and renderer together."""

    def __init__(
        self,
        card_store: CardStore,
        asset_store: AssetStore,
        template: Optional[CardTemplate] = None,
    ):
        self.cards = card_store
        self.assets = asset_store
        self.template = template or DEFAULT_TEMPLATE
        self.renderer = CardRenderer(self.template)

    # ============ Photos ============

    def load_photo(self, image_id: str) -> Image.Image:
        """Decode the photo for an image id.

        Raises:
            MissingAssetError: no asset with this id
            DecodeFailureError: the asset bytes are not a readable image
        """
        asset = self.assets.get(image_id)
        if asset is None:
            raise MissingAssetError(image_id)
        return decode_asset(asset)

    def lookup_photo(self, image_id: str) -> Image.Image:
        """Asset lookup for the deck exporter."""
        return self.load_photo(image_id)

    # ============ Lookup ============

    def get_card(self, card_id: str) -> CardRecord:
        card = self.cards.get(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return card

    def list_cards(self) -> List[CardRecord]:
        return self.cards.list_all()

    # ============ Lifecycle ============

    def new_card(self, **fields) -> CardRecord:
        """Create a card with defaults, render it and store it."""
        data = dict(NEW_CARD_DEFAULTS)
        data.update(fields)
        card = CardRecord(**data)
        self.save_card(card)
        logger.info(f"Created card: {card.id} ({card.value})")
        return card

    def save_card(self, card: CardRecord) -> CardRecord:
        """Re-render the card, refresh its cached PNG and persist it.

        A photo that cannot be resolved is left out of the cached render and
        the cache is not marked valid for the current fields.
        """
        photo = None
        photo_ok = True
        if card.image_id:
            try:
                photo = self.load_photo(card.image_id)
            except (MissingAssetError, DecodeFailureError) as e:
                logger.warning(f"Card {card.id}: {e}, rendering without photo")
                photo_ok = False

        surface = new_surface(self.template)
        self.renderer.render(surface, card, photo)
        card.base64 = base64.b64encode(surface.to_png()).decode("ascii")
        card.render_hash = card.render_fingerprint(self.template.name) if photo_ok else None
        self.cards.put(card)
        return card

    def update_card(self, card_id: str, update: CardUpdate) -> CardRecord:
        """Apply a partial update and save (re-render) the card."""
        card = update.apply_to(self.get_card(card_id))
        self.save_card(card)
        logger.info(f"Updated card: {card_id}")
        return card

    def duplicate_card(self, card_id: str) -> CardRecord:
        """Copy every field of a card under a new id."""
        copy = self.get_card(card_id).copy_as_new()
        self.cards.put(copy)
        logger.info(f"Duplicated card {card_id} as {copy.id}")
        return copy

    def delete_card(self, card_id: str) -> bool:
        return self.cards.delete(card_id)

    def rendered_png(self, card_id: str) -> bytes:
        """PNG for a card, from the cache when it is still valid."""
        card = self.get_card(card_id)
        if not card.has_valid_cache_for(self.template.name):
            self.save_card(card)
        return base64.b64decode(card.base64)

    # ============ Deck import/export ============

    def export_deck(
        self,
        card_ids: Optional[Sequence[str]] = None,
        progress: Optional[ProgressCallback] = None,
        include_sidecars: bool = True,
        use_cache: bool = False,
    ) -> ExportResult:
        """Export the given cards (default: the whole deck, in order)."""
        if card_ids is None:
            records = self.list_cards()
        else:
            records = [self.get_card(card_id) for card_id in card_ids]
        return export_deck(
            records,
            self.lookup_photo,
            progress,
            template=self.template,
            include_sidecars=include_sidecars,
            use_cache=use_cache,
            card_store=self.cards,
        )

    def import_deck(self, archive_bytes: bytes) -> List[CardRecord]:
        """Add the cards from an export archive as new cards."""
        imported = []
        for card in read_archive_cards(archive_bytes):
            card = card.model_copy(update={"id": new_card_id()})
            card.invalidate_cache()
            self.cards.put(card)
            imported.append(card)
        logger.info(f"Imported {len(imported)} cards")
        return imported
