"""Rendering and export workers for Cardsmith."""

from .card_renderer import CardRenderer, render, render_card, render_card_png
from .deck_export import DeckExporter, export_all, export_deck, read_archive_cards
from .surface import Surface, mirror_draw

__all__ = [
    "CardRenderer",
    "render",
    "render_card",
    "render_card_png",
    "DeckExporter",
    "export_all",
    "export_deck",
    "read_archive_cards",
    "Surface",
    "mirror_draw",
]
