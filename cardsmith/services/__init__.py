"""Stores and services for Cardsmith."""

from .asset_store import AssetStore
from .card_service import CardService
from .card_store import CardStore

__all__ = [
    "AssetStore",
    "CardService",
    "CardStore",
]
