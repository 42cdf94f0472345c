"""Cardsmith - playing-card deck builder.

Renders card artwork from uploaded photos and per-card data, and batch-exports
the deck as a zip of PNGs.
"""

__version__ = "0.1.0"
