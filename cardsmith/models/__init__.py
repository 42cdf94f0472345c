"""Data models for Cardsmith."""

from .asset import ImageAsset, ImageAssetSummary
from .card import CardRecord, CardUpdate, ColorSpec, LiteralColor, Rainbow, parse_color_spec
from .template import CardTemplate, TEMPLATES, get_template

__all__ = [
    "ImageAsset",
    "ImageAssetSummary",
    "CardRecord",
    "CardUpdate",
    "ColorSpec",
    "LiteralColor",
    "Rainbow",
    "parse_color_spec",
    "CardTemplate",
    "TEMPLATES",
    "get_template",
]
