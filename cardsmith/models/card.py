"""Card record models and color specifications."""

import hashlib
import json
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cardsmith.models.template import DEFAULT_TEMPLATE

RAINBOW = "rainbow"

# Fields that never influence the rendered pixels
NON_RENDER_FIELDS = {"id", "amount", "base64", "render_hash"}


def new_card_id() -> str:
    """Generate a unique card identifier."""
    return uuid.uuid4().hex


# ============ Color Specs ============

@dataclass(frozen=True)
class LiteralColor:
    """A color string used as-is (hex, rgb(), hsl() or a color name)."""
    value: str


@dataclass(frozen=True)
class Rainbow:
    """The full-height rainbow gradient effect."""
    pass


ColorSpec = Union[LiteralColor, Rainbow]


def parse_color_spec(value: Optional[str]) -> Optional[ColorSpec]:
    """Turn a stored color field into a ColorSpec.

    Returns None for unset or blank fields so callers can apply their default.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if value.lower() == RAINBOW:
        return Rainbow()
    return LiteralColor(value)


# ============ Card Record ============

class CardRecord(BaseModel):
    """Everything needed to render one card.

    Field aliases keep the camelCase names used in stored JSON and export
    sidecars.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_card_id)
    amount: int = Field(default=1, ge=1)  # Print copies, export only

    # Corner rank
    value: str = ""
    value_description: str = Field(default="", alias="valueDescription")

    # Body text block
    text: str = ""
    text_font: Optional[str] = Field(default=None, alias="textFont")
    text_color: Optional[str] = Field(default=None, alias="textColor")

    # Small caption, top-left and mirrored bottom-right
    description: str = ""

    # Background photo
    image_id: Optional[str] = Field(default=None, alias="imageId")
    image_x: Optional[float] = Field(default=None, alias="imageX")
    image_y: Optional[float] = Field(default=None, alias="imageY")
    image_width: Optional[float] = Field(default=None, alias="imageWidth")
    image_height: Optional[float] = Field(default=None, alias="imageHeight")
    image_filter: Optional[str] = Field(default=None, alias="imageFilter")

    no_gradient: bool = Field(default=False, alias="noGradient")

    # Border and corner colors ("rainbow" allowed)
    border_color: Optional[str] = Field(default=None, alias="borderColor")
    border_text_color: Optional[str] = Field(default=None, alias="borderTextColor")
    border_small_text_color: Optional[str] = Field(default=None, alias="borderSmallTextColor")

    # Render cache
    base64: Optional[str] = Field(default=None, repr=False)
    render_hash: Optional[str] = Field(default=None, alias="renderHash", repr=False)

    @field_validator("amount", mode="before")
    @classmethod
    def default_amount(cls, v):
        return 1 if v is None else v

    @field_validator("value", "value_description", "text", "description", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("image_id", mode="before")
    @classmethod
    def image_id_as_string(cls, v):
        """Asset references are opaque strings, even if stored as numbers."""
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("no_gradient", mode="before")
    @classmethod
    def none_to_false(cls, v):
        return False if v is None else v

    # ---- color specs ----

    @property
    def border_color_spec(self) -> Optional[ColorSpec]:
        return parse_color_spec(self.border_color)

    @property
    def border_text_color_spec(self) -> Optional[ColorSpec]:
        return parse_color_spec(self.border_text_color)

    @property
    def border_small_text_color_spec(self) -> Optional[ColorSpec]:
        return parse_color_spec(self.border_small_text_color)

    @property
    def text_color_spec(self) -> Optional[ColorSpec]:
        return parse_color_spec(self.text_color)

    # ---- render cache ----

    def render_fields(self) -> dict:
        """The fields rendering depends on, keyed by alias."""
        return self.model_dump(by_alias=True, exclude=NON_RENDER_FIELDS)

    def render_fingerprint(self, template_name: str = DEFAULT_TEMPLATE.name) -> str:
        """Stable hash of the render-relevant fields and the template revision."""
        payload = json.dumps(
            {"template": template_name, "fields": self.render_fields()},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def has_valid_cache_for(self, template_name: str) -> bool:
        """True if ``base64`` was rendered from the current fields on this template."""
        return bool(self.base64) and self.render_hash == self.render_fingerprint(template_name)

    @property
    def has_valid_cache(self) -> bool:
        return self.has_valid_cache_for(DEFAULT_TEMPLATE.name)

    def invalidate_cache(self) -> None:
        self.base64 = None
        self.render_hash = None

    def copy_as_new(self) -> "CardRecord":
        """Copy all fields under a fresh identifier."""
        return self.model_copy(update={"id": new_card_id()})

    def sidecar(self) -> dict:
        """JSON sidecar for export archives (cache excluded)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"base64", "render_hash"})


class CardUpdate(BaseModel):
    """Partial card update. Only explicitly set fields are applied."""

    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[int] = Field(default=None, ge=1)
    value: Optional[str] = None
    value_description: Optional[str] = Field(default=None, alias="valueDescription")
    text: Optional[str] = None
    text_font: Optional[str] = Field(default=None, alias="textFont")
    text_color: Optional[str] = Field(default=None, alias="textColor")
    description: Optional[str] = None
    image_id: Optional[str] = Field(default=None, alias="imageId")
    image_x: Optional[float] = Field(default=None, alias="imageX")
    image_y: Optional[float] = Field(default=None, alias="imageY")
    image_width: Optional[float] = Field(default=None, alias="imageWidth")
    image_height: Optional[float] = Field(default=None, alias="imageHeight")
    image_filter: Optional[str] = Field(default=None, alias="imageFilter")
    no_gradient: Optional[bool] = Field(default=None, alias="noGradient")
    border_color: Optional[str] = Field(default=None, alias="borderColor")
    border_text_color: Optional[str] = Field(default=None, alias="borderTextColor")
    border_small_text_color: Optional[str] = Field(default=None, alias="borderSmallTextColor")

    def apply_to(self, card: CardRecord) -> CardRecord:
        """Return a copy of ``card`` with the set fields replaced.

        The result is re-validated so coercions on CardRecord still apply.
        """
        changes = self.model_dump(exclude_unset=True)
        data = card.model_dump()
        data.update(changes)
        return CardRecord.model_validate(data)
