"""Image asset models."""

import base64
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


def new_asset_id() -> str:
    """Generate a globally unique random asset identifier."""
    return uuid.uuid4().hex


class ImageAsset(BaseModel):
    """An uploaded image: raw bytes plus metadata.

    Everything except ``name`` is fixed at creation time.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )

    id: str = Field(default_factory=new_asset_id)
    name: str
    mime_type: str = Field(default="application/octet-stream", alias="mimeType")
    pixel_data: bytes = Field(alias="pixelData", repr=False)

    created_at: datetime = Field(default_factory=datetime.now, alias="createdAt")

    @property
    def size(self) -> int:
        """Size of the raw data in bytes."""
        return len(self.pixel_data)

    def as_data_url(self) -> str:
        """Return the asset as a ``data:`` URL."""
        encoded = base64.b64encode(self.pixel_data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def summary(self) -> "ImageAssetSummary":
        return ImageAssetSummary(
            id=self.id,
            name=self.name,
            mime_type=self.mime_type,
            size=self.size,
            created_at=self.created_at,
        )


class ImageAssetSummary(BaseModel):
    """Asset listing entry (no pixel data)."""

    id: str
    name: str
    mime_type: str
    size: int
    created_at: datetime
