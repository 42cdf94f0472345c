"""Image asset store."""

import io
import mimetypes
from pathlib import Path
from typing import List, Optional

from loguru import logger
from PIL import Image, UnidentifiedImageError

from cardsmith.exceptions import CardsmithError
from cardsmith.models.asset import ImageAsset, ImageAssetSummary
from cardsmith.services.file_store import JsonFileStore


class ImmutableAssetError(CardsmithError):
    """Raised when a put would change an existing asset's data."""

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Image asset {asset_id} already exists with different data")


def guess_mime_type(data: bytes, filename: Optional[str] = None) -> str:
    """Guess a MIME type from the filename, then from the image header."""
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
            if mime:
                return mime
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
        pass
    return "application/octet-stream"


class AssetStore(JsonFileStore[ImageAsset]):
    """Stores uploaded images as JSON files (pixel data base64-encoded).

    Assets are immutable apart from their name.
    """

    model = ImageAsset
    kind = "asset"

    def put(self, record: ImageAsset) -> ImageAsset:
        existing = self.get(record.id)
        if existing is not None and (
            existing.pixel_data != record.pixel_data or existing.mime_type != record.mime_type
        ):
            raise ImmutableAssetError(record.id)
        return super().put(record)

    def add_bytes(self, data: bytes, name: str, mime_type: Optional[str] = None) -> ImageAsset:
        """Create an asset from raw bytes with a fresh id."""
        asset = ImageAsset(
            name=name,
            mime_type=mime_type or guess_mime_type(data, name),
            pixel_data=data,
        )
        self.put(asset)
        logger.info(f"Added asset: {asset.id} ({asset.name}, {asset.mime_type}, {asset.size} bytes)")
        return asset

    def add_file(self, path: Path, name: Optional[str] = None) -> ImageAsset:
        """Read an image file from disk into the store."""
        path = Path(path)
        return self.add_bytes(path.read_bytes(), name or path.name)

    def rename(self, asset_id: str, name: str) -> Optional[ImageAsset]:
        """Rename an asset. Returns None if it does not exist."""
        asset = self.get(asset_id)
        if asset is None:
            return None
        asset.name = name
        self._save_record(asset)
        logger.info(f"Renamed asset {asset_id} to {name!r}")
        return asset

    def list_summaries(self) -> List[ImageAssetSummary]:
        return [asset.summary() for asset in self.list_all()]
