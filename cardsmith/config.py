"""Configuration settings for Cardsmith.

Deck builder: card rendering, local asset/card stores, and zip export.
"""

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CARDSMITH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Path("data")
    fonts_dir: Optional[Path] = None  # Searched before system font dirs

    @property
    def assets_dir(self) -> Path:
        """Path to the image asset store."""
        return self.data_dir / "assets"

    @property
    def cards_dir(self) -> Path:
        """Path to the card store."""
        return self.data_dir / "cards"

    # Rendering
    template: str = "classic"  # classic (800x1200) or compact (732x1039)

    # Export
    export_sidecars: bool = True  # Write {index}.json next to each card PNG
    export_use_cache: bool = False  # Reuse cached renders whose fingerprint matches

    # Logging
    log_level: str = "INFO"

    @field_validator("template", mode="before")
    @classmethod
    def normalize_template(cls, v: str) -> str:
        """Template names are case-insensitive."""
        return str(v).strip().lower()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return str(v).strip().upper()


settings = Settings()
