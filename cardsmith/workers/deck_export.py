"""Deck export worker - renders card records into a zip of PNGs.

Archive layout, for the record at position ``index``:

- ``{index}.png``: the rendered card
- ``{index}-{n}.png``: extra copies, n = 1 .. amount-1
- ``{index}.json``: optional sidecar with the card fields (no cached render)

Records are rendered one at a time onto a single reused surface, in input
order.
"""

import base64
import io
import json
import zipfile
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from loguru import logger
from PIL import Image

from cardsmith.exceptions import (
    ArchiveFailureError,
    DecodeFailureError,
    EncodeFailureError,
    ExportCancelledError,
    MissingAssetError,
)
from cardsmith.models.card import CardRecord
from cardsmith.models.template import CardTemplate, DEFAULT_TEMPLATE
from cardsmith.workers.card_renderer import CardRenderer, new_surface

# Fixed timestamp so identical decks produce identical archives
ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)

AssetLookup = Callable[[str], Optional[Image.Image]]
ProgressCallback = Callable[[int, int, str], None]


@dataclass
class ExportIssue:
    """A non-fatal problem with one record during export."""
    index: int
    card_id: str
    kind: str  # missing_asset, decode_failure, encode_failure
    message: str


@dataclass
class ExportResult:
    """Archive bytes plus what went into it."""
    archive: bytes
    entries: List[str] = field(default_factory=list)
    issues: List[ExportIssue] = field(default_factory=list)

    @property
    def exported_count(self) -> int:
        return len([e for e in self.entries if e.endswith(".png")])


def entry_names(index: int, amount: int) -> List[str]:
    """PNG entry names for the record at ``index`` printed ``amount`` times."""
    names = [f"{index}.png"]
    names.extend(f"{index}-{n}.png" for n in range(1, max(amount, 1)))
    return names


def _write_entry(archive: zipfile.ZipFile, name: str, data: bytes) -> None:
    info = zipfile.ZipInfo(name, date_time=ZIP_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    try:
        archive.writestr(info, data)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        raise ArchiveFailureError(f"Failed to write archive entry {name}: {e}") from e


class DeckExporter:
    """Exports card records to a zip archive."""

    def __init__(
        self,
        template: Optional[CardTemplate] = None,
        include_sidecars: bool = True,
        use_cache: bool = False,
    ):
        self.template = template or DEFAULT_TEMPLATE
        self.include_sidecars = include_sidecars
        self.use_cache = use_cache
        self.renderer = CardRenderer(self.template)

    def _resolve_photo(
        self,
        index: int,
        record: CardRecord,
        asset_lookup: Optional[AssetLookup],
        issues: List[ExportIssue],
    ) -> tuple:
        """Look up the record's photo. Returns (photo, resolved_ok)."""
        if not record.image_id or asset_lookup is None:
            return None, record.image_id is None

        try:
            photo = asset_lookup(record.image_id)
            if photo is None:
                raise MissingAssetError(record.image_id)
            return photo, True
        except MissingAssetError as e:
            logger.warning(f"Card {index} ({record.id}): {e}, skipping photo layer")
            issues.append(ExportIssue(index, record.id, "missing_asset", str(e)))
        except DecodeFailureError as e:
            logger.warning(f"Card {index} ({record.id}): {e}, skipping photo layer")
            issues.append(ExportIssue(index, record.id, "decode_failure", str(e)))
        return None, False

    def export(
        self,
        records: Iterable[CardRecord],
        asset_lookup: Optional[AssetLookup] = None,
        progress: Optional[ProgressCallback] = None,
        card_store=None,
    ) -> ExportResult:
        """Render every record into a new archive.

        Args:
            records: Cards in deck order
            asset_lookup: Returns the decoded photo for an image id; may raise
                MissingAssetError or DecodeFailureError
            progress: Called as progress(current, total, message) after each
                record; raise ExportCancelledError from it to stop the export
            card_store: If given, each record is saved back with its new cache

        Returns:
            ExportResult with archive bytes, entry names and per-record issues
        """
        records = list(records)
        total = len(records)
        entries: List[str] = []
        issues: List[ExportIssue] = []
        surface = new_surface(self.template)
        buffer = io.BytesIO()

        logger.info(f"Exporting {total} cards (template={self.template.name})")

        try:
            archive = zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED)
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveFailureError(f"Failed to create archive: {e}") from e

        finished = False
        try:
            for index, record in enumerate(records):
                message = self._export_one(
                    index, record, surface, archive, asset_lookup, entries, issues, card_store
                )
                if progress:
                    progress(index + 1, total, message)
            finished = True
        except ExportCancelledError:
            logger.info(f"Export cancelled after {len(entries)} entries")
            raise
        finally:
            if not finished:
                archive.close()

        try:
            archive.close()
        except (OSError, ValueError) as e:
            raise ArchiveFailureError(f"Failed to finalize archive: {e}") from e

        logger.info(
            f"Export complete: {len(entries)} entries, {len(issues)} issues"
        )
        return ExportResult(archive=buffer.getvalue(), entries=entries, issues=issues)

    def _export_one(
        self,
        index: int,
        record: CardRecord,
        surface,
        archive: zipfile.ZipFile,
        asset_lookup: Optional[AssetLookup],
        entries: List[str],
        issues: List[ExportIssue],
        card_store,
    ) -> str:
        """Render and archive one record. Returns the progress message."""
        label = record.value or record.id

        if self.use_cache and record.has_valid_cache_for(self.template.name):
            png = base64.b64decode(record.base64)
            logger.debug(f"Card {index} ({record.id}): using cached render")
        else:
            photo, photo_ok = self._resolve_photo(index, record, asset_lookup, issues)
            self.renderer.render(surface, record, photo)
            try:
                png = surface.to_png()
            except EncodeFailureError as e:
                logger.error(f"Card {index} ({record.id}): {e}")
                issues.append(ExportIssue(index, record.id, "encode_failure", str(e)))
                return f"Failed to encode card {label}"

            record.base64 = base64.b64encode(png).decode("ascii")
            # A render missing its photo is not a valid cache for the record
            record.render_hash = record.render_fingerprint(self.template.name) if photo_ok else None
            if card_store is not None:
                card_store.put(record)

        for name in entry_names(index, record.amount):
            _write_entry(archive, name, png)
            entries.append(name)

        if self.include_sidecars:
            sidecar_name = f"{index}.json"
            sidecar = json.dumps(record.sidecar(), ensure_ascii=False, indent=2)
            _write_entry(archive, sidecar_name, sidecar.encode("utf-8"))
            entries.append(sidecar_name)

        return f"Rendered card {label}"


def export_deck(
    records: Iterable[CardRecord],
    asset_lookup: Optional[AssetLookup] = None,
    progress: Optional[ProgressCallback] = None,
    *,
    template: Optional[CardTemplate] = None,
    include_sidecars: bool = True,
    use_cache: bool = False,
    card_store=None,
) -> ExportResult:
    """Export records and return the full result."""
    exporter = DeckExporter(template, include_sidecars=include_sidecars, use_cache=use_cache)
    return exporter.export(records, asset_lookup, progress, card_store=card_store)


def export_all(
    records: Iterable[CardRecord],
    asset_lookup: Optional[AssetLookup] = None,
    progress: Optional[ProgressCallback] = None,
    **kwargs,
) -> bytes:
    """Export records and return the archive bytes."""
    return export_deck(records, asset_lookup, progress, **kwargs).archive


def read_archive_cards(archive_bytes: bytes) -> List[CardRecord]:
    """Read the card sidecars back out of an export archive, in deck order."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(archive_bytes))
    except zipfile.BadZipFile as e:
        raise ArchiveFailureError(f"Not a valid deck archive: {e}") from e

    sidecars = []
    with archive:
        for name in archive.namelist():
            stem, _, ext = name.rpartition(".")
            if ext != "json" or not stem.isdigit():
                continue
            try:
                card = CardRecord.model_validate_json(archive.read(name))
            except ValueError as e:
                logger.warning(f"Skipping invalid sidecar {name}: {e}")
                continue
            sidecars.append((int(stem), card))

    sidecars.sort(key=lambda item: item[0])
    return [card for _, card in sidecars]
