"""Directory-backed JSON record store shared by the asset and card stores."""

import json
from pathlib import Path
from typing import Dict, Generic, List, Optional, Type, TypeVar

from loguru import logger
from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)

ORDER_FILE = "_order.json"


class JsonFileStore(Generic[ModelT]):
    """Key-value store of pydantic records, one JSON file per record.

    Records are kept in memory and written through on every change. Listing
    order is insertion order, persisted in ``_order.json``.
    """

    model: Type[ModelT]
    kind: str = "record"

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._records: Dict[str, ModelT] = {}
        self._load()

    # ============ Persistence ============

    @staticmethod
    def _sanitize_filename(name: str) -> str:
        """Sanitize a record id for use as a filename."""
        return "".join(c for c in name if c.isalnum() or c in "_-") or "_"

    def _record_path(self, record_id: str) -> Path:
        return self.root / f"{self._sanitize_filename(record_id)}.json"

    def _load(self) -> None:
        """Load all records from disk."""
        order: List[str] = []
        order_path = self.root / ORDER_FILE
        if order_path.exists():
            try:
                with open(order_path, "r", encoding="utf-8") as f:
                    order = [str(i) for i in json.load(f)]
            except Exception as e:
                logger.error(f"Failed to load {self.kind} order from {order_path}: {e}")

        loaded: Dict[str, ModelT] = {}
        for record_file in sorted(self.root.glob("*.json")):
            if record_file.name == ORDER_FILE:
                continue
            try:
                record = self.model.model_validate_json(record_file.read_text(encoding="utf-8"))
                loaded[record.id] = record
            except Exception as e:
                logger.error(f"Failed to load {self.kind} from {record_file}: {e}")

        for record_id in order:
            if record_id in loaded:
                self._records[record_id] = loaded.pop(record_id)
        # Files without an order entry go last
        self._records.update(loaded)

        if self._records:
            logger.info(f"Loaded {len(self._records)} {self.kind}s from {self.root}")

    def _save_record(self, record: ModelT) -> None:
        path = self._record_path(record.id)
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(record.model_dump_json(by_alias=True, indent=2))
        except OSError as e:
            logger.error(f"Failed to save {self.kind} {record.id}: {e}")

    def _save_order(self) -> None:
        try:
            with open(self.root / ORDER_FILE, "w", encoding="utf-8") as f:
                json.dump(list(self._records.keys()), f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save {self.kind} order: {e}")

    # ============ Operations ============

    def get(self, record_id: str) -> Optional[ModelT]:
        """Get a record by id, or None."""
        return self._records.get(record_id)

    def put(self, record: ModelT) -> ModelT:
        """Insert or replace a record. Replacing keeps its list position."""
        is_new = record.id not in self._records
        self._records[record.id] = record
        self._save_record(record)
        if is_new:
            self._save_order()
            logger.debug(f"Stored new {self.kind}: {record.id}")
        else:
            logger.debug(f"Updated {self.kind}: {record.id}")
        return record

    def delete(self, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""
        if record_id not in self._records:
            return False
        del self._records[record_id]
        path = self._record_path(record_id)
        if path.exists():
            path.unlink()
        self._save_order()
        logger.info(f"Deleted {self.kind}: {record_id}")
        return True

    def list_all(self) -> List[ModelT]:
        """All records in insertion order."""
        return list(self._records.values())

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)
