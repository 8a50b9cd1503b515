"""Persistence of the last observed listing snapshot."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..db import get_connection, init_db
from ..models.listing import ListingRecord, records_from_json, records_to_json

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Backing storage unreachable, unreadable or not writable."""


class SnapshotStore(ABC):
    """Holds the most recent extracted record set as one JSON document."""

    @abstractmethod
    def load(self) -> Optional[List[ListingRecord]]:
        """
        Return the stored snapshot, or None if nothing was stored yet.

        Raises:
            StoreError: If the storage cannot be read
        """
        pass

    @abstractmethod
    def save(self, records: Sequence[ListingRecord]) -> None:
        """
        Replace the stored snapshot wholesale.

        Raises:
            StoreError: If the snapshot cannot be written
        """
        pass


class FileSnapshotStore(SnapshotStore):
    """Snapshot kept in a local JSON file."""

    DEFAULT_PATH = "/tmp/licitace_data.json"

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or self.DEFAULT_PATH)

    def load(self) -> Optional[List[ListingRecord]]:
        if not self.path.exists():
            logger.info(f"No snapshot at {self.path}")
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                records = records_from_json(json.load(f))
        except (OSError, ValueError) as e:
            raise StoreError(f"Failed to read snapshot {self.path}: {e}") from e

        logger.debug(f"Loaded {len(records)} records from {self.path}")
        return records

    def save(self, records: Sequence[ListingRecord]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(records_to_json(records), f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StoreError(f"Failed to write snapshot {self.path}: {e}") from e

        logger.info(f"Saved {len(records)} records to {self.path}")


class PostgresSnapshotStore(SnapshotStore):
    """Snapshot kept as a JSON document in the snapshots table."""

    DEFAULT_KEY = "licitace"

    def __init__(self, key: Optional[str] = None):
        self.key = key or self.DEFAULT_KEY
        self._initialized = False

    def _ensure_table(self) -> None:
        if not self._initialized:
            init_db()
            self._initialized = True

    def load(self) -> Optional[List[ListingRecord]]:
        try:
            self._ensure_table()
            with get_connection() as conn:
                cur = conn.cursor()
                cur.execute("SELECT data FROM snapshots WHERE key = %s", (self.key,))
                row = cur.fetchone()
        except Exception as e:
            raise StoreError(f"Failed to read snapshot '{self.key}': {e}") from e

        if row is None:
            logger.info(f"No snapshot stored under '{self.key}'")
            return None

        try:
            return records_from_json(json.loads(row["data"]))
        except ValueError as e:
            raise StoreError(f"Corrupt snapshot '{self.key}': {e}") from e

    def save(self, records: Sequence[ListingRecord]) -> None:
        document = json.dumps(records_to_json(records), ensure_ascii=False)
        try:
            self._ensure_table()
            with get_connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    """
                    INSERT INTO snapshots (key, data, updated_at)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (key) DO UPDATE
                    SET data = EXCLUDED.data, updated_at = EXCLUDED.updated_at
                    """,
                    (self.key, document, datetime.utcnow()),
                )
        except Exception as e:
            raise StoreError(f"Failed to write snapshot '{self.key}': {e}") from e

        logger.info(f"Saved {len(records)} records under '{self.key}'")


def get_snapshot_store(config: Dict[str, Any]) -> SnapshotStore:
    """Factory for the store configured under the snapshot section."""
    snapshot_config = config.get("snapshot", {})
    backend = snapshot_config.get("backend", "file")

    if backend == "file":
        return FileSnapshotStore(snapshot_config.get("path"))
    if backend == "postgres":
        return PostgresSnapshotStore(snapshot_config.get("key"))
    raise ValueError(f"Unknown snapshot backend: {backend}. Available: ['file', 'postgres']")
