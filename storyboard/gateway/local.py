"""Gateways that keep blobs in process or in a local file."""

import logging
import threading
import time
from pathlib import Path

from ..core.exceptions import PersistenceError
from ..core.persistence import BlobPersistence
from .base import StoredBlob

logger = logging.getLogger(__name__)


class MemoryGateway:
    """Keeps blobs in a dict. Used for tests and offline sessions."""

    def __init__(self):
        self.records: dict[str, StoredBlob] = {}
        self.store_calls = 0

    def fetch_latest(self) -> StoredBlob | None:
        if not self.records:
            return None
        return max(self.records.values(), key=lambda r: r.updated_at)

    def store(self, document_id: str, data: str) -> StoredBlob:
        self.store_calls += 1
        blob = StoredBlob(document_id, data, time.time())
        self.records[document_id] = blob
        return blob


class FileGateway:
    """Single-user blob file on local disk, written atomically with backups."""

    def __init__(self, path: Path):
        self.persistence = BlobPersistence(Path(path))
        self.lock = threading.Lock()

    def fetch_latest(self) -> StoredBlob | None:
        with self.lock:
            records = self.persistence.load()
        if not records:
            return None
        blobs = [StoredBlob.from_dict(record) for record in records.values()]
        return max(blobs, key=lambda blob: blob.updated_at)

    def store(self, document_id: str, data: str) -> StoredBlob:
        blob = StoredBlob(document_id, data, time.time())
        with self.lock:
            records = self.persistence.load()
            records[document_id] = blob.to_dict()
            if not self.persistence.save(records):
                raise PersistenceError(f"Could not write {self.persistence.path}")
            self.persistence.maybe_backup()
        logger.debug(f"Stored blob {document_id} in {self.persistence.path}")
        return blob
