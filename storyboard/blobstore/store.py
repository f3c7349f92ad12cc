"""Per-principal opaque blob store with periodic disk persistence."""

import logging
import os
import threading
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from ..core import BlobPersistence, SAVE_INTERVAL_SECONDS, TOKEN_TTL_SECONDS
from .token_manager import TokenManager

logger = logging.getLogger(__name__)


@dataclass
class BlobStoreConfig:
    """Configuration for the blob store service."""
    data_path: Path = Path.home() / ".storyboard/blobs.json"
    save_interval: int = SAVE_INTERVAL_SECONDS
    token_ttl: int = TOKEN_TTL_SECONDS

    @classmethod
    def from_env(cls) -> "BlobStoreConfig":
        return cls(
            data_path=Path(os.getenv("SB_DATA_PATH", str(cls.data_path))),
            save_interval=int(os.getenv("SB_SAVE_INTERVAL", str(SAVE_INTERVAL_SECONDS))),
            token_ttl=int(os.getenv("SB_TOKEN_TTL", str(TOKEN_TTL_SECONDS))),
        )


class BlobStore:
    """
    Opaque storyboard records grouped by principal.

    Structure:
    - records[principal][document_id] = {document_id, data, created_at, updated_at}

    `data` is ciphertext produced by clients and is never inspected.
    """

    def __init__(self, config: BlobStoreConfig, token_manager: TokenManager):
        self.config = config
        self.token_manager = token_manager
        self.persistence = BlobPersistence(config.data_path)

        self.lock = threading.RLock()
        self.records: dict[str, dict[str, dict]] = self.persistence.load()
        self.dirty = False
        self._last_ts = 0.0

        # Background saver
        self._stop = threading.Event()
        self.saver_thread = threading.Thread(target=self._periodic_save, daemon=True)
        self.saver_thread.start()

        logger.info(f"Blob store initialized: {len(self.records)} principals")

    # ========================================================================
    # Public API
    # ========================================================================

    def latest(self, principal: str) -> dict | None:
        """Most recently updated record for a principal, or None."""
        with self.lock:
            owned = self.records.get(principal, {})
            if not owned:
                return None
            return dict(max(owned.values(), key=lambda r: r["updated_at"]))

    def get(self, principal: str, document_id: str) -> dict | None:
        with self.lock:
            record = self.records.get(principal, {}).get(document_id)
            return dict(record) if record else None

    def list_records(self, principal: str) -> list[dict]:
        """Record metadata, newest first."""
        with self.lock:
            owned = self.records.get(principal, {}).values()
            summaries = [
                {
                    "document_id": r["document_id"],
                    "created_at": r["created_at"],
                    "updated_at": r["updated_at"],
                    "size": len(r["data"]),
                }
                for r in owned
            ]
        return sorted(summaries, key=lambda s: s["updated_at"], reverse=True)

    def put(self, principal: str, document_id: str, data: str) -> dict:
        """Create or overwrite a record."""
        with self.lock:
            owned = self.records.setdefault(principal, {})
            # Strictly increasing so "latest" is unambiguous
            ts = max(time.time(), self._last_ts + 1e-6)
            self._last_ts = ts
            record = owned.get(document_id, {"document_id": document_id, "created_at": ts})
            record["data"] = data
            record["updated_at"] = ts
            owned[document_id] = record
            self.dirty = True

            logger.debug(f"Put record {document_id} for '{principal}' ({len(data)} chars)")
            return dict(record)

    def create(self, principal: str, data: str) -> dict:
        """Insert a record under a fresh server-generated id."""
        with self.lock:
            document_id = uuid.uuid4().hex
            while document_id in self.records.get(principal, {}):
                document_id = uuid.uuid4().hex
            return self.put(principal, document_id, data)

    def delete(self, principal: str, document_id: str) -> bool:
        with self.lock:
            owned = self.records.get(principal, {})
            if document_id not in owned:
                return False
            del owned[document_id]
            if not owned:
                del self.records[principal]
            self.dirty = True

            logger.info(f"Deleted record {document_id} for '{principal}'")
            return True

    # ========================================================================
    # Maintenance
    # ========================================================================

    def save_if_dirty(self) -> bool:
        """Write to disk if anything changed. Returns True if a save happened."""
        with self.lock:
            if not self.dirty:
                return False
            if self.persistence.save(self.records):
                self.dirty = False
                self.persistence.maybe_backup()
                return True
            return False

    def _periodic_save(self):
        """Background thread for periodic saves and token cleanup."""
        while not self._stop.wait(self.config.save_interval):
            self._maintenance_tick()

    def _maintenance_tick(self):
        """One saver iteration. Errors are logged so the thread keeps running."""
        try:
            self.save_if_dirty()
            self.token_manager.cleanup_expired()
        except Exception as e:
            logger.error(f"Periodic maintenance failed: {e}", exc_info=True)

    def shutdown(self):
        """Gracefully shutdown the store."""
        logger.info("Shutting down blob store...")
        self._stop.set()
        self.saver_thread.join(timeout=5)

        # Final save
        self.save_if_dirty()

        logger.info("Blob store shutdown complete")
