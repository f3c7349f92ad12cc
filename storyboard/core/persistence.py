"""Blob record persistence with atomic writes and rotating backups."""

import json
import logging
import os
import shutil
import time
from pathlib import Path

from .constants import BACKUP_INTERVAL_SECONDS, MAX_RECENT_BACKUPS

logger = logging.getLogger(__name__)


class BlobPersistence:
    """
    Stores a JSON mapping of blob records in a single file.

    Record contents are never interpreted here; the ciphertext inside is
    opaque. Writes go through a temp file and an atomic rename.
    """

    def __init__(self, path: Path):
        self.path = path
        self.backup_marker = path.with_suffix(".last_backup")

    def load(self) -> dict:
        """Load records from disk. Returns {} if the file is missing or unreadable."""
        if not self.path.exists():
            return {}

        try:
            with open(self.path) as f:
                data = json.load(f)

            records = data.get("records", {}) if isinstance(data, dict) else None
            if not isinstance(records, dict):
                logger.error(f"Blob file {self.path} has no records mapping, ignoring it")
                return {}

            logger.info(f"Loaded {len(records)} records from {self.path}")
            return records

        except Exception as e:
            logger.error(f"Failed to load blob records from {self.path}: {e}")
            return {}

    def save(self, records: dict) -> bool:
        """
        Save records to disk with atomic write.
        Returns True on success, False on failure.
        """
        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            data = {"records": records, "_meta": {"saved_at": time.time()}}

            with open(temp_path, 'w') as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())

            # Atomic rename (POSIX guarantees atomicity)
            temp_path.replace(self.path)

            logger.debug(f"Saved blob records to {self.path}")
            return True

        except Exception as e:
            logger.error(f"Failed to save blob records to {self.path}: {e}")
            if temp_path.exists():
                temp_path.unlink()
            return False

    def maybe_backup(self) -> bool:
        """
        Rotate backups if enough time has passed since the last one.
        Returns True if a backup was created.
        """
        if not self.path.exists():
            return False

        if self.backup_marker.exists():
            last_backup_time = self.backup_marker.stat().st_mtime
            if time.time() - last_backup_time < BACKUP_INTERVAL_SECONDS:
                return False

        self._rotate_backups()
        self.backup_marker.touch()
        return True

    def backup_path(self, index: int) -> Path:
        return self.path.with_suffix(f"{self.path.suffix}.bak.{index}")

    def _rotate_backups(self):
        """Shift .bak.N -> .bak.N+1 (oldest falls off) and copy current to .bak.1."""
        for i in range(MAX_RECENT_BACKUPS - 1, 0, -1):
            old_backup = self.backup_path(i)
            if old_backup.exists():
                shutil.copy2(old_backup, self.backup_path(i + 1))

        shutil.copy2(self.path, self.backup_path(1))
        logger.debug(f"Created backup: {self.backup_path(1)}")
