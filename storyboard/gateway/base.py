"""Persistence gateway contract: a dumb store of opaque blobs."""

from dataclasses import dataclass, asdict
from typing import Protocol

from ..core.exceptions import PersistenceError


@dataclass(frozen=True)
class StoredBlob:
    """One stored storyboard record. `data` is ciphertext and never parsed."""
    document_id: str
    data: str
    updated_at: float

    @classmethod
    def from_dict(cls, record: dict) -> "StoredBlob":
        try:
            return cls(
                document_id=str(record["document_id"]),
                data=str(record["data"]),
                updated_at=float(record.get("updated_at", 0.0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Malformed blob record: {e}") from e

    def to_dict(self) -> dict:
        return asdict(self)


class PersistenceGateway(Protocol):
    """What an editing session needs from storage. Failures raise PersistenceError."""

    def fetch_latest(self) -> StoredBlob | None:
        """Most recently written blob for the current principal, or None."""
        ...

    def store(self, document_id: str, data: str) -> StoredBlob:
        """Upsert the blob under `document_id`."""
        ...
