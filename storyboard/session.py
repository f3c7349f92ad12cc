"""
Editing session: one document, its autosave, and its selection.

Load path:  gateway.fetch_latest -> codec.decrypt -> GraphDocument.deserialize
Save path:  document mutation -> scheduler -> serialize -> encrypt -> gateway.store
"""

import logging
import uuid
from pathlib import Path
from typing import Callable

from .config import StoryboardConfig
from .core import (
    AutosaveScheduler,
    CryptoCodec,
    DecodeError,
    GraphDocument,
    InteractionController,
    PersistenceError,
    ValidationError,
    threading_timer,
)
from .gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class EditingSession:
    """
    Owns a GraphDocument for one editing session.

    No failure here ends the session: the worst case is unsaved changes,
    which save_now() retries. Use as a context manager so close() runs on
    every exit path.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        codec: CryptoCodec,
        config: StoryboardConfig | None = None,
        timer_factory: Callable = threading_timer,
    ):
        self.gateway = gateway
        self.codec = codec
        self.config = config or StoryboardConfig()
        self.timer_factory = timer_factory

        self.document_id: str | None = None
        self.notices: list[str] = []
        self.controller: InteractionController | None = None
        self._unsubscribe_scheduler: Callable[[], None] | None = None
        self.scheduler = AutosaveScheduler(
            self._persist,
            debounce_seconds=self.config.debounce_seconds,
            timer_factory=timer_factory,
        )
        self._attach(GraphDocument())

    def _attach(self, document: GraphDocument):
        """Make `document` the session's document, rewiring listeners."""
        if self._unsubscribe_scheduler is not None:
            self._unsubscribe_scheduler()
            self.controller.detach()
        self.document = document
        self.controller = InteractionController(document)
        self._unsubscribe_scheduler = document.subscribe(self.scheduler.notify_mutation)

    @property
    def has_unsaved_changes(self) -> bool:
        return self.scheduler.has_unsaved_changes

    def load(self) -> GraphDocument:
        """
        Load the latest stored storyboard.

        Unreachable store, corrupt ciphertext, or a malformed document all
        end in an empty, editable document plus a notice.
        """
        try:
            blob = self.gateway.fetch_latest()
        except PersistenceError as e:
            logger.error(f"Could not fetch storyboard: {e}")
            self.notices.append("Storyboard store unreachable; starting with an empty board")
            self._attach(GraphDocument())
            return self.document

        if blob is None:
            logger.info("No stored storyboard, starting empty")
            self._attach(GraphDocument())
            return self.document

        try:
            document = GraphDocument.deserialize(self.codec.decrypt(blob.data))
        except (DecodeError, ValidationError) as e:
            # Wrong key and tampering look the same; never overwrite the record
            logger.warning(f"Stored storyboard {blob.document_id} unreadable: {e}")
            self.notices.append("Stored storyboard could not be decrypted; starting with an empty board")
            self.document_id = None
            self._attach(GraphDocument())
            return self.document

        self.document_id = blob.document_id
        self._attach(document)
        if document.dropped_edges:
            for edge in document.dropped_edges:
                reason = "self-loop" if edge["source"] == edge["target"] else "missing node"
                self.notices.append(
                    f"Dropped connection '{edge['label']}' ({edge['source']} -> {edge['target']}): {reason}"
                )
            # Stored copy still holds the dropped edges
            self.scheduler.notify_mutation()

        return self.document

    def _persist(self):
        """Serialize, encrypt and store. Raises PersistenceError on failure."""
        snapshot = self.document.serialize()
        blob = self.codec.encrypt(snapshot)
        if self.document_id is None:
            self.document_id = uuid.uuid4().hex
        self.gateway.store(self.document_id, blob)
        logger.info(
            f"Saved storyboard {self.document_id}: "
            f"{len(snapshot['nodes'])} nodes, {len(snapshot['edges'])} edges"
        )

    def save_now(self) -> bool:
        """Explicit save. Returns True when everything is persisted."""
        return self.scheduler.flush(self.config.flush_timeout)

    def export(self, path: Path | None = None) -> str:
        """Plaintext JSON export, optionally written to `path`."""
        text = self.document.export_json()
        if path is not None:
            Path(path).write_text(text, encoding="utf-8")
            logger.info(f"Exported storyboard to {path}")
        return text

    def close(self, flush: bool = True) -> bool:
        """Best-effort flush, then stop the autosave timer."""
        ok = self.scheduler.close(self.config.flush_timeout, flush=flush)
        self._unsubscribe_scheduler()
        self.controller.detach()
        return ok

    def __enter__(self) -> "EditingSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
