"""Core storyboard graph components."""

from .types import NodeKind, Node, Edge, SerializedDocument
from .constants import *
from .exceptions import *
from .codec import CryptoCodec
from .document import GraphDocument, MutationEvent, elements_to_document
from .autosave import AutosaveScheduler, SaveState, threading_timer
from .selection import InteractionController, Selection, SelectionState
from .persistence import BlobPersistence
from .utils import new_id, utc_now, validate_kind, validate_label

__all__ = [
    # Types
    "NodeKind",
    "Node",
    "Edge",
    "SerializedDocument",
    # Constants
    "ID_LENGTH",
    "NODE_ID_PREFIX",
    "EDGE_ID_PREFIX",
    "DEFAULT_EDGE_LABEL",
    "DEBOUNCE_SECONDS",
    "FLUSH_TIMEOUT_SECONDS",
    "CIPHER_VERSION",
    "KEY_LENGTH",
    "NONCE_LENGTH",
    "KDF_ITERATIONS",
    "TOKEN_LENGTH",
    "TOKEN_TTL_SECONDS",
    "SAVE_INTERVAL_SECONDS",
    "MAX_RECENT_BACKUPS",
    "BACKUP_INTERVAL_SECONDS",
    # Exceptions
    "StoryboardError",
    "ValidationError",
    "NodeReferenceError",
    "DecodeError",
    "PersistenceError",
    "TokenNotFoundError",
    # Classes
    "CryptoCodec",
    "GraphDocument",
    "MutationEvent",
    "AutosaveScheduler",
    "SaveState",
    "InteractionController",
    "Selection",
    "SelectionState",
    "BlobPersistence",
    # Functions
    "elements_to_document",
    "threading_timer",
    "new_id",
    "utc_now",
    "validate_kind",
    "validate_label",
]
