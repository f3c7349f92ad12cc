"""Reference blob store service for encrypted storyboards."""

from .token_manager import TokenManager
from .store import BlobStore, BlobStoreConfig

__all__ = [
    "TokenManager",
    "BlobStore",
    "BlobStoreConfig",
]
