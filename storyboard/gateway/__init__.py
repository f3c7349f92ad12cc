"""Persistence gateways for opaque storyboard blobs."""

from .base import PersistenceGateway, StoredBlob
from .local import FileGateway, MemoryGateway
from .remote import HttpGateway

__all__ = [
    "PersistenceGateway",
    "StoredBlob",
    "FileGateway",
    "MemoryGateway",
    "HttpGateway",
]
