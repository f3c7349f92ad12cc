"""Custom exceptions for storyboard operations."""


class StoryboardError(Exception):
    """Base exception for storyboard operations."""
    pass


class ValidationError(StoryboardError):
    """Raised when mutation input or a loaded document is malformed."""
    pass


class NodeReferenceError(StoryboardError):
    """Raised when an operation references a node or edge that does not exist."""
    def __init__(self, entity_id: str, entity: str = "node"):
        self.entity_id = entity_id
        self.entity = entity
        super().__init__(f"Unknown {entity} '{entity_id}'")


class DecodeError(StoryboardError):
    """Raised when ciphertext is malformed, tampered with, or not a document."""
    pass


class PersistenceError(StoryboardError):
    """Raised when the blob store cannot be reached or rejects a request."""
    pass


class TokenNotFoundError(StoryboardError):
    """Raised when a bearer token is unknown or expired."""
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown or expired token: {token[:6]}...")
