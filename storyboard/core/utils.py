"""Utility functions for storyboard graph operations."""

import uuid
from datetime import datetime, timezone

from .constants import ID_LENGTH
from .exceptions import ValidationError
from .types import NodeKind


def new_id(prefix: str, taken) -> str:
    """Generate an id with the given prefix that is not in `taken`."""
    while True:
        candidate = f"{prefix}{uuid.uuid4().hex[:ID_LENGTH]}"
        if candidate not in taken:
            return candidate


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def validate_kind(kind) -> NodeKind:
    """Coerce a kind value to NodeKind. Raises ValidationError if invalid."""
    try:
        return NodeKind(kind)
    except (TypeError, ValueError):
        valid = ", ".join(k.value for k in NodeKind)
        raise ValidationError(f"Invalid node kind '{kind}', must be one of: {valid}") from None


def validate_label(label) -> str:
    """Return the stripped label. Raises ValidationError if empty."""
    if not isinstance(label, str) or not label.strip():
        raise ValidationError("Node label must be a non-empty string")
    return label.strip()
