"""Type definitions for the storyboard graph."""

from enum import Enum
from typing import TypedDict


class NodeKind(str, Enum):
    """Closed set of investigative artifact categories."""
    SOURCE = "source"
    LEAD = "lead"
    EVIDENCE = "evidence"
    THEORY = "theory"


class Node(TypedDict):
    """Node in the storyboard graph."""
    id: str
    label: str
    kind: str
    notes: str
    created_at: str


class Edge(TypedDict):
    """Directed relationship between two nodes."""
    id: str
    source: str
    target: str
    label: str


class SerializedDocument(TypedDict):
    """Plaintext shape handed to the codec and offered for export."""
    nodes: list[Node]
    edges: list[Edge]
