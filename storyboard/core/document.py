"""In-memory storyboard graph with cascading deletes and mutation events."""

import copy
import json
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from .constants import DEFAULT_EDGE_LABEL, EDGE_ID_PREFIX, NODE_ID_PREFIX
from .exceptions import NodeReferenceError, ValidationError
from .types import Edge, Node, SerializedDocument
from .utils import new_id, utc_now, validate_kind, validate_label

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MutationEvent:
    """A single change applied to a document."""
    action: str
    entity_id: str


Listener = Callable[[MutationEvent], None]


class GraphDocument:
    """
    Nodes and edges of one storyboard.

    Invariant: every edge's source and target exist in `nodes`. Removing a
    node removes its incident edges in the same call.
    """

    def __init__(self):
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self._listeners: list[Listener] = []
        self.dropped_edges: list[Edge] = []
        self.lock = threading.RLock()

    # ========================================================================
    # Events
    # ========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a mutation listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, action: str, entity_id: str):
        event = MutationEvent(action, entity_id)
        for listener in list(self._listeners):
            listener(event)

    # ========================================================================
    # Mutations
    # ========================================================================

    def add_node(self, label: str, kind, notes: str = "") -> str:
        """Create a node. Returns its id."""
        label = validate_label(label)
        kind = validate_kind(kind)

        with self.lock:
            node_id = new_id(NODE_ID_PREFIX, self._nodes)
            self._nodes[node_id] = {
                "id": node_id,
                "label": label,
                "kind": kind.value,
                "notes": notes or "",
                "created_at": utc_now(),
            }

        logger.debug(f"Added {kind.value} node '{node_id}'")
        self._emit("node_added", node_id)
        return node_id

    def add_edge(self, source_id: str, target_id: str, label: str = DEFAULT_EDGE_LABEL) -> str:
        """Connect two existing nodes. Returns the edge id."""
        with self.lock:
            for ref in (source_id, target_id):
                if ref not in self._nodes:
                    raise NodeReferenceError(ref)
            if source_id == target_id:
                raise ValidationError(f"Self-loop on '{source_id}' is not allowed")

            edge_id = new_id(EDGE_ID_PREFIX, self._edges)
            self._edges[edge_id] = {
                "id": edge_id,
                "source": source_id,
                "target": target_id,
                "label": label if label is not None else DEFAULT_EDGE_LABEL,
            }

        logger.debug(f"Added edge {source_id}->{target_id} '{edge_id}'")
        self._emit("edge_added", edge_id)
        return edge_id

    def update_node(self, node_id: str, label: str | None = None, notes: str | None = None) -> Node:
        """Edit the label and/or notes of a node."""
        with self.lock:
            if node_id not in self._nodes:
                raise NodeReferenceError(node_id)
            node = self._nodes[node_id]
            if label is not None:
                node["label"] = validate_label(label)
            if notes is not None:
                node["notes"] = notes
            result = dict(node)

        self._emit("node_updated", node_id)
        return result

    def remove_node(self, node_id: str) -> list[str]:
        """
        Remove a node and every edge touching it.
        Returns the removed edge ids. Absent ids are a no-op.
        """
        with self.lock:
            if node_id not in self._nodes:
                return []

            incident = [
                edge_id for edge_id, edge in self._edges.items()
                if edge["source"] == node_id or edge["target"] == node_id
            ]
            for edge_id in incident:
                del self._edges[edge_id]
            del self._nodes[node_id]

        for edge_id in incident:
            self._emit("edge_removed", edge_id)
        self._emit("node_removed", node_id)

        logger.debug(f"Removed node '{node_id}' and {len(incident)} edges")
        return incident

    def remove_edge(self, edge_id: str) -> bool:
        """Remove an edge. Returns False if it did not exist."""
        with self.lock:
            if edge_id not in self._edges:
                return False
            del self._edges[edge_id]

        self._emit("edge_removed", edge_id)
        return True

    # ========================================================================
    # Reads
    # ========================================================================

    def get_node(self, node_id: str) -> Node | None:
        node = self._nodes.get(node_id)
        return dict(node) if node else None

    def get_edge(self, edge_id: str) -> Edge | None:
        edge = self._edges.get(edge_id)
        return dict(edge) if edge else None

    @property
    def nodes(self) -> list[Node]:
        return [dict(n) for n in self._nodes.values()]

    @property
    def edges(self) -> list[Edge]:
        return [dict(e) for e in self._edges.values()]

    def edges_for(self, node_id: str) -> list[Edge]:
        """All edges with the node as source or target."""
        return [
            dict(e) for e in self._edges.values()
            if e["source"] == node_id or e["target"] == node_id
        ]

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edges

    def is_empty(self) -> bool:
        return not self._nodes and not self._edges

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._nodes or entity_id in self._edges

    def __len__(self) -> int:
        return len(self._nodes)

    # ========================================================================
    # Serialization
    # ========================================================================

    def serialize(self) -> SerializedDocument:
        """Snapshot as {"nodes": [...], "edges": [...]} in insertion order."""
        with self.lock:
            return {
                "nodes": copy.deepcopy(list(self._nodes.values())),
                "edges": copy.deepcopy(list(self._edges.values())),
            }

    def export_json(self, indent: int = 2) -> str:
        """Plaintext JSON export of the document."""
        return json.dumps(self.serialize(), indent=indent, ensure_ascii=False)

    @classmethod
    def deserialize(cls, doc: dict) -> "GraphDocument":
        """
        Build a document from its serialized form.

        Raises ValidationError for malformed shapes. Edges with a missing
        endpoint, and self-loops, are dropped, logged, and kept in
        `dropped_edges`.
        """
        if not isinstance(doc, dict):
            raise ValidationError("Document must be a JSON object")

        if "elements" in doc and "nodes" not in doc:
            doc = elements_to_document(doc["elements"])

        document = cls()
        for raw in _records(doc, "nodes"):
            node = _parse_node(raw)
            if node["id"] in document._nodes:
                raise ValidationError(f"Duplicate node id '{node['id']}'")
            document._nodes[node["id"]] = node

        for raw in _records(doc, "edges"):
            edge = _parse_edge(raw)
            if edge["id"] in document._edges:
                raise ValidationError(f"Duplicate edge id '{edge['id']}'")
            if edge["source"] not in document._nodes or edge["target"] not in document._nodes:
                logger.warning(
                    f"Dropping dangling edge '{edge['id']}' ({edge['source']}->{edge['target']})"
                )
                document.dropped_edges.append(edge)
                continue
            if edge["source"] == edge["target"]:
                logger.warning(f"Dropping self-loop edge '{edge['id']}' on {edge['source']}")
                document.dropped_edges.append(edge)
                continue
            document._edges[edge["id"]] = edge

        logger.info(
            f"Loaded document: {len(document._nodes)} nodes, {len(document._edges)} edges"
            + (f", dropped {len(document.dropped_edges)} edges" if document.dropped_edges else "")
        )
        return document


def elements_to_document(elements) -> SerializedDocument:
    """
    Convert a legacy cytoscape element list into the serialized shape.

    Legacy elements look like {"data": {...}}; edges carry source/target,
    nodes carry `type` for the kind and `timestamp` for creation time.
    """
    if not isinstance(elements, list):
        raise ValidationError("'elements' must be a list")

    nodes, edges = [], []
    for element in elements:
        data = element.get("data") if isinstance(element, dict) else None
        if not isinstance(data, dict):
            raise ValidationError("Element missing 'data' object")

        if "source" in data or "target" in data:
            edges.append({
                "id": data.get("id"),
                "source": data.get("source"),
                "target": data.get("target"),
                "label": data.get("label"),
            })
        else:
            nodes.append({
                "id": data.get("id"),
                "label": data.get("label"),
                "kind": data.get("kind", data.get("type")),
                "notes": data.get("notes", ""),
                "created_at": data.get("created_at", data.get("timestamp")),
            })

    return {"nodes": nodes, "edges": edges}


def _records(doc: dict, key: str) -> list:
    value = doc.get(key, [])
    if isinstance(value, dict):
        return list(value.values())
    if not isinstance(value, list):
        raise ValidationError(f"'{key}' must be a list or mapping")
    return value


def _require(raw: dict, field: str, entity: str):
    if field not in raw or raw[field] is None:
        raise ValidationError(f"{entity} record missing required field '{field}'")
    return raw[field]


def _require_str(raw: dict, field: str, entity: str) -> str:
    value = _require(raw, field, entity)
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{entity} {field} must be a non-empty string")
    return value


def _optional_str(raw: dict, field: str, entity: str, default: str) -> str:
    value = raw.get(field)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{entity} {field} must be a string")
    return value


def _parse_node(raw) -> Node:
    if not isinstance(raw, dict):
        raise ValidationError("Node record must be an object")
    return {
        "id": _require_str(raw, "id", "Node"),
        "label": validate_label(_require(raw, "label", "Node")),
        "kind": validate_kind(_require(raw, "kind", "Node")).value,
        "notes": _optional_str(raw, "notes", "Node", ""),
        "created_at": _optional_str(raw, "created_at", "Node", "") or utc_now(),
    }


def _parse_edge(raw) -> Edge:
    if not isinstance(raw, dict):
        raise ValidationError("Edge record must be an object")
    return {
        "id": _require_str(raw, "id", "Edge"),
        "source": _require_str(raw, "source", "Edge"),
        "target": _require_str(raw, "target", "Edge"),
        "label": _optional_str(raw, "label", "Edge", DEFAULT_EDGE_LABEL),
    }
