"""Maps canvas gestures to document mutations and tracks the single selection."""

import logging
from dataclasses import dataclass
from enum import Enum

from .constants import DEFAULT_EDGE_LABEL
from .document import GraphDocument, MutationEvent
from .exceptions import NodeReferenceError, ValidationError

logger = logging.getLogger(__name__)


class SelectionState(Enum):
    NO_SELECTION = "no_selection"
    NODE_SELECTED = "node_selected"
    EDGE_SELECTED = "edge_selected"


@dataclass(frozen=True)
class Selection:
    kind: str  # "node" or "edge"
    entity_id: str


class InteractionController:
    """
    Translates user gestures into GraphDocument calls.

    At most one entity is selected at a time. The selection is replaced as a
    whole and is cleared whenever the entity it points at leaves the
    document, whatever removed it.
    """

    def __init__(self, document: GraphDocument):
        self.document = document
        self._selection: Selection | None = None
        self._unsubscribe = document.subscribe(self._on_mutation)

    @property
    def selection(self) -> Selection | None:
        return self._selection

    @property
    def state(self) -> SelectionState:
        if self._selection is None:
            return SelectionState.NO_SELECTION
        if self._selection.kind == "node":
            return SelectionState.NODE_SELECTED
        return SelectionState.EDGE_SELECTED

    def selected_entity(self) -> dict | None:
        """The selected node or edge record, if any."""
        if self._selection is None:
            return None
        if self._selection.kind == "node":
            return self.document.get_node(self._selection.entity_id)
        return self.document.get_edge(self._selection.entity_id)

    # ========================================================================
    # Gestures
    # ========================================================================

    def create_node(self, label: str, kind, notes: str = "") -> str:
        return self.document.add_node(label, kind, notes)

    def connect(self, source_id: str, target_id: str, label: str = DEFAULT_EDGE_LABEL) -> str:
        return self.document.add_edge(source_id, target_id, label)

    def connect_selected_to(self, target_id: str, label: str = DEFAULT_EDGE_LABEL) -> str:
        """Drag from the selected node onto another node."""
        if self.state is not SelectionState.NODE_SELECTED:
            raise ValidationError("Select a node before connecting it")
        return self.document.add_edge(self._selection.entity_id, target_id, label)

    def select_node(self, node_id: str) -> Selection:
        if not self.document.has_node(node_id):
            raise NodeReferenceError(node_id)
        self._selection = Selection("node", node_id)
        return self._selection

    def select_edge(self, edge_id: str) -> Selection:
        if not self.document.has_edge(edge_id):
            raise NodeReferenceError(edge_id, entity="edge")
        self._selection = Selection("edge", edge_id)
        return self._selection

    def deselect(self):
        self._selection = None

    def click_canvas(self):
        """Clicking empty canvas clears the selection."""
        self.deselect()

    def edit_selected(self, label: str | None = None, notes: str | None = None) -> dict:
        if self.state is not SelectionState.NODE_SELECTED:
            raise ValidationError("Only a selected node can be edited")
        return self.document.update_node(self._selection.entity_id, label=label, notes=notes)

    def delete_selected(self) -> dict:
        """
        Delete whatever is selected and clear the selection.
        Returns {"deleted": id or None, "kind": ..., "edges_deleted": [...]}.
        """
        selection = self._selection
        if selection is None:
            return {"deleted": None, "kind": None, "edges_deleted": []}

        self._selection = None
        if selection.kind == "node":
            removed_edges = self.document.remove_node(selection.entity_id)
        else:
            self.document.remove_edge(selection.entity_id)
            removed_edges = []

        logger.debug(f"Deleted selected {selection.kind} '{selection.entity_id}'")
        return {"deleted": selection.entity_id, "kind": selection.kind, "edges_deleted": removed_edges}

    def detach(self):
        """Stop listening to the document."""
        self._unsubscribe()

    def _on_mutation(self, event: MutationEvent):
        if self._selection is None:
            return
        if event.action in ("node_removed", "edge_removed") and event.entity_id == self._selection.entity_id:
            self._selection = None
