"""Cytoscape-style elements and stylesheet for drawing a storyboard."""

from .core.document import GraphDocument
from .core.selection import Selection
from .core.types import NodeKind

KIND_COLORS: dict[NodeKind, str] = {
    NodeKind.SOURCE: "#e74c3c",
    NodeKind.LEAD: "#f39c12",
    NodeKind.EVIDENCE: "#27ae60",
    NodeKind.THEORY: "#9b59b6",
}

_missing = set(NodeKind) - set(KIND_COLORS)
if _missing:
    raise RuntimeError(f"No render color for node kinds: {sorted(k.value for k in _missing)}")

DEFAULT_NODE_COLOR = "#3498db"
EDGE_COLOR = "#7f8c8d"


def node_color(kind) -> str:
    return KIND_COLORS[NodeKind(kind)]


def to_elements(document: GraphDocument, selection: Selection | None = None) -> list[dict]:
    """Nodes first, then edges, each as {"data": {...}, "classes": "..."}."""
    selected_id = selection.entity_id if selection else None
    snapshot = document.serialize()
    elements = []

    for node in snapshot["nodes"]:
        classes = [node["kind"]]
        if node["id"] == selected_id:
            classes.append("selected")
        elements.append({"group": "nodes", "data": node, "classes": " ".join(classes)})

    for edge in snapshot["edges"]:
        classes = "selected" if edge["id"] == selected_id else ""
        elements.append({"group": "edges", "data": edge, "classes": classes})

    return elements


def stylesheet() -> list[dict]:
    """Base node style, one rule per kind, and the directed edge style."""
    rules = [
        {
            "selector": "node",
            "style": {
                "background-color": DEFAULT_NODE_COLOR,
                "label": "data(label)",
                "text-valign": "center",
                "text-halign": "center",
                "color": "white",
                "font-size": "12px",
                "width": "60px",
                "height": "60px",
                "border-width": 2,
                "border-color": "#2980b9",
            },
        },
    ]
    for kind in NodeKind:
        rules.append({
            "selector": f'node[kind="{kind.value}"]',
            "style": {"background-color": KIND_COLORS[kind]},
        })
    rules.extend([
        {
            "selector": "edge",
            "style": {
                "width": 2,
                "label": "data(label)",
                "line-color": EDGE_COLOR,
                "target-arrow-color": EDGE_COLOR,
                "target-arrow-shape": "triangle",
                "curve-style": "bezier",
            },
        },
        {
            "selector": ".selected",
            "style": {"border-color": "#f1c40f", "border-width": 4, "line-color": "#f1c40f"},
        },
    ])
    return rules
