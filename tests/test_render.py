"""Tests for the render adapter."""

from storyboard.core import InteractionController, NodeKind
from storyboard.render import KIND_COLORS, node_color, stylesheet, to_elements


def test_every_kind_has_a_color():
    assert set(KIND_COLORS) == set(NodeKind)
    assert node_color("source") == "#e74c3c"


def test_elements_mark_selection(document):
    controller = InteractionController(document)
    a = controller.create_node("Tipster", "source")
    b = controller.create_node("Ledger", "evidence")
    edge = controller.connect(a, b)
    controller.select_edge(edge)

    elements = to_elements(document, controller.selection)

    assert [el["group"] for el in elements] == ["nodes", "nodes", "edges"]
    assert elements[0]["classes"] == "source"
    assert elements[2]["classes"] == "selected"
    assert elements[2]["data"]["source"] == a


def test_stylesheet_has_rule_per_kind():
    selectors = [rule["selector"] for rule in stylesheet()]
    for kind in NodeKind:
        assert f'node[kind="{kind.value}"]' in selectors
    assert "edge" in selectors
