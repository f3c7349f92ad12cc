"""Tests for the graph document model."""

import json

import pytest

from storyboard.core import (
    DEFAULT_EDGE_LABEL,
    GraphDocument,
    NodeKind,
    NodeReferenceError,
    ValidationError,
)


def _pair(document):
    a = document.add_node("Whistleblower X", NodeKind.SOURCE)
    b = document.add_node("Leaked Memo", NodeKind.EVIDENCE)
    return a, b


class TestNodes:

    def test_add_node_assigns_unique_ids(self, document):
        ids = {document.add_node(f"Lead {i}", "lead") for i in range(50)}
        assert len(ids) == 50
        assert all(i.startswith("node_") for i in ids)

    def test_add_node_fields(self, document):
        node_id = document.add_node("  Leaked Memo  ", "evidence", "page 3")
        node = document.get_node(node_id)

        assert node["label"] == "Leaked Memo"
        assert node["kind"] == "evidence"
        assert node["notes"] == "page 3"
        assert node["created_at"]

    @pytest.mark.parametrize("label", ["", "   ", "\n\t", None])
    def test_blank_label_rejected(self, document, label):
        with pytest.raises(ValidationError):
            document.add_node(label, "lead")
        assert document.is_empty()

    def test_unknown_kind_rejected(self, document):
        with pytest.raises(ValidationError, match="Invalid node kind"):
            document.add_node("Rumour", "gossip")

    def test_update_node(self, document):
        node_id = document.add_node("Draft", "theory")
        document.update_node(node_id, label="Final theory", notes="revised")

        node = document.get_node(node_id)
        assert node["label"] == "Final theory"
        assert node["notes"] == "revised"
        assert node["kind"] == "theory"

    def test_update_missing_node(self, document):
        with pytest.raises(NodeReferenceError):
            document.update_node("node_missing", label="x")

    def test_returned_records_are_copies(self, document):
        node_id = document.add_node("Original", "lead")
        document.get_node(node_id)["label"] = "mutated"
        document.nodes[0]["label"] = "mutated"
        assert document.get_node(node_id)["label"] == "Original"


class TestEdges:

    def test_add_edge(self, document):
        a, b = _pair(document)
        edge_id = document.add_edge(a, b, "corroborates")

        edge = document.get_edge(edge_id)
        assert edge == {"id": edge_id, "source": a, "target": b, "label": "corroborates"}

    def test_default_label(self, document):
        a, b = _pair(document)
        edge_id = document.add_edge(a, b)
        assert document.get_edge(edge_id)["label"] == DEFAULT_EDGE_LABEL

    def test_unknown_endpoint_rejected(self, document):
        a, _ = _pair(document)
        with pytest.raises(NodeReferenceError) as exc:
            document.add_edge(a, "node_ghost")
        assert exc.value.entity_id == "node_ghost"
        assert document.edges == []

    def test_self_loop_rejected(self, document):
        a, _ = _pair(document)
        with pytest.raises(ValidationError, match="Self-loop"):
            document.add_edge(a, a)


class TestRemoval:

    def test_remove_node_cascades(self, document):
        a, b = _pair(document)
        c = document.add_node("Theory", "theory")
        e1 = document.add_edge(a, b)
        e2 = document.add_edge(c, a)
        e3 = document.add_edge(b, c)

        removed = document.remove_node(a)

        assert set(removed) == {e1, e2}
        assert not document.has_node(a)
        assert [e["id"] for e in document.edges] == [e3]
        assert all(a not in (e["source"], e["target"]) for e in document.edges)

    def test_remove_absent_ids_is_noop(self, document):
        a, b = _pair(document)
        document.add_edge(a, b)
        before = document.serialize()

        assert document.remove_node("node_missing") == []
        assert document.remove_edge("edge_missing") is False
        assert document.serialize() == before

    def test_remove_edge(self, document):
        a, b = _pair(document)
        edge_id = document.add_edge(a, b)

        assert document.remove_edge(edge_id) is True
        assert document.edges == []
        assert len(document) == 2


class TestEvents:

    def test_mutations_emit_events(self, document):
        events = []
        document.subscribe(events.append)

        a, b = _pair(document)
        edge_id = document.add_edge(a, b)
        document.update_node(a, notes="n")
        document.remove_node(a)

        assert [(e.action, e.entity_id) for e in events] == [
            ("node_added", a),
            ("node_added", b),
            ("edge_added", edge_id),
            ("node_updated", a),
            ("edge_removed", edge_id),
            ("node_removed", a),
        ]

    def test_noops_and_failures_emit_nothing(self, document):
        events = []
        document.subscribe(events.append)

        document.remove_node("node_missing")
        document.remove_edge("edge_missing")
        with pytest.raises(ValidationError):
            document.add_node("", "lead")

        assert events == []

    def test_unsubscribe(self, document):
        events = []
        unsubscribe = document.subscribe(events.append)
        unsubscribe()
        document.add_node("Quiet", "lead")
        assert events == []


class TestSerialization:

    def test_scenario_serialize_and_remove(self, document, codec):
        a, b = _pair(document)
        edge_id = document.add_edge(a, b, "corroborates")

        doc = document.serialize()
        assert [n["id"] for n in doc["nodes"]] == [a, b]
        assert [(e["id"], e["source"], e["target"]) for e in doc["edges"]] == [(edge_id, a, b)]

        restored = GraphDocument.deserialize(codec.decrypt(codec.encrypt(doc)))
        assert restored.serialize() == doc

        restored.remove_node(a)
        assert [n["id"] for n in restored.nodes] == [b]
        assert restored.edges == []

    def test_deserialize_accepts_mappings(self, document):
        a, b = _pair(document)
        document.add_edge(a, b)
        doc = document.serialize()
        keyed = {
            "nodes": {n["id"]: n for n in doc["nodes"]},
            "edges": {e["id"]: e for e in doc["edges"]},
        }
        assert GraphDocument.deserialize(keyed).serialize() == doc

    def test_deserialize_drops_dangling_edges(self, caplog):
        doc = {
            "nodes": [{"id": "n1", "label": "A", "kind": "lead", "notes": "", "created_at": "t"}],
            "edges": [
                {"id": "e1", "source": "n1", "target": "n2", "label": "points to"},
            ],
        }
        with caplog.at_level("WARNING"):
            restored = GraphDocument.deserialize(doc)

        assert restored.edges == []
        assert [e["id"] for e in restored.dropped_edges] == ["e1"]
        assert "Dropping dangling edge 'e1'" in caplog.text

    def test_deserialize_drops_self_loops(self, caplog):
        doc = {
            "nodes": [
                {"id": "n1", "label": "A", "kind": "lead", "notes": "", "created_at": "t"},
                {"id": "n2", "label": "B", "kind": "theory", "notes": "", "created_at": "t"},
            ],
            "edges": [
                {"id": "e1", "source": "n1", "target": "n1", "label": "loops"},
                {"id": "e2", "source": "n1", "target": "n2", "label": "supports"},
            ],
        }
        with caplog.at_level("WARNING"):
            restored = GraphDocument.deserialize(doc)

        assert [e["id"] for e in restored.edges] == ["e2"]
        assert [e["id"] for e in restored.dropped_edges] == ["e1"]
        assert "Dropping self-loop edge 'e1'" in caplog.text

    @pytest.mark.parametrize("doc", [
        [],
        "nodes",
        {"nodes": "oops"},
        {"nodes": [{"label": "no id", "kind": "lead"}]},
        {"nodes": [{"id": "n1", "kind": "lead"}]},
        {"nodes": [{"id": "n1", "label": "A", "kind": "rumour"}]},
        {"nodes": [{"id": "n1", "label": "A", "kind": "lead"}], "edges": [{"id": "e1", "source": "n1"}]},
        {"nodes": [{"id": "n1", "label": "A", "kind": "lead"}, {"id": "n1", "label": "B", "kind": "lead"}]},
        {"nodes": [{"id": "n1", "label": "A", "kind": "lead"}], "edges": [{"id": "e1", "source": [], "target": "n1"}]},
        {"nodes": [{"id": "n1", "label": "A", "kind": "lead"}], "edges": [{"id": "e1", "source": "n1", "target": {"id": "n1"}}]},
        {"nodes": [{"id": "n1", "label": "A", "kind": "lead"}], "edges": [{"id": "e1", "source": 7, "target": "n1"}]},
        {"nodes": [{"id": "n1", "label": "A", "kind": "lead"}, {"id": "n2", "label": "B", "kind": "lead"}],
         "edges": [{"id": "e1", "source": "n1", "target": "n2", "label": ["x"]}]},
        {"nodes": [{"id": "n1", "label": "A", "kind": "lead", "notes": 12}]},
        {"nodes": [{"id": ["n1"], "label": "A", "kind": "lead"}]},
        {"nodes": [{"id": "n1", "label": "A", "kind": ["lead"]}]},
    ])
    def test_deserialize_rejects_malformed(self, doc):
        with pytest.raises(ValidationError):
            GraphDocument.deserialize(doc)

    def test_deserialize_legacy_elements(self):
        legacy = {"elements": [
            {"data": {"id": "node_1", "label": "Tipster", "type": "source", "notes": "",
                      "timestamp": "2024-01-01T00:00:00Z"}},
            {"data": {"id": "node_2", "label": "Bank record", "type": "evidence"}},
            {"data": {"id": "edge_1", "source": "node_1", "target": "node_2", "label": "connects to"}},
        ]}
        restored = GraphDocument.deserialize(legacy)

        assert restored.get_node("node_1")["kind"] == "source"
        assert restored.get_node("node_1")["created_at"] == "2024-01-01T00:00:00Z"
        assert restored.get_edge("edge_1")["target"] == "node_2"

    def test_export_json_is_plaintext(self, document):
        a, b = _pair(document)
        document.add_edge(a, b, "corroborates")

        exported = json.loads(document.export_json())
        assert exported == document.serialize()
        assert exported["nodes"][0]["label"] == "Whistleblower X"
