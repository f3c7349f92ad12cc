"""Tests for persistence gateways."""

import json
import os

import httpx
import pytest
from fastapi.testclient import TestClient

from storyboard.blobstore import app as app_module
from storyboard.config import StoryboardConfig
from storyboard.core import BlobPersistence, PersistenceError
from storyboard.core.constants import MAX_RECENT_BACKUPS
from storyboard.gateway import FileGateway, HttpGateway, MemoryGateway
from storyboard.session import EditingSession


def _gateway(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpGateway("http://store.test", "tok123", client=client)


class TestHttpGateway:

    def test_attaches_bearer_token(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(404, json={"detail": "none"})

        assert _gateway(handler).fetch_latest() is None
        assert seen["auth"] == "Bearer tok123"

    def test_store_puts_by_document_id(self):
        def handler(request):
            assert request.method == "PUT"
            assert request.url.path == "/api/storyboards/doc42"
            return httpx.Response(200, json={
                "document_id": "doc42", "data": "c", "created_at": 1.0, "updated_at": 2.0,
            })

        blob = _gateway(handler).store("doc42", "c")
        assert blob.document_id == "doc42"
        assert blob.updated_at == 2.0

    def test_server_error_becomes_persistence_error(self):
        gateway = _gateway(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(PersistenceError, match="500"):
            gateway.store("doc1", "c")
        with pytest.raises(PersistenceError):
            gateway.fetch_latest()

    def test_connection_error_becomes_persistence_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PersistenceError, match="Cannot reach"):
            _gateway(handler).fetch_latest()

    def test_timeout_becomes_persistence_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(PersistenceError, match="timeout"):
            _gateway(handler).store("doc1", "c")

    def test_malformed_record(self):
        gateway = _gateway(lambda request: httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(PersistenceError, match="Malformed"):
            gateway.fetch_latest()

    def test_non_json_success_body_becomes_persistence_error(self):
        gateway = _gateway(lambda request: httpx.Response(200, text="<html>proxy login</html>"))
        with pytest.raises(PersistenceError, match="non-JSON"):
            gateway.fetch_latest()
        with pytest.raises(PersistenceError, match="non-JSON"):
            gateway.store("doc1", "c")

    def test_session_survives_captive_portal(self, codec, clock):
        gateway = _gateway(lambda request: httpx.Response(200, text="<html>proxy login</html>"))
        session = EditingSession(gateway, codec, StoryboardConfig(), timer_factory=clock.timer_factory)

        assert session.load().is_empty()
        assert "unreachable" in session.notices[0]

    def test_round_trip_through_service(self, tmp_path, monkeypatch, codec, clock):
        monkeypatch.setenv("SB_DATA_PATH", str(tmp_path / "blobs.json"))
        monkeypatch.setenv("SB_SAVE_INTERVAL", "3600")

        with TestClient(app_module.app) as client:
            token = client.post("/api/sessions", json={"principal": "reporter"}).json()["token"]
            gateway = HttpGateway(str(client.base_url), token, client=client)

            with EditingSession(gateway, codec, StoryboardConfig(), timer_factory=clock.timer_factory) as session:
                session.load()
                a = session.controller.create_node("Whistleblower X", "source")
                b = session.controller.create_node("Leaked Memo", "evidence")
                session.controller.connect(a, b, "corroborates")
                clock.advance(2.0)
                expected = session.document.serialize()

            reopened = EditingSession(gateway, codec, StoryboardConfig(), timer_factory=clock.timer_factory)
            assert reopened.load().serialize() == expected
            reopened.close(flush=False)


class TestLocalGateways:

    def test_memory_gateway_latest(self):
        gateway = MemoryGateway()
        assert gateway.fetch_latest() is None
        gateway.store("a", "one")
        gateway.store("a", "two")
        assert gateway.fetch_latest().data == "two"
        assert len(gateway.records) == 1

    def test_file_gateway_persists(self, tmp_path):
        path = tmp_path / "board.json"
        FileGateway(path).store("doc1", "cipher")

        latest = FileGateway(path).fetch_latest()
        assert latest.document_id == "doc1"
        assert latest.data == "cipher"

    def test_file_gateway_empty(self, tmp_path):
        assert FileGateway(tmp_path / "missing.json").fetch_latest() is None

    def test_file_gateway_write_failure(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        with pytest.raises(PersistenceError):
            FileGateway(blocker / "board.json").store("doc1", "cipher")

    @pytest.mark.parametrize("records", [
        {"doc1": "cipher"},
        {"doc1": {"data": "cipher"}},
        {"doc1": ["doc1", "cipher"]},
    ])
    def test_file_gateway_malformed_record(self, tmp_path, records):
        path = tmp_path / "board.json"
        path.write_text(json.dumps({"records": records}))
        with pytest.raises(PersistenceError, match="Malformed"):
            FileGateway(path).fetch_latest()

    def test_file_gateway_records_not_a_mapping(self, tmp_path):
        path = tmp_path / "board.json"
        path.write_text(json.dumps({"records": ["doc1"]}))
        assert FileGateway(path).fetch_latest() is None


class TestBlobPersistence:

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "blobs.json"
        path.write_text("{not json")
        assert BlobPersistence(path).load() == {}

    def test_backup_created_once_per_interval(self, tmp_path):
        persistence = BlobPersistence(tmp_path / "blobs.json")
        persistence.save({"a": {"document_id": "a"}})

        assert persistence.maybe_backup() is True
        assert persistence.backup_path(1).exists()
        assert persistence.maybe_backup() is False

    def test_backups_rotate_and_oldest_falls_off(self, tmp_path):
        persistence = BlobPersistence(tmp_path / "blobs.json")
        rounds = MAX_RECENT_BACKUPS + 2

        for version in range(rounds):
            persistence.save({"doc": {"version": version}})
            if persistence.backup_marker.exists():
                os.utime(persistence.backup_marker, (0, 0))
            assert persistence.maybe_backup() is True

        versions = [
            json.loads(persistence.backup_path(i).read_text())["records"]["doc"]["version"]
            for i in range(1, MAX_RECENT_BACKUPS + 1)
        ]
        assert versions == list(range(rounds - 1, rounds - 1 - MAX_RECENT_BACKUPS, -1))
        assert not persistence.backup_path(MAX_RECENT_BACKUPS + 1).exists()
