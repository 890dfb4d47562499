"""
Tests for the update flows and the connection bootstrap / liveness loop.
"""

import json

import pytest
from simple_websocket import ConnectionClosed

from routes.stream import wait_for_disconnect
from services.updates import UpdateOrchestrator
from store import ChatUser, PageConfig, SharedConfig


@pytest.fixture()
def orchestrator(store, registry, hub) -> UpdateOrchestrator:
    return UpdateOrchestrator(store, registry, hub)


def test_page_update_broadcasts_stored_record(orchestrator, hub, fake_conn):
    conn = fake_conn()
    hub.register(conn, "alice")

    orchestrator.update_page("alice", PageConfig(display_name="Alice", config=SharedConfig(
        message="Hi", chat_partner=ChatUser(name="Bob", status="Away"),
    )))

    assert len(conn.sent) == 1
    view = conn.sent[0]
    assert view["layout"] == "light"
    assert view["theme"]["primaryColor"] == "#ffffff"
    assert view["components"][0]["content"] == "Hi"
    assert view["components"][0]["properties"] == {"userName": "Bob", "userStatus": "Away"}


def test_page_update_requires_page_id(orchestrator, registry):
    with pytest.raises(ValueError):
        orchestrator.update_page("", PageConfig())
    assert registry.list() == []


def test_global_update_merges_and_broadcasts_to_empty_tag(orchestrator, hub, fake_conn):
    paged, untagged = fake_conn(), fake_conn()
    hub.register(paged, "team")
    hub.register(untagged, "")

    merged = orchestrator.update_global(SharedConfig(color="#00ff00"))

    assert merged.color == "#00ff00"
    assert merged.message == "Welcome to Chat"
    assert paged.sent == []
    assert untagged.sent[0]["theme"]["primaryColor"] == "#00ff00"


def test_global_reset_broadcasts_defaults(orchestrator, store, hub, fake_conn):
    untagged = fake_conn()
    hub.register(untagged, "")
    store.merge_update(SharedConfig(message="changed"))

    orchestrator.reset_global()

    assert untagged.sent[0]["components"][0]["content"] == "Welcome to Chat"
    assert store.read() == SharedConfig.defaults()


def test_bootstrap_sends_existing_page(orchestrator, registry, hub, fake_conn):
    registry.upsert("team", PageConfig(display_name="Team", config=SharedConfig(message="Standup")))
    other = fake_conn()
    hub.register(other, "team")
    conn = fake_conn()

    page = orchestrator.bootstrap(conn, "team")

    assert page.display_name == "Team"
    assert hub.count("team") == 2
    assert len(conn.sent) == 1
    assert conn.sent[0]["components"][0]["content"] == "Standup"
    # Initial snapshot goes to the new connection only
    assert other.sent == []


def test_bootstrap_unknown_page_registers_and_waits(orchestrator, hub, fake_conn):
    conn = fake_conn()
    assert orchestrator.bootstrap(conn, "later") is None
    assert conn.sent == []
    assert hub.count("later") == 1

    orchestrator.update_page("later", PageConfig(display_name="Later"))
    assert len(conn.sent) == 1


def test_bootstrap_without_page_id_registers_nothing(orchestrator, hub, fake_conn):
    with pytest.raises(ValueError):
        orchestrator.bootstrap(fake_conn(), "")
    assert hub.count() == 0


def test_bootstrap_send_failure_drops_connection(orchestrator, registry, hub, fake_conn):
    registry.upsert("p", PageConfig())
    bad = fake_conn(fail_send=True)
    orchestrator.bootstrap(bad, "p")
    assert hub.count() == 0
    assert bad.closed


def test_bootstrap_resends_when_page_changes_mid_send(orchestrator, registry, hub, fake_conn, monkeypatch):
    registry.upsert("p", PageConfig(config=SharedConfig(message="old")))
    real_get = registry.get_versioned
    calls = []

    def get_then_update(page_id):
        result = real_get(page_id)
        calls.append(page_id)
        if len(calls) == 1:
            # Lands after the read, before the initial send
            orchestrator.update_page("p", PageConfig(config=SharedConfig(message="new")))
        return result

    monkeypatch.setattr(registry, "get_versioned", get_then_update)
    conn = fake_conn()

    orchestrator.bootstrap(conn, "p")

    contents = [view["components"][0]["content"] for view in conn.sent]
    assert contents[-1] == "new"
    assert registry.get("p").config.message == "new"


def test_bootstrap_sends_once_when_page_is_stable(orchestrator, registry, fake_conn):
    registry.upsert("p", PageConfig(config=SharedConfig(message="steady")))
    conn = fake_conn()
    orchestrator.bootstrap(conn, "p")
    assert [view["components"][0]["content"] for view in conn.sent] == ["steady"]


def test_wait_for_disconnect_ignores_client_frames():
    conn = _Scripted(["ping", json.dumps({"anything": 1}), ConnectionClosed()])
    wait_for_disconnect(conn, "p")
    assert conn.reads == 3


def test_wait_for_disconnect_returns_on_read_error():
    conn = _Scripted([OSError("reset by peer")])
    wait_for_disconnect(conn, "p")
    assert conn.reads == 1


class _Scripted:
    def __init__(self, frames):
        self.frames = list(frames)
        self.reads = 0

    def receive(self, timeout=None):
        self.reads += 1
        frame = self.frames.pop(0)
        if isinstance(frame, Exception):
            raise frame
        return frame
