"""
Shared fixtures. Tests run from the repo root or backend/; either way the
backend modules must be importable.
"""

import json
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from events import SubscriptionHub
from store import ConfigStore, PageRegistry


class FakeConnection:
    """Stands in for a flask-sock WebSocket on the send side."""

    def __init__(self, fail_send=False):
        self.fail_send = fail_send
        self.sent = []
        self.closed = False

    def send(self, data):
        if self.fail_send:
            raise ConnectionError("broken pipe")
        self.sent.append(json.loads(data))

    def close(self, reason=None, message=None):
        self.closed = True


@pytest.fixture()
def fake_conn():
    return FakeConnection


@pytest.fixture()
def store():
    return ConfigStore()


@pytest.fixture()
def registry():
    return PageRegistry()


@pytest.fixture()
def hub():
    return SubscriptionHub()


@pytest.fixture()
def app(store, registry, hub, tmp_path):
    (tmp_path / "index.html").write_text("<html>pagecast</html>")
    return create_app(store=store, registry=registry, hub=hub, static_dir=str(tmp_path))


@pytest.fixture()
def client(app):
    with app.test_client() as c:
        yield c
