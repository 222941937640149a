"""Shared test fixtures for the MediaNest test suite.

Every test gets its own application built by ``create_app`` over a fresh
in-memory SQLite database, so there is no state to clean between tests.
"""

import pytest
from fastapi.testclient import TestClient

from medianest.core.config import Settings
from medianest.core.token_factory import create_token
from medianest.main import create_app
from medianest.models import MediaItem
from medianest.services.folder_service import FolderService

TEST_SECRET = "test-secret-key-for-medianest-suite"


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite://",
        "auth_enabled": False,
        "jwt_secret_key": TEST_SECRET,
        "log_format": "text",
        "log_level": "WARNING",
        "audit_retention_days": 0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def settings():
    return make_settings()


@pytest.fixture()
def app(settings):
    return create_app(settings, configure_logging=False)


@pytest.fixture()
def ctx(app):
    """The application context ``create_app`` attached to the app."""
    return app.state.context


@pytest.fixture()
def db(ctx):
    session = ctx.SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def service(ctx, db):
    return FolderService(ctx, db, user_id="test-user")


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_items(db):
    """Insert untagged items directly; returns their ids."""

    def _make(count: int = 1, kind: str = "attachment", folder_id=None) -> list[int]:
        items = [
            MediaItem(title=f"item-{i}", filename=f"item-{i}.png", mime_type="image/png", kind=kind, folder_id=folder_id)
            for i in range(count)
        ]
        db.add_all(items)
        db.commit()
        return [item.id for item in items]

    return _make


def auth_header(role: str = "admin", secret: str = TEST_SECRET) -> dict:
    """Bearer header for a token carrying *role*."""
    token = create_token(subject=f"{role}-user", role=role, secret=secret)
    return {"Authorization": f"Bearer {token}"}


def rpc(client, action: str, payload=None, headers=None):
    """POST one action; returns the response."""
    return client.post("/api/rpc", json={"action": action, "payload": payload or {}}, headers=headers or {})


def find_node(nodes, name):
    """Depth-first search of a wire or schema tree by name."""
    for node in nodes:
        node_name = node["name"] if isinstance(node, dict) else node.name
        if node_name == name:
            return node
        children = node["children"] if isinstance(node, dict) else node.children
        found = find_node(children, name)
        if found is not None:
            return found
    return None
