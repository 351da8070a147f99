from __future__ import annotations

import pytest

from stagetrack.schema import ensure_schema, initialize
from stagetrack.server import create_app
from stagetrack.store import Store


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "stages.db"


@pytest.fixture
def store(db_path):
    """Store seeded with the default project template."""
    store = Store(db_path)
    initialize(store)
    yield store
    store.close()


@pytest.fixture
def empty_store(db_path):
    """Store with the schema but no rows."""
    store = Store(db_path)
    ensure_schema(store)
    yield store
    store.close()


@pytest.fixture
def client(store, tmp_path):
    public_dir = tmp_path / "public"
    public_dir.mkdir()
    (public_dir / "index.html").write_text("<h1>stages</h1>", encoding="utf-8")
    app = create_app(store, public_dir=str(public_dir))
    app.config["TESTING"] = True
    return app.test_client()
