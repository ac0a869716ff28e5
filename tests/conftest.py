from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from rankboard.core.config import Settings
from rankboard.main import create_app
from rankboard.storage.database import RatingStore, create_rating_store, metadata


@pytest.fixture()
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'rankboard.db'}"


@pytest.fixture()
def settings(database_url: str) -> Settings:
    return Settings(DATABASE_URL=database_url, RATING_WALK_ENABLED=False)


@pytest.fixture()
def store(settings: Settings):
    rating_store = create_rating_store(settings)
    metadata.create_all(rating_store.engine)
    yield rating_store
    rating_store.close()


@pytest.fixture()
def client(settings: Settings, store: RatingStore):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client, store
