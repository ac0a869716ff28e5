from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from rankboard.core.config import Settings
from rankboard.main import create_app
from tests.testkit import seed_users


@pytest.fixture()
def churning_client(database_url: str, store):
    seed_users(store, [(f"u{i:02d}", 100 + i * 40) for i in range(40)])
    settings = Settings(
        DATABASE_URL=database_url,
        RATING_WALK_ENABLED=True,
        RATING_WALK_INTERVAL_SECONDS=0.01,
    )
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def test_reads_complete_while_background_walk_runs(churning_client):
    walker = churning_client.app.state.rating_walker
    assert walker.running

    for _ in range(20):
        response = churning_client.get("/leaderboard", params={"limit": 100})
        assert response.status_code == 200
        payload = response.json()
        assert payload["total_count"] == 40
        assert len(payload["users"]) == 40
        ranks = [row["rank"] for row in payload["users"]]
        assert ranks[0] == 1
        assert ranks == sorted(ranks)

    deadline = time.monotonic() + 5
    while walker.ticks == 0 and time.monotonic() < deadline:
        time.sleep(0.01)
    assert walker.ticks > 0


def test_parallel_service_reads_and_bursts_do_not_deadlock(churning_client):
    service = churning_client.app.state.leaderboard_service

    def read(_):
        return service.get_leaderboard("25", "0")

    with ThreadPoolExecutor(max_workers=8) as pool:
        burst = pool.submit(service.simulate)
        pages = list(pool.map(read, range(30), timeout=60))
        summary = burst.result(timeout=60)

    assert summary.attempted == 50
    assert all(len(page.users) == 25 and page.total_count == 40 for page in pages)
