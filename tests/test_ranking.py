from __future__ import annotations

import random

import pytest

from rankboard.services.ranking import RankQueryEngine, ValidationError
from rankboard.storage.database import StoreError
from tests.testkit import RecordingStore, expected_dense_ranks, seed_users


def test_dense_rank_matches_reference_for_random_ratings(store):
    rng = random.Random(2024)
    players = [(f"u{i}", rng.randint(100, 5000) // 250 * 250 or 100) for i in range(200)]
    seed_users(store, players)

    page = RankQueryEngine(store).page(limit=500, offset=0)

    assert {user.username: user.rank for user in page.users} == expected_dense_ranks(players)
    assert page.total_count == 200


def test_ranking_is_idempotent_on_unchanged_store(store):
    seed_users(store, [(f"u{i}", 100 + (i % 5) * 1000) for i in range(30)])
    engine = RankQueryEngine(store)

    assert engine.page(100, 0) == engine.page(100, 0)


def test_ties_are_ordered_by_insertion_id(store):
    seed_users(store, [("zed", 3000), ("amy", 3000), ("max", 3000)])

    users = RankQueryEngine(store).page(10, 0).users

    assert [u.username for u in users] == ["zed", "amy", "max"]
    assert {u.rank for u in users} == {1}


def test_total_count_ignores_pagination(store):
    seed_users(store, [(f"u{i}", 200 + i) for i in range(12)])
    engine = RankQueryEngine(store)

    assert engine.page(3, 4).total_count == 12
    assert engine.page(3, 40).total_count == 12


def test_empty_substring_raises_validation_error(store):
    with pytest.raises(ValidationError):
        RankQueryEngine(store).search_by_username("")


def test_store_failure_surfaces_as_store_error(store):
    with store.engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE users")

    with pytest.raises(StoreError):
        RankQueryEngine(store).page(10, 0)


def test_malformed_total_count_surfaces_as_store_error():
    class MalformedStore(RecordingStore):
        def fetch_all(self, statement, context: str):
            return [{"rank": 1, "username": "amy", "rating": 3000, "total_count": None}]

    with pytest.raises(StoreError):
        RankQueryEngine(MalformedStore()).page(10, 0)
