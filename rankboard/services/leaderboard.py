"""Request-level leaderboard operations: parameter normalization and response assembly."""

from __future__ import annotations

import re
from dataclasses import dataclass

from rankboard.services.mutator import MutationSummary, RatingMutator
from rankboard.services.ranking import MAX_SQL_INT, RankedUser, RankQueryEngine, ValidationError
from rankboard.storage.database import RatingStore

DEFAULT_LIMIT = 50
DEFAULT_OFFSET = 0

# ASCII digits with an optional sign; anything else counts as absent.
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass(slots=True)
class LeaderboardPage:
    users: list[RankedUser]
    total_count: int
    limit: int
    offset: int


@dataclass(slots=True)
class SearchResult:
    users: list[RankedUser]
    query: str


def _parse_int(raw: str | int | None) -> int | None:
    if raw is None:
        return None
    text = str(raw)
    if not INTEGER_PATTERN.fullmatch(text):
        return None
    try:
        return int(text)
    except ValueError:
        # Beyond the interpreter's digit limit for str -> int.
        return None


def normalize_limit(raw: str | int | None) -> int:
    value = _parse_int(raw)
    if value is None or value <= 0:
        return DEFAULT_LIMIT
    return min(value, MAX_SQL_INT)


def normalize_offset(raw: str | int | None) -> int:
    value = _parse_int(raw)
    if value is None or value < 0:
        return DEFAULT_OFFSET
    return min(value, MAX_SQL_INT)


class LeaderboardService:
    def __init__(self, store: RatingStore, mutator: RatingMutator | None = None):
        self.store = store
        self.engine = RankQueryEngine(store)
        self.mutator = mutator or RatingMutator(store)

    def get_leaderboard(self, limit: str | int | None = None, offset: str | int | None = None) -> LeaderboardPage:
        applied_limit = normalize_limit(limit)
        applied_offset = normalize_offset(offset)
        page = self.engine.page(applied_limit, applied_offset)
        return LeaderboardPage(
            users=page.users,
            total_count=page.total_count,
            limit=applied_limit,
            offset=applied_offset,
        )

    def search(self, query: str | None) -> SearchResult:
        if not query:
            raise ValidationError("Query parameter is required")
        return SearchResult(users=self.engine.search_by_username(query), query=query)

    def simulate(self) -> MutationSummary:
        return self.mutator.burst()

    def ping(self) -> bool:
        return self.store.ping()
