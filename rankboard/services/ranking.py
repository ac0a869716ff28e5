"""Dense-rank queries over the live `users` table.

Ranks are never stored. Each read shape below is a single SQL statement that
computes ``DENSE_RANK() OVER (ORDER BY rating DESC)`` across the whole table
and then slices or filters the ranked rows, so the ranks and the returned
rows come from the same statement snapshot.

Ties are broken by ``id`` ascending so the ordering inside a tie group does
not depend on the engine's physical row order.
"""

from __future__ import annotations

from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping

from rankboard.storage.database import RatingStore, StoreError, users_table

SEARCH_RESULT_CAP = 100

# Largest value accepted by a 64-bit LIMIT/OFFSET.
MAX_SQL_INT = 2**63 - 1


class ValidationError(Exception):
    """Raised when a required query input is missing or malformed."""


@dataclass(slots=True)
class RankedUser:
    rank: int
    username: str
    rating: int


@dataclass(slots=True)
class RankedPage:
    users: list[RankedUser]
    total_count: int


def ranked_users_subquery() -> sa.Subquery:
    return sa.select(
        sa.func.dense_rank().over(order_by=users_table.c.rating.desc()).label("rank"),
        sa.func.count().over().label("total_count"),
        users_table.c.id,
        users_table.c.username,
        users_table.c.rating,
    ).subquery("ranked_users")


def page_statement(limit: int, offset: int) -> sa.Select:
    ranked = ranked_users_subquery()
    return (
        sa.select(ranked.c.rank, ranked.c.username, ranked.c.rating, ranked.c.total_count)
        .order_by(ranked.c.rank, ranked.c.id)
        .limit(min(limit, MAX_SQL_INT))
        .offset(min(offset, MAX_SQL_INT))
    )


def search_statement(substring: str, cap: int = SEARCH_RESULT_CAP) -> sa.Select:
    ranked = ranked_users_subquery()
    return (
        sa.select(ranked.c.rank, ranked.c.username, ranked.c.rating)
        .where(ranked.c.username.icontains(substring, autoescape=True))
        .order_by(ranked.c.rank, ranked.c.id)
        .limit(cap)
    )


def _to_ranked_user(row: RowMapping) -> RankedUser:
    try:
        return RankedUser(rank=int(row["rank"]), username=str(row["username"]), rating=int(row["rating"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise StoreError(f"malformed ranked row: {dict(row)!r}") from exc


class RankQueryEngine:
    def __init__(self, store: RatingStore):
        self.store = store

    def page(self, limit: int, offset: int) -> RankedPage:
        rows = self.store.fetch_all(page_statement(limit, offset), context="leaderboard page")
        users = [_to_ranked_user(row) for row in rows]
        if rows:
            try:
                total_count = int(rows[0]["total_count"])
            except (KeyError, TypeError, ValueError) as exc:
                raise StoreError(f"malformed total count in row: {dict(rows[0])!r}") from exc
        else:
            # Past the end of the table there is no row to carry the window count.
            total_count = self.store.count_users()
        return RankedPage(users=users, total_count=total_count)

    def search_by_username(self, substring: str) -> list[RankedUser]:
        if not substring:
            raise ValidationError("search substring must not be empty")
        rows = self.store.fetch_all(search_statement(substring), context="username search")
        return [_to_ranked_user(row) for row in rows]
