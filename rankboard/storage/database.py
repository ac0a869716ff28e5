"""SQLAlchemy engine creation and the rating store client used by services."""

from __future__ import annotations

import logging
from typing import Any

import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.engine import Engine, RowMapping, make_url
from sqlalchemy.exc import SQLAlchemyError

from rankboard.core.config import Settings

logger = logging.getLogger(__name__)

MIN_RATING = 100
MAX_RATING = 5000

metadata = sa.MetaData()

users_table = sa.Table(
    "users",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("username", sa.String(255), nullable=False, unique=True),
    sa.Column("rating", sa.Integer, nullable=False),
    sa.CheckConstraint(f"rating BETWEEN {MIN_RATING} AND {MAX_RATING}", name="users_rating_range"),
)


class StoreError(Exception):
    """Raised when the relational store cannot answer a query or write."""


def _connect_args(database_url: str, timeout_seconds: int) -> dict[str, Any]:
    backend = make_url(database_url).get_backend_name()
    if backend == "postgresql":
        return {
            "connect_timeout": timeout_seconds,
            "options": f"-c statement_timeout={timeout_seconds * 1000}",
        }
    if backend == "sqlite":
        return {"timeout": timeout_seconds, "check_same_thread": False}
    return {}


def _unicode_lower(value: str | None) -> str | None:
    return value.lower() if value is not None else None


def _register_sqlite_functions(dbapi_connection, _connection_record) -> None:
    # SQLite's built-in lower() only folds ASCII letters.
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def create_store_engine(settings: Settings) -> Engine:
    engine = sa.create_engine(
        settings.DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
        pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,
        connect_args=_connect_args(settings.DATABASE_URL, settings.DB_STATEMENT_TIMEOUT_SECONDS),
    )
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _register_sqlite_functions)
    return engine


class RatingStore:
    """Thin client over the `users` table.

    Every call checks a connection out of the engine pool for the duration of
    one statement (or one write transaction) and returns it immediately. No
    application-level locking is done; concurrent writers race at row level.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                return conn.execute(sa.text("SELECT 1")).scalar_one() == 1
        except SQLAlchemyError as exc:
            raise StoreError("store ping failed") from exc

    def fetch_all(self, statement: sa.Executable, context: str) -> list[RowMapping]:
        try:
            with self.engine.connect() as conn:
                return list(conn.execute(statement).mappings().all())
        except SQLAlchemyError as exc:
            logger.exception("Store query failed: %s", context)
            raise StoreError(f"{context} failed") from exc

    def count_users(self) -> int:
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(sa.select(sa.func.count()).select_from(users_table)).scalar_one())
        except SQLAlchemyError as exc:
            logger.exception("Store query failed: count users")
            raise StoreError("count users failed") from exc

    def random_user_id(self) -> int | None:
        statement = sa.select(users_table.c.id).order_by(sa.func.random()).limit(1)
        try:
            with self.engine.connect() as conn:
                return conn.execute(statement).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError("random user selection failed") from exc

    def update_rating(self, user_id: int, rating: int) -> bool:
        statement = (
            sa.update(users_table)
            .where(users_table.c.id == user_id)
            .values(rating=rating)
        )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(statement)
        except SQLAlchemyError as exc:
            raise StoreError(f"rating update for user {user_id} failed") from exc
        return result.rowcount == 1

    def close(self) -> None:
        self.engine.dispose()


def create_rating_store(settings: Settings) -> RatingStore:
    return RatingStore(create_store_engine(settings))
