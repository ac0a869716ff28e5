"""Synthetic rating churn: a pure planner plus the loop that writes it.

Both the background walk and the on-demand burst use the same algorithm:
plan ``n`` random ratings (the first ``hero_count`` drawn from the hero range),
then for each one pick a random row and overwrite its rating. Writes are
independent and best-effort; one failing row never stops the batch.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass

from rankboard.storage.database import MAX_RATING, MIN_RATING, RatingStore, StoreError

logger = logging.getLogger(__name__)

HERO_MIN_RATING = 4800

WALK_UPDATE_COUNT = 10
BURST_UPDATE_COUNT = 50
BURST_HERO_COUNT = 5


class RowMutationError(Exception):
    """Raised when a single row of a mutation batch could not be updated."""


@dataclass(slots=True, frozen=True)
class RatingDraw:
    slot: int
    rating: int
    hero: bool


@dataclass(slots=True)
class MutationSummary:
    attempted: int
    written: int
    failed: int
    hero_count: int

    @property
    def message(self) -> str:
        # Reports attempted updates, not confirmed writes.
        return f"Updated {self.attempted} users ({self.hero_count} with high scores)"


def clamp_rating(value: int) -> int:
    return max(MIN_RATING, min(MAX_RATING, value))


def pick_random_ratings(n: int, hero_count: int, rng: random.Random) -> list[RatingDraw]:
    draws = []
    for slot in range(n):
        hero = slot < hero_count
        low = HERO_MIN_RATING if hero else MIN_RATING
        draws.append(RatingDraw(slot=slot, rating=clamp_rating(rng.randint(low, MAX_RATING)), hero=hero))
    return draws


class RatingMutator:
    def __init__(self, store: RatingStore, rng: random.Random | None = None):
        self.store = store
        self.rng = rng or random.Random()

    def _apply(self, draw: RatingDraw) -> None:
        try:
            user_id = self.store.random_user_id()
        except StoreError as exc:
            raise RowMutationError(f"slot {draw.slot}: could not select a row") from exc
        if user_id is None:
            raise RowMutationError(f"slot {draw.slot}: store has no users")
        try:
            updated = self.store.update_rating(user_id, draw.rating)
        except StoreError as exc:
            raise RowMutationError(f"slot {draw.slot}: update of user {user_id} failed") from exc
        if not updated:
            raise RowMutationError(f"slot {draw.slot}: user {user_id} vanished before update")

    def random_walk(self, n: int, hero_count: int = 0) -> MutationSummary:
        written = 0
        failed = 0
        for draw in pick_random_ratings(n, hero_count, self.rng):
            try:
                self._apply(draw)
            except RowMutationError as exc:
                failed += 1
                logger.warning("Skipping rating update: %s (%s)", exc, exc.__cause__)
                continue
            written += 1
        return MutationSummary(attempted=n, written=written, failed=failed, hero_count=min(hero_count, n))

    def burst(self) -> MutationSummary:
        summary = self.random_walk(BURST_UPDATE_COUNT, BURST_HERO_COUNT)
        logger.info(
            "Simulation burst: %d attempted, %d written, %d failed",
            summary.attempted,
            summary.written,
            summary.failed,
        )
        return summary


class RatingWalker:
    """Background thread applying a small random walk on a fixed interval."""

    def __init__(
        self,
        mutator: RatingMutator,
        interval: float = 5.0,
        update_count: int = WALK_UPDATE_COUNT,
    ):
        self.mutator = mutator
        self.interval = interval
        self.update_count = update_count
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> MutationSummary | None:
        try:
            summary = self.mutator.random_walk(self.update_count)
        except Exception:
            logger.exception("Rating walk tick failed")
            return None
        finally:
            self.ticks += 1
        logger.info("Updated %d users' ratings (%d written)", summary.attempted, summary.written)
        return summary

    def _run(self) -> None:
        logger.info("Rating walk started: interval=%ss, updates=%d", self.interval, self.update_count)
        while not self._stop.wait(self.interval):
            self.run_once()
        logger.info("Rating walk stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="rating-walk", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
