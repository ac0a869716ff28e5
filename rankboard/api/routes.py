"""HTTP route handlers for leaderboard reads, rating simulation, and health checks.

Handlers are plain functions so FastAPI runs them in its worker thread pool;
each one blocks on the store's connection pool while its query runs.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request

from rankboard.api.errors import APIError, from_domain_error
from rankboard.models.schemas import (
    HealthResponse,
    LeaderboardResponse,
    RankedUserOut,
    ReadyResponse,
    SearchResponse,
    SimulateResponse,
)
from rankboard.services.leaderboard import LeaderboardService
from rankboard.services.ranking import RankedUser, ValidationError
from rankboard.storage.database import StoreError

router = APIRouter()


def get_service(request: Request) -> LeaderboardService:
    return request.app.state.leaderboard_service


def _rows(users: list[RankedUser]) -> list[RankedUserOut]:
    return [RankedUserOut(rank=u.rank, username=u.username, rating=u.rating) for u in users]


@router.get("/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    # Raw strings: unparseable values fall back to defaults instead of failing.
    limit: str | None = Query(default=None),
    offset: str | None = Query(default=None),
    service: LeaderboardService = Depends(get_service),
) -> LeaderboardResponse:
    try:
        page = service.get_leaderboard(limit, offset)
    except (ValidationError, StoreError) as exc:
        raise from_domain_error(exc) from exc

    return LeaderboardResponse(
        users=_rows(page.users),
        total_count=page.total_count,
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/search", response_model=SearchResponse)
def search(
    query: str | None = Query(default=None),
    service: LeaderboardService = Depends(get_service),
) -> SearchResponse:
    try:
        result = service.search(query)
    except (ValidationError, StoreError) as exc:
        raise from_domain_error(exc) from exc

    return SearchResponse(users=_rows(result.users), query=result.query)


@router.post("/simulate", response_model=SimulateResponse)
def simulate(service: LeaderboardService = Depends(get_service)) -> SimulateResponse:
    summary = service.simulate()
    return SimulateResponse(status="success", message=summary.message)


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy", time=datetime.now(timezone.utc).replace(microsecond=0))


# Infrastructure probe; kept out of the API docs.
@router.get("/readyz", response_model=ReadyResponse, include_in_schema=False)
def readyz(service: LeaderboardService = Depends(get_service)) -> ReadyResponse:
    try:
        # Readiness verifies store connectivity, not just process liveness.
        is_ready = service.ping()
    except StoreError as exc:
        raise APIError(
            code="STORE_UNAVAILABLE",
            message="Store readiness check failed",
            status_code=503,
        ) from exc

    if not is_ready:
        raise APIError(
            code="STORE_UNAVAILABLE",
            message="Store readiness check failed",
            status_code=503,
        )
    return ReadyResponse(status="ok")
