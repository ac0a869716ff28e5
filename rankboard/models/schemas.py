"""Pydantic response schemas for the public leaderboard API.

These models define the response contracts used by routes and exception
handlers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    error: ErrorBody


class RankedUserOut(BaseModel):
    rank: int = Field(ge=1)
    username: str
    rating: int


class LeaderboardResponse(BaseModel):
    users: list[RankedUserOut]
    total_count: int = Field(ge=0)
    limit: int = Field(ge=1)
    offset: int = Field(ge=0)


class SearchResponse(BaseModel):
    users: list[RankedUserOut]
    query: str


class HealthResponse(BaseModel):
    status: Literal["healthy"]
    time: datetime


class ReadyResponse(BaseModel):
    status: Literal["ok"]


class SimulateResponse(BaseModel):
    status: Literal["success"]
    message: str
