"""FastAPI routes for the cached omni-points leaderboard."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from omnicore.domain.leaderboards.schemas import LeaderboardResponseSchema, LeaderboardRowSchema
from omnicore.domain.leaderboards.service import LeaderboardReader

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])

_reader = LeaderboardReader()


@router.get("", response_model=LeaderboardResponseSchema)
async def leaderboard_endpoint(limit: int = Query(default=100, ge=1, le=500)) -> LeaderboardResponseSchema:
	rows = await _reader.top(limit)
	return LeaderboardResponseSchema(
		items=[LeaderboardRowSchema.from_row(row) for row in rows],
		refreshed_at=rows[0].last_updated if rows else None,
	)


@router.get("/{username}", response_model=LeaderboardRowSchema)
async def owner_rank_endpoint(username: str) -> LeaderboardRowSchema:
	row = await _reader.rank_of(username)
	if row is None:
		raise HTTPException(status.HTTP_404_NOT_FOUND, detail="not_ranked")
	return LeaderboardRowSchema.from_row(row)
