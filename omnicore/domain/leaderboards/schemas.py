"""Pydantic schemas for leaderboard APIs."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from omnicore.domain.leaderboards.models import RankCacheRow


class LeaderboardRowSchema(BaseModel):
	rank: int = Field(..., ge=1)
	username: str
	total_omni_earned: int
	last_updated: datetime

	@classmethod
	def from_row(cls, row: RankCacheRow) -> "LeaderboardRowSchema":
		return cls(
			rank=row.rank,
			username=row.username,
			total_omni_earned=row.total_omni_earned,
			last_updated=row.last_updated,
		)


class LeaderboardResponseSchema(BaseModel):
	items: list[LeaderboardRowSchema]
	refreshed_at: Optional[datetime] = None
