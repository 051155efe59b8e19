"""Domain models for the materialized omni-points leaderboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List


@dataclass(frozen=True, slots=True)
class BalanceRow:
	"""A row of the rewards subsystem's ``user_rewards`` table."""

	username: str
	total_omni_earned: int


@dataclass(frozen=True, slots=True)
class RankCacheRow:
	username: str
	total_omni_earned: int
	rank: int
	last_updated: datetime

	def as_record(self) -> tuple:
		return (self.username, self.total_omni_earned, self.rank, self.last_updated)


@dataclass(slots=True)
class RefreshReport:
	"""Outcome of one successful rebuild of the cache."""

	users_processed: int
	refreshed_at: datetime
	top: List[RankCacheRow] = field(default_factory=list)

	def to_payload(self) -> Dict[str, Any]:
		return {
			"success": True,
			"usersProcessed": self.users_processed,
			"topN": [
				{"ownerKey": row.username, "rank": row.rank, "measure": row.total_omni_earned}
				for row in self.top
			],
			"refreshedAt": self.refreshed_at.isoformat(),
		}
