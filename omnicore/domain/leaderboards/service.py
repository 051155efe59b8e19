"""Service layer for the omni-points leaderboard cache."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from omnicore.domain.leaderboards.models import BalanceRow, RankCacheRow, RefreshReport
from omnicore.domain.leaderboards.repo import RankCacheRepository
from omnicore.errors import RefreshFailure
from omnicore.infra.postgres import get_pool
from omnicore.settings import settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def assign_ranks(balances: Iterable[BalanceRow], refreshed_at: datetime) -> List[RankCacheRow]:
	"""Rank positive balances 1..N, highest first.

	Equal balances are ordered by username ascending, so every owner gets a
	distinct rank and the sequence has no gaps.
	"""

	positive = [row for row in balances if row.total_omni_earned > 0]
	positive.sort(key=lambda row: (-row.total_omni_earned, row.username))
	return [
		RankCacheRow(
			username=row.username,
			total_omni_earned=row.total_omni_earned,
			rank=idx,
			last_updated=refreshed_at,
		)
		for idx, row in enumerate(positive, start=1)
	]


class RankRefresher:
	"""Rebuilds ``leaderboard_cache`` as one all-or-nothing generation."""

	def __init__(
		self,
		*,
		repository: Optional[RankCacheRepository] = None,
		top_n: Optional[int] = None,
		clock: Optional[Callable[[], datetime]] = None,
	) -> None:
		self.repo = repository or RankCacheRepository()
		self.top_n = settings.leaderboard_top_n if top_n is None else top_n
		self._clock = clock or _utcnow

	async def refresh(self) -> RefreshReport:
		refreshed_at = self._clock()
		try:
			pool = await get_pool()
			async with pool.acquire() as conn:
				# Readers keep seeing the previous generation until this commits.
				async with conn.transaction():
					balances = await self.repo.fetch_positive_balances(conn)
					rows = assign_ranks(balances, refreshed_at)
					await self.repo.replace_all(conn, rows)
		except Exception as exc:
			logger.error("leaderboard_refresh_failed", exc_info=True, extra={"error": str(exc)})
			raise RefreshFailure(str(exc) or exc.__class__.__name__) from exc

		logger.info("leaderboard_refreshed", extra={"users_processed": len(rows)})
		return RefreshReport(users_processed=len(rows), refreshed_at=refreshed_at, top=rows[: self.top_n])


class LeaderboardReader:
	"""Read side of the cache used by the API."""

	def __init__(self, *, repository: Optional[RankCacheRepository] = None) -> None:
		self.repo = repository or RankCacheRepository()

	async def top(self, limit: int = 100) -> List[RankCacheRow]:
		return await self.repo.top(limit)

	async def rank_of(self, username: str) -> Optional[RankCacheRow]:
		return await self.repo.rank_of(username)
