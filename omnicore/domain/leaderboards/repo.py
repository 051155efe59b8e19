"""asyncpg access to ``user_rewards`` (read only) and ``leaderboard_cache``."""

from __future__ import annotations

from typing import List, Optional, Sequence

import asyncpg

from omnicore.domain.leaderboards.models import BalanceRow, RankCacheRow
from omnicore.infra.postgres import get_pool


def _to_cache_row(row) -> RankCacheRow:
	return RankCacheRow(
		username=row["username"],
		total_omni_earned=int(row["total_omni_earned"]),
		rank=int(row["rank"]),
		last_updated=row["last_updated"],
	)


class RankCacheRepository:
	"""Write helpers take the caller's connection so they share its transaction."""

	async def fetch_positive_balances(self, conn: asyncpg.Connection) -> List[BalanceRow]:
		rows = await conn.fetch(
			"""
			SELECT username, total_omni_earned
			FROM user_rewards
			WHERE total_omni_earned > 0 AND username IS NOT NULL
			ORDER BY total_omni_earned DESC, username ASC
			"""
		)
		return [BalanceRow(username=row["username"], total_omni_earned=int(row["total_omni_earned"])) for row in rows]

	async def replace_all(self, conn: asyncpg.Connection, rows: Sequence[RankCacheRow]) -> None:
		await conn.execute("DELETE FROM leaderboard_cache")
		if not rows:
			return
		await conn.executemany(
			"""
			INSERT INTO leaderboard_cache (username, total_omni_earned, rank, last_updated)
			VALUES ($1, $2, $3, $4)
			""",
			[row.as_record() for row in rows],
		)

	async def top(self, limit: int) -> List[RankCacheRow]:
		pool = await get_pool()
		rows = await pool.fetch(
			"""
			SELECT username, total_omni_earned, rank, last_updated
			FROM leaderboard_cache
			ORDER BY rank ASC
			LIMIT $1
			""",
			limit,
		)
		return [_to_cache_row(row) for row in rows]

	async def rank_of(self, username: str) -> Optional[RankCacheRow]:
		pool = await get_pool()
		row = await pool.fetchrow(
			"SELECT username, total_omni_earned, rank, last_updated FROM leaderboard_cache WHERE username = $1",
			username,
		)
		return _to_cache_row(row) if row else None
