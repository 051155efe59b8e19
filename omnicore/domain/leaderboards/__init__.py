"""Leaderboard cache exports."""

from .models import BalanceRow, RankCacheRow, RefreshReport
from .service import LeaderboardReader, RankRefresher, assign_ranks

__all__ = [
	"BalanceRow",
	"LeaderboardReader",
	"RankCacheRow",
	"RankRefresher",
	"RefreshReport",
	"assign_ranks",
]
