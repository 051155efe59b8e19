"""Scheduled entry point for rebuilding the leaderboard cache."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from omnicore.domain.leaderboards.service import RankRefresher
from omnicore.errors import RefreshFailure
from omnicore.obs import logging as obs_logging
from omnicore.obs import metrics as obs_metrics

_JOB_NAME = "leaderboard-refresh"


async def run_rank_refresh(refresher: Optional[RankRefresher] = None) -> Dict[str, Any]:
	"""Entry point for the six-hourly job; always returns a structured report."""

	refresher = refresher or RankRefresher()
	tokens = obs_logging.bind_context(job=_JOB_NAME)
	started = time.perf_counter()
	try:
		report = await refresher.refresh()
	except RefreshFailure as exc:
		obs_metrics.record_job_run(_JOB_NAME, result="error", duration_seconds=time.perf_counter() - started)
		return {
			"success": False,
			"error": exc.message,
			"timestamp": datetime.now(timezone.utc).isoformat(),
		}
	finally:
		obs_logging.reset_context(tokens)

	obs_metrics.record_job_run(_JOB_NAME, result="success", duration_seconds=time.perf_counter() - started)
	obs_metrics.mark_leaderboard_refresh(report.users_processed, report.refreshed_at.timestamp())
	return report.to_payload()
