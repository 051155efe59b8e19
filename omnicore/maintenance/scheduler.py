"""APScheduler wrapper for the leaderboard refresh and retention sweeps."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from omnicore.domain.leaderboards.jobs import run_rank_refresh
from omnicore.errors import SweepFailure
from omnicore.maintenance.retention import ResourceClass, RetentionSweeper
from omnicore.settings import settings

logger = logging.getLogger(__name__)

# Interval per class is a cost knob: urgent classes daily or faster, the rest weekly.
SWEEP_SCHEDULES: Dict[ResourceClass, Dict[str, object]] = {
	ResourceClass.LISTINGS: {"hour": 2, "minute": 0},
	ResourceClass.REQUESTS: {"hour": 2, "minute": 30},
	ResourceClass.VERIFICATION_CODES: {"hour": "*/6", "minute": 15},
	ResourceClass.QUERY_CACHE: {"day_of_week": "sun", "hour": 4, "minute": 0},
	ResourceClass.MEDIA_REFERENCES: {"day_of_week": "mon", "hour": 5, "minute": 0},
}


class MaintenanceScheduler:
	"""Registers one job per task; APScheduler keeps each to a single running instance."""

	def __init__(self, *, sweeper: Optional[RetentionSweeper] = None) -> None:
		self._scheduler = AsyncIOScheduler(timezone="UTC")
		self._sweeper = sweeper or RetentionSweeper()
		self._started = False

	@property
	def jobs(self):
		return self._scheduler.get_jobs()

	def start(self) -> None:
		if not self._started:
			self._scheduler.start()
			self._started = True

	def shutdown(self) -> None:
		if self._started:
			self._scheduler.shutdown(wait=False)
			self._started = False

	def _add(self, job_id: str, func: Callable[[], Awaitable[object]], trigger) -> None:
		self._scheduler.add_job(
			func,
			trigger=trigger,
			id=job_id,
			replace_existing=True,
			max_instances=1,
			coalesce=True,
		)

	def register_defaults(self) -> None:
		self._add(
			"leaderboard-refresh",
			run_rank_refresh,
			IntervalTrigger(hours=settings.leaderboard_refresh_hours),
		)
		for resource_class, fields in SWEEP_SCHEDULES.items():
			self._add(
				f"retention-{resource_class.value}",
				self._sweep_job(resource_class),
				CronTrigger(timezone="UTC", **fields),
			)

	def _sweep_job(self, resource_class: ResourceClass) -> Callable[[], Awaitable[int]]:
		async def _run() -> int:
			try:
				return await self._sweeper.sweep(resource_class)
			except SweepFailure:
				# Already logged and counted by the sweeper; the next tick retries.
				return 0

		_run.__name__ = f"sweep_{resource_class.value}"
		return _run


__all__ = ["MaintenanceScheduler", "SWEEP_SCHEDULES"]
