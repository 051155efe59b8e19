"""Retention sweeps for time-bounded rows.

Each resource class has an ``expires_at`` column. A sweep deletes the rows whose
expiry is at or before the moment the sweep started, in short autocommitted
batches so no single statement holds locks on a large table for long. Rows
without an expiry are never touched.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, Optional

from omnicore.errors import SweepFailure
from omnicore.infra.postgres import get_pool
from omnicore.obs import logging as obs_logging
from omnicore.obs import metrics as obs_metrics
from omnicore.settings import settings

logger = logging.getLogger(__name__)


class ResourceClass(str, Enum):
	LISTINGS = "listings"
	REQUESTS = "requests"
	VERIFICATION_CODES = "verification_codes"
	QUERY_CACHE = "query_cache"
	MEDIA_REFERENCES = "media_references"


@dataclass(frozen=True, slots=True)
class RetentionTarget:
	table: str
	key_column: str = "id"
	expiry_column: str = "expires_at"


TARGETS: Dict[ResourceClass, RetentionTarget] = {
	ResourceClass.LISTINGS: RetentionTarget("listings"),
	ResourceClass.REQUESTS: RetentionTarget("requests"),
	ResourceClass.VERIFICATION_CODES: RetentionTarget("phone_verifications"),
	ResourceClass.QUERY_CACHE: RetentionTarget("query_cache", key_column="cache_key"),
	ResourceClass.MEDIA_REFERENCES: RetentionTarget("media_references"),
}


def build_sweep_sql(target: RetentionTarget) -> str:
	# SKIP LOCKED leaves rows held by concurrent writers for the next run.
	return f"""
	WITH doomed AS (
	  SELECT {target.key_column} FROM {target.table}
	  WHERE {target.expiry_column} IS NOT NULL AND {target.expiry_column} <= $1
	  LIMIT $2
	  FOR UPDATE SKIP LOCKED
	)
	DELETE FROM {target.table} t USING doomed d WHERE t.{target.key_column} = d.{target.key_column}
	RETURNING 1;
	"""


class RetentionRepository:
	async def delete_expired_batch(self, target: RetentionTarget, *, now: datetime, limit: int) -> int:
		pool = await get_pool()
		rows = await pool.fetch(build_sweep_sql(target), now, limit)
		return len(rows)


@dataclass(slots=True)
class SweepReport:
	deleted: Dict[str, int] = field(default_factory=dict)
	errors: Dict[str, str] = field(default_factory=dict)

	@property
	def ok(self) -> bool:
		return not self.errors

	@property
	def total_deleted(self) -> int:
		return sum(self.deleted.values())

	def to_payload(self) -> Dict[str, object]:
		return {
			"success": self.ok,
			"deleted": dict(self.deleted),
			"errors": dict(self.errors),
			"totalDeleted": self.total_deleted,
		}


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class RetentionSweeper:
	"""Deletes expired rows one resource class at a time."""

	def __init__(
		self,
		*,
		repository: Optional[RetentionRepository] = None,
		batch_size: Optional[int] = None,
		clock: Optional[Callable[[], datetime]] = None,
	) -> None:
		self.repo = repository or RetentionRepository()
		self.batch_size = max(1, batch_size or settings.retention_batch_size)
		self._clock = clock or _utcnow

	async def sweep(self, resource_class: ResourceClass | str) -> int:
		try:
			resource_class = ResourceClass(resource_class)
		except ValueError as exc:
			raise SweepFailure(str(resource_class), f"unknown resource class {resource_class!r}") from exc
		target = TARGETS[resource_class]
		job_name = f"retention-{resource_class.value}"
		tokens = obs_logging.bind_context(job=job_name)
		now = self._clock()
		started = time.perf_counter()
		deleted = 0
		try:
			while True:
				removed = await self.repo.delete_expired_batch(target, now=now, limit=self.batch_size)
				deleted += removed
				if removed < self.batch_size:
					break
		except Exception as exc:
			obs_metrics.inc_retention_deleted(resource_class.value, deleted)
			obs_metrics.record_job_run(job_name, result="error", duration_seconds=time.perf_counter() - started)
			logger.error(
				"retention_sweep_failed",
				exc_info=True,
				extra={"resource_class": resource_class.value, "deleted": deleted},
			)
			raise SweepFailure(resource_class.value, str(exc), deleted_before_failure=deleted) from exc
		else:
			obs_metrics.inc_retention_deleted(resource_class.value, deleted)
			obs_metrics.record_job_run(job_name, result="success", duration_seconds=time.perf_counter() - started)
			logger.info("retention_sweep", extra={"resource_class": resource_class.value, "deleted": deleted})
		finally:
			obs_logging.reset_context(tokens)
		return deleted

	async def sweep_all(self, classes: Optional[Iterable[ResourceClass | str]] = None) -> SweepReport:
		"""Sweep every class; a failing class is reported without stopping the rest."""

		report = SweepReport()
		for resource_class in classes or list(ResourceClass):
			name = resource_class.value if isinstance(resource_class, ResourceClass) else str(resource_class)
			try:
				report.deleted[name] = await self.sweep(resource_class)
			except SweepFailure as exc:
				report.deleted[name] = exc.deleted_before_failure
				report.errors[name] = exc.message
		return report
