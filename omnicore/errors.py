"""Error taxonomy shared by search, leaderboard refresh, and retention jobs."""

from __future__ import annotations

from typing import Optional


class OmnicoreError(Exception):
	"""Base class for domain errors; ``code`` is the machine-readable reason."""

	code = "omnicore_error"

	def __init__(self, message: str = "") -> None:
		super().__init__(message or self.code)
		self.message = message or self.code


class InvalidCoordinate(OmnicoreError, ValueError):
	"""Latitude/longitude outside the valid range or only half supplied."""

	code = "invalid_coordinate"


class InvalidQuery(OmnicoreError, ValueError):
	"""Search parameters that cannot be served (limit, offset, radius, price range)."""

	code = "invalid_query"


class RefreshFailure(OmnicoreError):
	"""Leaderboard recomputation failed; the previous cache generation is kept."""

	code = "refresh_failed"


class SweepFailure(OmnicoreError):
	"""A single resource class sweep failed."""

	code = "sweep_failed"

	def __init__(self, resource_class: str, message: str = "", *, deleted_before_failure: int = 0) -> None:
		super().__init__(message or f"sweep of {resource_class} failed")
		self.resource_class = resource_class
		self.deleted_before_failure = deleted_before_failure


class RateLimitExceeded(OmnicoreError):
	"""Raised when a caller exceeds its request budget."""

	code = "rate_limited"

	def __init__(self, kind: str, retry_after: Optional[int] = None) -> None:
		super().__init__(kind)
		self.kind = kind
		self.retry_after = retry_after
