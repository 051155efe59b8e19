"""Proximity ranking: cheap filters, exact distances for survivors, stable order."""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from omnicore.domain.proximity.candidates import candidate_box
from omnicore.domain.proximity.geo import GeoPoint, haversine_km, parse_point
from omnicore.domain.proximity.models import EntityKind, GeoEntity, ProximityQuery, RankedResult, SearchPage
from omnicore.domain.proximity.repo import EntityRepository
from omnicore.errors import InvalidQuery, OmnicoreError
from omnicore.obs import metrics as obs_metrics
from omnicore.settings import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def build_query(
	*,
	latitude: Optional[float] = None,
	longitude: Optional[float] = None,
	radius_km: Optional[float] = None,
	category: Optional[str] = None,
	kind: Optional[EntityKind | str] = None,
	min_price: Optional[float] = None,
	max_price: Optional[float] = None,
	limit: Optional[int] = None,
	offset: int = 0,
) -> ProximityQuery:
	"""Validate raw search parameters into a :class:`ProximityQuery`."""

	point = parse_point(latitude, longitude)
	if radius_km is not None:
		if not math.isfinite(radius_km):
			raise InvalidQuery("radius_km must be finite")
		if radius_km > settings.proximity_max_radius_km:
			raise InvalidQuery(f"radius_km must be at most {settings.proximity_max_radius_km:g}")
	limit = settings.proximity_default_limit if limit is None else limit
	if limit <= 0 or limit > settings.proximity_max_limit:
		raise InvalidQuery(f"limit must be between 1 and {settings.proximity_max_limit}")
	if offset < 0:
		raise InvalidQuery("offset must not be negative")
	if min_price is not None and max_price is not None and min_price > max_price:
		raise InvalidQuery("min_price must not exceed max_price")
	if kind is not None and not isinstance(kind, EntityKind):
		try:
			kind = EntityKind(kind)
		except ValueError as exc:
			raise InvalidQuery(f"unknown kind {kind!r}") from exc
	return ProximityQuery(
		point=point,
		radius_km=radius_km,
		category=category or None,
		kind=kind,
		min_price=min_price,
		max_price=max_price,
		limit=limit,
		offset=offset,
	)


def rank_candidates(
	entities: Iterable[GeoEntity],
	point: Optional[GeoPoint],
	radius_km: Optional[float] = None,
) -> List[RankedResult]:
	"""Attach exact distances and order the survivors.

	With a positive ``radius_km`` the box pre-filter is refined to the exact
	circle and entities without a position are dropped. Without one, entities
	lacking a distance are kept and sorted after every measured entity.
	"""

	geo_filter = point is not None and radius_km is not None and radius_km > 0
	results: List[RankedResult] = []
	for entity in entities:
		distance: Optional[float] = None
		if point is not None and entity.has_position:
			distance = haversine_km(point, entity.position)  # type: ignore[arg-type]
		if geo_filter and (distance is None or distance > radius_km):  # type: ignore[operator]
			continue
		results.append(RankedResult(entity=entity, distance_km=distance))
	results.sort(key=lambda item: item.sort_key)
	return results


class ProximityRanker:
	"""Serves ``search`` over listings and requests; read-only."""

	def __init__(self, *, repository: Optional[EntityRepository] = None, clock: Optional[Clock] = None) -> None:
		self.repo = repository or EntityRepository()
		self._clock = clock or _utcnow

	async def search(self, query: ProximityQuery) -> SearchPage:
		mode = "geo" if query.geo_filter_requested else ("distance" if query.point else "recency")
		started = time.perf_counter()
		try:
			page = await self._search(query)
		except OmnicoreError:
			obs_metrics.observe_search(mode, "invalid")
			raise
		except Exception:
			obs_metrics.observe_search(mode, "error")
			logger.exception("proximity_search_failed", extra={"mode": mode})
			raise
		elapsed = time.perf_counter() - started
		obs_metrics.observe_search(mode, "ok", candidates=page.candidates, elapsed_seconds=elapsed)
		logger.debug(
			"proximity_search",
			extra={
				"mode": mode,
				"radius_km": query.radius_km,
				"category": query.category,
				"candidates": page.candidates,
				"returned": len(page.items),
			},
		)
		return page

	async def _search(self, query: ProximityQuery) -> SearchPage:
		now = self._clock()
		box = candidate_box(query.point, query.radius_km) if query.geo_filter_requested else None  # type: ignore[arg-type]
		# Recency-only queries can stop reading once the page plus one look-ahead row is known.
		fetch_limit = query.offset + query.limit + 1 if query.point is None else None
		candidates = await self.repo.fetch_candidates(query, box, now=now, limit=fetch_limit)
		ranked = rank_candidates(candidates, query.point, query.radius_km if box is not None else None)

		window = ranked[query.offset : query.offset + query.limit + 1]
		has_more = len(window) > query.limit
		items = window[: query.limit]
		if items:
			details = await self.repo.load_details([item.entity.ref for item in items])
			for item in items:
				item.details = details.get(item.entity.ref, {})
		return SearchPage(
			items=items,
			limit=query.limit,
			offset=query.offset,
			has_more=has_more,
			candidates=len(candidates),
		)
