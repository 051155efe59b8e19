"""Domain models for proximity search."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from omnicore.domain.proximity.geo import UNKNOWN_DISTANCE_KM, GeoPoint


class EntityKind(str, Enum):
	"""Searchable marketplace entities."""

	LISTING = "listing"
	REQUEST = "request"


@dataclass(slots=True)
class GeoEntity:
	"""The columns of a listing or request the ranker needs to order it."""

	id: UUID
	kind: EntityKind
	owner: str
	category: Optional[str]
	latitude: Optional[float]
	longitude: Optional[float]
	created_at: datetime
	expires_at: Optional[datetime] = None
	price: Optional[float] = None
	# Listings carry an explicit flag; requests map their open status onto it.
	active: bool = True

	@property
	def has_position(self) -> bool:
		return self.latitude is not None and self.longitude is not None

	@property
	def position(self) -> Optional[GeoPoint]:
		if not self.has_position:
			return None
		return GeoPoint(self.latitude, self.longitude)  # type: ignore[arg-type]

	@property
	def ref(self) -> Tuple[EntityKind, UUID]:
		return (self.kind, self.id)


@dataclass(slots=True)
class RankedResult:
	entity: GeoEntity
	distance_km: Optional[float]
	details: Dict[str, Any] = field(default_factory=dict)

	@property
	def sort_key(self) -> Tuple[float, float, int]:
		distance = UNKNOWN_DISTANCE_KM if self.distance_km is None else self.distance_km
		return (distance, -self.entity.created_at.timestamp(), self.entity.id.int)


@dataclass(frozen=True, slots=True)
class ProximityQuery:
	"""A validated search request; build it with ``service.build_query``."""

	point: Optional[GeoPoint] = None
	radius_km: Optional[float] = None
	category: Optional[str] = None
	kind: Optional[EntityKind] = None
	min_price: Optional[float] = None
	max_price: Optional[float] = None
	limit: int = 20
	offset: int = 0

	@property
	def geo_filter_requested(self) -> bool:
		return self.point is not None and self.radius_km is not None and self.radius_km > 0


@dataclass(slots=True)
class SearchPage:
	items: List[RankedResult]
	limit: int
	offset: int
	has_more: bool = False
	candidates: int = 0
