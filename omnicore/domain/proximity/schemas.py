"""Pydantic schemas for proximity endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from omnicore.domain.proximity.models import EntityKind, RankedResult, SearchPage


class SearchItem(BaseModel):
	"""One ranked listing or request."""

	model_config = ConfigDict(extra="allow")

	id: UUID
	kind: EntityKind
	owner: str
	category: Optional[str] = None
	latitude: Optional[float] = None
	longitude: Optional[float] = None
	price: Optional[float] = None
	created_at: datetime
	expires_at: Optional[datetime] = None
	distance_km: Optional[float] = Field(default=None, ge=0)

	@classmethod
	def from_result(cls, result: RankedResult) -> "SearchItem":
		entity = result.entity
		return cls(
			id=entity.id,
			kind=entity.kind,
			owner=entity.owner,
			category=entity.category,
			latitude=entity.latitude,
			longitude=entity.longitude,
			price=entity.price,
			created_at=entity.created_at,
			expires_at=entity.expires_at,
			distance_km=round(result.distance_km, 3) if result.distance_km is not None else None,
			**result.details,
		)


class SearchResponse(BaseModel):
	items: list[SearchItem] = Field(default_factory=list)
	limit: int
	offset: int = 0
	has_more: bool = False

	@classmethod
	def from_page(cls, page: SearchPage) -> "SearchResponse":
		return cls(
			items=[SearchItem.from_result(item) for item in page.items],
			limit=page.limit,
			offset=page.offset,
			has_more=page.has_more,
		)
