"""Read-only data access for listings and requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from omnicore.domain.proximity.candidates import BoundingBox
from omnicore.domain.proximity.models import EntityKind, GeoEntity, ProximityQuery
from omnicore.infra.postgres import get_pool

EntityRef = Tuple[EntityKind, UUID]


@dataclass(frozen=True, slots=True)
class _Source:
	table: str
	owner_col: str
	price_col: str
	extra_predicate: Optional[str] = None
	detail_columns: str = ""


_SOURCES: Dict[EntityKind, _Source] = {
	EntityKind.LISTING: _Source(
		table="listings",
		owner_col="username",
		price_col="price",
		extra_predicate="is_active",
		detail_columns="title, description, price_unit, COALESCE(thumbnail_images, '{}') AS thumbnail_images",
	),
	EntityKind.REQUEST: _Source(
		table="requests",
		owner_col="requester_username",
		price_col="budget_min",
		extra_predicate="status = 'open'",
		detail_columns="title, description, budget_max, urgency, location",
	),
}


def build_candidate_sql(
	query: ProximityQuery,
	box: Optional[BoundingBox],
	*,
	now: datetime,
	limit: Optional[int] = None,
) -> Tuple[str, List[Any]]:
	"""Compose the candidate query: cheap predicates and the box, never distances.

	``limit`` is only pushed down for recency-ordered queries; distance ordering
	happens after the exact computation in Python.
	"""

	params: List[Any] = [now]

	def bind(value: Any) -> str:
		params.append(value)
		return f"${len(params)}"

	shared: List[str] = []
	if query.category is not None:
		shared.append(f"category = {bind(query.category)}")
	if box is not None:
		clause, box_params = box.to_sql("latitude", "longitude", len(params) + 1)
		params.extend(box_params)
		shared.append(clause)
	min_ref = bind(query.min_price) if query.min_price is not None else None
	max_ref = bind(query.max_price) if query.max_price is not None else None
	limit_ref = bind(limit) if limit is not None else None

	kinds = [query.kind] if query.kind is not None else list(EntityKind)
	branches: List[str] = []
	for kind in kinds:
		source = _SOURCES[kind]
		where = ["(expires_at IS NULL OR expires_at > $1)"]
		if source.extra_predicate:
			where.append(source.extra_predicate)
		where.extend(shared)
		if min_ref:
			where.append(f"{source.price_col} >= {min_ref}")
		if max_ref:
			where.append(f"{source.price_col} <= {max_ref}")
		branch = (
			f"SELECT id, '{kind.value}' AS kind, {source.owner_col} AS owner, category, latitude, longitude, "
			f"{source.price_col}::float8 AS price, expires_at, created_at "
			f"FROM {source.table} WHERE {' AND '.join(where)}"
		)
		if limit_ref:
			branch = f"({branch} ORDER BY created_at DESC, id LIMIT {limit_ref})"
		branches.append(branch)

	sql = "\nUNION ALL\n".join(branches)
	if limit_ref:
		sql = f"SELECT * FROM (\n{sql}\n) candidates ORDER BY created_at DESC, id LIMIT {limit_ref}"
	return sql, params


def _row_to_entity(row: Mapping[str, Any]) -> GeoEntity:
	price = row["price"]
	return GeoEntity(
		id=row["id"],
		kind=EntityKind(row["kind"]),
		owner=row["owner"],
		category=row["category"],
		latitude=row["latitude"],
		longitude=row["longitude"],
		created_at=row["created_at"],
		expires_at=row["expires_at"],
		price=float(price) if price is not None else None,
	)


class EntityRepository:
	"""Thin data-access layer around asyncpg; never writes."""

	async def fetch_candidates(
		self,
		query: ProximityQuery,
		box: Optional[BoundingBox],
		*,
		now: datetime,
		limit: Optional[int] = None,
	) -> List[GeoEntity]:
		sql, params = build_candidate_sql(query, box, now=now, limit=limit)
		pool = await get_pool()
		rows = await pool.fetch(sql, *params)
		return [_row_to_entity(row) for row in rows]

	async def load_details(self, refs: Iterable[EntityRef]) -> Dict[EntityRef, Dict[str, Any]]:
		by_kind: Dict[EntityKind, List[UUID]] = {}
		for kind, entity_id in refs:
			by_kind.setdefault(kind, []).append(entity_id)
		if not by_kind:
			return {}
		pool = await get_pool()
		details: Dict[EntityRef, Dict[str, Any]] = {}
		for kind, ids in by_kind.items():
			source = _SOURCES[kind]
			rows = await pool.fetch(
				f"SELECT id, {source.detail_columns} FROM {source.table} WHERE id = ANY($1::uuid[])",
				_unique(ids),
			)
			for row in rows:
				payload = {key: float(value) if isinstance(value, Decimal) else value for key, value in row.items()}
				entity_id = payload.pop("id")
				details[(kind, entity_id)] = payload
		return details


def _unique(ids: Sequence[UUID]) -> List[UUID]:
	return list(dict.fromkeys(ids))
