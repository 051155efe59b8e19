import uuid
from datetime import datetime, timedelta, timezone

import pytest

from omnicore.domain.proximity.geo import UNKNOWN_DISTANCE_KM, GeoPoint
from omnicore.domain.proximity.models import EntityKind, GeoEntity
from omnicore.domain.proximity.service import ProximityRanker, build_query, rank_candidates
from omnicore.errors import InvalidCoordinate, InvalidQuery

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _entity(lat, lon, *, minutes_ago=0, kind=EntityKind.LISTING, category="tools", price=10.0, expires_at=None, ident=None):
	return GeoEntity(
		id=ident or uuid.uuid4(),
		kind=kind,
		owner="owner",
		category=category,
		latitude=lat,
		longitude=lon,
		created_at=NOW - timedelta(minutes=minutes_ago),
		expires_at=expires_at,
		price=price,
	)


def test_build_query_defaults():
	query = build_query()
	assert query.point is None
	assert query.limit == 20
	assert query.offset == 0
	assert query.geo_filter_requested is False


def test_build_query_with_point_and_radius():
	query = build_query(latitude=0, longitude=0, radius_km=10, kind="request", category="")
	assert query.point == GeoPoint(0.0, 0.0)
	assert query.kind is EntityKind.REQUEST
	assert query.category is None
	assert query.geo_filter_requested is True


@pytest.mark.parametrize("radius_km", [None, 0, -5])
def test_non_positive_radius_means_no_geo_filter(radius_km):
	query = build_query(latitude=1, longitude=1, radius_km=radius_km)
	assert query.geo_filter_requested is False


@pytest.mark.parametrize(
	"kwargs",
	[
		{"limit": 0},
		{"limit": 101},
		{"offset": -1},
		{"min_price": 10, "max_price": 5},
		{"radius_km": float("nan")},
		{"radius_km": 501},
		{"kind": "service"},
	],
)
def test_build_query_rejects_unservable_parameters(kwargs):
	with pytest.raises(InvalidQuery):
		build_query(**kwargs)


@pytest.mark.parametrize("kwargs", [{"latitude": 95, "longitude": 0}, {"latitude": 10}, {"longitude": 10}])
def test_build_query_rejects_bad_coordinates(kwargs):
	with pytest.raises(InvalidCoordinate):
		build_query(**kwargs)


def test_rank_orders_by_distance_with_unknown_positions_last():
	origin = GeoPoint(0.0, 0.0)
	far = _entity(0.0, 0.5)
	near = _entity(0.0, 0.1)
	unknown_new = _entity(None, None, minutes_ago=1)
	unknown_old = _entity(None, None, minutes_ago=30)
	ranked = rank_candidates([unknown_old, far, unknown_new, near], origin)
	assert [item.entity for item in ranked] == [near, far, unknown_new, unknown_old]
	assert ranked[0].distance_km < ranked[1].distance_km
	assert ranked[2].distance_km is None
	assert ranked[2].sort_key[0] == UNKNOWN_DISTANCE_KM


def test_rank_with_radius_drops_outside_and_unpositioned():
	origin = GeoPoint(0.0, 0.0)
	inside = _entity(0.0, 0.05)
	outside = _entity(0.0, 1.0)
	unknown = _entity(None, None)
	ranked = rank_candidates([outside, unknown, inside], origin, 50.0)
	assert [item.entity for item in ranked] == [inside]


def test_rank_breaks_distance_ties_by_recency_then_id():
	origin = GeoPoint(0.0, 0.0)
	a = _entity(0.0, 0.1, minutes_ago=5, ident=uuid.UUID(int=2))
	b = _entity(0.0, 0.1, minutes_ago=1, ident=uuid.UUID(int=3))
	c = _entity(0.0, 0.1, minutes_ago=5, ident=uuid.UUID(int=1))
	ranked = rank_candidates([a, b, c], origin)
	assert [item.entity for item in ranked] == [b, c, a]


def test_rank_without_point_is_pure_recency():
	old = _entity(0.0, 0.0, minutes_ago=60)
	new = _entity(None, None, minutes_ago=1)
	ranked = rank_candidates([old, new], None)
	assert [item.entity for item in ranked] == [new, old]
	assert all(item.distance_km is None for item in ranked)


@pytest.mark.asyncio
async def test_search_finds_nearby_listing_within_ten_km(entity_repo_factory):
	nearby = _entity(0.05, 0.05)
	repo = entity_repo_factory([nearby])
	ranker = ProximityRanker(repository=repo, clock=lambda: NOW)
	page = await ranker.search(build_query(latitude=0, longitude=0, radius_km=10))
	assert [item.entity for item in page.items] == [nearby]
	assert page.items[0].distance_km == pytest.approx(7.86, abs=0.01)
	assert page.items[0].details == {"title": f"title-{nearby.id}"}
	assert page.has_more is False


@pytest.mark.asyncio
async def test_search_excludes_listing_one_degree_away_at_fifty_km(entity_repo_factory):
	repo = entity_repo_factory([_entity(0.0, 1.0)])
	ranker = ProximityRanker(repository=repo, clock=lambda: NOW)
	page = await ranker.search(build_query(latitude=0, longitude=0, radius_km=50))
	assert page.items == []
	assert page.has_more is False


@pytest.mark.asyncio
async def test_search_skips_expired_and_filters_by_kind_category_price(entity_repo_factory):
	keep = _entity(0.0, 0.01, kind=EntityKind.REQUEST, category="garden", price=40.0)
	expired = _entity(0.0, 0.01, kind=EntityKind.REQUEST, category="garden", price=40.0, expires_at=NOW)
	wrong_kind = _entity(0.0, 0.01, category="garden", price=40.0)
	wrong_category = _entity(0.0, 0.01, kind=EntityKind.REQUEST, category="tools", price=40.0)
	too_expensive = _entity(0.0, 0.01, kind=EntityKind.REQUEST, category="garden", price=400.0)
	repo = entity_repo_factory([keep, expired, wrong_kind, wrong_category, too_expensive])
	ranker = ProximityRanker(repository=repo, clock=lambda: NOW)
	query = build_query(latitude=0, longitude=0, radius_km=5, kind="request", category="garden", max_price=100)
	page = await ranker.search(query)
	assert [item.entity for item in page.items] == [keep]


@pytest.mark.asyncio
async def test_search_paginates_with_has_more(entity_repo_factory):
	entities = [_entity(0.0, 0.001 * (idx + 1)) for idx in range(5)]
	repo = entity_repo_factory(entities)
	ranker = ProximityRanker(repository=repo, clock=lambda: NOW)

	first = await ranker.search(build_query(latitude=0, longitude=0, radius_km=5, limit=2))
	second = await ranker.search(build_query(latitude=0, longitude=0, radius_km=5, limit=2, offset=2))
	last = await ranker.search(build_query(latitude=0, longitude=0, radius_km=5, limit=2, offset=4))

	assert [item.entity for item in first.items] == entities[:2]
	assert first.has_more is True
	assert [item.entity for item in second.items] == entities[2:4]
	assert second.has_more is True
	assert [item.entity for item in last.items] == entities[4:]
	assert last.has_more is False


@pytest.mark.asyncio
async def test_recency_search_pushes_limit_to_storage(entity_repo_factory):
	entities = [_entity(None, None, minutes_ago=idx) for idx in range(6)]
	repo = entity_repo_factory(entities)
	ranker = ProximityRanker(repository=repo, clock=lambda: NOW)
	page = await ranker.search(build_query(limit=2, offset=1))
	assert repo.fetch_calls[0]["limit"] == 4
	assert repo.fetch_calls[0]["box"] is None
	assert [item.entity for item in page.items] == entities[1:3]
	assert page.has_more is True


@pytest.mark.asyncio
async def test_distance_search_without_radius_keeps_everything(entity_repo_factory):
	far = _entity(40.0, 40.0)
	unknown = _entity(None, None)
	repo = entity_repo_factory([unknown, far])
	ranker = ProximityRanker(repository=repo, clock=lambda: NOW)
	page = await ranker.search(build_query(latitude=0, longitude=0, radius_km=0))
	assert repo.fetch_calls[0]["box"] is None
	assert repo.fetch_calls[0]["limit"] is None
	assert [item.entity for item in page.items] == [far, unknown]


@pytest.mark.asyncio
async def test_search_propagates_storage_errors():
	class BrokenRepository:
		async def fetch_candidates(self, *args, **kwargs):
			raise ConnectionError("db down")

	ranker = ProximityRanker(repository=BrokenRepository(), clock=lambda: NOW)
	with pytest.raises(ConnectionError):
		await ranker.search(build_query(latitude=0, longitude=0, radius_km=5))


@pytest.mark.asyncio
async def test_search_skips_deactivated_listing_that_has_not_expired(entity_repo_factory):
	live = _entity(0.0, 0.01)
	deactivated = _entity(0.0, 0.005, expires_at=NOW + timedelta(days=7))
	deactivated.active = False
	repo = entity_repo_factory([deactivated, live])
	ranker = ProximityRanker(repository=repo, clock=lambda: NOW)
	page = await ranker.search(build_query(latitude=0, longitude=0, radius_km=5))
	assert [item.entity for item in page.items] == [live]
