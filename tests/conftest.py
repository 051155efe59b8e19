from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

from omnicore.domain.leaderboards.models import BalanceRow, RankCacheRow
from omnicore.domain.proximity.models import GeoEntity
from omnicore.infra import postgres
from omnicore.main import app
from omnicore.maintenance.retention import RetentionTarget


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from omnicore.infra.redis import redis_client, set_redis_client

	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


class FakeEntityRepository:
	"""Applies the same predicates as the SQL candidate query, in memory."""

	def __init__(self, entities: List[GeoEntity]):
		self.entities = list(entities)
		self.fetch_calls: List[Dict[str, Any]] = []

	async def fetch_candidates(self, query, box, *, now, limit=None):
		self.fetch_calls.append({"box": box, "now": now, "limit": limit})
		rows = []
		for entity in self.entities:
			if not entity.active:
				continue
			if entity.expires_at is not None and entity.expires_at <= now:
				continue
			if query.kind is not None and entity.kind != query.kind:
				continue
			if query.category is not None and entity.category != query.category:
				continue
			if query.min_price is not None and (entity.price is None or entity.price < query.min_price):
				continue
			if query.max_price is not None and (entity.price is None or entity.price > query.max_price):
				continue
			if box is not None and not box.contains(entity.latitude, entity.longitude):
				continue
			rows.append(entity)
		if limit is not None:
			rows.sort(key=lambda item: (-item.created_at.timestamp(), str(item.id)))
			rows = rows[:limit]
		return rows

	async def load_details(self, refs):
		return {ref: {"title": f"title-{ref[1]}"} for ref in refs}


class RankStore:
	def __init__(self, balances: List[BalanceRow], cache: Optional[List[RankCacheRow]] = None):
		self.balances = list(balances)
		self.cache: List[RankCacheRow] = list(cache or [])
		self.fail_insert = False
		self.commits = 0
		self.rollbacks = 0


class FakeTransaction:
	def __init__(self, store: RankStore):
		self.store = store
		self._snapshot: List[RankCacheRow] = []

	async def __aenter__(self):
		self._snapshot = list(self.store.cache)
		return self

	async def __aexit__(self, exc_type, exc, tb):
		if exc_type is not None:
			self.store.cache = self._snapshot
			self.store.rollbacks += 1
		else:
			self.store.commits += 1
		return False


class FakeConnection:
	def __init__(self, store: RankStore):
		self.store = store

	def transaction(self):
		return FakeTransaction(self.store)


class FakePool:
	def __init__(self, store: RankStore):
		self.store = store

	@asynccontextmanager
	async def acquire(self):
		yield FakeConnection(self.store)


class FakeRankRepository:
	def __init__(self, store: RankStore):
		self.store = store

	async def fetch_positive_balances(self, conn):
		return [row for row in conn.store.balances if row.total_omni_earned > 0]

	async def replace_all(self, conn, rows):
		conn.store.cache = []
		if conn.store.fail_insert:
			raise RuntimeError("insert failed")
		conn.store.cache = list(rows)

	async def top(self, limit):
		return sorted(self.store.cache, key=lambda row: row.rank)[:limit]

	async def rank_of(self, username):
		return next((row for row in self.store.cache if row.username == username), None)


class FakeRetentionRepository:
	"""Tables of ``{key: expires_at}``; a batch deletes up to ``limit`` expired keys."""

	def __init__(self, tables: Optional[Dict[str, Dict[Any, Optional[datetime]]]] = None):
		self.tables: Dict[str, Dict[Any, Optional[datetime]]] = tables or {}
		self.failing: Dict[str, int] = {}
		self.calls: List[str] = []

	async def delete_expired_batch(self, target: RetentionTarget, *, now: datetime, limit: int) -> int:
		self.calls.append(target.table)
		if target.table in self.failing:
			if self.failing[target.table] <= 0:
				raise RuntimeError(f"{target.table} unavailable")
			self.failing[target.table] -= 1
		rows = self.tables.setdefault(target.table, {})
		doomed = [key for key, expires_at in rows.items() if expires_at is not None and expires_at <= now][:limit]
		for key in doomed:
			del rows[key]
		return len(doomed)


@pytest.fixture
def entity_repo_factory():
	return FakeEntityRepository


@pytest.fixture
def rank_store_factory():
	return RankStore


@pytest.fixture
def rank_repo_factory():
	return FakeRankRepository


@pytest.fixture
def fake_pool_factory():
	return FakePool


@pytest.fixture
def retention_repo_factory():
	return FakeRetentionRepository
