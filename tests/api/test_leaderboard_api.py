from datetime import datetime, timezone

import pytest

from omnicore.api import leaderboards as leaderboards_api
from omnicore.domain.leaderboards.models import RankCacheRow
from omnicore.domain.leaderboards.service import LeaderboardReader

REFRESHED_AT = datetime(2025, 3, 1, 6, 0, tzinfo=timezone.utc)


@pytest.fixture
def cached(monkeypatch, rank_store_factory, rank_repo_factory):
	store = rank_store_factory(
		[],
		[
			RankCacheRow("alice", 500, 1, REFRESHED_AT),
			RankCacheRow("bob", 300, 2, REFRESHED_AT),
			RankCacheRow("carol", 300, 3, REFRESHED_AT),
		],
	)
	monkeypatch.setattr(leaderboards_api, "_reader", LeaderboardReader(repository=rank_repo_factory(store)))
	return store


@pytest.mark.asyncio
async def test_leaderboard_lists_ranked_rows(api_client, cached):
	response = await api_client.get("/leaderboard", params={"limit": 2})
	assert response.status_code == 200
	data = response.json()
	assert [(row["username"], row["rank"]) for row in data["items"]] == [("alice", 1), ("bob", 2)]
	assert data["refreshed_at"].startswith("2025-03-01T06:00:00")


@pytest.mark.asyncio
async def test_empty_leaderboard(api_client, cached):
	cached.cache = []
	response = await api_client.get("/leaderboard")
	assert response.status_code == 200
	assert response.json() == {"items": [], "refreshed_at": None}


@pytest.mark.asyncio
async def test_owner_rank(api_client, cached):
	response = await api_client.get("/leaderboard/carol")
	assert response.status_code == 200
	assert response.json()["rank"] == 3


@pytest.mark.asyncio
async def test_unranked_owner_is_404(api_client, cached):
	response = await api_client.get("/leaderboard/nobody")
	assert response.status_code == 404
	assert response.json()["detail"] == "not_ranked"
