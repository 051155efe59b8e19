"""REST API surface for proximity search."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from omnicore.api.errors import get_request_id
from omnicore.domain.proximity.schemas import SearchResponse
from omnicore.domain.proximity.service import ProximityRanker, build_query
from omnicore.errors import InvalidCoordinate, InvalidQuery, RateLimitExceeded
from omnicore.infra.rate_limit import allow, retry_after
from omnicore.settings import settings

router = APIRouter(prefix="/proximity", tags=["proximity"])

_ranker = ProximityRanker()


async def enforce_search_budget(request: Request) -> None:
    actor = request.headers.get("X-User-Id") or (request.client.host if request.client else "anonymous")
    if not await allow("search", actor, limit=settings.search_rate_limit_per_minute):
        raise RateLimitExceeded("search", retry_after=retry_after())


@router.get("/search", response_model=SearchResponse)
async def search_endpoint(
    request: Request,
    latitude: Optional[float] = Query(default=None),
    longitude: Optional[float] = Query(default=None),
    radius_km: Optional[float] = Query(default=None, description="Defaults to PROXIMITY_DEFAULT_RADIUS_KM"),
    category: Optional[str] = Query(default=None),
    kind: Optional[str] = Query(default=None, description="listing or request"),
    min_price: Optional[float] = Query(default=None),
    max_price: Optional[float] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    offset: int = Query(default=0),
    _budget: None = Depends(enforce_search_budget),
):
    if radius_km is None:
        radius_km = settings.proximity_default_radius_km
    try:
        query = build_query(
            latitude=latitude,
            longitude=longitude,
            radius_km=radius_km,
            category=category,
            kind=kind,
            min_price=min_price,
            max_price=max_price,
            limit=limit,
            offset=offset,
        )
    except (InvalidCoordinate, InvalidQuery) as exc:
        # An empty page plus an explicit error, never mistaken for "no results".
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": {"code": exc.code, "message": exc.message},
                "items": [],
                "limit": limit if limit is not None else settings.proximity_default_limit,
                "offset": offset,
                "has_more": False,
                "request_id": get_request_id(request),
            },
        )
    page = await _ranker.search(query)
    return SearchResponse.from_page(page)
