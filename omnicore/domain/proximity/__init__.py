"""Proximity search domain exports."""

from .candidates import BoundingBox, candidate_box
from .geo import EARTH_RADIUS_KM, UNKNOWN_DISTANCE_KM, GeoPoint, haversine_km, parse_point
from .models import EntityKind, GeoEntity, ProximityQuery, RankedResult, SearchPage
from .service import ProximityRanker, build_query, rank_candidates

__all__ = [
	"BoundingBox",
	"EARTH_RADIUS_KM",
	"EntityKind",
	"GeoEntity",
	"GeoPoint",
	"ProximityQuery",
	"ProximityRanker",
	"RankedResult",
	"SearchPage",
	"UNKNOWN_DISTANCE_KM",
	"build_query",
	"candidate_box",
	"haversine_km",
	"parse_point",
	"rank_candidates",
]
