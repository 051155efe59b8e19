"""Great-circle distance between two coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from omnicore.errors import InvalidCoordinate

# IUGG mean Earth radius
EARTH_RADIUS_KM = 6371.0088

# Sort key for results without a distance; larger than any great-circle distance.
UNKNOWN_DISTANCE_KM = 1e9


def validate_coordinate(latitude: float, longitude: float) -> None:
	for name, value, bound in (("latitude", latitude, 90.0), ("longitude", longitude, 180.0)):
		if isinstance(value, bool) or not isinstance(value, (int, float)):
			raise InvalidCoordinate(f"{name} must be a number")
		if not math.isfinite(value) or abs(value) > bound:
			raise InvalidCoordinate(f"{name} must be within [-{bound:g}, {bound:g}]")


@dataclass(frozen=True, slots=True)
class GeoPoint:
	"""A position in signed decimal degrees."""

	latitude: float
	longitude: float

	def __post_init__(self) -> None:
		validate_coordinate(self.latitude, self.longitude)


def parse_point(latitude: Optional[float], longitude: Optional[float]) -> Optional[GeoPoint]:
	"""Build a point from optional query parameters.

	Both absent means "no point"; only one of the two present is a malformed
	coordinate rather than a silent fallback to recency ordering.
	"""

	if latitude is None and longitude is None:
		return None
	if latitude is None or longitude is None:
		raise InvalidCoordinate("latitude and longitude must be supplied together")
	return GeoPoint(float(latitude), float(longitude))


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
	"""Great-circle distance in kilometres on the mean Earth sphere."""

	lat1 = math.radians(a.latitude)
	lat2 = math.radians(b.latitude)
	dlat = lat2 - lat1
	dlon = math.radians(b.longitude - a.longitude)
	h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
	return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))
