"""Index-friendly pre-filter that narrows a radius search before exact distances.

The box is the latitude/longitude extent of the spherical cap around the query
point, so it never drops an entity inside the radius. It is evaluated by a
B-tree on ``(latitude, longitude)`` in SQL and by :meth:`BoundingBox.contains`
in memory.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from omnicore.domain.proximity.geo import EARTH_RADIUS_KM, GeoPoint
from omnicore.errors import InvalidQuery

LonRange = Tuple[float, float]

_FULL_LONGITUDE: Tuple[LonRange, ...] = ((-180.0, 180.0),)
# Padding so points exactly on the circle survive float rounding.
_EDGE_TOLERANCE_KM = 0.001


@dataclass(frozen=True, slots=True)
class BoundingBox:
	min_lat: float
	max_lat: float
	lon_ranges: Tuple[LonRange, ...]

	@property
	def spans_all_longitudes(self) -> bool:
		return self.lon_ranges == _FULL_LONGITUDE

	def contains(self, latitude: Optional[float], longitude: Optional[float]) -> bool:
		if latitude is None or longitude is None:
			return False
		if not self.min_lat <= latitude <= self.max_lat:
			return False
		return any(lo <= longitude <= hi for lo, hi in self.lon_ranges)

	def to_sql(self, lat_col: str, lon_col: str, first_param: int) -> Tuple[str, List[Any]]:
		"""Render the predicate as ``BETWEEN`` ranges using positional asyncpg params."""

		params: List[Any] = [self.min_lat, self.max_lat]
		idx = first_param
		clause = f"{lat_col} BETWEEN ${idx} AND ${idx + 1}"
		idx += 2
		if self.spans_all_longitudes:
			return f"{clause} AND {lon_col} IS NOT NULL", params
		ranges: List[str] = []
		for lo, hi in self.lon_ranges:
			ranges.append(f"{lon_col} BETWEEN ${idx} AND ${idx + 1}")
			params.extend([lo, hi])
			idx += 2
		return f"{clause} AND ({' OR '.join(ranges)})", params


def candidate_box(center: GeoPoint, radius_km: float) -> BoundingBox:
	if not math.isfinite(radius_km) or radius_km <= 0:
		raise InvalidQuery("radius_km must be a positive number")
	angular = (radius_km + _EDGE_TOLERANCE_KM) / EARTH_RADIUS_KM
	dlat = math.degrees(angular)
	min_lat = center.latitude - dlat
	max_lat = center.latitude + dlat
	if min_lat <= -90.0 or max_lat >= 90.0:
		# The cap contains a pole: every meridian crosses it.
		return BoundingBox(max(min_lat, -90.0), min(max_lat, 90.0), _FULL_LONGITUDE)

	ratio = math.sin(angular) / math.cos(math.radians(center.latitude))
	dlon = math.degrees(math.asin(min(1.0, ratio)))
	min_lon = center.longitude - dlon
	max_lon = center.longitude + dlon
	if max_lon - min_lon >= 360.0:
		return BoundingBox(min_lat, max_lat, _FULL_LONGITUDE)
	if min_lon < -180.0:
		ranges: Tuple[LonRange, ...] = ((min_lon + 360.0, 180.0), (-180.0, max_lon))
	elif max_lon > 180.0:
		ranges = ((min_lon, 180.0), (-180.0, max_lon - 360.0))
	else:
		ranges = ((min_lon, max_lon),)
	return BoundingBox(min_lat, max_lat, ranges)
