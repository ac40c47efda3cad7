"""
Geospatial helpers: great-circle distance, bounding boxes and the proximity
filter handed to the store.
"""
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .predicates import Predicate


EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.32
PREFILTER_PADDING = 1.01
PREFILTER_SLACK_METERS = 1.0


class GeocenterError(ValueError):
    """Raised when a search center is incomplete or out of range."""


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> int:
    """
    Great-circle distance between two points in whole meters.

    Rounds half up, so 0.5 m becomes 1 m.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) * math.sin(d_lat / 2)
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) * math.sin(d_lon / 2)
    )
    a = min(a, 1.0)  # float error near antipodes
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return int(math.floor(EARTH_RADIUS_KM * c * 1000 + 0.5))


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


def bounding_box(center_lat: float, center_lng: float, radius_km: float) -> BoundingBox:
    """
    Approximate lat/lng rectangle around a circle.

    One degree of latitude is taken as 111.32 km and longitude degrees shrink
    with cos(latitude). This is an approximation: it is slightly smaller than
    the true haversine circle, so it is fine for display but must not be used
    as an exact filter. Edges are clamped to valid coordinates.
    """
    lat_delta = radius_km / KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(center_lat))
    if cos_lat <= 1e-12:
        lng_delta = 180.0
    else:
        lng_delta = radius_km / (KM_PER_DEGREE_LAT * cos_lat)
    return BoundingBox(
        min_lat=max(center_lat - lat_delta, -90.0),
        max_lat=min(center_lat + lat_delta, 90.0),
        min_lng=max(center_lng - lng_delta, -180.0),
        max_lng=min(center_lng + lng_delta, 180.0),
    )


def validate_geocenter(latitude: Optional[float], longitude: Optional[float],
                       radius_meters: Optional[float] = None) -> None:
    """Reject partial or out-of-range centers. A missing center is fine."""
    if latitude is None and longitude is None:
        return
    if latitude is None or longitude is None:
        raise GeocenterError("Latitude and longitude are required together")
    if not -90 <= latitude <= 90:
        raise GeocenterError(f"Invalid latitude: {latitude}. Must be between -90 and 90")
    if not -180 <= longitude <= 180:
        raise GeocenterError(f"Invalid longitude: {longitude}. Must be between -180 and 180")
    if radius_meters is not None and radius_meters < 0:
        raise GeocenterError(f"Invalid radius: {radius_meters}. Must not be negative")


@dataclass(frozen=True)
class ProximityFilter:
    """
    Parameters for the store's nearest-first, distance-capped query.

    The store evaluates `distance_m` (the same function as
    haversine_meters), so the cutoff and the reported distances agree.
    """

    latitude: float
    longitude: float
    radius_meters: float

    def distance_sql(self) -> Tuple[str, Tuple[float, float]]:
        return "distance_m(?, ?, latitude, longitude)", (self.latitude, self.longitude)

    def predicate(self) -> Predicate:
        """
        Distance cap, preceded by a latitude band the (latitude, longitude)
        index can range-scan. Longitude is left unbanded: the flat
        approximation fails near the poles and across the antimeridian.
        """
        expr, params = self.distance_sql()
        band = self.prefilter_box()
        return (
            Predicate()
            .where("latitude IS NOT NULL AND longitude IS NOT NULL")
            .where("latitude BETWEEN ? AND ?", band.min_lat, band.max_lat)
            .where(f"{expr} <= ?", *params, self.radius_meters)
        )

    def prefilter_box(self) -> BoundingBox:
        # 111.32 km/degree undershoots the haversine circle, and the cutoff
        # compares distances rounded to the meter
        padded = self.radius_meters * PREFILTER_PADDING + PREFILTER_SLACK_METERS
        return bounding_box(self.latitude, self.longitude, padded / 1000)

    def bounding_box(self) -> BoundingBox:
        return bounding_box(self.latitude, self.longitude, self.radius_meters / 1000)

    def distance_to(self, latitude: float, longitude: float) -> int:
        return haversine_meters(self.latitude, self.longitude, latitude, longitude)


def build_proximity_filter(latitude: Optional[float], longitude: Optional[float],
                           radius_meters: float) -> Optional[ProximityFilter]:
    """Validate the center and build the filter; None when no center was given."""
    validate_geocenter(latitude, longitude, radius_meters)
    if latitude is None:
        return None
    return ProximityFilter(latitude, longitude, radius_meters)
