import math
from typing import List, Optional, Sequence

from shapely.geometry import LinearRing

from .config import settings
from .errors import InvalidCoordinate, InvalidGeometry
from .models import BBox, GeoPoint, PolygonSummary, TileCoordinate
from .tiles import point_to_tile

# Approximate metres per degree of latitude
METERS_PER_DEGREE = 111320.0

Ring = Sequence[Sequence[float]]

def _outer_ring(geometry: dict) -> List[Sequence[float]]:
    return geometry["coordinates"][0]

def is_simple_ring(ring: Ring) -> bool:
    """True when the ring has >= 4 positions, is closed and does not cross itself."""
    if len(ring) < 4:
        return False
    pts = [(float(p[0]), float(p[1])) for p in ring]
    if pts[0] != pts[-1] or len(set(pts)) < 3:
        return False
    return LinearRing(pts).is_simple

def validate_polygon(geometry: Optional[dict], strict: Optional[bool] = None) -> bool:
    """
    Shallow structural check of a GeoJSON Polygon:
    - not None, type tag "Polygon", non-empty outer ring
    With strict=True the outer ring must also be closed, have at least
    4 positions and be free of self-intersections. strict=None follows
    settings.STRICT_POLYGONS.
    """
    if strict is None:
        strict = settings.STRICT_POLYGONS
    if not isinstance(geometry, dict):
        return False
    if geometry.get("type") != "Polygon":
        return False
    coords = geometry.get("coordinates")
    if not coords or not coords[0]:
        return False
    if strict:
        return is_simple_ring(coords[0])
    return True

# Ring helpers expect an already validated, non-empty outer ring.

def _ring_center(ring: Ring) -> GeoPoint:
    # Mean of every ring entry; the closing vertex is counted like any other.
    n = len(ring)
    return GeoPoint(lat=sum(p[1] for p in ring) / n, lng=sum(p[0] for p in ring) / n)

def _ring_area(ring: Ring, center_lat: float) -> float:
    n = len(ring)
    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += ring[i][0] * ring[j][1]
        area -= ring[j][0] * ring[i][1]
    area = abs(area) / 2.0

    lat_factor = METERS_PER_DEGREE
    lng_factor = METERS_PER_DEGREE * math.cos(math.radians(center_lat))
    return area * lat_factor * lng_factor / 10000.0  # m2 -> ha

def _ring_bounds(ring: Ring) -> BBox:
    lngs = [p[0] for p in ring]; lats = [p[1] for p in ring]
    return BBox(min_lng=min(lngs), min_lat=min(lats), max_lng=max(lngs), max_lat=max(lats))

def calculate_polygon_center(geometry: Optional[dict], fallback: Optional[GeoPoint] = None) -> GeoPoint:
    if not validate_polygon(geometry, strict=False):
        if fallback is None:
            fallback = GeoPoint(lat=settings.FALLBACK_LAT, lng=settings.FALLBACK_LNG)
        return fallback
    return _ring_center(_outer_ring(geometry))

def calculate_area_in_hectares(geometry: Optional[dict]) -> float:
    """
    Planar shoelace area scaled to hectares with an equirectangular
    approximation around the centroid latitude. Only meaningful for
    small fields away from the poles.
    """
    if not validate_polygon(geometry, strict=False):
        return 0.0
    ring = _outer_ring(geometry)
    return _ring_area(ring, _ring_center(ring).lat)

def polygon_bounds(geometry: Optional[dict]) -> BBox:
    if not validate_polygon(geometry, strict=False):
        raise InvalidGeometry("Geometry must be a non-empty GeoJSON Polygon")
    return _ring_bounds(_outer_ring(geometry))

def polygon_to_tile(geometry: Optional[dict], zoom: int, fallback: Optional[GeoPoint] = None) -> TileCoordinate:
    center = calculate_polygon_center(geometry, fallback)
    return point_to_tile(center.lat, center.lng, zoom)

def summarize_polygon(geometry: Optional[dict], zoom: int, strict: Optional[bool] = None) -> PolygonSummary:
    if strict is None:
        strict = settings.STRICT_POLYGONS
    if not validate_polygon(geometry, strict=False):
        raise InvalidGeometry("Geometry must be a non-empty GeoJSON Polygon")
    ring = _outer_ring(geometry)
    if not all(math.isfinite(p[0]) and math.isfinite(p[1]) for p in ring):
        raise InvalidCoordinate("Polygon coordinates must be finite numbers")
    simple = is_simple_ring(ring)
    if strict and not simple:
        raise InvalidGeometry("Polygon ring must be closed, have at least 4 positions and not self-intersect")
    center = _ring_center(ring)
    tile = point_to_tile(center.lat, center.lng, zoom)
    area_ha = _ring_area(ring, center.lat)
    if not math.isfinite(area_ha):
        raise InvalidCoordinate("Polygon coordinates are too large to measure")
    return PolygonSummary(simple=simple, center=center, bbox=_ring_bounds(ring), area_ha=area_ha, tile=tile)
