import math

from .errors import InvalidCoordinate, OutOfRangeLatitude
from .models import BBox, TileCoordinate

# Web Mercator is undefined at the poles
MAX_LATITUDE = 85.05

def _check_zoom(zoom: int):
    if isinstance(zoom, bool) or not isinstance(zoom, int) or zoom < 0:
        raise ValueError(f"zoom must be a non-negative integer, got {zoom!r}")

def _wrap_lng(lng: float) -> float:
    if -180.0 <= lng <= 180.0:
        return lng
    return (lng + 180.0) % 360.0 - 180.0

def point_to_tile(lat: float, lng: float, zoom: int) -> TileCoordinate:
    """Slippy-map tile containing (lat, lng) at the given zoom."""
    _check_zoom(zoom)
    if not math.isfinite(lat) or not -MAX_LATITUDE < lat < MAX_LATITUDE:
        raise OutOfRangeLatitude(lat)
    if not math.isfinite(lng):
        raise InvalidCoordinate(f"longitude must be finite, got {lng!r}")

    n = 2 ** zoom
    lat_rad = math.radians(lat)
    x = math.floor((_wrap_lng(lng) + 180.0) / 360.0 * n)
    y = math.floor((1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n)
    # lng == 180 and float error land just outside the grid
    x = min(max(x, 0), n - 1)
    y = min(max(y, 0), n - 1)
    return TileCoordinate(zoom=zoom, x=x, y=y)

def tile_to_bounds(tile: TileCoordinate) -> BBox:
    n = 2 ** tile.zoom
    if not (0 <= tile.x < n and 0 <= tile.y < n):
        raise ValueError(f"tile {tile.x}/{tile.y} does not exist at zoom {tile.zoom}")
    west = tile.x / n * 360.0 - 180.0
    east = (tile.x + 1) / n * 360.0 - 180.0
    north = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * tile.y / n))))
    south = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * (tile.y + 1) / n))))
    return BBox(min_lng=west, min_lat=south, max_lng=east, max_lat=north)
