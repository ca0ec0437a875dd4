from typing import Union

from .logging_utils import logger
from .models import HillshadeParams, ImageryRequest, NdviParams, SlopeParams, TileCoordinate

def _fmt(value: float) -> str:
    # 315.0 -> "315", 0.5 -> "0.5"
    return str(int(value)) if float(value).is_integer() else str(value)

def terrain_request(tile: TileCoordinate, params: Union[HillshadeParams, SlopeParams, NdviParams]) -> ImageryRequest:
    """Render request for the terrain endpoint; path is relative to EOSDA_TERRAIN_URL."""
    if isinstance(params, HillshadeParams):
        query = {"format": "hillshade", "azimuth": _fmt(params.azimuth), "altitude": _fmt(params.altitude)}
    elif isinstance(params, SlopeParams):
        lo, hi = params.range
        query = {"format": "slope", "colormap": params.colormap, "slopeRange": f"{_fmt(lo)},{_fmt(hi)}"}
    else:
        raise ValueError(f"Terrain renders support hillshade and slope, not {params.kind}")
    path = f"{tile.zoom}/{tile.x}/{tile.y}"
    logger.debug("Resolved terrain %s request -> %s", query["format"], path)
    return ImageryRequest(path=path, params=query, is_sentinel=False)

def elevation_path(lat: float, lng: float) -> str:
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise ValueError(f"Invalid coordinate ({lat}, {lng})")
    return f"{lat}/{lng}"
