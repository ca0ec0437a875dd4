"""
Satellite scene identifiers -> EOSDA render requests.

Scene ids come from the EOSDA search endpoint in two shapes:

    Sentinel-2  S2C_tile_20250204_17MPT_0
                mission / "tile" / YYYYMMDD / UTM zone+band+square / version
    Landsat     LC09_L2SP_001001_20240101...   (opaque, passed through)

The id is parsed once into a ``SentinelSceneId`` or ``LandsatSceneId`` and
the render path is built from the parsed value.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Union
from urllib.parse import urlencode

from .config import settings
from .errors import MalformedSceneIdentifier
from .logging_utils import logger
from .models import ImageryRequest, NdviOptions, TileCoordinate

_MISSION_RE = re.compile(r"S2[A-Z]")
_DATE_RE = re.compile(r"[0-9]{8}")
_TILE_CODE_RE = re.compile(r"([0-9]{2})([A-Z])([A-Z]{2})")


class Product(str, Enum):
    NATURAL = "natural"
    NDVI = "ndvi"

    @property
    def band_set(self) -> str:
        return "B04,B03,B02" if self is Product.NATURAL else "NDVI"


@dataclass(frozen=True)
class SentinelSceneId:
    raw: str
    mission: str
    year: int
    month: int
    day: int
    zone: str
    band: str
    square: str
    version: str

    def path_prefix(self) -> str:
        return (f"S2/{self.zone}/{self.band}/{self.square}/"
                f"{self.year}/{self.month}/{self.day}/{self.version}")


@dataclass(frozen=True)
class LandsatSceneId:
    raw: str

    @property
    def satellite(self) -> str:
        return "L9" if self.raw.startswith("LC09") else "L8"


SceneId = Union[SentinelSceneId, LandsatSceneId]


def _parse_sentinel(scene_id: str) -> SentinelSceneId:
    parts = scene_id.split("_")
    if len(parts) != 5:
        raise MalformedSceneIdentifier(scene_id, f"expected 5 '_'-separated fields, got {len(parts)}")
    mission, tag, date8, tile_code, version = parts
    if not _MISSION_RE.fullmatch(mission):
        raise MalformedSceneIdentifier(scene_id, f"unknown Sentinel-2 mission {mission!r}")
    if tag != "tile":
        raise MalformedSceneIdentifier(scene_id, f"second field must be 'tile', got {tag!r}")
    if not _DATE_RE.fullmatch(date8):
        raise MalformedSceneIdentifier(scene_id, f"date field must be YYYYMMDD, got {date8!r}")
    try:
        acquired = datetime.strptime(date8, "%Y%m%d")
    except ValueError:
        raise MalformedSceneIdentifier(scene_id, f"date field is not a calendar date: {date8!r}") from None
    m = _TILE_CODE_RE.fullmatch(tile_code)
    if not m:
        raise MalformedSceneIdentifier(scene_id, f"tile code must look like 17MPT, got {tile_code!r}")
    if not version:
        raise MalformedSceneIdentifier(scene_id, "version field is empty")
    zone, band, square = m.groups()
    return SentinelSceneId(
        raw=scene_id, mission=mission,
        year=acquired.year, month=acquired.month, day=acquired.day,
        zone=zone, band=band, square=square, version=version,
    )


def parse_scene_id(scene_id: str) -> SceneId:
    if not scene_id or not scene_id.strip():
        raise MalformedSceneIdentifier(scene_id or "", "empty identifier")
    if scene_id.startswith("S2"):
        return _parse_sentinel(scene_id)
    return LandsatSceneId(raw=scene_id)


def ndvi_query_params(options: Optional[NdviOptions] = None, threshold: Optional[float] = None) -> Dict[str, str]:
    if options is None:
        options = NdviOptions(
            calibrate=settings.NDVI_CALIBRATE,
            clustering=settings.NDVI_CLUSTERING,
            clusters_no=settings.NDVI_CLUSTERS_NO,
            min_area=settings.NDVI_MIN_AREA,
        )
    params = {
        "CALIBRATE": "1" if options.calibrate else "0",
        "CLUSTERING": options.clustering,
        "CLUSTERS_NO": str(options.clusters_no),
        "MIN_AREA": str(options.min_area),
    }
    if threshold is not None:
        if not -1.0 <= threshold <= 1.0:
            raise ValueError(f"NDVI threshold must be within [-1, 1], got {threshold}")
        params["threshold"] = str(threshold)
    return params


def resolve_imagery_path(scene_id: Union[str, SceneId], product: Union[str, Product], tile: TileCoordinate,
                         threshold: Optional[float] = None,
                         ndvi_options: Optional[NdviOptions] = None) -> ImageryRequest:
    scene = parse_scene_id(scene_id) if isinstance(scene_id, str) else scene_id
    product = Product(product)
    suffix = f"{product.band_set}/{tile.zoom}/{tile.x}/{tile.y}"

    if isinstance(scene, SentinelSceneId):
        path = f"{scene.path_prefix()}/{suffix}"
    elif product is Product.NATURAL:
        # natural colour always uses the Landsat 8 band convention
        path = f"L8/{scene.raw}/{suffix}"
    else:
        path = f"{scene.satellite}/{scene.raw}/{suffix}"

    params = ndvi_query_params(ndvi_options, threshold) if product is Product.NDVI else {}
    logger.debug("Resolved %s request for %s -> %s", product.value, scene.raw, path)
    return ImageryRequest(path=path, params=params, is_sentinel=isinstance(scene, SentinelSceneId))


def build_render_url(base_url: str, request: ImageryRequest) -> str:
    url = f"{base_url.rstrip('/')}/{request.path}"
    if request.params:
        url += "?" + urlencode(request.params, safe=",")
    return url
