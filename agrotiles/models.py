from datetime import date
from typing import Annotated, Dict, List, Optional, Literal, Tuple, Union
from pydantic import BaseModel, Field, field_validator, model_validator

class GeoPoint(BaseModel):
    lat: float
    lng: float

class BBox(BaseModel):
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    def contains(self, point: GeoPoint) -> bool:
        return (self.min_lng <= point.lng <= self.max_lng
                and self.min_lat <= point.lat <= self.max_lat)

class TileCoordinate(BaseModel):
    zoom: int = Field(ge=0)
    x: int = Field(ge=0)
    y: int = Field(ge=0)

    @model_validator(mode="after")
    def _inside_grid(self):
        n = 2 ** self.zoom
        if self.x >= n or self.y >= n:
            raise ValueError(f"tile {self.x}/{self.y} does not exist at zoom {self.zoom}")
        return self

class PolygonGeometry(BaseModel):
    type: Literal["Polygon"]
    coordinates: List[List[List[float]]]  # [ring][position][lng, lat]

    @field_validator("coordinates")
    @classmethod
    def _positions_are_pairs(cls, v):
        for ring in v:
            for pos in ring:
                if len(pos) < 2:
                    raise ValueError("each position needs at least [lng, lat]")
        return v

class PolygonSummary(BaseModel):
    simple: bool  # closed, >= 4 positions, no self-intersection
    center: GeoPoint
    bbox: BBox
    area_ha: float
    tile: TileCoordinate

# ---------- Analysis parameters ----------
class HillshadeParams(BaseModel):
    kind: Literal["hillshade"] = "hillshade"
    azimuth: float = Field(315, ge=0, le=360)
    altitude: float = Field(45, ge=0, le=90)

class SlopeParams(BaseModel):
    kind: Literal["slope"] = "slope"
    range: Tuple[float, float] = (0, 70)
    colormap: str = "Spectral"

    @field_validator("range")
    @classmethod
    def _range_within_bounds(cls, v):
        lo, hi = v
        if not (0 <= lo <= hi <= 70):
            raise ValueError("slope range must satisfy 0 <= min <= max <= 70")
        return v

class NdviParams(BaseModel):
    kind: Literal["ndvi"] = "ndvi"
    threshold: float = Field(0.3, ge=-1, le=1)

AnalysisParameters = Annotated[
    Union[HillshadeParams, SlopeParams, NdviParams],
    Field(discriminator="kind"),
]

def default_parameters(kind: str) -> Union[HillshadeParams, SlopeParams, NdviParams]:
    defaults = {"hillshade": HillshadeParams, "slope": SlopeParams, "ndvi": NdviParams}
    if kind not in defaults:
        raise ValueError(f"Unknown analysis kind: {kind}")
    return defaults[kind]()

# ---------- Imagery ----------
class NdviOptions(BaseModel):
    calibrate: bool = True
    clustering: Literal["kmeans", "natural"] = "kmeans"
    clusters_no: int = Field(5, ge=1)
    min_area: int = Field(2000, ge=0)

class ImageryRequest(BaseModel):
    path: str
    params: Dict[str, str] = {}
    is_sentinel: bool

class ImageryRequestOut(ImageryRequest):
    url: str  # render URL without the API key

class SearchQuery(BaseModel):
    coordinates: List[List[float]]  # outer ring, [lng, lat]
    start_date: date
    end_date: date
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    max_cloud: Optional[int] = Field(None, ge=0, le=100)
    satellites: List[str] = ["landsat9", "landsat8", "sentinel2l2a"]

    @field_validator("end_date")
    @classmethod
    def _ordered_dates(cls, v, info):
        start = info.data.get("start_date")
        if start is not None and v < start:
            raise ValueError("end_date must not be before start_date")
        return v

class Elevation(BaseModel):
    lat: float
    lng: float
    elevation: float
