from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from .config import settings
from .errors import InvalidCoordinate, InvalidGeometry, MalformedSceneIdentifier, OutOfRangeLatitude, UpstreamError
from .eosda_client import EosdaClient
from .geometry import summarize_polygon
from .logging_utils import logger
from .models import *
from .scenes import Product, build_render_url, resolve_imagery_path
from .tiles import point_to_tile, tile_to_bounds

app = FastAPI(title="Agrotiles - tile, scene and analysis request resolver")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

IMAGE_CACHE_CONTROL = "public, max-age=31536000"

def _tile(z: int, x: int, y: int) -> TileCoordinate:
    try:
        return TileCoordinate(zoom=z, x=x, y=y)
    except ValidationError as e:
        raise HTTPException(422, f"Invalid tile {z}/{x}/{y}: {e.errors()[0]['msg']}")

@lru_cache()
def get_client() -> EosdaClient:
    return EosdaClient(settings)

# --- ERRORS ---
@app.exception_handler(InvalidGeometry)
@app.exception_handler(InvalidCoordinate)
@app.exception_handler(OutOfRangeLatitude)
@app.exception_handler(MalformedSceneIdentifier)
def bad_input_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"error": type(exc).__name__, "details": str(exc)})

@app.exception_handler(UpstreamError)
def upstream_handler(request: Request, exc: UpstreamError):
    status = exc.status_code if exc.status_code in (401, 403, 404) else 502
    logger.error("Upstream failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status, content={"error": str(exc), "details": exc.details})

@app.get("/status")
def health():
    return {"status": "ok"}

# ---------- GEOMETRY / TILES ----------
@app.post("/geometry/summary", response_model=PolygonSummary)
def geometry_summary(geometry: PolygonGeometry, zoom: Optional[int] = Query(None, ge=0, le=24),
                     strict: Optional[bool] = None):
    z = settings.DEFAULT_ZOOM if zoom is None else zoom
    return summarize_polygon(geometry.model_dump(), z, strict)

@app.get("/tiles", response_model=TileCoordinate)
def tile_for_point(lat: float, lng: float, zoom: Optional[int] = Query(None, ge=0, le=24)):
    return point_to_tile(lat, lng, settings.DEFAULT_ZOOM if zoom is None else zoom)

@app.get("/tiles/{z}/{x}/{y}/bounds", response_model=BBox)
def bounds_for_tile(z: int, x: int, y: int):
    return tile_to_bounds(_tile(z, x, y))

# ---------- SCENES ----------
def _scene_request(scene_id: str, product: Product, z: int, x: int, y: int,
                   threshold: Optional[float]) -> ImageryRequest:
    return resolve_imagery_path(scene_id, product, _tile(z, x, y),
                                threshold=threshold if product is Product.NDVI else None)

@app.post("/scenes/search")
def search_scenes(query: SearchQuery, client: EosdaClient = Depends(get_client)):
    logger.info("Searching scenes %s..%s page=%s", query.start_date, query.end_date, query.page)
    return client.search(query)

@app.get("/scenes/{scene_id}/{product}/request", response_model=ImageryRequestOut)
def scene_request(scene_id: str, product: Product, z: int = Query(10, ge=0, le=24),
                  x: int = Query(0, ge=0), y: int = Query(0, ge=0),
                  threshold: Optional[float] = Query(None, ge=-1, le=1)):
    req = _scene_request(scene_id, product, z, x, y, threshold)
    return ImageryRequestOut(**req.model_dump(), url=build_render_url(settings.EOSDA_RENDER_URL, req))

@app.get("/scenes/{scene_id}/{product}")
def scene_image(scene_id: str, product: Product, z: int = Query(10, ge=0, le=24),
                x: int = Query(0, ge=0), y: int = Query(0, ge=0),
                threshold: Optional[float] = Query(None, ge=-1, le=1),
                client: EosdaClient = Depends(get_client)):
    req = _scene_request(scene_id, product, z, x, y, threshold)
    content, content_type = client.render(req)
    return Response(content=content, media_type=content_type,
                    headers={"Cache-Control": IMAGE_CACHE_CONTROL})

# ---------- TERRAIN ----------
@app.get("/terrain/elevation", response_model=Elevation)
def point_elevation(lat: float = Query(..., ge=-90, le=90), lng: float = Query(..., ge=-180, le=180),
                    client: EosdaClient = Depends(get_client)):
    return Elevation(lat=lat, lng=lng, elevation=client.elevation(lat, lng))

@app.post("/terrain/{z}/{x}/{y}")
def terrain_image(z: int, x: int, y: int, params: AnalysisParameters,
                  client: EosdaClient = Depends(get_client)):
    if isinstance(params, NdviParams):
        raise HTTPException(422, "Terrain renders support hillshade and slope only")
    content, content_type = client.terrain(_tile(z, x, y), params)
    return Response(content=content, media_type=content_type,
                    headers={"Cache-Control": IMAGE_CACHE_CONTROL})
