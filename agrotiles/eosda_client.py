from typing import Any, Dict, Optional, Tuple, Union

import requests

from .config import Settings, settings as default_settings
from .errors import UpstreamError
from .logging_utils import logger, redact_url
from .models import HillshadeParams, ImageryRequest, SearchQuery, SlopeParams, TileCoordinate
from .terrain import elevation_path, terrain_request

SEARCH_FIELDS = ["cloudCoverage", "sceneID", "date", "productID", "dataCoveragePercentage"]


def _join(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path}"


def build_search_body(query: SearchQuery, max_cloud: int) -> Dict[str, Any]:
    cloud = query.max_cloud if query.max_cloud is not None else max_cloud
    return {
        "fields": SEARCH_FIELDS,
        "onAmazon": True,
        "page": query.page,
        "limit": query.limit,
        "search": {
            "satellites": query.satellites,
            "date": {"from": query.start_date.isoformat(), "to": query.end_date.isoformat()},
            "cloudCoverage": {"from": 0, "to": cloud},
            "shape": {"type": "Polygon", "coordinates": [query.coordinates]},
        },
    }


class EosdaClient:
    """Blocking client for the EOSDA search/render/terrain endpoints."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or default_settings
        self.session = session or requests.Session()

    def _api_key(self) -> str:
        if not self.settings.EOSDA_API_KEY:
            raise UpstreamError("EOSDA API key is not configured")
        return self.settings.EOSDA_API_KEY

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            r = self.session.request(method, url, timeout=self.settings.REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as e:
            # the exception text can carry the full request url, api_key included
            logger.error("EOSDA request failed: %s %s (%s)", method, redact_url(url), type(e).__name__)
            raise UpstreamError("The satellite imagery service is not reachable", details=type(e).__name__) from e
        logger.info("EOSDA %s %s -> %s", method, redact_url(r.url or url), r.status_code)
        if r.status_code in (401, 403):
            raise UpstreamError("EOSDA rejected the API key", status_code=r.status_code, details=r.text)
        if not r.ok:
            raise UpstreamError(f"EOSDA API responded with status: {r.status_code}",
                                status_code=r.status_code, details=r.text)
        return r

    def _image(self, url: str, params: Dict[str, str]) -> Tuple[bytes, str]:
        params = dict(params, api_key=self._api_key())
        r = self._send("GET", url, params=params, headers={"Accept": "image/png"})
        content_type = r.headers.get("Content-Type", "")
        if not content_type.startswith("image/"):
            raise UpstreamError(f"Unexpected content type: {content_type or 'none'}", status_code=r.status_code)
        return r.content, content_type

    def search(self, query: SearchQuery) -> Dict[str, Any]:
        body = build_search_body(query, self.settings.SEARCH_MAX_CLOUD)
        logger.debug("EOSDA search body: %s", body)
        r = self._send("POST", self.settings.EOSDA_SEARCH_URL, json=body,
                       headers={"x-api-key": self._api_key(), "Content-Type": "application/json"})
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError("EOSDA search returned invalid JSON", details=r.text) from e

    def render(self, request: ImageryRequest) -> Tuple[bytes, str]:
        return self._image(_join(self.settings.EOSDA_RENDER_URL, request.path), request.params)

    def terrain(self, tile: TileCoordinate, params: Union[HillshadeParams, SlopeParams]) -> Tuple[bytes, str]:
        req = terrain_request(tile, params)
        return self._image(_join(self.settings.EOSDA_TERRAIN_URL, req.path), req.params)

    def elevation(self, lat: float, lng: float) -> float:
        url = _join(self.settings.EOSDA_TERRAIN_POINT_URL, elevation_path(lat, lng))
        r = self._send("GET", url, params={"api_key": self._api_key()})
        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamError("EOSDA elevation returned invalid JSON", details=r.text) from e
        for key in ("elevation", "index_value"):
            value = data.get(key) if isinstance(data, dict) else None
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
        logger.error("Invalid elevation payload from EOSDA: %s", data)
        raise UpstreamError("Invalid elevation data structure from EOSDA")
