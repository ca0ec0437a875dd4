from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # EOSDA
    EOSDA_API_KEY: str = ""       # required for the proxy routes
    EOSDA_RENDER_URL: str = "https://api-connect.eos.com/api/render"
    EOSDA_SEARCH_URL: str = "https://api-connect.eos.com/api/lms/search/v2"
    EOSDA_TERRAIN_URL: str = "https://api-connect.eos.com/api/render/terrain"
    EOSDA_TERRAIN_POINT_URL: str = "https://api-connect.eos.com/api/render/terrain/point"
    REQUEST_TIMEOUT: float = 30.0

    # Tiles / geometry
    DEFAULT_ZOOM: int = 15
    FALLBACK_LAT: float = -2.063534   # sentinel center for invalid polygons
    FALLBACK_LNG: float = -79.671282
    STRICT_POLYGONS: bool = False

    # NDVI render defaults
    NDVI_CALIBRATE: bool = True
    NDVI_CLUSTERING: str = "kmeans"
    NDVI_CLUSTERS_NO: int = 5
    NDVI_MIN_AREA: int = 2000
    SEARCH_MAX_CLOUD: int = 50

    # App
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"


settings = Settings()
