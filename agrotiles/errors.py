from typing import Optional


class AgrotilesError(Exception):
    """Base class for errors raised by the tile/scene pipeline."""


class InvalidGeometry(AgrotilesError, ValueError):
    pass


class InvalidCoordinate(AgrotilesError, ValueError):
    pass


class OutOfRangeLatitude(AgrotilesError, ValueError):
    def __init__(self, lat: float):
        super().__init__(f"Latitude {lat} is outside the Web Mercator range (-85.05, 85.05)")
        self.lat = lat


class MalformedSceneIdentifier(AgrotilesError, ValueError):
    def __init__(self, scene_id: str, reason: str):
        super().__init__(f"Malformed scene identifier {scene_id!r}: {reason}")
        self.scene_id = scene_id
        self.reason = reason


class UpstreamError(AgrotilesError, RuntimeError):
    """The EOSDA API failed or answered with something unusable."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details
