import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .config import settings

logger = logging.getLogger("agrotiles")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

_SECRET_PARAMS = {"api_key", "x-api-key"}


def redact_url(url: str) -> str:
    """Replace secret query values so the URL can be logged."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (k, "[REDACTED]" if k.lower() in _SECRET_PARAMS else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe=",[]")))
