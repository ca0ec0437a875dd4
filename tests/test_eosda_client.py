import json
import logging
from datetime import date

import pytest
import requests

from agrotiles.config import Settings
from agrotiles.eosda_client import EosdaClient, build_search_body
from agrotiles.errors import UpstreamError
from agrotiles.logging_utils import redact_url
from agrotiles.models import HillshadeParams, SearchQuery, TileCoordinate
from agrotiles.scenes import Product, resolve_imagery_path

RING = [[-79.671282, -2.063534], [-79.6682, -2.063898], [-79.670403, -2.06597], [-79.671282, -2.063534]]


def make_response(status=200, body=b"", content_type="image/png", url=""):
    r = requests.models.Response()
    r.status_code = status
    r._content = body
    r.headers["Content-Type"] = content_type
    r.url = url
    return r


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        prepared = requests.Request(method, url, params=kwargs.get("params")).prepare()
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        response.url = prepared.url
        return response


def make_client(*responses, api_key="secret-key"):
    session = FakeSession(*responses)
    return EosdaClient(Settings(EOSDA_API_KEY=api_key), session=session), session


def test_render_sends_key_and_params():
    client, session = make_client(make_response(body=b"PNG"))
    req = resolve_imagery_path("LC09_L2SP_001001_20240101", Product.NDVI, TileCoordinate(zoom=10, x=1, y=2))

    content, content_type = client.render(req)

    assert (content, content_type) == (b"PNG", "image/png")
    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert url == "https://api-connect.eos.com/api/render/L9/LC09_L2SP_001001_20240101/NDVI/10/1/2"
    assert kwargs["params"]["api_key"] == "secret-key"
    assert kwargs["params"]["CLUSTERS_NO"] == "5"
    assert kwargs["headers"]["Accept"] == "image/png"
    # the request object itself never carries the key
    assert "api_key" not in req.params


def test_key_is_redacted_in_logs(caplog):
    caplog.set_level(logging.DEBUG, logger="agrotiles")
    client, _ = make_client(make_response(body=b"PNG"))
    client.render(resolve_imagery_path("LC08_X", Product.NATURAL, TileCoordinate(zoom=3, x=1, y=1)))
    assert "secret-key" not in caplog.text
    assert "[REDACTED]" in caplog.text


def test_redact_url():
    url = "https://x/render/a?api_key=abc&CALIBRATE=1"
    assert redact_url(url) == "https://x/render/a?api_key=[REDACTED]&CALIBRATE=1"
    assert redact_url("https://x/render/a") == "https://x/render/a"


def test_missing_api_key():
    client, session = make_client(api_key="")
    with pytest.raises(UpstreamError, match="not configured"):
        client.render(resolve_imagery_path("LC08_X", Product.NATURAL, TileCoordinate(zoom=3, x=1, y=1)))
    assert session.calls == []


@pytest.mark.parametrize("status", [401, 403, 404, 500])
def test_error_status_is_raised(status):
    client, _ = make_client(make_response(status=status, body=b"nope", content_type="text/plain"))
    with pytest.raises(UpstreamError) as exc:
        client.terrain(TileCoordinate(zoom=3, x=1, y=1), HillshadeParams())
    assert exc.value.status_code == status


def test_non_image_payload_is_rejected():
    client, _ = make_client(make_response(body=b"{}", content_type="application/json"))
    with pytest.raises(UpstreamError, match="Unexpected content type"):
        client.render(resolve_imagery_path("LC08_X", Product.NATURAL, TileCoordinate(zoom=3, x=1, y=1)))


def test_network_error(caplog):
    caplog.set_level(logging.DEBUG, logger="agrotiles")
    failure = requests.ConnectionError(
        "Max retries exceeded with url: /api/render/L8/LC08_X/B04,B03,B02/3/1/1?api_key=secret-key"
    )
    client, _ = make_client(failure)
    with pytest.raises(UpstreamError, match="not reachable") as exc:
        client.render(resolve_imagery_path("LC08_X", Product.NATURAL, TileCoordinate(zoom=3, x=1, y=1)))
    assert exc.value.details == "ConnectionError"
    assert "secret-key" not in caplog.text
    assert "secret-key" not in str(exc.value)
    assert "ConnectionError" in caplog.text


def test_terrain_request():
    client, session = make_client(make_response(body=b"PNG"))
    client.terrain(TileCoordinate(zoom=15, x=9516, y=16572), HillshadeParams(azimuth=300))
    _, url, kwargs = session.calls[0]
    assert url == "https://api-connect.eos.com/api/render/terrain/15/9516/16572"
    assert kwargs["params"]["format"] == "hillshade"
    assert kwargs["params"]["azimuth"] == "300"


@pytest.mark.parametrize("payload,expected", [({"elevation": 12.5}, 12.5), ({"index_value": 40}, 40.0)])
def test_elevation(payload, expected):
    client, session = make_client(make_response(body=json.dumps(payload).encode(), content_type="application/json"))
    assert client.elevation(-2.06, -79.67) == expected
    assert session.calls[0][1] == "https://api-connect.eos.com/api/render/terrain/point/-2.06/-79.67"


def test_elevation_bad_payload():
    client, _ = make_client(make_response(body=b'{"foo": 1}', content_type="application/json"))
    with pytest.raises(UpstreamError, match="Invalid elevation"):
        client.elevation(0.0, 0.0)


def test_search_body():
    query = SearchQuery(coordinates=RING, start_date=date(2025, 1, 1), end_date=date(2025, 2, 1))
    body = build_search_body(query, max_cloud=50)
    assert body["onAmazon"] is True
    assert body["page"] == 1 and body["limit"] == 10
    assert body["search"]["satellites"] == ["landsat9", "landsat8", "sentinel2l2a"]
    assert body["search"]["date"] == {"from": "2025-01-01", "to": "2025-02-01"}
    assert body["search"]["cloudCoverage"] == {"from": 0, "to": 50}
    assert body["search"]["shape"] == {"type": "Polygon", "coordinates": [RING]}


def test_search_posts_with_header():
    client, session = make_client(make_response(body=b'{"results": []}', content_type="application/json"))
    query = SearchQuery(coordinates=RING, start_date=date(2025, 1, 1), end_date=date(2025, 2, 1), max_cloud=20)
    assert client.search(query) == {"results": []}
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == "https://api-connect.eos.com/api/lms/search/v2"
    assert kwargs["headers"]["x-api-key"] == "secret-key"
    assert kwargs["json"]["search"]["cloudCoverage"]["to"] == 20


def test_search_query_dates_must_be_ordered():
    with pytest.raises(ValueError):
        SearchQuery(coordinates=RING, start_date=date(2025, 2, 1), end_date=date(2025, 1, 1))
