import pytest
import requests

from config import RouteConfig
from errors import ConfigError, NoRoutesError, NotFoundError, UpstreamError
from route_models import Point
from routing_engine import (
    decode_geometry, fetch_alternatives, parse_coordinates, resolve,
)
from tests.helpers import FakeResponse, geocode_payload, route_feature

ORIGIN = Point(lon=77.2090, lat=28.6139)
DEST = Point(lon=77.2295, lat=28.6129)


# ---------------------------------------------------------------------------
# Device coordinates
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text,expected", [
    ("28.6139,77.2090", Point(lon=77.2090, lat=28.6139)),
    (" -33.86 , 151.21 ", Point(lon=151.21, lat=-33.86)),
    ("+51.5,-0.12", Point(lon=-0.12, lat=51.5)),
])
def test_parse_coordinates(text, expected):
    assert parse_coordinates(text) == expected


@pytest.mark.parametrize("text", ["India Gate", "95.0,10.0", "28.6,190", "28.6;77.2", "1,2,3"])
def test_parse_coordinates_rejects_non_pairs(text):
    assert parse_coordinates(text) is None


def test_resolve_uses_coordinates_verbatim(config, fake_get):
    point = resolve("28.6139,77.2090", config)
    assert point == Point(lon=77.2090, lat=28.6139)
    assert fake_get.calls == []


@pytest.mark.parametrize("text", ["", "   ", None])
def test_resolve_rejects_empty_input(config, fake_get, text):
    with pytest.raises(ValueError):
        resolve(text, config)
    assert fake_get.calls == []


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------

def test_resolve_geocodes_free_text_first_match(config, fake_get):
    fake_get.queue(FakeResponse(geocode_payload((77.2295, 28.6129), (1.0, 2.0))))

    point = resolve("  India Gate, New Delhi ", config, side="destination")

    assert point == Point(lon=77.2295, lat=28.6129)
    call = fake_get.calls[0]
    assert call["url"] == "https://api.geoapify.com/v1/geocode/search"
    assert call["params"]["text"] == "India Gate, New Delhi"
    assert call["params"]["apiKey"] == "test-key"
    assert call["timeout"] == 3.0


def test_zero_matches_is_not_found(config, fake_get):
    fake_get.queue(FakeResponse({"type": "FeatureCollection", "features": []}))

    with pytest.raises(NotFoundError) as exc:
        resolve("Nonexistent Place, ZZ", config, side="origin")

    assert not isinstance(exc.value, UpstreamError)
    assert exc.value.query == "Nonexistent Place, ZZ"
    assert exc.value.side == "origin"


@pytest.mark.parametrize("failure", [
    requests.exceptions.Timeout("read timed out"),
    requests.exceptions.ConnectionError("connection refused"),
    FakeResponse(status=503),
    FakeResponse(bad_json=True),
    FakeResponse(["not", "a", "collection"]),
    FakeResponse({"features": [{"geometry": {}}]}),
])
def test_geocoding_failures_are_upstream_errors(config, fake_get, failure):
    fake_get.queue(failure)
    with pytest.raises(UpstreamError) as exc:
        resolve("Somewhere", config, side="destination")
    assert exc.value.call == "geocode:destination"


def test_missing_api_key_is_config_error(fake_get):
    with pytest.raises(ConfigError):
        resolve("Somewhere", RouteConfig())


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def test_decode_linestring():
    geometry = {"type": "LineString", "coordinates": [[77.1, 28.1], [77.2, 28.2]]}
    assert decode_geometry(geometry) == (Point(77.1, 28.1), Point(77.2, 28.2))


def test_decode_multilinestring_flattens_in_order():
    geometry = {
        "type": "MultiLineString",
        "coordinates": [[[77.1, 28.1], [77.2, 28.2]], [[77.2, 28.2], [77.3, 28.3]]],
    }
    assert decode_geometry(geometry) == (
        Point(77.1, 28.1), Point(77.2, 28.2), Point(77.2, 28.2), Point(77.3, 28.3),
    )


def test_decode_missing_geometry():
    assert decode_geometry(None) == ()
    assert decode_geometry({"type": "LineString"}) == ()


# ---------------------------------------------------------------------------
# Alternatives
# ---------------------------------------------------------------------------

def test_fetch_alternatives_parses_features(config, fake_get):
    fake_get.queue(FakeResponse({"features": [
        route_feature(5200, 550, steps_per_leg=(("Head east", "Turn right"),)),
        route_feature(4800, 900, steps_per_leg=(("Head south",), ())),
    ]}))

    routes = fetch_alternatives(ORIGIN, DEST, config)

    assert len(routes) == 2
    first, second = routes
    assert first.distance_meters == 5200.0
    assert first.duration_seconds == 550.0
    assert [s.instruction for s in first.legs[0].steps] == ["Head east", "Turn right"]
    assert first.turn_count == 2
    assert second.turn_count == 1
    assert len(first.geometry) == 4

    params = fake_get.calls[0]["params"]
    assert params["waypoints"] == "28.6139,77.209|28.6129,77.2295"
    assert params["mode"] == "drive"
    assert params["alternatives"] == 10


@pytest.mark.parametrize("mode,sent", [
    ("drive", "drive"),
    ("foot", "walk"),
    ("bike", "bicycle"),
])
def test_fetch_alternatives_honours_mode_and_max(config, fake_get, mode, sent):
    fake_get.queue(FakeResponse({"features": [route_feature(1000, 700)]}))

    fetch_alternatives(ORIGIN, DEST, config, mode=mode, max_alternatives=3)

    params = fake_get.calls[0]["params"]
    assert params["mode"] == sent
    assert params["alternatives"] == 3


def test_fetch_alternatives_rejects_unknown_mode(config, fake_get):
    with pytest.raises(ValueError):
        fetch_alternatives(ORIGIN, DEST, config, mode="transit")
    assert fake_get.calls == []


def test_empty_feature_set_is_no_routes(config, fake_get):
    fake_get.queue(FakeResponse({"features": []}))
    with pytest.raises(NoRoutesError):
        fetch_alternatives(ORIGIN, DEST, config)


def test_features_without_metrics_are_dropped(config, fake_get):
    broken = route_feature(1000, 100)
    del broken["properties"]["time"]
    fake_get.queue(FakeResponse({"features": [broken, route_feature(2000, 200)]}))

    routes = fetch_alternatives(ORIGIN, DEST, config)

    assert [r.distance_meters for r in routes] == [2000.0]


def test_malformed_legs_are_kept_as_none(config, fake_get):
    feature = route_feature(1000, 100)
    feature["properties"]["legs"] = [{"steps": [{"no_instruction": True}]}]
    fake_get.queue(FakeResponse({"features": [feature]}))

    routes = fetch_alternatives(ORIGIN, DEST, config)

    assert routes[0].legs is None


def test_routing_transport_failure_is_upstream(config, fake_get):
    fake_get.queue(requests.exceptions.Timeout("slow"))
    with pytest.raises(UpstreamError) as exc:
        fetch_alternatives(ORIGIN, DEST, config)
    assert exc.value.call == "routing"
