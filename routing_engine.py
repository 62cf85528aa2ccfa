"""
routing_engine.py — SafeRoute Geocoding + Routing Engine
=========================================================

Geocoding:
  1. "<lat>,<lon>" device coordinates are parsed locally (never geocoded)
  2. Geoapify /v1/geocode/search — first match wins

Route fetching:
  Geoapify /v1/routing with `alternatives`, one call per query.
  Every feature becomes an immutable CandidateRoute:
    {geometry(Point...), distance_meters, duration_seconds, legs}

Failures:
  zero geocoding matches  → NotFoundError
  network / HTTP / JSON   → UpstreamError (tagged with the failing call)
  zero usable routes      → NoRoutesError
"""

import logging
import math
import re

import requests

from config import RouteConfig, TRAVEL_MODES
from errors import ConfigError, NoRoutesError, NotFoundError, UpstreamError
from route_models import CandidateRoute, Leg, Point, RouteStep

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "SafeRoute/1.0 (route safety planner)",
    "Accept":     "application/json",
}

# "12.9716, 77.5946" as sent by the browser geolocation toggle
_LATLON_RE = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)\s*,\s*([-+]?\d+(?:\.\d+)?)\s*$")

# Geoapify spells the non-driving profiles differently
_GEOAPIFY_MODES = {"drive": "drive", "foot": "walk", "bike": "bicycle"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_key(config: RouteConfig) -> str:
    if not config.api_key:
        raise ConfigError("GEOAPIFY_API_KEY is not set. Add it to the environment or .env file.")
    return config.api_key


def _get_json(url: str, params: dict, timeout: float, call: str):
    """
    Single GET against the upstream API. Every failure mode (timeout,
    connection error, non-2xx status, unreadable body) becomes UpstreamError.
    """
    try:
        r = requests.get(url, params=params, headers=HEADERS, timeout=timeout)
        r.raise_for_status()
        return r.json()
    except requests.exceptions.Timeout:
        logger.warning("[%s] timed out after %.1fs", call, timeout)
        raise UpstreamError(call, f"timed out after {timeout}s")
    except requests.exceptions.RequestException as e:
        logger.warning("[%s] request failed: %s", call, e)
        raise UpstreamError(call, str(e))
    except ValueError as e:
        logger.warning("[%s] response is not JSON: %s", call, e)
        raise UpstreamError(call, "response is not valid JSON")


def parse_coordinates(text: str) -> Point | None:
    """
    Parse "<lat>,<lon>" into a Point. Returns None when the text is not a
    coordinate pair or the numbers are outside the valid lat/lon ranges.
    """
    m = _LATLON_RE.match(text)
    if not m:
        return None
    lat, lon = float(m.group(1)), float(m.group(2))
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return Point(lon=lon, lat=lat)


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------

def geocode(place_name: str, config: RouteConfig, side: str | None = "origin") -> Point:
    """
    Convert place name → Point via Geoapify. Only the first match is used.
    """
    call = f"geocode:{side or 'query'}"
    data = _get_json(
        config.geocode_url,
        params={
            "text":   place_name,
            "limit":  1,
            "format": "geojson",
            "apiKey": _require_key(config),
        },
        timeout=config.request_timeout,
        call=call,
    )

    if not isinstance(data, dict):
        raise UpstreamError(call, "unexpected response shape")
    features = data.get("features") or []
    if not features:
        logger.info("[geocode] no match for '%s' (%s)", place_name, side)
        raise NotFoundError(place_name, side)

    try:
        lon, lat = features[0]["geometry"]["coordinates"][:2]
        point = Point(lon=float(lon), lat=float(lat))
    except (KeyError, IndexError, TypeError, ValueError):
        logger.warning("[geocode] unreadable match for '%s': %r", place_name, features[0])
        raise UpstreamError(call, "match has no usable coordinates")

    logger.info("[geocode] '%s' → %.5f,%.5f", place_name, point.lat, point.lon)
    return point


def resolve(text: str, config: RouteConfig, side: str | None = "origin") -> Point:
    """
    Resolve free text or device coordinates to a Point.
    Coordinates are used verbatim; anything else costs one geocoding call.
    """
    cleaned = (text or "").strip()
    if not cleaned:
        label = f"{side} location" if side else "location"
        raise ValueError(f"{label.capitalize()} cannot be empty.")

    point = parse_coordinates(cleaned)
    if point is not None:
        logger.debug("[geocode] %s given as coordinates, skipping lookup", side)
        return point
    return geocode(cleaned, config, side=side)


# ---------------------------------------------------------------------------
# Feature parsing
# ---------------------------------------------------------------------------

def decode_geometry(geometry) -> tuple[Point, ...]:
    """
    Flatten a LineString ([[lon, lat], ...]) or MultiLineString
    ([[[lon, lat], ...], ...]) into one ordered tuple of Points.
    """
    if not isinstance(geometry, dict):
        return ()
    points = []
    for coords in geometry.get("coordinates") or []:
        if not isinstance(coords, (list, tuple)) or not coords:
            continue
        if isinstance(coords[0], (list, tuple)):
            points.extend(Point(lon=float(c[0]), lat=float(c[1])) for c in coords)
        elif len(coords) >= 2:
            points.append(Point(lon=float(coords[0]), lat=float(coords[1])))
    return tuple(points)


def _parse_legs(raw_legs) -> tuple[Leg, ...] | None:
    """Returns None if the leg/step structure is not what we expect."""
    if raw_legs is None:
        return ()
    if not isinstance(raw_legs, list):
        return None
    legs = []
    try:
        for raw in raw_legs:
            steps = tuple(
                RouteStep(instruction=str(s["instruction"]["text"]))
                for s in raw.get("steps") or []
            )
            legs.append(Leg(
                steps=steps,
                distance_meters=raw.get("distance"),
                duration_seconds=raw.get("time"),
            ))
    except (AttributeError, KeyError, TypeError):
        return None
    return tuple(legs)


def _parse_feature(feature) -> CandidateRoute | None:
    props = feature.get("properties") or {}
    try:
        distance = float(props["distance"])
        duration = float(props["time"])
    except (KeyError, TypeError, ValueError):
        logger.warning("[routing] dropping feature without distance/time")
        return None
    if not (math.isfinite(distance) and math.isfinite(duration)):
        logger.warning("[routing] dropping feature with non-finite distance/time")
        return None

    legs = _parse_legs(props.get("legs"))
    if legs is None:
        logger.warning("[routing] feature %.0fm has malformed legs", distance)

    try:
        geometry = decode_geometry(feature.get("geometry"))
    except (IndexError, TypeError, ValueError):
        logger.warning("[routing] feature %.0fm has malformed geometry", distance)
        geometry = ()

    return CandidateRoute(
        geometry=geometry,
        distance_meters=distance,
        duration_seconds=duration,
        legs=legs,
    )


# ---------------------------------------------------------------------------
# Main routing entry point
# ---------------------------------------------------------------------------

def fetch_alternatives(origin: Point, destination: Point, config: RouteConfig,
                       mode: str | None = None,
                       max_alternatives: int | None = None) -> list[CandidateRoute]:
    """
    Fetch up to max_alternatives candidate routes for one travel mode.
    Never returns an empty list.
    """
    mode = mode or config.travel_mode
    if mode not in TRAVEL_MODES:
        raise ValueError(f"mode must be one of {', '.join(TRAVEL_MODES)}.")
    if max_alternatives is None:
        max_alternatives = config.alternatives_count
    if max_alternatives < 1:
        raise ValueError("max_alternatives must be at least 1.")

    data = _get_json(
        config.routing_url,
        params={
            "waypoints":    f"{origin.lat},{origin.lon}|{destination.lat},{destination.lon}",
            "mode":         _GEOAPIFY_MODES[mode],
            "alternatives": max_alternatives,
            "apiKey":       _require_key(config),
        },
        timeout=config.request_timeout,
        call="routing",
    )

    if not isinstance(data, dict):
        raise UpstreamError("routing", "unexpected response shape")

    routes = []
    for feature in data.get("features") or []:
        if not isinstance(feature, dict):
            continue
        route = _parse_feature(feature)
        if route is not None:
            routes.append(route)

    logger.info("[routing] %s: %d candidate(s) for %.5f,%.5f → %.5f,%.5f",
                mode, len(routes), origin.lat, origin.lon,
                destination.lat, destination.lon)
    if not routes:
        raise NoRoutesError()
    return routes
