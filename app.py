"""
app.py - SafeRoute Flask Application
=====================================
Endpoints:
  POST /routes          — Geocode both ends + fetch + select fastest/safest
  POST /route-coords    — Same, for known coordinates (no geocoding)
  GET  /geocode?q=      — Resolve one location
  GET  /health          — Liveness + active travel mode

A client may send X-Session-Id; when a newer request from the same session
starts before an older one finishes, the older one answers 409.
"""

import dataclasses
import logging
import os
import re
import threading
from collections import OrderedDict

from flask import Flask, request, jsonify
from flask_talisman import Talisman
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_cors import CORS

from config import TRAVEL_MODES, load_config
from errors import (
    ConfigError, NoRoutesError, NotFoundError, StaleRequestError, UpstreamError,
)
from route_models import Point
from route_presenter import present_selection
from route_service import RouteSession, find_routes, select_between
from routing_engine import resolve

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["ROUTE_CONFIG"] = load_config()

# ── CORS ──────────────────────────────────────────────────────────────────────
CORS(app, resources={r"/*": {"origins": []}})

# ── Rate limiting ──────────────────────────────────────────────────────────────
limiter = Limiter(
    key_func=get_remote_address,
    app=app,
    default_limits=["200 per hour", "60 per minute"],
    storage_uri="memory://",
    headers_enabled=True,
)

# ── Security headers via Talisman ─────────────────────────────────────────────
# TLS is terminated in front of the app; force_https=False avoids redirect loops.
Talisman(
    app,
    force_https=False,
    strict_transport_security=False,
    content_security_policy={"default-src": ["'self'"]},
    permissions_policy={
        "geolocation": "(self)",
        "camera": "()",
        "microphone": "()",
    },
    referrer_policy="strict-origin-when-cross-origin",
    x_content_type_options=True,
    x_xss_protection=True,
)

# ── Per-client in-flight slot ─────────────────────────────────────────────────
# least recently used sessions are dropped past this many
MAX_SESSIONS = 1024
_sessions: OrderedDict[str, RouteSession] = OrderedDict()
_sessions_lock = threading.Lock()


def _session_for_request() -> RouteSession:
    key = _sanitize_text(request.headers.get("X-Session-Id", ""), max_len=64)
    key = key or get_remote_address() or "anonymous"
    with _sessions_lock:
        session = _sessions.get(key)
        if session is not None:
            _sessions.move_to_end(key)
            return session
        session = _sessions[key] = RouteSession()
        while len(_sessions) > MAX_SESSIONS:
            _sessions.popitem(last=False)
        return session


# ── Input sanitization helpers ────────────────────────────────────────────────

def _sanitize_text(value, max_len=200):
    """Strip control characters and limit length."""
    if not isinstance(value, str):
        return ""
    cleaned = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', value)
    return cleaned[:max_len].strip()


def _validate_coord(value, name, lo, hi):
    """Return float coord or raise ValueError with descriptive message."""
    try:
        f = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number.")
    if not (lo <= f <= hi):
        raise ValueError(f"{name} must be between {lo} and {hi}.")
    return f


def _json_body():
    body = request.get_json(silent=True)
    if not body or not isinstance(body, dict):
        raise ValueError("Request body must be JSON.")
    return body


def _route_config(body):
    """Active config, with the request's travel mode if it sent one."""
    config = app.config["ROUTE_CONFIG"]
    mode = body.get("mode")
    if mode is None:
        return config
    mode = str(mode).strip().lower()
    if mode not in TRAVEL_MODES:
        raise ValueError(f"mode must be one of {', '.join(TRAVEL_MODES)}.")
    return dataclasses.replace(config, travel_mode=mode)


# ── Error mapping ─────────────────────────────────────────────────────────────

@app.errorhandler(ValueError)
def bad_request_handler(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(NotFoundError)
def not_found_handler(e):
    return jsonify({
        "error": f'{e} Try a more specific name like "Connaught Place, New Delhi".',
        "side":  e.side,
    }), 404


@app.errorhandler(NoRoutesError)
def no_routes_handler(e):
    return jsonify({"error": str(e)}), 422


@app.errorhandler(UpstreamError)
def upstream_handler(e):
    logger.error("[upstream] %s", e)
    return jsonify({
        "error": "A map service is not responding. Please try again in a moment.",
        "call":  e.call,
    }), 502


@app.errorhandler(StaleRequestError)
def stale_handler(e):
    return jsonify({"error": "Superseded by a newer request.", "stale": True}), 409


@app.errorhandler(ConfigError)
def config_handler(e):
    logger.error("[config] %s", e)
    return jsonify({"error": "Routing service is misconfigured."}), 500


@app.errorhandler(429)
def ratelimit_handler(e):
    return jsonify({"error": "Too many requests. Please slow down."}), 429


# ── Routes ────────────────────────────────────────────────────────────────────

@app.route("/health")
def health():
    config = app.config["ROUTE_CONFIG"]
    return jsonify({"status": "ok", "travel_mode": config.travel_mode})


@app.route("/routes", methods=["POST"])
@limiter.limit("30 per minute")
def routes():
    body = _json_body()
    start = _sanitize_text(body.get("start", ""), max_len=200)
    destination = _sanitize_text(body.get("destination", ""), max_len=200)
    if not start:
        raise ValueError("Start location cannot be empty.")
    if not destination:
        raise ValueError("Destination cannot be empty.")

    result = find_routes(start, destination, _route_config(body),
                         session=_session_for_request())
    return jsonify(present_selection(result))


@app.route("/route-coords", methods=["POST"])
@limiter.limit("30 per minute")
def route_coords():
    body = _json_body()
    start_lat = _validate_coord(body.get("start_lat"), "start_lat", -90,   90)
    start_lon = _validate_coord(body.get("start_lon"), "start_lon", -180, 180)
    dest_lat  = _validate_coord(body.get("dest_lat"),  "dest_lat",  -90,   90)
    dest_lon  = _validate_coord(body.get("dest_lon"),  "dest_lon",  -180, 180)

    result = select_between(
        Point(lon=start_lon, lat=start_lat),
        Point(lon=dest_lon, lat=dest_lat),
        _route_config(body),
        session=_session_for_request(),
    )
    return jsonify(present_selection(result))


@app.route("/geocode")
@limiter.limit("60 per minute")
def geocode_location():
    q = _sanitize_text(request.args.get("q", ""), max_len=200)
    point = resolve(q, app.config["ROUTE_CONFIG"], side=None)
    return jsonify({"lat": point.lat, "lon": point.lon})


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.environ.get("PORT", 5000))
    logger.info("SafeRoute → http://0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port, debug=False)
