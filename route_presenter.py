"""
route_presenter.py — SafeRoute display formatting
==================================================
Turns selected routes into what the client draws. Pure functions: no
network, no randomness, same input → same output.

  duration  → "12.3 min"     (1 decimal)
  distance  → "4.80 km"      (2 decimals)
  preview   → steps joined by newlines, legs joined by " → "
  map layer → [[lat, lon], ...] + style (fastest solid, safest dashed)
"""

from route_models import Leg, ScoredRoute, SelectionResult

LEG_SEPARATOR = " → "
NO_PREVIEW    = "No preview"

# Delhi, used when the fastest route carries no geometry
DEFAULT_MAP_CENTER = [28.6139, 77.2090]

ROUTE_STYLES = {
    "fastest": {"line": "solid",  "color": "blue",  "weight": 6},
    "safest":  {"line": "dashed", "color": "green", "weight": 6, "dash_array": "8,6"},
}

SAFETY_FEATURES = ["Well-lit", "AI evaluated", "Typical police patrolling"]


def format_duration(seconds: float) -> str:
    return f"{seconds / 60.0:.1f} min"


def format_distance(meters: float) -> str:
    return f"{meters / 1000.0:.2f} km"


def step_preview(legs: tuple[Leg, ...] | None) -> str:
    """A leg with no steps contributes an empty segment."""
    if legs is None:
        return NO_PREVIEW
    return LEG_SEPARATOR.join(
        "\n".join(step.instruction for step in leg.steps)
        for leg in legs
    )


def present(scored: ScoredRoute) -> dict:
    return {
        "duration_text": format_duration(scored.duration_seconds),
        "distance_text": format_distance(scored.distance_meters),
        "step_preview":  step_preview(scored.route.legs),
    }


def render_layer(scored: ScoredRoute, kind: str) -> dict:
    """Polyline for the render surface; `kind` is "fastest" or "safest"."""
    if kind not in ROUTE_STYLES:
        raise ValueError(f"Unknown route kind: {kind}")
    return {
        "positions": [list(p.latlon()) for p in scored.route.geometry],
        "style":     dict(ROUTE_STYLES[kind]),
    }


def present_selection(result: SelectionResult) -> dict:
    """JSON-ready payload for both route cards and the map."""
    fastest = {
        **present(result.fastest),
        "duration_seconds": result.fastest.duration_seconds,
        "distance_meters":  result.fastest.distance_meters,
        "layer":            render_layer(result.fastest, "fastest"),
    }
    safest = {
        **present(result.safest),
        "duration_seconds": result.safest.duration_seconds,
        "distance_meters":  result.safest.distance_meters,
        "safety_score":     round(result.safest.safety_score),
        "features":         list(SAFETY_FEATURES),
        "layer":            render_layer(result.safest, "safest"),
    }

    positions = fastest["layer"]["positions"]
    center = positions[0] if positions else list(DEFAULT_MAP_CENTER)

    return {
        "fastest":    fastest,
        "safest":     safest,
        "same_route": result.same_route,
        "map":        {"center": center, "zoom": 13},
    }
