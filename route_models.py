"""
route_models.py — SafeRoute internal data structures
=====================================================
Immutable, request-scoped shapes shared by the routing engine, the scoring
engine and the presenter. Nothing here talks to the network.

Coordinates are stored the GeoJSON way, (lon, lat). Use Point.latlon()
when a map needs (lat, lon).
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    """A geographic coordinate in decimal degrees."""
    lon: float
    lat: float

    def latlon(self) -> tuple[float, float]:
        return (self.lat, self.lon)


@dataclass(frozen=True)
class RouteStep:
    """One maneuver inside a leg."""
    instruction: str


@dataclass(frozen=True)
class Leg:
    """Ordered steps between two waypoints."""
    steps: tuple[RouteStep, ...] = ()
    distance_meters: float | None = None
    duration_seconds: float | None = None


@dataclass(frozen=True)
class CandidateRoute:
    """
    One alternative returned by the routing provider.

    legs is None when the provider sent step data we could not read;
    the scorer refuses such candidates.
    """
    geometry: tuple[Point, ...]
    distance_meters: float
    duration_seconds: float
    legs: tuple[Leg, ...] | None = ()

    @property
    def turn_count(self) -> int:
        if self.legs is None:
            return 0
        return sum(len(leg.steps) for leg in self.legs)


@dataclass(frozen=True)
class ScoredRoute:
    """A candidate paired with its safety score in [30, 100]."""
    route: CandidateRoute
    safety_score: float

    @property
    def distance_meters(self) -> float:
        return self.route.distance_meters

    @property
    def duration_seconds(self) -> float:
        return self.route.duration_seconds


@dataclass(frozen=True)
class SelectionResult:
    fastest: ScoredRoute
    safest: ScoredRoute

    @property
    def same_route(self) -> bool:
        return self.fastest is self.safest
