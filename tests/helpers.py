import requests

from route_models import CandidateRoute, Leg, Point, RouteStep

_UNSET = object()


def make_route(duration, distance, turns=0, legs=_UNSET, geometry=None):
    """Candidate with `turns` steps in a single leg unless `legs` is given."""
    if legs is _UNSET:
        legs = (Leg(steps=tuple(RouteStep(f"Turn {i + 1}") for i in range(turns))),)
    if geometry is None:
        geometry = (Point(lon=77.20, lat=28.61), Point(lon=77.22, lat=28.63))
    return CandidateRoute(
        geometry=geometry,
        distance_meters=float(distance),
        duration_seconds=float(duration),
        legs=legs,
    )


class FakeResponse:
    def __init__(self, payload=None, status=200, bad_json=False):
        self.payload = payload
        self.status_code = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


def geocode_payload(*coords):
    """Geoapify geocoding FeatureCollection with one feature per (lon, lat)."""
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": [lon, lat]}}
            for lon, lat in coords
        ],
    }


def route_feature(distance, time, steps_per_leg=((),), coordinates=None,
                  geometry_type="MultiLineString"):
    """A Geoapify routing feature."""
    if coordinates is None:
        coordinates = [[[77.20, 28.61], [77.21, 28.62]], [[77.21, 28.62], [77.22, 28.63]]]
    return {
        "type": "Feature",
        "properties": {
            "distance": distance,
            "time": time,
            "legs": [
                {"distance": distance, "time": time,
                 "steps": [{"instruction": {"text": s}} for s in steps]}
                for steps in steps_per_leg
            ],
        },
        "geometry": {"type": geometry_type, "coordinates": coordinates},
    }
