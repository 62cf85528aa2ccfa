"""
errors.py — SafeRoute error taxonomy
=====================================
Every failure the "find routes" operation can surface to a caller.

  NotFoundError     — geocoder returned zero matches (user can fix the text)
  NoRoutesError     — nothing to select from
  UpstreamError     — network / HTTP / parse / timeout failure of a call
  StaleRequestError — a newer request in the same session won
  ScoringError      — one candidate could not be scored (never fatal alone)
  ConfigError       — invalid configuration value
"""


class RouteError(Exception):
    """Base class for route-selection failures."""


class NotFoundError(RouteError):
    def __init__(self, query: str, side: str | None = None):
        self.query = query
        self.side = side
        label = f"{side} location" if side else "Location"
        super().__init__(f'{label.capitalize()} not found: "{query}".')


class NoRoutesError(RouteError):
    def __init__(self, message: str = "No routes found. Try a different pair of locations."):
        super().__init__(message)


class UpstreamError(RouteError):
    """
    An outbound call failed. `call` names which one
    ("geocode:origin", "geocode:destination", "routing").
    """

    def __init__(self, call: str, detail: str):
        self.call = call
        self.detail = detail
        super().__init__(f"{call} failed: {detail}")


class StaleRequestError(RouteError):
    def __init__(self, token: int, latest: int):
        self.token = token
        self.latest = latest
        super().__init__(f"Request {token} superseded by request {latest}.")


class ScoringError(RouteError):
    pass


class ConfigError(RouteError, ValueError):
    pass
