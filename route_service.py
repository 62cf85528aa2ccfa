"""
route_service.py — the "find routes" operation
===============================================
  1. resolve origin        (GeoResolver)
  2. resolve destination   (GeoResolver)
  3. fetch alternatives    (RouteProvider)
  4. score + select        (RouteSelector, concurrent scoring)
  5. drop the result if a newer request started in the same session

Any geocoding/routing failure aborts the whole operation; nothing partial
is returned.
"""

import logging
import threading

from config import RouteConfig
from errors import StaleRequestError
from route_models import Point, SelectionResult
from routing_engine import fetch_alternatives, resolve
from scoring_engine import Scorer, safety_score, select_routes

logger = logging.getLogger(__name__)


class RouteSession:
    """
    The single in-flight-request slot of one client. Each request takes a
    token; only the newest token may deliver a result.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest = 0

    def begin(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._latest

    @property
    def latest(self) -> int:
        with self._lock:
            return self._latest


def _check_current(session: RouteSession | None, token: int | None):
    if session is not None and not session.is_current(token):
        latest = session.latest
        logger.info("[find_routes] request %d superseded by %d, discarding", token, latest)
        raise StaleRequestError(token, latest)


def select_between(origin: Point, destination: Point, config: RouteConfig,
                   session: RouteSession | None = None,
                   scorer: Scorer = safety_score,
                   token: int | None = None) -> SelectionResult:
    """Steps 3-5 for already-resolved endpoints."""
    if session is not None and token is None:
        token = session.begin()

    candidates = fetch_alternatives(origin, destination, config)
    _check_current(session, token)

    result = select_routes(
        candidates,
        margin_ratio=config.safety_margin_ratio,
        scorer=scorer,
        max_workers=config.max_workers,
    )
    _check_current(session, token)
    return result


def find_routes(start: str, destination: str, config: RouteConfig,
                session: RouteSession | None = None,
                scorer: Scorer = safety_score) -> SelectionResult:
    """
    Full operation from free text (or "<lat>,<lon>") to a SelectionResult.
    Raises StaleRequestError when `session` saw a newer request meanwhile.
    """
    token = session.begin() if session is not None else None

    origin = resolve(start, config, side="origin")
    dest = resolve(destination, config, side="destination")
    _check_current(session, token)

    return select_between(origin, dest, config, session=session,
                          scorer=scorer, token=token)
