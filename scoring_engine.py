"""
scoring_engine.py — SafeRoute Safety Scoring + Route Selection
===============================================================
Scores every candidate independently and picks two winners.

SAFETY SCORE (stand-in heuristic, not a measured safety model):
  90
  − 2   × distance in km
  − 1.5 × turn count (steps across all legs)
  + jitter in [0, 10)   — unmodelled risk factors
  floored at 30, capped at 100

SELECTION:
  ⚡ Fastest — lowest duration; ties keep the first candidate seen.
              The tie-break is arbitrary, not a judgement of quality.
  🛡 Safest  — highest safety score among routes no longer than
              margin_ratio × fastest distance (default 1.2, inclusive);
              ties keep the first candidate seen.

Any callable (CandidateRoute) -> float can replace safety_score.
"""

import logging
import math
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from config import DEFAULT_MARGIN_RATIO, DEFAULT_MAX_WORKERS, validate_margin_ratio
from errors import NoRoutesError, ScoringError
from route_models import CandidateRoute, ScoredRoute, SelectionResult

logger = logging.getLogger(__name__)

BASE_SCORE        = 90.0
KM_PENALTY        = 2.0
TURN_PENALTY      = 1.5
MAX_JITTER        = 10.0
MIN_SAFETY_SCORE  = 30.0
MAX_SAFETY_SCORE  = 100.0

Scorer = Callable[[CandidateRoute], float]


def safety_score(route: CandidateRoute, jitter: float | None = None,
                 rng: random.Random | None = None) -> float:
    """
    Heuristic safety score for one candidate.
    Pass a seeded `rng` (or an explicit `jitter`) for reproducible results.
    """
    if route.legs is None:
        raise ScoringError("route has malformed leg data")
    if not (math.isfinite(route.distance_meters) and route.distance_meters >= 0):
        raise ScoringError(f"invalid distance {route.distance_meters!r}")
    if not (math.isfinite(route.duration_seconds) and route.duration_seconds >= 0):
        raise ScoringError(f"invalid duration {route.duration_seconds!r}")

    if jitter is None:
        jitter = (rng or random).random() * MAX_JITTER

    raw = (
        BASE_SCORE
        - KM_PENALTY * (route.distance_meters / 1000.0)
        - TURN_PENALTY * route.turn_count
        + jitter
    )
    return min(MAX_SAFETY_SCORE, max(MIN_SAFETY_SCORE, raw))


def score_candidates(candidates: list[CandidateRoute],
                     scorer: Scorer = safety_score,
                     max_workers: int = DEFAULT_MAX_WORKERS) -> list[ScoredRoute]:
    """
    Score every candidate on a thread pool (one task each, joined before
    returning). Output keeps input order. A candidate whose scorer raises
    is logged and left out.
    """
    if not candidates:
        return []

    workers = max(1, min(max_workers, len(candidates)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(scorer, route) for route in candidates]

    scored = []
    for i, (route, fut) in enumerate(zip(candidates, futures)):
        try:
            value = float(fut.result())
        except Exception as e:
            logger.warning("[score] candidate %d excluded: %s", i, e)
            continue
        scored.append(ScoredRoute(
            route=route,
            safety_score=min(MAX_SAFETY_SCORE, max(MIN_SAFETY_SCORE, value)),
        ))
    return scored


def pick_fastest(scored: list[ScoredRoute]) -> ScoredRoute:
    # min() keeps the first of equal durations
    return min(scored, key=lambda s: s.duration_seconds)


def pick_safest(scored: list[ScoredRoute], fastest: ScoredRoute,
                margin_ratio: float = DEFAULT_MARGIN_RATIO) -> ScoredRoute:
    limit = margin_ratio * fastest.distance_meters
    eligible = [s for s in scored if s.distance_meters <= limit]
    # fastest always passes its own filter when margin_ratio >= 1.0
    if not eligible:
        raise RuntimeError("margin filter dropped the fastest route")
    # max() keeps the first of equal scores
    return max(eligible, key=lambda s: s.safety_score)


def select_routes(candidates: list[CandidateRoute],
                  margin_ratio: float = DEFAULT_MARGIN_RATIO,
                  scorer: Scorer = safety_score,
                  max_workers: int = DEFAULT_MAX_WORKERS) -> SelectionResult:
    """
    Score all candidates concurrently, then choose fastest and safest.
    Winners are returned unmodified (no rounding here).
    """
    validate_margin_ratio(margin_ratio)
    if not candidates:
        raise NoRoutesError()

    scored = score_candidates(candidates, scorer=scorer, max_workers=max_workers)
    if not scored:
        raise NoRoutesError("No route could be scored. Try a different pair of locations.")

    fastest = pick_fastest(scored)
    safest = pick_safest(scored, fastest, margin_ratio)

    logger.info(
        "[select] %d/%d scored; fastest %.0fs/%.0fm, safest %.1f pts/%.0fm%s",
        len(scored), len(candidates),
        fastest.duration_seconds, fastest.distance_meters,
        safest.safety_score, safest.distance_meters,
        " (same route)" if safest is fastest else "",
    )
    return SelectionResult(fastest=fastest, safest=safest)
