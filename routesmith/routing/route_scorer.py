"""
Route scoring and ranking.

Every candidate starts from 0.5 and collects bonuses and penalties for
training-goal fit, weather, time budget, match quality and similarity to
the rider's history. The total is clamped to [0, 1].
"""

from typing import Callable, List, Optional, Sequence

from ..config.logging_config import get_logger
from ..processing.geo_math import distance_km, route_center
from ..processing.models import (
    RidingPatternProfile, RouteCandidate, ScoredRoute,
    HILLS, RECOVERY, INTERVALS,
)
from ..services.weather import WeatherConditions, training_conditions_score
from .suggestions import calculate_pattern_confidence


logger = get_logger(__name__)

BASE_SCORE = 0.5
ASSUMED_SPEED_KMH = 23
DEFAULT_CLIMB_RATIO = 15
FREQUENT_AREA_BONUS_KM = 5
TOP_K = 4

# (conditions, training_goal) -> rating in [0, 1], or None without conditions
ConditionsRating = Callable[[Optional[WeatherConditions], str], Optional[float]]


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _climb_ratio(route: RouteCandidate) -> float:
    """Meters climbed per km (0 for routes without length)."""
    if not route.distance_km or route.distance_km <= 0:
        return 0.0
    return route.elevation_gain_m / route.distance_km


def get_training_goal_score(route: RouteCandidate, training_goal: str) -> float:
    if training_goal == HILLS:
        return 0.2 if _climb_ratio(route) > 20 else -0.1
    if training_goal == RECOVERY:
        return 0.2 if _climb_ratio(route) < 15 else -0.1
    if training_goal == INTERVALS:
        return 0.15 if route.wind_factor > 0.8 else 0.0
    return 0.1


def get_weather_score(route: RouteCandidate, conditions: Optional[WeatherConditions],
                      conditions_rating: ConditionsRating = training_conditions_score) -> float:
    """Up to 0.2 from the goal-specific conditions rating; 0 when there is no rating."""
    rating = conditions_rating(conditions, route.training_goal)
    return rating * 0.2 if rating is not None else 0.0


def get_time_efficiency_score(route: RouteCandidate, time_available_minutes: float) -> float:
    estimated_minutes = (route.distance_km / ASSUMED_SPEED_KMH) * 60
    time_diff = abs(estimated_minutes - time_available_minutes)

    if time_diff < 10:
        return 0.2
    if time_diff < 20:
        return 0.1
    return -0.1


def get_route_quality_score(route: RouteCandidate) -> float:
    score = 0.1 if route.confidence > 0.8 else 0.0
    score += (route.wind_factor - 0.8) * 0.5
    return score


def get_historical_pattern_score(route: RouteCandidate, profile: RidingPatternProfile) -> float:
    """
    Similarity of a route to the rider's history, weighted by pattern confidence.

    Args:
        route: Candidate to rate
        profile: Rider's pattern profile

    Returns:
        Weighted pattern score (may be negative)
    """
    score = 0.0
    user_mean = profile.preferred_distances.mean

    if user_mean:
        distance_diff = abs(route.distance_km - user_mean) / user_mean
        if distance_diff < 0.2:
            score += 0.15
        elif distance_diff < 0.4:
            score += 0.1
        elif distance_diff > 1.0:
            score -= 0.1

    preferred_elevation = profile.elevation_tolerance.preferred_m
    if preferred_elevation:
        preferred_ratio = preferred_elevation / user_mean if user_mean else 0
        if not preferred_ratio:
            preferred_ratio = DEFAULT_CLIMB_RATIO

        elevation_diff = abs(_climb_ratio(route) - preferred_ratio) / preferred_ratio
        if elevation_diff < 0.3:
            score += 0.1
        elif elevation_diff > 1.5:
            score -= 0.05

    if profile.frequent_areas and route.coordinates:
        center = route_center(route.coordinates)
        if any(distance_km(center, area.center) < FREQUENT_AREA_BONUS_KM for area in profile.frequent_areas):
            score += 0.1

    return score * calculate_pattern_confidence(profile)


class RouteScorer:
    """Scores candidates for one request and keeps the best."""

    def __init__(self, training_goal: str, time_available_minutes: float,
                 conditions: Optional[WeatherConditions] = None,
                 profile: Optional[RidingPatternProfile] = None,
                 top_k: int = TOP_K,
                 conditions_rating: ConditionsRating = training_conditions_score):
        self.training_goal = training_goal
        self.time_available_minutes = time_available_minutes
        self.conditions = conditions
        self.profile = profile
        self.top_k = top_k
        self.conditions_rating = conditions_rating

    def score(self, route: RouteCandidate) -> float:
        total = BASE_SCORE
        total += get_training_goal_score(route, self.training_goal)
        total += get_weather_score(route, self.conditions, self.conditions_rating)
        total += get_time_efficiency_score(route, self.time_available_minutes)
        total += get_route_quality_score(route)
        if self.profile is not None:
            total += get_historical_pattern_score(route, self.profile)
        return clamp01(total)

    def rank(self, routes: Sequence[RouteCandidate]) -> List[ScoredRoute]:
        """
        Score and sort candidates, best first.

        Equal scores keep their input order.

        Returns:
            At most top_k ScoredRoutes
        """
        scored = [ScoredRoute.from_candidate(route, self.score(route)) for route in routes]
        scored.sort(key=lambda r: r.score, reverse=True)

        for route in scored:
            logger.debug(f"{route.name}: score {route.score:.3f}")

        return scored[:self.top_k]
