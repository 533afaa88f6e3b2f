"""
Pattern-based route suggestions.

Turns a RidingPatternProfile into concrete hints for one request: a
target distance nudged toward the rider's habits, a preferred heading,
familiar areas near the start and a climbing target.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..config.logging_config import get_logger
from ..processing.geo_math import distance_km
from ..processing.models import (
    Coordinate, FrequentArea, RidingPatternProfile,
    RECOVERY, ENDURANCE, INTERVALS, HILLS,
)


logger = get_logger(__name__)

# Average speeds by training type (km/h)
GOAL_SPEEDS_KMH = {
    RECOVERY: 20,
    ENDURANCE: 25,
    INTERVALS: 22,
    HILLS: 18,
}
DEFAULT_SPEED_KMH = 23

DEFAULT_GOAL_BEARINGS = {
    HILLS: 0,
    ENDURANCE: 90,
    INTERVALS: 180,
    RECOVERY: 135,
}
DEFAULT_BEARING = 90

ELEVATION_MULTIPLIERS = {
    HILLS: 1.5,
    ENDURANCE: 1.0,
    INTERVALS: 0.8,
    RECOVERY: 0.5,
}
DEFAULT_ELEVATION_TARGET_M = 300

NEARBY_AREA_KM = 20


@dataclass(frozen=True)
class PreferredDirection:
    bearing_deg: float
    preference: float
    source: str
    direction: Optional[str] = None


@dataclass(frozen=True)
class PatternSuggestions:
    """Hints derived from riding history for a single request."""
    adjusted_distance_km: float
    preferred_direction: PreferredDirection
    nearby_frequent_areas: Tuple[FrequentArea, ...]
    elevation_target_m: int
    confidence: float


def calculate_target_distance(time_minutes: float, training_goal: str) -> float:
    """Baseline distance a rider covers in the available time."""
    speed = GOAL_SPEEDS_KMH.get(training_goal, DEFAULT_SPEED_KMH)
    return (time_minutes / 60) * speed


def adjust_distance_based_on_patterns(target_distance: float, profile: RidingPatternProfile,
                                      training_goal: str) -> float:
    """
    Nudge a target distance toward the rider's historical mean.

    Recovery rides never exceed 80% of the mean, endurance rides are at
    least 120% of it, and other goals blend up to 30% of the mean in.
    """
    distances = profile.preferred_distances
    user_mean = distances.mean
    if not user_mean:
        return target_distance

    if training_goal == RECOVERY:
        return min(target_distance, user_mean * 0.8)

    if training_goal == ENDURANCE:
        return max(target_distance, user_mean * 1.2)

    confidence = 1.0 if distances.range_max > distances.range_min else 0.5
    weight = confidence * 0.3
    return target_distance * (1 - weight) + user_mean * weight


def select_preferred_direction(profile: RidingPatternProfile, training_goal: str) -> PreferredDirection:
    """Most preferred historical direction, else a goal-specific default."""
    if profile.preferred_directions:
        top = profile.preferred_directions[0]
        return PreferredDirection(
            bearing_deg=top.bearing_deg,
            preference=top.preference,
            source='historical',
            direction=top.direction,
        )

    return PreferredDirection(
        bearing_deg=DEFAULT_GOAL_BEARINGS.get(training_goal, DEFAULT_BEARING),
        preference=0.5,
        source='default',
    )


def get_elevation_target(profile: RidingPatternProfile, training_goal: str) -> int:
    base_target = profile.elevation_tolerance.preferred_m or DEFAULT_ELEVATION_TARGET_M
    return int(round(base_target * ELEVATION_MULTIPLIERS.get(training_goal, 1.0)))


def calculate_pattern_confidence(profile: Optional[RidingPatternProfile]) -> float:
    """
    Overall confidence in a profile, in [0, 1].

    Each present signal contributes a weighted score and the sum is
    averaged over the number of signals present.

    Args:
        profile: Riding profile, or None

    Returns:
        Averaged confidence; 0.5 when no signal is present
    """
    if profile is None:
        return 0.5

    score = 0.0
    factors = 0

    if profile.preferred_distances.mean:
        score += 0.3
        factors += 1

    if profile.frequent_areas:
        score += 0.3 * min(len(profile.frequent_areas) / 3, 1)
        factors += 1

    if profile.preferred_directions:
        score += 0.2 * profile.preferred_directions[0].preference
        factors += 1

    if profile.elevation_tolerance.mean_m is not None:
        score += 0.2
        factors += 1

    return score / factors if factors > 0 else 0.5


def find_nearby_areas(profile: RidingPatternProfile, start_location: Coordinate) -> Tuple[FrequentArea, ...]:
    return tuple(
        area for area in profile.frequent_areas
        if distance_km(start_location, area.center) < NEARBY_AREA_KM
    )


def generate_route_from_patterns(profile: RidingPatternProfile, start_location: Coordinate,
                                 target_distance_km: float, training_goal: str) -> PatternSuggestions:
    """
    Build pattern-based suggestions for one request.

    Args:
        profile: Rider's pattern profile
        start_location: [lon, lat] start of the requested ride
        target_distance_km: Baseline distance before adjustment
        training_goal: Requested training goal

    Returns:
        PatternSuggestions
    """
    suggestions = PatternSuggestions(
        adjusted_distance_km=adjust_distance_based_on_patterns(target_distance_km, profile, training_goal),
        preferred_direction=select_preferred_direction(profile, training_goal),
        nearby_frequent_areas=find_nearby_areas(profile, start_location),
        elevation_target_m=get_elevation_target(profile, training_goal),
        confidence=calculate_pattern_confidence(profile),
    )

    logger.debug(
        f"Pattern suggestions: {suggestions.adjusted_distance_km:.1f} km, "
        f"heading {suggestions.preferred_direction.bearing_deg:.0f} ({suggestions.preferred_direction.source}), "
        f"{len(suggestions.nearby_frequent_areas)} nearby areas"
    )
    return suggestions
