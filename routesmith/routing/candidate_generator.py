"""
Route candidate generation.

Candidates start life as waypoint plans: pure geometry around the start
location, shaped by the requested route shape and the rider's habits.
The engine then realizes each plan through the map-matching and
elevation providers, or falls back to a mock octagon of the same length.
"""

import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..config.logging_config import get_logger
from ..processing.geo_math import bearing_difference, destination_point, distance_km
from ..processing.models import (
    Coordinate, RidingPatternProfile, RouteCandidate, validate_coordinate,
    LOOP, OUT_BACK, POINT_TO_POINT, RECOVERY, ENDURANCE, INTERVALS, HILLS,
)
from .suggestions import PatternSuggestions


logger = get_logger(__name__)

LOOP_PATTERNS = (
    ('North Loop', 0, 'north'),
    ('East Loop', 90, 'east'),
    ('South Loop', 180, 'south'),
    ('West Loop', 270, 'west'),
)

OUT_AND_BACK_DIRECTIONS = (
    ('North Route', 0),
    ('Northeast Route', 45),
    ('East Route', 90),
    ('Southeast Route', 135),
)

LOOP_WAYPOINTS = 4
LOOP_RADIUS_FACTOR = 0.9
MOCK_POINTS = 8
KM_PER_DEGREE = 111

SEGMENT_SEARCH_KM = 5
SEGMENT_MAX_LENGTH_FACTOR = 1.5
SEGMENT_MIN_COORDINATES = 10

GOAL_NAMES = {
    ENDURANCE: 'Endurance Ride',
    INTERVALS: 'Interval Training',
    RECOVERY: 'Recovery Spin',
    HILLS: 'Hill Climb',
}

GOAL_DESCRIPTIONS = {
    ENDURANCE: 'Steady paced route perfect for building aerobic base',
    INTERVALS: 'Route with good segments for high-intensity efforts',
    RECOVERY: 'Easy spinning route for active recovery',
    HILLS: 'Challenging climbs to build strength and power',
}

MOCK_CLIMB_PER_KM = {
    HILLS: 25,
    RECOVERY: 5,
}
DEFAULT_MOCK_CLIMB_PER_KM = 15


@dataclass(frozen=True)
class WaypointPlan:
    """Unrealized geometry for one candidate route."""
    name: str
    pattern: str
    waypoints: Tuple[Coordinate, ...]
    target_distance_km: float
    training_goal: str


def calculate_difficulty(distance: float, elevation_gain: float) -> str:
    """
    Rate a route by climbing per kilometer.

    Args:
        distance: Route length in km
        elevation_gain: Total climbing in m

    Returns:
        'easy' under 10 m/km, 'moderate' under 25 m/km, else 'hard'
    """
    if not distance or distance <= 0:
        return 'easy'

    elevation_ratio = elevation_gain / distance
    if elevation_ratio < 10:
        return 'easy'
    if elevation_ratio < 25:
        return 'moderate'
    return 'hard'


def get_route_name_by_goal(training_goal: str) -> str:
    return GOAL_NAMES.get(training_goal, 'Training Ride')


def generate_route_description(training_goal: str, elevation_gain: float) -> str:
    description = GOAL_DESCRIPTIONS.get(training_goal, 'Great training route')

    if elevation_gain > 300:
        description += ' with significant climbing'
    elif elevation_gain < 100:
        description += ' on mostly flat terrain'

    return description


def generate_mock_coordinates(start_location: Coordinate, target_distance: float) -> Tuple[Coordinate, ...]:
    """Closed octagon around the start whose circumference is roughly the target distance."""
    start_lon, start_lat = start_location
    radius = (target_distance / (2 * math.pi)) / KM_PER_DEGREE

    coordinates = [tuple(start_location)]
    for i in range(1, MOCK_POINTS + 1):
        angle = math.radians(i * 45)
        delta_lat = radius * math.cos(angle)
        delta_lon = radius * math.sin(angle) / math.cos(math.radians(start_lat))
        coordinates.append((start_lon + delta_lon, start_lat + delta_lat))

    coordinates.append(tuple(start_location))
    return tuple(coordinates)


def create_mock_route(name: str, target_distance: float, training_goal: str,
                      start_location: Optional[Coordinate] = None) -> RouteCandidate:
    """
    Deterministic fallback candidate used when a route cannot be realized.

    Args:
        name: Pattern name, e.g. 'North Loop'
        target_distance: Intended length in km
        training_goal: Training goal of the request
        start_location: [lon, lat] start; without it the route has no geometry

    Returns:
        RouteCandidate with pattern 'mock' and confidence 0.5
    """
    elevation_gain = target_distance * MOCK_CLIMB_PER_KM.get(training_goal, DEFAULT_MOCK_CLIMB_PER_KM)
    coordinates = generate_mock_coordinates(start_location, target_distance) if start_location else ()

    return RouteCandidate(
        name=f"{name} - {get_route_name_by_goal(training_goal)}",
        coordinates=coordinates,
        distance_km=target_distance,
        elevation_gain_m=round(elevation_gain),
        elevation_loss_m=round(elevation_gain * 0.9),
        difficulty=calculate_difficulty(target_distance, elevation_gain),
        pattern='mock',
        confidence=0.5,
        training_goal=training_goal,
        description=generate_route_description(training_goal, elevation_gain),
        source='mock',
        wind_factor=0.8,
    )


class RouteCandidateGenerator:
    """Builds waypoint plans and fallback candidates for a route request."""

    def __init__(self, rng: random.Random = None):
        """
        Args:
            rng: Source of waypoint jitter; pass a seeded Random for reproducible geometry
        """
        self.rng = rng or random.Random()

    def plan_routes(self, start_location: Coordinate, target_distance: float, training_goal: str,
                    route_shape: str, suggestions: Optional[PatternSuggestions] = None) -> List[WaypointPlan]:
        """
        Waypoint plans for every pattern of the requested shape.

        Point-to-point requests are planned as out-and-back rides since
        there is no return transport to model.

        Args:
            start_location: [lon, lat] start
            target_distance: Target length in km
            training_goal: Requested training goal
            route_shape: loop, out_back or point_to_point
            suggestions: Pattern suggestions for this request, if any

        Returns:
            Plans in generation order
        """
        validate_coordinate(start_location[1], start_location[0])

        if route_shape == LOOP:
            return self.generate_loop_plans(start_location, target_distance, training_goal, suggestions)
        if route_shape in (OUT_BACK, POINT_TO_POINT):
            return self.generate_out_and_back_plans(start_location, target_distance, training_goal)

        logger.warning(f"Unknown route shape '{route_shape}' - generating loops")
        return self.generate_loop_plans(start_location, target_distance, training_goal, suggestions)

    def generate_loop_plans(self, start_location: Coordinate, target_distance: float, training_goal: str,
                            suggestions: Optional[PatternSuggestions] = None) -> List[WaypointPlan]:
        patterns = list(LOOP_PATTERNS)

        if suggestions is not None and suggestions.preferred_direction.source == 'historical':
            preferred = suggestions.preferred_direction.bearing_deg
            patterns.sort(key=lambda p: bearing_difference(p[1], preferred))
            logger.info(f"Prioritizing routes in direction {preferred:.0f} based on riding history")

        nearby_areas = suggestions.nearby_frequent_areas if suggestions is not None else ()

        plans = []
        for name, bearing, variation in patterns:
            waypoints = self.loop_waypoints(start_location, target_distance, bearing, nearby_areas)
            plans.append(WaypointPlan(name, variation, waypoints, target_distance, training_goal))
        return plans

    def loop_waypoints(self, start_location: Coordinate, target_distance: float, base_bearing: float,
                       nearby_areas: Sequence = ()) -> Tuple[Coordinate, ...]:
        """
        Four waypoints 90 degrees apart around the start, closed at the start.

        Waypoint i uses the i-th nearby frequent area when that area lies
        within twice the loop radius of the start; otherwise it is placed
        geometrically with random radius and angle jitter.
        """
        radius = (target_distance / (2 * math.pi)) * LOOP_RADIUS_FACTOR
        waypoints = [tuple(start_location)]

        for i in range(1, LOOP_WAYPOINTS + 1):
            target_point = None

            if i <= len(nearby_areas):
                area = nearby_areas[i - 1]
                if distance_km(start_location, area.center) < radius * 2:
                    target_point = tuple(area.center)
                    logger.debug(f"Using frequent area for waypoint {i}: {area.center}")

            if target_point is None:
                angle = math.radians(base_bearing + i * 90)
                radius_variation = radius * (0.7 + self.rng.random() * 0.6)
                angle_variation = angle + (self.rng.random() - 0.5) * 0.5
                target_point = destination_point(start_location, math.degrees(angle_variation), radius_variation)

            waypoints.append(target_point)

        waypoints.append(tuple(start_location))
        return tuple(waypoints)

    def generate_out_and_back_plans(self, start_location: Coordinate, target_distance: float,
                                    training_goal: str) -> List[WaypointPlan]:
        half_distance = target_distance / 2
        plans = []
        for name, bearing in OUT_AND_BACK_DIRECTIONS:
            turnaround = destination_point(start_location, bearing, half_distance)
            waypoints = (tuple(start_location), turnaround, tuple(start_location))
            pattern = name.replace(' Route', '').lower()
            plans.append(WaypointPlan(name, pattern, waypoints, target_distance, training_goal))
        return plans

    def build_route_from_segments(self, profile: Optional[RidingPatternProfile], start_location: Coordinate,
                                  target_distance: float, training_goal: str) -> Optional[RouteCandidate]:
        """
        Candidate made from the rider's own nearest historical segment.

        Only segments with an endpoint within 5 km of the start and a length
        of at most 1.5x the target are considered. The nearest one is
        oriented to begin at its endpoint closest to the start.

        Returns:
            RouteCandidate with source 'segments', or None
        """
        if profile is None or not profile.route_segments:
            return None

        best_segment = None
        best_distance = math.inf

        for segment in profile.route_segments:
            to_start = distance_km(start_location, segment.start_point)
            to_end = distance_km(start_location, segment.end_point)
            nearest = min(to_start, to_end)

            if nearest >= SEGMENT_SEARCH_KM:
                continue
            if nearest < best_distance and segment.distance_km <= target_distance * SEGMENT_MAX_LENGTH_FACTOR:
                best_distance = nearest
                best_segment = segment

        if best_segment is None:
            return None

        coordinates = tuple(best_segment.coordinates)
        if distance_km(start_location, best_segment.end_point) < distance_km(start_location, best_segment.start_point):
            coordinates = tuple(reversed(coordinates))

        if len(coordinates) <= SEGMENT_MIN_COORDINATES:
            return None

        return RouteCandidate(
            name='Route from Your Rides',
            coordinates=coordinates,
            distance_km=best_segment.distance_km,
            elevation_gain_m=0,
            elevation_loss_m=0,
            difficulty=calculate_difficulty(best_segment.distance_km, 0),
            pattern='historical',
            confidence=0.95,
            training_goal=training_goal,
            description='Built from your actual riding patterns',
            source='segments',
        )

    @staticmethod
    def realize(plan: WaypointPlan, coordinates: Sequence[Coordinate], distance_m: float, confidence: float,
                elevation_profile: Sequence, elevation_stats: Dict[str, int]) -> RouteCandidate:
        """Candidate for a plan that the map-matching provider snapped to roads."""
        distance = distance_m / 1000
        return RouteCandidate(
            name=f"{plan.name} - {get_route_name_by_goal(plan.training_goal)}",
            coordinates=tuple(tuple(c) for c in coordinates),
            distance_km=distance,
            elevation_gain_m=elevation_stats['gain'],
            elevation_loss_m=elevation_stats['loss'],
            difficulty=calculate_difficulty(distance, elevation_stats['gain']),
            pattern=plan.pattern,
            confidence=confidence,
            training_goal=plan.training_goal,
            description=generate_route_description(plan.training_goal, elevation_stats['gain']),
            source='geometry',
            elevation_profile=tuple(elevation_profile),
        )

    @staticmethod
    def mock_for(plan: WaypointPlan) -> RouteCandidate:
        return create_mock_route(plan.name, plan.target_distance_km, plan.training_goal, plan.waypoints[0])
