"""
Ride Pattern Aggregator - Builds a rider's profile from their ride history.

This module coordinates the specialized components:
- Track reduction into key points and ride locations
- Spatial clustering of locations into frequent areas
- Direction preferences from consecutive locations
- Distance / elevation statistics from ride summaries
- Segment database and per-ride route templates

The aggregation is pure: no I/O and no shared state, so it can run
concurrently on the same input.
"""

from typing import Any, Dict, Iterable, List, Union

from ...config.logging_config import get_logger, log_execution_time, log_function_entry, log_function_exit
from ..models import RideRecord, RidingPatternProfile
from ..route_shape import build_route_templates
from ..track_reducer import extract_ride_locations
from .defaults import default_profile, DEFAULT_AVERAGE_SPEED_KMH
from .direction_analyzer import DirectionAnalyzer
from .segment_database import SegmentExtractor, build_segment_database
from .spatial_clusterer import SpatialClusterer
from .statistical_profiler import StatisticalProfiler


logger = get_logger(__name__)


def _coerce_rides(rides: Iterable[Union[RideRecord, Dict[str, Any]]]) -> List[RideRecord]:
    return [r if isinstance(r, RideRecord) else RideRecord.from_dict(r) for r in rides or []]


class PatternAggregator:
    """Main orchestrator for ride pattern mining."""

    def __init__(self):
        """Initialize the aggregator with all components."""
        self.clusterer = SpatialClusterer()
        self.direction_analyzer = DirectionAnalyzer()
        self.profiler = StatisticalProfiler()
        self.segment_extractor = SegmentExtractor()

    def analyze(self, rides: Iterable[Union[RideRecord, Dict[str, Any]]]) -> RidingPatternProfile:
        """
        Analyze riding patterns from past rides.

        Args:
            rides: Ride records (or ride dictionaries) in a stable order

        Returns:
            RidingPatternProfile; the default profile when there are no rides
        """
        rides = _coerce_rides(rides)
        log_function_entry(logger, "analyze", rides=len(rides))

        if not rides:
            logger.info("No ride history - returning default riding profile")
            return default_profile()

        # 1. Distance and elevation habits
        preferred_distances, distance_shares = self.profiler.profile_distances(rides)
        elevation_tolerance = self.profiler.profile_elevation(rides)

        # 2. Frequent areas and directions from key locations
        ride_locations = [loc for loc in (extract_ride_locations(r) for r in rides) if loc]
        frequent_areas = []
        preferred_directions = []
        if ride_locations:
            flattened = [location for locations in ride_locations for location in locations]
            frequent_areas = self.clusterer.find_frequent_areas(flattened)
            preferred_directions = self.direction_analyzer.analyze(ride_locations)

        # 3. Reusable segments and route templates
        route_segments = build_segment_database(rides, self.segment_extractor)
        route_templates = build_route_templates(rides, self.segment_extractor)

        profile = RidingPatternProfile(
            preferred_distances=preferred_distances,
            distance_distribution=distance_shares,
            elevation_tolerance=elevation_tolerance,
            frequent_areas=tuple(frequent_areas),
            preferred_directions=tuple(preferred_directions),
            route_segments=tuple(route_segments),
            route_templates=tuple(route_templates),
            average_speed_kmh=DEFAULT_AVERAGE_SPEED_KMH,
            time_preferences=(),
        )

        logger.info(
            f"Profile built from {len(rides)} rides: {len(frequent_areas)} areas, "
            f"{len(preferred_directions)} directions, {len(route_segments)} segments"
        )
        log_function_exit(logger, "analyze", profile)
        return profile


@log_execution_time()
def analyze_riding_patterns(rides: Iterable[Union[RideRecord, Dict[str, Any]]]) -> RidingPatternProfile:
    """Build a RidingPatternProfile from ride history."""
    return PatternAggregator().analyze(rides)


__all__ = ['PatternAggregator', 'analyze_riding_patterns', 'default_profile']
