"""
Default riding profile for riders with no usable history.

These are plain constants describing a typical club rider: ~25 km rides,
mostly in the 15-35 km bracket, about 300 m of climbing.
"""

from ..models import (
    DistanceDistribution, DistanceRange, DistanceShares, ElevationTolerance,
    Percentiles, RidingPatternProfile,
)


DEFAULT_AVERAGE_SPEED_KMH = 23.0


def default_distance_distribution() -> DistanceDistribution:
    return DistanceDistribution(
        mean=25.0,
        median=20.0,
        percentiles=Percentiles(p25=15.0, p50=20.0, p75=30.0, p90=40.0),
        range_min=10.0,
        range_max=50.0,
        most_common_range=DistanceRange(name='medium', min_km=15, max_km=35, count=1),
    )


def default_distance_shares() -> DistanceShares:
    return DistanceShares(short=0.3, medium=0.5, long=0.2, very_long=0.0)


def default_elevation_tolerance() -> ElevationTolerance:
    return ElevationTolerance(
        min_m=0.0,
        max_m=1000.0,
        mean_m=300.0,
        preferred_m=300.0,
        tolerance_m=500.0,
        label='moderate',
    )


def unrecorded_elevation_tolerance() -> ElevationTolerance:
    """Climbing defaults for a rider whose history has no usable gains; mean stays unknown."""
    return ElevationTolerance(
        min_m=0.0,
        max_m=1000.0,
        mean_m=None,
        preferred_m=300.0,
        tolerance_m=500.0,
        label='moderate',
    )


def default_profile() -> RidingPatternProfile:
    """The profile used when a rider has no ride history at all."""
    return RidingPatternProfile(
        preferred_distances=default_distance_distribution(),
        distance_distribution=default_distance_shares(),
        elevation_tolerance=default_elevation_tolerance(),
        frequent_areas=(),
        preferred_directions=(),
        route_segments=(),
        route_templates=(),
        average_speed_kmh=DEFAULT_AVERAGE_SPEED_KMH,
        time_preferences=(),
    )
