"""
Statistical Profiler - Distance and climbing habits from ride summaries.

This module handles:
- Distance percentiles, range and the most common distance bracket
- Coarse distance-class shares
- Elevation gain tolerance and a qualitative climbing label

Missing and non-positive summary values are ignored. When nothing usable is
left the default sub-profile is returned instead.
"""

import math
from typing import Iterable, List, Optional

import pandas as pd

from ...config.logging_config import get_logger, log_function_entry, log_function_exit
from ..geo_math import percentile_floor
from ..models import (
    DistanceDistribution, DistanceRange, DistanceShares, ElevationTolerance,
    Percentiles, RideRecord,
)
from .defaults import (
    default_distance_distribution, default_distance_shares, unrecorded_elevation_tolerance,
)


logger = get_logger(__name__)

DISTANCE_RANGES = (
    ('short', 0, 15),
    ('medium', 15, 35),
    ('long', 35, 65),
    ('very_long', 65, 150),
)


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def _positive_values(values: Iterable[Optional[float]]) -> pd.Series:
    series = pd.Series(list(values), dtype='float64').dropna()
    return series[series > 0]


def find_most_common_distance_range(distances: List[float]) -> DistanceRange:
    """
    Bracket holding the most rides.

    Brackets are [min, max) and checked in order short, medium, long,
    very_long; on a tie the earlier bracket wins.
    """
    best = None
    for name, low, high in DISTANCE_RANGES:
        count = sum(1 for d in distances if low <= d < high)
        if best is None or count > best.count:
            best = DistanceRange(name=name, min_km=low, max_km=high, count=count)
    return best


def analyze_distance_distribution(distances: List[float]) -> DistanceDistribution:
    """
    Percentiles and range of ride distances.

    Percentiles use floor indexing into the sorted values, so p50 of an
    even-length list is the upper middle value rather than an average.

    Args:
        distances: Positive ride distances in km (non-empty)
    """
    ordered = sorted(distances)
    percentiles = Percentiles(
        p25=percentile_floor(ordered, 0.25),
        p50=percentile_floor(ordered, 0.5),
        p75=percentile_floor(ordered, 0.75),
        p90=percentile_floor(ordered, 0.9),
    )

    return DistanceDistribution(
        mean=float(pd.Series(distances, dtype='float64').mean()),
        median=percentiles.p50,
        percentiles=percentiles,
        range_min=ordered[0],
        range_max=ordered[-1],
        most_common_range=find_most_common_distance_range(distances),
    )


def get_distance_shares(distances: List[float]) -> DistanceShares:
    """Fraction of rides under 20, 20-50, 50-100 and over 100 km."""
    series = pd.Series(distances, dtype='float64')
    total = len(series)
    return DistanceShares(
        short=float((series < 20).sum()) / total,
        medium=float(((series >= 20) & (series < 50)).sum()) / total,
        long=float(((series >= 50) & (series < 100)).sum()) / total,
        very_long=float((series >= 100).sum()) / total,
    )


def categorize_elevation_preference(mean_gain: float) -> str:
    if mean_gain < 200:
        return 'flat'
    if mean_gain < 500:
        return 'rolling'
    if mean_gain < 1000:
        return 'hilly'
    return 'mountainous'


def analyze_elevation_tolerance(gains: List[float]) -> ElevationTolerance:
    """
    Climbing tolerance from elevation gains.

    preferred is the 60th and tolerance the 80th floor-indexed percentile;
    mean, preferred and tolerance are rounded to whole metres.

    Args:
        gains: Positive elevation gains in metres (non-empty)
    """
    ordered = sorted(gains)
    mean = float(pd.Series(gains, dtype='float64').mean())

    return ElevationTolerance(
        min_m=ordered[0],
        max_m=ordered[-1],
        mean_m=_round_half_up(mean),
        preferred_m=_round_half_up(percentile_floor(ordered, 0.6)),
        tolerance_m=_round_half_up(percentile_floor(ordered, 0.8)),
        label=categorize_elevation_preference(mean),
    )


class StatisticalProfiler:
    """Distance and elevation profiling over ride summaries."""

    def profile_distances(self, rides: List[RideRecord]):
        """
        Distance distribution and distance-class shares.

        Returns:
            Tuple of (DistanceDistribution, DistanceShares)
        """
        log_function_entry(logger, "profile_distances", rides=len(rides))

        distances = _positive_values(r.summary.distance_km for r in rides).tolist()
        if not distances:
            logger.info("No usable ride distances - using default distance profile")
            return default_distance_distribution(), default_distance_shares()

        result = (analyze_distance_distribution(distances), get_distance_shares(distances))
        log_function_exit(logger, "profile_distances", result)
        return result

    def profile_elevation(self, rides: List[RideRecord]) -> ElevationTolerance:
        """Elevation tolerance, or defaults with an unknown mean when no gains are recorded."""
        log_function_entry(logger, "profile_elevation", rides=len(rides))

        gains = _positive_values(r.summary.elevation_gain_m for r in rides).tolist()
        if not gains:
            logger.info("No usable elevation gains - using default elevation profile")
            return unrecorded_elevation_tolerance()

        result = analyze_elevation_tolerance(gains)
        log_function_exit(logger, "profile_elevation", result)
        return result
