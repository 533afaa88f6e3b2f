"""
Ride processing for RouteSmith.

This package provides the mining half of the engine:
- Data model for rides and derived entities
- Geometry helpers
- Key point reduction and route shape classification
- Riding pattern aggregation
"""

from .models import RideRecord, RideSummary, TrackPoint, RidingPatternProfile
from .ride_patterns import PatternAggregator, analyze_riding_patterns, default_profile

__all__ = [
    'RideRecord', 'RideSummary', 'TrackPoint', 'RidingPatternProfile',
    'PatternAggregator', 'analyze_riding_patterns', 'default_profile',
]
