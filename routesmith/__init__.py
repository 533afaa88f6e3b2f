"""
RouteSmith - ride pattern mining and route synthesis.

Entry points:
- analyze_riding_patterns(rides) -> RidingPatternProfile
- generate_ai_routes(request) -> ranked ScoredRoute list
"""

from .processing import analyze_riding_patterns
from .processing.models import RideRecord, RouteRequest, RidingPatternProfile, ScoredRoute
from .routing import RouteEngine, generate_ai_routes

__version__ = "0.1.0"

__all__ = [
    'analyze_riding_patterns', 'generate_ai_routes', 'RouteEngine',
    'RideRecord', 'RouteRequest', 'RidingPatternProfile', 'ScoredRoute',
]
