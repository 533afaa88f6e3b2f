"""
Route synthesis for RouteSmith.

This package provides the generation half of the engine:
- Pattern-based suggestions for a request
- Waypoint planning and fallback geometry
- Scoring and ranking
- The concurrent engine that ties them to the providers
"""

from .candidate_generator import RouteCandidateGenerator, calculate_difficulty, create_mock_route
from .engine import RouteEngine, generate_ai_routes
from .route_scorer import RouteScorer
from .suggestions import PatternSuggestions, generate_route_from_patterns

__all__ = [
    'RouteCandidateGenerator', 'calculate_difficulty', 'create_mock_route',
    'RouteEngine', 'generate_ai_routes',
    'RouteScorer',
    'PatternSuggestions', 'generate_route_from_patterns',
]
