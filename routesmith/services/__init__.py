"""
External collaborators used by the route engine.

Each client talks to one outside service and degrades quietly:
- Ride history store (local JSON files)
- Directions / map matching (Mapbox)
- Elevation sampling (Open-Meteo)
- Current weather (Open-Meteo)
"""

from .elevation import ElevationProvider, calculate_elevation_stats
from .map_matching import MapboxRouteMatcher, MatchResult
from .ride_store import LocalRideStore
from .weather import WeatherAnalyzer, WeatherConditions

__all__ = [
    'ElevationProvider', 'calculate_elevation_stats',
    'MapboxRouteMatcher', 'MatchResult',
    'LocalRideStore',
    'WeatherAnalyzer', 'WeatherConditions',
]
