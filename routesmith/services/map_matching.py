"""
Snapping waypoint sequences onto real roads.

The Mapbox Directions API is tried first because it produces better
cycling routes; if it returns too little geometry or low confidence the
Map Matching API is tried with the same waypoints.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import requests

from ..config.config import get_config, MapboxConfig
from ..config.logging_config import get_logger, log_function_entry, log_function_exit
from ..exceptions import CollaboratorError
from ..processing.models import Coordinate


logger = get_logger(__name__)

DIRECTIONS_CONFIDENCE = 0.9
MIN_ACCEPTABLE_CONFIDENCE = 0.5


@dataclass(frozen=True)
class MatchResult:
    """Road-snapped geometry for a waypoint sequence."""
    coordinates: Tuple[Coordinate, ...]
    distance_m: float
    duration_s: float
    confidence: float
    source: str = 'directions'

    @property
    def usable(self) -> bool:
        return len(self.coordinates) >= 2 and self.confidence >= MIN_ACCEPTABLE_CONFIDENCE


def _format_coordinates(waypoints: Sequence[Coordinate]) -> str:
    return ';'.join(f"{lon},{lat}" for lon, lat in waypoints)


class MapboxRouteMatcher:
    """Directions / map-matching client."""

    def __init__(self, config: MapboxConfig = None):
        """
        Initialize the matcher.

        Args:
            config: Mapbox configuration (defaults to the global config)
        """
        self.config = config or get_config().mapbox
        self.request_timeout = self.config.timeout_seconds

    def match(self, waypoints: Sequence[Coordinate], profile: Optional[str] = None) -> MatchResult:
        """
        Snap waypoints to a rideable path.

        Args:
            waypoints: [lon, lat] waypoints in riding order
            profile: Routing profile (defaults to the configured one)

        Returns:
            MatchResult with at least two coordinates and confidence >= 0.5

        Raises:
            CollaboratorError: if neither API produced usable geometry
        """
        profile = profile or self.config.profile
        log_function_entry(logger, "match", waypoints=len(waypoints), profile=profile)

        if len(waypoints) < 2:
            raise CollaboratorError("At least two waypoints are required")
        if not self.config.access_token:
            raise CollaboratorError("Mapbox access token not configured")

        result = None
        try:
            result = self.get_cycling_directions(waypoints, profile)
        except CollaboratorError as e:
            logger.warning(f"Directions request failed: {e}")

        if result is None or not result.usable:
            logger.info("Falling back to map matching")
            result = self.map_match(waypoints, profile)

        if not result.usable:
            raise CollaboratorError(
                f"No usable match ({len(result.coordinates)} points, confidence {result.confidence:.2f})"
            )

        log_function_exit(logger, "match", result)
        return result

    def _get_json(self, url: str, params: dict) -> dict:
        params = dict(params, access_token=self.config.access_token)
        try:
            response = requests.get(url, params=params, timeout=self.request_timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise CollaboratorError(f"Mapbox request failed: {e}") from e
        except ValueError as e:
            raise CollaboratorError(f"Mapbox returned invalid JSON: {e}") from e

    def get_cycling_directions(self, waypoints: Sequence[Coordinate], profile: str) -> MatchResult:
        """Route through the waypoints with the Directions API."""
        url = f"{self.config.directions_url}/{profile}/{_format_coordinates(waypoints)}"
        data = self._get_json(url, {
            'alternatives': 'false',
            'geometries': 'geojson',
            'overview': 'full',
            'steps': 'false',
        })

        routes = data.get('routes') or []
        if not routes:
            raise CollaboratorError("No routes found in directions response")

        route = routes[0]
        return MatchResult(
            coordinates=tuple(tuple(c) for c in route['geometry']['coordinates']),
            distance_m=float(route.get('distance') or 0),
            duration_s=float(route.get('duration') or 0),
            confidence=DIRECTIONS_CONFIDENCE,
            source='directions',
        )

    def map_match(self, waypoints: Sequence[Coordinate], profile: str) -> MatchResult:
        """Snap the waypoints with the Map Matching API."""
        url = f"{self.config.matching_url}/{profile}/{_format_coordinates(waypoints)}"
        radiuses: List[str] = [str(self.config.match_radius_m)] * len(waypoints)
        data = self._get_json(url, {
            'geometries': 'geojson',
            'radiuses': ';'.join(radiuses),
            'steps': 'false',
            'annotations': 'distance,duration',
            'overview': 'full',
        })

        matchings = data.get('matchings') or []
        if not matchings:
            raise CollaboratorError("No matchings found in response")

        matching = matchings[0]
        return MatchResult(
            coordinates=tuple(tuple(c) for c in matching['geometry']['coordinates']),
            distance_m=float(matching.get('distance') or 0),
            duration_s=float(matching.get('duration') or 0),
            confidence=float(matching.get('confidence') or 0),
            source='map_matching',
        )
