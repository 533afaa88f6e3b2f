"""
Elevation sampling for realized routes.
Uses the Open-Meteo elevation API (no API key required).
"""

from typing import Dict, List, Sequence, Tuple

import numpy as np
import requests

from ..config.config import get_config, ElevationConfig
from ..config.logging_config import get_logger
from ..processing.models import Coordinate


logger = get_logger(__name__)

ElevationSample = Tuple[Coordinate, float]


def sample_coordinates(coordinates: Sequence[Coordinate], max_points: int = 100) -> List[Coordinate]:
    """
    Evenly sample a polyline down to at most max_points.
    The first and last coordinates are always kept.
    """
    count = len(coordinates)
    if count <= max_points:
        return list(coordinates)

    indices = np.unique(np.linspace(0, count - 1, max_points).round().astype(int))
    return [coordinates[i] for i in indices]


def calculate_elevation_stats(profile: Sequence[ElevationSample]) -> Dict[str, int]:
    """
    Total gain / loss and extremes of an elevation profile.

    Args:
        profile: (coordinate, elevation_m) samples in route order

    Returns:
        Dictionary with gain, loss, min and max in whole meters
    """
    if not profile or len(profile) < 2:
        return {'gain': 0, 'loss': 0, 'min': 0, 'max': 0}

    elevations = np.array([elevation for _, elevation in profile], dtype=float)
    diffs = np.diff(elevations)

    return {
        'gain': int(round(diffs[diffs > 0].sum())),
        'loss': int(round(-diffs[diffs < 0].sum())),
        'min': int(round(elevations.min())),
        'max': int(round(elevations.max())),
    }


class ElevationProvider:
    """Looks up ground elevation along a polyline."""

    def __init__(self, config: ElevationConfig = None):
        config = config or get_config().elevation
        self.base_url = config.base_url
        self.request_timeout = config.timeout_seconds
        self.max_points = config.max_points

    def sample(self, coordinates: Sequence[Coordinate]) -> List[ElevationSample]:
        """
        Sample elevations along a route.

        Args:
            coordinates: [lon, lat] polyline

        Returns:
            List of (coordinate, elevation_m); empty if the service is unavailable
        """
        if not coordinates or len(coordinates) < 2:
            return []

        sampled = sample_coordinates(coordinates, self.max_points)
        params = {
            'latitude': ','.join(f"{lat:.6f}" for _, lat in sampled),
            'longitude': ','.join(f"{lon:.6f}" for lon, _ in sampled),
        }

        try:
            response = requests.get(self.base_url, params=params, timeout=self.request_timeout)
            response.raise_for_status()
            elevations = response.json().get('elevation') or []

            if len(elevations) != len(sampled):
                logger.warning(f"Elevation response size mismatch: {len(elevations)} != {len(sampled)}")
                return []

            return [(tuple(coord), float(elev)) for coord, elev in zip(sampled, elevations)]

        except requests.exceptions.RequestException as e:
            logger.warning(f"Elevation API request failed: {e}")
            return []
        except (ValueError, TypeError) as e:
            logger.warning(f"Elevation processing error: {e}")
            return []
