"""
Direction Analyzer - Which compass directions a rider tends to head in.
"""

from typing import List, Sequence

from ...config.logging_config import get_logger
from ..geo_math import calculate_bearing
from ..models import DirectionPreference, RideLocation


logger = get_logger(__name__)

SECTOR_NAMES = ('N', 'NE', 'E', 'SE', 'S', 'SW', 'W', 'NW')
SECTOR_WIDTH_DEG = 45
MIN_PREFERENCE = 0.1
MAX_DIRECTIONS = 3


def bearing_sector(bearing: float) -> int:
    """Index of the 45 degree sector centred on a multiple of 45."""
    return int(((bearing + 22.5) % 360) // SECTOR_WIDTH_DEG)


class DirectionAnalyzer:
    """Bearing-sector histogram over consecutive ride locations."""

    def analyze(self, ride_locations: Sequence[Sequence[RideLocation]]) -> List[DirectionPreference]:
        """
        Preferred directions across rides.

        Each ride contributes the bearing between every consecutive pair of
        its locations. Sectors holding more than 10% of all bearings are
        returned, most frequent first, at most three.

        Args:
            ride_locations: Ordered locations per ride

        Returns:
            Direction preferences
        """
        bearings = []
        for locations in ride_locations:
            for i in range(len(locations) - 1):
                start = locations[i]
                end = locations[i + 1]
                bearings.append(calculate_bearing(start.lat, start.lon, end.lat, end.lon))

        if not bearings:
            return []

        sectors = [0] * len(SECTOR_NAMES)
        for bearing in bearings:
            sectors[bearing_sector(bearing)] += 1

        preferences = [
            DirectionPreference(
                direction=SECTOR_NAMES[index],
                bearing_deg=float(index * SECTOR_WIDTH_DEG),
                frequency=count,
                preference=count / len(bearings),
            )
            for index, count in enumerate(sectors)
        ]
        preferences = [p for p in preferences if p.preference > MIN_PREFERENCE]
        preferences.sort(key=lambda p: p.frequency, reverse=True)

        logger.debug(f"Direction sectors from {len(bearings)} bearings: {sectors}")
        return preferences[:MAX_DIRECTIONS]
