"""
Unit formatting for route summaries.
All values are metric internally; imperial output is only for display.
"""

from typing import Any, Dict


class UnitFormatter:
    """Formats distances, climbing and durations for people to read."""

    KM_TO_MILES = 0.621371
    METERS_TO_FEET = 3.28084

    def __init__(self, imperial: bool = False):
        self.imperial = imperial

    def distance(self, distance_km: float) -> str:
        if distance_km is None:
            return "N/A"
        if self.imperial:
            return f"{distance_km * self.KM_TO_MILES:.1f} mi"
        return f"{distance_km:.1f} km"

    def elevation(self, elevation_m: float) -> str:
        if elevation_m is None:
            return "N/A"
        if self.imperial:
            return f"{elevation_m * self.METERS_TO_FEET:.0f} ft"
        return f"{elevation_m:.0f} m"

    @staticmethod
    def duration(minutes: float) -> str:
        """Format minutes as '1h 05m' or '45m'."""
        if minutes is None:
            return "N/A"
        total = int(round(minutes))
        hours, mins = divmod(total, 60)
        if hours:
            return f"{hours}h {mins:02d}m"
        return f"{mins}m"

    def route_summary(self, route: Dict[str, Any]) -> Dict[str, Any]:
        """
        Human-readable fields for a route dictionary.

        Args:
            route: Dictionary produced by RouteCandidate.to_dict()

        Returns:
            Copy of the route with a 'display' block added
        """
        summary = dict(route)
        summary['display'] = {
            'distance': self.distance(route.get('distance_km')),
            'elevation_gain': self.elevation(route.get('elevation_gain_m')),
            'elevation_loss': self.elevation(route.get('elevation_loss_m')),
        }
        return summary
