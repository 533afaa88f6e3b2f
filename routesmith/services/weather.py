"""
Weather conditions for route scoring.
Uses the free Open-Meteo forecast API (no API key required).
"""

from dataclasses import dataclass
from math import cos, sin, radians
from typing import Optional, Sequence

import numpy as np
import requests

from ..config.config import get_config, WeatherConfig
from ..config.logging_config import get_logger
from ..processing.models import Coordinate, HILLS, ENDURANCE


logger = get_logger(__name__)

NEUTRAL_WIND_FACTOR = 0.8


@dataclass(frozen=True)
class WeatherConditions:
    """Current conditions at a location. Wind direction is where it blows from."""
    wind_speed_kmh: float
    wind_degrees: float
    temperature_c: Optional[float] = None
    precipitation_mm: Optional[float] = None


def calculate_wind_effect(wind_direction: float, wind_speed: float, route_bearing: float) -> dict:
    """Calculate headwind and crosswind components."""
    relative_angle = wind_direction - route_bearing
    relative_angle = (relative_angle + 180) % 360 - 180  # Normalize to [-180, 180]

    headwind_component = wind_speed * cos(radians(relative_angle))
    crosswind_component = wind_speed * sin(radians(relative_angle))

    return {
        'headwind_component': round(headwind_component, 1),
        'crosswind_component': round(abs(crosswind_component), 1)
    }


def leg_wind_factor(route_bearing: float, conditions: WeatherConditions) -> float:
    """
    Riding ease for one leg: 1.0 in still air, lower into a headwind,
    higher with a tailwind. Clamped to [0.5, 1.2].
    """
    effect = calculate_wind_effect(conditions.wind_degrees, conditions.wind_speed_kmh, route_bearing)
    return float(np.clip(1.0 - effect['headwind_component'] / 40.0, 0.5, 1.2))


def calculate_wind_factor(coordinates: Sequence[Coordinate], conditions: Optional[WeatherConditions]) -> float:
    """
    Average wind factor over the legs of a polyline.

    Args:
        coordinates: [lon, lat] polyline
        conditions: Current weather, or None

    Returns:
        Mean leg factor; 0.8 when weather or geometry is missing
    """
    if conditions is None or not coordinates or len(coordinates) < 2:
        return NEUTRAL_WIND_FACTOR

    coords = np.radians(np.asarray(coordinates, dtype=float))
    lon1, lat1 = coords[:-1, 0], coords[:-1, 1]
    lon2, lat2 = coords[1:, 0], coords[1:, 1]

    dlon = lon2 - lon1
    y = np.sin(dlon) * np.cos(lat2)
    x = np.cos(lat1) * np.sin(lat2) - np.sin(lat1) * np.cos(lat2) * np.cos(dlon)
    bearings = (np.degrees(np.arctan2(y, x)) + 360) % 360

    factors = [leg_wind_factor(float(b), conditions) for b in bearings]
    return float(np.mean(factors))


def training_conditions_score(conditions: Optional[WeatherConditions], training_goal: str) -> Optional[float]:
    """
    Rate how well the weather suits a training goal, in [0, 1].

    Endurance and hill rides tolerate more wind than interval or recovery
    sessions. Cold, heat and rain count against every goal.

    Returns:
        Score, or None without conditions
    """
    if conditions is None:
        return None

    score = 1.0
    wind = conditions.wind_speed_kmh

    if training_goal in (ENDURANCE, HILLS):
        if wind > 35:
            score -= 0.4
        elif wind > 20:
            score -= 0.2
    else:
        if wind > 25:
            score -= 0.5
        elif wind > 15:
            score -= 0.25

    temp = conditions.temperature_c
    if temp is not None:
        if temp < 0 or temp > 35:
            score -= 0.4
        elif temp < 5 or temp > 30:
            score -= 0.2

    rain = conditions.precipitation_mm
    if rain is not None:
        if rain > 2:
            score -= 0.4
        elif rain > 0:
            score -= 0.15

    return max(0.0, min(1.0, score))


class WeatherAnalyzer:
    """Fetches current conditions and rates them for training."""

    def __init__(self, config: WeatherConfig = None):
        """Initialize the weather analyzer."""
        config = config or get_config().weather
        self.base_url = config.base_url
        self.request_timeout = config.timeout_seconds

    def get_current_conditions(self, lat: float, lon: float) -> Optional[WeatherConditions]:
        """
        Get current conditions for a location.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            WeatherConditions, or None if the service is unavailable
        """
        params = {
            'latitude': lat,
            'longitude': lon,
            'current': 'temperature_2m,precipitation,wind_speed_10m,wind_direction_10m',
            'wind_speed_unit': 'kmh',
            'temperature_unit': 'celsius',
            'timezone': 'auto',
        }

        try:
            response = requests.get(self.base_url, params=params, timeout=self.request_timeout)
            response.raise_for_status()
            current = response.json().get('current') or {}

            if current.get('wind_speed_10m') is None or current.get('wind_direction_10m') is None:
                logger.warning("Weather response missing wind data")
                return None

            return WeatherConditions(
                wind_speed_kmh=float(current['wind_speed_10m']),
                wind_degrees=float(current['wind_direction_10m']),
                temperature_c=current.get('temperature_2m'),
                precipitation_mm=current.get('precipitation'),
            )

        except requests.exceptions.RequestException as e:
            logger.warning(f"Weather API request failed: {e}")
            return None
        except (ValueError, TypeError) as e:
            logger.warning(f"Weather processing error: {e}")
            return None

    def calculate_wind_factor(self, coordinates: Sequence[Coordinate],
                              conditions: Optional[WeatherConditions]) -> float:
        return calculate_wind_factor(coordinates, conditions)

    def training_conditions_score(self, conditions: Optional[WeatherConditions],
                                  training_goal: str) -> Optional[float]:
        return training_conditions_score(conditions, training_goal)
