"""
Geometry helpers shared by the mining and synthesis code.

Coordinates passed around the package are [lon, lat] pairs; the scalar
functions take (lat, lon) arguments in that order.
"""

import math
from math import radians, cos, sin, asin, sqrt, atan2, degrees
from typing import Sequence

import numpy as np

from .models import Coordinate


EARTH_RADIUS_KM = 6371
KM_PER_DEGREE_LAT = 111.32


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on earth in kilometers.
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat/2)**2 + cos(lat1) * cos(lat2) * sin(dlon/2)**2
    c = 2 * asin(sqrt(min(1.0, a)))

    return c * EARTH_RADIUS_KM


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the initial bearing between two points in degrees [0, 360).
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlon = lon2 - lon1
    y = sin(dlon) * cos(lat2)
    x = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)

    bearing = degrees(atan2(y, x))
    return (bearing + 360) % 360


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great circle distance between two [lon, lat] coordinates."""
    return haversine_distance(a[1], a[0], b[1], b[0])


def bearing_deg(a: Coordinate, b: Coordinate) -> float:
    """Bearing from one [lon, lat] coordinate to another."""
    return calculate_bearing(a[1], a[0], b[1], b[0])


def bearing_difference(bearing1: float, bearing2: float) -> float:
    """Absolute angle between two bearings, wrapped to [0, 180]."""
    change = abs(bearing2 - bearing1) % 360
    if change > 180:
        change = 360 - change
    return change


def planar_degree_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Euclidean distance in raw degrees.

    Longitude degrees shrink with latitude, so this overstates east-west
    separation away from the equator. Clustering tolerances are expressed
    in this unit.
    """
    return math.sqrt((lat1 - lat2) ** 2 + (lon1 - lon2) ** 2)


def percentile_floor(sorted_values: Sequence[float], q: float) -> float:
    """Value at index floor(len * q) of an ascending sequence."""
    if not sorted_values:
        raise ValueError("percentile of empty sequence")
    index = min(int(math.floor(len(sorted_values) * q)), len(sorted_values) - 1)
    return sorted_values[index]


def destination_point(start: Coordinate, bearing: float, distance: float) -> Coordinate:
    """
    Offset a [lon, lat] coordinate by distance km along a bearing.

    Uses the flat-earth approximation, which is accurate enough for the
    few-tens-of-km waypoints the route generator places.

    Args:
        start: Origin coordinate
        bearing: Compass bearing in degrees
        distance: Offset in kilometers
    """
    start_lon, start_lat = start
    angle = radians(bearing)
    delta_lat = (distance / KM_PER_DEGREE_LAT) * cos(angle)
    delta_lon = (distance / (KM_PER_DEGREE_LAT * cos(radians(start_lat)))) * sin(angle)
    return (start_lon + delta_lon, start_lat + delta_lat)


def polyline_length_km(coordinates: Sequence[Coordinate]) -> float:
    """Summed great circle length of a polyline."""
    total = 0.0
    for i in range(1, len(coordinates)):
        total += distance_km(coordinates[i - 1], coordinates[i])
    return total


def route_center(coordinates: Sequence[Coordinate]) -> Coordinate:
    """Arithmetic mean of a polyline's coordinates ([0, 0] when empty)."""
    if not coordinates:
        return (0.0, 0.0)
    center = np.asarray(coordinates, dtype=float).mean(axis=0)
    return (float(center[0]), float(center[1]))
