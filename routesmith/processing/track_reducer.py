"""
Track reduction: keep only the points where a ride changes direction.
"""

from typing import List, Sequence

from .geo_math import calculate_bearing, bearing_difference
from .models import KeyPoint, RideLocation, RideRecord, TrackPoint


TURN_THRESHOLD_DEG = 30


def _as_key_point(point: TrackPoint, confidence: float = 1.0) -> KeyPoint:
    return KeyPoint(
        latitude=point.latitude,
        longitude=point.longitude,
        confidence=confidence,
        sequence=point.sequence,
    )


def find_key_points(track_points: Sequence[TrackPoint]) -> List[KeyPoint]:
    """
    Reduce a track to its decision points.

    An interior point is kept when the bearing into it and the bearing out
    of it differ by more than 30 degrees; its confidence grows with the
    sharpness of the turn and saturates at 90 degrees. The first and last
    points are always kept.

    Tracks shorter than three points are returned whole.

    Args:
        track_points: Ordered points of one ride

    Returns:
        Ordered key points
    """
    if len(track_points) < 3:
        return [_as_key_point(p) for p in track_points]

    key_points = [_as_key_point(track_points[0])]

    for i in range(1, len(track_points) - 1):
        prev = track_points[i - 1]
        curr = track_points[i]
        nxt = track_points[i + 1]

        bearing_in = calculate_bearing(prev.latitude, prev.longitude, curr.latitude, curr.longitude)
        bearing_out = calculate_bearing(curr.latitude, curr.longitude, nxt.latitude, nxt.longitude)
        change = bearing_difference(bearing_in, bearing_out)

        if change > TURN_THRESHOLD_DEG:
            key_points.append(_as_key_point(curr, min(change / 90, 1.0)))

    key_points.append(_as_key_point(track_points[-1]))

    return key_points


def extract_ride_locations(ride: RideRecord) -> List[RideLocation]:
    """Key points of a ride tagged as start, junction or end."""
    if not ride.track_points:
        return []

    key_points = find_key_points(ride.track_points)
    last = len(key_points) - 1

    locations = []
    for index, point in enumerate(key_points):
        if index == 0:
            kind = 'start'
        elif index == last:
            kind = 'end'
        else:
            kind = 'junction'
        locations.append(RideLocation(
            lat=point.latitude,
            lon=point.longitude,
            kind=kind,
            confidence=point.confidence,
        ))

    return locations
