"""
Route shape classification and per-ride route templates.
"""

from typing import List, Sequence

from .geo_math import distance_km
from .models import (
    KeyPoint, LOOP, OUT_BACK, POINT_TO_POINT, RideRecord, RouteTemplate,
)
from .track_reducer import find_key_points


LOOP_CLOSURE_KM = 0.5
MIRROR_TOLERANCE_KM = 1.0
MIRROR_SHARE = 0.6
MIN_TEMPLATE_POINTS = 20


def classify_route_shape(key_points: Sequence[KeyPoint]) -> str:
    """
    Classify a ride as loop, out_back or point_to_point.

    A ride ending within 500 m of its start is a loop. Otherwise the second
    half of the key points is reversed and compared pairwise with the first
    half; more than 60% of pairs within 1 km makes it an out-and-back.

    Args:
        key_points: Ordered key points of one ride

    Returns:
        Shape name, or 'unknown' for fewer than three key points
    """
    if len(key_points) < 3:
        return 'unknown'

    start = key_points[0]
    end = key_points[-1]

    if distance_km(start.coordinate, end.coordinate) < LOOP_CLOSURE_KM:
        return LOOP

    if len(key_points) >= 4:
        midpoint = len(key_points) // 2
        outbound = key_points[:midpoint]
        inbound = list(reversed(key_points[midpoint:]))

        check_count = min(len(outbound), len(inbound))
        similar = sum(
            1 for i in range(check_count)
            if distance_km(outbound[i].coordinate, inbound[i].coordinate) < MIRROR_TOLERANCE_KM
        )

        if similar / check_count > MIRROR_SHARE:
            return OUT_BACK

    return POINT_TO_POINT


def build_route_templates(rides: Sequence[RideRecord], segment_extractor) -> List[RouteTemplate]:
    """
    Shape templates for rides with at least 20 points and 3 key points.

    Args:
        rides: Historical rides
        segment_extractor: SegmentExtractor used for each template's segments

    Returns:
        Templates, most detailed (highest confidence) first
    """
    templates = []

    for ride in rides:
        if len(ride.track_points) < MIN_TEMPLATE_POINTS:
            continue

        key_points = find_key_points(ride.track_points)
        if len(key_points) < 3:
            continue

        templates.append(RouteTemplate(
            id=ride.id,
            distance_km=ride.summary.distance_km or 0.0,
            elevation_gain_m=ride.summary.elevation_gain_m or 0.0,
            key_points=tuple(p.coordinate for p in key_points),
            start_area=key_points[0].coordinate,
            pattern=classify_route_shape(key_points),
            segments=tuple(segment_extractor.extract(ride)),
            confidence=min(len(key_points) / 10, 1.0),
            timestamp=ride.recorded_at,
        ))

    templates.sort(key=lambda t: t.confidence, reverse=True)
    return templates
