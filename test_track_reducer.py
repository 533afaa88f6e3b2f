#!/usr/bin/env python3
"""
Tests for key point reduction, ride locations, route shape classification
and route templates.
"""

import os
import sys

# Add the project root to the path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from routesmith.processing.models import KeyPoint, RideRecord, RideSummary, TrackPoint
from routesmith.processing.route_shape import build_route_templates, classify_route_shape
from routesmith.processing.ride_patterns.segment_database import SegmentExtractor
from routesmith.processing.track_reducer import extract_ride_locations, find_key_points


def make_points(coords):
    """TrackPoints from (lat, lon) pairs."""
    return tuple(TrackPoint(latitude=lat, longitude=lon, sequence=i) for i, (lat, lon) in enumerate(coords))


def square_loop(lat0=45.0, lon0=7.0, size=0.02, per_side=8):
    """North, east, south, west back to the start."""
    step = size / per_side
    coords = []
    for i in range(per_side):
        coords.append((lat0 + i * step, lon0))
    for i in range(per_side):
        coords.append((lat0 + size, lon0 + i * step))
    for i in range(per_side):
        coords.append((lat0 + size - i * step, lon0 + size))
    for i in range(per_side):
        coords.append((lat0, lon0 + size - i * step))
    coords.append((lat0, lon0))
    return coords


def key_points(coords):
    return [KeyPoint(latitude=lat, longitude=lon, sequence=i) for i, (lat, lon) in enumerate(coords)]


def test_straight_track_keeps_endpoints():
    print("Testing straight track reduction...")

    points = make_points([(45.0 + i * 0.001, 7.0) for i in range(10)])
    result = find_key_points(points)

    assert len(result) == 2
    assert (result[0].latitude, result[0].longitude) == (45.0, 7.0)
    assert result[-1].latitude == points[-1].latitude

    print("✅ Straight track reduced to its endpoints")


def test_turn_is_kept_with_confidence():
    print("Testing turn detection...")

    coords = [(45.0 + i * 0.001, 7.0) for i in range(5)] + [(45.004, 7.0 + i * 0.001) for i in range(1, 5)]
    result = find_key_points(make_points(coords))

    assert len(result) == 3, f"Expected start, corner, end; got {len(result)}"
    corner = result[1]
    assert abs(corner.latitude - 45.004) < 1e-9 and corner.longitude == 7.0
    assert 0.9 < corner.confidence <= 1.0

    print("✅ Right-angle turn detected")


def test_short_tracks_returned_whole():
    points = make_points([(45.0, 7.0), (45.001, 7.001)])
    assert len(find_key_points(points)) == 2
    assert find_key_points(()) == []


def test_extract_ride_locations_tags():
    coords = [(45.0 + i * 0.001, 7.0) for i in range(5)] + [(45.004, 7.0 + i * 0.001) for i in range(1, 5)]
    ride = RideRecord(id='r1', track_points=make_points(coords))

    locations = extract_ride_locations(ride)
    assert [loc.kind for loc in locations] == ['start', 'junction', 'end']
    assert extract_ride_locations(RideRecord(id='empty')) == []


def test_classify_loop():
    """A path ending within 400 m of its start is a loop."""
    print("Testing loop classification...")

    shape = classify_route_shape(key_points([
        (45.0, 7.0), (45.05, 7.0), (45.05, 7.07), (45.0, 7.07), (45.003, 7.0),
    ]))
    assert shape == 'loop'

    print("✅ Loop classified")


def test_classify_out_and_back():
    """Mirrored halves within 1 km make an out-and-back."""
    print("Testing out-and-back classification...")

    shape = classify_route_shape(key_points([
        (45.00, 7.0), (45.02, 7.0), (45.04, 7.0), (45.06, 7.0),
        (45.045, 7.0), (45.025, 7.0), (45.006, 7.0),
    ]))
    assert shape == 'out_back'

    print("✅ Out-and-back classified")


def test_classify_point_to_point():
    print("Testing point-to-point classification...")

    shape = classify_route_shape(key_points([
        (45.0, 7.0), (45.02, 7.02), (45.04, 7.04), (45.06, 7.06),
    ]))
    assert shape == 'point_to_point'

    print("✅ Point-to-point classified")


def test_classify_too_few_points():
    assert classify_route_shape(key_points([(45.0, 7.0), (45.1, 7.1)])) == 'unknown'


def test_route_templates():
    print("Testing route templates...")

    loop_ride = RideRecord(
        id='loop',
        track_points=make_points(square_loop()),
        summary=RideSummary(distance_km=8.9, elevation_gain_m=120),
    )
    short_ride = RideRecord(id='short', track_points=make_points(square_loop(per_side=3)))

    templates = build_route_templates([short_ride, loop_ride], SegmentExtractor())

    assert len(templates) == 1, "Rides under 20 points produce no template"
    template = templates[0]
    assert template.id == 'loop'
    assert template.pattern == 'loop'
    assert template.start_area == (7.0, 45.0)
    assert template.distance_km == 8.9
    assert 0 < template.confidence <= 1.0
    assert len(template.segments) > 0

    print("✅ Route templates built")


def main():
    """Run track reduction and shape tests."""
    print("=== Track Reduction & Route Shape Tests ===")

    try:
        test_straight_track_keeps_endpoints()
        test_turn_is_kept_with_confidence()
        test_short_tracks_returned_whole()
        test_extract_ride_locations_tags()
        test_classify_loop()
        test_classify_out_and_back()
        test_classify_point_to_point()
        test_classify_too_few_points()
        test_route_templates()
        print("\n🎉 All track reduction tests passed!")
        return True
    except Exception as e:
        print(f"\n❌ Test failed: {e}")
        import traceback
        traceback.print_exc()
        return False


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
