#!/usr/bin/env python3
"""
Tests for segment extraction and the merged segment database.
"""

import os
import sys
from datetime import datetime, timezone

# Add the project root to the path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import pytest

from routesmith.processing.models import RideRecord, RouteSegment, TrackPoint
from routesmith.processing.ride_patterns.segment_database import (
    SegmentDatabase, SegmentExtractor, build_segment_database, segments_match,
)


def straight_ride(ride_id, num_points, lat_step=0.004, recorded_at=None):
    """Ride heading due north, about 0.445 km between points."""
    points = tuple(
        TrackPoint(latitude=45.0 + i * lat_step, longitude=7.0, sequence=i)
        for i in range(num_points)
    )
    return RideRecord(id=ride_id, track_points=points, recorded_at=recorded_at)


def make_segment(start, end, bearing, num_coords=6, ride_id='r', timestamp=None):
    coords = tuple(
        (start[0] + (end[0] - start[0]) * i / (num_coords - 1),
         start[1] + (end[1] - start[1]) * i / (num_coords - 1))
        for i in range(num_coords)
    )
    return RouteSegment(
        coordinates=coords,
        start_point=start,
        end_point=end,
        distance_km=2.2,
        bearing_deg=bearing,
        source_ride_id=ride_id,
        timestamp=timestamp,
    )


def test_short_rides_have_no_segments():
    assert SegmentExtractor().extract(straight_ride('short', 9)) == []


def test_segments_close_at_two_km():
    print("Testing segment extraction...")

    segments = SegmentExtractor().extract(straight_ride('r1', 21))

    assert len(segments) == 4
    for segment in segments:
        assert len(segment.coordinates) == 6
        assert segment.distance_km >= 2.0
        assert segment.bearing_deg == pytest.approx(0.0)
        assert segment.source_ride_id == 'r1'

    # The closing point of one segment opens the next
    for current, nxt in zip(segments, segments[1:]):
        assert current.end_point == nxt.start_point

    print("✅ Segments extracted in 2 km chunks")


def test_final_partial_segment():
    """A trailing chunk is kept only with at least five points."""
    print("Testing final partial segment...")

    dropped = SegmentExtractor().extract(straight_ride('r2', 23))
    assert len(dropped) == 4

    kept = SegmentExtractor().extract(straight_ride('r3', 25))
    assert len(kept) == 5
    assert len(kept[-1].coordinates) == 5
    assert kept[-1].distance_km < 2.0

    print("✅ Final partial segment handled")


def test_nearby_segments_merge():
    """Start 0.2 km apart, end 0.3 km apart and 10 degrees off: one entry used twice."""
    print("Testing segment merging...")

    first = make_segment((7.0, 45.0), (7.0, 45.02), bearing=0.0, ride_id='a')
    second = make_segment((7.0, 45.0018), (7.0, 45.0227), bearing=10.0, ride_id='b')
    assert segments_match(first, second)

    database = SegmentDatabase()
    database.add(first)
    database.add(second)

    entries = database.ranked()
    assert len(entries) == 1
    assert entries[0].usage_count == 2
    assert entries[0].source_ride_id == 'a'
    assert entries[0].start_point == (7.0, 45.0)
    assert entries[0].quality == 'proven'

    print("✅ Segments merged with usage count 2")


def test_diverging_segments_do_not_merge():
    first = make_segment((7.0, 45.0), (7.0, 45.02), bearing=0.0)
    turned = make_segment((7.0, 45.0018), (7.0, 45.0227), bearing=40.0)
    far = make_segment((7.0, 45.01), (7.0, 45.03), bearing=0.0)

    assert not segments_match(first, turned)
    assert not segments_match(first, far)

    database = SegmentDatabase()
    for segment in (first, turned, far):
        database.add(segment)
    assert len(database) == 3


def test_merge_keeps_more_detailed_geometry():
    print("Testing merge bookkeeping...")

    early = datetime(2024, 1, 1, tzinfo=timezone.utc)
    late = datetime(2024, 3, 1, tzinfo=timezone.utc)

    coarse = make_segment((7.0, 45.0), (7.0, 45.02), bearing=0.0, num_coords=5, timestamp=late)
    detailed = make_segment((7.0, 45.001), (7.0, 45.021), bearing=5.0, num_coords=12, timestamp=early)

    database = SegmentDatabase()
    database.add(coarse)
    database.add(detailed)

    entry = database.ranked()[0]
    assert len(entry.coordinates) == 12
    assert entry.start_point == (7.0, 45.0)
    assert entry.bearing_deg == 0.0
    assert entry.last_used_epoch_ms == int(late.timestamp() * 1000)

    print("✅ Merge keeps canonical endpoints and richest geometry")


def test_database_ranking():
    """Frequently ridden segments rank first."""
    once = make_segment((8.0, 46.0), (8.0, 46.02), bearing=0.0, ride_id='once')
    twice = make_segment((7.0, 45.0), (7.0, 45.02), bearing=0.0, ride_id='twice')

    database = SegmentDatabase()
    database.add(once)
    database.add(twice)
    database.add(twice)

    ranked = database.ranked()
    assert [e.source_ride_id for e in ranked] == ['twice', 'once']
    assert ranked[0].rank_score > ranked[1].rank_score


def test_build_segment_database_across_rides():
    print("Testing segment database across rides...")

    rides = [straight_ride('a', 21), straight_ride('b', 21), straight_ride('tiny', 5)]
    entries = build_segment_database(rides)

    assert len(entries) == 4
    assert all(entry.usage_count == 2 for entry in entries)

    print("✅ Repeated rides merge into shared segments")


def main():
    """Run segment tests."""
    print("=== Segment Database Tests ===")

    try:
        test_short_rides_have_no_segments()
        test_segments_close_at_two_km()
        test_final_partial_segment()
        test_nearby_segments_merge()
        test_diverging_segments_do_not_merge()
        test_merge_keeps_more_detailed_geometry()
        test_database_ranking()
        test_build_segment_database_across_rides()
        print("\n🎉 All segment tests passed!")
        return True
    except Exception as e:
        print(f"\n❌ Test failed: {e}")
        import traceback
        traceback.print_exc()
        return False


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
