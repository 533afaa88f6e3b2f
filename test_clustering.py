#!/usr/bin/env python3
"""
Tests for frequent-area clustering and direction preferences.
"""

import os
import random
import sys

# Add the project root to the path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import pytest

from routesmith.processing.geo_math import planar_degree_distance
from routesmith.processing.models import RideLocation
from routesmith.processing.ride_patterns.direction_analyzer import DirectionAnalyzer, bearing_sector
from routesmith.processing.ride_patterns.spatial_clusterer import SpatialClusterer


def naive_clusters(locations, tolerance=0.01):
    """Reference greedy pass: scan every cluster in creation order."""
    clusters = []
    for loc in locations:
        for cluster in clusters:
            center_lat = cluster['lat_sum'] / cluster['count']
            center_lon = cluster['lon_sum'] / cluster['count']
            if planar_degree_distance(loc.lat, loc.lon, center_lat, center_lon) < tolerance:
                cluster['lat_sum'] += loc.lat
                cluster['lon_sum'] += loc.lon
                cluster['count'] += 1
                break
        else:
            clusters.append({'lat_sum': loc.lat, 'lon_sum': loc.lon, 'count': 1})
    return clusters


def test_frequent_area_from_repeated_visits():
    print("Testing frequent area detection...")

    locations = [RideLocation(lat=45.0 + i * 0.001, lon=7.0) for i in range(3)]
    locations.append(RideLocation(lat=46.0, lon=8.0))

    areas = SpatialClusterer().find_frequent_areas(locations)

    assert len(areas) == 1
    assert areas[0].frequency == 3
    assert areas[0].confidence == pytest.approx(0.3)
    assert areas[0].center == pytest.approx((7.0, 45.001))

    print("✅ Frequent area found")


def test_frequent_areas_capped_and_sorted():
    """At most five areas, strictly descending by frequency."""
    print("Testing frequent area cap and order...")

    locations = []
    for group, size in enumerate([3, 9, 5, 7, 4, 8, 6]):
        for _ in range(size):
            locations.append(RideLocation(lat=45.0 + group * 0.1, lon=7.0))

    areas = SpatialClusterer().find_frequent_areas(locations)

    assert len(areas) == 5
    frequencies = [a.frequency for a in areas]
    assert frequencies == [9, 8, 7, 6, 5]
    assert all(a.frequency > b.frequency for a, b in zip(areas, areas[1:]))
    assert areas[0].confidence == pytest.approx(0.9)

    print("✅ Areas capped at five and sorted")


def test_clustering_is_order_dependent():
    """The same samples in a different order can cluster differently."""
    print("Testing clustering order dependence...")

    a = RideLocation(lat=0.0, lon=0.0)
    b = RideLocation(lat=0.0, lon=0.008)
    c = RideLocation(lat=0.0, lon=0.016)
    clusterer = SpatialClusterer()

    forward = clusterer.cluster([a, b, c])
    backward = clusterer.cluster([c, b, a])

    assert [cl.count for cl in forward] == [2, 1]
    assert [cl.count for cl in backward] == [2, 1]
    assert forward[0].center_lon == pytest.approx(0.004)
    assert backward[0].center_lon == pytest.approx(0.012)

    print("✅ Membership depends on input order")


def test_grid_index_matches_linear_scan():
    print("Testing grid-indexed clustering against a linear scan...")

    rng = random.Random(3)
    locations = [
        RideLocation(lat=45.0 + rng.uniform(0, 0.05), lon=7.0 + rng.uniform(0, 0.05))
        for _ in range(400)
    ]

    grid = SpatialClusterer().cluster(locations)
    reference = naive_clusters(locations)

    assert [cl.count for cl in grid] == [cl['count'] for cl in reference]
    for fast, slow in zip(grid, reference):
        assert fast.center_lat == pytest.approx(slow['lat_sum'] / slow['count'])
        assert fast.center_lon == pytest.approx(slow['lon_sum'] / slow['count'])

    print("✅ Grid index gives identical clusters")


def test_bearing_sector():
    assert bearing_sector(0) == 0
    assert bearing_sector(22.4) == 0
    assert bearing_sector(22.5) == 1
    assert bearing_sector(350) == 0
    assert bearing_sector(180) == 4
    assert bearing_sector(337.5) == 0


def test_direction_preferences():
    """At most three directions, each above 10%."""
    print("Testing direction preferences...")

    # Mostly north with some east and a single south-west leg
    north = [RideLocation(lat=45.0 + i * 0.01, lon=7.0) for i in range(7)]
    east = [RideLocation(lat=45.0, lon=7.0 + i * 0.01) for i in range(4)]
    west = [RideLocation(lat=45.0, lon=7.0 - i * 0.01) for i in range(3)]
    south_west = [RideLocation(lat=45.0, lon=7.0), RideLocation(lat=44.99, lon=6.99)]

    preferences = DirectionAnalyzer().analyze([north, east, west, south_west])

    assert 0 < len(preferences) <= 3
    assert all(p.preference > 0.1 for p in preferences)
    assert [p.direction for p in preferences] == ['N', 'E', 'W']
    assert preferences[0].frequency == 6
    assert preferences[0].preference == pytest.approx(6 / 12)
    assert preferences[0].bearing_deg == 0.0

    assert DirectionAnalyzer().analyze([[RideLocation(lat=45.0, lon=7.0)]]) == []

    print("✅ Direction preferences filtered and capped")


def main():
    """Run clustering and direction tests."""
    print("=== Clustering & Direction Tests ===")

    try:
        test_frequent_area_from_repeated_visits()
        test_frequent_areas_capped_and_sorted()
        test_clustering_is_order_dependent()
        test_grid_index_matches_linear_scan()
        test_bearing_sector()
        test_direction_preferences()
        print("\n🎉 All clustering tests passed!")
        return True
    except Exception as e:
        print(f"\n❌ Test failed: {e}")
        import traceback
        traceback.print_exc()
        return False


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
