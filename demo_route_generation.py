#!/usr/bin/env python3
"""
Demo script for route generation.
This script runs pattern mining and route synthesis against synthetic rides and
mock providers, so it needs neither a Mapbox token nor network access.
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import math
from datetime import datetime, timedelta, timezone

from routesmith.exceptions import CollaboratorError
from routesmith.processing.models import RideRecord, RideSummary, RouteRequest, TrackPoint
from routesmith.processing.ride_patterns import analyze_riding_patterns
from routesmith.routing.engine import RouteEngine
from routesmith.services.map_matching import MatchResult
from routesmith.services.weather import WeatherAnalyzer, WeatherConditions
from routesmith.utils.units import UnitFormatter

START_LAT = 40.015
START_LON = -105.27


def create_mock_rides(count=6):
    """Hexagonal loops of growing size around the demo start, one every other day."""
    rides = []
    base_date = datetime(2024, 6, 1, 7, 0, tzinfo=timezone.utc)

    for i in range(count):
        radius_deg = 0.05 + i * 0.01
        corners = [
            (START_LAT + radius_deg * math.sin(math.radians(60 * k)),
             START_LON + radius_deg * (1 - math.cos(math.radians(60 * k))))
            for k in range(7)
        ]

        points = []
        for (lat1, lon1), (lat2, lon2) in zip(corners, corners[1:]):
            for step in range(10):
                t = step / 10
                points.append(TrackPoint(
                    latitude=lat1 + (lat2 - lat1) * t,
                    longitude=lon1 + (lon2 - lon1) * t,
                    elevation=1600 + 80 * math.sin(len(points) / 9),
                    sequence=len(points),
                ))
        points.append(TrackPoint(latitude=corners[-1][0], longitude=corners[-1][1],
                                 elevation=1600, sequence=len(points)))

        rides.append(RideRecord(
            id=f"demo_ride_{i}",
            track_points=tuple(points),
            summary=RideSummary(distance_km=30.0 + i * 5, elevation_gain_m=250.0 + i * 60),
            recorded_at=base_date + timedelta(days=i * 2),
        ))
    return rides


def create_mock_providers():
    """Create mock providers for the engine."""
    class MockMatcher:
        def match(self, waypoints, profile=None):
            if len(waypoints) < 2:
                raise CollaboratorError("not enough waypoints")
            # Densify straight legs between waypoints
            coordinates = []
            for (lon1, lat1), (lon2, lat2) in zip(waypoints, waypoints[1:]):
                for k in range(10):
                    t = k / 10
                    coordinates.append((lon1 + (lon2 - lon1) * t, lat1 + (lat2 - lat1) * t))
            coordinates.append(tuple(waypoints[-1]))
            return MatchResult(tuple(coordinates), distance_m=32000, duration_s=4600, confidence=0.9)

    class MockElevation:
        def sample(self, coordinates):
            return [(tuple(c), 1600 + 40 * math.sin(i / 5)) for i, c in enumerate(coordinates)]

    class MockWeather(WeatherAnalyzer):
        def get_current_conditions(self, lat, lon):
            return WeatherConditions(wind_speed_kmh=12, wind_degrees=270, temperature_c=18, precipitation_mm=0)

    class MockRideStore:
        def fetch(self, user_id, limit=50):
            return create_mock_rides()[:limit]

    return MockMatcher(), MockElevation(), MockWeather(), MockRideStore()


def demo_pattern_analysis():
    """Demonstrate riding pattern mining."""
    print("🚴 RouteSmith Pattern Analysis Demo")
    print("=" * 50)

    profile = analyze_riding_patterns(create_mock_rides())
    distances = profile.preferred_distances

    print(f"  • Mean distance: {distances.mean:.1f} km (median {distances.median:.1f} km)")
    print(f"  • Most common range: {distances.most_common_range.name}")
    print(f"  • Elevation preference: {profile.elevation_preference}")
    print(f"  • Frequent areas: {len(profile.frequent_areas)}")
    for direction in profile.preferred_directions:
        print(f"  • Direction {direction.direction}: {direction.preference:.0%}")
    print(f"  • Segment database: {len(profile.route_segments)} segments")
    print(f"  • Route templates: {len(profile.route_templates)}")
    return profile


def demo_route_generation():
    """Demonstrate route generation with mock providers."""
    print("\n🗺️  RouteSmith Route Generation Demo")
    print("=" * 50)

    matcher, elevation, weather, store = create_mock_providers()
    engine = RouteEngine(matcher=matcher, elevation_provider=elevation, weather=weather,
                         ride_store=store, seed=42)

    request = RouteRequest(
        start_location=(START_LON, START_LAT),
        time_available_minutes=90,
        training_goal='endurance',
        route_shape='loop',
        user_id='demo_rider',
    )
    routes = engine.generate(request)

    formatter = UnitFormatter()
    for route in routes:
        print(f"  • {route.name}: {formatter.distance(route.distance_km)}, "
              f"{formatter.elevation(route.elevation_gain_m)} climbing, "
              f"{route.difficulty}, score {route.score:.2f}")
    return routes


if __name__ == "__main__":
    demo_pattern_analysis()
    demo_route_generation()
    print("\n✅ Demo completed")
