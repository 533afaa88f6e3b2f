#!/usr/bin/env python3
"""
Tests for the route synthesis engine: concurrent realization, fallbacks,
timeouts, cancellation and reproducibility.
Every provider is replaced by an in-process fake.
"""

import os
import sys
import threading
import time
from dataclasses import replace

# Add the project root to the path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import pytest
import requests

from routesmith.config.config import EngineConfig
from routesmith.exceptions import CollaboratorError, RouteGenerationCancelled
from routesmith.processing.models import RideRecord, RideSummary, RouteRequest, SegmentDatabaseEntry
from routesmith.processing.ride_patterns import default_profile
from routesmith.routing import RouteEngine, generate_ai_routes
from routesmith.services.map_matching import MatchResult
from routesmith.services.weather import WeatherAnalyzer, WeatherConditions

START = (7.0, 45.0)


def densify(waypoints, steps=5):
    coords = []
    for (lon1, lat1), (lon2, lat2) in zip(waypoints, waypoints[1:]):
        for i in range(steps):
            t = i / steps
            coords.append((lon1 + (lon2 - lon1) * t, lat1 + (lat2 - lat1) * t))
    coords.append(tuple(waypoints[-1]))
    return tuple(coords)


class FakeMatcher:
    """Snaps waypoints by interpolating between them."""

    def __init__(self, delay_for=None, fail_when=None):
        self.delay_for = delay_for or (lambda waypoints: 0)
        self.fail_when = fail_when or (lambda waypoints: False)
        self.calls = []
        self._lock = threading.Lock()

    def match(self, waypoints, profile=None):
        with self._lock:
            self.calls.append((tuple(waypoints), profile))
        time.sleep(self.delay_for(waypoints))
        if self.fail_when(waypoints):
            raise CollaboratorError("no road here")
        return MatchResult(coordinates=densify(waypoints), distance_m=32000, duration_s=4600, confidence=0.9)


class BlockingMatcher:
    """Never answers until released."""

    def __init__(self, on_call=None):
        self.release = threading.Event()
        self.on_call = on_call

    def match(self, waypoints, profile=None):
        if self.on_call:
            self.on_call()
        self.release.wait(5)
        raise CollaboratorError("released")


class FakeElevation:
    def sample(self, coordinates):
        return [(tuple(c), 100.0 + 5 * i) for i, c in enumerate(coordinates)]


class FakeWeather(WeatherAnalyzer):
    """Fixed conditions; rating and wind factor come from WeatherAnalyzer."""

    def __init__(self, conditions=None):
        super().__init__()
        self.conditions = conditions

    def get_current_conditions(self, lat, lon):
        return self.conditions


class FakeRideStore:
    def __init__(self, rides=()):
        self.rides = list(rides)
        self.requests = []

    def fetch(self, user_id, limit=50):
        self.requests.append((user_id, limit))
        return self.rides[:limit]


class BrokenRideStore:
    def fetch(self, user_id, limit=50):
        raise OSError("ride database offline")


class OfflineWeather(FakeWeather):
    def get_current_conditions(self, lat, lon):
        raise requests.exceptions.ConnectionError("forecast service down")


class OpinionatedWeather(FakeWeather):
    """Rates every ride perfect and reports a fixed tailwind."""

    def __init__(self, conditions=None):
        super().__init__(conditions)
        self.rated_goals = []

    def training_conditions_score(self, conditions, training_goal):
        self.rated_goals.append(training_goal)
        return 1.0

    def calculate_wind_factor(self, coordinates, conditions):
        return 1.1


class LateMatcher:
    """Answers only after release, long past the engine's deadline."""

    def __init__(self):
        self.release = threading.Event()
        self.answered = 0
        self._lock = threading.Lock()

    def match(self, waypoints, profile=None):
        self.release.wait(5)
        with self._lock:
            self.answered += 1
        return MatchResult(coordinates=densify(waypoints), distance_m=32000, duration_s=4600, confidence=0.9)


class CountingElevation(FakeElevation):
    def __init__(self):
        self.calls = 0
        self._lock = threading.Lock()

    def sample(self, coordinates):
        with self._lock:
            self.calls += 1
        return super().sample(coordinates)


def make_engine(matcher=None, conditions=None, rides=(), seed=7, **config):
    return RouteEngine(
        matcher=matcher or FakeMatcher(),
        elevation_provider=FakeElevation(),
        weather=FakeWeather(conditions),
        ride_store=FakeRideStore(rides),
        config=EngineConfig(**config),
        seed=seed,
    )


def test_routes_realized_through_providers():
    print("Testing realized routes...")

    conditions = WeatherConditions(wind_speed_kmh=12, wind_degrees=270, temperature_c=18, precipitation_mm=0)
    engine = make_engine(conditions=conditions)
    routes = engine.generate(RouteRequest(start_location=START, time_available_minutes=60, training_goal='endurance'))

    assert len(routes) == 4
    assert {r.pattern for r in routes} == {'north', 'east', 'south', 'west'}
    for route in routes:
        assert route.source == 'geometry'
        assert route.distance_km == pytest.approx(32.0)
        assert route.elevation_gain_m > 0
        assert route.name.endswith(' - Endurance Ride')
        assert 0.5 <= route.wind_factor <= 1.2
        assert 0.0 <= route.score <= 1.0
        assert len(route.elevation_profile) == len(route.coordinates)

    scores = [r.score for r in routes]
    assert scores == sorted(scores, reverse=True)
    assert all(profile == 'cycling' for _, profile in engine.matcher.calls)

    print("✅ Four realized routes ranked")


def test_failed_candidate_is_replaced_by_mock():
    """One provider failure costs one candidate its geometry, not the request."""
    print("Testing per-candidate fallback...")

    # The North Route turnaround is due north, so its longitude equals the start's
    matcher = FakeMatcher(fail_when=lambda waypoints: waypoints[1][0] == START[0])
    engine = make_engine(matcher=matcher)

    routes = engine.generate(RouteRequest(start_location=START, route_shape='out_back'))

    assert len(routes) == 4
    mocks = [r for r in routes if r.pattern == 'mock']
    assert [r.name for r in mocks] == ['North Route - Endurance Ride']
    assert mocks[0].source == 'mock'
    assert mocks[0].wind_factor == 0.8
    assert {r.pattern for r in routes if r.source == 'geometry'} == {'northeast', 'east', 'southeast'}

    print("✅ Failed candidate replaced, others realized")


def test_results_keep_submission_order():
    print("Testing result ordering...")

    # Later plans finish first
    delays = iter([0.3, 0.2, 0.1, 0.0])
    lock = threading.Lock()

    def delay_for(waypoints):
        with lock:
            return next(delays)

    engine = make_engine(matcher=FakeMatcher(delay_for=delay_for))
    plans = engine.generator.plan_routes(START, 20.0, 'endurance', 'loop')

    candidates = engine._realize_all(plans, None, None)

    assert [c.pattern for c in candidates] == ['north', 'east', 'south', 'west']
    assert all(c.source == 'geometry' for c in candidates)

    print("✅ Results in plan order regardless of completion order")


def test_same_seed_same_routes():
    print("Testing reproducibility...")

    def jittery(waypoints):
        return (hash(waypoints[1]) % 5) / 100

    request = RouteRequest(start_location=START, training_goal='hills', time_available_minutes=90)
    first = make_engine(matcher=FakeMatcher(delay_for=jittery), seed=11).generate(request)
    second = make_engine(matcher=FakeMatcher(delay_for=jittery), seed=11).generate(request)

    assert [(r.name, r.coordinates, r.score) for r in first] == [(r.name, r.coordinates, r.score) for r in second]

    print("✅ Seeded runs are identical")


def test_timeout_falls_back_to_mocks():
    print("Testing provider timeout...")

    matcher = BlockingMatcher()
    engine = make_engine(matcher=matcher, call_timeout_seconds=0.2)

    started = time.monotonic()
    try:
        routes = engine.generate(RouteRequest(start_location=START))
    finally:
        matcher.release.set()
    elapsed = time.monotonic() - started

    assert elapsed < 2.0
    assert len(routes) == 4
    assert all(r.pattern == 'mock' for r in routes)

    print(f"✅ Timed out calls replaced by mocks in {elapsed:.2f}s")


def test_cancel_before_start():
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(RouteGenerationCancelled):
        make_engine().generate(RouteRequest(start_location=START), cancel_event=cancel)


def test_cancel_while_realizing():
    print("Testing cancellation...")

    cancel = threading.Event()
    matcher = BlockingMatcher(on_call=cancel.set)
    engine = make_engine(matcher=matcher)

    started = time.monotonic()
    try:
        with pytest.raises(RouteGenerationCancelled):
            engine.generate(RouteRequest(start_location=START), cancel_event=cancel)
    finally:
        matcher.release.set()

    assert time.monotonic() - started < 2.0

    print("✅ Cancellation stops the request")


def test_invalid_start_returns_empty():
    engine = make_engine()
    assert engine.generate(RouteRequest(start_location=(7.0, 95.0))) == []
    assert engine.generate(RouteRequest(start_location=(200.0, 45.0))) == []
    assert engine.matcher.calls == []


def test_history_adjusts_target_distance():
    """Rides of 10/20/30 km stretch a 36-minute endurance ride to 24 km."""
    print("Testing history-driven distance...")

    rides = [
        RideRecord(id=f"r{d}", summary=RideSummary(distance_km=d, elevation_gain_m=150))
        for d in (10.0, 20.0, 30.0)
    ]
    matcher = FakeMatcher(fail_when=lambda waypoints: True)
    engine = make_engine(matcher=matcher, rides=rides, history_limit=20)

    routes = engine.generate(RouteRequest(
        start_location=START, time_available_minutes=36, training_goal='endurance', user_id='rider',
    ))

    assert engine.ride_store.requests == [('rider', 20)]
    assert len(routes) == 4
    assert all(r.pattern == 'mock' for r in routes)
    assert all(r.distance_km == pytest.approx(24.0) for r in routes)

    print("✅ Target distance adjusted from history")


def test_segment_candidate_is_ranked():
    print("Testing historical segment candidate...")

    coords = tuple((7.0, 45.0 + 0.02 * i / 11) for i in range(12))
    entry = SegmentDatabaseEntry(
        coordinates=coords,
        start_point=coords[0],
        end_point=coords[-1],
        distance_km=2.2,
        bearing_deg=0.0,
        source_ride_id='seg_ride',
        usage_count=4,
    )
    profile = replace(default_profile(), route_segments=(entry,))
    engine = make_engine(top_k=5)

    routes = engine.generate(RouteRequest(start_location=START), profile=profile)

    assert len(routes) == 5
    historical = [r for r in routes if r.source == 'segments']
    assert len(historical) == 1
    assert historical[0].name == 'Route from Your Rides'
    assert historical[0].elevation_gain_m == 55
    assert len(historical[0].elevation_profile) == 12

    print("✅ Segment route realized with elevation")


def test_generate_ai_routes_entry_point():
    engine = make_engine()
    routes = generate_ai_routes(RouteRequest(start_location=START, route_shape='point_to_point'), engine=engine)

    assert len(routes) == 4
    assert {r.pattern for r in routes} == {'north', 'northeast', 'east', 'southeast'}


def test_unreadable_history_degrades():
    """A failing ride store costs the pattern hints, not the request."""
    print("Testing unreadable ride history...")

    engine = RouteEngine(
        matcher=FakeMatcher(),
        elevation_provider=FakeElevation(),
        weather=FakeWeather(),
        ride_store=BrokenRideStore(),
        config=EngineConfig(),
        seed=7,
    )

    assert engine.load_profile('u1') is None

    routes = engine.generate(RouteRequest(start_location=START, user_id='u1'))
    assert len(routes) == 4
    assert all(r.source == 'geometry' for r in routes)

    print("✅ Routes generated without history")


def test_weather_outage_scores_neutrally():
    print("Testing weather outage...")

    request = RouteRequest(start_location=START, training_goal='endurance')
    offline = make_engine()
    offline.weather = OfflineWeather()

    routes = offline.generate(request)
    baseline = make_engine(conditions=None).generate(request)

    assert len(routes) == 4
    assert all(r.wind_factor == pytest.approx(0.8) for r in routes)
    assert [(r.name, r.score) for r in routes] == [(r.name, r.score) for r in baseline]

    print("✅ Weather outage scored as no weather")


def test_weather_collaborator_rates_routes():
    """Conditions rating and wind factor come from the injected weather object."""
    print("Testing weather collaborator rating...")

    conditions = WeatherConditions(wind_speed_kmh=30, wind_degrees=0, temperature_c=2, precipitation_mm=4)
    engine = make_engine(conditions=conditions)
    engine.weather = OpinionatedWeather(conditions)

    routes = engine.generate(RouteRequest(start_location=START, training_goal='intervals'))

    assert len(routes) == 4
    assert engine.weather.rated_goals and set(engine.weather.rated_goals) == {'intervals'}
    assert all(r.wind_factor == 1.1 for r in routes)

    print("✅ Injected weather drives rating and wind factor")


def test_late_workers_skip_elevation():
    """Plans answered after the deadline do not go on to query elevation."""
    print("Testing abandoned workers...")

    matcher = LateMatcher()
    elevation = CountingElevation()
    engine = RouteEngine(
        matcher=matcher,
        elevation_provider=elevation,
        weather=FakeWeather(),
        ride_store=FakeRideStore(),
        config=EngineConfig(call_timeout_seconds=0.2),
        seed=7,
    )

    try:
        routes = engine.generate(RouteRequest(start_location=START))
    finally:
        matcher.release.set()

    assert all(r.pattern == 'mock' for r in routes)

    deadline = time.monotonic() + 3.0
    while matcher.answered < 4 and time.monotonic() < deadline:
        time.sleep(0.02)
    time.sleep(0.2)

    assert matcher.answered == 4
    assert elevation.calls == 0

    print("✅ Late workers stop before the elevation call")


def main():
    """Run engine tests."""
    print("=== Route Engine Tests ===")

    try:
        test_routes_realized_through_providers()
        test_failed_candidate_is_replaced_by_mock()
        test_results_keep_submission_order()
        test_same_seed_same_routes()
        test_timeout_falls_back_to_mocks()
        test_cancel_before_start()
        test_cancel_while_realizing()
        test_invalid_start_returns_empty()
        test_history_adjusts_target_distance()
        test_segment_candidate_is_ranked()
        test_generate_ai_routes_entry_point()
        test_unreadable_history_degrades()
        test_weather_outage_scores_neutrally()
        test_weather_collaborator_rates_routes()
        test_late_workers_skip_elevation()
        print("\n🎉 All engine tests passed!")
        return True
    except Exception as e:
        print(f"\n❌ Test failed: {e}")
        import traceback
        traceback.print_exc()
        return False


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
