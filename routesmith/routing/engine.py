"""
Route synthesis engine.

Plans candidate geometry, realizes every plan concurrently through the
map-matching and elevation providers, and ranks the results. A plan whose
provider calls fail or time out is replaced by its mock route; the request
as a whole only fails when the caller cancels it.
"""

import math
import random
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, FIRST_COMPLETED, wait
from typing import List, Optional

from ..config.config import get_config, EngineConfig
from ..config.logging_config import get_logger, log_execution_time, log_function_entry, log_function_exit
from ..exceptions import CollaboratorError, InvalidCoordinatesError, RouteGenerationCancelled
from ..processing.models import RidingPatternProfile, RouteCandidate, RouteRequest, ScoredRoute, validate_coordinate
from ..processing.ride_patterns import analyze_riding_patterns
from ..services.elevation import ElevationProvider, calculate_elevation_stats
from ..services.map_matching import MapboxRouteMatcher
from ..services.ride_store import LocalRideStore
from ..services.weather import NEUTRAL_WIND_FACTOR, WeatherAnalyzer, WeatherConditions
from .candidate_generator import RouteCandidateGenerator, WaypointPlan, calculate_difficulty
from .route_scorer import RouteScorer
from .suggestions import calculate_target_distance, generate_route_from_patterns


logger = get_logger(__name__)

ROUTING_PROFILE = 'cycling'
MIN_MATCH_CONFIDENCE = 0.5
POLL_INTERVAL_SECONDS = 0.05


class RouteEngine:
    """Generates ranked routes for a request using injected collaborators."""

    def __init__(self, matcher=None, elevation_provider=None, weather=None, ride_store=None,
                 config: EngineConfig = None, seed: Optional[int] = None):
        """
        Initialize the engine.

        Collaborators default to the live service clients. Any object with
        the same methods can be injected instead.

        Args:
            matcher: Object with match(waypoints, profile)
            elevation_provider: Object with sample(coordinates)
            weather: Object with get_current_conditions(lat, lon),
                training_conditions_score(conditions, goal) and
                calculate_wind_factor(coordinates, conditions), e.g. a WeatherAnalyzer
            ride_store: Object with fetch(user_id, limit)
            config: Engine configuration (defaults to the global config)
            seed: Seed for waypoint jitter (defaults to ROUTE_RANDOM_SEED)
        """
        self.config = config or get_config().engine

        self.matcher = matcher or MapboxRouteMatcher()
        self.elevation_provider = elevation_provider or ElevationProvider()
        self.weather = weather or WeatherAnalyzer()
        self.ride_store = ride_store or LocalRideStore()

        seed = seed if seed is not None else self.config.random_seed
        self.generator = RouteCandidateGenerator(random.Random(seed))

    def load_profile(self, user_id: Optional[str]) -> Optional[RidingPatternProfile]:
        """
        Riding profile from the user's stored history.

        Returns None without a user, or when the history cannot be read or
        analyzed; routes are then planned without pattern hints.
        """
        if not user_id:
            return None
        try:
            rides = self.ride_store.fetch(user_id, self.config.history_limit)
            logger.info(f"Analyzing {len(rides)} past rides for user {user_id}")
            return analyze_riding_patterns(rides)
        except Exception as e:
            logger.warning(f"Ride history for {user_id} unavailable ({type(e).__name__}: {e}) - continuing without patterns")
            return None

    def _fetch_conditions(self, lat: float, lon: float) -> Optional[WeatherConditions]:
        try:
            return self.weather.get_current_conditions(lat, lon)
        except Exception as e:
            logger.warning(f"Weather unavailable ({type(e).__name__}: {e}) - scoring without conditions")
            return None

    def _conditions_rating(self, conditions: Optional[WeatherConditions], training_goal: str) -> Optional[float]:
        try:
            return self.weather.training_conditions_score(conditions, training_goal)
        except Exception as e:
            logger.warning(f"Weather rating failed ({type(e).__name__}: {e}) - treating as neutral")
            return None

    def generate(self, request: RouteRequest, profile: Optional[RidingPatternProfile] = None,
                 cancel_event: Optional[threading.Event] = None) -> List[ScoredRoute]:
        """
        Generate and rank routes for a request.

        Args:
            request: Route request
            profile: Riding profile to use instead of loading the user's history
            cancel_event: Set by the caller to abandon the request

        Returns:
            Up to top_k ScoredRoutes, best first; empty for an invalid start

        Raises:
            RouteGenerationCancelled: if cancel_event is set before ranking
        """
        log_function_entry(logger, "generate", goal=request.training_goal, shape=request.route_shape,
                           minutes=request.time_available_minutes)

        start = tuple(request.start_location)
        try:
            validate_coordinate(start[1], start[0])
        except (InvalidCoordinatesError, TypeError, IndexError) as e:
            logger.error(f"Invalid start location {request.start_location!r}: {e}")
            return []

        self._check_cancelled(cancel_event)

        if profile is None:
            profile = self.load_profile(request.user_id)

        baseline = request.target_distance_km or calculate_target_distance(
            request.time_available_minutes, request.training_goal
        )
        suggestions = None
        target_distance = baseline
        if profile is not None:
            suggestions = generate_route_from_patterns(profile, start, baseline, request.training_goal)
            target_distance = suggestions.adjusted_distance_km
            if target_distance != baseline:
                logger.info(f"Adjusted target distance from {baseline:.1f}km to {target_distance:.1f}km "
                            f"based on riding patterns")

        plans = self.generator.plan_routes(start, target_distance, request.training_goal,
                                           request.route_shape, suggestions)
        segment_route = self.generator.build_route_from_segments(profile, start, target_distance,
                                                                 request.training_goal)

        conditions = self._fetch_conditions(start[1], start[0])
        self._check_cancelled(cancel_event)

        candidates = self._realize_all(plans, segment_route, cancel_event)
        candidates = [self._apply_wind(c, conditions) for c in candidates]

        self._check_cancelled(cancel_event)

        scorer = RouteScorer(request.training_goal, request.time_available_minutes,
                             conditions=conditions, profile=profile, top_k=self.config.top_k,
                             conditions_rating=self._conditions_rating)
        ranked = scorer.rank(candidates)

        log_function_exit(logger, "generate", f"{len(ranked)} routes")
        return ranked

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            raise RouteGenerationCancelled("Route generation cancelled by caller")

    def _realize_all(self, plans: List[WaypointPlan], segment_route: Optional[RouteCandidate],
                     cancel_event: Optional[threading.Event]) -> List[RouteCandidate]:
        """
        Realize plans (and the segment route) concurrently.

        Results come back in submission order whatever order the calls
        finish in. The batch may take call_timeout_seconds per wave of
        workers; anything unfinished by then falls back.
        """
        task_count = len(plans) + (1 if segment_route is not None else 0)
        if task_count == 0:
            return []

        workers = max(1, min(task_count, self.config.max_workers))
        waves = math.ceil(task_count / workers)
        deadline = time.monotonic() + self.config.call_timeout_seconds * waves

        # Set once results are collected so late workers skip their remaining provider calls
        abandoned = threading.Event()
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix='routesmith')
        futures: List[Future] = []
        try:
            for plan in plans:
                futures.append(executor.submit(self._realize_plan, plan, cancel_event, abandoned))
            if segment_route is not None:
                futures.append(executor.submit(self._add_elevation, segment_route, abandoned))

            pending = set(futures)
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    for future in futures:
                        future.cancel()
                    raise RouteGenerationCancelled("Route generation cancelled by caller")

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning(f"{len(pending)} provider calls timed out")
                    break
                _, pending = wait(pending, timeout=min(remaining, POLL_INTERVAL_SECONDS),
                                  return_when=FIRST_COMPLETED)

            candidates = []
            for index, future in enumerate(futures):
                if index < len(plans):
                    candidates.append(self._plan_result(plans[index], future))
                else:
                    candidates.append(self._segment_result(segment_route, future))
            return candidates

        finally:
            abandoned.set()
            executor.shutdown(wait=False, cancel_futures=True)

    def _plan_result(self, plan: WaypointPlan, future: Future) -> RouteCandidate:
        if not future.done():
            future.cancel()
            logger.warning(f"Route {plan.name} timed out - using mock route")
            return self.generator.mock_for(plan)

        error = future.exception()
        if error is None:
            return future.result()
        if isinstance(error, InvalidCoordinatesError):
            raise error

        logger.warning(f"Route {plan.name} failed ({error}) - using mock route")
        return self.generator.mock_for(plan)

    @staticmethod
    def _segment_result(route: RouteCandidate, future: Future) -> RouteCandidate:
        if future.done() and future.exception() is None:
            return future.result()
        future.cancel()
        logger.warning(f"Elevation for {route.name} unavailable - keeping route without climbing data")
        return route

    def _realize_plan(self, plan: WaypointPlan, cancel_event: Optional[threading.Event],
                      abandoned: threading.Event) -> RouteCandidate:
        """Snap one plan to roads and measure its climbing. Runs on a worker thread."""
        match = self.matcher.match(list(plan.waypoints), ROUTING_PROFILE)

        coordinates = list(match.coordinates or ())
        if len(coordinates) < 2 or match.confidence < MIN_MATCH_CONFIDENCE:
            raise CollaboratorError(
                f"Unusable match for {plan.name}: {len(coordinates)} points, confidence {match.confidence}"
            )

        self._check_cancelled(cancel_event)
        if abandoned.is_set():
            raise CollaboratorError(f"{plan.name} finished after its request was answered")

        elevation_profile = self.elevation_provider.sample(coordinates) or []
        stats = calculate_elevation_stats(elevation_profile)
        return self.generator.realize(plan, coordinates, match.distance_m, match.confidence,
                                      elevation_profile, stats)

    def _add_elevation(self, route: RouteCandidate, abandoned: threading.Event) -> RouteCandidate:
        if abandoned.is_set():
            return route

        elevation_profile = self.elevation_provider.sample(list(route.coordinates)) or []
        if not elevation_profile:
            return route

        stats = calculate_elevation_stats(elevation_profile)
        return route.with_updates(
            elevation_gain_m=stats['gain'],
            elevation_loss_m=stats['loss'],
            difficulty=calculate_difficulty(route.distance_km, stats['gain']),
            elevation_profile=tuple(elevation_profile),
        )

    def _apply_wind(self, route: RouteCandidate, conditions: Optional[WeatherConditions]) -> RouteCandidate:
        if route.pattern == 'mock':
            return route
        try:
            wind_factor = self.weather.calculate_wind_factor(route.coordinates, conditions)
        except Exception as e:
            logger.warning(f"Wind factor for {route.name} failed ({type(e).__name__}: {e})")
            wind_factor = NEUTRAL_WIND_FACTOR
        return route.with_updates(wind_factor=wind_factor)


@log_execution_time()
def generate_ai_routes(request: RouteRequest, profile: Optional[RidingPatternProfile] = None,
                       engine: Optional[RouteEngine] = None,
                       cancel_event: Optional[threading.Event] = None,
                       **collaborators) -> List[ScoredRoute]:
    """
    Generate ranked route suggestions.

    Args:
        request: Route request
        profile: Precomputed riding profile (skips the ride store)
        engine: Engine to use; built from collaborators when omitted
        cancel_event: Set by the caller to abandon the request
        **collaborators: RouteEngine keyword arguments

    Returns:
        Up to four ScoredRoutes, best first
    """
    engine = engine or RouteEngine(**collaborators)
    return engine.generate(request, profile=profile, cancel_event=cancel_event)
