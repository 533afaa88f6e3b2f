#!/usr/bin/env python3
"""
RouteSmith - Command line entry point

Analyzes a rider's stored history and generates ranked route suggestions:
- Riding pattern profile from local ride files
- Loop / out-and-back candidates snapped to roads
- Weather-aware scoring

Usage:
    python main.py --user rider1 --analyze-only
    python main.py --lat 37.77 --lon -122.42 --minutes 90 --goal hills --shape loop
    python main.py --user rider1 --lat 37.77 --lon -122.42 --seed 7 --imperial
"""

import argparse
import json
import sys

from routesmith.config.config import get_config
from routesmith.config.logging_config import setup_logging, get_logger
from routesmith.exceptions import RouteSmithError
from routesmith.processing.models import RouteRequest, ROUTE_SHAPES, TRAINING_GOALS
from routesmith.processing.ride_patterns import analyze_riding_patterns
from routesmith.routing.engine import RouteEngine, generate_ai_routes
from routesmith.services.ride_store import LocalRideStore
from routesmith.utils.units import UnitFormatter

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RouteSmith route generation")
    parser.add_argument('--user', help='User whose ride history to analyze')
    parser.add_argument('--lat', type=float, help='Start latitude')
    parser.add_argument('--lon', type=float, help='Start longitude')
    parser.add_argument('--minutes', type=float, default=60.0,
                        help='Time available in minutes (default: 60)')
    parser.add_argument('--goal', choices=TRAINING_GOALS, default='endurance',
                        help='Training goal')
    parser.add_argument('--shape', choices=ROUTE_SHAPES, default='loop',
                        help='Route shape')
    parser.add_argument('--seed', type=int, help='Seed for reproducible waypoint geometry')
    parser.add_argument('--analyze-only', action='store_true',
                        help='Print the riding pattern profile and stop')
    parser.add_argument('--imperial', action='store_true',
                        help='Add miles / feet display values to each route')
    parser.add_argument('--log-level', default='WARNING',
                        help='Logging level (default: WARNING)')
    return parser


def main(argv=None) -> int:
    """Main function."""
    args = build_parser().parse_args(argv)

    config = get_config()
    setup_logging(args.log_level, log_to_file=config.app.log_to_file)

    try:
        store = LocalRideStore(config.app.data_directory)

        if args.analyze_only:
            if not args.user:
                print("--analyze-only requires --user", file=sys.stderr)
                return 2
            rides = store.fetch(args.user, config.engine.history_limit)
            profile = analyze_riding_patterns(rides)
            print(json.dumps(profile.to_dict(), indent=2))
            return 0

        if args.lat is None or args.lon is None:
            print("--lat and --lon are required to generate routes", file=sys.stderr)
            return 2

        request = RouteRequest(
            start_location=(args.lon, args.lat),
            time_available_minutes=args.minutes,
            training_goal=args.goal,
            route_shape=args.shape,
            user_id=args.user,
        )
        engine = RouteEngine(ride_store=store, seed=args.seed)
        routes = generate_ai_routes(request, engine=engine)

        formatter = UnitFormatter(imperial=args.imperial)
        output = [formatter.route_summary(route.to_dict()) for route in routes]
        print(json.dumps(output, indent=2))

    except RouteSmithError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(f"Route generation error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
