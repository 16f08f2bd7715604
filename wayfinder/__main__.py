#!/usr/bin/env python3
"""
Wayfinder - Multi-stop route planning and live navigation

Usage:
    python -m wayfinder STOP STOP [STOP ...] [options]

A STOP is LAT,LNG or LAT,LNG,NAME. The last stop is the destination; the
stops in between are visited in the order the provider finds fastest.

Options:
    --mode MODE         walking, driving or bicycling (default: walking)
    --no-user-location  Start from the first stop instead of the current location
    --html FILE         Write an interactive route map
    --gpx FILE          Export the route to GPX
    --navigate          Follow the route with live GPS
    --playback FILE     Follow the route with a recorded GPS trace (implies --navigate)
    --speed FACTOR      Playback speed multiplier (default: 1.0)
    --record FILE       Record the GPS trace to a JSON file
    --threshold M       Off-route threshold in meters (default: 50)
    --log FILE          Append log lines to FILE
    --session-log FILE  Save the navigation session log as JSON
    --api-key KEY       Directions API key (default: $GOOGLE_MAPS_API_KEY)
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .config import CONFIG
from .directions import DirectionsClient
from .errors import RoutingError
from .geo import nearest_vertex
from .gps import GPS, GPSPlayback, GPSRecorder
from .logger import Logger
from .models import Coordinates, Route, RouteWaypoint, TravelMode
from .planner import RoutePlanner, format_distance, format_duration
from .route_log import NavigationLog, evaluate_log
from .export import save_route_gpx, save_route_html
from .session import NavigationSession


def parse_stop(value: str) -> RouteWaypoint:
    """Parse LAT,LNG[,NAME]"""
    parts = value.split(",", 2)
    if len(parts) < 2:
        raise argparse.ArgumentTypeError(f"expected LAT,LNG[,NAME], got {value!r}")
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid coordinates in {value!r}")
    name = parts[2].strip() if len(parts) == 3 else None
    return RouteWaypoint(Coordinates(lat, lng), name=name or None)


class FixedLocation:
    """Location lookup answering with a fix captured beforehand"""

    def __init__(self, location: Optional[Coordinates]):
        self.location = location

    def get_current_location(self) -> Optional[Coordinates]:
        return self.location


def remaining_waypoints(route: Route, completed_count: int) -> list[RouteWaypoint]:
    """Stops not yet passed, judged by where they sit along the polyline"""
    remaining = []
    for wp in route.waypoints:
        index, _, _ = nearest_vertex(wp.coordinates, route.coordinates)
        if index >= completed_count:
            remaining.append(wp)
    return remaining


def print_route(route: Route):
    print(f"\nRoute: {format_distance(route.distance_meters)}, "
          f"{format_duration(route.duration_seconds)}, {len(route.coordinates)} points")
    print("Stops:")
    for i, wp in enumerate(route.waypoints):
        print(f"  {i + 1}. {wp.name or wp.coordinates.to_param()}")
    for i, segment in enumerate(route.segments):
        print(f"Leg {i + 1}: {format_distance(segment.distance_meters)}, "
              f"{format_duration(segment.duration_seconds)}")
        for step in segment.steps:
            print(f"    {step.instruction} ({format_distance(step.distance_meters)})")


async def navigate(planner: RoutePlanner, source, route: Route, nav_log: NavigationLog,
                   travel_mode: TravelMode, threshold: float, logger: Logger) -> bool:
    """Follow route until the source runs dry. Returns False if permission was refused."""
    session = NavigationSession(source, off_route_threshold=threshold, logger=logger)

    def on_state_change(state):
        nav_log.log_state(state)
        if state.current_location and session.route:
            status = "OFF ROUTE" if state.is_off_route else "on route"
            print(f"  {state.current_location.to_param()} [{status}] "
                  f"{len(state.completed_coordinates)}/{len(session.route.coordinates)}")

    async def on_recalculate():
        current = session.route
        remaining = remaining_waypoints(current, len(session.state.completed_coordinates))
        if len(remaining) < 2:
            logger.warning("Too few stops left to recalculate", {"remaining": len(remaining)})
            return
        # Read session state here on the loop; planning runs in a worker thread
        reroute_planner = RoutePlanner(planner.client, FixedLocation(session.state.current_location),
                                       logger=logger)
        try:
            new_route = await reroute_planner.plan_route_async(
                remaining, include_user_location=True, travel_mode=travel_mode
            )
        except RoutingError as e:
            logger.error("Recalculation failed", {"error": str(e)})
            return
        if session.reroute(new_route):
            nav_log.log_recalculation(new_route)
            print(f"Recalculated: {format_distance(new_route.distance_meters)}, "
                  f"{format_duration(new_route.duration_seconds)}")

    if not await session.start(route, on_state_change, on_recalculate):
        return False

    try:
        while not source.is_finished():
            await asyncio.sleep(0.1)
        await session.wait_idle()
    finally:
        session.stop()
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Wayfinder - Multi-stop route planning and live navigation"
    )
    parser.add_argument("stops", nargs="+", type=parse_stop, metavar="STOP",
                        help="Stop as LAT,LNG[,NAME]; the last stop is the destination")
    parser.add_argument("--mode", choices=[m.value for m in TravelMode],
                        default=CONFIG["default_travel_mode"],
                        help="Travel mode (default: walking)")
    parser.add_argument("--no-user-location", action="store_true",
                        help="Start from the first stop instead of the current location")
    parser.add_argument("--html", metavar="FILE",
                        help="Write an interactive route map to FILE")
    parser.add_argument("--gpx", metavar="FILE",
                        help="Export the route to a GPX file")
    parser.add_argument("--navigate", action="store_true",
                        help="Follow the route with live GPS")
    parser.add_argument("--playback", metavar="FILE",
                        help="Follow the route with a recorded GPS trace")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--record", metavar="FILE",
                        help="Record GPS trace to JSON file")
    parser.add_argument("--threshold", type=float, default=CONFIG["off_route_threshold"],
                        help="Off-route threshold in meters (default: 50)")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path")
    parser.add_argument("--session-log", metavar="FILE",
                        help="Save the navigation session log as JSON")
    parser.add_argument("--api-key", metavar="KEY",
                        help=f"Directions API key (default: ${CONFIG['api_key_env']})")

    args = parser.parse_args()

    if args.playback and not Path(args.playback).exists():
        print(f"Playback file not found: {args.playback}")
        sys.exit(1)

    load_dotenv()

    try:
        client = DirectionsClient(api_key=args.api_key)
    except ValueError as e:
        print(e)
        sys.exit(1)

    logger = Logger(args.log)

    source = GPSPlayback(args.playback, args.speed) if args.playback else GPS()
    if args.record:
        source = GPSRecorder(source, args.record)

    travel_mode = TravelMode(args.mode)
    planner = RoutePlanner(client, source, logger=logger)
    try:
        route = planner.plan_route(args.stops,
                                   include_user_location=not args.no_user_location,
                                   travel_mode=travel_mode)
    except RoutingError as e:
        logger.error("Route planning failed", {"error": str(e)})
        print(f"Could not plan route: {e}")
        logger.close()
        sys.exit(1)

    print_route(route)

    if args.html:
        save_route_html(route, args.html)
        print(f"\nRoute map saved to: {args.html}")
    if args.gpx:
        save_route_gpx(route, args.gpx)
        print(f"GPX route saved to: {args.gpx}")

    if not (args.navigate or args.playback):
        logger.close()
        return

    print("\n=== Navigating === (Ctrl+C to stop)")
    nav_log = NavigationLog(route, travel_mode=travel_mode.value)
    try:
        started = asyncio.run(navigate(planner, source, route, nav_log, travel_mode,
                                       args.threshold, logger))
        if not started:
            print("Location permission denied")
    except KeyboardInterrupt:
        print("\nNavigation interrupted")
        logger.log("Navigation interrupted by user")
    finally:
        if isinstance(source, GPSRecorder):
            source.save()
            print(f"GPS trace saved to {source.record_path} ({len(source.trace)} entries)")

        if args.session_log:
            nav_log.save(args.session_log)
            print(f"Session log saved to {args.session_log}")

        summary = evaluate_log(nav_log.data)
        logger.log("Navigation summary", summary)
        print("\nNavigation summary:")
        print(f"  Samples: {summary['samples']}")
        print(f"  Off-route episodes: {summary['off_route_episodes']}")
        print(f"  Recalculations: {summary['recalculations']}")
        print(f"  Progress: {summary['final_progress'] * 100:.0f}%")
        logger.close()


if __name__ == "__main__":
    main()
