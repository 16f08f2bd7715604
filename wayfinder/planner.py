"""Multi-stop route planning against the directions provider."""

import asyncio
import html
import re
from typing import Optional, Sequence

from .config import CONFIG
from .directions import DirectionsClient, DirectionsLeg, DirectionsStep
from .errors import InsufficientWaypoints, InvalidResponse, NoRouteFound
from .logger import Logger
from .models import (
    Coordinates,
    Route,
    RouteInfo,
    RouteSegment,
    RouteStep,
    RouteWaypoint,
    TravelMode,
)
from .polyline import DecodeError, decode

TAG_RE = re.compile(r"<[^>]*>")


def strip_markup(text: str) -> str:
    """Turn provider instruction markup into plain text"""
    text = html.unescape(TAG_RE.sub(" ", text))
    return " ".join(text.split())


class RoutePlanner:
    """Plans optimized routes through a list of stops.

    Args:
        client: DirectionsClient used for every request.
        location_lookup: Anything with get_current_location() returning
            Coordinates or None. Used as the route origin when asked to.
        logger: Logger for progress messages.
    """

    def __init__(self, client: DirectionsClient, location_lookup=None,
                 logger: Optional[Logger] = None):
        self.client = client
        self.location_lookup = location_lookup
        self.logger = logger or Logger()

    def _resolve_user_location(self) -> Optional[Coordinates]:
        if self.location_lookup is None:
            return None
        return self.location_lookup.get_current_location()

    def plan_route(self, waypoints: Sequence[RouteWaypoint],
                   include_user_location: bool = True,
                   travel_mode: TravelMode = TravelMode.WALKING) -> Route:
        """Plan a route visiting every waypoint, letting the provider pick the order.

        The last waypoint is always the destination. The origin is the
        current device location when include_user_location is set and a fix
        is available, otherwise the first waypoint. Stops in between are
        submitted for order optimization.

        Raises:
            InsufficientWaypoints: fewer than two waypoints (no request is made)
            ProviderUnavailable: transport failure or non-success status
            NoRouteFound: success status with no routes
            InvalidResponse: response failed validation
        """
        if len(waypoints) < 2:
            raise InsufficientWaypoints(
                f"Need at least 2 waypoints to create a route, got {len(waypoints)}"
            )

        max_waypoints = CONFIG["max_waypoints"]
        if len(waypoints) > max_waypoints:
            self.logger.warning(f"Provider supports up to {max_waypoints} waypoints, using the first {max_waypoints}",
                                {"requested": len(waypoints)})
            waypoints = waypoints[:max_waypoints]
        waypoints = list(waypoints)

        user_location = None
        if include_user_location:
            user_location = self._resolve_user_location()
            if user_location is None:
                self.logger.log("Could not get user location, starting from first waypoint")

        if user_location is not None:
            origin = user_location
            leading = []
            intermediate = waypoints[:-1]
        else:
            origin = waypoints[0].coordinates
            leading = [waypoints[0]]
            intermediate = waypoints[1:-1]
        destination = waypoints[-1]

        self.logger.log("Requesting route", {
            "waypoints": len(waypoints),
            "intermediate": len(intermediate),
            "mode": travel_mode.value,
        })

        response = self.client.fetch(
            origin,
            destination.coordinates,
            mode=travel_mode,
            waypoints=[w.coordinates for w in intermediate],
            optimize=True,
        )
        if not response.routes:
            raise NoRouteFound("Directions provider returned no routes")

        candidate = response.routes[0]

        try:
            coordinates = tuple(decode(candidate.overview_polyline.points))
        except DecodeError as e:
            raise InvalidResponse(f"Route polyline could not be decoded: {e}") from e

        segments = tuple(self._build_segment(leg) for leg in candidate.legs)
        total_distance = sum(s.distance_meters for s in segments)
        total_duration = sum(s.duration_seconds for s in segments)

        order = candidate.waypoint_order
        if order:
            if sorted(order) != list(range(len(intermediate))):
                raise InvalidResponse(
                    f"Waypoint order {order} does not cover {len(intermediate)} intermediate stops"
                )
            intermediate = [intermediate[i] for i in order]
            self.logger.log("Waypoints optimized by provider", {"order": order})

        route = Route(
            coordinates=coordinates,
            distance_meters=total_distance,
            duration_seconds=total_duration,
            segments=segments,
            waypoints=tuple(leading + intermediate + [destination]),
        )

        self.logger.log(
            f"Route generated: {format_distance(total_distance)}, {format_duration(total_duration)}",
            {"points": len(coordinates), "legs": len(segments)},
        )
        return route

    async def plan_route_async(self, waypoints: Sequence[RouteWaypoint],
                               include_user_location: bool = True,
                               travel_mode: TravelMode = TravelMode.WALKING) -> Route:
        """plan_route in a worker thread, for use from the event loop"""
        return await asyncio.to_thread(
            self.plan_route, waypoints, include_user_location, travel_mode
        )

    def route_info(self, start: Coordinates, end: Coordinates,
                   travel_mode: TravelMode = TravelMode.WALKING) -> RouteInfo:
        """Distance and duration of the direct route between two points"""
        response = self.client.fetch(start, end, mode=travel_mode)
        if not response.routes or not response.routes[0].legs:
            raise NoRouteFound("Directions provider returned no routes")

        leg = response.routes[0].legs[0]
        return RouteInfo(distance_meters=leg.distance.value,
                         duration_seconds=leg.duration.value)

    @staticmethod
    def _build_step(step: DirectionsStep) -> RouteStep:
        return RouteStep(
            distance_meters=step.distance.value,
            duration_seconds=step.duration.value,
            instruction=strip_markup(step.html_instructions),
            maneuver=step.maneuver,
            start_location=step.start_location.to_coordinates() if step.start_location else None,
            end_location=step.end_location.to_coordinates() if step.end_location else None,
        )

    def _build_segment(self, leg: DirectionsLeg) -> RouteSegment:
        return RouteSegment(
            distance_meters=leg.distance.value,
            duration_seconds=leg.duration.value,
            steps=tuple(self._build_step(s) for s in leg.steps),
        )


def format_duration(seconds: float) -> str:
    """Format a duration, e.g. "1 h 30 min" or "45 min" """
    total_minutes = int(seconds / 60 + 0.5)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours} h {minutes} min"
    return f"{minutes} min"


def format_distance(meters: float) -> str:
    """Format a distance, e.g. "500 m" or "2.5 km" """
    if meters < 1000:
        return f"{int(meters + 0.5)} m"
    return f"{meters / 1000:.1f} km"
