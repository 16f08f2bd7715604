"""Wayfinder - Multi-stop route planning and live navigation."""

from .config import CONFIG
from .models import (
    Coordinates,
    TravelMode,
    RouteWaypoint,
    RouteStep,
    RouteSegment,
    Route,
    RouteInfo,
    NavigationState,
)
from .errors import (
    RoutingError,
    InsufficientWaypoints,
    ProviderUnavailable,
    NoRouteFound,
    InvalidResponse,
)
from .logger import Logger
from .geo import haversine_distance, distance_meters, nearest_vertex, path_length
from .polyline import decode, DecodeError
from .directions import DirectionsClient, DirectionsResponse
from .planner import RoutePlanner, format_duration, format_distance
from .gps import GPS, GPSRecorder, GPSPlayback, Subscription
from .session import NavigationSession
from .route_log import NavigationLog, evaluate_log
from .export import build_route_map, save_route_html, build_gpx, save_route_gpx

__all__ = [
    "CONFIG",
    "Coordinates",
    "TravelMode",
    "RouteWaypoint",
    "RouteStep",
    "RouteSegment",
    "Route",
    "RouteInfo",
    "NavigationState",
    "RoutingError",
    "InsufficientWaypoints",
    "ProviderUnavailable",
    "NoRouteFound",
    "InvalidResponse",
    "Logger",
    "haversine_distance",
    "distance_meters",
    "nearest_vertex",
    "path_length",
    "decode",
    "DecodeError",
    "DirectionsClient",
    "DirectionsResponse",
    "RoutePlanner",
    "format_duration",
    "format_distance",
    "GPS",
    "GPSRecorder",
    "GPSPlayback",
    "Subscription",
    "NavigationSession",
    "NavigationLog",
    "evaluate_log",
    "build_route_map",
    "save_route_html",
    "build_gpx",
    "save_route_gpx",
]
