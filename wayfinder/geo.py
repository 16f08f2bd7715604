"""Geographic utility functions."""

import math
from typing import Sequence

from .models import Coordinates

EARTH_RADIUS_M = 6371000  # mean Earth radius in meters


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters using Haversine formula"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    a = min(1.0, a)  # rounding overshoots near antipodal points
    c =2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance_meters(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two coordinates in meters"""
    return haversine_distance(a.lat, a.lng, b.lat, b.lng)


def nearest_vertex(location: Coordinates,
                   path: Sequence[Coordinates]) -> tuple[int, Coordinates, float]:
    """Find the path vertex closest to location.

    Linear scan; on equal distances the lowest index wins.

    Returns:
        (index, vertex, distance in meters)

    Raises:
        ValueError: if path is empty
    """
    if not path:
        raise ValueError("Cannot search an empty path")

    best_index = 0
    best_distance = distance_meters(location, path[0])
    for i in range(1, len(path)):
        d = distance_meters(location, path[i])
        if d < best_distance:
            best_index = i
            best_distance = d

    return best_index, path[best_index], best_distance


def path_length(path: Sequence[Coordinates]) -> float:
    """Total length of a polyline in meters"""
    return sum(distance_meters(path[i], path[i + 1]) for i in range(len(path) - 1))
