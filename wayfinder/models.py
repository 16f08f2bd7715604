"""Data classes for Wayfinder."""

from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Optional


class TravelMode(Enum):
    """Travel modes understood by the directions provider."""
    WALKING = "walking"
    DRIVING = "driving"
    CYCLING = "bicycling"


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def to_param(self) -> str:
        """Format as the provider's "lat,lng" query value"""
        return f"{self.lat},{self.lng}"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Coordinates":
        return cls(lat=d["lat"], lng=d["lng"])


@dataclass(frozen=True)
class RouteWaypoint:
    """A stop the route must visit"""
    coordinates: Coordinates
    name: Optional[str] = None
    external_id: Optional[str] = None  # links back to the caller's own entity

    def to_dict(self) -> dict:
        return {
            "coordinates": self.coordinates.to_dict(),
            "name": self.name,
            "external_id": self.external_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "RouteWaypoint":
        return cls(
            coordinates=Coordinates.from_dict(d["coordinates"]),
            name=d.get("name"),
            external_id=d.get("external_id"),
        )


@dataclass(frozen=True)
class RouteStep:
    """A single turn-by-turn instruction"""
    distance_meters: int
    duration_seconds: int
    instruction: str  # plain text, markup stripped
    maneuver: Optional[str] = None
    start_location: Optional[Coordinates] = None
    end_location: Optional[Coordinates] = None

    def to_dict(self) -> dict:
        return {
            "distance_meters": self.distance_meters,
            "duration_seconds": self.duration_seconds,
            "instruction": self.instruction,
            "maneuver": self.maneuver,
            "start_location": self.start_location.to_dict() if self.start_location else None,
            "end_location": self.end_location.to_dict() if self.end_location else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "RouteStep":
        start = d.get("start_location")
        end = d.get("end_location")
        return cls(
            distance_meters=d["distance_meters"],
            duration_seconds=d["duration_seconds"],
            instruction=d["instruction"],
            maneuver=d.get("maneuver"),
            start_location=Coordinates.from_dict(start) if start else None,
            end_location=Coordinates.from_dict(end) if end else None,
        )


@dataclass(frozen=True)
class RouteSegment:
    """One leg between two consecutive stops"""
    distance_meters: int
    duration_seconds: int
    steps: tuple[RouteStep, ...] = ()

    def to_dict(self) -> dict:
        return {
            "distance_meters": self.distance_meters,
            "duration_seconds": self.duration_seconds,
            "steps": [s.to_dict() for s in self.steps],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "RouteSegment":
        return cls(
            distance_meters=d["distance_meters"],
            duration_seconds=d["duration_seconds"],
            steps=tuple(RouteStep.from_dict(s) for s in d.get("steps", [])),
        )


@dataclass(frozen=True)
class Route:
    """A planned route.

    ``coordinates`` is the dense decoded polyline, not just the stops.
    ``waypoints`` are in visiting order, which may differ from the order
    they were requested in when the provider optimized them.
    """
    coordinates: tuple[Coordinates, ...]
    distance_meters: int
    duration_seconds: int
    segments: tuple[RouteSegment, ...] = ()
    waypoints: tuple[RouteWaypoint, ...] = ()

    def to_dict(self) -> dict:
        return {
            "coordinates": [c.to_dict() for c in self.coordinates],
            "distance_meters": self.distance_meters,
            "duration_seconds": self.duration_seconds,
            "segments": [s.to_dict() for s in self.segments],
            "waypoints": [w.to_dict() for w in self.waypoints],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Route":
        return cls(
            coordinates=tuple(Coordinates.from_dict(c) for c in d["coordinates"]),
            distance_meters=d["distance_meters"],
            duration_seconds=d["duration_seconds"],
            segments=tuple(RouteSegment.from_dict(s) for s in d.get("segments", [])),
            waypoints=tuple(RouteWaypoint.from_dict(w) for w in d.get("waypoints", [])),
        )


@dataclass(frozen=True)
class RouteInfo:
    distance_meters: int
    duration_seconds: int


@dataclass(frozen=True)
class NavigationState:
    """Snapshot handed to the caller after every processed sample"""
    is_navigating: bool = False
    current_location: Optional[Coordinates] = None
    is_off_route: bool = False
    completed_coordinates: tuple[Coordinates, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "is_navigating": self.is_navigating,
            "current_location": self.current_location.to_dict() if self.current_location else None,
            "is_off_route": self.is_off_route,
            "completed_coordinates": [c.to_dict() for c in self.completed_coordinates],
        }
