"""Routing errors raised by the planner and the directions client."""

from typing import Optional


class RoutingError(Exception):
    """Base class for every route planning failure."""


class InsufficientWaypoints(RoutingError):
    """Fewer than two waypoints were supplied."""


class ProviderUnavailable(RoutingError):
    """Transport failure or a non-success status from the directions provider."""

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class NoRouteFound(RoutingError):
    """The provider answered successfully but returned no usable route."""


class InvalidResponse(RoutingError):
    """The provider response did not match the expected schema."""
