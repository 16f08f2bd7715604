"""Shared builders for the test suite."""

from wayfinder import Coordinates, Logger, Route, RouteWaypoint
from wayfinder.directions import DirectionsResponse

REFERENCE_POLYLINE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"
REFERENCE_COORDINATES = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]


def quiet_logger(messages=None) -> Logger:
    """Logger that prints nothing; collects (message, data) pairs if given a list"""
    callback = (lambda message, data: messages.append((message, data))) if messages is not None else None
    return Logger(echo=False, callback=callback)


def make_waypoints(count: int) -> list[RouteWaypoint]:
    return [
        RouteWaypoint(Coordinates(59.30 + i * 0.001, 18.05 + i * 0.001), name=f"Stop {i}", external_id=f"seller-{i}")
        for i in range(count)
    ]


def straight_route(points: int = 11, step: float = 0.0005) -> Route:
    """Route heading due north from (59.0, 18.0), roughly 55 m between points"""
    coordinates = tuple(Coordinates(59.0 + i * step, 18.0) for i in range(points))
    return Route(
        coordinates=coordinates,
        distance_meters=int((points - 1) * 55.6),
        duration_seconds=(points - 1) * 40,
        waypoints=(RouteWaypoint(coordinates[0], name="Start"),
                   RouteWaypoint(coordinates[-1], name="End")),
    )


def make_leg(distance: int, duration: int, steps=None) -> dict:
    if steps is None:
        steps = [{
            "distance": {"text": f"{distance} m", "value": distance},
            "duration": {"text": "1 min", "value": duration},
            "html_instructions": "Head <b>north</b> on <b>Main St</b>",
            "start_location": {"lat": 59.0, "lng": 18.0},
            "end_location": {"lat": 59.001, "lng": 18.0},
        }]
    return {
        "distance": {"text": f"{distance} m", "value": distance},
        "duration": {"text": "1 min", "value": duration},
        "steps": steps,
    }


def make_payload(legs=None, waypoint_order=None, status="OK", points=REFERENCE_POLYLINE,
                 routes=True) -> dict:
    if legs is None:
        legs = [make_leg(1200, 900), make_leg(800, 600)]
    route = {
        "legs": legs,
        "overview_polyline": {"points": points},
        "summary": "Main St",
    }
    if waypoint_order is not None:
        route["waypoint_order"] = waypoint_order
    return {
        "status": status,
        "routes": [route] if routes else [],
        "geocoded_waypoints": [],
    }


class FakeDirectionsClient:
    """Stands in for DirectionsClient, returning a canned payload"""

    def __init__(self, payload: dict):
        self.payload = payload
        self.calls = []

    def fetch(self, origin, destination, mode=None, waypoints=(), optimize=True):
        self.calls.append({
            "origin": origin,
            "destination": destination,
            "mode": mode,
            "waypoints": list(waypoints),
            "optimize": optimize,
        })
        return DirectionsResponse.model_validate(self.payload)


class FakeLocationLookup:
    def __init__(self, location=None):
        self.location = location
        self.calls = 0

    def get_current_location(self):
        self.calls += 1
        return self.location
