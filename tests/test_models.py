"""
Tests for data classes.
"""

import dataclasses
import unittest

from wayfinder import (
    Coordinates,
    NavigationState,
    Route,
    RouteSegment,
    RouteStep,
    RouteWaypoint,
    TravelMode,
)


class TestModels(unittest.TestCase):

    def test_coordinates_param(self):
        self.assertEqual(Coordinates(59.3293, -18.5).to_param(), "59.3293,-18.5")

    def test_travel_mode_values(self):
        self.assertEqual([m.value for m in TravelMode], ["walking", "driving", "bicycling"])

    def test_route_serialization(self):
        route = Route(
            coordinates=(Coordinates(1.0, 2.0), Coordinates(1.5, 2.5)),
            distance_meters=120,
            duration_seconds=90,
            segments=(RouteSegment(120, 90, steps=(
                RouteStep(120, 90, "Head north", maneuver="straight",
                          start_location=Coordinates(1.0, 2.0)),
            )),),
            waypoints=(RouteWaypoint(Coordinates(1.0, 2.0), name="A", external_id="x-1"),
                       RouteWaypoint(Coordinates(1.5, 2.5))),
        )
        data = route.to_dict()
        self.assertEqual(data["segments"][0]["steps"][0]["end_location"], None)
        self.assertEqual(data["waypoints"][0]["external_id"], "x-1")
        self.assertEqual(Route.from_dict(data), route)

    def test_state_is_frozen(self):
        state = NavigationState()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            state.is_off_route = True

    def test_state_to_dict(self):
        state = NavigationState(is_navigating=True, current_location=Coordinates(1, 2),
                                completed_coordinates=(Coordinates(1, 2),))
        self.assertEqual(state.to_dict(), {
            "is_navigating": True,
            "current_location": {"lat": 1, "lng": 2},
            "is_off_route": False,
            "completed_coordinates": [{"lat": 1, "lng": 2}],
        })


if __name__ == "__main__":
    unittest.main()
