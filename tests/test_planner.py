"""
Tests for route planning.
"""

import asyncio
import unittest
from unittest.mock import MagicMock, patch

from wayfinder import (
    Coordinates,
    InsufficientWaypoints,
    InvalidResponse,
    NoRouteFound,
    ProviderUnavailable,
    RoutePlanner,
    TravelMode,
    format_distance,
    format_duration,
)
from wayfinder.directions import DirectionsClient
from wayfinder.planner import strip_markup

from helpers import (
    REFERENCE_COORDINATES,
    FakeDirectionsClient,
    FakeLocationLookup,
    make_leg,
    make_payload,
    make_waypoints,
    quiet_logger,
)

USER_LOCATION = Coordinates(59.2900, 18.0400)


class TestPlanRoute(unittest.TestCase):

    def planner(self, payload=None, location=None, messages=None):
        self.client = FakeDirectionsClient(payload or make_payload())
        self.lookup = FakeLocationLookup(location)
        return RoutePlanner(self.client, self.lookup, logger=quiet_logger(messages))

    @patch("wayfinder.directions.requests.get")
    def test_too_few_waypoints_makes_no_request(self, mock_get):
        planner = RoutePlanner(DirectionsClient(api_key="k"), logger=quiet_logger())
        for count in (0, 1):
            with self.assertRaises(InsufficientWaypoints):
                planner.plan_route(make_waypoints(count))
        mock_get.assert_not_called()

    def test_decodes_polyline_and_sums_legs(self):
        route = self.planner().plan_route(make_waypoints(3), include_user_location=False)

        self.assertEqual(len(route.coordinates), 3)
        for point, (lat, lng) in zip(route.coordinates, REFERENCE_COORDINATES):
            self.assertAlmostEqual(point.lat, lat, places=5)
            self.assertAlmostEqual(point.lng, lng, places=5)
        self.assertEqual(route.distance_meters, 2000)
        self.assertEqual(route.duration_seconds, 1500)
        self.assertEqual(len(route.segments), 2)
        self.assertEqual(route.segments[0].distance_meters, 1200)

    def test_steps_are_plain_text(self):
        route = self.planner().plan_route(make_waypoints(3), include_user_location=False)
        step = route.segments[0].steps[0]
        self.assertEqual(step.instruction, "Head north on Main St")
        self.assertIsNone(step.maneuver)
        self.assertEqual(step.start_location, Coordinates(59.0, 18.0))
        self.assertEqual(step.end_location, Coordinates(59.001, 18.0))

    def test_first_waypoint_is_origin_without_user_location(self):
        waypoints = make_waypoints(4)
        route = self.planner(location=USER_LOCATION).plan_route(waypoints, include_user_location=False)

        call = self.client.calls[0]
        self.assertEqual(call["origin"], waypoints[0].coordinates)
        self.assertEqual(call["destination"], waypoints[-1].coordinates)
        self.assertEqual(call["waypoints"], [w.coordinates for w in waypoints[1:-1]])
        self.assertTrue(call["optimize"])
        self.assertEqual(self.lookup.calls, 0)
        self.assertEqual(list(route.waypoints), waypoints)

    def test_user_location_is_origin(self):
        waypoints = make_waypoints(3)
        route = self.planner(location=USER_LOCATION).plan_route(waypoints)

        call = self.client.calls[0]
        self.assertEqual(call["origin"], USER_LOCATION)
        self.assertEqual(call["waypoints"], [w.coordinates for w in waypoints[:-1]])
        self.assertEqual(list(route.waypoints), waypoints)

    def test_missing_user_location_falls_back(self):
        messages = []
        waypoints = make_waypoints(3)
        self.planner(location=None, messages=messages).plan_route(waypoints)

        call = self.client.calls[0]
        self.assertEqual(self.lookup.calls, 1)
        self.assertEqual(call["origin"], waypoints[0].coordinates)
        self.assertEqual(call["waypoints"], [waypoints[1].coordinates])
        self.assertTrue(any("user location" in m for m, _ in messages))

    def test_truncates_to_provider_limit(self):
        messages = []
        waypoints = make_waypoints(30)
        route = self.planner(messages=messages).plan_route(waypoints, include_user_location=False)

        call = self.client.calls[0]
        self.assertEqual(call["destination"], waypoints[24].coordinates)
        self.assertEqual(call["waypoints"], [w.coordinates for w in waypoints[1:24]])
        self.assertEqual(list(route.waypoints), waypoints[:25])
        self.assertTrue(any(data and data.get("requested") == 30 for _, data in messages))

    @patch("wayfinder.directions.requests.get")
    def test_truncated_request_parameters(self, mock_get):
        response = MagicMock()
        response.json.return_value = make_payload()
        mock_get.return_value = response
        waypoints = make_waypoints(30)

        planner = RoutePlanner(DirectionsClient(api_key="k"), logger=quiet_logger())
        planner.plan_route(waypoints, include_user_location=False)

        params = mock_get.call_args.kwargs["params"]
        expected = "|".join(w.coordinates.to_param() for w in waypoints[1:24])
        self.assertEqual(params["waypoints"], f"optimize:true|{expected}")
        self.assertEqual(params["destination"], waypoints[24].coordinates.to_param())

    def test_applies_waypoint_order(self):
        a, b, c, d, e = make_waypoints(5)
        planner = self.planner(make_payload(waypoint_order=[2, 0, 1]))
        route = planner.plan_route([a, b, c, d, e], include_user_location=False)
        self.assertEqual(list(route.waypoints), [a, d, b, c, e])

    def test_applies_waypoint_order_with_user_location(self):
        a, b, c = make_waypoints(3)
        planner = self.planner(make_payload(waypoint_order=[1, 0]), location=USER_LOCATION)
        route = planner.plan_route([a, b, c])
        self.assertEqual(list(route.waypoints), [b, a, c])

    def test_rejects_bad_waypoint_order(self):
        planner = self.planner(make_payload(waypoint_order=[0, 0, 5]))
        with self.assertRaises(InvalidResponse):
            planner.plan_route(make_waypoints(5), include_user_location=False)

    def test_no_routes(self):
        planner = self.planner(make_payload(routes=False))
        with self.assertRaises(NoRouteFound):
            planner.plan_route(make_waypoints(2), include_user_location=False)

    def test_undecodable_polyline(self):
        planner = self.planner(make_payload(points="_p~i"))
        with self.assertRaises(InvalidResponse):
            planner.plan_route(make_waypoints(2), include_user_location=False)

    @patch("wayfinder.directions.requests.get")
    def test_provider_status_failure(self, mock_get):
        response = MagicMock()
        response.json.return_value = make_payload(status="OVER_QUERY_LIMIT", routes=False)
        mock_get.return_value = response

        planner = RoutePlanner(DirectionsClient(api_key="k"), logger=quiet_logger())
        with self.assertRaises(ProviderUnavailable) as ctx:
            planner.plan_route(make_waypoints(2), include_user_location=False)
        self.assertEqual(ctx.exception.status, "OVER_QUERY_LIMIT")

    def test_travel_mode_is_forwarded(self):
        self.planner().plan_route(make_waypoints(2), include_user_location=False,
                                  travel_mode=TravelMode.CYCLING)
        self.assertEqual(self.client.calls[0]["mode"], TravelMode.CYCLING)

    def test_plan_route_async(self):
        planner = self.planner()
        route = asyncio.run(planner.plan_route_async(make_waypoints(3), include_user_location=False))
        self.assertEqual(route.distance_meters, 2000)


class TestRouteInfo(unittest.TestCase):

    def test_first_leg_values(self):
        client = FakeDirectionsClient(make_payload(legs=[make_leg(4321, 987)]))
        planner = RoutePlanner(client, logger=quiet_logger())
        info = planner.route_info(Coordinates(1, 2), Coordinates(3, 4), TravelMode.DRIVING)

        self.assertEqual(info.distance_meters, 4321)
        self.assertEqual(info.duration_seconds, 987)
        self.assertEqual(client.calls[0]["waypoints"], [])
        self.assertEqual(client.calls[0]["mode"], TravelMode.DRIVING)

    def test_no_routes(self):
        planner = RoutePlanner(FakeDirectionsClient(make_payload(routes=False)), logger=quiet_logger())
        with self.assertRaises(NoRouteFound):
            planner.route_info(Coordinates(1, 2), Coordinates(3, 4))


class TestFormatting(unittest.TestCase):

    def test_format_duration(self):
        self.assertEqual(format_duration(0), "0 min")
        self.assertEqual(format_duration(2700), "45 min")
        self.assertEqual(format_duration(5400), "1 h 30 min")
        self.assertEqual(format_duration(3600), "1 h 0 min")
        # 59.5 minutes rounds up into the next hour
        self.assertEqual(format_duration(3570), "1 h 0 min")

    def test_format_distance(self):
        self.assertEqual(format_distance(500), "500 m")
        self.assertEqual(format_distance(999.4), "999 m")
        self.assertEqual(format_distance(1000), "1.0 km")
        self.assertEqual(format_distance(2500), "2.5 km")

    def test_strip_markup(self):
        self.assertEqual(strip_markup("Turn <b>left</b> onto <b>Drottninggatan</b>"),
                         "Turn left onto Drottninggatan")
        self.assertEqual(
            strip_markup('Walk<div style="font-size:0.9em">Destination will be on the right</div>'),
            "Walk Destination will be on the right",
        )
        self.assertEqual(strip_markup("Fish &amp; Chips"), "Fish & Chips")
        self.assertEqual(strip_markup(""), "")


if __name__ == "__main__":
    unittest.main()
