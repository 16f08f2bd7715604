"""Directions provider client.

Talks to the provider over HTTP and returns a validated DirectionsResponse.
Only the fields the planner consumes are modelled; everything else in the
payload is ignored. A single attempt is made per call: no retries.
"""

import os
from typing import Optional, Sequence

import requests
from pydantic import BaseModel, ValidationError

from .config import CONFIG
from .errors import InvalidResponse, ProviderUnavailable
from .models import Coordinates, TravelMode


class ValueField(BaseModel):
    """Provider quantity, e.g. {"text": "1.2 km", "value": 1203}"""
    value: int


class LatLng(BaseModel):
    lat: float
    lng: float

    def to_coordinates(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


class DirectionsStep(BaseModel):
    distance: ValueField
    duration: ValueField
    html_instructions: str = ""
    maneuver: Optional[str] = None
    start_location: Optional[LatLng] = None
    end_location: Optional[LatLng] = None


class DirectionsLeg(BaseModel):
    distance: ValueField
    duration: ValueField
    steps: list[DirectionsStep] = []


class OverviewPolyline(BaseModel):
    points: str


class DirectionsRoute(BaseModel):
    legs: list[DirectionsLeg]
    overview_polyline: OverviewPolyline
    waypoint_order: Optional[list[int]] = None


class DirectionsResponse(BaseModel):
    status: str
    routes: list[DirectionsRoute] = []
    error_message: Optional[str] = None


class DirectionsClient:
    """HTTP adapter for the directions provider.

    Args:
        api_key: Provider key; read from the environment variable named by
            CONFIG["api_key_env"] when omitted.
        timeout: Seconds to wait for a response before giving up.
        base_url: Endpoint override.
    """

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None,
                 base_url: Optional[str] = None):
        self.api_key = api_key or os.getenv(CONFIG["api_key_env"])
        self.timeout = timeout if timeout is not None else CONFIG["request_timeout"]
        self.base_url = base_url or CONFIG["directions_url"]

        if not self.api_key:
            raise ValueError(
                f"Directions API key not set. Pass api_key or set {CONFIG['api_key_env']}."
            )

    def build_params(self, origin: Coordinates, destination: Coordinates,
                     mode: TravelMode, waypoints: Sequence[Coordinates] = (),
                     optimize: bool = True) -> dict:
        """Query parameters for one directions request"""
        params = {
            "origin": origin.to_param(),
            "destination": destination.to_param(),
            "mode": mode.value,
            "key": self.api_key,
        }
        if waypoints:
            stops = "|".join(w.to_param() for w in waypoints)
            params["waypoints"] = f"optimize:true|{stops}" if optimize else stops
        return params

    def fetch(self, origin: Coordinates, destination: Coordinates,
              mode: TravelMode = TravelMode.WALKING,
              waypoints: Sequence[Coordinates] = (),
              optimize: bool = True) -> DirectionsResponse:
        """Request directions and validate the response.

        Raises:
            ProviderUnavailable: transport error, HTTP error status or a
                provider status other than CONFIG["success_status"]
            InvalidResponse: body is not JSON or does not match the schema
        """
        params = self.build_params(origin, destination, mode, waypoints, optimize)

        try:
            response = requests.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ProviderUnavailable(f"Directions request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponse(f"Directions response is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise InvalidResponse(f"Unexpected directions response: {type(data).__name__}")

        # Failure replies need not follow the route schema
        status = data.get("status")
        if not isinstance(status, str):
            raise InvalidResponse("Directions response has no status")
        if status != CONFIG["success_status"]:
            detail = data.get("error_message") or "no error message"
            raise ProviderUnavailable(
                f"Directions provider returned {status}: {detail}",
                status=status,
            )

        try:
            return DirectionsResponse.model_validate(data)
        except ValidationError as e:
            raise InvalidResponse(f"Unexpected directions response: {e}") from e
