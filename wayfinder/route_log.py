"""Navigation session logging and evaluation."""

import json
from datetime import datetime, timezone

from .config import CONFIG
from .geo import nearest_vertex, path_length
from .models import NavigationState, Route


def _route_summary(route: Route) -> dict:
    return {
        "distance_m": route.distance_meters,
        "duration_s": route.duration_seconds,
        "points": len(route.coordinates),
        "legs": len(route.segments),
        "waypoints": [w.name or w.coordinates.to_param() for w in route.waypoints],
        "length_m": round(path_length(route.coordinates), 1),
    }


class NavigationLog:
    """Records every state emitted during a navigation session.

    Pass log_state as (or from) the session's on_state_change callback and
    call log_recalculation whenever a new route is swapped in.
    """

    def __init__(self, route: Route, travel_mode: str = CONFIG["default_travel_mode"]):
        self.route = route
        self.data = {
            "version": 1,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "config": dict(CONFIG),
            "travel_mode": travel_mode,
            "route": _route_summary(route),
            "samples": [],
            "recalculations": [],
        }

    def log_state(self, state: NavigationState):
        """Record one state snapshot."""
        completed = state.completed_coordinates
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "location": state.current_location.to_dict() if state.current_location else None,
            "is_navigating": state.is_navigating,
            "is_off_route": state.is_off_route,
            "completed_index": len(completed) - 1,
            "progress_m": round(path_length(completed), 1),
            "route_length_m": self.data["route"]["length_m"],
        }
        if state.current_location and self.route.coordinates:
            _, _, deviation = nearest_vertex(state.current_location, self.route.coordinates)
            entry["deviation_m"] = round(deviation, 1)
        self.data["samples"].append(entry)

    def log_recalculation(self, route: Route, trigger: str = "off_route"):
        """Record a replacement route."""
        self.data["recalculations"].append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "trigger": trigger,
            "at_sample": len(self.data["samples"]),
            "route": _route_summary(route),
        })
        self.route = route
        self.data["route"] = _route_summary(route)

    def save(self, path: str):
        """Write session log to JSON file."""
        with open(path, "w") as f:
            json.dump(self.data, f, indent=2)


def evaluate_log(log_data: dict) -> dict:
    """Summarize a navigation log.

    Returns a dict with:
      - samples: states with a location
      - off_route_samples: of those, how many were off route
      - off_route_episodes: runs of consecutive off-route samples
      - recalculations: routes swapped in
      - final_progress: completed share of the final route, 0.0 - 1.0
    """
    samples = [s for s in log_data.get("samples", []) if s.get("location")]

    episodes = 0
    previous_off = False
    for s in samples:
        if s["is_off_route"] and not previous_off:
            episodes += 1
        previous_off = s["is_off_route"]

    final_progress = 0.0
    if samples:
        last = samples[-1]
        if last["route_length_m"] > 0:
            final_progress = min(1.0, last["progress_m"] / last["route_length_m"])

    return {
        "samples": len(samples),
        "off_route_samples": sum(1 for s in samples if s["is_off_route"]),
        "off_route_episodes": episodes,
        "recalculations": len(log_data.get("recalculations", [])),
        "final_progress": round(final_progress, 3),
    }
