"""Live navigation along a planned route."""

import asyncio
import inspect
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from .config import CONFIG
from .geo import nearest_vertex
from .logger import Logger
from .models import Coordinates, NavigationState, Route

StateCallback = Callable[[NavigationState], None]
RecalculateCallback = Callable[[], Optional[Awaitable[None]]]


class NavigationSession:
    """Tracks a location stream against one route.

    Idle until start() succeeds, then on route or off route until stop().
    Samples delivered by the location source are queued and processed one
    at a time by a single worker task, so state is only ever written by
    that task (or by start/stop/reroute on the same event loop).

    Leaving the route triggers on_recalculate once per off-route episode.
    The callback is scheduled, not awaited, so samples keep flowing while
    it runs. While a recalculation is in flight a new episode does not
    start a second one; it is remembered and replayed once when the first
    finishes, if the user is still off route by then.

    A sample whose processing raises, for example in on_state_change, is
    logged and counted in failed_samples; later samples are still processed.

    Args:
        location_source: Object providing request_permission() and
            watch_position(); see wayfinder.gps.
        off_route_threshold: Meters from the nearest route point beyond
            which the user is off route.
        update_interval_ms: Minimum time between location samples.
        distance_interval: Minimum displacement in meters between samples.
        logger: Logger for lifecycle messages.
    """

    def __init__(self, location_source,
                 off_route_threshold: Optional[float] = None,
                 update_interval_ms: Optional[int] = None,
                 distance_interval: Optional[float] = None,
                 logger: Optional[Logger] = None):
        self.location_source = location_source
        self.off_route_threshold = (off_route_threshold if off_route_threshold is not None
                                    else CONFIG["off_route_threshold"])
        self.update_interval_ms = (update_interval_ms if update_interval_ms is not None
                                   else CONFIG["location_update_interval"])
        self.distance_interval = (distance_interval if distance_interval is not None
                                  else CONFIG["location_distance_interval"])
        self.logger = logger or Logger()

        self._route: Optional[Route] = None
        self._state = NavigationState()
        self._on_state_change: Optional[StateCallback] = None
        self._on_recalculate: Optional[RecalculateCallback] = None
        self._subscription = None
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._recalc_task: Optional[asyncio.Future] = None
        self._recalc_pending = False
        self._failed_samples = 0

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def is_navigating(self) -> bool:
        return self._state.is_navigating

    @property
    def route(self) -> Optional[Route]:
        return self._route

    @property
    def recalculating(self) -> bool:
        return self._recalc_task is not None and not self._recalc_task.done()

    @property
    def failed_samples(self) -> int:
        """Samples whose processing raised, for example in on_state_change"""
        return self._failed_samples

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, route: Route, on_state_change: StateCallback,
                    on_recalculate: Optional[RecalculateCallback] = None) -> bool:
        """Begin navigating route.

        Returns False, leaving the session idle, when the location source
        refuses permission. A session that is already navigating is torn
        down first.
        """
        if not route.coordinates:
            raise ValueError("Cannot navigate a route without coordinates")

        if self.is_navigating:
            self.stop()

        if not await self.location_source.request_permission():
            self.logger.warning("Location permission denied")
            return False

        # Another start may have completed while permission was pending
        if self.is_navigating:
            self.stop()

        self._route = route
        self._on_state_change = on_state_change
        self._on_recalculate = on_recalculate
        self._state = NavigationState(is_navigating=True)
        self._recalc_pending = False
        self._failed_samples = 0

        queue: asyncio.Queue = asyncio.Queue()
        self._queue = queue
        self._worker = asyncio.create_task(self._process_samples(queue))
        self._worker.add_done_callback(self._on_worker_done)
        self._subscription = self.location_source.watch_position(
            self.update_interval_ms,
            self.distance_interval,
            lambda location: self._enqueue(queue, location),
        )

        self.logger.log("Navigation started", {
            "points": len(route.coordinates),
            "distance": route.distance_meters,
            "off_route_threshold": self.off_route_threshold,
        })
        self._notify()
        return True

    def stop(self) -> None:
        """Stop navigating. Safe to call when already idle.

        No state change or recalculation is issued after this returns.
        """
        if not self.is_navigating:
            return

        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._worker is not None:
            self._worker.cancel()
            self._worker = None

        self._queue = None
        self._route = None
        self._on_state_change = None
        self._on_recalculate = None
        self._recalc_task = None
        self._recalc_pending = False
        self._state = NavigationState()
        self.logger.log("Navigation stopped")

    def reroute(self, route: Route) -> bool:
        """Replace the route of a running session, keeping the location feed.

        Progress and the off-route flag are reset and one state change is
        emitted. Returns False when not navigating.
        """
        if not self.is_navigating:
            return False
        if not route.coordinates:
            raise ValueError("Cannot navigate a route without coordinates")

        self._route = route
        self._recalc_pending = False
        self._state = replace(self._state, is_off_route=False, completed_coordinates=())
        self.logger.log("Route replaced", {"points": len(route.coordinates),
                                           "distance": route.distance_meters})
        self._notify()
        return True

    async def wait_idle(self) -> None:
        """Wait until every queued sample has been processed"""
        if self._queue is not None:
            await self._queue.join()

    # ------------------------------------------------------------------
    # Sample processing
    # ------------------------------------------------------------------

    def _enqueue(self, queue: asyncio.Queue, location: Coordinates):
        if queue is self._queue:
            queue.put_nowait(location)

    async def _process_samples(self, queue: asyncio.Queue):
        while True:
            location = await queue.get()
            try:
                if queue is not self._queue:
                    break
                self._handle_location(location)
            except Exception as e:
                self._failed_samples += 1
                self.logger.error("Location sample failed", {"error": repr(e)})
            finally:
                queue.task_done()

    def _on_worker_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error("Location processing failed", {"error": repr(error)})

    def _handle_location(self, location: Coordinates):
        route = self._route
        index, _, deviation = nearest_vertex(location, route.coordinates)

        if deviation > self.off_route_threshold:
            if not self._state.is_off_route:
                self.logger.warning("Off route", {"deviation": round(deviation, 1),
                                                  "location": location.to_dict()})
                self._state = replace(self._state, current_location=location, is_off_route=True)
                self._trigger_recalculation()
            else:
                self._state = replace(self._state, current_location=location)
        else:
            if self._state.is_off_route:
                self.logger.log("Back on route", {"index": index})
            self._state = replace(
                self._state,
                current_location=location,
                is_off_route=False,
                completed_coordinates=route.coordinates[:index + 1],
            )

        self._notify()

    def _notify(self):
        if self._on_state_change is not None:
            self._on_state_change(self._state)

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    def _trigger_recalculation(self):
        if self._on_recalculate is None:
            return

        if self.recalculating:
            self._recalc_pending = True
            self.logger.log("Recalculation already in progress, queued one more")
            return

        self.logger.log("Recalculating route")
        try:
            result = self._on_recalculate()
        except Exception as e:
            self.logger.error("Route recalculation failed", {"error": repr(e)})
            return
        if not inspect.isawaitable(result):
            return

        task = asyncio.ensure_future(result)
        self._recalc_task = task
        task.add_done_callback(self._on_recalculation_done)

    def _on_recalculation_done(self, task: asyncio.Future):
        if not task.cancelled() and task.exception() is not None:
            self.logger.error("Route recalculation failed", {"error": repr(task.exception())})

        if task is not self._recalc_task:
            return
        self._recalc_task = None

        pending = self._recalc_pending
        self._recalc_pending = False
        if pending and self.is_navigating and self._state.is_off_route:
            self._trigger_recalculation()
