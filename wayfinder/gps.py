"""Location sources: device GPS, trace recording and trace playback.

Every source offers the same three calls:

    await source.request_permission() -> bool
    source.get_current_location() -> Optional[Coordinates]
    source.watch_position(min_interval_ms, min_distance_m, on_sample) -> Subscription
"""

import asyncio
import json
import shutil
import subprocess
import time
from datetime import datetime
from typing import Callable, Optional

from .config import CONFIG
from .geo import distance_meters
from .models import Coordinates


class Subscription:
    """Live location feed started by watch_position().

    Polls its source on the event loop and hands accepted fixes to
    on_sample. A fix is accepted when it lies at least min_distance_m from
    the last delivered one. After cancel() returns no further fix is
    delivered.
    """

    def __init__(self, source, min_interval_ms: int, min_distance_m: float,
                 on_sample: Callable[[Coordinates], None]):
        self.source = source
        self.min_interval = min_interval_ms / 1000
        self.min_distance_m = min_distance_m
        self.on_sample = on_sample
        self.cancelled = False
        self.last_delivered: Optional[Coordinates] = None
        self._task = asyncio.ensure_future(self._run())

    def _accept(self, location: Coordinates) -> bool:
        if self.last_delivered is None:
            return True
        return distance_meters(self.last_delivered, location) >= self.min_distance_m

    async def _run(self):
        while not self.cancelled:
            location = await self.source.next_location()
            if self.cancelled:
                break
            if location is not None and self._accept(location):
                self.last_delivered = location
                self.on_sample(location)
            if self.source.is_finished():
                break
            await asyncio.sleep(self.source.get_poll_interval(self.min_interval))

    @property
    def finished(self) -> bool:
        return self._task.done()

    async def wait(self):
        """Wait until the source runs dry or the subscription is cancelled"""
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    def cancel(self):
        self.cancelled = True
        self._task.cancel()


class GPS:
    """GPS access via Termux API"""

    def __init__(self, timeout: Optional[int] = None):
        self.timeout = timeout if timeout is not None else CONFIG["gps_fix_timeout"]
        self.last_location: Optional[Coordinates] = None
        self.last_accuracy: Optional[float] = None
        self.consecutive_failures = 0

    async def request_permission(self) -> bool:
        """Location is only available where the termux-location command exists"""
        return shutil.which("termux-location") is not None

    def get_current_location(self) -> Optional[Coordinates]:
        """Get current location using termux-location"""
        try:
            result = subprocess.run(
                ["termux-location", "-p", "gps", "-r", "once"],
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except (subprocess.TimeoutExpired, FileNotFoundError):
            self.consecutive_failures += 1
            return None

        if result.returncode != 0 or not result.stdout.strip():
            self.consecutive_failures += 1
            return None

        try:
            data = json.loads(result.stdout)
            location = Coordinates(lat=data["latitude"], lng=data["longitude"])
        except (json.JSONDecodeError, KeyError):
            self.consecutive_failures += 1
            return None

        self.last_location = location
        self.last_accuracy = data.get("accuracy")
        self.consecutive_failures = 0
        return location

    async def next_location(self) -> Optional[Coordinates]:
        return await asyncio.to_thread(self.get_current_location)

    def is_finished(self) -> bool:
        return False

    def get_poll_interval(self, min_interval: float) -> float:
        return min_interval

    def watch_position(self, min_interval_ms: int, min_distance_m: float,
                       on_sample: Callable[[Coordinates], None]) -> Subscription:
        return Subscription(self, min_interval_ms, min_distance_m, on_sample)

    def get_status(self) -> str:
        """Get GPS status string"""
        if self.consecutive_failures == 0:
            acc = f", accuracy {self.last_accuracy:.0f}m" if self.last_accuracy else ""
            return f"GPS OK{acc}"
        return f"GPS: {self.consecutive_failures} consecutive failures"


class GPSRecorder:
    """Records every fix taken from another source"""

    def __init__(self, source, record_path: str):
        self.source = source
        self.record_path = record_path
        self.trace: list[dict] = []
        self.start_time = time.time()

    def _record(self, location: Optional[Coordinates]):
        # Failed fixes are recorded too
        self.trace.append({
            "elapsed": time.time() - self.start_time,
            "timestamp": time.time(),
            "location": location.to_dict() if location else None,
            "status": self.get_status(),
        })

    async def request_permission(self) -> bool:
        return await self.source.request_permission()

    def get_current_location(self) -> Optional[Coordinates]:
        location = self.source.get_current_location()
        self._record(location)
        return location

    async def next_location(self) -> Optional[Coordinates]:
        location = await self.source.next_location()
        self._record(location)
        return location

    def is_finished(self) -> bool:
        return self.source.is_finished()

    def get_poll_interval(self, min_interval: float) -> float:
        return self.source.get_poll_interval(min_interval)

    def watch_position(self, min_interval_ms: int, min_distance_m: float,
                       on_sample: Callable[[Coordinates], None]) -> Subscription:
        return Subscription(self, min_interval_ms, min_distance_m, on_sample)

    def get_status(self) -> str:
        return self.source.get_status()

    def save(self):
        """Save trace to file"""
        with open(self.record_path, "w") as f:
            json.dump({
                "recorded_at": datetime.now().isoformat(),
                "trace": self.trace
            }, f, indent=2)


class GPSPlayback:
    """Plays back a recorded trace.

    Recorded gaps between fixes are replayed divided by speed and capped at
    CONFIG["playback_max_interval"]; the subscription's minimum interval is
    not applied so that fast playback stays fast.
    """

    def __init__(self, playback_path: Optional[str] = None, speed: float = 1.0,
                 trace: Optional[list[dict]] = None):
        self.playback_path = playback_path
        self.speed = speed
        self.index = 0
        self.last_location: Optional[Coordinates] = None
        self.consecutive_failures = 0

        if trace is None:
            with open(playback_path) as f:
                trace = json.load(f)["trace"]
        self.trace: list[dict] = list(trace)

    async def request_permission(self) -> bool:
        return True

    def _advance(self) -> Optional[Coordinates]:
        if self.index >= len(self.trace):
            return None

        entry = self.trace[self.index]
        self.index += 1

        if entry["location"]:
            self.last_location = Coordinates.from_dict(entry["location"])
            self.consecutive_failures = 0
            return self.last_location
        self.consecutive_failures += 1
        return None

    def get_current_location(self) -> Optional[Coordinates]:
        """Current playback position; the first recorded fix before playback starts"""
        if self.last_location is not None:
            return self.last_location
        for entry in self.trace:
            if entry["location"]:
                return Coordinates.from_dict(entry["location"])
        return None

    async def next_location(self) -> Optional[Coordinates]:
        return self._advance()

    def get_poll_interval(self, min_interval: float) -> float:
        """Interval until the next fix, based on trace timing and speed"""
        if self.index <= 0 or self.index >= len(self.trace):
            return 0.0

        prev_elapsed = self.trace[self.index - 1].get("elapsed", 0)
        curr_elapsed = self.trace[self.index].get("elapsed", 0)
        interval = (curr_elapsed - prev_elapsed) / self.speed
        return max(0.0, min(interval, CONFIG["playback_max_interval"]))

    def is_finished(self) -> bool:
        return self.index >= len(self.trace)

    def watch_position(self, min_interval_ms: int, min_distance_m: float,
                       on_sample: Callable[[Coordinates], None]) -> Subscription:
        return Subscription(self, min_interval_ms, min_distance_m, on_sample)

    def get_status(self) -> str:
        progress = f"{self.index}/{len(self.trace)}"
        if self.consecutive_failures == 0:
            return f"Playback OK ({progress})"
        return f"Playback: {self.consecutive_failures} failures ({progress})"
