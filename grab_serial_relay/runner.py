"""
Tick Loop - Fixed-rate driver for grab event encoders.

Single-threaded: every encoder is ticked once per iteration, in list order,
then the loop sleeps for the rest of the period.
"""

import logging
import time
from typing import Callable, List, Optional, Sequence

from .encoder import GrabEventEncoder
from .message import GrabEvent

logger = logging.getLogger(__name__)


class TickLoop:
    """
    Caller-owned scheduler for GrabEventEncoders.

    run() initializes every encoder, ticks them at ``rate_hz`` until stop()
    is called or ``max_ticks`` iterations ran, and shuts them down on exit.
    """

    def __init__(
        self,
        encoders: Sequence[GrabEventEncoder],
        rate_hz: float = 72.0,
        on_event: Optional[Callable[[GrabEventEncoder, GrabEvent], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the loop.

        Args:
            encoders: Encoders to drive, one per monitored object
            rate_hz: Iterations per second
            on_event: Callback for every emitted event
            sleep: Sleep function (injectable for tests)
            clock: Monotonic clock (injectable for tests)
        """
        if rate_hz <= 0:
            raise ValueError(f"rate_hz={rate_hz} must be positive")
        self.encoders: List[GrabEventEncoder] = list(encoders)
        self.rate_hz = rate_hz
        self.on_event = on_event
        self._sleep = sleep
        self._clock = clock
        self._running = False
        self._iterations = 0
        self._tick_errors = 0

    @property
    def running(self) -> bool:
        return self._running

    def step(self) -> List[GrabEvent]:
        """Tick every encoder once. Returns the events emitted."""
        events: List[GrabEvent] = []
        for encoder in self.encoders:
            try:
                event = encoder.tick()
            except Exception as e:
                self._tick_errors += 1
                logger.error(f"Error ticking {encoder.obj.name}: {e}")
                continue
            if event is None:
                continue
            events.append(event)
            if self.on_event:
                self.on_event(encoder, event)
        self._iterations += 1
        return events

    def run(self, max_ticks: Optional[int] = None) -> None:
        """
        Main loop.

        Args:
            max_ticks: Stop after this many iterations (None = until stop())
        """
        target_dt = 1.0 / self.rate_hz
        self._running = True
        ticks = 0
        try:
            for encoder in self.encoders:
                encoder.init()
            logger.info(f"Tick loop started: {len(self.encoders)} object(s) @ {self.rate_hz:.1f} Hz")

            while self._running:
                if max_ticks is not None and ticks >= max_ticks:
                    break
                loop_start = self._clock()

                self.step()
                ticks += 1

                # Rate limiting
                elapsed = self._clock() - loop_start
                if elapsed < target_dt:
                    self._sleep(target_dt - elapsed)
        finally:
            self._running = False
            for encoder in self.encoders:
                encoder.shutdown()
            logger.info(f"Tick loop stopped after {ticks} iteration(s)")

    def stop(self) -> None:
        """Request run() to return after the current iteration."""
        self._running = False

    def get_stats(self) -> dict:
        """Get loop statistics."""
        return {
            "running": self._running,
            "iterations": self._iterations,
            "tick_errors": self._tick_errors,
            "encoders": [encoder.get_stats() for encoder in self.encoders],
        }
