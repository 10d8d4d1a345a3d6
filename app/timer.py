"""Cancellable background timers.

Drives the ping watchdog, the speedtest schedule and the retention sweep.
Each timer owns one daemon thread that waits on a threading.Event, so
stop() takes effect immediately instead of after the current sleep.

Usage:
    from app.timer import PeriodicTimer

    def on_tick():
        print("Tick!")

    timer = PeriodicTimer(on_tick, interval=1.0)
    timer.start()
    ...
    timer.stop()
"""

import threading
from typing import Callable, Optional

from config.logging_config import get_logger, log_exception

logger = get_logger(__name__)


class PeriodicTimer:
    """Calls a function periodically, or once after a delay.

    Attributes:
        interval: Time between ticks in seconds.

    Example:
        >>> warmup = PeriodicTimer(run_once, interval=10.0, repeat=False)
        >>> warmup.start()
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval: float,
        initial_delay: Optional[float] = None,
        repeat: bool = True,
        name: Optional[str] = None,
    ):
        """Initialize the timer.

        Args:
            callback: Function to call on each tick (no arguments).
            interval: Time between ticks in seconds.
            initial_delay: Delay before the first tick; defaults to interval.
            repeat: If False, fire once and finish.
            name: Thread name, for logs.
        """
        self._callback = callback
        self._interval = interval
        self._initial_delay = interval if initial_delay is None else initial_delay
        self._repeat = repeat
        self._name = name or "PeriodicTimer"
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def _run(self) -> None:
        delay = self._initial_delay
        while not self._stop_event.wait(delay):
            try:
                self._callback()
            except Exception as e:
                log_exception(logger, f"{self._name} callback failed", e)
            if not self._repeat:
                break
            delay = self._interval

    def start(self) -> None:
        """Start the timer in a background thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name=self._name)
        self._thread.start()
        logger.debug(f"{self._name} started with interval {self._interval}s")

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the timer and wait for an in-progress tick to finish.

        Safe to call from inside the callback; the timer thread is not
        joined in that case.
        """
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.debug(f"{self._name} stopped")
