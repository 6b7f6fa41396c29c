"""
Recognition Debouncer: throttles recognition attempts per detection stream.

Trailing-edge: every detection event cancels the pending attempt and
schedules a new one `delay` seconds later, so only the last event of a burst
is evaluated. While an attempt is running (`recognizing`), events are
dropped without rescheduling.

Usage:
    debouncer = RecognitionDebouncer(handler=session.evaluate, delay=1.0)
    debouncer.submit(face)      # from the detection callback
    debouncer.close()           # on stop; later submissions are dropped
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerScheduler:
    """Runs callbacks on threading.Timer threads. Handles expose cancel()."""

    def schedule(self, delay: float, fn: Callable, *args):
        timer = threading.Timer(delay, fn, args=args)
        timer.daemon = True
        timer.start()
        return timer


class RecognitionDebouncer:
    """
    Debounces detection events into single recognition attempts.

    Responsibilities:
        - Keep at most one scheduled attempt, always for the latest event
        - Gate new events while an attempt is in flight
        - Cancel the pending attempt on demand

    The handler runs on the scheduler's thread.
    """

    def __init__(self, handler: Callable, delay: float = 1.0, scheduler=None):
        self.handler = handler
        self.delay = delay
        self.scheduler = scheduler or TimerScheduler()

        self._lock = threading.Lock()
        self._pending = None
        self._generation = 0
        self._recognizing = False
        self._closed = False

    @property
    def recognizing(self) -> bool:
        return self._recognizing

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def submit(self, event) -> bool:
        """
        Register a detection event.

        Returns:
            True if an attempt was (re)scheduled, False if ignored because
            an attempt is in flight or the debouncer is closed
        """
        with self._lock:
            if self._closed or self._recognizing:
                return False
            if self._pending is not None:
                self._pending.cancel()
            self._generation += 1
            self._pending = self.scheduler.schedule(
                self.delay, self._fire, event, self._generation
            )
            return True

    def cancel(self) -> None:
        """Drop the pending attempt, if any. An in-flight attempt runs to completion."""
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
            self._generation += 1

    def close(self) -> None:
        """Cancel the pending attempt and ignore every later submission."""
        with self._lock:
            self._closed = True
        self.cancel()

    def open(self) -> None:
        with self._lock:
            self._closed = False

    def _fire(self, event, generation: int) -> None:
        with self._lock:
            # superseded or cancelled after the timer already started
            if self._closed or generation != self._generation:
                return
            self._pending = None
            self._recognizing = True

        try:
            self.handler(event)
        except Exception as e:
            logger.error(f"Recognition attempt failed: {e}", exc_info=True)
        finally:
            with self._lock:
                self._recognizing = False
