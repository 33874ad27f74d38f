import asyncio
import logging

logger = logging.getLogger(__name__)


class TimerSlot:
    """
    A single pending delayed call.

    `timers` is anything with `call_later(delay, callback)` returning a
    handle that has `cancel()`, and `time()` returning seconds on the clock
    `call_later` counts in. Scheduling again replaces the previous call.
    Every schedule or cancel bumps the generation, and a callback only runs
    if the generation it was scheduled under is still current, so a stale
    timer can never act on newer state.
    """

    def __init__(self, timers, name="timer"):
        self.timers = timers
        self.name = name
        self.generation = 0
        self.delay = 0.0
        self.deadline = None
        self._handle = None

    @property
    def pending(self):
        return self._handle is not None

    def remaining(self):
        """Seconds until the pending call fires, or None when nothing is pending."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.timers.time())

    def schedule(self, delay, callback):
        self.cancel()
        generation = self.generation

        def fire():
            if generation != self.generation:
                logger.debug("Dropping stale %s (generation %d)", self.name, generation)
                return
            self._handle = None
            self.deadline = None
            self.generation += 1
            callback()

        self.delay = delay
        self.deadline = self.timers.time() + delay
        self._handle = self.timers.call_later(delay, fire)

    def cancel(self):
        self.generation += 1
        self.deadline = None
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioTimers:
    """Timer host backed by an asyncio event loop."""

    def __init__(self, loop=None):
        self.loop = loop

    def _loop(self):
        return self.loop or asyncio.get_running_loop()

    def time(self):
        return self._loop().time()

    def call_later(self, delay, callback):
        return self._loop().call_later(delay, callback)
