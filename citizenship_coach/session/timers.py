"""
timers.py
---------

Cancellable asyncio timers used by practice sessions.

- `CheckInTimer`: one-shot gentle check-in after a question is displayed.
- `InactivityWatchdog`: warning timer followed by a longer pause timer.

Cancelling a timer that has already fired (or was never armed) is a no-op.
Callbacks may be plain functions or coroutine functions.
"""

import asyncio
import inspect
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


async def _invoke(callback: Callable, name: str):
    try:
        result = callback()
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception(f"{name} callback failed")


class CheckInTimer:
    """
    At most one pending check-in. Arming again replaces the pending one.

    Args:
        delay (float): Seconds before `on_fire` runs.
        on_fire (Callable): Called once when the timer expires.
    """

    def __init__(self, delay: float, on_fire: Callable):
        self.delay = delay
        self.on_fire = on_fire
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self):
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self):
        self._handle = None
        self._task = asyncio.ensure_future(_invoke(self.on_fire, "Check-in"))


class InactivityWatchdog:
    """
    Two-stage inactivity timer.

    `warning_delay` seconds after the last activity `on_warning` runs, and
    `pause_delay` seconds after it `on_timeout` runs. Once the warning has
    fired, only user-originated activity resets the watchdog, so the
    assistant speaking the warning cannot cancel it.

    Args:
        warning_delay (float): Seconds of inactivity before the warning.
        pause_delay (float): Seconds of inactivity before the timeout.
        on_warning (Callable): Warning callback.
        on_timeout (Callable): Timeout callback.
    """

    def __init__(self, warning_delay: float, pause_delay: float, on_warning: Callable, on_timeout: Callable):
        self.warning_delay = warning_delay
        self.pause_delay = max(pause_delay, warning_delay)
        self.on_warning = on_warning
        self.on_timeout = on_timeout
        self.in_warning_period = False
        self._warning_handle: Optional[asyncio.TimerHandle] = None
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._tasks = set()

    @property
    def running(self) -> bool:
        return self._warning_handle is not None or self._timeout_handle is not None

    def start(self):
        self.stop()
        loop = asyncio.get_running_loop()
        self._warning_handle = loop.call_later(self.warning_delay, self._warn)
        self._timeout_handle = loop.call_later(self.pause_delay, self._timeout)

    def reset(self):
        self.start()

    def stop(self):
        for handle in (self._warning_handle, self._timeout_handle):
            if handle is not None:
                handle.cancel()
        self._warning_handle = None
        self._timeout_handle = None
        self.in_warning_period = False

    def record_activity(self, user_originated: bool) -> bool:
        """
        Note activity on the session.

        Returns:
            bool: True when the watchdog was reset.
        """
        if not self.running:
            return False
        if self.in_warning_period and not user_originated:
            return False
        self.reset()
        return True

    def _warn(self):
        self._warning_handle = None
        self.in_warning_period = True
        self._spawn(self.on_warning, "Inactivity warning")

    def _timeout(self):
        self._timeout_handle = None
        self.in_warning_period = False
        self._spawn(self.on_timeout, "Inactivity timeout")

    def _spawn(self, callback: Callable, name: str):
        task = asyncio.ensure_future(_invoke(callback, name))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
