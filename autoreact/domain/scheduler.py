"""Repeating poll timer with jitter, driven by the backoff interval."""

import asyncio
import random
import sys
from typing import Awaitable, Callable, Optional, Set

from autoreact.domain.backoff import BackoffController


def _log(msg: str):
    print(msg, file=sys.stderr)


class PollScheduler:
    """Owns exactly one pending timer and fires the poll cycle on it.

    Each fire re-arms first and then launches the cycle as a task; the cycle
    itself refuses to overlap with one still in flight. ``rearm()`` replaces
    the pending timer and is wired as the backoff listener.
    """

    def __init__(
        self,
        cycle: Callable[[], Awaitable[bool]],
        backoff: BackoffController,
        interval_variation_ms: int = 1000,
        rng: Optional[random.Random] = None,
        on_cycle_done: Optional[Callable[[], None]] = None,
    ):
        self._cycle = cycle
        self._backoff = backoff
        self._variation_ms = max(0, interval_variation_ms)
        self._rng = rng or random.Random()
        self._on_cycle_done = on_cycle_done
        self._handle: Optional[asyncio.TimerHandle] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running = False
        self._cycle_tasks: Set[asyncio.Task] = set()
        self.last_delay_ms: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def armed(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    def next_delay_ms(self) -> int:
        jitter = self._rng.uniform(0, self._variation_ms) if self._variation_ms else 0
        delay_ms = int(self._backoff.current_interval_ms + jitter)
        return max(delay_ms, self._backoff.take_retry_after_ms())

    def start(self, run_immediately: bool = True):
        """Arm the timer on the running loop, optionally checking once right away."""
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        self._running = True
        self._backoff.set_listener(self._on_interval_change)
        self._arm()
        if run_immediately:
            self._launch_cycle()

    def stop(self):
        """Cancel the timer. Cycles already running finish on their own."""
        self._running = False
        self._backoff.set_listener(None)
        if self._handle:
            self._handle.cancel()
            self._handle = None
        _log("[scheduler] stopped")

    def rearm(self):
        if self._running:
            self._arm()

    async def wait_idle(self):
        """Wait for any cycle task the timer has launched."""
        if self._cycle_tasks:
            await asyncio.gather(*list(self._cycle_tasks), return_exceptions=True)

    def _on_interval_change(self, interval_ms: int):
        _log(f"[scheduler] re-arming with base interval {interval_ms}ms")
        self.rearm()

    def _arm(self):
        if self._handle:
            self._handle.cancel()
        delay_ms = self.next_delay_ms()
        self.last_delay_ms = delay_ms
        self._handle = self._loop.call_later(delay_ms / 1000, self._fire)

    def _fire(self):
        self._handle = None
        if not self._running:
            return
        self._arm()
        self._launch_cycle()

    def _launch_cycle(self):
        task = self._loop.create_task(self._run_cycle())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)

    async def _run_cycle(self):
        try:
            await self._cycle()
        except Exception as e:
            _log(f"[scheduler] cycle raised: {e}")
        if self._on_cycle_done:
            self._on_cycle_done()
