"""Adaptive poll interval — grows on sustained failures, recovers on success."""

import sys
from dataclasses import dataclass
from typing import Callable, Optional

from autoreact.domain.models import FailureKind


def _log(msg: str):
    print(msg, file=sys.stderr)


@dataclass
class BackoffSettings:
    base_interval_ms: int = 5000
    max_backoff_ms: int = 60000
    error_threshold: int = 3
    # None means "same as error_threshold"; 0 never grows the interval
    transient_error_threshold: Optional[int] = None
    backoff_multiplier: float = 2.0


class BackoffController:
    """Tracks consecutive errors and the current poll interval.

    The interval is always clamped to [base_interval_ms, max_backoff_ms].
    ``on_change`` is called with the new interval whenever it moves, so the
    scheduler can re-arm its timer.
    """

    def __init__(
        self,
        settings: BackoffSettings,
        on_change: Optional[Callable[[int], None]] = None,
    ):
        self._settings = settings
        self._on_change = on_change
        self.consecutive_errors = 0
        self._interval_ms = settings.base_interval_ms
        self._retry_after_ms = 0

    @property
    def settings(self) -> BackoffSettings:
        return self._settings

    @property
    def current_interval_ms(self) -> int:
        return self._interval_ms

    def current_interval(self) -> int:
        return self._interval_ms

    def set_listener(self, on_change: Optional[Callable[[int], None]]):
        self._on_change = on_change

    def threshold_for(self, kind: FailureKind) -> int:
        if kind is FailureKind.TRANSIENT and self._settings.transient_error_threshold is not None:
            return self._settings.transient_error_threshold
        return self._settings.error_threshold

    def on_failure(self, kind: FailureKind = FailureKind.RATE_LIMITED, retry_after: Optional[float] = None):
        """Count a failure; grow the interval once the kind's threshold is reached.

        ``retry_after`` (seconds) is the wait the remote asked for on a 429. When
        it is longer than the current interval the next timer arm honours it.
        """
        self.consecutive_errors += 1
        changed = False

        threshold = self.threshold_for(kind)
        if threshold > 0 and self.consecutive_errors >= threshold:
            # Always move by at least 1ms so small intervals still grow
            new_interval = min(
                max(int(self._interval_ms * self._settings.backoff_multiplier), self._interval_ms + 1),
                self._settings.max_backoff_ms,
            )
            if new_interval != self._interval_ms:
                _log(
                    f"[backoff] {self.consecutive_errors} consecutive errors ({kind.value}), "
                    f"interval {self._interval_ms}ms -> {new_interval}ms"
                )
                self._interval_ms = new_interval
                changed = True

        if self._hold(retry_after):
            changed = True
        if changed:
            self._notify()

    def take_retry_after_ms(self) -> int:
        """Return the pending remote-requested wait (0 if none) and clear it."""
        held, self._retry_after_ms = self._retry_after_ms, 0
        return held

    def _hold(self, retry_after: Optional[float]) -> bool:
        if retry_after is None:
            return False
        wait_ms = int(retry_after * 1000)
        if wait_ms <= max(self._interval_ms, self._retry_after_ms):
            return False
        self._retry_after_ms = wait_ms
        _log(f"[backoff] remote asked to wait {wait_ms}ms before the next poll")
        return True

    def on_success(self):
        if self.consecutive_errors > 0:
            self.consecutive_errors = 0

        if self._interval_ms > self._settings.base_interval_ms:
            new_interval = max(
                int(self._interval_ms / self._settings.backoff_multiplier),
                self._settings.base_interval_ms,
            )
            _log(f"[backoff] recovered, interval {self._interval_ms}ms -> {new_interval}ms")
            self._set_interval(new_interval)

    def _set_interval(self, interval_ms: int):
        self._interval_ms = interval_ms
        self._notify()

    def _notify(self):
        if self._on_change:
            self._on_change(self._interval_ms)
