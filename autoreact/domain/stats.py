"""Process-lifetime reaction counters."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional


class StatsReporter:
    """Accumulates reacted/skipped/failed counts and derives a summary."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.started_at = self._clock()
        self.reacted_count = 0
        self.skipped_count = 0
        self.failed_count = 0
        self.rate_limited_count = 0
        self.cycles = 0
        self.skip_reasons: Dict[str, int] = {}

    def record_reaction(self):
        self.reacted_count += 1

    def record_skip(self, reason: str = "unspecified"):
        self.skipped_count += 1
        self.skip_reasons[reason] = self.skip_reasons.get(reason, 0) + 1

    def record_failure(self, rate_limited: bool = False):
        self.failed_count += 1
        if rate_limited:
            self.rate_limited_count += 1

    def record_cycle(self):
        self.cycles += 1

    def summary(self) -> Dict[str, Any]:
        uptime = max((self._clock() - self.started_at).total_seconds(), 0.0)
        decided = self.reacted_count + self.skipped_count
        hours = uptime / 3600
        return {
            "started_at": self.started_at.isoformat(),
            "uptime_seconds": round(uptime, 1),
            "cycles": self.cycles,
            "reacted": self.reacted_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "rate_limited": self.rate_limited_count,
            "skip_reasons": dict(self.skip_reasons),
            "skip_ratio": round(self.skipped_count / decided, 3) if decided else 0.0,
            "reactions_per_hour": round(self.reacted_count / hours, 1) if hours > 0 else 0.0,
        }

    def format_summary(self) -> str:
        s = self.summary()
        return (
            f"uptime={s['uptime_seconds']:.0f}s cycles={s['cycles']} "
            f"reacted={s['reacted']} skipped={s['skipped']} failed={s['failed']} "
            f"(rate_limited={s['rate_limited']}) skip_ratio={s['skip_ratio']:.1%}"
        )
