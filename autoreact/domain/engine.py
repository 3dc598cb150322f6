"""Poll cycle: dedupe each fetched batch against the cursor and schedule reactions.

Every per-cycle and per-message error is contained here; callers only ever
see a cycle finish.
"""

import asyncio
import random
import sys
from typing import Awaitable, Callable, Optional, Set

from autoreact.domain.backoff import BackoffController
from autoreact.domain.cursor import Cursor, compute_delta
from autoreact.domain.models import (
    FailureKind,
    Message,
    RateLimitError,
    ReactionOutcome,
    ReactionPolicy,
    RemoteChannelError,
)
from autoreact.domain.policy import reaction_delay_ms, skip_reason
from autoreact.domain.stats import StatsReporter
from autoreact.ports.outbound import RemoteChannelPort

Sleeper = Callable[[float], Awaitable[None]]


def _log(msg: str):
    print(msg, file=sys.stderr)


class ReactionEngine:
    """Owns one channel's dedup-and-react state for the process lifetime."""

    def __init__(
        self,
        channel: RemoteChannelPort,
        channel_id: int,
        policy: ReactionPolicy,
        cursor: Cursor,
        backoff: BackoffController,
        stats: Optional[StatsReporter] = None,
        fetch_limit: int = 10,
        rng: Optional[random.Random] = None,
        sleep: Optional[Sleeper] = None,
    ):
        self._channel = channel
        self.channel_id = channel_id
        self._policy = policy
        self.cursor = cursor
        self.backoff = backoff
        self.stats = stats or StatsReporter()
        self.fetch_limit = fetch_limit
        self._rng = rng or random.Random()
        self._sleep: Sleeper = sleep or asyncio.sleep
        self._busy = False
        self._pending: Set[asyncio.Task] = set()

    @property
    def policy(self) -> ReactionPolicy:
        return self._policy

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def change_emoji(self, new_emoji: str) -> bool:
        """Swap the reaction emoji. Attempts already scheduled keep the old one."""
        new_emoji = (new_emoji or "").strip()
        if not new_emoji:
            return False
        self._policy = self._policy.with_emoji(new_emoji)
        _log(f"[engine] reaction emoji changed to: {new_emoji}")
        return True

    async def run_cycle(self) -> bool:
        """Run one poll cycle. Returns False without fetching if one is in flight."""
        if self._busy:
            return False
        self._busy = True
        try:
            await self._poll()
        except Exception as e:
            _log(f"[engine] error checking for messages: {e}")
            self.stats.record_failure()
            self.backoff.on_failure(FailureKind.TRANSIENT)
        finally:
            self._busy = False
            self.stats.record_cycle()
        return True

    async def _poll(self):
        try:
            batch = await self._channel.list_recent_messages(self.channel_id, self.fetch_limit)
        except RateLimitError as e:
            _log(f"[engine] rate limited while fetching messages: {e}")
            self.stats.record_failure(rate_limited=True)
            self.backoff.on_failure(FailureKind.RATE_LIMITED, retry_after=e.retry_after)
            return
        except RemoteChannelError as e:
            _log(f"[engine] fetch failed: {e}")
            self.stats.record_failure()
            self.backoff.on_failure(FailureKind.TRANSIENT)
            return

        self.backoff.on_success()
        if not batch:
            return

        delta = compute_delta(self.cursor.last_seen_id, batch)
        if not delta:
            return

        for message in delta:
            self._triage(message)

        self.cursor.advance(batch[0].id)

    def _triage(self, message: Message):
        policy = self._policy
        reason = skip_reason(policy, message, self._rng)
        if reason:
            self.stats.record_skip(reason)
            _log(f"[engine] skip message {message.id} ({reason})")
            return

        delay_ms = reaction_delay_ms(policy, message, self._rng)
        task = asyncio.create_task(self._react_later(message, policy.emoji, delay_ms))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _react_later(self, message: Message, emoji: str, delay_ms: int):
        await self._sleep(delay_ms / 1000)
        try:
            result = await self._channel.add_reaction(self.channel_id, message.id, emoji)
        except Exception as e:
            _log(f"[engine] error adding reaction to message {message.id}: {e}")
            self.stats.record_failure()
            self.backoff.on_failure(FailureKind.TRANSIENT)
            return

        if result.outcome is ReactionOutcome.OK:
            self.stats.record_reaction()
            self.backoff.on_success()
            _log(f"[engine] added {emoji} reaction to message: {message.id}")
        elif result.outcome is ReactionOutcome.RATE_LIMITED:
            self.stats.record_failure(rate_limited=True)
            self.backoff.on_failure(FailureKind.RATE_LIMITED, retry_after=result.retry_after)
            _log(f"[engine] rate limited reacting to message {message.id}, not retrying")
        else:
            self.stats.record_failure()
            self.backoff.on_failure(FailureKind.TRANSIENT)
            _log(f"[engine] error adding reaction to message {message.id}: {result.error}")

    async def drain(self, timeout: float) -> int:
        """Wait up to timeout seconds for scheduled reactions. Returns how many were abandoned."""
        pending = list(self._pending)
        if not pending:
            return 0
        if timeout > 0:
            _, still_pending = await asyncio.wait(pending, timeout=timeout)
        else:
            still_pending = set(pending)
        for task in still_pending:
            task.cancel()
        if still_pending:
            _log(f"[engine] abandoned {len(still_pending)} scheduled reaction(s)")
        return len(still_pending)
