"""Domain data models — pure Python dataclasses."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Message:
    """Channel message as fetched for one poll cycle."""

    id: str
    author_is_bot: bool
    content: str = ""
    posted_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReactionPolicy:
    """How and when to react. Never mutated; use with_emoji() to swap."""

    emoji: str = "🔥"
    probability_percent: float = 100.0
    min_delay_ms: int = 1000
    max_delay_ms: int = 3000
    reading_ms_per_char: int = 20
    max_reading_ms: int = 3000

    def with_emoji(self, emoji: str) -> "ReactionPolicy":
        return replace(self, emoji=emoji)


class FailureKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"


class ReactionOutcome(str, Enum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


@dataclass
class ReactionResult:
    """Unified result type for add_reaction calls."""

    outcome: ReactionOutcome
    error: Optional[str] = None
    retry_after: Optional[float] = None  # seconds, when the remote says so

    @property
    def success(self) -> bool:
        return self.outcome is ReactionOutcome.OK

    @classmethod
    def ok(cls) -> "ReactionResult":
        return cls(outcome=ReactionOutcome.OK)

    @classmethod
    def rate_limited(cls, retry_after: Optional[float] = None) -> "ReactionResult":
        return cls(
            outcome=ReactionOutcome.RATE_LIMITED,
            error="Rate limited (429)",
            retry_after=retry_after,
        )

    @classmethod
    def failed(cls, error: str) -> "ReactionResult":
        return cls(outcome=ReactionOutcome.ERROR, error=error)


class RemoteChannelError(Exception):
    """Raised when listing channel messages fails."""


class RateLimitError(RemoteChannelError):
    """Raised when the remote service answers with 429."""

    def __init__(self, message: str = "Rate limited (429)", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after
