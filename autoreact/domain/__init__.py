"""Domain layer — pure Python, no framework dependencies."""

from autoreact.domain.models import (
    FailureKind,
    Message,
    RateLimitError,
    ReactionOutcome,
    ReactionPolicy,
    ReactionResult,
    RemoteChannelError,
)
from autoreact.domain.cursor import Cursor, compute_delta
from autoreact.domain.backoff import BackoffController, BackoffSettings
from autoreact.domain.stats import StatsReporter
from autoreact.domain.engine import ReactionEngine
from autoreact.domain.scheduler import PollScheduler

__all__ = [
    "FailureKind",
    "Message",
    "RateLimitError",
    "ReactionOutcome",
    "ReactionPolicy",
    "ReactionResult",
    "RemoteChannelError",
    "Cursor",
    "compute_delta",
    "BackoffController",
    "BackoffSettings",
    "StatsReporter",
    "ReactionEngine",
    "PollScheduler",
]
