"""autoreact — polls a Discord channel and reacts to new messages at a human pace."""

from autoreact.config import __version__, AppConfig, ConfigurationError
from autoreact.domain import (
    BackoffController,
    BackoffSettings,
    Cursor,
    Message,
    PollScheduler,
    ReactionEngine,
    ReactionPolicy,
    StatsReporter,
    compute_delta,
)

__all__ = [
    "__version__",
    "AppConfig",
    "ConfigurationError",
    "BackoffController",
    "BackoffSettings",
    "Cursor",
    "Message",
    "PollScheduler",
    "ReactionEngine",
    "ReactionPolicy",
    "StatsReporter",
    "compute_delta",
]
