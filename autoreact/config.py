"""Configuration — read once from the environment (and .env) at startup."""

__version__ = "0.1.0"

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from autoreact.domain.backoff import BackoffSettings
from autoreact.domain.models import ReactionPolicy

load_dotenv()

SUPPORTED_TRANSPORTS = ("rest", "client")
DEFAULT_API_BASE = "https://discord.com/api/v10"


class ConfigurationError(Exception):
    """Raised when required settings are missing or invalid."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class _EnvReader:
    """Collects parse problems instead of failing on the first one."""

    def __init__(self, env: Mapping[str, str]):
        self._env = env
        self.problems: List[str] = []

    def get_str(self, name: str, default: str = "") -> str:
        return str(self._env.get(name, default) or default).strip()

    def get_int(self, name: str, default: int) -> int:
        raw = self.get_str(name)
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            self.problems.append(f"{name} must be an integer (got {raw!r})")
            return default

    def get_float(self, name: str, default: float) -> float:
        raw = self.get_str(name)
        if not raw:
            return default
        try:
            return float(raw)
        except ValueError:
            self.problems.append(f"{name} must be a number (got {raw!r})")
            return default

    def get_bool(self, name: str, default: bool) -> bool:
        raw = self.get_str(name).lower()
        if not raw:
            return default
        return raw in ("1", "true", "yes", "on")


@dataclass
class DiscordSettings:
    token: str = ""
    channel_id: int = 0
    transport: str = "rest"
    api_base: str = DEFAULT_API_BASE
    request_timeout_seconds: float = 15.0


@dataclass
class StatusServerSettings:
    port: int = 0
    host: str = "127.0.0.1"

    @property
    def enabled(self) -> bool:
        return self.port > 0


@dataclass
class AppConfig:
    """Typed configuration for one reaction bot instance."""

    discord: DiscordSettings = field(default_factory=DiscordSettings)
    policy: ReactionPolicy = field(default_factory=ReactionPolicy)
    backoff: BackoffSettings = field(default_factory=BackoffSettings)
    interval_variation_ms: int = 1000
    fetch_limit: int = 10
    cursor_file: str = "reaction-log.json"
    stats_enabled: bool = True
    stats_log_every: int = 0
    shutdown_grace_ms: int = 5000
    status: StatusServerSettings = field(default_factory=StatusServerSettings)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Build and validate config. Raises ConfigurationError listing every problem."""
        source = os.environ if env is None else env
        r = _EnvReader(source)

        raw_channel = r.get_str("CHANNEL_ID")
        channel_id = 0
        if raw_channel:
            try:
                channel_id = int(raw_channel)
            except ValueError:
                r.problems.append(f"CHANNEL_ID must be a numeric id (got {raw_channel!r})")

        error_threshold = r.get_int("ERROR_THRESHOLD", 3)
        transient_raw = r.get_str("TRANSIENT_ERROR_THRESHOLD")
        transient_threshold = r.get_int("TRANSIENT_ERROR_THRESHOLD", error_threshold) if transient_raw else None

        config = cls(
            discord=DiscordSettings(
                token=r.get_str("DISCORD_TOKEN"),
                channel_id=channel_id,
                transport=r.get_str("DISCORD_TRANSPORT", "rest").lower(),
                api_base=r.get_str("DISCORD_API_BASE", DEFAULT_API_BASE),
                request_timeout_seconds=r.get_float("REQUEST_TIMEOUT_SECONDS", 15.0),
            ),
            policy=ReactionPolicy(
                emoji=r.get_str("DEFAULT_EMOJI", "🔥"),
                probability_percent=r.get_float("REACTION_PROBABILITY", 100.0),
                min_delay_ms=r.get_int("MIN_DELAY_MS", 1000),
                max_delay_ms=r.get_int("MAX_DELAY_MS", 3000),
                reading_ms_per_char=r.get_int("READING_MS_PER_CHAR", 20),
                max_reading_ms=r.get_int("MAX_READING_MS", 3000),
            ),
            backoff=BackoffSettings(
                base_interval_ms=r.get_int("CHECK_INTERVAL_MS", 5000),
                max_backoff_ms=r.get_int("MAX_BACKOFF_MS", 60000),
                error_threshold=error_threshold,
                transient_error_threshold=transient_threshold,
                backoff_multiplier=r.get_float("BACKOFF_MULTIPLIER", 2.0),
            ),
            interval_variation_ms=r.get_int("INTERVAL_VARIATION_MS", 1000),
            fetch_limit=r.get_int("FETCH_LIMIT", 10),
            # An explicitly empty CURSOR_FILE disables persistence
            cursor_file=r.get_str("CURSOR_FILE") if "CURSOR_FILE" in source else "reaction-log.json",
            stats_enabled=r.get_bool("STATS_ENABLED", True),
            stats_log_every=r.get_int("STATS_LOG_EVERY", 0),
            shutdown_grace_ms=r.get_int("SHUTDOWN_GRACE_MS", 5000),
            status=StatusServerSettings(
                port=r.get_int("STATUS_PORT", 0),
                host=r.get_str("STATUS_HOST", "127.0.0.1"),
            ),
        )
        problems = r.problems + config.problems()
        if problems:
            raise ConfigurationError(problems)
        return config

    def problems(self) -> List[str]:
        """Return human-readable validation problems (empty when valid)."""
        found = []
        if not self.discord.token:
            found.append("DISCORD_TOKEN is not set")
        if self.discord.channel_id <= 0:
            found.append("CHANNEL_ID is not set")
        if self.discord.transport not in SUPPORTED_TRANSPORTS:
            found.append(
                f"DISCORD_TRANSPORT must be one of {', '.join(SUPPORTED_TRANSPORTS)} "
                f"(got {self.discord.transport!r})"
            )
        if self.discord.request_timeout_seconds <= 0:
            found.append("REQUEST_TIMEOUT_SECONDS must be positive")

        p = self.policy
        if not p.emoji:
            found.append("DEFAULT_EMOJI must not be empty")
        if not 0 <= p.probability_percent <= 100:
            found.append("REACTION_PROBABILITY must be between 0 and 100")
        if p.min_delay_ms < 0 or p.max_delay_ms < p.min_delay_ms:
            found.append("MIN_DELAY_MS/MAX_DELAY_MS must satisfy 0 <= min <= max")
        if p.reading_ms_per_char < 0 or p.max_reading_ms < 0:
            found.append("READING_MS_PER_CHAR and MAX_READING_MS must not be negative")

        b = self.backoff
        if b.base_interval_ms <= 0:
            found.append("CHECK_INTERVAL_MS must be positive")
        if b.max_backoff_ms < b.base_interval_ms:
            found.append("MAX_BACKOFF_MS must be >= CHECK_INTERVAL_MS")
        if b.error_threshold < 1:
            found.append("ERROR_THRESHOLD must be at least 1")
        if b.transient_error_threshold is not None and b.transient_error_threshold < 0:
            found.append("TRANSIENT_ERROR_THRESHOLD must not be negative")
        if b.backoff_multiplier <= 1:
            found.append("BACKOFF_MULTIPLIER must be greater than 1")

        if self.interval_variation_ms < 0:
            found.append("INTERVAL_VARIATION_MS must not be negative")
        if not 1 <= self.fetch_limit <= 100:
            found.append("FETCH_LIMIT must be between 1 and 100")
        if self.stats_log_every < 0:
            found.append("STATS_LOG_EVERY must not be negative")
        if self.shutdown_grace_ms < 0:
            found.append("SHUTDOWN_GRACE_MS must not be negative")
        if not 0 <= self.status.port <= 65535:
            found.append("STATUS_PORT must be between 0 and 65535")
        return found
