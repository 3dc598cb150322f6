"""Per-message reaction decision and the human-paced delay before reacting."""

import random
from typing import Optional

from autoreact.domain.models import Message, ReactionPolicy

SKIP_BOT_AUTHOR = "bot_author"
SKIP_PROBABILITY = "probability"


def passes_probability_gate(policy: ReactionPolicy, rng: random.Random) -> bool:
    """Draw from [0, 100); the message is skipped when the draw exceeds the probability."""
    return rng.random() * 100 <= policy.probability_percent


def reading_time_ms(policy: ReactionPolicy, content: str) -> int:
    return min(len(content or "") * policy.reading_ms_per_char, policy.max_reading_ms)


def reaction_delay_ms(policy: ReactionPolicy, message: Message, rng: random.Random) -> int:
    """Random pause plus a reading time proportional to the message length."""
    base = rng.uniform(policy.min_delay_ms, policy.max_delay_ms)
    return int(base) + reading_time_ms(policy, message.content)


def skip_reason(policy: ReactionPolicy, message: Message, rng: random.Random) -> Optional[str]:
    """Return why the message should not get a reaction, or None to react."""
    if message.author_is_bot:
        return SKIP_BOT_AUTHOR
    if not passes_probability_gate(policy, rng):
        return SKIP_PROBABILITY
    return None
