"""Discord channel via discord.py's HTTP layer (no gateway connection).

discord.py handles ordinary per-route 429s itself by sleeping and retrying;
only what it gives up on reaches the engine as a rate limit.
"""

import sys
from typing import Dict, List, Optional

import discord

from autoreact.domain.models import (
    Message,
    RateLimitError,
    ReactionResult,
    RemoteChannelError,
)


def _log(msg: str):
    print(msg, file=sys.stderr)


def to_message(message: discord.Message) -> Message:
    return Message(
        id=str(message.id),
        author_is_bot=bool(message.author.bot),
        content=message.content or "",
        posted_at=message.created_at,
    )


class DiscordClientChannel:
    """RemoteChannelPort implementation backed by discord.Client."""

    def __init__(self, token: str, client: Optional[discord.Client] = None):
        self._token = token
        if client is None:
            intents = discord.Intents.default()
            intents.message_content = True
            client = discord.Client(intents=intents)
        self._client = client
        self._channels: Dict[int, discord.abc.Messageable] = {}
        self._logged_in = False

    async def open(self) -> None:
        if self._logged_in:
            return
        try:
            await self._client.login(self._token)
        except discord.LoginFailure as e:
            raise RemoteChannelError(f"Discord login failed: {e}") from e
        self._logged_in = True
        _log(f"[discord] logged in as {self._client.user}")

    async def close(self) -> None:
        await self._client.close()
        self._logged_in = False

    async def _channel(self, channel_id: int):
        channel = self._channels.get(channel_id) or self._client.get_channel(channel_id)
        if channel is None:
            channel = await self._client.fetch_channel(channel_id)
        self._channels[channel_id] = channel
        return channel

    async def list_recent_messages(self, channel_id: int, limit: int) -> List[Message]:
        try:
            channel = await self._channel(channel_id)
            messages = [m async for m in channel.history(limit=limit)]
        except discord.RateLimited as e:
            raise RateLimitError(
                f"Discord API rate limited, retry in {e.retry_after:.1f}s", retry_after=e.retry_after
            ) from e
        except discord.HTTPException as e:
            if e.status == 429:
                raise RateLimitError(f"Discord API rate limited (429): {e.text}") from e
            raise RemoteChannelError(f"Discord API failed (HTTP {e.status}): {e.text}") from e
        except discord.DiscordException as e:
            raise RemoteChannelError(str(e)) from e
        # history() is already newest-first
        return [to_message(m) for m in messages]

    async def add_reaction(self, channel_id: int, message_id: str, emoji: str) -> ReactionResult:
        try:
            channel = await self._channel(channel_id)
            await channel.get_partial_message(int(message_id)).add_reaction(emoji)
        except discord.RateLimited as e:
            return ReactionResult.rate_limited(e.retry_after)
        except discord.HTTPException as e:
            if e.status == 429:
                return ReactionResult.rate_limited()
            return ReactionResult.failed(f"HTTP {e.status}: {e.text}")
        except (discord.DiscordException, ValueError) as e:
            return ReactionResult.failed(str(e))
        return ReactionResult.ok()
