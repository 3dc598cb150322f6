"""Discord REST channel client using aiohttp."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from autoreact.config import __version__
from autoreact.domain.models import (
    Message,
    RateLimitError,
    ReactionResult,
    RemoteChannelError,
)

DISCORD_API_BASE = "https://discord.com/api/v10"
USER_AGENT = f"DiscordBot (autoreact, {__version__})"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None


def to_message(raw: Dict[str, Any]) -> Message:
    author = raw.get("author") or {}
    return Message(
        id=str(raw.get("id", "")),
        author_is_bot=bool(author.get("bot", False)),
        content=raw.get("content") or "",
        posted_at=parse_timestamp(raw.get("timestamp")),
    )


def _sort_key(message: Message):
    # Snowflake ids grow with time; use them when the timestamp is missing
    ts = message.posted_at.timestamp() if message.posted_at else 0.0
    try:
        snowflake = int(message.id)
    except ValueError:
        snowflake = 0
    return (ts, snowflake)


def sort_newest_first(messages: List[Message]) -> List[Message]:
    return sorted(messages, key=_sort_key, reverse=True)


async def _retry_after(resp) -> Optional[float]:
    try:
        data = await resp.json()
        if isinstance(data, dict) and data.get("retry_after") is not None:
            return float(data["retry_after"])
    except (aiohttp.ContentTypeError, ValueError, TypeError):
        pass
    header = resp.headers.get("Retry-After") if resp.headers else None
    try:
        return float(header) if header else None
    except ValueError:
        return None


class DiscordRestChannel:
    """Async Discord REST client for listing messages and adding reactions."""

    def __init__(self, token: str, api_base: str = DISCORD_API_BASE, timeout_seconds: float = 15.0):
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bot {self._token}",
            "User-Agent": USER_AGENT,
        }

    def _messages_url(self, channel_id: int) -> str:
        return f"{self._api_base}/channels/{channel_id}/messages"

    def _reaction_url(self, channel_id: int, message_id: str, emoji: str) -> str:
        # Custom emoji are sent as name:id
        encoded = quote(emoji, safe=":")
        return f"{self._messages_url(channel_id)}/{message_id}/reactions/{encoded}/@me"

    async def open(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def list_recent_messages(self, channel_id: int, limit: int) -> List[Message]:
        params = {"limit": str(max(1, min(100, limit)))}
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(
                    self._messages_url(channel_id), headers=self._headers, params=params
                ) as resp:
                    if resp.status == 429:
                        raise RateLimitError(
                            "Discord API rate limited (429)", retry_after=await _retry_after(resp)
                        )
                    if resp.status >= 400:
                        body = await resp.text()
                        raise RemoteChannelError(f"Discord API failed (HTTP {resp.status}): {body}")
                    data = await resp.json()
        except RemoteChannelError:
            raise
        except Exception as e:
            raise RemoteChannelError(str(e) or e.__class__.__name__) from e

        if not isinstance(data, list):
            raise RemoteChannelError(f"Unexpected messages payload: {str(data)[:200]}")
        return sort_newest_first([to_message(item) for item in data if isinstance(item, dict)])

    async def add_reaction(self, channel_id: int, message_id: str, emoji: str) -> ReactionResult:
        url = self._reaction_url(channel_id, message_id, emoji)
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.put(url, headers=self._headers) as resp:
                    if resp.status == 429:
                        return ReactionResult.rate_limited(await _retry_after(resp))
                    if resp.status >= 400:
                        body = await resp.text()
                        return ReactionResult.failed(f"HTTP {resp.status}: {body}")
                    return ReactionResult.ok()
        except Exception as e:
            return ReactionResult.failed(str(e) or e.__class__.__name__)
