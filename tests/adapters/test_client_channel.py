"""Unit tests for DiscordClientChannel (discord.py transport)."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from autoreact.adapters.discord.client_channel import DiscordClientChannel
from autoreact.domain.models import RateLimitError, ReactionOutcome, RemoteChannelError


def _http_error(status, text="error"):
    return discord.HTTPException(MagicMock(status=status, reason="Error"), text)


def _discord_message(msg_id, *, bot=False, content="hi"):
    m = MagicMock()
    m.id = msg_id
    m.author.bot = bot
    m.content = content
    m.created_at = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return m


class _History:
    def __init__(self, items):
        self._items = list(items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._items:
            raise StopAsyncIteration
        return self._items.pop(0)


def _setup(history_items=None, history_error=None):
    client = MagicMock()
    client.login = AsyncMock()
    client.close = AsyncMock()
    client.fetch_channel = AsyncMock()
    channel = MagicMock()
    if history_error is not None:
        channel.history = MagicMock(side_effect=history_error)
    else:
        channel.history = MagicMock(return_value=_History(history_items or []))
    partial = MagicMock()
    partial.add_reaction = AsyncMock()
    channel.get_partial_message = MagicMock(return_value=partial)
    client.get_channel = MagicMock(return_value=channel)
    return client, channel, partial


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_open_logs_in_once(self):
        client, _, _ = _setup()
        transport = DiscordClientChannel("tok", client=client)
        await transport.open()
        await transport.open()
        client.login.assert_awaited_once_with("tok")

    @pytest.mark.asyncio
    async def test_login_failure_becomes_channel_error(self):
        client, _, _ = _setup()
        client.login = AsyncMock(side_effect=discord.LoginFailure("bad token"))
        transport = DiscordClientChannel("tok", client=client)
        with pytest.raises(RemoteChannelError, match="login failed"):
            await transport.open()

    @pytest.mark.asyncio
    async def test_close(self):
        client, _, _ = _setup()
        transport = DiscordClientChannel("tok", client=client)
        await transport.close()
        client.close.assert_awaited_once()


class TestListRecentMessages:
    @pytest.mark.asyncio
    async def test_maps_history(self):
        client, channel, _ = _setup([
            _discord_message(3, content="newest"),
            _discord_message(2, bot=True),
        ])
        transport = DiscordClientChannel("tok", client=client)
        messages = await transport.list_recent_messages(99, 10)
        assert [m.id for m in messages] == ["3", "2"]
        assert messages[0].content == "newest"
        assert messages[1].author_is_bot is True
        channel.history.assert_called_once_with(limit=10)
        client.get_channel.assert_called_once_with(99)

    @pytest.mark.asyncio
    async def test_fetches_uncached_channel(self):
        client, channel, _ = _setup([])
        client.get_channel = MagicMock(return_value=None)
        client.fetch_channel = AsyncMock(return_value=channel)
        transport = DiscordClientChannel("tok", client=client)
        await transport.list_recent_messages(99, 10)
        await transport.list_recent_messages(99, 10)
        client.fetch_channel.assert_awaited_once_with(99)

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        client, _, _ = _setup(history_error=_http_error(429, "slow down"))
        transport = DiscordClientChannel("tok", client=client)
        with pytest.raises(RateLimitError):
            await transport.list_recent_messages(1, 10)

    @pytest.mark.asyncio
    async def test_http_error(self):
        client, _, _ = _setup(history_error=_http_error(403, "Missing Access"))
        transport = DiscordClientChannel("tok", client=client)
        with pytest.raises(RemoteChannelError, match="HTTP 403") as exc:
            await transport.list_recent_messages(1, 10)
        assert not isinstance(exc.value, RateLimitError)


class TestAddReaction:
    @pytest.mark.asyncio
    async def test_success(self):
        client, channel, partial = _setup()
        transport = DiscordClientChannel("tok", client=client)
        result = await transport.add_reaction(1, "42", "🔥")
        assert result.success is True
        channel.get_partial_message.assert_called_once_with(42)
        partial.add_reaction.assert_awaited_once_with("🔥")

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        client, _, partial = _setup()
        partial.add_reaction = AsyncMock(side_effect=_http_error(429))
        transport = DiscordClientChannel("tok", client=client)
        result = await transport.add_reaction(1, "42", "🔥")
        assert result.outcome is ReactionOutcome.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_forbidden(self):
        client, _, partial = _setup()
        partial.add_reaction = AsyncMock(side_effect=_http_error(403, "Missing Permissions"))
        transport = DiscordClientChannel("tok", client=client)
        result = await transport.add_reaction(1, "42", "🔥")
        assert result.outcome is ReactionOutcome.ERROR
        assert "403" in result.error

    @pytest.mark.asyncio
    async def test_non_numeric_id(self):
        client, _, _ = _setup()
        transport = DiscordClientChannel("tok", client=client)
        result = await transport.add_reaction(1, "not-a-snowflake", "🔥")
        assert result.success is False


class TestGiveUpRateLimit:
    @pytest.mark.asyncio
    async def test_history_rate_limit_keeps_retry_after(self):
        client, _, _ = _setup(history_error=discord.RateLimited(42.0))
        transport = DiscordClientChannel("tok", client=client)
        with pytest.raises(RateLimitError) as exc:
            await transport.list_recent_messages(1, 10)
        assert exc.value.retry_after == 42.0

    @pytest.mark.asyncio
    async def test_reaction_rate_limit_keeps_retry_after(self):
        client, _, partial = _setup()
        partial.add_reaction = AsyncMock(side_effect=discord.RateLimited(9.5))
        transport = DiscordClientChannel("tok", client=client)
        result = await transport.add_reaction(1, "42", "🔥")
        assert result.outcome is ReactionOutcome.RATE_LIMITED
        assert result.retry_after == 9.5
