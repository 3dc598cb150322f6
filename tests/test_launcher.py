"""Tests for the launcher wiring and lifecycle."""

import asyncio
import json
import socket
from unittest.mock import patch

import pytest

from autoreact.adapters.discord.client_channel import DiscordClientChannel
from autoreact.adapters.discord.rest_channel import DiscordRestChannel
from autoreact.config import AppConfig, ConfigurationError, DiscordSettings, StatusServerSettings
from autoreact.domain.backoff import BackoffSettings
from autoreact.domain.models import Message, ReactionPolicy, ReactionResult, RemoteChannelError
from autoreact.launcher import _create_channel, _create_cursor, main, run_bot


def _msgs(*numbers):
    return [Message(id=f"m{n}", author_is_bot=False, content="") for n in numbers]


class FakeChannel:
    def __init__(self, *batches):
        self.batches = list(batches)
        self.reactions = []
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True

    async def close(self):
        self.closed = True

    async def list_recent_messages(self, channel_id, limit):
        return list(self.batches.pop(0) if len(self.batches) > 1 else self.batches[0])

    async def add_reaction(self, channel_id, message_id, emoji):
        self.reactions.append(message_id)
        return ReactionResult.ok()


def _config(cursor_file="", **overrides):
    return AppConfig(
        discord=DiscordSettings(token="tok", channel_id=1),
        policy=ReactionPolicy(min_delay_ms=0, max_delay_ms=0, reading_ms_per_char=0),
        backoff=BackoffSettings(base_interval_ms=10, max_backoff_ms=100),
        interval_variation_ms=0,
        cursor_file=cursor_file,
        shutdown_grace_ms=1000,
        **overrides,
    )


async def _run_for(config, channel, seconds):
    stop = asyncio.Event()
    asyncio.get_running_loop().call_later(seconds, stop.set)
    return await run_bot(config, channel=channel, stop_event=stop)


class TestFactories:
    def test_rest_transport(self):
        assert isinstance(_create_channel(_config()), DiscordRestChannel)

    def test_client_transport(self):
        config = _config()
        config.discord.transport = "client"
        assert isinstance(_create_channel(config), DiscordClientChannel)

    def test_cursor_without_file_is_memory_only(self):
        assert _create_cursor(_config()).persistent is False

    def test_cursor_loads_existing_file(self, tmp_path):
        path = tmp_path / "reaction-log.json"
        path.write_text(json.dumps({"lastMessageId": "m7"}), encoding="utf-8")
        cursor = _create_cursor(_config(cursor_file=str(path)))
        assert cursor.persistent is True
        assert cursor.last_seen_id == "m7"


class TestRunBot:
    @pytest.mark.asyncio
    async def test_reacts_to_latest_then_new_messages(self, tmp_path):
        path = tmp_path / "reaction-log.json"
        channel = FakeChannel(_msgs(2, 1), _msgs(4, 3, 2, 1))
        engine = await _run_for(_config(cursor_file=str(path)), channel, 0.2)

        assert channel.opened is True
        assert channel.closed is True
        assert channel.reactions == ["m2", "m3", "m4"]
        assert engine.stats.reacted_count == 3
        assert json.loads(path.read_text(encoding="utf-8"))["lastMessageId"] == "m4"

    @pytest.mark.asyncio
    async def test_resumes_from_persisted_cursor(self, tmp_path):
        path = tmp_path / "reaction-log.json"
        path.write_text(json.dumps({"lastMessageId": "m3"}), encoding="utf-8")
        channel = FakeChannel(_msgs(5, 4, 3, 2))
        await _run_for(_config(cursor_file=str(path)), channel, 0.1)
        assert channel.reactions == ["m4", "m5"]

    @pytest.mark.asyncio
    async def test_open_failure_propagates(self):
        class _Broken(FakeChannel):
            async def open(self):
                raise RemoteChannelError("login failed")

        with pytest.raises(RemoteChannelError):
            await _run_for(_config(), _Broken([]), 0.05)


class TestMain:
    def test_configuration_error_exits_1(self):
        with patch("autoreact.launcher.AppConfig.from_env",
                   side_effect=ConfigurationError(["DISCORD_TOKEN is not set"])):
            assert main() == 1

    def test_clean_run_exits_0(self):
        with patch("autoreact.launcher.AppConfig.from_env", return_value=_config()), \
             patch("autoreact.launcher.asyncio.run", side_effect=lambda coro: coro.close()):
            assert main() == 0

    def test_startup_failure_exits_1(self):
        def _fail(coro):
            coro.close()
            raise RemoteChannelError("login failed")

        with patch("autoreact.launcher.AppConfig.from_env", return_value=_config()), \
             patch("autoreact.launcher.asyncio.run", side_effect=_fail):
            assert main() == 1


class TestStatusServer:
    @pytest.mark.asyncio
    async def test_port_in_use_does_not_stop_polling(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen(1)
            port = sock.getsockname()[1]

            channel = FakeChannel(_msgs(1))
            config = _config(status=StatusServerSettings(port=port, host="127.0.0.1"))
            engine = await _run_for(config, channel, 0.3)

        assert channel.closed is True
        assert channel.reactions == ["m1"]
        assert engine.stats.cycles >= 2
