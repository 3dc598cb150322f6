"""Discord transports implementing RemoteChannelPort."""

from autoreact.adapters.discord.rest_channel import DiscordRestChannel

__all__ = ["DiscordRestChannel"]
