"""Outbound ports — interfaces for external system adapters."""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from autoreact.domain.models import Message, ReactionResult


@runtime_checkable
class RemoteChannelPort(Protocol):
    """Interface for the chat service holding the watched channel.

    list_recent_messages returns newest-first and raises RemoteChannelError
    (RateLimitError on throttling). add_reaction never raises for remote
    failures; it reports them through ReactionResult.
    """

    async def list_recent_messages(self, channel_id: int, limit: int) -> List[Message]: ...

    async def add_reaction(self, channel_id: int, message_id: str, emoji: str) -> ReactionResult: ...

    async def open(self) -> None: ...

    async def close(self) -> None: ...


@runtime_checkable
class CursorStorePort(Protocol):
    """Interface for the persisted last-seen record."""

    def load(self) -> Optional[Dict[str, Any]]: ...
    def save(self, record: Dict[str, Any]) -> None: ...
