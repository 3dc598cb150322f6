"""Port interfaces (Hexagonal Architecture)."""

from autoreact.ports.outbound import CursorStorePort, RemoteChannelPort

__all__ = [
    "CursorStorePort",
    "RemoteChannelPort",
]
