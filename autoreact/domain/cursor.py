"""Last-seen cursor and new-message delta computation.

Pure domain logic; persistence goes through an optional CursorStorePort.
"""

import sys
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from autoreact.domain.models import Message
from autoreact.ports.outbound import CursorStorePort


def _log(msg: str):
    print(msg, file=sys.stderr)


def compute_delta(last_seen_id: Optional[str], batch: Sequence[Message]) -> List[Message]:
    """Return messages newer than last_seen_id, oldest first.

    ``batch`` must be newest-first. When the cursor is absent or has fallen
    out of the fetch window only the latest message is returned, so a restart
    after downtime never reacts to a burst of unknown size.
    """
    if not batch:
        return []

    latest = batch[0]
    if latest.id == last_seen_id:
        return []

    index = -1
    if last_seen_id is not None:
        for i, message in enumerate(batch):
            if message.id == last_seen_id:
                index = i
                break

    if index > 0:
        return list(reversed(batch[:index]))
    return [latest]


class Cursor:
    """Id of the last message a poll cycle committed to having processed."""

    def __init__(self, store: Optional[CursorStorePort] = None, last_seen_id: Optional[str] = None):
        self._store = store
        self._last_seen_id = last_seen_id
        self.last_updated: Optional[str] = None

    @property
    def last_seen_id(self) -> Optional[str]:
        return self._last_seen_id

    @property
    def persistent(self) -> bool:
        return self._store is not None

    def load(self) -> Optional[str]:
        """Restore last_seen_id from the store. Missing or bad records mean no cursor."""
        if not self._store:
            return self._last_seen_id
        try:
            record = self._store.load()
        except Exception as e:
            _log(f"[cursor] could not load cursor: {e}")
            return self._last_seen_id
        if not isinstance(record, dict):
            return self._last_seen_id

        raw = record.get("lastMessageId")
        if raw is None or raw == "":
            return self._last_seen_id
        self._last_seen_id = str(raw)
        self.last_updated = record.get("lastUpdated") or None
        _log(f"[cursor] loaded last processed message id: {self._last_seen_id}")
        return self._last_seen_id

    def advance(self, message_id: str):
        """Move the cursor to message_id and mirror it to the store (best effort)."""
        if message_id == self._last_seen_id:
            return
        self._last_seen_id = message_id
        self.last_updated = datetime.now(timezone.utc).isoformat()
        if not self._store:
            return
        try:
            self._store.save({"lastMessageId": message_id, "lastUpdated": self.last_updated})
        except Exception as e:
            _log(f"[cursor] save failed: {e}")
