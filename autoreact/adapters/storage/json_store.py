"""JSON file-based cursor storage — implements CursorStorePort."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional


class JsonCursorStore:
    """Single-record JSON file, e.g. ``{"lastMessageId": "...", "lastUpdated": "..."}``.

    One process per file; there is no locking.
    """

    def __init__(self, path: str = "reaction-log.json"):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return raw if isinstance(raw, dict) else None

    def save(self, record: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(record, ensure_ascii=False)
        # Atomic write
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._path.parent), suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, str(self._path))
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
