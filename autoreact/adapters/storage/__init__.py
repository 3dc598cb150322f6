from autoreact.adapters.storage.json_store import JsonCursorStore

__all__ = ["JsonCursorStore"]
