"""Adapters for external systems (Discord, JSON files, HTTP status)."""
