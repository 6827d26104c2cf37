"""Cycle state persistence layer (SQLite via aiosqlite)."""

from scanner.storage.database import StateDatabase
from scanner.storage.state_store import CycleStateStore

__all__ = ["CycleStateStore", "StateDatabase"]
