"""Cycle state read/write over the state database.

Each scan mode stores one opaque JSON document under its own key. The
document is replaced wholesale at the end of every cycle.

CRITICAL: Decimal values are stored as strings and restored as Decimal.
"""

import json
import time

from scanner.exceptions import StateCorrupt
from scanner.logging import get_logger
from scanner.models import CycleState
from scanner.storage.database import StateDatabase

logger = get_logger(__name__)


class CycleStateStore:
    """Load and save the CycleState for one scan mode.

    Usage:
        async with StateDatabase("data/scanner.db") as database:
            store = CycleStateStore(database, "pump")
            previous = await store.load_state()
            ...
            await store.save_state(new_state)
    """

    def __init__(self, database: StateDatabase, key: str) -> None:
        self._database = database
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    async def load_state(self) -> CycleState | None:
        """Return the last saved state, or None if absent or unreadable.

        A payload that fails to parse or validate is logged and treated as
        no prior state, so the next cycle starts fresh.
        """
        cursor = await self._database.db.execute(
            "SELECT payload FROM cycle_state WHERE key = ?", (self._key,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None

        try:
            return CycleState.from_dict(json.loads(row[0]))
        except (json.JSONDecodeError, StateCorrupt) as e:
            logger.warning("cycle_state_corrupt", key=self._key, error=str(e))
            return None

    async def save_state(self, state: CycleState) -> None:
        """Replace the stored state for this key."""
        payload = json.dumps(state.to_dict())
        await self._database.db.execute(
            "INSERT OR REPLACE INTO cycle_state (key, payload, updated_at) VALUES (?, ?, ?)",
            (self._key, payload, int(time.time() * 1000)),
        )
        await self._database.db.commit()
        logger.debug(
            "cycle_state_saved",
            key=self._key,
            instruments=len(state.ranked_instruments),
            whitelist=list(state.whitelist),
        )

    async def clear(self) -> None:
        """Delete the stored state so the next cycle behaves as a first run."""
        await self._database.db.execute("DELETE FROM cycle_state WHERE key = ?", (self._key,))
        await self._database.db.commit()
        logger.info("cycle_state_cleared", key=self._key)
