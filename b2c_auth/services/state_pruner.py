"""Scheduled removal of expired authorization handshake state."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_STATE_TTL_SECONDS = 300


class StateRecordStore(Protocol):
    def delete_states_before(self, threshold: datetime) -> int:
        ...


class StateRecordPruner:
    """Delete state records created strictly before ``now - ttl``.

    Storage errors are not caught here; the scheduler that invoked the job
    sees them.
    """

    def __init__(
        self, store: StateRecordStore, ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("State TTL must be a positive number of seconds.")
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)

    def prune(self, now: Optional[datetime] = None) -> int:
        """Run one pruning pass and return how many records were removed."""
        current = now or datetime.now(timezone.utc)
        threshold = current - self._ttl
        deleted = self._store.delete_states_before(threshold)
        if deleted:
            logger.info("Pruned %d expired auth state record(s)", deleted)
        return deleted


__all__ = ["DEFAULT_STATE_TTL_SECONDS", "StateRecordPruner", "StateRecordStore"]
