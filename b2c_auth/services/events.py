"""Login events emitted for audit and telemetry consumers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class UserLoggedInEvent(BaseModel):
    """A user signed in through the B2C plugin."""

    name: str = "user_loggedin"
    objectid: int
    userid: int
    other: Dict[str, Any] = Field(default_factory=dict)
    timecreated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @classmethod
    def create(cls, *, userid: int, username: str) -> "UserLoggedInEvent":
        return cls(objectid=userid, userid=userid, other={"username": username})


class EventSink(Protocol):
    def trigger(self, event: UserLoggedInEvent) -> None:
        ...


class LoggingEventSink:
    """Write events to the application log as single structured lines."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def trigger(self, event: UserLoggedInEvent) -> None:
        self._log.info("event %s", event.model_dump_json())


class RecordingEventSink:
    """Keep triggered events in memory for embedding hosts to drain."""

    def __init__(self) -> None:
        self.events: List[UserLoggedInEvent] = []

    def trigger(self, event: UserLoggedInEvent) -> None:
        self.events.append(event)

    def drain(self) -> List[UserLoggedInEvent]:
        drained, self.events = self.events, []
        return drained


__all__ = [
    "EventSink",
    "LoggingEventSink",
    "RecordingEventSink",
    "UserLoggedInEvent",
]
