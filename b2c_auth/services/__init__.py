"""Service layer exports."""

from .events import (
    EventSink,
    LoggingEventSink,
    RecordingEventSink,
    UserLoggedInEvent,
)
from .state_pruner import StateRecordPruner
from .token_cipher import TokenCipherService
from .token_reconciler import TokenReconciler

__all__ = [
    "EventSink",
    "LoggingEventSink",
    "RecordingEventSink",
    "StateRecordPruner",
    "TokenCipherService",
    "TokenReconciler",
    "UserLoggedInEvent",
]
