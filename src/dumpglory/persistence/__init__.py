"""Persistence layer — event log and state storage."""

from dumpglory.persistence.event_log import EventLog, EventRecord, EventKind
from dumpglory.persistence.state_store import StateStore

__all__ = ["EventLog", "EventRecord", "EventKind", "StateStore"]
