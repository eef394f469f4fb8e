"""Append-only, hash-chained event log — the audit trail of the game.

Every successful state change produces one event. Each record commits
to the previous record's hash, so removing, reordering or editing any
line breaks the chain. The log can be persisted to a JSONL file and is
verified line by line when loaded back.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

GENESIS_EVENT_HASH = "sha256:" + "0" * 64


class EventKind(str, enum.Enum):
    """Classification of game events."""
    GENESIS = "genesis"
    STAKED = "staked"
    SIGNED_UP = "signed_up"
    TRANSFERRED = "transferred"
    STOLEN = "stolen"
    DEMURRAGE_APPLIED = "demurrage_applied"
    EPOCH_FINALIZED = "epoch_finalized"
    EPOCH_STARTED = "epoch_started"
    COOLDOWN_RESET = "cooldown_reset"
    BUYBACK_EXECUTED = "buyback_executed"
    PAUSE_CHANGED = "pause_changed"
    BUG_REPORT_SUBMITTED = "bug_report_submitted"
    BUG_REPORT_VERIFIED = "bug_report_verified"
    BUG_BOUNTY_PAID = "bug_bounty_paid"
    BUG_REPORT_REJECTED = "bug_report_rejected"
    BRIDGE_TRANSFER = "bridge_transfer"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    timestamp: int,
    actor: str,
    payload: dict[str, Any],
    previous_hash: str,
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp": timestamp,
            "actor": actor,
            "payload": payload,
            "previous_hash": previous_hash,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable event in the game log."""
    event_id: str
    event_kind: EventKind
    timestamp: int
    actor: str
    payload: dict[str, Any]
    previous_hash: str
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor: str,
        payload: dict[str, Any],
        timestamp: int,
        previous_hash: str = GENESIS_EVENT_HASH,
    ) -> EventRecord:
        """Create a new event record chained onto ``previous_hash``."""
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp=timestamp,
            actor=actor,
            payload=payload,
            previous_hash=previous_hash,
            event_hash=_canonical_hash(
                event_id, event_kind.value, timestamp, actor, payload, previous_hash,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "payload": self.payload,
            "previous_hash": self.previous_hash,
            "event_hash": self.event_hash,
        }


class EventLog:
    """Append-only event log with optional JSONL file persistence.

    Events can only be appended, never modified or deleted. Appending an
    event whose previous_hash is not the current head is rejected.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._event_ids: set[str] = set()
        self._storage_path = storage_path

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    @property
    def head_hash(self) -> str:
        return self._events[-1].event_hash if self._events else GENESIS_EVENT_HASH

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError on a duplicate event_id (replay protection) or
        a broken chain link.
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")
        if event.previous_hash != self.head_hash:
            raise ValueError(
                f"Chain mismatch for {event.event_id}: "
                f"expected previous {self.head_hash}, got {event.previous_hash}"
            )

        if self._storage_path:
            self._append_to_file(event)
        self._events.append(event)
        self._event_ids.add(event.event_id)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def events_for(self, actor: str) -> list[EventRecord]:
        return [e for e in self._events if e.actor == actor]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    def _append_to_file(self, event: EventRecord) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Load events from a JSONL file, verifying hashes and chain links.

        Fail-closed: a tampered record, a broken link or a duplicate ID
        aborts the load with ValueError.
        """
        previous = GENESIS_EVENT_HASH
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)
                event_id = data["event_id"]

                if event_id in self._event_ids:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {event_id}"
                    )
                if data["previous_hash"] != previous:
                    raise ValueError(
                        f"Chain broken (line {line_num}): event {event_id} "
                        f"links to {data['previous_hash']}, expected {previous}"
                    )
                expected_hash = _canonical_hash(
                    event_id,
                    data["event_kind"],
                    data["timestamp"],
                    data["actor"],
                    data["payload"],
                    data["previous_hash"],
                )
                if data["event_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): event {event_id} "
                        f"stored hash {data['event_hash']} != computed {expected_hash}"
                    )

                event = EventRecord(
                    event_id=event_id,
                    event_kind=EventKind(data["event_kind"]),
                    timestamp=data["timestamp"],
                    actor=data["actor"],
                    payload=data["payload"],
                    previous_hash=data["previous_hash"],
                    event_hash=data["event_hash"],
                )
                self._events.append(event)
                self._event_ids.add(event_id)
                previous = event.event_hash
