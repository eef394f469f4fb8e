"""State store — JSON-based persistence for game runtime state.

Stores and recovers:
- Epoch state (current phase, timing, signups) and finalized snapshots
- Participants (stake, balance, cooldowns, holding integral)
- Fee pot totals and the emergency-pause flag
- GLORY balances, supply, bug-bounty reserve and burn total
- Bug reports and per-reporter payout tallies
- Bridge rate-limit counters
- Leaderboard entries with their insertion order
- DUMP ledger counters

Amounts are 18-decimal integers and are written as JSON integers, which
keeps them exact. This is a simple file-based store suitable for a
single-node deployment.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from dumpglory.models.bounty import BugReport, Severity
from dumpglory.models.epoch import EpochPhase, EpochSnapshot, EpochState
from dumpglory.models.fee_pot import FeePotState
from dumpglory.models.participant import Participant


class StateStore:
    """JSON file-based state persistence.

    Usage:
        store = StateStore(Path("data/dumpglory_state.json"))
        store.save_epoch(state, history)
        store.save_participants(registry.all_participants())

        # On recovery:
        state, history = store.load_epoch()
        participants = store.load_participants()
    """

    def __init__(self, storage_path: Path) -> None:
        self._path = storage_path
        self._state: dict[str, Any] = {}
        if storage_path.exists():
            self._load()

    def _load(self) -> None:
        with self._path.open("r", encoding="utf-8") as f:
            self._state = json.load(f)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(self._state, f, indent=2, sort_keys=True, ensure_ascii=False)

    @property
    def has_state(self) -> bool:
        return "epoch" in self._state

    # ------------------------------------------------------------------
    # Epoch state and history
    # ------------------------------------------------------------------

    def save_epoch(self, state: EpochState, history: dict[int, EpochSnapshot]) -> None:
        """Serialize the current epoch and all finalized snapshots."""
        current = asdict(state)
        current["phase"] = state.phase.value
        self._state["epoch"] = {
            "current": current,
            "history": [asdict(history[n]) for n in sorted(history)],
        }
        self._save()

    def load_epoch(self) -> tuple[Optional[EpochState], dict[int, EpochSnapshot]]:
        """Deserialize epoch state. Returns (None, {}) if nothing was saved."""
        data = self._state.get("epoch")
        if data is None:
            return None, {}
        current = data["current"]
        state = EpochState(
            number=current["number"],
            phase=EpochPhase(current["phase"]),
            start_time=current["start_time"],
            end_time=current["end_time"],
            waiting_start=current.get("waiting_start"),
            waiting_period_end=current.get("waiting_period_end"),
            signups=list(current.get("signups", [])),
            join_fees_collected=current.get("join_fees_collected", 0),
        )
        history: dict[int, EpochSnapshot] = {}
        for snap in data.get("history", []):
            history[snap["number"]] = EpochSnapshot(
                number=snap["number"],
                start_time=snap["start_time"],
                end_time=snap["end_time"],
                finalized_time=snap["finalized_time"],
                average_holdings=dict(snap["average_holdings"]),
                leaderboard=list(snap["leaderboard"]),
            )
        return state, history

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def save_participants(self, participants: list[Participant]) -> None:
        self._state["participants"] = [asdict(p) for p in participants]
        self._save()

    def load_participants(self) -> list[Participant]:
        return [Participant(**data) for data in self._state.get("participants", [])]

    # ------------------------------------------------------------------
    # Fee pot
    # ------------------------------------------------------------------

    def save_fee_pot(self, state: FeePotState) -> None:
        self._state["fee_pot"] = asdict(state)
        self._save()

    def load_fee_pot(self) -> FeePotState:
        return FeePotState(**self._state.get("fee_pot", {}))

    # ------------------------------------------------------------------
    # GLORY
    # ------------------------------------------------------------------

    def save_glory(
        self,
        balances: dict[str, int],
        total_supply: int,
        bug_bounty_reserve: int,
        total_burned: int,
    ) -> None:
        self._state["glory"] = {
            "balances": dict(balances),
            "total_supply": total_supply,
            "bug_bounty_reserve": bug_bounty_reserve,
            "total_burned": total_burned,
        }
        self._save()

    def load_glory(self) -> Optional[dict[str, Any]]:
        """Return the saved GLORY section, or None if absent."""
        return self._state.get("glory")

    # ------------------------------------------------------------------
    # Bug bounties
    # ------------------------------------------------------------------

    def save_bug_reports(self, reports: list[BugReport], paid_counts: dict[str, int]) -> None:
        entries = []
        for report in reports:
            data = asdict(report)
            data["severity"] = report.severity.value
            entries.append(data)
        self._state["bug_bounty"] = {"reports": entries, "paid_counts": dict(paid_counts)}
        self._save()

    def load_bug_reports(self) -> tuple[list[BugReport], dict[str, int]]:
        data = self._state.get("bug_bounty", {})
        reports = []
        for entry in data.get("reports", []):
            entry = dict(entry)
            entry["severity"] = Severity(entry["severity"])
            reports.append(BugReport(**entry))
        return reports, dict(data.get("paid_counts", {}))

    # ------------------------------------------------------------------
    # Bridge, leaderboard, ledger counters
    # ------------------------------------------------------------------

    def save_bridge(self, data: dict[str, Any]) -> None:
        self._state["bridge"] = data
        self._save()

    def load_bridge(self) -> dict[str, Any]:
        return self._state.get("bridge", {})

    def save_leaderboard(self, data: dict[str, Any]) -> None:
        self._state["leaderboard"] = data
        self._save()

    def load_leaderboard(self) -> Optional[dict[str, Any]]:
        return self._state.get("leaderboard")

    def save_ledger_counters(self, total_decayed: int, event_seq: int) -> None:
        self._state["ledger"] = {"total_decayed": total_decayed, "event_seq": event_seq}
        self._save()

    def load_ledger_counters(self) -> tuple[int, int]:
        """Returns (total_decayed, event_seq); zeros if no state exists."""
        data = self._state.get("ledger", {})
        return data.get("total_decayed", 0), data.get("event_seq", 0)
