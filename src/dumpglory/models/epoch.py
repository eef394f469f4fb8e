"""Epoch data models — the game's clock state and finalized snapshots.

The game alternates between two phases:

    ACTIVE (epoch N) → WAITING → ACTIVE (epoch N+1) → ...

Exactly one epoch is current. Finalized epochs are kept as immutable
snapshots so their averages and leaderboard stay readable after the
working state has been reset for the next epoch.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


class EpochPhase(str, enum.Enum):
    """Phase of the current epoch."""
    WAITING = "waiting"
    ACTIVE = "active"


@dataclass
class EpochState:
    """Mutable state of the current epoch.

    Timing (unix seconds):
    - start_time: when the ACTIVE phase began
    - end_time: when the ACTIVE phase runs out (start + duration)
    - waiting_start: when finalize moved the game into WAITING
    - waiting_period_end: earliest moment the next epoch may start
    """
    number: int = 1
    phase: EpochPhase = EpochPhase.ACTIVE
    start_time: int = 0
    end_time: int = 0
    waiting_start: Optional[int] = None
    waiting_period_end: Optional[int] = None
    # Accounts that signed up for the next epoch during WAITING
    signups: list[str] = field(default_factory=list)
    join_fees_collected: int = 0


@dataclass(frozen=True)
class EpochSnapshot:
    """Final, read-only record of a finalized epoch."""
    number: int
    start_time: int
    end_time: int
    finalized_time: int
    average_holdings: dict[str, int]
    leaderboard: list[str]
