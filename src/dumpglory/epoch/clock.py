"""Epoch clock — the WAITING/ACTIVE phase machine that gates gameplay.

    ACTIVE(N) --finalize--> WAITING --start_next--> ACTIVE(N+1)

- finalize: only once the ACTIVE phase has run its full length.
- signup: only during WAITING; the join fee rises linearly from the
  base fee to the maximum fee across the waiting period.
- start_next: only after the waiting period has elapsed. The epoch
  number increments here.

Each transition has a ``check_*`` method that validates without
mutating, so the service can verify every precondition of a compound
operation before changing anything.
"""

from __future__ import annotations

import logging
from typing import Optional

from dumpglory.errors import ErrorKind, GameError
from dumpglory.models.epoch import EpochPhase, EpochSnapshot, EpochState
from dumpglory.policy.resolver import GameResolver
from dumpglory.pricing.engine import PricingEngine

logger = logging.getLogger(__name__)


class EpochClock:
    """Tracks the current epoch, its phase and its timing."""

    def __init__(
        self,
        resolver: GameResolver,
        pricing: PricingEngine,
        start_time: int,
        state: Optional[EpochState] = None,
        history: Optional[dict[int, EpochSnapshot]] = None,
    ) -> None:
        self._duration = resolver.epoch_duration()
        self._waiting_period = resolver.waiting_period()
        self._pricing = pricing
        self._state = state or EpochState(
            number=1,
            phase=EpochPhase.ACTIVE,
            start_time=start_time,
            end_time=start_time + self._duration,
        )
        self._history: dict[int, EpochSnapshot] = dict(history or {})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> EpochState:
        return self._state

    @property
    def current_epoch(self) -> int:
        return self._state.number

    @property
    def phase(self) -> EpochPhase:
        return self._state.phase

    @property
    def start_time(self) -> int:
        return self._state.start_time

    @property
    def end_time(self) -> int:
        return self._state.end_time

    def time_remaining(self, now: int) -> int:
        """Seconds left in the ACTIVE phase (0 while WAITING or once expired)."""
        if self._state.phase != EpochPhase.ACTIVE:
            return 0
        return max(self._state.end_time - now, 0)

    def waiting_time_remaining(self, now: int) -> int:
        if self._state.phase != EpochPhase.WAITING or self._state.waiting_period_end is None:
            return 0
        return max(self._state.waiting_period_end - now, 0)

    def accrual_horizon(self, now: int) -> int:
        """Latest moment that counts toward this epoch's averages."""
        return min(now, self._state.end_time)

    def join_fee_required(self, now: int) -> int:
        """Return the signup fee due at ``now`` (max fee outside WAITING)."""
        s = self._state
        if s.phase != EpochPhase.WAITING or s.waiting_start is None or s.waiting_period_end is None:
            return self._pricing.join_fee_required(now, now, now)
        return self._pricing.join_fee_required(now, s.waiting_start, s.waiting_period_end)

    def is_signed_up(self, address: str) -> bool:
        return address in self._state.signups

    def snapshot(self, number: int) -> Optional[EpochSnapshot]:
        return self._history.get(number)

    def history(self) -> dict[int, EpochSnapshot]:
        return dict(self._history)

    # ------------------------------------------------------------------
    # Gameplay gate
    # ------------------------------------------------------------------

    def require_gameplay(self, now: int) -> None:
        """Raise unless gameplay operations are open at ``now``."""
        if self._state.phase == EpochPhase.WAITING:
            raise GameError(
                ErrorKind.GAME_NOT_STARTED,
                f"Epoch {self._state.number} is finalized; waiting for the next epoch",
            )
        if now >= self._state.end_time:
            raise GameError(
                ErrorKind.EPOCH_ENDED,
                f"Epoch {self._state.number} has ended; call finalize_epoch()",
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def check_finalize(self, now: int) -> None:
        if self._state.phase != EpochPhase.ACTIVE or self.time_remaining(now) > 0:
            raise GameError(
                ErrorKind.EPOCH_NOT_READY,
                f"Epoch {self._state.number} cannot be finalized yet "
                f"({self.time_remaining(now)}s remaining, phase {self._state.phase.value})",
            )

    def finalize(self, now: int, snapshot: EpochSnapshot) -> None:
        """Move ACTIVE → WAITING and archive ``snapshot``."""
        self.check_finalize(now)
        s = self._state
        s.phase = EpochPhase.WAITING
        s.waiting_start = now
        s.waiting_period_end = now + self._waiting_period
        s.signups = []
        self._history[s.number] = snapshot
        logger.info(
            "Epoch %d finalized at %d; waiting period ends at %d",
            s.number, now, s.waiting_period_end,
        )

    def check_signup(self, address: str, fee: int, now: int) -> None:
        s = self._state
        if s.phase != EpochPhase.WAITING:
            raise GameError(
                ErrorKind.SIGNUP_CLOSED,
                "Signups are only open while waiting for the next epoch",
            )
        if address in s.signups:
            raise GameError(
                ErrorKind.ALREADY_SIGNED_UP,
                f"{address} already signed up for epoch {s.number + 1}",
            )
        required = self.join_fee_required(now)
        if isinstance(fee, bool) or not isinstance(fee, int) or fee < required:
            raise GameError(
                ErrorKind.INSUFFICIENT_FEE,
                f"Join fee {fee!r} is below the required {required}",
            )

    def signup(self, address: str, fee: int, now: int) -> None:
        self.check_signup(address, fee, now)
        self._state.signups.append(address)
        self._state.join_fees_collected += fee

    def check_start_next(self, now: int) -> None:
        s = self._state
        if s.phase != EpochPhase.WAITING or s.waiting_period_end is None:
            raise GameError(
                ErrorKind.EPOCH_NOT_READY,
                f"Epoch {s.number} is still active",
            )
        if now < s.waiting_period_end:
            raise GameError(
                ErrorKind.WAITING_PERIOD_NOT_OVER,
                f"Waiting period ends at {s.waiting_period_end}, now {now}",
            )

    def start_next(self, now: int) -> list[str]:
        """Move WAITING → ACTIVE(N+1). Returns the accounts that signed up."""
        self.check_start_next(now)
        s = self._state
        signups = list(s.signups)
        s.number += 1
        s.phase = EpochPhase.ACTIVE
        s.start_time = now
        s.end_time = now + self._duration
        s.waiting_start = None
        s.waiting_period_end = None
        s.signups = []
        logger.info("Epoch %d started at %d with %d signups", s.number, now, len(signups))
        return signups
