"""Participant registry — who may play, and how much they held on average.

The registry is the source of truth for participation:
- Stake recorded per account (top-ups accumulate)
- Active flag (staked above the minimum and admitted to this epoch)
- Running balance × time integral for average holdings

Invariants enforced:
- Staking below the minimum never activates an account.
- Accounts not admitted to a new epoch become inactive and their
  balance is zeroed at rollover.
- Average holdings never divide by zero: with no elapsed epoch time
  the average is 0.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from dumpglory.errors import ErrorKind, GameError
from dumpglory.models.participant import Participant
from dumpglory.policy.resolver import GameResolver

logger = logging.getLogger(__name__)


class ParticipantRegistry:
    """Registry of every account that has staked or held DUMP.

    Thread-safety: this class is not thread-safe. The caller must
    synchronise access if used from multiple threads.
    """

    def __init__(self, resolver: GameResolver) -> None:
        self._minimum_stake = resolver.minimum_stake()
        self._participants: dict[str, Participant] = {}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, address: str) -> Optional[Participant]:
        return self._participants.get(address)

    def ensure(self, address: str, now: int = 0) -> Participant:
        """Return the participant for ``address``, creating it lazily."""
        participant = self._participants.get(address)
        if participant is None:
            participant = Participant(address=address, last_demurrage_time=now)
            self._participants[address] = participant
        return participant

    def register(self, participant: Participant) -> None:
        """Insert a fully-formed participant (used on recovery)."""
        self._participants[participant.address] = participant

    def all_participants(self) -> list[Participant]:
        return list(self._participants.values())

    @property
    def minimum_stake(self) -> int:
        return self._minimum_stake

    @property
    def count(self) -> int:
        return len(self._participants)

    @property
    def active_count(self) -> int:
        return sum(1 for p in self._participants.values() if p.is_active)

    # ------------------------------------------------------------------
    # Participation
    # ------------------------------------------------------------------

    def check_stake(self, amount: int) -> None:
        """Raise unless ``amount`` meets the minimum stake."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise GameError(ErrorKind.INVALID_AMOUNT, f"Stake must be a positive integer, got {amount!r}")
        if amount < self._minimum_stake:
            raise GameError(
                ErrorKind.INSUFFICIENT_STAKE,
                f"Stake {amount} is below the minimum {self._minimum_stake}",
            )

    def stake(self, address: str, amount: int, now: int, activate: bool) -> Participant:
        """Record a stake of ``amount`` for ``address``.

        ``activate`` is decided by the caller from the admission policy:
        open admission (genesis epoch or legacy stake mode) activates
        immediately, otherwise activation waits for signup + rollover.
        """
        self.check_stake(amount)
        participant = self.ensure(address, now)
        participant.staked_amount += amount
        if activate:
            participant.is_active = True
        logger.debug(
            "Stake recorded for %s: +%d (total %d, active=%s)",
            address, amount, participant.staked_amount, participant.is_active,
        )
        return participant

    def is_active_participant(self, address: str) -> bool:
        participant = self._participants.get(address)
        return participant is not None and participant.is_active

    def has_minimum_stake(self, address: str) -> bool:
        participant = self._participants.get(address)
        return participant is not None and participant.staked_amount >= self._minimum_stake

    def require_active(self, *addresses: str) -> list[Participant]:
        """Return the participants for ``addresses`` or raise NOT_ACTIVE_PARTICIPANT."""
        result: list[Participant] = []
        for address in addresses:
            participant = self._participants.get(address)
            if participant is None or not participant.is_active:
                raise GameError(
                    ErrorKind.NOT_ACTIVE_PARTICIPANT,
                    f"Must be active participant: {address}",
                )
            result.append(participant)
        return result

    # ------------------------------------------------------------------
    # Average holdings
    # ------------------------------------------------------------------

    @staticmethod
    def accrue_holding(
        participant: Participant,
        until: int,
        balance_at_until: int,
    ) -> None:
        """Add the holding area from the last update to ``until``.

        The balance decays between updates; the area uses the trapezoid
        of the stored balance and the balance at ``until``.
        """
        elapsed = until - participant.last_demurrage_time
        if elapsed <= 0:
            return
        participant.holding_integral += (
            (participant.balance + balance_at_until) * elapsed // 2
        )

    @staticmethod
    def average_dump(
        participant: Participant,
        epoch_start: int,
        horizon: int,
        balance_at_horizon: int,
    ) -> int:
        """Return the time-weighted average balance over [epoch_start, horizon].

        ``balance_at_horizon`` is the demurrage-projected balance at
        ``horizon``; the unsettled tail since the last update is
        included without mutating the participant.
        """
        elapsed = horizon - epoch_start
        if elapsed <= 0:
            return 0
        integral = participant.holding_integral
        tail = horizon - participant.last_demurrage_time
        if tail > 0:
            integral += (participant.balance + balance_at_horizon) * tail // 2
        return integral // elapsed

    # ------------------------------------------------------------------
    # Epoch rollover
    # ------------------------------------------------------------------

    def roll_over(self, allocations: Mapping[str, int], now: int) -> None:
        """Admit the signed-up accounts to a new epoch.

        Accounts in ``allocations`` receive their allocated balance and
        become active; every other account becomes inactive with a
        zero balance. Cooldowns and holding integrals reset for all.
        """
        for address in allocations:
            self.ensure(address, now)
        for participant in self._participants.values():
            admitted = participant.address in allocations
            participant.balance = allocations.get(participant.address, 0)
            participant.is_active = admitted and participant.staked_amount >= self._minimum_stake
            participant.last_demurrage_time = now
            participant.holding_integral = 0
            participant.reset_cooldowns()
        logger.info(
            "Rollover admitted %d of %d known accounts",
            len(allocations), len(self._participants),
        )

    def carry_over(self, now: int) -> None:
        """Legacy stake-mode rollover: balances carry, cooldowns and averages reset.

        Callers must have settled demurrage up to ``now`` beforehand.
        """
        for participant in self._participants.values():
            participant.is_active = participant.staked_amount >= self._minimum_stake
            participant.last_demurrage_time = now
            participant.holding_integral = 0
            participant.reset_cooldowns()

    def mark_signed_up(self, addresses: Sequence[str], epoch_number: int) -> None:
        for address in addresses:
            participant = self._participants.get(address)
            if participant is not None:
                participant.signed_up_epoch = epoch_number
