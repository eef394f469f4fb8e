"""DUMP ledger — demurrage-decaying balances, transfers and theft.

Balances are stored as of each participant's last_demurrage_time and
decayed lazily: any operation that touches an account first settles it
to ``now`` (applying decay and accruing the holding integral).

Transfer rules:
- Both parties active, epoch ACTIVE and not yet expired.
- Sender's give cooldown elapsed; amount within post-decay balance.
- 0.3% fee to the fee pot; recipient receives the rest.
- Sender's give cooldown restarts, scaled by amount.

Theft rules:
- Both parties active, thief's theft cooldown elapsed, victim not
  inside its post-theft protection window.
- Victim loses exactly ``amount``.
- Thief gains ``amount`` minus the transfer fee minus the theft cost;
  fee and cost go to the fee pot, never to the victim.

Atomicity: every operation validates all preconditions against
projected balances before it mutates anything.
"""

from __future__ import annotations

import logging

from dumpglory.epoch.clock import EpochClock
from dumpglory.errors import ErrorKind, GameError, require_positive
from dumpglory.feepot.pot import FeePot
from dumpglory.leaderboard.skiplist import LeaderboardIndex
from dumpglory.models.participant import Participant
from dumpglory.pricing.engine import PricingEngine
from dumpglory.registry.participants import ParticipantRegistry

logger = logging.getLogger(__name__)


class DumpLedger:
    """The DUMP balance ledger."""

    def __init__(
        self,
        pricing: PricingEngine,
        registry: ParticipantRegistry,
        clock: EpochClock,
        leaderboard: LeaderboardIndex,
        fee_pot: FeePot,
        total_decayed: int = 0,
    ) -> None:
        self._pricing = pricing
        self._registry = registry
        self._clock = clock
        self._leaderboard = leaderboard
        self._fee_pot = fee_pot
        self._total_decayed = total_decayed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def balance_of(self, address: str) -> int:
        """Stored balance, without pending demurrage."""
        participant = self._registry.get(address)
        return participant.balance if participant is not None else 0

    def current_balance(self, address: str, now: int) -> int:
        """Balance with pending demurrage projected to ``now`` (read-only)."""
        participant = self._registry.get(address)
        if participant is None:
            return 0
        return self._project(participant, now)

    def total_supply(self) -> int:
        """Live stored balances plus DUMP waiting in the fee pot."""
        return (
            sum(p.balance for p in self._registry.all_participants())
            + self._fee_pot.dump_balance
        )

    @property
    def total_decayed(self) -> int:
        """DUMP destroyed by demurrage so far."""
        return self._total_decayed

    def average_dump(self, address: str, now: int) -> int:
        """Time-weighted average balance over the current epoch so far."""
        participant = self._registry.get(address)
        if participant is None:
            return 0
        horizon = self._clock.accrual_horizon(now)
        return self._registry.average_dump(
            participant,
            self._clock.start_time,
            horizon,
            self._project(participant, horizon),
        )

    def cooldown_end_time(self, address: str) -> int:
        participant = self._registry.get(address)
        return participant.give_cooldown_end if participant is not None else 0

    # ------------------------------------------------------------------
    # Demurrage
    # ------------------------------------------------------------------

    def apply_demurrage(self, address: str, now: int) -> int:
        """Settle decay for ``address``; returns the amount destroyed.

        Calling it again without time passing is a no-op.
        """
        participant = self._registry.get(address)
        if participant is None:
            return 0
        decayed = self._settle(participant, now)
        self._refresh_rank(participant, now)
        return decayed

    def settle_all(self, now: int) -> None:
        """Settle every account to ``now`` (used at epoch boundaries)."""
        for participant in self._registry.all_participants():
            self._settle(participant, now)

    # ------------------------------------------------------------------
    # Gameplay
    # ------------------------------------------------------------------

    def transfer(self, sender: str, recipient: str, amount: int, now: int) -> dict[str, int]:
        """Move ``amount`` from ``sender`` to ``recipient`` minus the fee."""
        require_positive(amount)
        if sender == recipient:
            raise GameError(ErrorKind.INVALID_ADDRESS, "Cannot transfer to yourself")
        src, dst = self._registry.require_active(sender, recipient)
        self._clock.require_gameplay(now)
        if now < src.give_cooldown_end:
            raise GameError(
                ErrorKind.GIVE_COOLDOWN_ACTIVE,
                f"Give cooldown active until {src.give_cooldown_end}",
            )
        available = self._project(src, now)
        if amount > available:
            raise GameError(
                ErrorKind.INSUFFICIENT_BALANCE,
                f"Amount {amount} exceeds balance {available}",
            )

        fee = self._pricing.transfer_fee(amount)
        cooldown = self._pricing.compute_cooldown(amount)

        self._settle(src, now)
        self._settle(dst, now)
        src.balance -= amount
        dst.balance += amount - fee
        self._fee_pot.collect(fee)
        src.give_cooldown_end = self._pricing.cooldown_end(now, cooldown)
        self._refresh_rank(src, now)
        self._refresh_rank(dst, now)

        logger.debug(
            "Transfer %s -> %s: %d (fee %d, cooldown until %d)",
            sender, recipient, amount, fee, src.give_cooldown_end,
        )
        return {"amount": amount, "fee": fee, "received": amount - fee,
                "cooldown_end": src.give_cooldown_end}

    def steal(self, thief: str, victim: str, amount: int, now: int) -> dict[str, int]:
        """Take ``amount`` from ``victim``; the thief pays fee and theft cost."""
        require_positive(amount)
        if thief == victim:
            raise GameError(ErrorKind.INVALID_ADDRESS, "Cannot steal from yourself")
        robber, target = self._registry.require_active(thief, victim)
        self._clock.require_gameplay(now)
        if now < robber.theft_cooldown_end:
            raise GameError(
                ErrorKind.THEFT_COOLDOWN_ACTIVE,
                f"Theft cooldown active until {robber.theft_cooldown_end}",
            )
        if now < target.take_cooldown_end:
            raise GameError(
                ErrorKind.TAKE_COOLDOWN_ACTIVE,
                f"{victim} is protected from theft until {target.take_cooldown_end}",
            )
        victim_balance = self._project(target, now)
        if amount > victim_balance:
            raise GameError(
                ErrorKind.INSUFFICIENT_BALANCE,
                f"Amount {amount} exceeds victim balance {victim_balance}",
            )
        fee = self._pricing.transfer_fee(amount)
        cost = self._pricing.calculate_theft_cost(amount, self._clock.time_remaining(now))
        thief_after = self._project(robber, now) + amount - fee - cost
        if thief_after < 0:
            raise GameError(
                ErrorKind.INSUFFICIENT_BALANCE,
                f"Theft cost {cost} plus fee {fee} exceeds what the thief can cover",
            )
        cooldown = self._pricing.compute_theft_cooldown(amount)

        self._settle(robber, now)
        self._settle(target, now)
        target.balance -= amount
        robber.balance += amount - fee - cost
        self._fee_pot.collect(fee + cost)
        robber.theft_cooldown_end = self._pricing.cooldown_end(now, cooldown)
        target.take_cooldown_end = now + self._pricing.victim_protection()
        self._refresh_rank(robber, now)
        self._refresh_rank(target, now)

        logger.debug(
            "Theft %s <- %s: %d (fee %d, cost %d, cooldown until %d)",
            thief, victim, amount, fee, cost, robber.theft_cooldown_end,
        )
        return {"amount": amount, "fee": fee, "cost": cost,
                "net_gain": amount - fee - cost,
                "theft_cooldown_end": robber.theft_cooldown_end}

    def reset_cooldown(self, address: str) -> None:
        participant = self._registry.get(address)
        if participant is None:
            raise GameError(ErrorKind.NOT_ACTIVE_PARTICIPANT, f"Unknown participant: {address}")
        participant.reset_cooldowns()

    def mint(self, address: str, amount: int, now: int) -> Participant:
        """Credit freshly created DUMP (genesis supply)."""
        participant = self._registry.ensure(address, now)
        self._settle(participant, now)
        participant.balance += amount
        return participant

    # ------------------------------------------------------------------
    # Epoch boundary
    # ------------------------------------------------------------------

    def final_averages(self, now: int) -> dict[str, int]:
        """Settle everyone and push final averages into the leaderboard.

        Returns address → average for every account with a non-zero
        average over the epoch.
        """
        self.settle_all(now)
        averages: dict[str, int] = {}
        for participant in self._registry.all_participants():
            average = self.average_dump(participant.address, now)
            if participant.is_active:
                self._leaderboard.record_epoch_balance(participant.address, average)
            if average > 0:
                averages[participant.address] = average
        return averages

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _project(self, participant: Participant, now: int) -> int:
        elapsed = now - participant.last_demurrage_time
        return self._pricing.apply_demurrage(participant.balance, elapsed)

    def _settle(self, participant: Participant, now: int) -> int:
        """Apply decay up to ``now`` and accrue the holding integral."""
        if now <= participant.last_demurrage_time:
            return 0
        horizon = self._clock.accrual_horizon(now)
        if horizon > participant.last_demurrage_time:
            self._registry.accrue_holding(
                participant, horizon, self._project(participant, horizon),
            )
        before = participant.balance
        participant.balance = self._project(participant, now)
        participant.last_demurrage_time = now
        decayed = before - participant.balance
        self._total_decayed += decayed
        return decayed

    def _refresh_rank(self, participant: Participant, now: int) -> None:
        if not participant.is_active:
            return
        self._leaderboard.record_epoch_balance(
            participant.address, self.average_dump(participant.address, now),
        )

