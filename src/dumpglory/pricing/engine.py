"""Pricing engine — cooldown durations, theft costs, fees and decay.

Pure computation: no side effects. Every function is deterministic in
its arguments (amount, time remaining, elapsed seconds) so the curves
can be tested without building a ledger.

Curves:
- Give cooldown: base + tokens + tokens² / D on the exact token amount.
  Convex and strictly increasing down to a single base unit; the
  ledger rounds the end time up to a whole second.
- Theft cooldown: same shape with a larger base and linear factor.
- Theft cost: amount × multiplier(time remaining). The multiplier
  climbs through four zones as the epoch end approaches:
  gradual → linear (last week) → quadratic (last day)
  → exponential (last hour). At zero time remaining it saturates at
  the exponential peak instead of dividing by zero.
- Demurrage: continuous exponential decay at a fixed daily rate.
"""

from __future__ import annotations

import math
import random
from fractions import Fraction
from typing import Sequence

from dumpglory.errors import ErrorKind, GameError
from dumpglory.policy.resolver import GameResolver

SECONDS_PER_DAY = 86_400
BPS_DENOMINATOR = 10_000

# Fixed-point scale for multipliers and decay factors.
SCALE = 10 ** 18


def _to_scale(value: float) -> int:
    return int(round(value * SCALE))


class PricingEngine:
    """Computes every price and duration the ledger charges.

    Pure computation: receives amounts and times, returns integers
    (cooldown durations are exact fractions of a second).
    """

    def __init__(self, resolver: GameResolver) -> None:
        self._resolver = resolver
        self._unit = resolver.unit()
        self._cooldowns = resolver.cooldown_policy()
        self._curve = resolver.theft_curve()
        self._epoch_duration = resolver.epoch_duration()
        self._fee_bps = resolver.transfer_fee_bps()
        self._demurrage_bps = resolver.demurrage_rate_per_day_bps()

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    def transfer_fee(self, amount: int) -> int:
        """Return the fee routed to the fee pot for a gameplay transfer."""
        return amount * self._fee_bps // BPS_DENOMINATOR

    def join_fee_required(self, now: int, phase_start: int, phase_end: int) -> int:
        """Return the signup fee due at ``now`` during a waiting phase.

        Scales linearly from the base fee at phase start to the maximum
        fee at phase end, and is clamped to that range outside it.
        """
        base = self._resolver.base_join_fee()
        peak = self._resolver.max_join_fee()
        span = phase_end - phase_start
        if span <= 0:
            return peak
        elapsed = min(max(now - phase_start, 0), span)
        return base + (peak - base) * elapsed // span

    # ------------------------------------------------------------------
    # Cooldowns
    # ------------------------------------------------------------------

    def compute_cooldown(self, amount: int) -> Fraction:
        """Return the exact give cooldown in seconds for a transfer of ``amount``.

        The curve runs on the full-precision amount, so any larger
        amount (down to one base unit) yields a strictly longer cooldown.
        """
        tokens = Fraction(max(amount, 0), self._unit)
        c = self._cooldowns
        return c.give_base_seconds + tokens + tokens * tokens / c.give_quadratic_divisor

    def compute_theft_cooldown(self, amount: int) -> Fraction:
        """Return the exact theft cooldown in seconds for stealing ``amount``."""
        tokens = Fraction(max(amount, 0), self._unit)
        c = self._cooldowns
        return (
            c.theft_base_seconds
            + c.theft_linear_factor * tokens
            + tokens * tokens / c.theft_quadratic_divisor
        )

    @staticmethod
    def cooldown_end(now: int, duration: Fraction) -> int:
        """Return the whole second at which a cooldown started at ``now`` lapses.

        Rounds up, so a cooldown never ends before its exact duration.
        """
        return now + math.ceil(duration)

    def victim_protection(self) -> int:
        """Return how long a robbed account is shielded from further theft."""
        return self._cooldowns.victim_protection_seconds

    # ------------------------------------------------------------------
    # Theft cost
    # ------------------------------------------------------------------

    def theft_multiplier(self, time_remaining: int) -> int:
        """Return the theft-cost multiplier (scaled by SCALE).

        Strictly increasing as ``time_remaining`` falls from the full
        epoch length to zero.
        """
        c = self._curve
        epoch = self._epoch_duration
        week = c.linear_zone_seconds
        day = c.quadratic_zone_seconds
        hour = c.exponential_zone_seconds
        if not (epoch > week > day > hour > 0):
            raise GameError(
                ErrorKind.DIVISION_BY_ZERO,
                "Theft curve zones must satisfy epoch > linear > quadratic > exponential > 0",
            )

        g0 = _to_scale(c.gradual_start_multiplier)
        g1 = _to_scale(c.gradual_end_multiplier)
        l1 = _to_scale(c.linear_end_multiplier)
        q1 = _to_scale(c.quadratic_end_multiplier)

        t = min(max(time_remaining, 0), epoch)
        if t >= week:
            return g0 + (g1 - g0) * (epoch - t) // (epoch - week)
        if t >= day:
            return g1 + (l1 - g1) * (week - t) // (week - day)
        if t >= hour:
            span = day - hour
            return l1 + (q1 - l1) * (day - t) ** 2 // (span * span)
        if t == 0:
            # Exact epoch boundary: saturate at the peak.
            return int(q1 * c.exponential_peak_factor)
        exponent = math.log(c.exponential_peak_factor) * (hour - t) / hour
        return int(q1 * math.exp(exponent))

    def calculate_theft_cost(self, amount: int, time_remaining: int) -> int:
        """Return the cost charged to a thief for stealing ``amount``."""
        return max(amount, 0) * self.theft_multiplier(time_remaining) // SCALE

    # ------------------------------------------------------------------
    # Demurrage
    # ------------------------------------------------------------------

    def decay_factor(self, elapsed: int) -> int:
        """Return the fraction of a balance that survives ``elapsed`` seconds (scaled)."""
        if elapsed <= 0 or self._demurrage_bps <= 0:
            return SCALE
        daily_keep = 1.0 - self._demurrage_bps / BPS_DENOMINATOR
        if daily_keep <= 0.0:
            return 0
        return int(SCALE * math.exp(math.log(daily_keep) * elapsed / SECONDS_PER_DAY))

    def apply_demurrage(self, balance: int, elapsed: int) -> int:
        """Return ``balance`` after ``elapsed`` seconds of decay.

        Any positive elapsed time removes at least one base unit from a
        positive balance.
        """
        if balance <= 0 or elapsed <= 0 or self._demurrage_bps <= 0:
            return balance
        decayed = balance * self.decay_factor(elapsed) // SCALE
        if decayed >= balance:
            decayed = balance - 1
        return decayed

    # ------------------------------------------------------------------
    # Rollover allocation
    # ------------------------------------------------------------------

    def allocate(
        self,
        accounts: Sequence[str],
        budget: int,
        rng: random.Random,
    ) -> dict[str, int]:
        """Split ``budget`` among ``accounts`` with uniform random weights.

        Each account draws a weight uniformly from [1, max weight]; its
        share is proportional to the weight. Rounding dust is left
        unallocated, so the shares never exceed the budget.
        """
        if not accounts:
            return {}
        weight_max = self._resolver.allocation_weight_max()
        weights = [rng.randint(1, weight_max) for _ in accounts]
        total = sum(weights)
        return {
            account: budget * weight // total
            for account, weight in zip(accounts, weights)
        }
