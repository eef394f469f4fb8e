"""Fee pot — collects transfer fees and theft costs, buys back and burns GLORY.

Every gameplay transfer routes its 0.3% fee here, and every theft
routes its fee plus the theft cost. The DUMP sits in the pot until
someone triggers a buyback, which sells it on the swap venue and burns
the GLORY received.

Circuit breaker: while emergency_paused is set, buybacks are refused.
Fee collection continues regardless.
"""

from __future__ import annotations

import logging
from typing import Optional

from dumpglory.errors import ErrorKind, GameError
from dumpglory.feepot.venue import SwapVenue
from dumpglory.ledger.glory import GloryLedger
from dumpglory.models.fee_pot import FeePotState

logger = logging.getLogger(__name__)


class FeePot:
    """DUMP fee accumulator with a buyback-and-burn trigger."""

    def __init__(
        self,
        glory: GloryLedger,
        venue: SwapVenue,
        state: Optional[FeePotState] = None,
    ) -> None:
        self._glory = glory
        self._venue = venue
        self._state = state or FeePotState()

    @property
    def state(self) -> FeePotState:
        return self._state

    @property
    def dump_balance(self) -> int:
        return self._state.dump_balance

    @property
    def total_fees_collected(self) -> int:
        return self._state.total_fees_collected

    @property
    def total_glory_burned(self) -> int:
        return self._state.total_glory_burned

    @property
    def emergency_paused(self) -> bool:
        return self._state.emergency_paused

    @property
    def buyback_count(self) -> int:
        return self._state.buyback_count

    def collect(self, amount: int) -> None:
        if amount <= 0:
            return
        self._state.dump_balance += amount
        self._state.total_fees_collected += amount

    def set_emergency_paused(self, paused: bool) -> None:
        self._state.emergency_paused = paused
        logger.warning("Fee pot emergency pause set to %s", paused)

    def check_buyback(self) -> None:
        if self._state.emergency_paused:
            raise GameError(ErrorKind.EMERGENCY_PAUSED, "Buyback is paused")
        if self._state.dump_balance <= 0:
            raise GameError(ErrorKind.NOTHING_TO_BUY_BACK, "Fee pot is empty")

    def execute_buyback(self) -> tuple[int, int]:
        """Swap the whole pot for GLORY and burn it.

        Returns (dump_sold, glory_burned).
        """
        self.check_buyback()
        dump_sold = self._state.dump_balance
        glory_bought = self._venue.swap_dump_for_glory(dump_sold)
        self._state.dump_balance = 0
        burned = self._glory.burn_bought_back(glory_bought)
        self._state.total_glory_burned += burned
        self._state.buyback_count += 1
        logger.info("Buyback sold %d DUMP for %d GLORY", dump_sold, burned)
        return dump_sold, burned
