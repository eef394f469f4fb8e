"""GLORY ledger — the reputation token and its bug-bounty reserve.

The whole supply is minted at construction. A fixed reserve is carved
out for bug bounties; the remainder goes to the owner. GLORY bought back
through the fee pot is burned, shrinking total supply.
"""

from __future__ import annotations

import logging

from dumpglory.errors import ErrorKind, GameError
from dumpglory.policy.resolver import GameResolver

logger = logging.getLogger(__name__)


class GloryLedger:
    """Balances, total supply and bug-bounty reserve for GLORY."""

    def __init__(self, resolver: GameResolver, owner: str) -> None:
        supply = resolver.glory_total_supply()
        reserve = resolver.bug_bounty_reserve()
        if reserve > supply:
            raise ValueError(f"Bug-bounty reserve {reserve} exceeds GLORY supply {supply}")
        self._total_supply = supply
        self._bug_bounty_reserve = reserve
        self._total_burned = 0
        self._balances: dict[str, int] = {owner: supply - reserve}

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def bug_bounty_reserve(self) -> int:
        return self._bug_bounty_reserve

    @property
    def total_burned(self) -> int:
        return self._total_burned

    def pay_from_reserve(self, recipient: str, amount: int) -> None:
        """Move ``amount`` out of the bug-bounty reserve to ``recipient``."""
        if amount > self._bug_bounty_reserve:
            raise GameError(
                ErrorKind.RESERVE_EXCEEDED,
                f"Bounty {amount} exceeds reserve {self._bug_bounty_reserve}",
            )
        self._bug_bounty_reserve -= amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

    def burn_bought_back(self, amount: int) -> int:
        """Burn GLORY acquired from the market by a buyback."""
        burned = min(amount, self._total_supply)
        self._total_supply -= burned
        self._total_burned += burned
        logger.info("Burned %d GLORY (total burned %d)", burned, self._total_burned)
        return burned

    def balances(self) -> dict[str, int]:
        return dict(self._balances)

    def restore(
        self,
        balances: dict[str, int],
        total_supply: int,
        bug_bounty_reserve: int,
        total_burned: int,
    ) -> None:
        """Load persisted GLORY state (used on recovery)."""
        self._balances = dict(balances)
        self._total_supply = total_supply
        self._bug_bounty_reserve = bug_bounty_reserve
        self._total_burned = total_burned
