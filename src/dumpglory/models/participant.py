"""Participant model — one account's standing in the DUMP game.

All timestamps are unix seconds. Balances are 18-decimal fixed-point
integers. The balance stored here is the value at last_demurrage_time;
the live balance is obtained by projecting demurrage forward.

Average holdings are kept as a running integral of balance × time
since epoch start, so the average can be read at any moment without
replaying history.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Participant:
    """A staked or signed-up account.

    Invariant: is_active implies staked_amount >= minimum stake and
    admission to the current epoch's active phase.
    """
    address: str
    staked_amount: int = 0
    is_active: bool = False
    balance: int = 0
    last_demurrage_time: int = 0
    give_cooldown_end: int = 0
    take_cooldown_end: int = 0
    theft_cooldown_end: int = 0
    holding_integral: int = 0    # sum of balance × seconds this epoch
    signed_up_epoch: Optional[int] = None

    def reset_cooldowns(self) -> None:
        self.give_cooldown_end = 0
        self.take_cooldown_end = 0
        self.theft_cooldown_end = 0
