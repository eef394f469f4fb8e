"""Fee pot model — accumulated transfer fees awaiting buyback."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FeePotState:
    """Running totals for the fee pot.

    - dump_balance: DUMP currently held and not yet swapped
    - total_fees_collected: lifetime DUMP routed in (fees + theft costs)
    - total_glory_burned: lifetime GLORY bought back and burned
    - buyback_count: number of buybacks executed
    """
    dump_balance: int = 0
    total_fees_collected: int = 0
    total_glory_burned: int = 0
    emergency_paused: bool = False
    buyback_count: int = 0
