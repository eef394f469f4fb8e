"""Swap venues — the external market a buyback trades DUMP into GLORY on.

The venue is a collaborator outside the game. The fee pot only needs
one call from it: swap this much DUMP, tell me how much GLORY came back.

Audit rollback does not copy the venue. Instead the service takes a
``checkpoint()`` before each operation and hands it back to
``rollback()`` if the operation is undone. A venue that trades on a
real market keeps the defaults; its fills cannot be taken back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from fractions import Fraction
from typing import Any


class SwapVenue(ABC):
    """Interface for the liquidity venue used by buybacks."""

    @abstractmethod
    def swap_dump_for_glory(self, dump_amount: int) -> int:
        """Sell ``dump_amount`` DUMP and return the GLORY received."""

    def checkpoint(self) -> Any:
        """Return whatever ``rollback`` needs to undo later swaps."""
        return None

    def rollback(self, checkpoint: Any) -> None:
        """Undo swaps made since ``checkpoint`` was taken, if possible."""


class FixedRateSwapVenue(SwapVenue):
    """Venue that fills every order at a constant GLORY-per-DUMP rate."""

    def __init__(self, glory_per_dump: float) -> None:
        if glory_per_dump < 0:
            raise ValueError(f"Swap rate must be >= 0, got {glory_per_dump}")
        self._rate = Fraction(str(glory_per_dump))
        self.volume_in = 0

    def swap_dump_for_glory(self, dump_amount: int) -> int:
        self.volume_in += dump_amount
        return dump_amount * self._rate.numerator // self._rate.denominator

    def checkpoint(self) -> int:
        return self.volume_in

    def rollback(self, checkpoint: int) -> None:
        self.volume_in = checkpoint
