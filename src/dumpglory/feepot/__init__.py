"""Fee pot module — fee accumulation and buyback-and-burn."""

from dumpglory.feepot.pot import FeePot
from dumpglory.feepot.venue import FixedRateSwapVenue, SwapVenue

__all__ = ["FeePot", "FixedRateSwapVenue", "SwapVenue"]
