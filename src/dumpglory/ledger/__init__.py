"""Ledger module — the DUMP demurrage ledger and the GLORY token."""

from dumpglory.ledger.dump import DumpLedger
from dumpglory.ledger.glory import GloryLedger

__all__ = ["DumpLedger", "GloryLedger"]
