"""Bounty module — bug report escrow against the GLORY reserve."""

from dumpglory.bounty.ledger import BugBountyLedger

__all__ = ["BugBountyLedger"]
