"""Bug-bounty data models — severity levels and report records.

Report lifecycle (both transitions one-way):

    submitted → verified → paid
    submitted → rejected  (terminal; stored as verified, paid, bounty 0)

A rejected report shares its terminal fields with a report that was
verified and paid nothing. The separate ``rejected`` flag keeps the two
outcomes distinguishable for readers that care.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class Severity(str, enum.Enum):
    """Reported impact of a bug."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class BugReport:
    report_id: int
    reporter: str
    severity: Severity
    description: str
    proof_of_concept: str
    verified: bool = False
    paid: bool = False
    bounty_amount: int = 0
    rejected: bool = False
    rejection_reason: str = ""
    submitted_time: Optional[int] = None
    resolved_time: Optional[int] = None
