"""Bug-bounty ledger — report intake, verification and payout.

Anyone may submit a report. Only the owner verifies, pays or rejects
(the service enforces the owner gate). Payouts come out of the GLORY
reserve carved from supply at genesis.

Workflow guards:
- verify: report must be unverified; bounty must fit the reserve.
  A zero custom bounty means "use the standard amount for the severity".
- pay: report must be verified and not already paid.
- reject: report must not be paid; leaves it verified, paid, bounty 0.

The per-reporter tally counts successful payouts only.
"""

from __future__ import annotations

import logging
from typing import Optional

from dumpglory.errors import ErrorKind, GameError
from dumpglory.ledger.glory import GloryLedger
from dumpglory.models.bounty import BugReport, Severity
from dumpglory.policy.resolver import GameResolver

logger = logging.getLogger(__name__)


class BugBountyLedger:
    """Escrow of bug reports against the GLORY bug-bounty reserve."""

    def __init__(self, resolver: GameResolver, glory: GloryLedger) -> None:
        self._resolver = resolver
        self._glory = glory
        self._reports: dict[int, BugReport] = {}
        self._next_id = 1
        self._paid_counts: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, report_id: int) -> Optional[BugReport]:
        return self._reports.get(report_id)

    def all_report_ids(self) -> list[int]:
        return sorted(self._reports)

    def reporter_total_bounties(self, reporter: str) -> int:
        """Number of this reporter's reports that were paid out."""
        return self._paid_counts.get(reporter, 0)

    def paid_counts(self) -> dict[str, int]:
        return dict(self._paid_counts)

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def submit(
        self,
        reporter: str,
        severity: Severity,
        description: str,
        proof_of_concept: str,
        now: int,
    ) -> BugReport:
        report = BugReport(
            report_id=self._next_id,
            reporter=reporter,
            severity=Severity(severity),
            description=description,
            proof_of_concept=proof_of_concept,
            submitted_time=now,
        )
        self._reports[report.report_id] = report
        self._next_id += 1
        logger.info(
            "Bug report %d submitted by %s (%s)",
            report.report_id, reporter, report.severity.value,
        )
        return report

    def verify(self, report_id: int, custom_bounty: int, now: int) -> BugReport:
        report = self._require(report_id)
        if report.verified:
            raise GameError(
                ErrorKind.ALREADY_VERIFIED, f"Report {report_id} is already verified",
            )
        if isinstance(custom_bounty, bool) or not isinstance(custom_bounty, int) or custom_bounty < 0:
            raise GameError(
                ErrorKind.INVALID_AMOUNT, f"Bounty must be a non-negative integer, got {custom_bounty!r}",
            )
        amount = custom_bounty or self._resolver.standard_bounty(report.severity)
        if amount > self._glory.bug_bounty_reserve:
            raise GameError(
                ErrorKind.RESERVE_EXCEEDED,
                f"Bounty {amount} exceeds reserve {self._glory.bug_bounty_reserve}",
            )
        report.verified = True
        report.bounty_amount = amount
        logger.info("Bug report %d verified with bounty %d", report_id, amount)
        return report

    def pay(self, report_id: int, now: int) -> BugReport:
        report = self._require(report_id)
        if not report.verified:
            raise GameError(ErrorKind.NOT_VERIFIED, f"Report {report_id} is not verified")
        if report.paid:
            raise GameError(ErrorKind.ALREADY_PAID, f"Report {report_id} is already paid")
        self._glory.pay_from_reserve(report.reporter, report.bounty_amount)
        report.paid = True
        report.resolved_time = now
        self._paid_counts[report.reporter] = self._paid_counts.get(report.reporter, 0) + 1
        logger.info(
            "Bug report %d paid %d GLORY to %s",
            report_id, report.bounty_amount, report.reporter,
        )
        return report

    def reject(self, report_id: int, reason: str, now: int) -> BugReport:
        report = self._require(report_id)
        if report.paid:
            raise GameError(ErrorKind.ALREADY_PAID, f"Report {report_id} is already closed")
        report.verified = True
        report.paid = True
        report.bounty_amount = 0
        report.rejected = True
        report.rejection_reason = reason
        report.resolved_time = now
        logger.info("Bug report %d rejected: %s", report_id, reason)
        return report

    def restore(self, reports: list[BugReport], paid_counts: dict[str, int]) -> None:
        """Load persisted reports (used on recovery)."""
        self._reports = {r.report_id: r for r in reports}
        self._next_id = max(self._reports, default=0) + 1
        self._paid_counts = dict(paid_counts)

    def _require(self, report_id: int) -> BugReport:
        report = self._reports.get(report_id)
        if report is None:
            raise GameError(ErrorKind.REPORT_NOT_FOUND, f"Bug report not found: {report_id}")
        return report
