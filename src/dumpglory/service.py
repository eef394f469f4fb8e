"""DUMP/GLORY service — unified facade for the game state machine.

This is the primary interface for programmatic access to the game.
It orchestrates all subsystems:
- Participation (stake, signup, epoch rollover)
- DUMP ledger (transfers, theft, demurrage)
- Epoch lifecycle (finalize, waiting period, start next)
- Leaderboard (live ranking, finalized epoch snapshots)
- Fee pot (fee collection, buyback-and-burn, emergency pause)
- Bug bounties (submit, verify, pay, reject)
- Bridge rate limiting
- Persistence (event log, state store)

Mutating operations take the calling account first and return a
ServiceResult; precondition failures never raise. Query operations
return plain values. Every successful mutation is recorded in the
event log (when wired) before the state store is written. If the audit
write fails, in-memory state is restored to its pre-operation snapshot
and the operation fails closed.
"""

from __future__ import annotations

import copy
import logging
import random
import time
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Callable, Optional, Union

from dumpglory.bounty.ledger import BugBountyLedger
from dumpglory.bridge.gatekeeper import BridgeGatekeeper
from dumpglory.epoch.clock import EpochClock
from dumpglory.errors import ErrorKind, GameError, canonical_address
from dumpglory.feepot.pot import FeePot
from dumpglory.feepot.venue import FixedRateSwapVenue, SwapVenue
from dumpglory.leaderboard.skiplist import LeaderboardIndex
from dumpglory.ledger.dump import DumpLedger
from dumpglory.ledger.glory import GloryLedger
from dumpglory.models.bounty import BugReport, Severity
from dumpglory.models.epoch import EpochPhase, EpochSnapshot
from dumpglory.persistence.event_log import EventKind, EventLog, EventRecord
from dumpglory.persistence.state_store import StateStore
from dumpglory.policy.resolver import ADMISSION_STAKE, GameResolver
from dumpglory.pricing.engine import PricingEngine
from dumpglory.registry.participants import ParticipantRegistry

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


@dataclass
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None


def _wall_clock() -> int:
    return int(time.time())


class DumpGloryService:
    """Unified game engine facade.

    Usage:
        resolver = GameResolver.from_config_dir(config_dir)
        service = DumpGloryService(resolver)
        result = service.stake_for_participation(alice, service.get_minimum_stake())
        if not result.success:
            print(result.error_kind, result.errors)
    """

    def __init__(
        self,
        resolver: GameResolver,
        owner: Optional[str] = None,
        clock: Optional[Callable[[], int]] = None,
        rng: Optional[random.Random] = None,
        swap_venue: Optional[SwapVenue] = None,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
        leaderboard_seed: Optional[int] = None,
    ) -> None:
        self._resolver = resolver
        self._owner = canonical_address(owner or resolver.owner())
        self._clock = clock or _wall_clock
        self._rng = rng or random.Random()
        self._event_log = event_log
        self._state_store = state_store
        self._leaderboard_seed = leaderboard_seed

        now = self._now()
        self._pricing = PricingEngine(resolver)
        self._venue = swap_venue or FixedRateSwapVenue(resolver.glory_per_dump())
        self._registry = ParticipantRegistry(resolver)
        self._glory = GloryLedger(resolver, self._owner)
        self._bounty = BugBountyLedger(resolver, self._glory)
        self._bridge = BridgeGatekeeper(resolver)

        # Load persisted state or start a fresh genesis epoch
        restored = state_store is not None and state_store.has_state
        if restored:
            epoch_state, history = state_store.load_epoch()
            self._epoch = EpochClock(resolver, self._pricing, now, epoch_state, history)
            for participant in state_store.load_participants():
                self._registry.register(participant)
            self._fee_pot = FeePot(self._glory, self._venue, state_store.load_fee_pot())
            glory = state_store.load_glory()
            if glory is not None:
                self._glory.restore(
                    glory["balances"],
                    glory["total_supply"],
                    glory["bug_bounty_reserve"],
                    glory["total_burned"],
                )
            reports, paid_counts = state_store.load_bug_reports()
            self._bounty.restore(reports, paid_counts)
            self._bridge.restore(state_store.load_bridge())
            board = state_store.load_leaderboard()
            self._leaderboard = (
                LeaderboardIndex.from_dict(board, seed=leaderboard_seed)
                if board is not None
                else LeaderboardIndex(seed=leaderboard_seed)
            )
            total_decayed, _ = state_store.load_ledger_counters()
        else:
            self._epoch = EpochClock(resolver, self._pricing, now)
            self._fee_pot = FeePot(self._glory, self._venue)
            self._leaderboard = LeaderboardIndex(seed=leaderboard_seed)
            total_decayed = 0

        self._dump = DumpLedger(
            self._pricing,
            self._registry,
            self._epoch,
            self._leaderboard,
            self._fee_pot,
            total_decayed=total_decayed,
        )

        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = event_log.count if event_log is not None else 0

        # Persistence health flag: set to True if a StateStore write fails
        # after an audit event has been durably committed.
        self._persistence_degraded: bool = False

        if not restored:
            self._genesis(now)

    def _genesis(self, now: int) -> None:
        supply = self._resolver.dump_genesis_supply()
        self._dump.mint(self._owner, supply, now)
        err = self._record_event(
            EventKind.GENESIS,
            self._owner,
            {
                "owner": self._owner,
                "dump_supply": supply,
                "glory_supply": self._glory.total_supply,
                "bug_bounty_reserve": self._glory.bug_bounty_reserve,
                "epoch_end": self._epoch.end_time,
            },
            now,
        )
        if err:
            raise RuntimeError(f"Cannot record genesis: {err}")
        warning = self._safe_persist_post_audit()
        if warning:
            logger.warning(warning)
        logger.info(
            "Genesis: %d DUMP minted to %s; epoch 1 ends at %d",
            supply, self._owner, self._epoch.end_time,
        )

    # ------------------------------------------------------------------
    # Participation
    # ------------------------------------------------------------------

    def stake_for_participation(self, caller: str, amount: int) -> ServiceResult:
        """Commit a stake. Activates immediately only under open admission."""
        def _op(now: int) -> dict[str, Any]:
            address = canonical_address(caller)
            participant = self._registry.stake(
                address, amount, now, activate=self._open_admission(),
            )
            self._dump.apply_demurrage(address, now)
            return {
                "address": address,
                "amount": amount,
                "staked_amount": participant.staked_amount,
                "is_active": participant.is_active,
            }
        return self._execute(EventKind.STAKED, caller, _op)

    def signup_for_next_epoch(self, caller: str, fee: int) -> ServiceResult:
        """Sign up during the waiting period, paying the current join fee."""
        def _op(now: int) -> dict[str, Any]:
            if self._resolver.admission_mode() == ADMISSION_STAKE:
                raise GameError(
                    ErrorKind.SIGNUP_CLOSED, "Signups are disabled in stake admission mode",
                )
            address = canonical_address(caller)
            required = self._epoch.join_fee_required(now)
            self._epoch.check_signup(address, fee, now)
            if not self._registry.has_minimum_stake(address):
                raise GameError(
                    ErrorKind.INSUFFICIENT_STAKE,
                    f"{address} must stake at least {self._registry.minimum_stake} to sign up",
                )
            self._epoch.signup(address, fee, now)
            return {
                "address": address,
                "fee": fee,
                "required_fee": required,
                "epoch": self._epoch.current_epoch + 1,
            }
        return self._execute(EventKind.SIGNED_UP, caller, _op)

    # ------------------------------------------------------------------
    # DUMP gameplay
    # ------------------------------------------------------------------

    def transfer(self, caller: str, to: str, amount: int) -> ServiceResult:
        def _op(now: int) -> dict[str, Any]:
            sender = canonical_address(caller)
            recipient = canonical_address(to)
            data: dict[str, Any] = {"from": sender, "to": recipient}
            data.update(self._dump.transfer(sender, recipient, amount, now))
            return data
        return self._execute(EventKind.TRANSFERRED, caller, _op)

    def steal_dump(self, caller: str, victim: str, amount: int) -> ServiceResult:
        def _op(now: int) -> dict[str, Any]:
            thief = canonical_address(caller)
            target = canonical_address(victim)
            data: dict[str, Any] = {"thief": thief, "victim": target}
            data.update(self._dump.steal(thief, target, amount, now))
            return data
        return self._execute(EventKind.STOLEN, caller, _op)

    def apply_demurrage(self, caller: str, address: str) -> ServiceResult:
        """Settle pending decay for ``address``. Anyone may trigger it."""
        def _op(now: int) -> dict[str, Any]:
            target = canonical_address(address)
            decayed = self._dump.apply_demurrage(target, now)
            return {
                "address": target,
                "decayed": decayed,
                "balance": self._dump.balance_of(target),
            }
        return self._execute(EventKind.DEMURRAGE_APPLIED, caller, _op)

    def reset_cooldown(self, caller: str, address: str) -> ServiceResult:
        """Owner override: zero every cooldown of ``address``."""
        def _op(now: int) -> dict[str, Any]:
            self._require_owner(caller)
            target = canonical_address(address)
            self._dump.reset_cooldown(target)
            return {"address": target}
        return self._execute(EventKind.COOLDOWN_RESET, caller, _op)

    # ------------------------------------------------------------------
    # Epoch lifecycle
    # ------------------------------------------------------------------

    def finalize_epoch(self, caller: str) -> ServiceResult:
        """Close an expired epoch: final averages, leaderboard snapshot, WAITING."""
        def _op(now: int) -> dict[str, Any]:
            self._epoch.check_finalize(now)
            number = self._epoch.current_epoch
            averages = self._dump.final_averages(now)
            ranking = self._leaderboard.get_leaderboard()
            snapshot = EpochSnapshot(
                number=number,
                start_time=self._epoch.start_time,
                end_time=self._epoch.end_time,
                finalized_time=now,
                average_holdings=averages,
                leaderboard=ranking,
            )
            self._epoch.finalize(now, snapshot)
            return {
                "epoch": number,
                "ranked": len(ranking),
                "waiting_period_end": self._epoch.state.waiting_period_end,
            }
        return self._execute(EventKind.EPOCH_FINALIZED, caller, _op)

    def start_next_epoch(self, caller: str) -> ServiceResult:
        """Open the next epoch once the waiting period is over.

        Signup mode: every signed-up account gets a random share of the
        epoch budget and becomes active; everyone else is deactivated
        and zeroed. Stake mode: balances carry over, cooldowns and
        averages reset.
        """
        def _op(now: int) -> dict[str, Any]:
            self._epoch.check_start_next(now)
            signups = list(self._epoch.state.signups)
            if self._resolver.admission_mode() == ADMISSION_STAKE:
                self._dump.settle_all(now)
                self._registry.carry_over(now)
                allocated = 0
            else:
                allocations = self._pricing.allocate(
                    signups, self._resolver.dump_epoch_budget(), self._rng,
                )
                self._registry.roll_over(allocations, now)
                allocated = sum(allocations.values())
            self._leaderboard.clear()
            self._epoch.start_next(now)
            self._registry.mark_signed_up(signups, self._epoch.current_epoch)
            return {
                "epoch": self._epoch.current_epoch,
                "signups": signups,
                "allocated": allocated,
                "end_time": self._epoch.end_time,
            }
        return self._execute(EventKind.EPOCH_STARTED, caller, _op)

    # ------------------------------------------------------------------
    # Fee pot
    # ------------------------------------------------------------------

    def execute_buyback(self, caller: str) -> ServiceResult:
        """Swap the fee pot for GLORY and burn it. Anyone may trigger it."""
        def _op(now: int) -> dict[str, Any]:
            dump_sold, burned = self._fee_pot.execute_buyback()
            return {
                "dump_sold": dump_sold,
                "glory_burned": burned,
                "total_glory_burned": self._fee_pot.total_glory_burned,
            }
        return self._execute(EventKind.BUYBACK_EXECUTED, caller, _op)

    def set_emergency_paused(self, caller: str, paused: bool) -> ServiceResult:
        def _op(now: int) -> dict[str, Any]:
            self._require_owner(caller)
            self._fee_pot.set_emergency_paused(bool(paused))
            return {"paused": bool(paused)}
        return self._execute(EventKind.PAUSE_CHANGED, caller, _op)

    # ------------------------------------------------------------------
    # Bug bounties
    # ------------------------------------------------------------------

    def submit_bug_report(
        self,
        caller: str,
        severity: Union[Severity, str],
        description: str,
        proof_of_concept: str,
    ) -> ServiceResult:
        """Submit a bug report. Open to any account."""
        def _op(now: int) -> dict[str, Any]:
            reporter = canonical_address(caller)
            report = self._bounty.submit(
                reporter, _parse_severity(severity), description, proof_of_concept, now,
            )
            return {
                "report_id": report.report_id,
                "reporter": reporter,
                "severity": report.severity.value,
            }
        return self._execute(EventKind.BUG_REPORT_SUBMITTED, caller, _op)

    def verify_bug_report(
        self, caller: str, report_id: int, custom_bounty: int = 0,
    ) -> ServiceResult:
        """Owner: verify a report. A zero bounty uses the severity's standard amount."""
        def _op(now: int) -> dict[str, Any]:
            self._require_owner(caller)
            report = self._bounty.verify(report_id, custom_bounty, now)
            return {"report_id": report_id, "bounty_amount": report.bounty_amount}
        return self._execute(EventKind.BUG_REPORT_VERIFIED, caller, _op)

    def pay_bug_bounty(self, caller: str, report_id: int) -> ServiceResult:
        def _op(now: int) -> dict[str, Any]:
            self._require_owner(caller)
            report = self._bounty.pay(report_id, now)
            return {
                "report_id": report_id,
                "reporter": report.reporter,
                "amount": report.bounty_amount,
                "reserve": self._glory.bug_bounty_reserve,
            }
        return self._execute(EventKind.BUG_BOUNTY_PAID, caller, _op)

    def reject_bug_report(self, caller: str, report_id: int, reason: str) -> ServiceResult:
        def _op(now: int) -> dict[str, Any]:
            self._require_owner(caller)
            self._bounty.reject(report_id, reason, now)
            return {"report_id": report_id, "reason": reason}
        return self._execute(EventKind.BUG_REPORT_REJECTED, caller, _op)

    # ------------------------------------------------------------------
    # Bridge
    # ------------------------------------------------------------------

    def record_bridge_transfer(self, caller: str, address: str, amount: int) -> ServiceResult:
        """Owner (bridge operator): record DUMP that crossed the bridge."""
        def _op(now: int) -> dict[str, Any]:
            self._require_owner(caller)
            target = canonical_address(address)
            epoch = self._epoch.current_epoch
            self._bridge.record_transfer(target, amount, now, epoch)
            return {
                "address": target,
                "amount": amount,
                "epoch": epoch,
                "epoch_total": self._bridge.epoch_transfer_stats(epoch),
            }
        return self._execute(EventKind.BRIDGE_TRANSFER, caller, _op)

    # ------------------------------------------------------------------
    # Queries: DUMP
    # ------------------------------------------------------------------

    def get_current_balance(self, address: str) -> int:
        """Balance with pending demurrage applied (read-only)."""
        return self._dump.current_balance(canonical_address(address), self._now())

    def balance_of(self, address: str) -> int:
        return self._dump.balance_of(canonical_address(address))

    def total_supply(self) -> int:
        return self._dump.total_supply()

    def total_decayed(self) -> int:
        return self._dump.total_decayed

    def cooldown_end_time(self, address: str) -> int:
        return self._dump.cooldown_end_time(canonical_address(address))

    def theft_cooldown_end_time(self, address: str) -> int:
        participant = self._registry.get(canonical_address(address))
        return participant.theft_cooldown_end if participant is not None else 0

    def compute_cooldown(self, amount: int) -> Fraction:
        return self._pricing.compute_cooldown(amount)

    def compute_theft_cooldown(self, amount: int) -> Fraction:
        return self._pricing.compute_theft_cooldown(amount)

    def calculate_theft_cost(self, amount: int) -> int:
        """Theft cost for ``amount`` at the current epoch time remaining."""
        return self._pricing.calculate_theft_cost(
            amount, self._epoch.time_remaining(self._now()),
        )

    # ------------------------------------------------------------------
    # Queries: participation and epochs
    # ------------------------------------------------------------------

    def is_active_participant(self, address: str) -> bool:
        return self._registry.is_active_participant(canonical_address(address))

    def get_minimum_stake(self) -> int:
        return self._registry.minimum_stake

    def staked_amount(self, address: str) -> int:
        participant = self._registry.get(canonical_address(address))
        return participant.staked_amount if participant is not None else 0

    def is_signed_up(self, address: str) -> bool:
        return self._epoch.is_signed_up(canonical_address(address))

    def current_epoch(self) -> int:
        return self._epoch.current_epoch

    def epoch_phase(self) -> EpochPhase:
        return self._epoch.phase

    def get_epoch_time_remaining(self) -> int:
        return self._epoch.time_remaining(self._now())

    def get_waiting_time_remaining(self) -> int:
        return self._epoch.waiting_time_remaining(self._now())

    def join_fee_required(self) -> int:
        return self._epoch.join_fee_required(self._now())

    def get_epoch_snapshot(self, number: int) -> Optional[EpochSnapshot]:
        return self._epoch.snapshot(number)

    # ------------------------------------------------------------------
    # Queries: leaderboard
    # ------------------------------------------------------------------

    def get_leaderboard(self, epoch: Optional[int] = None) -> list[str]:
        """Addresses ascending by average DUMP held.

        With no epoch (or the current, unfinalized one) the live board is
        returned; a finalized epoch returns its archived ordering.
        """
        if epoch is None or (
            epoch == self._epoch.current_epoch and self._epoch.snapshot(epoch) is None
        ):
            return self._leaderboard.get_leaderboard()
        snapshot = self._epoch.snapshot(epoch)
        return list(snapshot.leaderboard) if snapshot is not None else []

    def get_user_rank(self, address: str) -> int:
        """0-based position on the live leaderboard, or -1 if absent."""
        return self._leaderboard.rank(canonical_address(address))

    def get_user_average_dump_held(self, address: str) -> int:
        return self._dump.average_dump(canonical_address(address), self._now())

    # ------------------------------------------------------------------
    # Queries: fee pot and GLORY
    # ------------------------------------------------------------------

    def get_fee_pot(self) -> int:
        """DUMP waiting in the fee pot for the next buyback."""
        return self._fee_pot.dump_balance

    def total_fees_collected(self) -> int:
        return self._fee_pot.total_fees_collected

    def total_glory_burned(self) -> int:
        return self._fee_pot.total_glory_burned

    def emergency_paused(self) -> bool:
        return self._fee_pot.emergency_paused

    def glory_balance_of(self, address: str) -> int:
        return self._glory.balance_of(canonical_address(address))

    def glory_total_supply(self) -> int:
        return self._glory.total_supply

    # ------------------------------------------------------------------
    # Queries: bug bounties and bridge
    # ------------------------------------------------------------------

    def get_bug_bounty_reserve(self) -> int:
        return self._glory.bug_bounty_reserve

    def get_all_bug_reports(self) -> list[int]:
        return self._bounty.all_report_ids()

    def get_bug_report(self, report_id: int) -> Optional[BugReport]:
        return self._bounty.get(report_id)

    def get_reporter_total_bounties(self, address: str) -> int:
        return self._bounty.reporter_total_bounties(canonical_address(address))

    def can_bridge_transfer(self, address: str, amount: int) -> bool:
        return self._bridge.can_transfer(
            canonical_address(address), amount, self._now(), self._epoch.current_epoch,
        )

    def get_epoch_transfer_stats(self, epoch: Optional[int] = None) -> int:
        return self._bridge.epoch_transfer_stats(
            self._epoch.current_epoch if epoch is None else epoch,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def persistence_degraded(self) -> bool:
        return self._persistence_degraded

    def status(self) -> dict[str, Any]:
        """Return a system status summary."""
        now = self._now()
        return {
            "version": self._resolver.version,
            "owner": self._owner,
            "admission_mode": self._resolver.admission_mode(),
            "epoch": {
                "number": self._epoch.current_epoch,
                "phase": self._epoch.phase.value,
                "time_remaining": self._epoch.time_remaining(now),
                "waiting_time_remaining": self._epoch.waiting_time_remaining(now),
                "signups": len(self._epoch.state.signups),
                "join_fees_collected": self._epoch.state.join_fees_collected,
                "finalized_epochs": sorted(self._epoch.history()),
            },
            "participants": {
                "total": self._registry.count,
                "active": self._registry.active_count,
                "ranked": len(self._leaderboard),
            },
            "dump": {
                "total_supply": self._dump.total_supply(),
                "total_decayed": self._dump.total_decayed,
            },
            "fee_pot": {
                "balance": self._fee_pot.dump_balance,
                "total_fees_collected": self._fee_pot.total_fees_collected,
                "total_glory_burned": self._fee_pot.total_glory_burned,
                "emergency_paused": self._fee_pot.emergency_paused,
                "buyback_count": self._fee_pot.buyback_count,
            },
            "glory": {
                "total_supply": self._glory.total_supply,
                "bug_bounty_reserve": self._glory.bug_bounty_reserve,
            },
            "bug_reports": len(self._bounty.all_report_ids()),
            "event_log_count": self._event_log.count if self._event_log is not None else 0,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self) -> int:
        return int(self._clock())

    def _open_admission(self) -> bool:
        """Whether a stake activates its account on the spot."""
        if self._resolver.admission_mode() == ADMISSION_STAKE:
            return True
        return self._epoch.current_epoch == 1 and self._epoch.phase == EpochPhase.ACTIVE

    def _require_owner(self, caller: str) -> None:
        if canonical_address(caller) != self._owner:
            raise GameError(
                ErrorKind.UNAUTHORIZED, f"{caller} is not the owner",
            )

    def _execute(
        self,
        kind: EventKind,
        caller: str,
        operation: Callable[[int], dict[str, Any]],
    ) -> ServiceResult:
        """Run ``operation`` at the current time with fail-closed auditing.

        Components validate every precondition before mutating, so a
        GameError leaves state untouched. An audit failure after the
        mutation restores the pre-operation snapshot.
        """
        now = self._now()
        snapshot = self._snapshot() if self._event_log is not None else None
        try:
            data = operation(now)
        except GameError as e:
            logger.warning(
                "%s rejected for %s: %s", kind.value, caller, e,
                extra={"context": {"error_kind": e.kind.value, "time": now}},
            )
            return ServiceResult(success=False, errors=[str(e)], error_kind=e.kind)

        actor = (caller or "").strip().lower() or SYSTEM_ACTOR
        err = self._record_event(kind, actor, dict(data), now)
        if err:
            if snapshot is not None:
                self._restore(snapshot)
            logger.warning("%s rolled back for %s: %s", kind.value, caller, err)
            return ServiceResult(
                success=False, errors=[err], error_kind=ErrorKind.AUDIT_FAILURE,
            )

        warning = self._safe_persist_post_audit()
        if warning:
            logger.warning(warning)
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    def _snapshot(self) -> dict[str, Any]:
        """Deep copy of all mutable game state.

        The leaderboard is captured through its serialized form; the
        resolver, pricing engine and swap venue are shared, not copied.
        The venue contributes its own checkpoint instead.
        """
        memo: dict[int, Any] = {
            id(self._resolver): self._resolver,
            id(self._pricing): self._pricing,
            id(self._venue): self._venue,
            id(self._leaderboard): self._leaderboard,
        }
        state = copy.deepcopy(
            {
                "registry": self._registry,
                "epoch": self._epoch,
                "glory": self._glory,
                "fee_pot": self._fee_pot,
                "bounty": self._bounty,
                "bridge": self._bridge,
                "dump": self._dump,
            },
            memo,
        )
        state["leaderboard"] = self._leaderboard.to_dict()
        state["venue"] = self._venue.checkpoint()
        return state

    def _restore(self, snapshot: dict[str, Any]) -> None:
        self._registry = snapshot["registry"]
        self._epoch = snapshot["epoch"]
        self._glory = snapshot["glory"]
        self._fee_pot = snapshot["fee_pot"]
        self._bounty = snapshot["bounty"]
        self._bridge = snapshot["bridge"]
        self._dump = snapshot["dump"]
        self._leaderboard = LeaderboardIndex.from_dict(
            snapshot["leaderboard"], seed=self._leaderboard_seed,
        )
        self._dump._leaderboard = self._leaderboard
        self._venue.rollback(snapshot["venue"])

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(
        self,
        kind: EventKind,
        actor: str,
        payload: dict[str, Any],
        now: int,
    ) -> Optional[str]:
        """Append an audit event. Returns error string or None."""
        if self._event_log is None:
            return None
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor=actor,
                payload=payload,
                timestamp=now,
                previous_hash=self._event_log.head_hash,
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            self._event_counter -= 1
            return f"Event log failure: {e}"
        return None

    def _persist_state(self) -> None:
        """Persist current state to the state store (if wired).

        NOTE: This method can raise OSError. Callers go through
        _safe_persist_post_audit().
        """
        if self._state_store is None:
            return
        store = self._state_store
        store.save_epoch(self._epoch.state, self._epoch.history())
        store.save_participants(self._registry.all_participants())
        store.save_fee_pot(self._fee_pot.state)
        store.save_glory(
            self._glory.balances(),
            self._glory.total_supply,
            self._glory.bug_bounty_reserve,
            self._glory.total_burned,
        )
        store.save_bug_reports(
            [self._bounty.get(i) for i in self._bounty.all_report_ids()],
            self._bounty.paid_counts(),
        )
        store.save_bridge(self._bridge.to_dict())
        store.save_leaderboard(self._leaderboard.to_dict())
        store.save_ledger_counters(self._dump.total_decayed, self._event_counter)

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after the audit event has been committed.

        MUST NOT roll back in-memory state: the audit trail is already
        durable. On failure the StateStore is stale, so the degraded
        flag is raised and a warning string returned.
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            self._persistence_degraded = True
            return f"Persistence degraded: {e}; state committed in audit trail but StateStore is stale"


def _parse_severity(severity: Union[Severity, str]) -> Severity:
    if isinstance(severity, Severity):
        return severity
    try:
        return Severity(str(severity).strip().lower())
    except ValueError:
        raise GameError(
            ErrorKind.INVALID_SEVERITY, f"Unknown severity: {severity!r}",
        ) from None
