"""Tests for the epoch clock — phase transitions, gameplay gate, signup fees."""

import pytest

from conftest import T0
from dumpglory.epoch.clock import EpochClock
from dumpglory.errors import ErrorKind, GameError
from dumpglory.models.epoch import EpochPhase, EpochSnapshot
from dumpglory.policy.resolver import GameResolver
from dumpglory.pricing.engine import PricingEngine


@pytest.fixture
def epoch_clock(resolver: GameResolver) -> EpochClock:
    return EpochClock(resolver, PricingEngine(resolver), start_time=T0)


def _snapshot(clock: EpochClock, now: int) -> EpochSnapshot:
    return EpochSnapshot(
        number=clock.current_epoch,
        start_time=clock.start_time,
        end_time=clock.end_time,
        finalized_time=now,
        average_holdings={},
        leaderboard=[],
    )


def _finalized(clock: EpochClock) -> int:
    now = clock.end_time
    clock.finalize(now, _snapshot(clock, now))
    return now


class TestGenesisEpoch:
    def test_starts_active(self, epoch_clock: EpochClock, resolver: GameResolver) -> None:
        assert epoch_clock.current_epoch == 1
        assert epoch_clock.phase == EpochPhase.ACTIVE
        assert epoch_clock.time_remaining(T0) == resolver.epoch_duration()

    def test_gameplay_open(self, epoch_clock: EpochClock) -> None:
        epoch_clock.require_gameplay(T0 + 10)

    def test_gameplay_closed_once_expired(self, epoch_clock: EpochClock) -> None:
        with pytest.raises(GameError) as exc:
            epoch_clock.require_gameplay(epoch_clock.end_time)
        assert exc.value.kind == ErrorKind.EPOCH_ENDED

    def test_accrual_horizon_capped_at_end(self, epoch_clock: EpochClock) -> None:
        assert epoch_clock.accrual_horizon(epoch_clock.end_time + 500) == epoch_clock.end_time


class TestFinalize:
    def test_not_ready_before_end(self, epoch_clock: EpochClock) -> None:
        with pytest.raises(GameError) as exc:
            epoch_clock.check_finalize(epoch_clock.end_time - 1)
        assert exc.value.kind == ErrorKind.EPOCH_NOT_READY

    def test_finalize_enters_waiting(self, epoch_clock: EpochClock, resolver: GameResolver) -> None:
        now = _finalized(epoch_clock)
        assert epoch_clock.phase == EpochPhase.WAITING
        assert epoch_clock.state.waiting_period_end == now + resolver.waiting_period()
        assert epoch_clock.time_remaining(now) == 0
        assert epoch_clock.snapshot(1) is not None

    def test_gameplay_blocked_while_waiting(self, epoch_clock: EpochClock) -> None:
        now = _finalized(epoch_clock)
        with pytest.raises(GameError) as exc:
            epoch_clock.require_gameplay(now)
        assert exc.value.kind == ErrorKind.GAME_NOT_STARTED

    def test_cannot_finalize_twice(self, epoch_clock: EpochClock) -> None:
        now = _finalized(epoch_clock)
        with pytest.raises(GameError) as exc:
            epoch_clock.check_finalize(now + 1)
        assert exc.value.kind == ErrorKind.EPOCH_NOT_READY


class TestSignup:
    def test_closed_while_active(self, epoch_clock: EpochClock) -> None:
        with pytest.raises(GameError) as exc:
            epoch_clock.check_signup("alice", 10 ** 18, T0)
        assert exc.value.kind == ErrorKind.SIGNUP_CLOSED

    def test_fee_scales_over_waiting_period(self, epoch_clock: EpochClock, resolver: GameResolver) -> None:
        now = _finalized(epoch_clock)
        end = epoch_clock.state.waiting_period_end
        assert epoch_clock.join_fee_required(now) == resolver.base_join_fee()
        assert epoch_clock.join_fee_required(end) == resolver.max_join_fee()
        assert epoch_clock.join_fee_required(now + 1) > resolver.base_join_fee()

    def test_insufficient_fee(self, epoch_clock: EpochClock) -> None:
        now = _finalized(epoch_clock)
        required = epoch_clock.join_fee_required(now)
        with pytest.raises(GameError) as exc:
            epoch_clock.signup("alice", required - 1, now)
        assert exc.value.kind == ErrorKind.INSUFFICIENT_FEE

    def test_signup_once(self, epoch_clock: EpochClock) -> None:
        now = _finalized(epoch_clock)
        fee = epoch_clock.join_fee_required(now)
        epoch_clock.signup("alice", fee, now)
        assert epoch_clock.is_signed_up("alice")
        assert epoch_clock.state.join_fees_collected == fee
        with pytest.raises(GameError) as exc:
            epoch_clock.signup("alice", fee, now)
        assert exc.value.kind == ErrorKind.ALREADY_SIGNED_UP


class TestStartNext:
    def test_not_ready_while_active(self, epoch_clock: EpochClock) -> None:
        with pytest.raises(GameError) as exc:
            epoch_clock.check_start_next(epoch_clock.end_time + 10 ** 6)
        assert exc.value.kind == ErrorKind.EPOCH_NOT_READY

    def test_waiting_period_must_elapse(self, epoch_clock: EpochClock) -> None:
        now = _finalized(epoch_clock)
        with pytest.raises(GameError) as exc:
            epoch_clock.start_next(now + 1)
        assert exc.value.kind == ErrorKind.WAITING_PERIOD_NOT_OVER

    def test_start_next_increments_and_returns_signups(
        self, epoch_clock: EpochClock, resolver: GameResolver,
    ) -> None:
        now = _finalized(epoch_clock)
        epoch_clock.signup("alice", resolver.max_join_fee(), now)
        start = epoch_clock.state.waiting_period_end

        signups = epoch_clock.start_next(start)

        assert signups == ["alice"]
        assert epoch_clock.current_epoch == 2
        assert epoch_clock.phase == EpochPhase.ACTIVE
        assert epoch_clock.start_time == start
        assert epoch_clock.end_time == start + resolver.epoch_duration()
        assert not epoch_clock.is_signed_up("alice")
