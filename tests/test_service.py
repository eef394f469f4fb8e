"""Tests for DumpGloryService — epoch lifecycle, rollover and admission modes."""

import math
import random

import pytest
from hypothesis import given, settings, strategies as st

from conftest import CONFIG_DIR, E, T0, ManualClock
from dumpglory.errors import ErrorKind
from dumpglory.models.epoch import EpochPhase
from dumpglory.policy.resolver import GameResolver
from dumpglory.service import DumpGloryService

ALICE = "alice"
BOB = "bob"
CAROL = "carol"

RESOLVER = GameResolver.from_config_dir(CONFIG_DIR)


def _play_first_epoch(service: DumpGloryService, clock: ManualClock, players: list[str]) -> None:
    """Stake everyone, hand out some DUMP, run the clock out and finalize."""
    owner = service.owner
    minimum = service.get_minimum_stake()
    assert service.stake_for_participation(owner, minimum).success
    for i, player in enumerate(players):
        assert service.stake_for_participation(player, minimum).success
        assert service.transfer(owner, player, (i + 1) * 1000 * E).success
        clock.advance(math.ceil(service.compute_cooldown((i + 1) * 1000 * E)))
    clock.advance(service.get_epoch_time_remaining())
    assert service.finalize_epoch(owner).success


@pytest.fixture
def finished(service: DumpGloryService, clock: ManualClock) -> DumpGloryService:
    """Epoch 1 played (alice 1000, bob 2000 funded) and finalized."""
    _play_first_epoch(service, clock, [ALICE, BOB])
    return service


class TestConstruction:
    def test_owner_override(self, resolver: GameResolver, clock: ManualClock) -> None:
        service = DumpGloryService(resolver, owner=" 0xBOSS ", clock=clock)
        assert service.owner == "0xboss"
        assert service.balance_of("0xboss") == resolver.dump_genesis_supply()
        assert service.glory_balance_of("0xboss") == (
            resolver.glory_total_supply() - resolver.bug_bounty_reserve()
        )

    def test_genesis_epoch_active(self, service: DumpGloryService, resolver: GameResolver) -> None:
        assert service.current_epoch() == 1
        assert service.epoch_phase() == EpochPhase.ACTIVE
        assert service.get_epoch_time_remaining() == resolver.epoch_duration()

    def test_status_summary(self, service: DumpGloryService) -> None:
        status = service.status()
        assert status["epoch"]["number"] == 1
        assert status["epoch"]["phase"] == "active"
        assert status["admission_mode"] == "signup"
        assert status["participants"]["total"] == 1
        assert status["persistence_degraded"] is False


class TestFinalize:
    def test_not_ready_before_end(self, service: DumpGloryService) -> None:
        result = service.finalize_epoch(service.owner)
        assert result.error_kind == ErrorKind.EPOCH_NOT_READY
        assert service.epoch_phase() == EpochPhase.ACTIVE

    def test_snapshot_keeps_final_ranking(self, finished: DumpGloryService) -> None:
        owner = finished.owner
        assert finished.epoch_phase() == EpochPhase.WAITING
        assert finished.get_leaderboard(1) == [ALICE, BOB, owner]
        snapshot = finished.get_epoch_snapshot(1)
        assert snapshot.leaderboard == [ALICE, BOB, owner]
        assert snapshot.average_holdings[BOB] > snapshot.average_holdings[ALICE] > 0

    def test_time_remaining_zero_while_waiting(self, finished: DumpGloryService) -> None:
        assert finished.get_epoch_time_remaining() == 0
        assert finished.get_waiting_time_remaining() == RESOLVER.waiting_period()

    def test_unknown_epoch_leaderboard_empty(self, finished: DumpGloryService) -> None:
        assert finished.get_leaderboard(9) == []


class TestSignup:
    def test_closed_during_active_phase(self, service: DumpGloryService) -> None:
        service.stake_for_participation(ALICE, service.get_minimum_stake())
        result = service.signup_for_next_epoch(ALICE, RESOLVER.max_join_fee())
        assert result.error_kind == ErrorKind.SIGNUP_CLOSED

    def test_fee_rises_across_waiting_period(self, finished: DumpGloryService, clock: ManualClock) -> None:
        assert finished.join_fee_required() == RESOLVER.base_join_fee()
        clock.advance(RESOLVER.waiting_period() // 2)
        assert finished.join_fee_required() == (RESOLVER.base_join_fee() + RESOLVER.max_join_fee()) // 2

    def test_insufficient_fee(self, finished: DumpGloryService) -> None:
        result = finished.signup_for_next_epoch(ALICE, finished.join_fee_required() - 1)
        assert result.error_kind == ErrorKind.INSUFFICIENT_FEE
        assert not finished.is_signed_up(ALICE)

    def test_requires_stake(self, finished: DumpGloryService) -> None:
        result = finished.signup_for_next_epoch(CAROL, finished.join_fee_required())
        assert result.error_kind == ErrorKind.INSUFFICIENT_STAKE

    def test_signup_once(self, finished: DumpGloryService) -> None:
        fee = finished.join_fee_required()
        assert finished.signup_for_next_epoch(ALICE, fee).success
        assert finished.is_signed_up(ALICE)
        again = finished.signup_for_next_epoch(ALICE, fee)
        assert again.error_kind == ErrorKind.ALREADY_SIGNED_UP

    def test_join_fees_accumulate(self, finished: DumpGloryService) -> None:
        fee = finished.join_fee_required()
        finished.signup_for_next_epoch(ALICE, fee)
        finished.signup_for_next_epoch(BOB, fee + 5)
        assert finished.status()["epoch"]["join_fees_collected"] == 2 * fee + 5


class TestRollover:
    def test_waiting_period_not_over(self, finished: DumpGloryService) -> None:
        result = finished.start_next_epoch(ALICE)
        assert result.error_kind == ErrorKind.WAITING_PERIOD_NOT_OVER
        assert finished.current_epoch() == 1

    def test_start_while_active_not_ready(self, service: DumpGloryService) -> None:
        assert service.start_next_epoch(ALICE).error_kind == ErrorKind.EPOCH_NOT_READY

    def test_signed_up_funded_others_reset(self, finished: DumpGloryService, clock: ManualClock) -> None:
        owner = finished.owner
        finished.signup_for_next_epoch(ALICE, finished.join_fee_required())
        clock.advance(finished.get_waiting_time_remaining())

        result = finished.start_next_epoch(BOB)

        assert result.success
        assert result.data["signups"] == [ALICE]
        assert finished.current_epoch() == 2
        assert finished.epoch_phase() == EpochPhase.ACTIVE
        assert finished.is_active_participant(ALICE)
        assert finished.balance_of(ALICE) == RESOLVER.dump_epoch_budget()
        for other in (BOB, owner):
            assert not finished.is_active_participant(other)
            assert finished.balance_of(other) == 0
        assert finished.get_leaderboard() == []
        assert finished.get_leaderboard(1) == [ALICE, BOB, owner]

    def test_cooldowns_reset(self, finished: DumpGloryService, clock: ManualClock) -> None:
        finished.signup_for_next_epoch(ALICE, finished.join_fee_required())
        finished.signup_for_next_epoch(BOB, finished.join_fee_required())
        clock.advance(finished.get_waiting_time_remaining())
        finished.start_next_epoch(ALICE)
        assert finished.transfer(ALICE, BOB, E).success
        assert finished.cooldown_end_time(BOB) == 0

    def test_late_stake_waits_for_signup(self, finished: DumpGloryService, clock: ManualClock) -> None:
        clock.advance(finished.get_waiting_time_remaining())
        finished.start_next_epoch(ALICE)
        result = finished.stake_for_participation(CAROL, finished.get_minimum_stake())
        assert result.success
        assert result.data["is_active"] is False
        assert not finished.is_active_participant(CAROL)

    def test_gameplay_in_new_epoch(self, finished: DumpGloryService, clock: ManualClock) -> None:
        finished.signup_for_next_epoch(ALICE, finished.join_fee_required())
        finished.signup_for_next_epoch(BOB, finished.join_fee_required())
        clock.advance(finished.get_waiting_time_remaining())
        finished.start_next_epoch(ALICE)
        assert finished.steal_dump(ALICE, BOB, E).success


class TestLegacyStakeMode:
    @pytest.fixture
    def legacy(self, clock: ManualClock) -> DumpGloryService:
        resolver = RESOLVER.with_overrides("participation", admission_mode="stake")
        service = DumpGloryService(resolver, clock=clock, rng=random.Random(3))
        _play_first_epoch(service, clock, [ALICE])
        return service

    def test_signup_disabled(self, legacy: DumpGloryService) -> None:
        result = legacy.signup_for_next_epoch(ALICE, RESOLVER.max_join_fee())
        assert result.error_kind == ErrorKind.SIGNUP_CLOSED

    def test_balances_carry_over(self, legacy: DumpGloryService, clock: ManualClock) -> None:
        clock.advance(legacy.get_waiting_time_remaining())
        projected = legacy.get_current_balance(ALICE)
        assert legacy.start_next_epoch(ALICE).success
        assert legacy.current_epoch() == 2
        assert legacy.is_active_participant(ALICE)
        assert legacy.balance_of(ALICE) == projected
        assert legacy.get_user_average_dump_held(ALICE) == 0

    def test_stake_activates_in_any_epoch(self, legacy: DumpGloryService, clock: ManualClock) -> None:
        clock.advance(legacy.get_waiting_time_remaining())
        legacy.start_next_epoch(ALICE)
        legacy.stake_for_participation(CAROL, legacy.get_minimum_stake())
        assert legacy.is_active_participant(CAROL)


_POOL = ["p0", "p1", "p2", "p3", "p4"]


@settings(max_examples=25, deadline=None)
@given(st.sets(st.sampled_from(_POOL)), st.integers(min_value=0, max_value=2 ** 32))
def test_rollover_partitions_players(signed: set[str], seed: int) -> None:
    clock = ManualClock(T0)
    service = DumpGloryService(RESOLVER, clock=clock, rng=random.Random(seed))
    _play_first_epoch(service, clock, _POOL)
    for player in sorted(signed):
        assert service.signup_for_next_epoch(player, service.join_fee_required()).success
    clock.advance(service.get_waiting_time_remaining())

    assert service.start_next_epoch(service.owner).success

    total = 0
    for player in _POOL:
        if player in signed:
            assert service.is_active_participant(player)
            assert service.balance_of(player) > 0
            total += service.balance_of(player)
        else:
            assert not service.is_active_participant(player)
            assert service.balance_of(player) == 0
    assert total <= RESOLVER.dump_epoch_budget()
