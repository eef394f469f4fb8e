"""Tests for DUMP gameplay — transfers, theft, demurrage, averages — via the service."""

import math

import pytest

from conftest import E, T0, ManualClock
from dumpglory.errors import ErrorKind
from dumpglory.service import DumpGloryService

ALICE = "alice"
BOB = "bob"
CAROL = "carol"


@pytest.fixture
def players(service: DumpGloryService, owner: str) -> DumpGloryService:
    """Owner, alice and bob staked; owner has funded alice with 10,000 DUMP."""
    minimum = service.get_minimum_stake()
    for who in (owner, ALICE, BOB):
        assert service.stake_for_participation(who, minimum).success
    assert service.transfer(owner, ALICE, 10_000 * E).success
    return service


class TestGenesis:
    def test_owner_holds_genesis_supply(self, service: DumpGloryService, owner: str, resolver) -> None:
        assert service.balance_of(owner) == resolver.dump_genesis_supply()
        assert service.total_supply() == resolver.dump_genesis_supply()
        assert service.current_epoch() == 1

    def test_unstaked_owner_cannot_transfer(self, service: DumpGloryService, owner: str) -> None:
        result = service.transfer(owner, ALICE, 100 * E)
        assert not result.success
        assert result.error_kind == ErrorKind.NOT_ACTIVE_PARTICIPANT
        assert "Must be active participant" in result.errors[0]


class TestStaking:
    def test_stake_then_active(self, service: DumpGloryService) -> None:
        result = service.stake_for_participation(ALICE, service.get_minimum_stake())
        assert result.success
        assert service.is_active_participant(ALICE)
        assert service.staked_amount(ALICE) == service.get_minimum_stake()

    def test_below_minimum_never_active(self, service: DumpGloryService) -> None:
        result = service.stake_for_participation(ALICE, service.get_minimum_stake() - 1)
        assert result.error_kind == ErrorKind.INSUFFICIENT_STAKE
        assert not service.is_active_participant(ALICE)

    def test_addresses_are_canonical(self, service: DumpGloryService) -> None:
        service.stake_for_participation("  ALICE ", service.get_minimum_stake())
        assert service.is_active_participant("alice")

    def test_blank_address_rejected(self, service: DumpGloryService) -> None:
        result = service.stake_for_participation("   ", service.get_minimum_stake())
        assert result.error_kind == ErrorKind.INVALID_ADDRESS


class TestTransfer:
    def test_fee_cooldown_and_credit(self, players: DumpGloryService, clock: ManualClock) -> None:
        fees_before = players.total_fees_collected()
        bob_before = players.balance_of(BOB)

        result = players.transfer(ALICE, BOB, 1000 * E)

        assert result.success
        assert result.data["fee"] == 3 * E
        assert players.cooldown_end_time(ALICE) > clock.now
        assert players.cooldown_end_time(ALICE) == clock.now + math.ceil(players.compute_cooldown(1000 * E))
        assert players.total_fees_collected() - fees_before == 3 * E
        assert players.balance_of(BOB) - bob_before == 997 * E

    def test_fractional_amount_cooldown_rounds_up(self, players: DumpGloryService, clock: ManualClock) -> None:
        # 60 + 1.5 + 2.25e-7 seconds
        assert players.transfer(ALICE, BOB, 3 * E // 2).success
        assert players.cooldown_end_time(ALICE) == clock.now + 62

    def test_supply_conserved_into_fee_pot(self, players: DumpGloryService, resolver) -> None:
        assert players.total_supply() == resolver.dump_genesis_supply()
        assert players.get_fee_pot() == 30 * E

    def test_give_cooldown_blocks_second_transfer(self, players: DumpGloryService, clock: ManualClock) -> None:
        assert players.transfer(ALICE, BOB, 10 * E).success
        result = players.transfer(ALICE, BOB, 10 * E)
        assert result.error_kind == ErrorKind.GIVE_COOLDOWN_ACTIVE
        clock.advance(math.ceil(players.compute_cooldown(10 * E)))
        assert players.transfer(ALICE, BOB, 10 * E).success

    def test_recipient_must_be_active(self, players: DumpGloryService) -> None:
        result = players.transfer(ALICE, CAROL, 10 * E)
        assert result.error_kind == ErrorKind.NOT_ACTIVE_PARTICIPANT

    def test_amount_above_balance(self, players: DumpGloryService) -> None:
        result = players.transfer(ALICE, BOB, 10_001 * E)
        assert result.error_kind == ErrorKind.INSUFFICIENT_BALANCE
        assert players.balance_of(ALICE) == 10_000 * E - 30 * E

    def test_balance_checked_after_demurrage(self, players: DumpGloryService, clock: ManualClock) -> None:
        full = players.balance_of(ALICE)
        clock.advance(86_400)
        result = players.transfer(ALICE, BOB, full)
        assert result.error_kind == ErrorKind.INSUFFICIENT_BALANCE

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_amount(self, players: DumpGloryService, amount: int) -> None:
        assert players.transfer(ALICE, BOB, amount).error_kind == ErrorKind.INVALID_AMOUNT

    def test_self_transfer_rejected(self, players: DumpGloryService) -> None:
        assert players.transfer(ALICE, ALICE, E).error_kind == ErrorKind.INVALID_ADDRESS

    def test_failed_transfer_changes_nothing(self, players: DumpGloryService) -> None:
        before = (players.balance_of(ALICE), players.balance_of(BOB), players.total_fees_collected())
        players.transfer(ALICE, BOB, 10 ** 30)
        after = (players.balance_of(ALICE), players.balance_of(BOB), players.total_fees_collected())
        assert before == after
        assert players.cooldown_end_time(ALICE) == 0


class TestTheft:
    def test_theft_moves_amount_and_charges_thief(self, players: DumpGloryService, owner: str) -> None:
        victim_before = players.balance_of(ALICE)
        thief_before = players.balance_of(owner)
        expected_cost = players.calculate_theft_cost(1000 * E)

        result = players.steal_dump(owner, ALICE, 1000 * E)

        assert result.success
        assert result.data["cost"] == expected_cost == 100 * E
        assert victim_before - players.balance_of(ALICE) == 1000 * E
        assert players.balance_of(owner) - thief_before == 1000 * E - 3 * E - expected_cost
        assert players.get_fee_pot() == 30 * E + 3 * E + expected_cost

    def test_theft_cooldown(self, players: DumpGloryService, owner: str, clock: ManualClock) -> None:
        assert players.steal_dump(owner, ALICE, 1000 * E).success
        assert players.theft_cooldown_end_time(owner) > clock.now
        result = players.steal_dump(owner, BOB, 1 * E)
        assert result.error_kind == ErrorKind.THEFT_COOLDOWN_ACTIVE

    def test_victim_protected_after_theft(self, players: DumpGloryService, owner: str) -> None:
        assert players.steal_dump(owner, ALICE, 1000 * E).success
        result = players.steal_dump(BOB, ALICE, 1 * E)
        assert result.error_kind == ErrorKind.TAKE_COOLDOWN_ACTIVE

    def test_victim_balance_bound(self, players: DumpGloryService) -> None:
        result = players.steal_dump(ALICE, BOB, 1 * E)
        assert result.error_kind == ErrorKind.INSUFFICIENT_BALANCE

    def test_late_theft_unaffordable(self, players: DumpGloryService, clock: ManualClock) -> None:
        assert players.transfer(ALICE, BOB, 1000 * E).success
        clock.now = players.status()["epoch"]["time_remaining"] + clock.now - 60
        bob = players.get_current_balance(BOB)
        result = players.steal_dump(BOB, ALICE, 900 * E)
        assert result.error_kind == ErrorKind.INSUFFICIENT_BALANCE
        assert players.get_current_balance(BOB) == bob

    def test_theft_cost_grows_near_end(self, players: DumpGloryService, clock: ManualClock) -> None:
        early = players.calculate_theft_cost(1000 * E)
        clock.advance(players.get_epoch_time_remaining() - 3600)
        assert players.calculate_theft_cost(1000 * E) > early


class TestDemurrage:
    def test_decay_and_idempotence(self, players: DumpGloryService, owner: str, clock: ManualClock) -> None:
        start = players.balance_of(owner)
        clock.advance(86_400)

        first = players.apply_demurrage(owner, owner)
        second = players.apply_demurrage(owner, owner)

        assert first.success and first.data["decayed"] > 0
        assert players.balance_of(owner) < start
        assert second.data["decayed"] == 0
        assert second.data["balance"] == first.data["balance"]

    def test_current_balance_is_read_only(self, players: DumpGloryService, clock: ManualClock) -> None:
        stored = players.balance_of(ALICE)
        clock.advance(86_400)
        assert players.get_current_balance(ALICE) < stored
        assert players.balance_of(ALICE) == stored

    def test_decay_counted(self, players: DumpGloryService, owner: str, clock: ManualClock) -> None:
        clock.advance(86_400)
        decayed = players.apply_demurrage(owner, owner).data["decayed"]
        assert players.total_decayed() == decayed


class TestAverages:
    def test_zero_at_epoch_start(self, players: DumpGloryService) -> None:
        assert players.get_user_average_dump_held(ALICE) == 0

    def test_average_bounded_by_holdings(self, players: DumpGloryService, clock: ManualClock) -> None:
        clock.advance(10 * 86_400)
        average = players.get_user_average_dump_held(ALICE)
        assert 0 < average <= players.balance_of(ALICE)

    def test_late_joiner_average_reflects_time_held(self, players: DumpGloryService, clock: ManualClock) -> None:
        clock.advance(5 * 86_400)
        assert players.transfer(ALICE, BOB, 5000 * E).success
        clock.advance(5 * 86_400)
        # bob held nothing for the first half of the window
        assert players.get_user_average_dump_held(BOB) < players.get_current_balance(BOB)

    def test_rank_follows_average(self, players: DumpGloryService, owner: str, clock: ManualClock) -> None:
        assert players.transfer(ALICE, BOB, 1000 * E).success
        clock.advance(86_400)
        for who in (owner, ALICE, BOB):
            players.apply_demurrage(who, who)
        assert players.get_leaderboard() == [BOB, ALICE, owner]
        assert players.get_user_rank(BOB) == 0
        assert players.get_user_rank(CAROL) == -1


class TestResetCooldown:
    def test_owner_resets(self, players: DumpGloryService, owner: str) -> None:
        players.transfer(ALICE, BOB, 10 * E)
        assert players.reset_cooldown(owner, ALICE).success
        assert players.cooldown_end_time(ALICE) == 0

    def test_non_owner_unauthorized(self, players: DumpGloryService) -> None:
        players.transfer(ALICE, BOB, 10 * E)
        result = players.reset_cooldown(ALICE, ALICE)
        assert result.error_kind == ErrorKind.UNAUTHORIZED
        assert players.cooldown_end_time(ALICE) > 0


class TestEpochGate:
    def test_expired_epoch_rejects_gameplay(self, players: DumpGloryService, clock: ManualClock) -> None:
        clock.advance(players.get_epoch_time_remaining())
        assert players.transfer(ALICE, BOB, E).error_kind == ErrorKind.EPOCH_ENDED

    def test_waiting_phase_rejects_gameplay(self, players: DumpGloryService, clock: ManualClock) -> None:
        clock.advance(players.get_epoch_time_remaining())
        assert players.finalize_epoch(ALICE).success
        assert players.transfer(ALICE, BOB, E).error_kind == ErrorKind.GAME_NOT_STARTED
