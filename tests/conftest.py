"""Shared fixtures: real config directory and a manually advanced clock."""

from __future__ import annotations

import random
from pathlib import Path

import pytest

from dumpglory.policy.resolver import GameResolver
from dumpglory.service import DumpGloryService

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"

T0 = 1_700_000_000
E = 10 ** 18


class ManualClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: int = T0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


@pytest.fixture
def resolver() -> GameResolver:
    return GameResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def service(resolver: GameResolver, clock: ManualClock) -> DumpGloryService:
    return DumpGloryService(resolver, clock=clock, rng=random.Random(7), leaderboard_seed=11)


@pytest.fixture
def owner(service: DumpGloryService) -> str:
    return service.owner
