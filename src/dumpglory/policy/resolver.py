"""Game resolver — loads game_params.json and exposes every tunable
constant of the game as a typed method call.

No magic. No defaults. If a value is missing from the config, it fails loud.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dumpglory.models.bounty import Severity

ADMISSION_SIGNUP = "signup"
ADMISSION_STAKE = "stake"


@dataclass(frozen=True)
class CooldownPolicy:
    """Resolved cooldown curve parameters (seconds, whole-token units)."""
    give_base_seconds: int
    give_quadratic_divisor: int
    theft_base_seconds: int
    theft_linear_factor: int
    theft_quadratic_divisor: int
    victim_protection_seconds: int


@dataclass(frozen=True)
class TheftCurvePolicy:
    """Resolved theft-cost curve.

    Multipliers are fractions of the stolen amount charged at the end
    of each zone. Zone lengths are measured back from the epoch end.
    """
    gradual_start_multiplier: float
    gradual_end_multiplier: float
    linear_end_multiplier: float
    quadratic_end_multiplier: float
    exponential_peak_factor: float
    linear_zone_seconds: int
    quadratic_zone_seconds: int
    exponential_zone_seconds: int


@dataclass(frozen=True)
class BridgePolicy:
    cooldown_seconds: int
    max_per_transfer: int
    max_per_epoch: int


class GameResolver:
    """Loads and resolves all game parameters.

    Usage:
        resolver = GameResolver.from_config_dir(Path("config"))
        stake = resolver.minimum_stake()
        curve = resolver.theft_curve()
    """

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = params
        self._validate()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> GameResolver:
        """Load from the canonical config directory."""
        return cls(_load_json(config_dir / "game_params.json"))

    def _validate(self) -> None:
        if "version" not in self._params:
            raise ValueError("game_params.json missing version")
        mode = self._params["participation"]["admission_mode"]
        if mode not in (ADMISSION_SIGNUP, ADMISSION_STAKE):
            raise ValueError(f"Unknown admission mode: {mode}")
        if self.base_join_fee() > self.max_join_fee():
            raise ValueError("base_join_fee must not exceed max_join_fee")

    @property
    def version(self) -> str:
        return self._params["version"]

    def owner(self) -> str:
        """Return the administrator identity for owner-gated operations."""
        return self._params["owner"]

    def with_overrides(self, section: str, **values: Any) -> GameResolver:
        """Return a copy of this resolver with some values of one section replaced."""
        params = json.loads(json.dumps(self._params))
        params[section].update(values)
        return GameResolver(params)

    # ------------------------------------------------------------------
    # Token supply
    # ------------------------------------------------------------------

    def unit(self) -> int:
        """Return one whole token in base units (10 ** decimals)."""
        return 10 ** self._params["token"]["decimals"]

    def dump_genesis_supply(self) -> int:
        return self._params["token"]["dump_genesis_supply"]

    def dump_epoch_budget(self) -> int:
        """Return the DUMP budget split among signups at each rollover."""
        return self._params["token"]["dump_epoch_budget"]

    def glory_total_supply(self) -> int:
        return self._params["token"]["glory_total_supply"]

    def allocation_weight_max(self) -> int:
        return self._params["token"]["allocation_weight_max"]

    # ------------------------------------------------------------------
    # Epoch timing and admission
    # ------------------------------------------------------------------

    def epoch_duration(self) -> int:
        """Return the length of an ACTIVE phase in seconds."""
        return self._params["epoch"]["duration_seconds"]

    def waiting_period(self) -> int:
        return self._params["epoch"]["waiting_period_seconds"]

    def base_join_fee(self) -> int:
        return self._params["epoch"]["base_join_fee"]

    def max_join_fee(self) -> int:
        return self._params["epoch"]["max_join_fee"]

    def admission_mode(self) -> str:
        """Return ``signup`` (canonical) or ``stake`` (legacy)."""
        return self._params["participation"]["admission_mode"]

    def minimum_stake(self) -> int:
        return self._params["participation"]["minimum_stake"]

    # ------------------------------------------------------------------
    # Ledger economics
    # ------------------------------------------------------------------

    def demurrage_rate_per_day_bps(self) -> int:
        return self._params["demurrage"]["rate_per_day_bps"]

    def transfer_fee_bps(self) -> int:
        return self._params["fees"]["transfer_fee_bps"]

    def cooldown_policy(self) -> CooldownPolicy:
        c = self._params["cooldowns"]
        return CooldownPolicy(
            give_base_seconds=c["give_base_seconds"],
            give_quadratic_divisor=c["give_quadratic_divisor"],
            theft_base_seconds=c["theft_base_seconds"],
            theft_linear_factor=c["theft_linear_factor"],
            theft_quadratic_divisor=c["theft_quadratic_divisor"],
            victim_protection_seconds=c["victim_protection_seconds"],
        )

    def theft_curve(self) -> TheftCurvePolicy:
        t = self._params["theft"]
        return TheftCurvePolicy(
            gradual_start_multiplier=t["gradual_start_multiplier"],
            gradual_end_multiplier=t["gradual_end_multiplier"],
            linear_end_multiplier=t["linear_end_multiplier"],
            quadratic_end_multiplier=t["quadratic_end_multiplier"],
            exponential_peak_factor=t["exponential_peak_factor"],
            linear_zone_seconds=t["linear_zone_seconds"],
            quadratic_zone_seconds=t["quadratic_zone_seconds"],
            exponential_zone_seconds=t["exponential_zone_seconds"],
        )

    # ------------------------------------------------------------------
    # Bug bounty, buyback, bridge
    # ------------------------------------------------------------------

    def bug_bounty_reserve(self) -> int:
        return self._params["bug_bounty"]["reserve"]

    def standard_bounty(self, severity: Severity) -> int:
        """Return the standard GLORY bounty for a severity level."""
        table = self._params["bug_bounty"]["standard_bounties"]
        amount = table.get(severity.value)
        if amount is None:
            raise ValueError(f"No standard bounty for severity: {severity.value}")
        return amount

    def glory_per_dump(self) -> float:
        """Return the default swap rate used by the fixed-rate venue."""
        return self._params["buyback"]["glory_per_dump"]

    def bridge_policy(self) -> BridgePolicy:
        b = self._params["bridge"]
        return BridgePolicy(
            cooldown_seconds=b["cooldown_seconds"],
            max_per_transfer=b["max_per_transfer"],
            max_per_epoch=b["max_per_epoch"],
        )


def _load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file or raise with clear path."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)
