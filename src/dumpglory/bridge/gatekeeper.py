"""Bridge gatekeeper — rate limits on DUMP crossing the bridge.

The bridge itself is external; the gatekeeper only answers whether a
transfer may go through and records the ones that did.

Limits:
- per-address cooldown between bridge transfers
- per-transfer maximum amount
- per-epoch aggregate cap across all addresses
"""

from __future__ import annotations

from dumpglory.errors import ErrorKind, GameError, require_positive
from dumpglory.policy.resolver import GameResolver


class BridgeGatekeeper:
    """Query/update surface for bridge rate limiting."""

    def __init__(self, resolver: GameResolver) -> None:
        self._policy = resolver.bridge_policy()
        self._last_transfer: dict[str, int] = {}
        self._epoch_totals: dict[int, int] = {}

    def epoch_transfer_stats(self, epoch: int) -> int:
        """Total amount bridged during ``epoch``."""
        return self._epoch_totals.get(epoch, 0)

    def check_transfer(self, address: str, amount: int, now: int, epoch: int) -> None:
        require_positive(amount)
        last = self._last_transfer.get(address)
        if last is not None and now < last + self._policy.cooldown_seconds:
            raise GameError(
                ErrorKind.BRIDGE_COOLDOWN_ACTIVE,
                f"Bridge cooldown active until {last + self._policy.cooldown_seconds}",
            )
        if amount > self._policy.max_per_transfer:
            raise GameError(
                ErrorKind.BRIDGE_LIMIT_EXCEEDED,
                f"Amount {amount} exceeds per-transfer limit {self._policy.max_per_transfer}",
            )
        if self.epoch_transfer_stats(epoch) + amount > self._policy.max_per_epoch:
            raise GameError(
                ErrorKind.BRIDGE_LIMIT_EXCEEDED,
                f"Epoch {epoch} bridge cap {self._policy.max_per_epoch} would be exceeded",
            )

    def can_transfer(self, address: str, amount: int, now: int, epoch: int) -> bool:
        try:
            self.check_transfer(address, amount, now, epoch)
        except GameError:
            return False
        return True

    def record_transfer(self, address: str, amount: int, now: int, epoch: int) -> None:
        self.check_transfer(address, amount, now, epoch)
        self._last_transfer[address] = now
        self._epoch_totals[epoch] = self._epoch_totals.get(epoch, 0) + amount

    def to_dict(self) -> dict[str, dict[str, int]]:
        # JSON object keys are strings; epochs are restored as ints
        return {
            "last_transfer": dict(self._last_transfer),
            "epoch_totals": {str(k): v for k, v in self._epoch_totals.items()},
        }

    def restore(self, data: dict[str, dict[str, int]]) -> None:
        self._last_transfer = dict(data.get("last_transfer", {}))
        self._epoch_totals = {int(k): v for k, v in data.get("epoch_totals", {}).items()}
