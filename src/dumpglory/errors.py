"""Error taxonomy for the game state machine.

Every rejected operation carries a specific ErrorKind. Components raise
GameError before touching any state; the service facade turns it into a
failed ServiceResult so callers always see the kind, never a generic
failure.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Why an operation was refused."""
    NOT_ACTIVE_PARTICIPANT = "not_active_participant"
    GAME_NOT_STARTED = "game_not_started"
    EPOCH_ENDED = "epoch_ended"
    GIVE_COOLDOWN_ACTIVE = "give_cooldown_active"
    TAKE_COOLDOWN_ACTIVE = "take_cooldown_active"
    THEFT_COOLDOWN_ACTIVE = "theft_cooldown_active"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INSUFFICIENT_STAKE = "insufficient_stake"
    INSUFFICIENT_FEE = "insufficient_fee"
    ALREADY_SIGNED_UP = "already_signed_up"
    SIGNUP_CLOSED = "signup_closed"
    WAITING_PERIOD_NOT_OVER = "waiting_period_not_over"
    EPOCH_NOT_READY = "epoch_not_ready"
    UNAUTHORIZED = "unauthorized"
    RESERVE_EXCEEDED = "reserve_exceeded"
    REPORT_NOT_FOUND = "report_not_found"
    ALREADY_VERIFIED = "already_verified"
    NOT_VERIFIED = "not_verified"
    ALREADY_PAID = "already_paid"
    DIVISION_BY_ZERO = "division_by_zero"
    EMERGENCY_PAUSED = "emergency_paused"
    NOTHING_TO_BUY_BACK = "nothing_to_buy_back"
    BRIDGE_COOLDOWN_ACTIVE = "bridge_cooldown_active"
    BRIDGE_LIMIT_EXCEEDED = "bridge_limit_exceeded"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_ADDRESS = "invalid_address"
    INVALID_SEVERITY = "invalid_severity"
    AUDIT_FAILURE = "audit_failure"


class GameError(ValueError):
    """A precondition failed; no state was changed."""

    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        self.kind = kind
        super().__init__(message or kind.value)


def canonical_address(address: str) -> str:
    """Strip and lower-case an account address.

    Raises GameError(INVALID_ADDRESS) for a blank address.
    """
    canonical = (address or "").strip().lower()
    if not canonical:
        raise GameError(ErrorKind.INVALID_ADDRESS, "Address must not be blank")
    return canonical


def require_positive(amount: int, what: str = "Amount") -> None:
    """Reject zero, negative and non-integer amounts."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise GameError(
            ErrorKind.INVALID_AMOUNT, f"{what} must be a positive integer, got {amount!r}",
        )
