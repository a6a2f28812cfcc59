"""Exception types for the pool engine.

Every error aborts the triggering instruction with no state change, except
``InvariantViolation``, which leaves the pool permanently locked.
Each concrete error carries a stable ``code`` used by the instruction shell.
"""

from __future__ import annotations

from typing import Sequence


class AmmError(Exception):
    """Base class for all pool engine errors."""

    code = "AmmError"


class ValidationError(AmmError, ValueError):
    """Bad instruction parameters."""

    code = "ValidationError"


class IdenticalMints(ValidationError):
    code = "IdenticalMints"


class InvalidFee(ValidationError):
    code = "InvalidFee"


class ZeroAmount(ValidationError):
    code = "ZeroAmount"


class InvalidAmount(ValidationError):
    """Negative amount, or one that would overflow a u64 account field."""

    code = "InvalidAmount"


class UnknownMint(ValidationError):
    code = "UnknownMint"


class AuthorizationError(AmmError):
    """Caller or supplied accounts are not permitted for the operation."""

    code = "AuthorizationError"


class Unauthorized(AuthorizationError):
    code = "Unauthorized"


class AccountMismatch(AuthorizationError):
    """A supplied account handle does not re-derive from the pool config."""

    code = "AccountMismatch"


class StateError(AmmError):
    """The pool is not in a state that admits the operation."""

    code = "StateError"


class AlreadyInitialized(StateError):
    code = "AlreadyInitialized"


class NotInitialized(StateError):
    code = "NotInitialized"


class PoolLocked(StateError):
    code = "PoolLocked"


class EconomicError(AmmError):
    """The operation is well-formed but economically unacceptable."""

    code = "EconomicError"


class SlippageExceeded(EconomicError):
    code = "SlippageExceeded"

    def __init__(self, what: str, got: int, minimum: int) -> None:
        self.what = what
        self.got = got
        self.minimum = minimum
        super().__init__(f"{what} {got} below minimum {minimum}")


class InsufficientLiquidity(EconomicError):
    code = "InsufficientLiquidity"


class InsufficientLpBalance(EconomicError):
    code = "InsufficientLpBalance"


class InsufficientBalance(EconomicError):
    code = "InsufficientBalance"


class InsufficientFunding(EconomicError):
    code = "InsufficientFunding"


class InvariantViolation(AmmError):
    """Raised when a post-state violates one or more pool invariants."""

    code = "InvariantViolation"

    def __init__(self, violations: Sequence[str]) -> None:
        self.violations = list(violations)
        super().__init__(f"invariant violations: {', '.join(self.violations)}")
