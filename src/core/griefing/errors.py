"""Exception types for one-way griefing agreements.

Kernel rejections are reason codes on ``StepResult``; ``step_or_raise()`` in
``engine.py`` and the instance shell turn them into the classes below.

Every error aborts the attempted operation with no partial state change.
"""

from __future__ import annotations


class GriefingError(Exception):
    """Base class for every agreement, registry and token error."""


# -- Kinds --------------------------------------------------------------------

class AuthorizationError(GriefingError):
    """Caller lacks the role the operation requires."""


class ReinitializationError(GriefingError):
    """Initializer invoked outside instance creation."""


class StateConflictError(GriefingError):
    """Operation conflicts with the current state."""


class TemporalGateError(GriefingError):
    """Operation attempted on the wrong side of the deadline."""


class FundsError(GriefingError):
    """Insufficient balance or allowance for a token movement."""


class ParameterError(GriefingError, ValueError):
    """Argument outside its domain."""


# -- Authorization --------------------------------------------------------------

class NotStakerOrOperator(AuthorizationError):
    def __init__(self, message: str = "only staker or active operator") -> None:
        super().__init__(message)


class NotCounterpartyOrOperator(AuthorizationError):
    def __init__(self, message: str = "only counterparty or active operator") -> None:
        super().__init__(message)


class NotOperator(AuthorizationError):
    def __init__(self, message: str = "only operator") -> None:
        super().__init__(message)


class NotActiveOperator(AuthorizationError):
    def __init__(self, message: str = "only active operator") -> None:
        super().__init__(message)


class NotAdministrator(AuthorizationError):
    def __init__(self, message: str = "only registry administrator") -> None:
        super().__init__(message)


class UnauthorizedFactory(AuthorizationError):
    def __init__(self, message: str = "factory not authorized") -> None:
        super().__init__(message)


# -- Reinitialization -----------------------------------------------------------

class NotConstructor(ReinitializationError):
    def __init__(self, message: str = "must be called within contract constructor") -> None:
        super().__init__(message)


# -- State conflicts ------------------------------------------------------------

class DeadlineAlreadySet(StateConflictError):
    def __init__(self, message: str = "deadline already set") -> None:
        super().__init__(message)


class StaleStake(StateConflictError):
    def __init__(self, message: str = "current stake incorrect") -> None:
        super().__init__(message)


class InsufficientStake(StateConflictError):
    def __init__(self, message: str = "cannot burn more than current stake") -> None:
        super().__init__(message)


class NoStakeToRetrieve(StateConflictError):
    def __init__(self, message: str = "no stake to retrieve") -> None:
        super().__init__(message)


class OperatorAlreadyActive(StateConflictError):
    def __init__(self, message: str = "operator already active") -> None:
        super().__init__(message)


class InstanceAlreadyRegistered(StateConflictError):
    def __init__(self, message: str = "instance already registered") -> None:
        super().__init__(message)


class InstanceExists(StateConflictError):
    def __init__(self, message: str = "instance already exists") -> None:
        super().__init__(message)


# -- Temporal gates -------------------------------------------------------------

class AgreementEnded(TemporalGateError):
    def __init__(self, message: str = "agreement ended") -> None:
        super().__init__(message)


class DeadlineNotPassed(TemporalGateError):
    def __init__(self, message: str = "deadline not passed") -> None:
        super().__init__(message)


# -- Funds ----------------------------------------------------------------------

class FundsUnavailable(FundsError):
    def __init__(self, message: str = "token transfer failed") -> None:
        super().__init__(message)


class BurnAuthorizationFailed(FundsError):
    def __init__(self, message: str = "nmr burnFrom failed") -> None:
        super().__init__(message)


# -- Parameters -----------------------------------------------------------------

class InvalidParameter(ParameterError):
    """Raised when a parameter is outside its domain."""


class UnsupportedRatioType(ParameterError):
    """Raised when no cost strategy is registered for a ratio type."""


class InvariantViolation(GriefingError):
    """Raised when a post-state violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
