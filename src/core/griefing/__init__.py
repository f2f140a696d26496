"""`griefing`: pure-Python kernel of the one-way griefing agreement.

- deterministic, integer-only transitions (18-decimal fixed-point ratio),
- immutable state (frozen dataclasses),
- fail-closed guards and invariant checks,
- token movements emitted as instructions, never executed here.

Public API:
- `initial_state(init) -> AgreementState`
- `step(state, params) -> StepResult`
- `step_or_raise(state, params) -> StepResult` (raises on rejection)
- `get_cost(ratio, ratio_type, punishment) -> int`
"""

from .cost import RATIO_SCALE, get_cost, ratio_from_decimal
from .engine import step, step_or_raise
from .errors import (
    AgreementEnded,
    AuthorizationError,
    BurnAuthorizationFailed,
    DeadlineAlreadySet,
    DeadlineNotPassed,
    FundsError,
    FundsUnavailable,
    GriefingError,
    InstanceAlreadyRegistered,
    InstanceExists,
    InsufficientStake,
    InvalidParameter,
    InvariantViolation,
    NoStakeToRetrieve,
    NotActiveOperator,
    NotAdministrator,
    NotConstructor,
    NotCounterpartyOrOperator,
    NotOperator,
    NotStakerOrOperator,
    OperatorAlreadyActive,
    ParameterError,
    ReinitializationError,
    StaleStake,
    StateConflictError,
    TemporalGateError,
    UnauthorizedFactory,
    UnsupportedRatioType,
)
from .state import initial_state, state_from_dict, state_to_dict
from .types import (
    Action,
    ActionParams,
    AgreementState,
    Effect,
    Event,
    InitParams,
    Movement,
    MovementKind,
    RatioType,
    StepResult,
)

__all__ = [
    "RATIO_SCALE",
    "get_cost",
    "ratio_from_decimal",
    "step",
    "step_or_raise",
    "initial_state",
    "state_from_dict",
    "state_to_dict",
    "Action",
    "ActionParams",
    "AgreementState",
    "Effect",
    "Event",
    "InitParams",
    "Movement",
    "MovementKind",
    "RatioType",
    "StepResult",
    "GriefingError",
    "AuthorizationError",
    "ReinitializationError",
    "StateConflictError",
    "TemporalGateError",
    "FundsError",
    "ParameterError",
    "NotStakerOrOperator",
    "NotCounterpartyOrOperator",
    "NotOperator",
    "NotActiveOperator",
    "NotAdministrator",
    "UnauthorizedFactory",
    "NotConstructor",
    "DeadlineAlreadySet",
    "StaleStake",
    "InsufficientStake",
    "NoStakeToRetrieve",
    "OperatorAlreadyActive",
    "InstanceAlreadyRegistered",
    "InstanceExists",
    "AgreementEnded",
    "DeadlineNotPassed",
    "FundsUnavailable",
    "BurnAuthorizationFailed",
    "InvalidParameter",
    "UnsupportedRatioType",
    "InvariantViolation",
]
