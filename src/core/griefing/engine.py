"""Dispatch-table engine for the griefing kernel.

``step(state, params)`` is the single entry point. It:

1. Refuses states that did not come out of ``initial_state()``.
2. Validates parameter domains.
3. Dispatches to the correct guard / update / effect / movement functions.
4. Checks all state and transition invariants on the post-state.
5. Returns a ``StepResult`` (accepted or rejected with reason).

The engine is a function table over an explicit state value: it never holds
agreement state itself, which is what lets one template serve every instance.
"""

from __future__ import annotations

from typing import Callable, Optional

from ...state.canonical import is_address
from . import guards as g
from .effects import (
    Movements,
    effect_activate_operator,
    effect_deactivate_operator,
    effect_increase_stake,
    effect_punish,
    effect_renounce_operator,
    effect_retrieve_stake,
    effect_reward,
    effect_set_variable_metadata,
    effect_start_countdown,
    effect_transfer_operator,
    movements_add_stake,
    movements_punish,
    movements_retrieve_stake,
    no_movements,
)
from .errors import (
    AgreementEnded,
    DeadlineAlreadySet,
    DeadlineNotPassed,
    GriefingError,
    InsufficientStake,
    InvalidParameter,
    InvariantViolation,
    NoStakeToRetrieve,
    NotActiveOperator,
    NotConstructor,
    NotCounterpartyOrOperator,
    NotOperator,
    NotStakerOrOperator,
    OperatorAlreadyActive,
    StaleStake,
    UnsupportedRatioType,
)
from .invariants import check_all, check_transition
from .types import Action, ActionParams, AgreementState, Effect, StepResult
from .updates import (
    apply_activate_operator,
    apply_deactivate_operator,
    apply_increase_stake,
    apply_punish,
    apply_renounce_operator,
    apply_retrieve_stake,
    apply_reward,
    apply_set_variable_metadata,
    apply_start_countdown,
    apply_transfer_operator,
)

GuardFn = Callable[[AgreementState, ActionParams], Optional[str]]
UpdateFn = Callable[[AgreementState, ActionParams], AgreementState]
EffectFn = Callable[[AgreementState, AgreementState, ActionParams], Effect]
MovementFn = Callable[[AgreementState, AgreementState, ActionParams], Movements]

_DISPATCH: dict[Action, tuple[GuardFn, UpdateFn, EffectFn, MovementFn]] = {
    Action.INCREASE_STAKE: (
        g.guard_increase_stake, apply_increase_stake, effect_increase_stake, movements_add_stake,
    ),
    Action.REWARD: (
        g.guard_reward, apply_reward, effect_reward, movements_add_stake,
    ),
    Action.PUNISH: (
        g.guard_punish, apply_punish, effect_punish, movements_punish,
    ),
    Action.RETRIEVE_STAKE: (
        g.guard_retrieve_stake, apply_retrieve_stake, effect_retrieve_stake, movements_retrieve_stake,
    ),
    Action.START_COUNTDOWN: (
        g.guard_start_countdown, apply_start_countdown, effect_start_countdown, no_movements,
    ),
    Action.SET_VARIABLE_METADATA: (
        g.guard_set_variable_metadata, apply_set_variable_metadata, effect_set_variable_metadata, no_movements,
    ),
    Action.ACTIVATE_OPERATOR: (
        g.guard_activate_operator, apply_activate_operator, effect_activate_operator, no_movements,
    ),
    Action.DEACTIVATE_OPERATOR: (
        g.guard_deactivate_operator, apply_deactivate_operator, effect_deactivate_operator, no_movements,
    ),
    Action.TRANSFER_OPERATOR: (
        g.guard_transfer_operator, apply_transfer_operator, effect_transfer_operator, no_movements,
    ),
    Action.RENOUNCE_OPERATOR: (
        g.guard_renounce_operator, apply_renounce_operator, effect_renounce_operator, no_movements,
    ),
}

NOT_INITIALIZED = "not_initialized"

# -- Parameter domains ---------------------------------------------------------

# Per-action (field_name, min_val) for integer fields.
_INT_BOUNDS: dict[Action, list[tuple[str, int]]] = {
    Action.INCREASE_STAKE: [("current_stake", 0), ("amount", 1)],
    Action.REWARD: [("current_stake", 0), ("amount", 1)],
    Action.PUNISH: [("amount", 1)],
}

# Per-action address fields (in addition to `sender`).
_ADDRESS_FIELDS: dict[Action, list[str]] = {
    Action.PUNISH: ["punished_from"],
    Action.RETRIEVE_STAKE: ["recipient"],
    Action.TRANSFER_OPERATOR: ["new_operator"],
}

_BYTES_FIELDS: dict[Action, list[str]] = {
    Action.PUNISH: ["message"],
    Action.SET_VARIABLE_METADATA: ["metadata"],
}


def _validate_params(params: ActionParams) -> str | None:
    """Check parameter domains. Returns rejection reason or None."""
    if not is_address(params.sender):
        return "param_domain:sender"
    if not isinstance(params.now, int) or isinstance(params.now, bool) or params.now < 0:
        return "param_domain:now"
    for field, lo in _INT_BOUNDS.get(params.action, []):
        val = getattr(params, field)
        if not isinstance(val, int) or isinstance(val, bool) or val < lo:
            return f"param_domain:{field}"
    for field in _ADDRESS_FIELDS.get(params.action, []):
        if not is_address(getattr(params, field)):
            return f"param_domain:{field}"
    for field in _BYTES_FIELDS.get(params.action, []):
        if not isinstance(getattr(params, field), (bytes, bytearray)):
            return f"param_domain:{field}"
    return None


def step(state: AgreementState, params: ActionParams) -> StepResult:
    """Execute one action against the given state.

    Returns ``StepResult`` with ``accepted=True`` on success,
    or ``accepted=False`` with a ``rejection`` reason string.
    """
    if not state.initialized:
        return StepResult(accepted=False, rejection=NOT_INITIALIZED)

    entry = _DISPATCH.get(params.action)
    if entry is None:
        return StepResult(accepted=False, rejection=f"unknown_action:{params.action}")

    domain_err = _validate_params(params)
    if domain_err is not None:
        return StepResult(accepted=False, rejection=domain_err)

    guard_fn, update_fn, effect_fn, movement_fn = entry

    reason = guard_fn(state, params)
    if reason is not None:
        return StepResult(accepted=False, rejection=reason)

    new_state = update_fn(state, params)

    violations = check_all(new_state) + check_transition(state, new_state)
    if violations:
        return StepResult(
            accepted=False,
            rejection=f"invariant:{','.join(violations)}",
        )

    return StepResult(
        accepted=True,
        state=new_state,
        effect=effect_fn(state, new_state, params),
        movements=movement_fn(state, new_state, params),
    )


_REJECTION_ERRORS: dict[str, type[GriefingError]] = {
    NOT_INITIALIZED: NotConstructor,
    g.NOT_STAKER_OR_OPERATOR: NotStakerOrOperator,
    g.NOT_COUNTERPARTY_OR_OPERATOR: NotCounterpartyOrOperator,
    g.NOT_OPERATOR: NotOperator,
    g.NOT_ACTIVE_OPERATOR: NotActiveOperator,
    g.AGREEMENT_ENDED: AgreementEnded,
    g.DEADLINE_NOT_PASSED: DeadlineNotPassed,
    g.DEADLINE_ALREADY_SET: DeadlineAlreadySet,
    g.STALE_STAKE: StaleStake,
    g.INSUFFICIENT_STAKE: InsufficientStake,
    g.NO_STAKE: NoStakeToRetrieve,
    g.OPERATOR_ALREADY_ACTIVE: OperatorAlreadyActive,
    g.UNSUPPORTED_RATIO_TYPE: UnsupportedRatioType,
}


def error_for(rejection: str) -> GriefingError:
    """Build the exception matching a rejection code."""
    cls = _REJECTION_ERRORS.get(rejection)
    if cls is UnsupportedRatioType:
        return UnsupportedRatioType("no cost strategy for this ratio type")
    if cls is not None:
        return cls()
    if rejection == g.ZERO_OPERATOR:
        return InvalidParameter("cannot set operator to the zero address")
    if rejection.startswith("param_domain:"):
        return InvalidParameter(f"invalid parameter {rejection.removeprefix('param_domain:')}")
    if rejection.startswith("invariant:"):
        return InvariantViolation(rejection.removeprefix("invariant:").split(","))
    return GriefingError(rejection)


def step_or_raise(state: AgreementState, params: ActionParams) -> StepResult:
    """Like ``step()`` but raises on rejection instead of returning a result.

    Raises:
        AuthorizationError: Caller lacks the required role.
        TemporalGateError: Deadline gate not satisfied.
        StateConflictError: Deadline already set, stale stake, insufficient stake.
        ParameterError: Parameter outside its domain, unsupported ratio type.
        ReinitializationError: State was never initialized.
    """
    result = step(state, params)
    if result.accepted:
        return result
    raise error_for(result.rejection or "")
