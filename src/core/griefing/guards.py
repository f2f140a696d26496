"""Guard functions for the griefing kernel.

One pure function per action. Each returns ``None`` when the action is
allowed in the given PRE-state, otherwise the rejection code naming the first
failed condition. Role checks run before temporal and state checks.
"""

from __future__ import annotations

from typing import Optional

from ...state.canonical import is_zero_address
from .cost import supports
from .types import ActionParams, AgreementState

# Rejection codes (mapped to exception classes in engine.py).
NOT_STAKER_OR_OPERATOR = "auth:staker_or_operator"
NOT_COUNTERPARTY_OR_OPERATOR = "auth:counterparty_or_operator"
NOT_OPERATOR = "auth:operator"
NOT_ACTIVE_OPERATOR = "auth:active_operator"
AGREEMENT_ENDED = "time:agreement_ended"
DEADLINE_NOT_PASSED = "time:deadline_not_passed"
DEADLINE_ALREADY_SET = "state:deadline_already_set"
STALE_STAKE = "state:stale_stake"
INSUFFICIENT_STAKE = "state:insufficient_stake"
NO_STAKE = "state:no_stake"
OPERATOR_ALREADY_ACTIVE = "state:operator_already_active"
UNSUPPORTED_RATIO_TYPE = "param:ratio_type"
ZERO_OPERATOR = "param:new_operator"


# -- Role predicates -------------------------------------------------------------

def is_active_operator(state: AgreementState, who: str) -> bool:
    return state.operator_active and not is_zero_address(state.operator) and who == state.operator


def is_staker_or_active_operator(state: AgreementState, who: str) -> bool:
    return who == state.staker or is_active_operator(state, who)


def is_counterparty_or_active_operator(state: AgreementState, who: str) -> bool:
    return who == state.counterparty or is_active_operator(state, who)


# -- Countdown predicates --------------------------------------------------------

def is_over(state: AgreementState, now: int) -> bool:
    """True once a deadline exists and `now` has reached it."""
    return state.deadline is not None and now >= state.deadline


def time_remaining(state: AgreementState, now: int) -> Optional[int]:
    """Seconds until the deadline, 0 once over, None when not started."""
    if state.deadline is None:
        return None
    return max(state.deadline - now, 0)


# -- Stake ----------------------------------------------------------------------

def guard_increase_stake(state: AgreementState, params: ActionParams) -> Optional[str]:
    if not is_staker_or_active_operator(state, params.sender):
        return NOT_STAKER_OR_OPERATOR
    if is_over(state, params.now):
        return AGREEMENT_ENDED
    if params.current_stake != state.stake:
        return STALE_STAKE
    return None


def guard_reward(state: AgreementState, params: ActionParams) -> Optional[str]:
    if not is_counterparty_or_active_operator(state, params.sender):
        return NOT_COUNTERPARTY_OR_OPERATOR
    if is_over(state, params.now):
        return AGREEMENT_ENDED
    if params.current_stake != state.stake:
        return STALE_STAKE
    return None


def guard_punish(state: AgreementState, params: ActionParams) -> Optional[str]:
    if not is_counterparty_or_active_operator(state, params.sender):
        return NOT_COUNTERPARTY_OR_OPERATOR
    if is_over(state, params.now):
        return AGREEMENT_ENDED
    if not supports(state.ratio_type):
        return UNSUPPORTED_RATIO_TYPE
    if params.amount > state.stake:
        return INSUFFICIENT_STAKE
    return None


def guard_retrieve_stake(state: AgreementState, params: ActionParams) -> Optional[str]:
    if not is_staker_or_active_operator(state, params.sender):
        return NOT_STAKER_OR_OPERATOR
    if not is_over(state, params.now):
        return DEADLINE_NOT_PASSED
    if state.stake == 0:
        return NO_STAKE
    return None


# -- Countdown / metadata ---------------------------------------------------------

def guard_start_countdown(state: AgreementState, params: ActionParams) -> Optional[str]:
    if not is_staker_or_active_operator(state, params.sender):
        return NOT_STAKER_OR_OPERATOR
    if state.deadline is not None:
        return DEADLINE_ALREADY_SET
    return None


def guard_set_variable_metadata(state: AgreementState, params: ActionParams) -> Optional[str]:
    if not is_staker_or_active_operator(state, params.sender):
        return NOT_STAKER_OR_OPERATOR
    return None


# -- Operator -------------------------------------------------------------------

def guard_activate_operator(state: AgreementState, params: ActionParams) -> Optional[str]:
    if is_zero_address(state.operator) or params.sender != state.operator:
        return NOT_OPERATOR
    if state.operator_active:
        return OPERATOR_ALREADY_ACTIVE
    return None


def guard_deactivate_operator(state: AgreementState, params: ActionParams) -> Optional[str]:
    if not is_active_operator(state, params.sender):
        return NOT_ACTIVE_OPERATOR
    return None


def guard_transfer_operator(state: AgreementState, params: ActionParams) -> Optional[str]:
    if not is_active_operator(state, params.sender):
        return NOT_ACTIVE_OPERATOR
    if is_zero_address(params.new_operator):
        return ZERO_OPERATOR
    return None


def guard_renounce_operator(state: AgreementState, params: ActionParams) -> Optional[str]:
    if not is_active_operator(state, params.sender):
        return NOT_ACTIVE_OPERATOR
    return None
