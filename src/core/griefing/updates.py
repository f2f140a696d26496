"""State transition functions for the griefing kernel.

One pure function per action. Each returns a new `AgreementState` with the
action's updates applied.

Semantics:
- updates evaluate against the PRE-state,
- guards have already passed,
- we implement updates via `dataclasses.replace()` on frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import replace

from ...state.canonical import ZERO_ADDRESS
from .cost import get_cost
from .types import ActionParams, AgreementState


def apply_increase_stake(state: AgreementState, params: ActionParams) -> AgreementState:
    return replace(state, stake=state.stake + params.amount)


def apply_reward(state: AgreementState, params: ActionParams) -> AgreementState:
    return replace(state, stake=state.stake + params.amount)


def apply_punish(state: AgreementState, params: ActionParams) -> AgreementState:
    # Stake drops by the punishment; the cost is paid separately by the punisher.
    return replace(
        state,
        stake=state.stake - params.amount,
        grief_cost=get_cost(state.ratio, state.ratio_type, params.amount),
    )


def apply_retrieve_stake(state: AgreementState, params: ActionParams) -> AgreementState:
    return replace(state, stake=0)


def apply_start_countdown(state: AgreementState, params: ActionParams) -> AgreementState:
    return replace(state, deadline=params.now + state.countdown_length)


def apply_set_variable_metadata(state: AgreementState, params: ActionParams) -> AgreementState:
    return replace(state, variable_metadata=bytes(params.metadata))


def apply_activate_operator(state: AgreementState, params: ActionParams) -> AgreementState:
    return replace(state, operator_active=True)


def apply_deactivate_operator(state: AgreementState, params: ActionParams) -> AgreementState:
    return replace(state, operator_active=False)


def apply_transfer_operator(state: AgreementState, params: ActionParams) -> AgreementState:
    return replace(state, operator=params.new_operator, operator_active=True)


def apply_renounce_operator(state: AgreementState, params: ActionParams) -> AgreementState:
    return replace(state, operator=ZERO_ADDRESS, operator_active=False)
