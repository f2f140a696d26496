"""Invariant checkers for the griefing kernel.

Each function returns True when the invariant holds. `check_all()` returns the
list of violated state invariant IDs and `check_transition()` the list of
violated PRE -> POST invariant IDs (empty = all pass).
"""

from __future__ import annotations

from typing import Callable

from ...state.canonical import is_zero_address
from .types import AgreementState


def inv_initialized(s: AgreementState) -> bool:
    return s.initialized


def inv_stake_nonneg(s: AgreementState) -> bool:
    return s.stake >= 0


def inv_grief_cost_nonneg(s: AgreementState) -> bool:
    return s.grief_cost >= 0


def inv_ratio_nonneg(s: AgreementState) -> bool:
    return s.ratio >= 0


def inv_countdown_length_nonneg(s: AgreementState) -> bool:
    return s.countdown_length >= 0


def inv_parties_distinct(s: AgreementState) -> bool:
    return s.staker != s.counterparty


def inv_active_operator_set(s: AgreementState) -> bool:
    if not s.operator_active:
        return True
    return not is_zero_address(s.operator)


# -- Transition invariants ---------------------------------------------------------

def tinv_deadline_write_once(pre: AgreementState, post: AgreementState) -> bool:
    if pre.deadline is None:
        return True
    return post.deadline == pre.deadline


def tinv_parties_immutable(pre: AgreementState, post: AgreementState) -> bool:
    return pre.staker == post.staker and pre.counterparty == post.counterparty


def tinv_terms_immutable(pre: AgreementState, post: AgreementState) -> bool:
    return (
        pre.ratio == post.ratio
        and pre.ratio_type == post.ratio_type
        and pre.countdown_length == post.countdown_length
    )


def tinv_static_metadata_immutable(pre: AgreementState, post: AgreementState) -> bool:
    return pre.static_metadata == post.static_metadata


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[str, Callable[[AgreementState], bool]] = {
    "inv_initialized": inv_initialized,
    "inv_stake_nonneg": inv_stake_nonneg,
    "inv_grief_cost_nonneg": inv_grief_cost_nonneg,
    "inv_ratio_nonneg": inv_ratio_nonneg,
    "inv_countdown_length_nonneg": inv_countdown_length_nonneg,
    "inv_parties_distinct": inv_parties_distinct,
    "inv_active_operator_set": inv_active_operator_set,
}

TRANSITION_INVARIANT_REGISTRY: dict[str, Callable[[AgreementState, AgreementState], bool]] = {
    "tinv_deadline_write_once": tinv_deadline_write_once,
    "tinv_parties_immutable": tinv_parties_immutable,
    "tinv_terms_immutable": tinv_terms_immutable,
    "tinv_static_metadata_immutable": tinv_static_metadata_immutable,
}


def check_all(state: AgreementState) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(state)
    ]


def check_transition(pre: AgreementState, post: AgreementState) -> list[str]:
    """Return list of violated transition invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in TRANSITION_INVARIANT_REGISTRY.items()
        if not check_fn(pre, post)
    ]
