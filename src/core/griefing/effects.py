"""Effect and movement functions for the griefing kernel.

One pair of pure functions per action:
- ``effect_*`` computes the observable ``Effect`` (event),
- ``movements_*`` computes the token instructions the shell must execute.

Both receive the PRE- and POST-state: events report post-state totals, while
amounts that a transition zeroes (the retrieved stake) come from the pre-state.

Movement order matters. The only movement that can fail for reasons outside
the agreement (allowance/balance of a third party) is listed first; the
movements after it touch only the agreement's own escrow.
"""

from __future__ import annotations

from .types import ActionParams, AgreementState, Effect, Event, Movement, MovementKind

Movements = tuple[Movement, ...]


def _operator_updated(post: AgreementState) -> Effect:
    return Effect(
        event=Event.OPERATOR_UPDATED,
        args={"operator": post.operator, "active": post.operator_active},
    )


def _stake_added(post: AgreementState, params: ActionParams) -> Effect:
    return Effect(
        event=Event.STAKE_ADDED,
        args={
            "staker": post.staker,
            "funder": params.sender,
            "amount": params.amount,
            "new_stake": post.stake,
        },
    )


# -- Events ---------------------------------------------------------------------

def effect_increase_stake(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return _stake_added(post, params)


def effect_reward(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return _stake_added(post, params)


def effect_punish(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return Effect(
        event=Event.GRIEFED,
        args={
            "punisher": params.sender,
            "staker": post.staker,
            "punishment": params.amount,
            "cost": post.grief_cost,
            "message": bytes(params.message),
        },
    )


def effect_retrieve_stake(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return Effect(
        event=Event.STAKE_TAKEN,
        args={
            "staker": post.staker,
            "recipient": params.recipient,
            "amount": pre.stake,
            "new_stake": post.stake,
        },
    )


def effect_start_countdown(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return Effect(event=Event.DEADLINE_SET, args={"deadline": post.deadline})


def effect_set_variable_metadata(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return Effect(event=Event.VARIABLE_METADATA_SET, args={"metadata": post.variable_metadata})


def effect_activate_operator(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return _operator_updated(post)


def effect_deactivate_operator(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return _operator_updated(post)


def effect_transfer_operator(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return _operator_updated(post)


def effect_renounce_operator(pre: AgreementState, post: AgreementState, params: ActionParams) -> Effect:
    return _operator_updated(post)


# -- Token movements --------------------------------------------------------------

def no_movements(pre: AgreementState, post: AgreementState, params: ActionParams) -> Movements:
    return ()


def movements_add_stake(pre: AgreementState, post: AgreementState, params: ActionParams) -> Movements:
    return (Movement(MovementKind.PULL, params.sender, params.amount),)


def movements_punish(pre: AgreementState, post: AgreementState, params: ActionParams) -> Movements:
    return (
        Movement(MovementKind.BURN_FROM, params.punished_from, post.grief_cost),
        Movement(MovementKind.BURN, "", params.amount),
    )


def movements_retrieve_stake(pre: AgreementState, post: AgreementState, params: ActionParams) -> Movements:
    return (Movement(MovementKind.PUSH, params.recipient, pre.stake),)
