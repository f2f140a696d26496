"""Tests for src/integration/agreement.py: template and live instances.

Scenarios follow the agreement's lifecycle end to end against a real
`TokenLedger` and an injected clock.
"""

from __future__ import annotations

import json
import threading

import pytest

from src.core.griefing.cost import RATIO_SCALE
from src.core.griefing.errors import (
    AgreementEnded,
    AuthorizationError,
    BurnAuthorizationFailed,
    DeadlineAlreadySet,
    DeadlineNotPassed,
    FundsUnavailable,
    InsufficientStake,
    InvalidParameter,
    NotActiveOperator,
    NotConstructor,
    NotCounterpartyOrOperator,
    NotStakerOrOperator,
    StaleStake,
    UnsupportedRatioType,
)
from src.core.griefing.state import state_from_dict
from src.core.griefing.types import Event, InitParams, RatioType
from src.integration.agreement import OneWayGriefing, OneWayGriefingTemplate
from src.state.canonical import ZERO_ADDRESS
from src.state.token import TokenLedger

TOKEN = "0x" + "99" * 20
TEMPLATE = "0x" + "10" * 20
INSTANCE = "0x" + "20" * 20
STAKER = "0x" + "11" * 20
COUNTERPARTY = "0x" + "22" * 20
OPERATOR = "0x" + "33" * 20
STRANGER = "0x" + "44" * 20

E18 = 10**18
STAKE = 500 * E18
PUNISHMENT = 100 * E18
LENGTH = 1000
START = 1_700_000_000


class FakeClock:
    def __init__(self, now: int = START):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token() -> TokenLedger:
    t = TokenLedger(TOKEN)
    for holder in (STAKER, COUNTERPARTY, OPERATOR):
        t.mint(holder, 10_000 * E18)
    return t


def _init(**kwargs) -> InitParams:
    base = dict(
        staker=STAKER,
        counterparty=COUNTERPARTY,
        ratio=2 * RATIO_SCALE,
        ratio_type=RatioType.Dec,
        countdown_length=LENGTH,
        operator=OPERATOR,
        static_metadata=b"static",
    )
    base.update(kwargs)
    return InitParams(**base)


@pytest.fixture
def agreement(token, clock) -> OneWayGriefing:
    return OneWayGriefingTemplate(TEMPLATE).clone(INSTANCE, token, _init(), clock=clock)


def _fund(token: TokenLedger, agreement: OneWayGriefing, who: str, amount: int) -> None:
    token.approve(who, agreement.address, amount)


def _staked(token: TokenLedger, agreement: OneWayGriefing, amount: int = STAKE) -> None:
    _fund(token, agreement, STAKER, amount)
    agreement.increase_stake(STAKER, agreement.get_stake(), amount)


# ---------------------------------------------------------------------------
# Template / construction
# ---------------------------------------------------------------------------

class TestTemplate:
    def test_initialize_always_fails(self):
        template = OneWayGriefingTemplate(TEMPLATE)
        with pytest.raises(NotConstructor, match="must be called within contract constructor"):
            template.initialize(STAKER, COUNTERPARTY)

    def test_never_has_active_operator(self):
        assert OneWayGriefingTemplate(TEMPLATE).has_active_operator() is False

    def test_instance_cannot_be_constructed_directly(self):
        with pytest.raises(NotConstructor):
            OneWayGriefing()

    def test_instance_cannot_be_reinitialized(self, agreement):
        with pytest.raises(NotConstructor):
            agreement.initialize(_init())

    def test_clone_rejects_bad_init(self, token, clock):
        with pytest.raises(InvalidParameter):
            OneWayGriefingTemplate(TEMPLATE).clone(INSTANCE, token, _init(counterparty=STAKER), clock=clock)

    def test_clone_initializes(self, agreement):
        assert agreement.get_staker() == STAKER
        assert agreement.get_counterparty() == COUNTERPARTY
        assert agreement.get_operator() == OPERATOR
        assert agreement.has_active_operator()
        assert agreement.get_ratio() == (2 * RATIO_SCALE, RatioType.Dec)
        assert agreement.get_length() == LENGTH
        assert agreement.get_deadline() is None
        assert agreement.get_metadata() == (b"static", b"")
        assert agreement.get_token() == TOKEN
        assert agreement.events[0].event == Event.INITIALIZED

    def test_instances_are_independent(self, token, clock):
        template = OneWayGriefingTemplate(TEMPLATE)
        a = template.clone("0x" + "a1" * 20, token, _init(), clock=clock)
        b = template.clone("0x" + "b1" * 20, token, _init(), clock=clock)
        a.start_countdown(STAKER)
        assert a.get_deadline() == START + LENGTH
        assert b.get_deadline() is None
        assert template.has_active_operator() is False


# ---------------------------------------------------------------------------
# Staking
# ---------------------------------------------------------------------------

class TestIncreaseStake:
    def test_staker_stakes(self, token, agreement):
        _fund(token, agreement, STAKER, STAKE)
        effect = agreement.increase_stake(STAKER, 0, STAKE)
        assert agreement.get_stake() == STAKE
        assert token.balance_of(agreement.address) == STAKE
        assert token.balance_of(STAKER) == 10_000 * E18 - STAKE
        assert effect.event == Event.STAKE_ADDED
        assert effect.args["funder"] == STAKER
        assert effect.args["new_stake"] == STAKE

    def test_operator_stakes(self, token, agreement):
        _fund(token, agreement, OPERATOR, 10)
        agreement.increase_stake(OPERATOR, 0, 10)
        assert token.balance_of(OPERATOR) == 10_000 * E18 - 10

    def test_counterparty_cannot_stake(self, token, agreement):
        _fund(token, agreement, COUNTERPARTY, 10)
        with pytest.raises(NotStakerOrOperator, match="only staker or active operator"):
            agreement.increase_stake(COUNTERPARTY, 0, 10)

    def test_stale_current_stake(self, token, agreement):
        _staked(token, agreement, 10)
        _fund(token, agreement, STAKER, 10)
        with pytest.raises(StaleStake):
            agreement.increase_stake(STAKER, 0, 10)
        assert agreement.get_stake() == 10

    def test_without_allowance(self, token, agreement):
        with pytest.raises(FundsUnavailable):
            agreement.increase_stake(STAKER, 0, 10)
        assert agreement.get_stake() == 0
        assert len(agreement.events) == 1

    def test_after_deadline(self, token, agreement, clock):
        agreement.start_countdown(STAKER)
        clock.advance(LENGTH)
        _fund(token, agreement, STAKER, 10)
        with pytest.raises(AgreementEnded):
            agreement.increase_stake(STAKER, 0, 10)


class TestReward:
    def test_counterparty_rewards(self, token, agreement):
        _staked(token, agreement)
        _fund(token, agreement, COUNTERPARTY, 50)
        effect = agreement.reward(COUNTERPARTY, STAKE, 50)
        assert agreement.get_stake() == STAKE + 50
        assert effect.args["funder"] == COUNTERPARTY
        assert effect.args["staker"] == STAKER

    def test_staker_cannot_reward(self, token, agreement):
        _fund(token, agreement, STAKER, 50)
        with pytest.raises(NotCounterpartyOrOperator):
            agreement.reward(STAKER, 0, 50)


# ---------------------------------------------------------------------------
# Punishment
# ---------------------------------------------------------------------------

class TestPunish:
    def test_cost_burned_from_punisher(self, token, agreement):
        _staked(token, agreement)
        supply = token.total_supply
        token.approve(COUNTERPARTY, agreement.address, 2 * PUNISHMENT)

        effect = agreement.punish(COUNTERPARTY, COUNTERPARTY, PUNISHMENT, b"message")

        assert agreement.get_stake() == STAKE - PUNISHMENT
        assert agreement.get_grief_cost() == 2 * PUNISHMENT
        assert token.balance_of(COUNTERPARTY) == 10_000 * E18 - 2 * PUNISHMENT
        assert token.balance_of(agreement.address) == STAKE - PUNISHMENT
        assert token.total_supply == supply - 3 * PUNISHMENT
        assert effect.event == Event.GRIEFED
        assert effect.args["cost"] == 2 * PUNISHMENT
        assert effect.args["message"] == b"message"

    def test_get_cost(self, agreement):
        assert agreement.get_cost(PUNISHMENT) == 2 * PUNISHMENT

    def test_burn_without_approval_changes_nothing(self, token, agreement):
        _staked(token, agreement)
        with pytest.raises(BurnAuthorizationFailed, match="nmr burnFrom failed"):
            agreement.punish(COUNTERPARTY, COUNTERPARTY, PUNISHMENT)
        assert agreement.get_stake() == STAKE
        assert agreement.get_grief_cost() == 0
        assert token.balance_of(agreement.address) == STAKE

    def test_staker_cannot_punish(self, token, agreement):
        _staked(token, agreement)
        with pytest.raises(NotCounterpartyOrOperator, match="only counterparty or active operator"):
            agreement.punish(STAKER, STAKER, 1)

    def test_more_than_stake(self, token, agreement):
        _staked(token, agreement, 10)
        token.approve(COUNTERPARTY, agreement.address, 100)
        with pytest.raises(InsufficientStake):
            agreement.punish(COUNTERPARTY, COUNTERPARTY, 11)

    def test_after_deadline(self, token, agreement, clock):
        _staked(token, agreement)
        agreement.start_countdown(STAKER)
        clock.advance(LENGTH + 1)
        token.approve(COUNTERPARTY, agreement.address, 2 * PUNISHMENT)
        with pytest.raises(AgreementEnded, match="agreement ended"):
            agreement.punish(COUNTERPARTY, COUNTERPARTY, PUNISHMENT)

    def test_unsupported_ratio_type(self, token, clock):
        a = OneWayGriefingTemplate(TEMPLATE).clone(INSTANCE, token, _init(ratio_type=RatioType.NaN), clock=clock)
        _staked(token, a, 10)
        with pytest.raises(UnsupportedRatioType):
            a.punish(COUNTERPARTY, COUNTERPARTY, 1)
        with pytest.raises(UnsupportedRatioType):
            a.get_cost(1)

    def test_zero_ratio_costs_nothing(self, token, clock):
        a = OneWayGriefingTemplate(TEMPLATE).clone(INSTANCE, token, _init(ratio=0), clock=clock)
        _staked(token, a, 10)
        a.punish(COUNTERPARTY, COUNTERPARTY, 10)
        assert a.get_stake() == 0
        assert token.balance_of(COUNTERPARTY) == 10_000 * E18


# ---------------------------------------------------------------------------
# Countdown / retrieval
# ---------------------------------------------------------------------------

class TestCountdown:
    def test_start(self, agreement):
        effect = agreement.start_countdown(STAKER)
        assert effect.event == Event.DEADLINE_SET
        assert agreement.get_deadline() == START + LENGTH
        assert agreement.time_remaining() == LENGTH
        assert not agreement.is_over()

    def test_not_started(self, agreement):
        assert agreement.time_remaining() is None
        assert not agreement.is_over()

    def test_twice(self, agreement):
        agreement.start_countdown(STAKER)
        with pytest.raises(DeadlineAlreadySet, match="deadline already set"):
            agreement.start_countdown(OPERATOR)

    def test_is_over_at_deadline(self, agreement, clock):
        agreement.start_countdown(STAKER)
        clock.advance(LENGTH)
        assert agreement.is_over()
        assert agreement.time_remaining() == 0

    def test_counterparty_cannot_start(self, agreement):
        with pytest.raises(NotStakerOrOperator):
            agreement.start_countdown(COUNTERPARTY)


class TestRetrieveStake:
    def test_after_deadline(self, token, agreement, clock):
        _staked(token, agreement)
        agreement.start_countdown(STAKER)
        clock.advance(LENGTH + 1)
        effect = agreement.retrieve_stake(STAKER, STRANGER)
        assert agreement.get_stake() == 0
        assert token.balance_of(STRANGER) == STAKE
        assert token.balance_of(agreement.address) == 0
        assert effect.event == Event.STAKE_TAKEN
        assert effect.args["amount"] == STAKE

    def test_before_deadline(self, token, agreement, clock):
        _staked(token, agreement)
        agreement.start_countdown(STAKER)
        clock.advance(LENGTH - 1)
        with pytest.raises(DeadlineNotPassed, match="deadline not passed"):
            agreement.retrieve_stake(STAKER, STAKER)

    def test_without_countdown(self, token, agreement):
        _staked(token, agreement)
        with pytest.raises(DeadlineNotPassed):
            agreement.retrieve_stake(STAKER, STAKER)

    def test_to_zero_address_keeps_stake(self, token, agreement, clock):
        _staked(token, agreement)
        agreement.start_countdown(STAKER)
        clock.advance(LENGTH)
        with pytest.raises(InvalidParameter):
            agreement.retrieve_stake(STAKER, ZERO_ADDRESS)
        assert agreement.get_stake() == STAKE


# ---------------------------------------------------------------------------
# Metadata / operator
# ---------------------------------------------------------------------------

class TestMetadata:
    def test_set(self, agreement):
        effect = agreement.set_variable_metadata(STAKER, b"\x12\x20new")
        assert agreement.get_metadata() == (b"static", b"\x12\x20new")
        assert effect.event == Event.VARIABLE_METADATA_SET

    def test_counterparty_cannot_set(self, agreement):
        with pytest.raises(NotStakerOrOperator):
            agreement.set_variable_metadata(COUNTERPARTY, b"x")

    def test_str_rejected(self, agreement):
        with pytest.raises(InvalidParameter):
            agreement.set_variable_metadata(STAKER, "text")


class TestOperator:
    def test_deactivated_operator_is_powerless(self, token, agreement):
        _staked(token, agreement)
        agreement.deactivate_operator(OPERATOR)
        assert not agreement.has_active_operator()
        assert agreement.is_operator(OPERATOR)
        assert not agreement.is_active_operator(OPERATOR)
        token.approve(OPERATOR, agreement.address, 2 * PUNISHMENT)
        with pytest.raises(AuthorizationError):
            agreement.punish(OPERATOR, OPERATOR, PUNISHMENT)
        with pytest.raises(AuthorizationError):
            agreement.start_countdown(OPERATOR)
        # parties are unaffected
        agreement.start_countdown(STAKER)
        token.approve(COUNTERPARTY, agreement.address, 2 * PUNISHMENT)
        agreement.punish(COUNTERPARTY, COUNTERPARTY, PUNISHMENT)

    def test_reactivate(self, agreement):
        agreement.deactivate_operator(OPERATOR)
        agreement.activate_operator(OPERATOR)
        assert agreement.is_active_operator(OPERATOR)

    def test_transfer(self, agreement):
        agreement.transfer_operator(OPERATOR, STRANGER)
        assert agreement.get_operator() == STRANGER
        assert agreement.is_active_operator(STRANGER)
        assert not agreement.is_operator(OPERATOR)

    def test_transfer_to_zero(self, agreement):
        with pytest.raises(InvalidParameter):
            agreement.transfer_operator(OPERATOR, ZERO_ADDRESS)

    def test_renounce(self, agreement):
        effect = agreement.renounce_operator(OPERATOR)
        assert agreement.get_operator() == ZERO_ADDRESS
        assert not agreement.has_active_operator()
        assert effect.args == {"operator": ZERO_ADDRESS, "active": False}
        with pytest.raises(NotActiveOperator):
            agreement.renounce_operator(OPERATOR)

    def test_no_operator(self, token, clock):
        a = OneWayGriefingTemplate(TEMPLATE).clone(INSTANCE, token, _init(operator=None), clock=clock)
        assert not a.has_active_operator()
        assert not a.is_operator(ZERO_ADDRESS)


# ---------------------------------------------------------------------------
# Reads / persistence
# ---------------------------------------------------------------------------

class TestReads:
    def test_role_queries(self, agreement):
        assert agreement.is_staker(STAKER)
        assert agreement.is_staker("11" * 20)
        assert not agreement.is_staker(COUNTERPARTY)
        assert agreement.is_counterparty(COUNTERPARTY)

    def test_bad_sender(self, agreement):
        with pytest.raises(InvalidParameter):
            agreement.start_countdown("staker")

    def test_to_dict(self, token, agreement):
        _staked(token, agreement, 42)
        record = agreement.to_dict()
        assert record["address"] == INSTANCE
        assert record["template"] == TEMPLATE
        assert record["token"] == TOKEN
        assert record["stake"] == 42
        state = state_from_dict(record)
        assert state == agreement.state

    def test_event_log_is_append_only(self, token, agreement):
        _staked(token, agreement, 1)
        agreement.start_countdown(STAKER)
        assert [e.event for e in agreement.events] == [
            Event.INITIALIZED,
            Event.STAKE_ADDED,
            Event.DEADLINE_SET,
        ]

    def test_bad_clock(self, token):
        a = OneWayGriefingTemplate(TEMPLATE).clone(INSTANCE, token, _init(), clock=lambda: 1.5)
        with pytest.raises(TypeError):
            a.start_countdown(STAKER)


# ---------------------------------------------------------------------------
# Atomicity / serialization
# ---------------------------------------------------------------------------

def _drain_escrow(token: TokenLedger, agreement: OneWayGriefing) -> None:
    held = token.balance_of(agreement.address)
    token.approve(agreement.address, STRANGER, held)
    token.transfer_from(STRANGER, agreement.address, STRANGER, held)


class TestAllOrNothing:
    def test_punish_with_short_escrow_charges_nobody(self, token, agreement):
        _staked(token, agreement, 2 * PUNISHMENT)
        _drain_escrow(token, agreement)
        token.approve(COUNTERPARTY, agreement.address, 2 * PUNISHMENT)
        balance = token.balance_of(COUNTERPARTY)
        supply = token.total_supply
        events = agreement.events

        with pytest.raises(FundsUnavailable):
            agreement.punish(COUNTERPARTY, COUNTERPARTY, PUNISHMENT)

        assert token.balance_of(COUNTERPARTY) == balance
        assert token.allowance(COUNTERPARTY, agreement.address) == 2 * PUNISHMENT
        assert token.total_supply == supply
        assert agreement.get_stake() == 2 * PUNISHMENT
        assert agreement.get_grief_cost() == 0
        assert agreement.events == events

    def test_retrieve_with_short_escrow_keeps_stake(self, token, agreement, clock):
        _staked(token, agreement)
        agreement.start_countdown(STAKER)
        clock.advance(LENGTH)
        _drain_escrow(token, agreement)
        events = agreement.events
        with pytest.raises(FundsUnavailable):
            agreement.retrieve_stake(STAKER, STAKER)
        assert agreement.get_stake() == STAKE
        assert agreement.events == events

    def test_punisher_is_the_agreement(self, token, agreement):
        _staked(token, agreement, 2 * PUNISHMENT)
        token.approve(agreement.address, agreement.address, 2 * PUNISHMENT)
        with pytest.raises(FundsUnavailable):
            agreement.punish(COUNTERPARTY, agreement.address, PUNISHMENT)
        assert token.balance_of(agreement.address) == 2 * PUNISHMENT
        assert agreement.get_stake() == 2 * PUNISHMENT

    def test_retrieve_to_self_rejected(self, token, agreement, clock):
        _staked(token, agreement)
        agreement.start_countdown(STAKER)
        clock.advance(LENGTH)
        with pytest.raises(InvalidParameter):
            agreement.retrieve_stake(STAKER, agreement.address)
        assert agreement.get_stake() == STAKE


class TestSerializedOperations:
    def test_racing_stakes_with_same_current_stake(self, token, agreement):
        workers = 8
        token.approve(STAKER, agreement.address, workers * 10)
        barrier = threading.Barrier(workers)
        outcomes: list[str] = []
        outcomes_lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            try:
                agreement.increase_stake(STAKER, 0, 10)
                outcome = "ok"
            except StaleStake:
                outcome = "stale"
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["ok"] + ["stale"] * (workers - 1)
        assert agreement.get_stake() == 10
        assert token.balance_of(agreement.address) == 10
        assert [e.event for e in agreement.events].count(Event.STAKE_ADDED) == 1


class TestSnapshot:
    def test_canonical_bytes(self, token, agreement):
        _staked(token, agreement, 42)
        snapshot = agreement.snapshot_bytes()
        assert json.loads(snapshot) == agreement.to_dict()
        assert snapshot == agreement.snapshot_bytes()
        assert b" " not in snapshot
