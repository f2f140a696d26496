"""
One-way griefing template and instances.

This is the imperative shell around the griefing kernel (`src/core/griefing`):
- `OneWayGriefingTemplate` holds the behavior (the kernel's dispatch table)
  and no agreement state. Its initializer always fails.
- `OneWayGriefing` is a live agreement: private state, a token reference and
  a clock. It can only come out of `OneWayGriefingTemplate.clone()`, which
  builds and initializes it in one step; it exposes no initializer either.

Every operation is serialized per instance and is all-or-nothing: kernel step,
then a preflight of every token movement against current balances and
allowances, then the movements, then commit of state and event. A failure at any point
leaves state, event log and escrow as they were.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, NoReturn, Optional

from ..config.logging import logger
from ..core.griefing.cost import get_cost
from ..core.griefing.engine import step_or_raise
from ..core.griefing.errors import (
    BurnAuthorizationFailed,
    FundsUnavailable,
    GriefingError,
    InvalidParameter,
    NotConstructor,
)
from ..core.griefing.guards import is_active_operator, is_over, time_remaining
from ..core.griefing.state import initial_state, state_to_dict
from ..core.griefing.types import (
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
from ..state.canonical import canonical_json_bytes, is_zero_address
from ..state.token import Token
from .validation import require_address

Clock = Callable[[], int]


def wall_clock() -> int:
    return int(time.time())


class OneWayGriefingTemplate:
    """Shared, stateless behavior definition cloned by every instance."""

    def __init__(self, address: str):
        self.address = require_address(address, "template")

    def initialize(self, *args: Any, **kwargs: Any) -> NoReturn:
        """The template is never initialized, whoever calls."""
        raise NotConstructor()

    def has_active_operator(self) -> bool:
        return False

    def execute(self, state: AgreementState, params: ActionParams) -> StepResult:
        """Run one action of the agreement behavior against `state`."""
        return step_or_raise(state, params)

    def clone(
        self,
        address: str,
        token: Token,
        init: InitParams,
        *,
        clock: Optional[Clock] = None,
    ) -> "OneWayGriefing":
        """Create an instance bound to this template and initialize it atomically.

        Raises:
            InvalidParameter: If the initializer inputs are invalid (nothing is created)
        """
        state = initial_state(init)
        return OneWayGriefing._deploy(self, require_address(address, "instance"), token, state, clock or wall_clock)

    def __repr__(self) -> str:
        return f"OneWayGriefingTemplate({self.address})"


class OneWayGriefing:
    """A live one-way griefing agreement."""

    address: str
    template: OneWayGriefingTemplate
    token: Token

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        raise NotConstructor()

    @classmethod
    def _deploy(
        cls,
        template: OneWayGriefingTemplate,
        address: str,
        token: Token,
        state: AgreementState,
        clock: Clock,
    ) -> "OneWayGriefing":
        if not state.initialized:
            raise NotConstructor()
        self = object.__new__(cls)
        self.address = address
        self.template = template
        self.token = token
        self._state = state
        self._clock = clock
        self._lock = threading.Lock()
        self._events: list[Effect] = [
            Effect(
                event=Event.INITIALIZED,
                args={
                    "operator": state.operator,
                    "staker": state.staker,
                    "counterparty": state.counterparty,
                    "ratio": state.ratio,
                    "ratio_type": state.ratio_type,
                    "countdown_length": state.countdown_length,
                    "static_metadata": state.static_metadata,
                },
            )
        ]
        return self

    def initialize(self, *args: Any, **kwargs: Any) -> NoReturn:
        """Instances were initialized at creation; this path is closed."""
        raise NotConstructor()

    # -- Execution -----------------------------------------------------------

    def _now(self) -> int:
        now = self._clock()
        if not isinstance(now, int) or isinstance(now, bool):
            raise TypeError(f"clock must return int seconds, got {type(now).__name__}")
        return now

    def _preflight(self, movements: tuple[Movement, ...]) -> None:
        """Check that every movement of a step can complete before running any of them."""
        escrow = self.token.balance_of(self.address)
        for movement in movements:
            if movement.kind is MovementKind.PULL:
                if self.token.allowance(movement.account, self.address) < movement.amount:
                    raise FundsUnavailable("insufficient allowance")
                if self.token.balance_of(movement.account) < movement.amount:
                    raise FundsUnavailable("insufficient balance")
                escrow += movement.amount
            elif movement.kind is MovementKind.BURN_FROM:
                if (
                    self.token.allowance(movement.account, self.address) < movement.amount
                    or self.token.balance_of(movement.account) < movement.amount
                ):
                    raise BurnAuthorizationFailed()
                if movement.account == self.address:
                    escrow -= movement.amount
            else:
                if movement.kind is MovementKind.PUSH and is_zero_address(movement.account):
                    raise InvalidParameter("cannot transfer to the zero address")
                if escrow < movement.amount:
                    raise FundsUnavailable(f"escrow holds {escrow}, needs {movement.amount}")
                escrow -= movement.amount

    def _move(self, movement: Movement) -> None:
        if movement.kind is MovementKind.PULL:
            self.token.transfer_from(self.address, movement.account, self.address, movement.amount)
        elif movement.kind is MovementKind.PUSH:
            self.token.transfer(self.address, movement.account, movement.amount)
        elif movement.kind is MovementKind.BURN_FROM:
            self.token.burn_from(self.address, movement.account, movement.amount)
        elif movement.kind is MovementKind.BURN:
            self.token.burn(self.address, movement.amount)
        else:  # pragma: no cover - exhaustive over MovementKind
            raise ValueError(f"unknown movement kind {movement.kind!r}")

    def _call(self, action: Action, sender: str, **fields: Any) -> Effect:
        sender = require_address(sender, "sender")
        with self._lock:
            params = ActionParams(action=action, sender=sender, now=self._now(), **fields)
            try:
                result = self.template.execute(self._state, params)
                self._preflight(result.movements)
                for movement in result.movements:
                    self._move(movement)
            except GriefingError as exc:
                logger.debug(
                    "agreement {} rejected {} from {}: {}",
                    self.address, action.value, sender, type(exc).__name__,
                )
                raise
            assert result.state is not None and result.effect is not None
            self._state = result.state
            self._events.append(result.effect)
        logger.debug("agreement {} {} by {}", self.address, result.effect.event.value, sender)
        return result.effect

    # -- Staking ----------------------------------------------------------------

    def increase_stake(self, sender: str, current_stake: int, amount: int) -> Effect:
        """Pull `amount` from `sender` into the stake (staker or active operator)."""
        return self._call(Action.INCREASE_STAKE, sender, current_stake=current_stake, amount=amount)

    def reward(self, sender: str, current_stake: int, amount: int) -> Effect:
        """Pull `amount` from `sender` into the stake (counterparty or active operator)."""
        return self._call(Action.REWARD, sender, current_stake=current_stake, amount=amount)

    def punish(self, sender: str, punished_from: str, punishment: int, message: bytes = b"") -> Effect:
        """Destroy `punishment` of the stake, burning its cost from `punished_from`."""
        return self._call(
            Action.PUNISH,
            sender,
            punished_from=require_address(punished_from, "from"),
            amount=punishment,
            message=message,
        )

    def retrieve_stake(self, sender: str, recipient: str) -> Effect:
        """Send the whole remaining stake to `recipient` once the deadline passed."""
        recipient = require_address(recipient, "recipient")
        if recipient == self.address:
            raise InvalidParameter("recipient cannot be the agreement itself")
        return self._call(Action.RETRIEVE_STAKE, sender, recipient=recipient)

    # -- Countdown / metadata ---------------------------------------------------------

    def start_countdown(self, sender: str) -> Effect:
        return self._call(Action.START_COUNTDOWN, sender)

    def set_variable_metadata(self, sender: str, metadata: bytes) -> Effect:
        return self._call(Action.SET_VARIABLE_METADATA, sender, metadata=metadata)

    # -- Operator -----------------------------------------------------------------

    def activate_operator(self, sender: str) -> Effect:
        return self._call(Action.ACTIVATE_OPERATOR, sender)

    def deactivate_operator(self, sender: str) -> Effect:
        return self._call(Action.DEACTIVATE_OPERATOR, sender)

    def transfer_operator(self, sender: str, new_operator: str) -> Effect:
        return self._call(Action.TRANSFER_OPERATOR, sender, new_operator=require_address(new_operator, "new_operator"))

    def renounce_operator(self, sender: str) -> Effect:
        return self._call(Action.RENOUNCE_OPERATOR, sender)

    # -- Reads ------------------------------------------------------------------

    @property
    def state(self) -> AgreementState:
        return self._state

    @property
    def events(self) -> tuple[Effect, ...]:
        return tuple(self._events)

    def get_token(self) -> str:
        return self.token.address

    def get_staker(self) -> str:
        return self._state.staker

    def get_counterparty(self) -> str:
        return self._state.counterparty

    def is_staker(self, who: str) -> bool:
        return require_address(who, "who") == self._state.staker

    def is_counterparty(self, who: str) -> bool:
        return require_address(who, "who") == self._state.counterparty

    def get_operator(self) -> str:
        return self._state.operator

    def is_operator(self, who: str) -> bool:
        who = require_address(who, "who")
        return not is_zero_address(who) and who == self._state.operator

    def has_active_operator(self) -> bool:
        return self._state.operator_active

    def is_active_operator(self, who: str) -> bool:
        return is_active_operator(self._state, require_address(who, "who"))

    def get_stake(self) -> int:
        return self._state.stake

    def get_ratio(self) -> tuple[int, RatioType]:
        return self._state.ratio, self._state.ratio_type

    def get_cost(self, punishment: int) -> int:
        """Cost of a punishment under this agreement's ratio."""
        return get_cost(self._state.ratio, self._state.ratio_type, punishment)

    def get_grief_cost(self) -> int:
        return self._state.grief_cost

    def get_length(self) -> int:
        return self._state.countdown_length

    def get_deadline(self) -> Optional[int]:
        return self._state.deadline

    def is_over(self) -> bool:
        return is_over(self._state, self._now())

    def time_remaining(self) -> Optional[int]:
        return time_remaining(self._state, self._now())

    def get_metadata(self) -> tuple[bytes, bytes]:
        return self._state.static_metadata, self._state.variable_metadata

    def to_dict(self) -> dict[str, Any]:
        """Persisted record: every state field plus the instance bindings."""
        record = state_to_dict(self._state)
        record["address"] = self.address
        record["template"] = self.template.address
        record["token"] = self.token.address
        return record

    def snapshot_bytes(self) -> bytes:
        """Canonical JSON of `to_dict()`, stable across runs."""
        return canonical_json_bytes(self.to_dict())

    def __repr__(self) -> str:
        return f"OneWayGriefing({self.address}, stake={self._state.stake})"
