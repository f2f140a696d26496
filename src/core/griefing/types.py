"""Data types for the one-way griefing kernel.

All types are frozen dataclasses (immutable).

Units/conventions:
- `ratio` is an 18-decimal fixed-point scalar (`2 * 10**18` means 2.0).
- `stake`, `grief_cost` and every `amount` are integer token base units.
- `deadline` and `now` are integer seconds; `deadline is None` until the
  countdown is started.
- addresses are `0x`-prefixed 20-byte lowercase hex strings; the zero address
  stands for "no operator".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum, unique
from typing import Any, Mapping, Optional

from ...state.canonical import ZERO_ADDRESS


@unique
class RatioType(IntEnum):
    """Tag selecting the punishment-cost formula."""
    NaN = 0
    Inf = 1
    Dec = 2


@unique
class Action(Enum):
    INCREASE_STAKE = "increase_stake"
    REWARD = "reward"
    PUNISH = "punish"
    RETRIEVE_STAKE = "retrieve_stake"
    START_COUNTDOWN = "start_countdown"
    SET_VARIABLE_METADATA = "set_variable_metadata"
    ACTIVATE_OPERATOR = "activate_operator"
    DEACTIVATE_OPERATOR = "deactivate_operator"
    TRANSFER_OPERATOR = "transfer_operator"
    RENOUNCE_OPERATOR = "renounce_operator"


@unique
class Event(Enum):
    """Observable events, agreement and registry side."""
    INITIALIZED = "Initialized"
    DEADLINE_SET = "DeadlineSet"
    VARIABLE_METADATA_SET = "VariableMetadataSet"
    STAKE_ADDED = "StakeAdded"
    STAKE_TAKEN = "StakeTaken"
    GRIEFED = "Griefed"
    OPERATOR_UPDATED = "OperatorUpdated"
    FACTORY_ADDED = "FactoryAdded"
    FACTORY_RETIRED = "FactoryRetired"
    INSTANCE_REGISTERED = "InstanceRegistered"
    INSTANCE_CREATED = "InstanceCreated"


@unique
class MovementKind(Enum):
    PULL = "pull"            # transfer_from(account -> agreement)
    PUSH = "push"            # transfer(agreement -> account)
    BURN_FROM = "burn_from"  # authorized burn of account's tokens
    BURN = "burn"            # burn of the agreement's own escrow


@dataclass(frozen=True)
class AgreementState:
    """Complete state of one agreement instance."""

    staker: str
    counterparty: str
    operator: str = ZERO_ADDRESS
    operator_active: bool = False

    ratio: int = 0
    ratio_type: RatioType = RatioType.Dec
    countdown_length: int = 0
    deadline: Optional[int] = None

    stake: int = 0
    grief_cost: int = 0

    static_metadata: bytes = b""
    variable_metadata: bytes = b""

    initialized: bool = False


@dataclass(frozen=True)
class InitParams:
    """Initializer inputs, applied once at creation."""

    staker: str
    counterparty: str
    ratio: int
    ratio_type: RatioType
    countdown_length: int
    operator: Optional[str] = None
    static_metadata: bytes = b""


@dataclass(frozen=True)
class ActionParams:
    """Parameters for an action. Unused fields default to 0/empty."""

    action: Action
    sender: str
    now: int = 0
    current_stake: int = 0        # increase_stake / reward
    amount: int = 0               # increase_stake / reward / punish
    punished_from: str = ""       # punish: account charged the cost
    message: bytes = b""          # punish
    recipient: str = ""           # retrieve_stake
    new_operator: str = ""        # transfer_operator
    metadata: bytes = b""         # set_variable_metadata


@dataclass(frozen=True)
class Movement:
    """Token instruction emitted by the kernel, executed by the shell."""

    kind: MovementKind
    account: str
    amount: int


@dataclass(frozen=True)
class Effect:
    """Observable event emitted after a successful step."""

    event: Event
    args: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StepResult:
    """Result of a single kernel step."""

    accepted: bool
    state: AgreementState | None = None
    effect: Effect | None = None
    movements: tuple[Movement, ...] = ()
    rejection: str | None = None
