"""State construction and serialization for the griefing kernel.

`initial_state(init)` is the only constructor of a live `AgreementState`: it
validates the initializer inputs and returns the fully initialized state in
one step. Nothing else ever sets `initialized=True`.

Round-trip property (tested): `state_from_dict(state_to_dict(s)) == s` for all valid states.
"""

from __future__ import annotations

from typing import Any, Mapping

from ...state.canonical import ZERO_ADDRESS, bytes_to_hex, canonical_address, hex_to_bytes, is_zero_address
from .errors import InvalidParameter
from .types import AgreementState, InitParams, RatioType

# Auto-derived from AgreementState field definitions (single source of truth).
STATE_VAR_NAMES: tuple[str, ...] = tuple(AgreementState.__dataclass_fields__)

_ADDRESS_FIELDS = ("staker", "counterparty", "operator")
_BYTES_FIELDS = ("static_metadata", "variable_metadata")
_INT_FIELDS = ("ratio", "countdown_length", "stake", "grief_cost")
_BOOL_FIELDS = ("operator_active", "initialized")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _address(value: Any, name: str) -> str:
    try:
        return canonical_address(value, name=name)
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(str(exc)) from exc


def initial_state(init: InitParams) -> AgreementState:
    """Validate initializer inputs and build the initialized state.

    Raises:
        InvalidParameter: negative ratio/countdown, malformed or zero
            participant address, staker equal to counterparty, unknown ratio type.
    """
    staker = _address(init.staker, "staker")
    counterparty = _address(init.counterparty, "counterparty")
    if is_zero_address(staker) or is_zero_address(counterparty):
        raise InvalidParameter("staker and counterparty must be non-zero addresses")
    if staker == counterparty:
        raise InvalidParameter("staker and counterparty must differ")

    operator = ZERO_ADDRESS if init.operator is None else _address(init.operator, "operator")

    if not _is_int(init.ratio) or init.ratio < 0:
        raise InvalidParameter("ratio must be a non-negative int")
    if not _is_int(init.countdown_length) or init.countdown_length < 0:
        raise InvalidParameter("countdown_length must be a non-negative int")
    try:
        ratio_type = RatioType(init.ratio_type)
    except ValueError as exc:
        raise InvalidParameter(f"unknown ratio type {init.ratio_type!r}") from exc
    if not isinstance(init.static_metadata, (bytes, bytearray)):
        raise InvalidParameter("static_metadata must be bytes")

    return AgreementState(
        staker=staker,
        counterparty=counterparty,
        operator=operator,
        operator_active=not is_zero_address(operator),
        ratio=init.ratio,
        ratio_type=ratio_type,
        countdown_length=init.countdown_length,
        deadline=None,
        stake=0,
        grief_cost=0,
        static_metadata=bytes(init.static_metadata),
        variable_metadata=b"",
        initialized=True,
    )


def state_to_dict(state: AgreementState) -> dict[str, Any]:
    """Serialize an AgreementState to a JSON-safe dict (one record per instance)."""
    out: dict[str, Any] = {}
    for name in STATE_VAR_NAMES:
        val = getattr(state, name)
        if name in _BYTES_FIELDS:
            out[name] = bytes_to_hex(val)
        elif name == "ratio_type":
            out[name] = int(val)
        else:
            out[name] = val
    return out


def state_from_dict(d: Mapping[str, Any]) -> AgreementState:
    """Deserialize a dict to an AgreementState. Raises KeyError on missing fields."""
    kwargs: dict[str, Any] = {}
    for name in STATE_VAR_NAMES:
        val = d[name]
        if name in _ADDRESS_FIELDS:
            kwargs[name] = canonical_address(val, name=name)
        elif name in _BYTES_FIELDS:
            kwargs[name] = hex_to_bytes(val, name=name)
        elif name in _BOOL_FIELDS:
            if not isinstance(val, bool):
                raise TypeError(f"state var {name!r} must be bool, got {type(val).__name__}")
            kwargs[name] = val
        elif name in _INT_FIELDS:
            if not _is_int(val):
                raise TypeError(f"state var {name!r} must be int, got {type(val).__name__}")
            kwargs[name] = int(val)  # normalize int subclasses
        elif name == "ratio_type":
            kwargs[name] = RatioType(val)
        elif name == "deadline":
            if val is not None and not _is_int(val):
                raise TypeError(f"state var 'deadline' must be int|None, got {type(val).__name__}")
            kwargs[name] = None if val is None else int(val)
        else:  # pragma: no cover - new field without a codec
            raise TypeError(f"no codec for state var {name!r}")
    return AgreementState(**kwargs)
