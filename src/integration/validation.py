"""
Input validation shared by the agreement, factory and registry shells.

Shell entry points accept loosely formatted addresses (mixed case, missing
`0x`) and normalize them here; malformed input surfaces as `InvalidParameter`
so callers see one error family for every bad argument.
"""

from __future__ import annotations

from typing import Any

from ..core.griefing.errors import InvalidParameter
from ..state.canonical import canonical_address


def require_address(value: Any, name: str) -> str:
    """Return the canonical form of `value` or raise InvalidParameter."""
    try:
        return canonical_address(value, name=name)
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(str(exc)) from exc


def require_bytes(value: Any, name: str) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise InvalidParameter(f"{name} must be bytes")
    return bytes(value)
