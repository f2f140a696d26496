"""
Deterministic identities and canonical encoding primitives.

Agreements, factories, registries and token holders are identified by
`0x`-prefixed 20-byte lowercase hex addresses. Instance addresses are derived
deterministically (domain-separated SHA-256) from the creating factory and a
nonce or salt, so the same creation sequence always yields the same addresses.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any


ADDRESS_BYTES = 20
ZERO_ADDRESS = "0x" + "00" * ADDRESS_BYTES

_HEX_CHARS_RE = re.compile(r"^[0-9a-fA-F]+$")


def _reject_surrogates(s: str) -> None:
    for ch in s:
        if 0xD800 <= ord(ch) <= 0xDFFF:
            raise TypeError("surrogate code points are not allowed in canonical encoding")


def _reject_floats(value: Any) -> None:
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, str):
        _reject_surrogates(value)
    if isinstance(value, dict):
        for k in value.keys():
            if not isinstance(k, str):
                raise TypeError("dict keys must be str for canonical encoding")
        for k, v in value.items():
            _reject_surrogates(k)
            _reject_floats(v)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _reject_floats(item)
        return


def canonical_json_bytes(value: Any) -> bytes:
    """
    Canonical JSON encoding for agreement snapshots.

    Rules:
    - UTF-8
    - sort_keys=True
    - separators=(',', ':') (no whitespace)
    - allow_nan=False
    - floats rejected (to avoid representation ambiguity)
    """
    _reject_floats(value)
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """
    Create a domain separation prefix.

    The output is ASCII-only and NUL-terminated to make concatenation unambiguous.
    """
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label:
        raise ValueError("label must not contain NUL")
    try:
        label_bytes = label.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ValueError("label must be ASCII") from exc
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return b"griefing:" + label_bytes + b":v" + str(version).encode("ascii") + b"\x00"


def encode_uvarint(value: int) -> bytes:
    """Unsigned LEB128."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"uvarint must be a non-negative int, got {value!r}")
    out = bytearray()
    n = value
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            break
    return bytes(out)


def encode_bytes(value: bytes) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError("value must be bytes")
    value_bytes = bytes(value)
    return encode_uvarint(len(value_bytes)) + value_bytes


def canonical_hex_fixed_allow_0x(hex_str: str, *, nbytes: int, name: str) -> str:
    """
    Canonicalize a fixed-size hex string (lowercase, 0x-prefixed).

    Accepts either 0x-prefixed or raw hex input.
    """
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    if not isinstance(nbytes, int) or isinstance(nbytes, bool) or nbytes <= 0:
        raise ValueError("nbytes must be a positive int")

    s = hex_str.strip()
    if s.lower().startswith("0x"):
        s = s[2:]
    expected_len = 2 * nbytes
    if len(s) != expected_len:
        raise ValueError(f"{name} must be {nbytes} bytes (hex length {expected_len})")
    if not _HEX_CHARS_RE.fullmatch(s):
        raise ValueError(f"{name} must be valid hex")
    return "0x" + s.lower()


def canonical_address(value: str, *, name: str = "address") -> str:
    return canonical_hex_fixed_allow_0x(value, nbytes=ADDRESS_BYTES, name=name)


def is_address(value: Any) -> bool:
    """True iff `value` is already a canonical address string."""
    if not isinstance(value, str):
        return False
    try:
        return canonical_address(value) == value
    except ValueError:
        return False


def is_zero_address(value: str) -> bool:
    return canonical_address(value) == ZERO_ADDRESS


def derive_address(label: str, creator: str, discriminator: int | bytes) -> str:
    """
    Derive a child address from its creator.

    `discriminator` is either a creation nonce (CREATE-style, int) or a
    caller-chosen salt (CREATE2-style, bytes). The two forms are domain
    separated and never collide with each other.
    """
    creator_bytes = bytes.fromhex(canonical_address(creator, name="creator")[2:])
    if isinstance(discriminator, (bytes, bytearray)):
        tail = b"salt" + encode_bytes(bytes(discriminator))
    elif isinstance(discriminator, int) and not isinstance(discriminator, bool):
        tail = b"nonce" + encode_uvarint(discriminator)
    else:
        raise TypeError("discriminator must be a nonce (int) or a salt (bytes)")
    digest = hashlib.sha256(domain_sep_bytes(label) + creator_bytes + tail).digest()
    return "0x" + digest[-ADDRESS_BYTES:].hex()


def bytes_to_hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()


def hex_to_bytes(value: str, *, name: str = "value") -> bytes:
    """Decode a `0x`-prefixed hex blob of any length (including `0x`)."""
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError(f"{name} must be a 0x-prefixed hex string")
    body = value[2:]
    if body and not _HEX_CHARS_RE.fullmatch(body):
        raise ValueError(f"{name} must be valid hex")
    if len(body) % 2:
        raise ValueError(f"{name} must have an even number of hex digits")
    return bytes.fromhex(body)
