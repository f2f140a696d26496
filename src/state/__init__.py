"""
State primitives for griefing agreements: canonical encodings and the token ledger
"""

# canonical must load before token: token imports the griefing errors, whose
# package imports canonical back.
from .canonical import ZERO_ADDRESS, canonical_address, derive_address, is_address
from .token import Token, TokenLedger

__all__ = [
    "ZERO_ADDRESS",
    "canonical_address",
    "derive_address",
    "is_address",
    "Token",
    "TokenLedger",
]
