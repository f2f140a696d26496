"""
Escrow token: the value-movement interface agreements consume.

`Token` is the protocol an agreement relies on; `TokenLedger` is the in-memory
reference ledger (balances, allowances, burns) used by deployments and tests.
Agreements never hold value themselves: every stake change is a ledger call.
"""

from __future__ import annotations

from typing import Dict, Protocol, Tuple, runtime_checkable

from ..core.griefing.errors import BurnAuthorizationFailed, FundsUnavailable, InvalidParameter
from .canonical import ZERO_ADDRESS, canonical_address


Address = str
Amount = int  # Non-negative integer (arbitrary precision)


@runtime_checkable
class Token(Protocol):
    """Token operations an agreement may call."""

    address: Address

    def balance_of(self, owner: Address) -> Amount: ...

    def allowance(self, owner: Address, spender: Address) -> Amount: ...

    def approve(self, owner: Address, spender: Address, amount: Amount) -> None: ...

    def transfer(self, sender: Address, recipient: Address, amount: Amount) -> None: ...

    def transfer_from(self, spender: Address, payer: Address, recipient: Address, amount: Amount) -> None: ...

    def burn(self, owner: Address, amount: Amount) -> None: ...

    def burn_from(self, spender: Address, owner: Address, amount: Amount) -> None: ...


def _check_amount(amount: Amount) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise InvalidParameter(f"amount must be a non-negative int: {amount!r}")
    return amount


class TokenLedger:
    """
    Balance and allowance table with burn support.

    Every mutating method validates fully before writing, so a failed call
    leaves balances, allowances and supply untouched.
    """

    def __init__(self, address: Address, *, symbol: str = "NMR"):
        self.address = canonical_address(address, name="token")
        self.symbol = symbol
        self._balances: Dict[Address, Amount] = {}
        self._allowances: Dict[Tuple[Address, Address], Amount] = {}
        self._total_supply: Amount = 0

    # -- Reads --------------------------------------------------------------

    def balance_of(self, owner: Address) -> Amount:
        """Get balance for owner. Returns 0 if not found."""
        return self._balances.get(canonical_address(owner, name="owner"), 0)

    def allowance(self, owner: Address, spender: Address) -> Amount:
        key = (canonical_address(owner, name="owner"), canonical_address(spender, name="spender"))
        return self._allowances.get(key, 0)

    @property
    def total_supply(self) -> Amount:
        return self._total_supply

    # -- Internal writes -------------------------------------------------------

    def _set_balance(self, owner: Address, amount: Amount) -> None:
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop(owner, None)
        else:
            self._balances[owner] = amount

    def _set_allowance(self, owner: Address, spender: Address, amount: Amount) -> None:
        if amount == 0:
            self._allowances.pop((owner, spender), None)
        else:
            self._allowances[(owner, spender)] = amount

    # -- Supply -------------------------------------------------------------

    def mint(self, recipient: Address, amount: Amount) -> None:
        """Create `amount` new tokens for `recipient` (test and deployment setup)."""
        recipient = canonical_address(recipient, name="recipient")
        if recipient == ZERO_ADDRESS:
            raise InvalidParameter("cannot mint to the zero address")
        amount = _check_amount(amount)
        self._set_balance(recipient, self.balance_of(recipient) + amount)
        self._total_supply += amount

    # -- Allowances -------------------------------------------------------------

    def approve(self, owner: Address, spender: Address, amount: Amount) -> None:
        owner = canonical_address(owner, name="owner")
        spender = canonical_address(spender, name="spender")
        self._set_allowance(owner, spender, _check_amount(amount))

    def change_approval(self, owner: Address, spender: Address, expected: Amount, amount: Amount) -> None:
        """
        Compare-and-set approval.

        Raises:
            FundsUnavailable: If the current allowance differs from `expected`
        """
        if self.allowance(owner, spender) != _check_amount(expected):
            raise FundsUnavailable("current allowance incorrect")
        self.approve(owner, spender, amount)

    # -- Movements --------------------------------------------------------------

    def transfer(self, sender: Address, recipient: Address, amount: Amount) -> None:
        """
        Move `amount` from `sender` to `recipient`.

        Raises:
            FundsUnavailable: If sender's balance is insufficient
        """
        sender = canonical_address(sender, name="sender")
        recipient = canonical_address(recipient, name="recipient")
        amount = _check_amount(amount)
        if recipient == ZERO_ADDRESS:
            raise InvalidParameter("cannot transfer to the zero address")
        balance = self.balance_of(sender)
        if balance < amount:
            raise FundsUnavailable(f"insufficient balance: {balance} < {amount}")
        self._set_balance(sender, balance - amount)
        self._set_balance(recipient, self.balance_of(recipient) + amount)

    def transfer_from(self, spender: Address, payer: Address, recipient: Address, amount: Amount) -> None:
        """
        Move `amount` from `payer` to `recipient` on `spender`'s allowance.

        Raises:
            FundsUnavailable: If the allowance or payer's balance is insufficient
        """
        spender = canonical_address(spender, name="spender")
        payer = canonical_address(payer, name="payer")
        amount = _check_amount(amount)
        allowed = self.allowance(payer, spender)
        if allowed < amount:
            raise FundsUnavailable(f"insufficient allowance: {allowed} < {amount}")
        if self.balance_of(payer) < amount:
            raise FundsUnavailable(f"insufficient balance: {self.balance_of(payer)} < {amount}")
        self.transfer(payer, recipient, amount)
        self._set_allowance(payer, spender, allowed - amount)

    def burn(self, owner: Address, amount: Amount) -> None:
        """
        Destroy `amount` of `owner`'s own tokens.

        Raises:
            FundsUnavailable: If owner's balance is insufficient
        """
        owner = canonical_address(owner, name="owner")
        amount = _check_amount(amount)
        balance = self.balance_of(owner)
        if balance < amount:
            raise FundsUnavailable(f"insufficient balance to burn: {balance} < {amount}")
        self._set_balance(owner, balance - amount)
        self._total_supply -= amount

    def burn_from(self, spender: Address, owner: Address, amount: Amount) -> None:
        """
        Destroy `amount` of `owner`'s tokens on `spender`'s allowance.

        Raises:
            BurnAuthorizationFailed: If the allowance or owner's balance is insufficient
        """
        spender = canonical_address(spender, name="spender")
        owner = canonical_address(owner, name="owner")
        amount = _check_amount(amount)
        allowed = self.allowance(owner, spender)
        if allowed < amount or self.balance_of(owner) < amount:
            raise BurnAuthorizationFailed()
        self._set_balance(owner, self.balance_of(owner) - amount)
        self._set_allowance(owner, spender, allowed - amount)
        self._total_supply -= amount

    def __repr__(self) -> str:
        return f"TokenLedger({self.symbol}, {len(self._balances)} holders, supply={self._total_supply})"
