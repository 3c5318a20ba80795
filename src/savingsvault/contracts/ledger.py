"""SavingsVault ledger contract.

Custodies the ledger asset and tracks a per-account deposited balance.

Ordering rules:
- deposit pulls the asset into custody *before* crediting, so a failed
  pull never credits a balance.
- withdraw debits *before* pushing the asset out (checks-effects-interactions),
  so a reentrant call during the push sees the reduced balance. A failed
  push restores the debit.
"""

import logging

from savingsvault.contracts.base import AbiEntry, Contract, normalize
from savingsvault.contracts.errors import (
    ContractRevert,
    InsufficientBalance,
    InvalidAmount,
    PullTransferFailed,
    PushTransferFailed,
)
from savingsvault.contracts.token import ERC20Token

logger = logging.getLogger(__name__)


class SavingsLedger(Contract):
    """Custodial balance ledger over a single ERC-20 asset."""

    ABI = {
        "token": AbiEntry("get_token"),
        "myBalance": AbiEntry("my_balance", with_caller=True),
        "deposit": AbiEntry("deposit", with_caller=True, mutating=True),
        "withdraw": AbiEntry("withdraw", with_caller=True, mutating=True),
    }
    STATE = ("_balances",)

    def __init__(self, address: str, token: ERC20Token):
        super().__init__(address)
        self.token = token
        self._balances: dict[str, int] = {}

    def get_token(self) -> str:
        return self.token.address

    def my_balance(self, caller: str) -> int:
        """Tracked balance of the caller. Pure read."""
        return self._balances.get(normalize(caller), 0)

    def deposit(self, caller: str, amount: int) -> None:
        """Pull ``amount`` from the caller into custody and credit it.

        Raises:
            InvalidAmount: amount <= 0
            PullTransferFailed: transferFrom reverted or returned False
        """
        if amount <= 0:
            raise InvalidAmount(amount)
        caller = normalize(caller)

        try:
            pulled = self.token.transfer_from(self.address, caller, self.address, amount)
        except ContractRevert as e:
            raise PullTransferFailed(e.reason) from e
        if not pulled:
            raise PullTransferFailed("transferFrom returned false")

        self._balances[caller] = self._balances.get(caller, 0) + amount
        self.emit("Deposited", account=caller, amount=amount)
        logger.debug(f"Deposited {amount} for {caller}")

    def withdraw(self, caller: str, amount: int) -> None:
        """Debit the caller and push ``amount`` back out of custody.

        Raises:
            InvalidAmount: amount <= 0
            InsufficientBalance: tracked balance < amount
            PushTransferFailed: transfer out reverted or returned False;
                the debit is rolled back
        """
        if amount <= 0:
            raise InvalidAmount(amount)
        caller = normalize(caller)

        balance = self._balances.get(caller, 0)
        if balance < amount:
            raise InsufficientBalance(caller, balance, amount)

        saved = dict(self._balances)
        self._balances[caller] = balance - amount

        try:
            pushed = self.token.transfer(self.address, caller, amount)
        except ContractRevert as e:
            self._balances = saved
            raise PushTransferFailed(e.reason) from e
        if not pushed:
            self._balances = saved
            raise PushTransferFailed("transfer returned false")

        self.emit("Withdrawn", account=caller, amount=amount)
        logger.debug(f"Withdrawn {amount} for {caller}")

    # Solvency helpers (read-only)

    def total_tracked(self) -> int:
        return sum(self._balances.values())

    def custodied(self) -> int:
        return self.token.balance_of(self.address)

    def is_solvent(self) -> bool:
        """Tracked balances never exceed what the vault actually holds."""
        return self.total_tracked() <= self.custodied()
