"""ERC-20 asset contract.

Integer-only accounting with the OpenZeppelin revert set. An allowance of
MAX_UINT256 is treated as unlimited and never decremented by transferFrom.
"""

from typing import Callable, Optional

from savingsvault.contracts.base import (
    ZERO_ADDRESS,
    AbiEntry,
    Contract,
    normalize,
    require_uint,
)
from savingsvault.contracts.errors import (
    ERC20InsufficientAllowance,
    ERC20InsufficientBalance,
    ERC20InvalidReceiver,
    ERC20InvalidSender,
    ERC20InvalidSpender,
)
from savingsvault.units import MAX_UINT256


# Called after a recipient is credited: hook(token, sender, amount)
ReceiveHook = Callable[["ERC20Token", str, int], None]


class ERC20Token(Contract):
    """Fungible token with balances, allowances and Transfer/Approval events."""

    ABI = {
        "name": AbiEntry("get_name"),
        "symbol": AbiEntry("get_symbol"),
        "decimals": AbiEntry("get_decimals"),
        "totalSupply": AbiEntry("total_supply"),
        "balanceOf": AbiEntry("balance_of"),
        "allowance": AbiEntry("allowance"),
        "approve": AbiEntry("approve", with_caller=True, mutating=True),
        "transfer": AbiEntry("transfer", with_caller=True, mutating=True),
        "transferFrom": AbiEntry("transfer_from", with_caller=True, mutating=True),
    }
    STATE = ("_balances", "_allowances", "_total_supply")

    def __init__(self, address: str, name: str = "Wrapped INJ", symbol: str = "wINJ", decimals: int = 18):
        super().__init__(address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0
        # Not part of storage; lets tests model a receiver that re-enters
        self.receive_hooks: dict[str, ReceiveHook] = {}

    # Views

    def get_name(self) -> str:
        return self.name

    def get_symbol(self) -> str:
        return self.symbol

    def get_decimals(self) -> int:
        return self.decimals

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize(owner), normalize(spender)), 0)

    # Mutations

    def approve(self, caller: str, spender: str, amount: int) -> bool:
        require_uint(amount)
        if normalize(spender) == ZERO_ADDRESS:
            raise ERC20InvalidSpender(ZERO_ADDRESS)
        owner, spender = normalize(caller), normalize(spender)
        self._allowances[(owner, spender)] = amount
        self.emit("Approval", owner=owner, spender=spender, value=amount)
        return True

    def transfer(self, caller: str, to: str, amount: int) -> bool:
        self._transfer(normalize(caller), to, amount)
        return True

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> bool:
        require_uint(amount)
        spender, owner = normalize(caller), normalize(owner)
        self._spend_allowance(owner, spender, amount)
        self._transfer(owner, to, amount)
        return True

    def mint(self, to: str, amount: int) -> None:
        """Genesis/faucet issuance; not reachable through the ABI."""
        require_uint(amount)
        to = normalize(to)
        if to == ZERO_ADDRESS:
            raise ERC20InvalidReceiver(ZERO_ADDRESS)
        self._total_supply += amount
        self._balances[to] = self._balances.get(to, 0) + amount
        self.emit("Transfer", sender=ZERO_ADDRESS, to=to, value=amount)

    def _spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        current = self._allowances.get((owner, spender), 0)
        if current == MAX_UINT256:
            return
        if current < amount:
            raise ERC20InsufficientAllowance(spender, current, amount)
        self._allowances[(owner, spender)] = current - amount

    def _transfer(self, sender: str, to: str, amount: int) -> None:
        require_uint(amount)
        sender, to = normalize(sender), normalize(to)
        if sender == ZERO_ADDRESS:
            raise ERC20InvalidSender(ZERO_ADDRESS)
        if to == ZERO_ADDRESS:
            raise ERC20InvalidReceiver(ZERO_ADDRESS)

        balance = self._balances.get(sender, 0)
        if balance < amount:
            raise ERC20InsufficientBalance(sender, balance, amount)

        self._balances[sender] = balance - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        self.emit("Transfer", sender=sender, to=to, value=amount)

        hook: Optional[ReceiveHook] = self.receive_hooks.get(to)
        if hook is not None:
            hook(self, sender, amount)
