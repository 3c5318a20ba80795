"""Shared plumbing for in-process contracts.

Contracts keep their storage in plain attributes listed in ``STATE`` so the
chain can snapshot and restore them around a transaction. Mutating methods
take the caller explicitly as their first argument (no ambient msg.sender).
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Optional

from eth_utils import to_checksum_address

from savingsvault.contracts.errors import UnknownFunction

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize(address: str) -> str:
    """Checksum an address so mapping keys compare reliably."""
    return to_checksum_address(address)


def require_uint(value: int) -> int:
    """Reject values that cannot be encoded as uint256."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"uint256 expected, got {type(value).__name__}")
    if value < 0 or value > 2**256 - 1:
        raise ValueError(f"uint256 out of range: {value}")
    return value


@dataclass(frozen=True)
class EventLog:
    """An emitted event, stamped with tx hash and block once mined."""

    address: str
    name: str
    args: dict = field(default_factory=dict)
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None


@dataclass(frozen=True)
class AbiEntry:
    """Maps an ABI function name onto a Python method."""

    method: str
    with_caller: bool = False
    mutating: bool = False


class Contract:
    """Base class for in-process contracts."""

    ABI: dict[str, AbiEntry] = {}
    STATE: tuple[str, ...] = ()

    def __init__(self, address: str):
        self.address = normalize(address)
        self.logs: list[EventLog] = []

    def emit(self, name: str, **args: Any) -> None:
        self.logs.append(EventLog(address=self.address, name=name, args=args))

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of storage and logs."""
        attrs = self.STATE + ("logs",)
        return {attr: copy.deepcopy(getattr(self, attr)) for attr in attrs}

    def restore(self, snapshot: dict[str, Any]) -> None:
        for attr, value in snapshot.items():
            setattr(self, attr, value)

    def dispatch(
        self,
        caller: str,
        function: str,
        args: tuple = (),
        *,
        allow_mutation: bool = False,
    ) -> Any:
        """Invoke an ABI function by name.

        Args:
            caller: msg.sender for the call
            function: ABI function name (camelCase)
            args: Positional ABI arguments
            allow_mutation: False for eth_call style reads

        Returns:
            Whatever the underlying method returns

        Raises:
            UnknownFunction: If the name is not in the ABI, or a mutating
                function is invoked as a read
        """
        entry = self.ABI.get(function)
        if entry is None or (entry.mutating and not allow_mutation):
            raise UnknownFunction(function)

        method = getattr(self, entry.method)
        if entry.with_caller:
            return method(normalize(caller), *args)
        return method(*args)
