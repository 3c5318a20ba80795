"""Revert kinds raised by the in-process contracts.

Each revert carries the Solidity-style error name and its arguments so it
can be turned into the same reason string a node would return.
"""

from typing import Any


class ContractRevert(Exception):
    """Base class for contract reverts."""

    def __init__(self, *args: Any):
        self.revert_args = args
        super().__init__(self.reason)

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def reason(self) -> str:
        rendered = ", ".join(str(a) for a in self.revert_args)
        return f"{self.name}({rendered})"


# Vault reverts

class InvalidAmount(ContractRevert):
    """Amount must be greater than zero."""


class InsufficientBalance(ContractRevert):
    """Tracked vault balance is lower than the requested withdrawal."""


class PullTransferFailed(ContractRevert):
    """transferFrom into custody did not succeed."""


class PushTransferFailed(ContractRevert):
    """transfer out of custody did not succeed."""


# ERC-20 reverts

class ERC20InsufficientBalance(ContractRevert):
    """sender, balance, needed"""


class ERC20InsufficientAllowance(ContractRevert):
    """spender, allowance, needed"""


class ERC20InvalidSender(ContractRevert):
    """sender"""


class ERC20InvalidReceiver(ContractRevert):
    """receiver"""


class ERC20InvalidSpender(ContractRevert):
    """spender"""


class UnknownFunction(ContractRevert):
    """Call to a selector the contract does not expose."""
