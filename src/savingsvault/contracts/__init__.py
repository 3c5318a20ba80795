"""In-process contracts: the savings ledger, its ERC-20 asset and a chain to run them."""

from savingsvault.contracts.base import ZERO_ADDRESS, EventLog
from savingsvault.contracts.chain import Receipt, SimulatedChain, TransactionRejected
from savingsvault.contracts.errors import (
    ContractRevert,
    ERC20InsufficientAllowance,
    ERC20InsufficientBalance,
    ERC20InvalidReceiver,
    ERC20InvalidSender,
    ERC20InvalidSpender,
    InsufficientBalance,
    InvalidAmount,
    PullTransferFailed,
    PushTransferFailed,
)
from savingsvault.contracts.ledger import SavingsLedger
from savingsvault.contracts.token import ERC20Token

__all__ = [
    # Contracts
    "ERC20Token",
    "SavingsLedger",
    # Chain
    "SimulatedChain",
    "Receipt",
    "EventLog",
    "TransactionRejected",
    "ZERO_ADDRESS",
    # Reverts
    "ContractRevert",
    "InvalidAmount",
    "InsufficientBalance",
    "PullTransferFailed",
    "PushTransferFailed",
    "ERC20InsufficientAllowance",
    "ERC20InsufficientBalance",
    "ERC20InvalidReceiver",
    "ERC20InvalidSender",
    "ERC20InvalidSpender",
]
