"""Base interfaces for wallet providers.

A provider is the narrow capability surface the client needs from a wallet:
account access, network negotiation, reads, and transaction submission with
a confirmation signal. Whatever object actually backs it (an in-process
chain, a JSON-RPC node with a local key) is adapted to this interface.

Transaction flow:
1. Client submits a transaction (send_transaction)
2. Provider returns the hash once the transaction is accepted
3. Client awaits the provider's own receipt signal (wait_for_receipt)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from savingsvault.contracts.base import EventLog


# EIP-1193 error codes
USER_REJECTED_CODE = 4001
UNRECOGNIZED_CHAIN_CODE = 4902


class ProviderError(Exception):
    """Base class for wallet/provider failures."""

    code: Optional[int] = None

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ProviderUnavailableError(ProviderError):
    """No wallet provider is installed or configured."""


class UserRejectedError(ProviderError):
    """The user declined the wallet prompt."""

    code = USER_REJECTED_CODE


class ChainNotAddedError(ProviderError):
    """The wallet does not know the requested chain."""

    code = UNRECOGNIZED_CHAIN_CODE


class WrongNetworkError(ProviderError):
    """Connected to a different chain and cannot switch."""


class TransactionRejectedError(ProviderError):
    """The node refused the transaction before inclusion."""


class ChainRevertError(ProviderError):
    """The transaction would revert (detected at submission/estimation)."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ProviderConnectionError(ProviderError):
    """Transport failure talking to the node."""


@dataclass(frozen=True)
class ChainParams:
    """Parameters for wallet_addEthereumChain."""

    chain_id: int
    chain_name: str
    rpc_urls: tuple[str, ...]
    native_name: str
    native_symbol: str
    native_decimals: int = 18
    explorer_urls: tuple[str, ...] = ()

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)


@dataclass(frozen=True)
class ContractCall:
    """A contract function invocation by ABI name."""

    address: str
    function: str
    args: tuple = ()


@dataclass(frozen=True)
class TxReceipt:
    """Provider-neutral receipt."""

    tx_hash: str
    status: bool
    block_number: Optional[int] = None
    revert_reason: Optional[str] = None
    logs: tuple[EventLog, ...] = field(default_factory=tuple)


class WalletProvider(ABC):
    """Abstract wallet provider.

    Implementations translate their native failures into ProviderError
    subclasses so callers never see transport-specific exceptions.
    """

    name: str = "provider"

    @abstractmethod
    async def request_accounts(self) -> list[str]:
        """Ask the wallet for account access.

        Returns:
            Authorized accounts, active account first

        Raises:
            UserRejectedError: If the user declines
        """
        pass

    @abstractmethod
    async def get_chain_id(self) -> int:
        """Chain the wallet is currently connected to."""
        pass

    @abstractmethod
    async def switch_chain(self, chain_id: int) -> None:
        """Switch the wallet to another chain.

        Raises:
            ChainNotAddedError: If the wallet does not know the chain
            WrongNetworkError: If the provider cannot switch at all
        """
        pass

    @abstractmethod
    async def add_chain(self, params: ChainParams) -> None:
        """Register a chain with the wallet."""
        pass

    @abstractmethod
    async def watch_asset(self, address: str, symbol: str, decimals: int) -> bool:
        """Ask the wallet to track a token.

        Returns:
            True if the wallet accepted the token
        """
        pass

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Native balance in base units."""
        pass

    @abstractmethod
    async def call(self, call: ContractCall, sender: Optional[str] = None) -> Any:
        """Read-only contract call (eth_call)."""
        pass

    @abstractmethod
    async def send_transaction(
        self,
        sender: str,
        to: str,
        value: int = 0,
        call: Optional[ContractCall] = None,
    ) -> str:
        """Sign and submit a transaction.

        Args:
            sender: Signing account
            to: Recipient or contract address
            value: Native amount in base units
            call: Contract function to invoke, if any

        Returns:
            Transaction hash once accepted

        Raises:
            UserRejectedError: User declined to sign
            ChainRevertError: Transaction would revert
            TransactionRejectedError: Node refused it
        """
        pass

    @abstractmethod
    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Suspend until the transaction is mined. Never times out."""
        pass

    @abstractmethod
    async def get_logs(self, address: str, event: str) -> list[EventLog]:
        """All logs of one event emitted by a contract."""
        pass
