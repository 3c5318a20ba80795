"""Wallet providers: the capability surface the client needs from a wallet."""

from savingsvault.wallet.base import (
    ChainNotAddedError,
    ChainParams,
    ChainRevertError,
    ContractCall,
    ProviderConnectionError,
    ProviderError,
    ProviderUnavailableError,
    TransactionRejectedError,
    TxReceipt,
    UserRejectedError,
    WalletProvider,
    WrongNetworkError,
)
from savingsvault.wallet.factory import chain_params, get_provider, reset_provider_cache
from savingsvault.wallet.network import ensure_network

__all__ = [
    "WalletProvider",
    "ChainParams",
    "ContractCall",
    "TxReceipt",
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderConnectionError",
    "UserRejectedError",
    "ChainNotAddedError",
    "WrongNetworkError",
    "TransactionRejectedError",
    "ChainRevertError",
    "chain_params",
    "ensure_network",
    "get_provider",
    "reset_provider_cache",
]
