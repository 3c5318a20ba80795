"""Factory for creating the wallet provider.

The simulated backend deploys the ledger asset and the vault at their
configured addresses on a fresh in-process chain and funds the dev account,
so the whole client can run without a node.
"""

import logging
from typing import Optional

from savingsvault.config import ChainBackend, Settings, get_settings
from savingsvault.contracts import ERC20Token, SavingsLedger, SimulatedChain
from savingsvault.units import parse_units
from savingsvault.wallet.base import ChainParams, ProviderUnavailableError, WalletProvider

logger = logging.getLogger(__name__)

# Cache for provider instances
_provider_cache: dict[str, WalletProvider] = {}


def chain_params(settings: Optional[Settings] = None) -> ChainParams:
    """Target chain as handed to wallet_addEthereumChain."""
    settings = settings or get_settings()
    return ChainParams(
        chain_id=settings.chain_id,
        chain_name=settings.chain_name,
        rpc_urls=(settings.rpc_url,),
        native_name=settings.native_name,
        native_symbol=settings.native_symbol,
        native_decimals=18,
        explorer_urls=(settings.explorer_url,),
    )


def build_simulated_chain(settings: Settings) -> SimulatedChain:
    """Fresh chain with the asset and vault deployed and the dev account funded."""
    chain = SimulatedChain(chain_id=settings.chain_id)
    token = chain.deploy(
        ERC20Token(
            settings.token_address,
            symbol=settings.token_symbol,
            decimals=settings.token_decimals,
        )
    )
    chain.deploy(SavingsLedger(settings.vault_address, token))

    chain.fund_native(settings.sim_account, parse_units(settings.sim_native_balance, 18))
    token.mint(settings.sim_account, parse_units(settings.sim_token_balance, settings.token_decimals))
    return chain


def get_provider(settings: Optional[Settings] = None) -> WalletProvider:
    """Get the wallet provider for the configured backend.

    Returns:
        WalletProvider instance (cached per backend)

    Raises:
        ProviderUnavailableError: If the rpc backend has no signing key
    """
    settings = settings or get_settings()
    backend = settings.chain_backend.value

    if backend in _provider_cache:
        return _provider_cache[backend]

    provider: WalletProvider

    if settings.chain_backend == ChainBackend.SIMULATED:
        from savingsvault.wallet.simulated import SimulatedProvider

        provider = SimulatedProvider(
            build_simulated_chain(settings),
            accounts=[settings.sim_account],
            wallet_chain_id=settings.sim_wallet_chain_id,
        )

    else:
        if not settings.signer_private_key:
            raise ProviderUnavailableError(
                "No wallet available: SIGNER_PRIVATE_KEY is not set"
            )
        from savingsvault.wallet.web3_provider import create_web3_provider

        provider = create_web3_provider(
            settings.rpc_url,
            settings.signer_private_key,
            settings.token_address,
            settings.vault_address,
        )

    logger.info(f"Using {provider.name} wallet provider")
    _provider_cache[backend] = provider
    return provider


def reset_provider_cache() -> None:
    """Clear provider cache (useful for testing)."""
    _provider_cache.clear()
