"""Network negotiation: make sure the wallet is on the target chain."""

import logging

from savingsvault.wallet.base import ChainNotAddedError, ChainParams, WalletProvider

logger = logging.getLogger(__name__)


async def ensure_network(provider: WalletProvider, params: ChainParams) -> None:
    """Switch the wallet to ``params.chain_id``, registering the chain first if needed.

    Args:
        provider: Connected wallet provider
        params: Target chain parameters

    Raises:
        UserRejectedError: The user declined the switch or the addition
        WrongNetworkError: The provider cannot reach the chain at all
    """
    current = await provider.get_chain_id()
    if current == params.chain_id:
        return

    logger.info(f"Wallet on chain {hex(current)}, switching to {params.chain_id_hex}")
    try:
        await provider.switch_chain(params.chain_id)
    except ChainNotAddedError:
        logger.info(f"Chain {params.chain_id_hex} unknown to wallet, adding {params.chain_name}")
        await provider.add_chain(params)
        await provider.switch_chain(params.chain_id)
