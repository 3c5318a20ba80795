"""Tests for the JSON-RPC wallet provider that need no node."""

import pytest

from conftest import ALICE, BOB
from savingsvault.wallet.base import ChainRevertError, ContractCall, TransactionRejectedError
from savingsvault.wallet.web3_provider import create_web3_provider

# Private key of the first well-known dev account (ALICE)
DEV_KEY = "0x4f3edf983ac636a65a842ce7c78d9aa706d3b113bce9c46f30d7d21715b23b1d"


@pytest.fixture
def rpc_provider(settings):
    return create_web3_provider(
        "http://127.0.0.1:8545",
        DEV_KEY,
        settings.token_address,
        settings.vault_address,
    )


class TestWeb3Provider:
    """Tests for local behaviour of Web3Provider."""

    @pytest.mark.asyncio
    async def test_single_account(self, rpc_provider):
        """Test the signing key is the only account."""
        assert await rpc_provider.request_accounts() == [ALICE]

    @pytest.mark.asyncio
    async def test_refuses_foreign_sender(self, rpc_provider):
        """Test it will not sign for an account it does not hold."""
        with pytest.raises(TransactionRejectedError):
            await rpc_provider.send_transaction(BOB, ALICE, value=1)

    @pytest.mark.asyncio
    async def test_unregistered_contract(self, rpc_provider):
        """Test calls to contracts without an ABI fail cleanly."""
        with pytest.raises(ChainRevertError, match="No ABI registered"):
            await rpc_provider.call(ContractCall(BOB, "balanceOf", (ALICE,)))

    @pytest.mark.asyncio
    async def test_watch_asset_accepted(self, rpc_provider, settings):
        """Test headless wallets accept asset registration."""
        assert await rpc_provider.watch_asset(settings.token_address, "wINJ", 18)
