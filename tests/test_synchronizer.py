"""Tests for BalanceSynchronizer."""

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from conftest import ALICE, BOB, units
from savingsvault.client.synchronizer import BalanceSyncError
from savingsvault.wallet.base import ProviderConnectionError


class TestRefreshAll:
    """Tests for refresh_all."""

    @pytest.mark.asyncio
    async def test_reads_every_source(self, connected, chain, token):
        """Test external changes show up after a refresh."""
        chain.fund_native(ALICE, units("1"))
        token.mint(ALICE, units("3"))

        state = await connected.synchronizer.refresh_all(ALICE)

        assert state.native_balance == units("3")
        assert state.token_balance == units("4")
        assert state.vault_balance == 0
        assert state.allowance == 0
        assert not state.is_approved
        assert connected.store.state is state

    @pytest.mark.asyncio
    async def test_replaces_snapshot_wholesale(self, connected):
        """Test every refresh publishes a new immutable snapshot."""
        first = connected.store.state

        second = await connected.synchronizer.refresh_all(ALICE)

        assert second is not first
        assert second == first
        with pytest.raises(ValidationError):
            second.native_balance = 0

    @pytest.mark.asyncio
    async def test_is_read_only(self, connected, chain, provider):
        """Test a refresh never produces a transaction."""
        block = chain.block_number

        await connected.synchronizer.refresh_all(ALICE)

        assert chain.block_number == block
        assert provider.submitted == []

    @pytest.mark.asyncio
    async def test_discarded_after_reset(self, connected, provider):
        """Test balances read across a disconnect are not published."""
        balance = units("2")

        async def disconnect_mid_read(account):
            connected.disconnect()
            return balance

        provider.get_balance = AsyncMock(side_effect=disconnect_mid_read)

        state = await connected.synchronizer.refresh_all(ALICE)

        assert state.native_balance == balance
        assert connected.account is None
        assert connected.store.state.native_balance == 0

    @pytest.mark.asyncio
    async def test_other_account(self, connected):
        """Test refreshing an account with nothing."""
        state = await connected.synchronizer.refresh_all(BOB)

        assert state.native_balance == 0
        assert state.token_balance == 0

    @pytest.mark.asyncio
    async def test_read_failure_keeps_previous_state(self, connected, provider):
        """Test a failed read raises and publishes nothing."""
        before = connected.store.state
        provider.get_balance = AsyncMock(side_effect=ProviderConnectionError("RPC unreachable"))

        with pytest.raises(BalanceSyncError, match="RPC unreachable"):
            await connected.synchronizer.refresh_all(ALICE)

        assert connected.store.state is before

    @pytest.mark.asyncio
    async def test_failed_refresh_after_confirmation_is_reported(self, authorized, provider, ledger):
        """Test the action still confirms and the sync failure is surfaced."""
        provider.get_balance = AsyncMock(side_effect=ProviderConnectionError("RPC unreachable"))

        update = await authorized.deposit("0.5")

        assert update.phase.value == "confirmed"
        assert "Could not refresh balances" in update.message
        assert ledger.my_balance(ALICE) == units("0.5")
        assert authorized.state.vault_balance == 0
