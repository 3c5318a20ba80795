"""Tests for the authorization gate."""

import asyncio

import pytest

from conftest import ALICE, units, wait_until
from savingsvault.client.allowance import AllowanceGate
from savingsvault.client.gateways import TokenGateway
from savingsvault.client.models import ActionKind, ActionPhase
from savingsvault.units import MAX_UINT256
from savingsvault.utils.inflight import ActionInProgressError


class TestPolicy:
    """Tests for is_authorized."""

    @pytest.fixture
    def gates(self, provider, settings):
        token = TokenGateway(provider, settings.token_address)
        lenient = AllowanceGate(provider, token, settings.vault_address)
        strict = AllowanceGate(provider, token, settings.vault_address, strict=True)
        return lenient, strict

    def test_zero_allowance_never_authorized(self, gates):
        """Test both policies refuse a zero allowance."""
        lenient, strict = gates
        assert not lenient.is_authorized(0, 1)
        assert not strict.is_authorized(0)

    def test_any_allowance_is_enough_by_default(self, gates):
        """Test default policy ignores the requested amount."""
        lenient, _ = gates
        assert lenient.is_authorized(1, units("5"))

    def test_strict_compares_amount(self, gates):
        """Test strict policy needs allowance >= amount."""
        _, strict = gates
        assert not strict.is_authorized(1, units("5"))
        assert strict.is_authorized(units("5"), units("5"))
        assert strict.is_authorized(1)


class TestQuery:
    """Tests for query_allowance."""

    @pytest.mark.asyncio
    async def test_query_after_approval(self, authorized):
        """Test allowance reads max uint256 after approval."""
        gate = authorized.gate
        assert await gate.query_allowance(ALICE) == MAX_UINT256
        assert authorized.state.is_approved
        assert authorized.state.allowance == MAX_UINT256

    @pytest.mark.asyncio
    async def test_query_has_no_side_effects(self, connected, chain):
        """Test reading allowance produces no transaction."""
        block = chain.block_number
        assert await connected.gate.query_allowance(ALICE) == 0
        assert chain.block_number == block


class TestIdempotence:
    """Two authorization calls in immediate succession submit at most one approval."""

    @pytest.mark.asyncio
    async def test_second_request_while_pending_is_refused(self, connected, provider, chain):
        """Test duplicate approve while the first is pending."""
        chain.auto_mine = False
        first = asyncio.create_task(connected.approve())
        await wait_until(lambda: ActionKind.APPROVE in connected.store.pending)

        with pytest.raises(ActionInProgressError):
            await connected.approve()
        with pytest.raises(ActionInProgressError):
            await connected.gate.request_authorization(ALICE)

        assert len(provider.submitted) == 1
        assert connected.store.status.message == "Transaction pending..."

        chain.mine()
        update = await first

        assert update.phase == ActionPhase.CONFIRMED
        assert not connected.gate.in_flight
        assert not connected.needs_authorization

    @pytest.mark.asyncio
    async def test_concurrent_calls_submit_once(self, connected, provider, chain):
        """Test gathering two approvals yields one submission."""
        chain.auto_mine = False

        async def mine_soon():
            await wait_until(lambda: len(chain.pending) > 0)
            chain.mine()

        results = await asyncio.gather(
            connected.approve(), connected.approve(), mine_soon(), return_exceptions=True
        )

        assert results[0].phase == ActionPhase.CONFIRMED
        assert isinstance(results[1], ActionInProgressError)
        assert len(provider.submitted) == 1

    @pytest.mark.asyncio
    async def test_gate_released_after_rejection(self, connected, provider):
        """Test a declined approval can be retried."""
        provider.reject_next()
        failed = await connected.approve()
        assert failed.phase == ActionPhase.FAILED
        assert not connected.gate.in_flight

        retried = await connected.approve()
        assert retried.phase == ActionPhase.CONFIRMED
