"""Tests for the per-action state machine."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import ALICE, BOB, units, wait_until
from savingsvault.client.models import ActionKind, ActionPhase, FailureKind, StatusKind
from savingsvault.client.session import VaultSession
from savingsvault.config import Settings
from savingsvault.utils.inflight import ActionInProgressError
from savingsvault.wallet.base import ProviderConnectionError
from savingsvault.wallet.simulated import SimulatedProvider


def phases(session: VaultSession, action: ActionKind) -> list[ActionPhase]:
    return [u.phase for u in session.store.history if u.action == action]


class TestScenarios:
    """End-to-end scenarios over a connected session."""

    @pytest.mark.asyncio
    async def test_deposit_blocked_until_authorized(self, connected, provider):
        """Scenario A: wallet 1.00, allowance 0, deposit 0.5 is refused locally."""
        assert connected.state.token_balance == units("1")
        assert connected.state.allowance == 0
        assert connected.needs_authorization

        update = await connected.deposit("0.5")

        assert update.phase == ActionPhase.FAILED
        assert update.failure == FailureKind.AUTHORIZATION
        assert update.message == "Please approve wINJ spending first"
        assert provider.submitted == []

    @pytest.mark.asyncio
    async def test_deposit_after_authorization(self, authorized, provider):
        """Scenario B: after approval confirms, deposit 0.5 moves 0.5 into the vault."""
        update = await authorized.deposit("0.5")

        assert update.phase == ActionPhase.CONFIRMED
        assert update.message == "Deposited 0.5000 wINJ"
        assert authorized.state.token_balance == units("0.5")
        assert authorized.state.vault_balance == units("0.5")
        assert authorized.store.status.kind == StatusKind.SUCCESS
        assert authorized.store.status.tx_hash == update.tx_hash

    @pytest.mark.asyncio
    async def test_withdraw_above_vault_balance(self, authorized, provider, ledger):
        """Scenario C: vault 0.50, withdraw 0.60 fails and the vault keeps 0.50."""
        await authorized.deposit("0.5")
        submitted = len(provider.submitted)

        update = await authorized.withdraw("0.6")

        assert update.phase == ActionPhase.FAILED
        assert update.failure == FailureKind.INSUFFICIENT_FUNDS
        assert update.message == "Insufficient wINJ balance in vault"
        assert authorized.state.vault_balance == units("0.5")
        assert ledger.my_balance(ALICE) == units("0.5")
        assert len(provider.submitted) == submitted

    @pytest.mark.asyncio
    async def test_native_transfer_above_balance(self, connected, provider):
        """Scenario D: native 2.0, transfer 2.5 is rejected at validation."""
        update = await connected.transfer("native", BOB, "2.5")

        assert update.phase == ActionPhase.FAILED
        assert update.failure == FailureKind.INSUFFICIENT_FUNDS
        assert update.message == "Insufficient INJ balance"
        assert provider.submitted == []
        assert phases(connected, ActionKind.NATIVE_TRANSFER) == [
            ActionPhase.VALIDATING,
            ActionPhase.FAILED,
        ]


class TestValidation:
    """Local refusals never reach the chain."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount,message",
        [
            ("", "Please enter an amount"),
            ("   ", "Please enter an amount"),
            ("abc", "Please enter a valid amount"),
            ("0", "Please enter a valid amount"),
            ("-1", "Please enter a valid amount"),
            ("0.0000000000000000001", "Please enter a valid amount"),
            ("1e999999", "Please enter a valid amount"),
            ("1e60", "Please enter a valid amount"),
        ],
    )
    async def test_deposit_amount_validation(self, authorized, provider, amount, message):
        """Test malformed deposit amounts."""
        submitted = len(provider.submitted)

        update = await authorized.deposit(amount)

        assert update.failure == FailureKind.VALIDATION
        assert update.message == message
        assert len(provider.submitted) == submitted

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "recipient,amount,message",
        [
            ("", "0.1", "Please enter both address and amount"),
            (BOB, "", "Please enter both address and amount"),
            ("not-an-address", "0.1", "Please enter a valid recipient address"),
        ],
    )
    async def test_transfer_field_validation(self, connected, provider, recipient, amount, message):
        """Test missing or malformed transfer fields."""
        update = await connected.transfer("native", recipient, amount)

        assert update.failure == FailureKind.VALIDATION
        assert update.message == message
        assert provider.submitted == []

    @pytest.mark.asyncio
    async def test_requires_connection(self, session, provider):
        """Test actions before connecting are refused."""
        update = await session.withdraw("0.1")

        assert update.failure == FailureKind.VALIDATION
        assert update.message == "Please connect your wallet first"

    @pytest.mark.asyncio
    async def test_token_transfer_is_gated(self, connected, provider):
        """Test ledger-asset transfer needs authorization like deposit."""
        update = await connected.transfer("token", BOB, "0.1")

        assert update.failure == FailureKind.AUTHORIZATION
        assert provider.submitted == []

    @pytest.mark.asyncio
    async def test_deposit_above_wallet_balance(self, authorized):
        """Test deposit above wallet asset balance."""
        update = await authorized.deposit("1.5")

        assert update.failure == FailureKind.INSUFFICIENT_FUNDS
        assert update.message == "Insufficient wINJ balance"

    @pytest.mark.asyncio
    async def test_failed_action_keeps_snapshot(self, authorized):
        """Test a failure never replaces the published balances."""
        before = authorized.store.state

        await authorized.withdraw("5")

        assert authorized.store.state is before


class TestTransfers:
    """Successful transfers."""

    @pytest.mark.asyncio
    async def test_native_transfer(self, connected, chain):
        """Test native transfer confirms and re-syncs."""
        update = await connected.transfer("native", BOB, "0.5")

        assert update.phase == ActionPhase.CONFIRMED
        assert chain.get_balance(BOB) == units("0.5")
        assert connected.state.native_balance == units("1.5")
        assert connected.store.inputs.recipient == ""
        assert connected.store.inputs.transfer_amount == ""
        assert phases(connected, ActionKind.NATIVE_TRANSFER) == [
            ActionPhase.VALIDATING,
            ActionPhase.SUBMITTING,
            ActionPhase.PENDING,
            ActionPhase.CONFIRMED,
        ]

    @pytest.mark.asyncio
    async def test_token_transfer(self, authorized, token):
        """Test ledger-asset transfer after authorization."""
        update = await authorized.transfer("token", BOB, "0.25")

        assert update.phase == ActionPhase.CONFIRMED
        assert token.balance_of(BOB) == units("0.25")
        assert authorized.state.token_balance == units("0.75")

    @pytest.mark.asyncio
    async def test_withdraw_clears_only_its_input(self, authorized):
        """Test confirmation clears the completed form only."""
        await authorized.deposit("0.5")
        authorized.store.publish_inputs(
            authorized.store.inputs.model_copy(update={"deposit_amount": "0.1"})
        )

        await authorized.withdraw("0.5")

        assert authorized.store.inputs.withdraw_amount == ""
        assert authorized.store.inputs.deposit_amount == "0.1"
        assert authorized.state.vault_balance == 0


class TestPending:
    """The window between submission and confirmation."""

    @pytest.mark.asyncio
    async def test_pending_shows_pre_action_state(self, authorized, chain):
        """Test balances stay at their pre-action values until mined."""
        chain.auto_mine = False
        task = asyncio.create_task(authorized.deposit("0.5"))
        await wait_until(lambda: ActionKind.DEPOSIT in authorized.store.pending)

        assert authorized.store.status.kind == StatusKind.PENDING
        assert authorized.store.status.message == "Transaction pending..."
        assert authorized.store.status.tx_hash is not None
        assert authorized.state.token_balance == units("1")
        assert authorized.state.vault_balance == 0

        # Read-only refresh while pending still shows chain truth
        await authorized.refresh()
        assert authorized.state.vault_balance == 0

        chain.mine()
        update = await task

        assert update.phase == ActionPhase.CONFIRMED
        assert authorized.state.vault_balance == units("0.5")
        assert ActionKind.DEPOSIT not in authorized.store.pending

    @pytest.mark.asyncio
    async def test_duplicate_action_refused(self, authorized, chain, provider):
        """Test a second deposit while one is pending is refused without submitting."""
        chain.auto_mine = False
        task = asyncio.create_task(authorized.deposit("0.5"))
        await wait_until(lambda: ActionKind.DEPOSIT in authorized.store.pending)
        submitted = len(provider.submitted)

        with pytest.raises(ActionInProgressError):
            await authorized.deposit("0.1")

        assert len(provider.submitted) == submitted
        assert authorized.store.status.kind == StatusKind.PENDING

        chain.mine()
        await task

    @pytest.mark.asyncio
    async def test_pending_without_mining_never_resolves(self, authorized, chain):
        """Test there is no timeout: an unmined transaction stays pending."""
        chain.auto_mine = False
        task = asyncio.create_task(authorized.deposit("0.5"))
        await wait_until(lambda: ActionKind.DEPOSIT in authorized.store.pending)

        done, _ = await asyncio.wait({task}, timeout=0.05)

        assert not done
        assert authorized.store.status.kind == StatusKind.PENDING

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestFailures:
    """Failures after validation."""

    @pytest.mark.asyncio
    async def test_user_rejection(self, authorized, provider):
        """Test declining the signature prompt."""
        provider.reject_next()

        update = await authorized.deposit("0.5")

        assert update.failure == FailureKind.USER_REJECTED
        assert update.message == "User rejected the request."
        assert update.tx_hash is None
        assert authorized.state.vault_balance == 0
        assert authorized.store.status.kind == StatusKind.ERROR

    @pytest.mark.asyncio
    async def test_revert_detected_at_estimation(self, authorized, token):
        """Test stale balances let validation pass but the wallet refuses the revert."""
        token.transfer(ALICE, BOB, units("1"))

        update = await authorized.deposit("0.5")

        assert update.failure == FailureKind.CHAIN_REJECTION
        assert update.message.startswith("PullTransferFailed")
        assert update.tx_hash is None

    @pytest.mark.asyncio
    async def test_revert_in_mined_block(self, chain, token, settings):
        """Test an on-chain revert is surfaced verbatim with its tx hash."""
        provider = SimulatedProvider(chain, accounts=[ALICE], estimate_gas=False)
        session = VaultSession(provider, settings)
        await session.connect()
        await session.approve()
        token.transfer(ALICE, BOB, units("1"))

        update = await session.deposit("0.5")

        assert update.failure == FailureKind.CHAIN_REJECTION
        assert update.message.startswith("PullTransferFailed(ERC20InsufficientBalance")
        assert update.tx_hash is not None
        assert chain.receipts[update.tx_hash].status is False

    @pytest.mark.asyncio
    async def test_wrong_network(self, authorized, provider):
        """Test the wallet drifting to another chain."""
        provider.current_chain_id = 1

        update = await authorized.deposit("0.5")

        assert update.failure == FailureKind.ENVIRONMENT

    @pytest.mark.asyncio
    async def test_network_failure_while_pending(self, authorized, provider):
        """Test losing the node after submission."""
        provider.wait_for_receipt = AsyncMock(side_effect=ProviderConnectionError("RPC unreachable"))

        update = await authorized.deposit("0.5")

        assert update.failure == FailureKind.NETWORK
        assert update.message == "RPC unreachable"
        assert update.tx_hash is not None
        assert ActionKind.DEPOSIT not in authorized.store.pending

    @pytest.mark.asyncio
    async def test_no_automatic_retry(self, authorized, provider):
        """Test a failure is terminal and submits nothing more."""
        provider.reject_next()
        await authorized.deposit("0.5")

        assert provider.submitted == []
        assert phases(authorized, ActionKind.DEPOSIT)[-1] == ActionPhase.FAILED


class TestStrictAllowance:
    """Optional strict authorization policy."""

    @pytest.mark.asyncio
    async def test_bounded_allowance_must_cover_amount(self, chain, settings, provider):
        """Test strict mode compares allowance to the requested amount."""
        chain.submit(
            ALICE, settings.token_address, function="approve",
            args=(settings.vault_address, units("0.1")),
        )
        strict = Settings(strict_allowance=True)
        session = VaultSession(provider, strict)
        await session.connect()

        refused = await session.deposit("0.5")
        accepted = await session.deposit("0.1")

        assert refused.failure == FailureKind.AUTHORIZATION
        assert accepted.phase == ActionPhase.CONFIRMED
        assert session.state.allowance == 0
        assert not session.state.is_approved
