"""Connection lifecycle and action entry points for one wallet session.

This is the surface the presentation layer talks to. It owns the store and
wires the gate, synchronizer and orchestrator around a single provider.
"""

import logging
from typing import Optional

from savingsvault.client.allowance import AllowanceGate
from savingsvault.client.gateways import TokenGateway, VaultGateway
from savingsvault.client.models import ActionUpdate, VaultState
from savingsvault.client.orchestrator import TransferOrchestrator
from savingsvault.client.store import VaultStore
from savingsvault.client.synchronizer import BalanceSynchronizer
from savingsvault.config import Settings, get_settings
from savingsvault.wallet.base import ChainParams, ProviderUnavailableError, WalletProvider
from savingsvault.wallet.factory import chain_params
from savingsvault.wallet.network import ensure_network

logger = logging.getLogger(__name__)

NATIVE_ASSET = "native"
TOKEN_ASSET = "token"


class VaultSession:
    """One user's view of the vault through one wallet."""

    def __init__(
        self,
        provider: Optional[WalletProvider],
        settings: Optional[Settings] = None,
        network: Optional[ChainParams] = None,
    ):
        """Initialize session.

        Args:
            provider: Wallet provider, or None when no wallet is available
            settings: Application settings (default: get_settings())
            network: Target chain (default: derived from settings)
        """
        self.settings = settings or get_settings()
        self.network = network or chain_params(self.settings)
        self.provider = provider
        self.store = VaultStore()
        self.needs_authorization = False

        self.gate: Optional[AllowanceGate] = None
        self.synchronizer: Optional[BalanceSynchronizer] = None
        self.orchestrator: Optional[TransferOrchestrator] = None
        if provider is not None:
            self._wire(provider)

    def _wire(self, provider: WalletProvider) -> None:
        token = TokenGateway(provider, self.settings.token_address)
        vault = VaultGateway(provider, self.settings.vault_address)
        self.gate = AllowanceGate(
            provider, token, vault.address, strict=self.settings.strict_allowance
        )
        self.synchronizer = BalanceSynchronizer(provider, token, vault, self.gate, self.store)
        self.orchestrator = TransferOrchestrator(
            provider,
            token,
            vault,
            self.gate,
            self.synchronizer,
            self.store,
            token_decimals=self.settings.token_decimals,
            token_symbol=self.settings.token_symbol,
            native_symbol=self.settings.native_symbol,
        )

    def _require_provider(self) -> WalletProvider:
        if self.provider is None:
            raise ProviderUnavailableError("No wallet provider available")
        return self.provider

    @property
    def state(self) -> VaultState:
        return self.store.state

    @property
    def account(self) -> Optional[str]:
        return self.store.state.account

    # ======================
    # Connection
    # ======================

    async def connect(self) -> VaultState:
        """Request accounts, move the wallet onto the target chain, and sync.

        Raises:
            ProviderUnavailableError: No wallet provider
            UserRejectedError: The user declined account access or the network switch
            BalanceSyncError: Balances could not be read after connecting
        """
        provider = self._require_provider()

        accounts = await provider.request_accounts()
        if not accounts:
            raise ProviderUnavailableError("Wallet returned no accounts")

        await ensure_network(provider, self.network)

        account = accounts[0]
        state = await self.synchronizer.refresh_all(account)
        self.needs_authorization = not state.is_approved
        logger.info(f"Connected {account} (authorized={state.is_approved})")
        return state

    def disconnect(self) -> None:
        """Forget the account and clear status and inputs."""
        if self.account:
            logger.info(f"Disconnected {self.account}")
        self.store.reset()
        self.needs_authorization = False

    async def accounts_changed(self, accounts: list[str]) -> VaultState:
        """Follow an account switch in the wallet. Empty means disconnected."""
        if not accounts:
            self.disconnect()
            return self.store.state

        self._require_provider()
        self.store.reset()
        state = await self.synchronizer.refresh_all(accounts[0])
        self.needs_authorization = not state.is_approved
        logger.info(f"Account changed to {accounts[0]}")
        return state

    async def watch_asset(self) -> bool:
        """Ask the wallet to track the ledger asset."""
        provider = self._require_provider()
        return await provider.watch_asset(
            self.settings.token_address,
            self.settings.token_symbol,
            self.settings.token_decimals,
        )

    async def refresh(self) -> VaultState:
        self._require_provider()
        if self.account is None:
            return self.store.state
        return await self.synchronizer.refresh_all(self.account)

    # ======================
    # Actions
    # ======================

    async def transfer(self, asset: str, recipient: str, amount: str) -> ActionUpdate:
        """Send ``amount`` of the native or ledger asset to ``recipient``.

        Args:
            asset: "native" or "token"
            recipient: Destination address
            amount: Decimal amount as entered
        """
        self._require_provider()
        if asset not in (NATIVE_ASSET, TOKEN_ASSET):
            raise ValueError(f"Unknown asset: {asset}")

        self.store.publish_inputs(
            self.store.inputs.model_copy(update={"recipient": recipient, "transfer_amount": amount})
        )
        if asset == NATIVE_ASSET:
            return await self.orchestrator.native_transfer(recipient, amount)
        return await self.orchestrator.token_transfer(recipient, amount)

    async def deposit(self, amount: str) -> ActionUpdate:
        self._require_provider()
        self.store.publish_inputs(self.store.inputs.model_copy(update={"deposit_amount": amount}))
        return await self.orchestrator.deposit(amount)

    async def withdraw(self, amount: str) -> ActionUpdate:
        self._require_provider()
        self.store.publish_inputs(self.store.inputs.model_copy(update={"withdraw_amount": amount}))
        return await self.orchestrator.withdraw(amount)

    async def approve(self) -> ActionUpdate:
        self._require_provider()
        update = await self.orchestrator.approve()
        if self.account is not None:
            self.needs_authorization = not self.store.state.is_approved
        return update
