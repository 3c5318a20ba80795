"""Full re-read of an account's balances into a fresh VaultState."""

import asyncio
import logging

from savingsvault.client.allowance import AllowanceGate
from savingsvault.client.gateways import TokenGateway, VaultGateway
from savingsvault.client.models import VaultState
from savingsvault.client.store import VaultStore
from savingsvault.wallet.base import ProviderError, WalletProvider

logger = logging.getLogger(__name__)


class BalanceSyncError(Exception):
    """Raised when balances could not be re-read."""


class BalanceSynchronizer:
    """Re-reads every balance from its source of truth and publishes the snapshot.

    Never patches a previous snapshot and never publishes guessed values.
    """

    def __init__(
        self,
        provider: WalletProvider,
        token: TokenGateway,
        vault: VaultGateway,
        gate: AllowanceGate,
        store: VaultStore,
    ):
        self.provider = provider
        self.token = token
        self.vault = vault
        self.gate = gate
        self.store = store

    async def refresh_all(self, account: str) -> VaultState:
        """Read native, wallet asset, vault balance and allowance concurrently.

        Raises:
            BalanceSyncError: Any read failed; the previous snapshot stays published
        """
        epoch = self.store.epoch
        try:
            native, token_balance, vault_balance, allowance = await asyncio.gather(
                self.provider.get_balance(account),
                self.token.balance_of(account),
                self.vault.my_balance(account),
                self.gate.query_allowance(account),
            )
        except ProviderError as e:
            logger.error(f"Balance refresh failed for {account}: {e.message}")
            raise BalanceSyncError(f"Could not refresh balances: {e.message}") from e

        state = VaultState(
            account=account,
            native_balance=native,
            token_balance=token_balance,
            vault_balance=vault_balance,
            allowance=allowance,
            is_approved=self.gate.is_authorized(allowance),
        )
        if self.store.epoch != epoch:
            logger.debug(f"Discarding balances for {account}: session changed during refresh")
            return state

        self.store.publish_state(state)
        logger.debug(
            f"Synced {account}: native={native} token={token_balance} "
            f"vault={vault_balance} allowance={allowance}"
        )
        return state
