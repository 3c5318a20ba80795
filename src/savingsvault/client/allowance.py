"""Authorization gate for moving the ledger asset.

The vault can only pull the asset out of a wallet that has approved it.
Authorization is requested once, for the maximum uint256, so later deposits
do not each need their own approval prompt.
"""

import logging
from typing import Optional

from savingsvault.client.gateways import TokenGateway
from savingsvault.units import MAX_UINT256
from savingsvault.utils.inflight import InFlightGuard
from savingsvault.wallet.base import WalletProvider

logger = logging.getLogger(__name__)

AUTHORIZATION_KEY = "authorization"


class AllowanceGate:
    """Decides whether the vault may move the account's asset and drives approval."""

    def __init__(
        self,
        provider: WalletProvider,
        token: TokenGateway,
        vault_address: str,
        strict: bool = False,
    ):
        """Initialize gate.

        Args:
            provider: Wallet used to submit the approval
            token: Ledger asset
            vault_address: Spender being authorized
            strict: Also require allowance >= the requested amount
        """
        self.provider = provider
        self.token = token
        self.vault_address = vault_address
        self.strict = strict
        self._in_flight = InFlightGuard()

    async def query_allowance(self, owner: str) -> int:
        """Current (owner, vault) allowance. Read-only."""
        return await self.token.allowance(owner, self.vault_address)

    def is_authorized(self, allowance: int, amount: Optional[int] = None) -> bool:
        """Apply the authorization policy to a known allowance.

        Any non-zero allowance counts as authorized. In strict mode a
        requested ``amount`` must also fit within it.
        """
        if allowance <= 0:
            return False
        if self.strict and amount is not None:
            return allowance >= amount
        return True

    @property
    def in_flight(self) -> bool:
        return self._in_flight.is_busy(AUTHORIZATION_KEY)

    async def request_authorization(self, owner: str) -> str:
        """Submit approve(vault, MAX_UINT256) from ``owner``.

        The gate stays in flight until ``settle()`` is called; until then a
        second request raises instead of submitting another approval.

        Returns:
            Approval transaction hash

        Raises:
            ActionInProgressError: An approval is already awaiting confirmation
            ProviderError: Submission failed (the gate is released)
        """
        self._in_flight.acquire(AUTHORIZATION_KEY)
        try:
            tx_hash = await self.provider.send_transaction(
                owner,
                self.token.address,
                call=self.token.approve(self.vault_address, MAX_UINT256),
            )
        except BaseException:
            self._in_flight.release(AUTHORIZATION_KEY)
            raise

        logger.info(f"Authorization submitted for {owner}: {tx_hash}")
        return tx_hash

    def settle(self) -> None:
        """Mark the outstanding approval as confirmed or failed."""
        self._in_flight.release(AUTHORIZATION_KEY)
