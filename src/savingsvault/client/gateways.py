"""Typed wrappers over the asset and vault contracts as seen through a wallet."""

from savingsvault.units import MAX_UINT256
from savingsvault.wallet.base import ContractCall, WalletProvider


class TokenGateway:
    """ERC-20 ledger asset."""

    def __init__(self, provider: WalletProvider, address: str):
        self.provider = provider
        self.address = address

    async def balance_of(self, account: str) -> int:
        return await self.provider.call(ContractCall(self.address, "balanceOf", (account,)))

    async def allowance(self, owner: str, spender: str) -> int:
        return await self.provider.call(
            ContractCall(self.address, "allowance", (owner, spender))
        )

    def approve(self, spender: str, amount: int = MAX_UINT256) -> ContractCall:
        return ContractCall(self.address, "approve", (spender, amount))

    def transfer(self, to: str, amount: int) -> ContractCall:
        return ContractCall(self.address, "transfer", (to, amount))


class VaultGateway:
    """SavingsVault ledger contract."""

    def __init__(self, provider: WalletProvider, address: str):
        self.provider = provider
        self.address = address

    async def my_balance(self, account: str) -> int:
        """myBalance() as called by ``account``."""
        return await self.provider.call(ContractCall(self.address, "myBalance"), sender=account)

    def deposit(self, amount: int) -> ContractCall:
        return ContractCall(self.address, "deposit", (amount,))

    def withdraw(self, amount: int) -> ContractCall:
        return ContractCall(self.address, "withdraw", (amount,))
