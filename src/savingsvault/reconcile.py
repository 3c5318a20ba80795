"""Vault solvency reconciliation.

Rebuilds every account's expected balance from the vault's Deposited and
Withdrawn events, checks each against myBalance(), and compares the total
with the asset actually held by the vault. Asset sent straight to the vault
without a deposit shows up as surplus; it never makes the vault insolvent.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from savingsvault.client.gateways import TokenGateway, VaultGateway
from savingsvault.wallet.base import WalletProvider

logger = logging.getLogger(__name__)


@dataclass
class AccountReconciliation:
    """Event-derived vs reported balance for one account."""

    account: str
    replayed: int
    reported: int

    @property
    def matches(self) -> bool:
        return self.replayed == self.reported


@dataclass
class SolvencyReport:
    """Result of reconciling one vault."""

    vault: str
    token: str
    custodied: int
    accounts: list[AccountReconciliation] = field(default_factory=list)

    @property
    def total_tracked(self) -> int:
        return sum(a.reported for a in self.accounts)

    @property
    def surplus(self) -> int:
        """Custodied asset not attributable to any account (may be negative if insolvent)."""
        return self.custodied - self.total_tracked

    @property
    def mismatches(self) -> list[AccountReconciliation]:
        return [a for a in self.accounts if not a.matches]

    @property
    def is_solvent(self) -> bool:
        return self.total_tracked <= self.custodied

    @property
    def is_consistent(self) -> bool:
        return self.is_solvent and not self.mismatches

    def to_dict(self) -> dict:
        return {
            "vault": self.vault,
            "token": self.token,
            "custodied": str(self.custodied),
            "total_tracked": str(self.total_tracked),
            "surplus": str(self.surplus),
            "is_solvent": self.is_solvent,
            "accounts": [
                {
                    "account": a.account,
                    "replayed": str(a.replayed),
                    "reported": str(a.reported),
                    "matches": a.matches,
                }
                for a in self.accounts
            ],
        }


async def reconcile_vault(
    provider: WalletProvider,
    token_address: str,
    vault_address: str,
) -> SolvencyReport:
    """Reconcile a vault against its own event history.

    Args:
        provider: Any wallet provider able to read logs and call views
        token_address: Ledger asset contract
        vault_address: SavingsVault contract

    Returns:
        SolvencyReport
    """
    token = TokenGateway(provider, token_address)
    vault = VaultGateway(provider, vault_address)

    deposited, withdrawn = await asyncio.gather(
        provider.get_logs(vault_address, "Deposited"),
        provider.get_logs(vault_address, "Withdrawn"),
    )
    logger.info(f"Replaying {len(deposited)} deposits and {len(withdrawn)} withdrawals")

    replayed: dict[str, int] = {}
    for log in deposited:
        account = log.args["account"]
        replayed[account] = replayed.get(account, 0) + log.args["amount"]
    for log in withdrawn:
        account = log.args["account"]
        replayed[account] = replayed.get(account, 0) - log.args["amount"]

    accounts = sorted(replayed)
    reported = await asyncio.gather(*(vault.my_balance(a) for a in accounts))
    custodied = await token.balance_of(vault_address)

    report = SolvencyReport(
        vault=vault_address,
        token=token_address,
        custodied=custodied,
        accounts=[
            AccountReconciliation(account=a, replayed=replayed[a], reported=r)
            for a, r in zip(accounts, reported)
        ],
    )

    for mismatch in report.mismatches:
        logger.warning(
            f"MISMATCH {mismatch.account}: events say {mismatch.replayed}, "
            f"vault reports {mismatch.reported}"
        )
    if not report.is_solvent:
        logger.error(
            f"Vault {vault_address} is insolvent: tracks {report.total_tracked}, holds {custodied}"
        )
    return report
