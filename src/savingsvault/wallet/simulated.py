"""Wallet provider backed by the in-process SimulatedChain.

Behaves like an injected browser wallet: it holds a fixed set of accounts,
sits on some chain until asked to switch, can be told to reject the next
prompts, and dry-runs contract calls before submitting them the way a
wallet's gas estimation does.
"""

import logging
from typing import Any, Optional

from savingsvault.contracts.base import EventLog, normalize
from savingsvault.contracts.chain import SimulatedChain, TransactionRejected
from savingsvault.contracts.errors import ContractRevert
from savingsvault.wallet.base import (
    ChainNotAddedError,
    ChainParams,
    ChainRevertError,
    ContractCall,
    TransactionRejectedError,
    TxReceipt,
    UserRejectedError,
    WalletProvider,
    WrongNetworkError,
)

logger = logging.getLogger(__name__)


class SimulatedProvider(WalletProvider):
    """Injected-wallet lookalike over a SimulatedChain."""

    name = "simulated"

    def __init__(
        self,
        chain: SimulatedChain,
        accounts: list[str],
        wallet_chain_id: Optional[int] = None,
        estimate_gas: bool = True,
    ):
        """Initialize provider.

        Args:
            chain: Chain that executes transactions
            accounts: Accounts the wallet controls, active first
            wallet_chain_id: Chain the wallet starts on (default: the chain's own)
            estimate_gas: Dry-run contract calls and refuse reverting ones
        """
        self.chain = chain
        self.accounts = [normalize(a) for a in accounts]
        self.current_chain_id = wallet_chain_id or chain.chain_id
        self.known_chains: set[int] = {self.current_chain_id}
        self.estimate_gas = estimate_gas
        self.watched_assets: list[str] = []
        self.submitted: list[str] = []
        self._reject_prompts = 0

    def reject_next(self, count: int = 1) -> None:
        """Make the next ``count`` wallet prompts fail as user rejections."""
        self._reject_prompts += count

    def _prompt(self, what: str) -> None:
        if self._reject_prompts > 0:
            self._reject_prompts -= 1
            logger.info(f"[SIMULATED] User rejected {what}")
            raise UserRejectedError("User rejected the request.")

    async def request_accounts(self) -> list[str]:
        self._prompt("account access")
        return list(self.accounts)

    async def get_chain_id(self) -> int:
        return self.current_chain_id

    async def switch_chain(self, chain_id: int) -> None:
        if chain_id not in self.known_chains:
            raise ChainNotAddedError(f"Unrecognized chain ID {hex(chain_id)}")
        self._prompt("chain switch")
        self.current_chain_id = chain_id

    async def add_chain(self, params: ChainParams) -> None:
        self._prompt("add chain")
        self.known_chains.add(params.chain_id)
        logger.info(f"[SIMULATED] Added chain {params.chain_name} ({params.chain_id_hex})")

    async def watch_asset(self, address: str, symbol: str, decimals: int) -> bool:
        self._prompt("watch asset")
        self.watched_assets.append(normalize(address))
        return True

    async def get_balance(self, address: str) -> int:
        return self.chain.get_balance(address)

    async def call(self, call: ContractCall, sender: Optional[str] = None) -> Any:
        try:
            return self.chain.call(sender, call.address, call.function, call.args)
        except ContractRevert as e:
            raise ChainRevertError(e.reason) from e
        except TransactionRejected as e:
            raise ChainRevertError(str(e)) from e

    async def send_transaction(
        self,
        sender: str,
        to: str,
        value: int = 0,
        call: Optional[ContractCall] = None,
    ) -> str:
        if self.current_chain_id != self.chain.chain_id:
            raise WrongNetworkError(
                f"Wallet is on chain {self.current_chain_id}, expected {self.chain.chain_id}"
            )
        if normalize(sender) not in self.accounts:
            raise UserRejectedError(f"Wallet does not control {sender}")

        function = call.function if call else None
        args = call.args if call else ()

        if self.estimate_gas and function is not None:
            reason = self.chain.dry_run(sender, to, value, function, args)
            if reason is not None:
                raise ChainRevertError(reason)

        self._prompt("transaction signature")

        try:
            tx_hash = self.chain.submit(sender, to, value, function, args)
        except TransactionRejected as e:
            raise TransactionRejectedError(str(e)) from e

        self.submitted.append(tx_hash)
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        receipt = await self.chain.wait_for_receipt(tx_hash)
        return TxReceipt(
            tx_hash=receipt.tx_hash,
            status=receipt.status,
            block_number=receipt.block_number,
            revert_reason=receipt.revert_reason,
            logs=receipt.logs,
        )

    async def get_logs(self, address: str, event: str) -> list[EventLog]:
        return self.chain.get_logs(address, event)
