"""In-process EVM-like chain for development and tests.

Transactions are queued on submission and executed when a block is mined.
Each transaction runs against a snapshot of every contract's storage and the
native balances; any revert restores the snapshot, so a failed transaction
leaves no partial effects. With ``auto_mine`` off the caller decides when
blocks are produced, which keeps submitted transactions pending indefinitely.

Gas is not modelled: native transfers move exactly ``value``.
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass, replace
from typing import Any, Optional

from savingsvault.contracts.base import Contract, EventLog, normalize
from savingsvault.contracts.errors import ContractRevert

logger = logging.getLogger(__name__)


class TransactionRejected(Exception):
    """The node refused a transaction before inclusion (never mined)."""


@dataclass(frozen=True)
class PendingTransaction:
    """A submitted, not yet mined transaction."""

    tx_hash: str
    sender: str
    to: str
    nonce: int
    value: int = 0
    function: Optional[str] = None
    args: tuple = ()


@dataclass(frozen=True)
class Receipt:
    """Outcome of a mined transaction."""

    tx_hash: str
    status: bool
    block_number: int
    sender: str
    to: str
    revert_reason: Optional[str] = None
    logs: tuple[EventLog, ...] = ()


class SimulatedChain:
    """Single-node chain with atomic transaction execution."""

    def __init__(self, chain_id: int = 1439, auto_mine: bool = True):
        self.chain_id = chain_id
        self.auto_mine = auto_mine
        self.block_number = 0
        self.native: dict[str, int] = {}
        self.contracts: dict[str, Contract] = {}
        self.nonces: dict[str, int] = {}
        self.receipts: dict[str, Receipt] = {}
        self.logs: list[EventLog] = []
        self._pending: list[PendingTransaction] = []
        self._waiters: dict[str, list[asyncio.Future]] = {}

    # Setup

    def deploy(self, contract: Contract) -> Contract:
        self.contracts[contract.address] = contract
        logger.debug(f"Deployed {type(contract).__name__} at {contract.address}")
        return contract

    def fund_native(self, address: str, amount: int) -> None:
        address = normalize(address)
        self.native[address] = self.native.get(address, 0) + amount

    # Reads

    def get_balance(self, address: str) -> int:
        return self.native.get(normalize(address), 0)

    def call(self, sender: Optional[str], to: str, function: str, args: tuple = ()) -> Any:
        """eth_call: run a view function without changing state."""
        contract = self._contract(to)
        caller = sender or contract.address
        return contract.dispatch(caller, function, args)

    def get_logs(self, address: str, name: Optional[str] = None) -> list[EventLog]:
        address = normalize(address)
        return [
            log for log in self.logs
            if log.address == address and (name is None or log.name == name)
        ]

    @property
    def pending(self) -> list[PendingTransaction]:
        return list(self._pending)

    # Writes

    def submit(
        self,
        sender: str,
        to: str,
        value: int = 0,
        function: Optional[str] = None,
        args: tuple = (),
    ) -> str:
        """Accept a transaction into the pending pool.

        Args:
            sender: Signing account
            to: Recipient account or contract
            value: Native amount to move
            function: ABI function name for contract calls
            args: ABI arguments

        Returns:
            Transaction hash

        Raises:
            TransactionRejected: Unfunded value transfer or call to a
                non-contract account
        """
        sender, to = normalize(sender), normalize(to)

        if value < 0:
            raise TransactionRejected("negative value")
        # Balance is checked against what is already committed to pending txs
        committed = sum(tx.value for tx in self._pending if tx.sender == sender)
        if self.get_balance(sender) - committed < value:
            raise TransactionRejected("insufficient funds for transfer")
        if function is not None and to not in self.contracts:
            raise TransactionRejected(f"no contract code at {to}")

        nonce = self.nonces.get(sender, 0)
        self.nonces[sender] = nonce + 1

        tx = PendingTransaction(
            tx_hash=f"0x{secrets.token_hex(32)}",
            sender=sender,
            to=to,
            nonce=nonce,
            value=value,
            function=function,
            args=tuple(args),
        )
        self._pending.append(tx)
        logger.info(f"Accepted tx {tx.tx_hash[:10]}... from {sender[:10]}... nonce={nonce}")

        if self.auto_mine:
            self.mine()
        return tx.tx_hash

    def mine(self) -> list[Receipt]:
        """Produce one block containing every pending transaction."""
        if not self._pending:
            return []

        self.block_number += 1
        batch, self._pending = self._pending, []
        receipts = [self._execute(tx) for tx in batch]

        for receipt in receipts:
            self.receipts[receipt.tx_hash] = receipt
            for waiter in self._waiters.pop(receipt.tx_hash, []):
                if not waiter.done():
                    waiter.set_result(receipt)

        return receipts

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        """Suspend until the transaction is mined. No timeout."""
        receipt = self.receipts.get(tx_hash)
        if receipt is not None:
            return receipt

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(tx_hash, []).append(waiter)
        return await waiter

    # Internals

    def _contract(self, address: str) -> Contract:
        contract = self.contracts.get(normalize(address))
        if contract is None:
            raise TransactionRejected(f"no contract code at {address}")
        return contract

    def _snapshot(self) -> tuple[dict[str, int], dict[str, dict]]:
        return dict(self.native), {addr: c.snapshot() for addr, c in self.contracts.items()}

    def _restore(self, snapshot: tuple[dict[str, int], dict[str, dict]]) -> None:
        native, storage = snapshot
        self.native = native
        for addr, contract_state in storage.items():
            self.contracts[addr].restore(contract_state)

    def _apply(self, tx: PendingTransaction) -> None:
        self.native[tx.sender] = self.native.get(tx.sender, 0) - tx.value
        self.native[tx.to] = self.native.get(tx.to, 0) + tx.value
        if tx.function is not None:
            self.contracts[tx.to].dispatch(
                tx.sender, tx.function, tx.args, allow_mutation=True
            )

    def dry_run(
        self,
        sender: str,
        to: str,
        value: int = 0,
        function: Optional[str] = None,
        args: tuple = (),
    ) -> Optional[str]:
        """Execute against current state and roll back (eth_estimateGas).

        Returns:
            Revert reason, or None if the transaction would succeed
        """
        tx = PendingTransaction(
            tx_hash="0x", sender=normalize(sender), to=normalize(to),
            nonce=-1, value=value, function=function, args=tuple(args),
        )
        snapshot = self._snapshot()
        try:
            self._apply(tx)
        except ContractRevert as e:
            return e.reason
        except (TypeError, ValueError) as e:
            return str(e)
        finally:
            self._restore(snapshot)
        return None

    def _execute(self, tx: PendingTransaction) -> Receipt:
        snapshot = self._snapshot()
        log_marks = {addr: len(c.logs) for addr, c in self.contracts.items()}

        try:
            self._apply(tx)
        except (ContractRevert, TypeError, ValueError) as e:
            self._restore(snapshot)
            reason = e.reason if isinstance(e, ContractRevert) else str(e)
            logger.info(f"Tx {tx.tx_hash[:10]}... reverted: {reason}")
            return Receipt(
                tx_hash=tx.tx_hash,
                status=False,
                block_number=self.block_number,
                sender=tx.sender,
                to=tx.to,
                revert_reason=reason,
            )

        emitted: list[EventLog] = []
        for addr, contract in self.contracts.items():
            mark = log_marks.get(addr, 0)
            stamped = [
                replace(log, tx_hash=tx.tx_hash, block_number=self.block_number)
                for log in contract.logs[mark:]
            ]
            contract.logs[mark:] = stamped
            emitted.extend(stamped)
        self.logs.extend(emitted)

        return Receipt(
            tx_hash=tx.tx_hash,
            status=True,
            block_number=self.block_number,
            sender=tx.sender,
            to=tx.to,
            logs=tuple(emitted),
        )
