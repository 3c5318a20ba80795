"""Wallet provider over a JSON-RPC node with a local signing key.

Stands in for an injected browser wallet when the client runs headless:
the key is the only account, "switching" chains means checking the node
is on the requested one, and every prompt is implicitly accepted.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp
from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from savingsvault.contracts.base import EventLog
from savingsvault.wallet.abi import ERC20_ABI, VAULT_ABI
from savingsvault.wallet.base import (
    ChainParams,
    ChainRevertError,
    ContractCall,
    ProviderConnectionError,
    TransactionRejectedError,
    TxReceipt,
    WalletProvider,
    WrongNetworkError,
)

logger = logging.getLogger(__name__)

# Event args whose on-chain names are Python keywords
_ARG_RENAMES = {"from": "sender"}


class Web3Provider(WalletProvider):
    """Signs locally and submits through ``eth_sendRawTransaction``."""

    name = "rpc"

    def __init__(self, rpc_url: str, private_key: str, receipt_poll_timeout: float = 120.0):
        """Initialize provider.

        Args:
            rpc_url: JSON-RPC endpoint
            private_key: Hex key of the single wallet account
            receipt_poll_timeout: Length of one receipt polling round;
                rounds repeat until the transaction is mined
        """
        self.rpc_url = rpc_url
        self.account = Account.from_key(private_key)
        self.receipt_poll_timeout = receipt_poll_timeout
        self._web3: Optional[AsyncWeb3] = None
        self._abis: dict[str, list] = {}

    @property
    def web3(self) -> AsyncWeb3:
        """Lazy load web3 instance."""
        if self._web3 is None:
            self._web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self.rpc_url))
        return self._web3

    def register_contract(self, address: str, abi: list) -> None:
        self._abis[Web3.to_checksum_address(address)] = abi

    def _contract(self, address: str):
        address = Web3.to_checksum_address(address)
        abi = self._abis.get(address)
        if abi is None:
            raise ChainRevertError(f"No ABI registered for {address}")
        return self.web3.eth.contract(address=address, abi=abi)

    async def request_accounts(self) -> list[str]:
        return [self.account.address]

    async def get_chain_id(self) -> int:
        try:
            return await self.web3.eth.chain_id
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderConnectionError(f"RPC unreachable: {e}") from e

    async def switch_chain(self, chain_id: int) -> None:
        current = await self.get_chain_id()
        if current != chain_id:
            raise WrongNetworkError(
                f"Node at {self.rpc_url} serves chain {current}, not {chain_id}"
            )

    async def add_chain(self, params: ChainParams) -> None:
        # A node cannot be taught a new chain; switch_chain reports the mismatch
        logger.info(f"add_chain({params.chain_id_hex}) is a no-op for RPC backend")

    async def watch_asset(self, address: str, symbol: str, decimals: int) -> bool:
        logger.info(f"Watching {symbol} at {address}")
        return True

    async def get_balance(self, address: str) -> int:
        try:
            return await self.web3.eth.get_balance(Web3.to_checksum_address(address))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderConnectionError(f"RPC unreachable: {e}") from e

    async def call(self, call: ContractCall, sender: Optional[str] = None) -> Any:
        contract = self._contract(call.address)
        fn = contract.functions[call.function](*call.args)
        try:
            return await fn.call({"from": sender or self.account.address})
        except ContractLogicError as e:
            raise ChainRevertError(e.message or str(e)) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderConnectionError(f"RPC unreachable: {e}") from e

    async def send_transaction(
        self,
        sender: str,
        to: str,
        value: int = 0,
        call: Optional[ContractCall] = None,
    ) -> str:
        if Web3.to_checksum_address(sender) != self.account.address:
            raise TransactionRejectedError(f"Signer does not control {sender}")

        try:
            nonce = await self.web3.eth.get_transaction_count(self.account.address, "pending")
            tx_params = {
                "from": self.account.address,
                "nonce": nonce,
                "value": value,
                "chainId": await self.web3.eth.chain_id,
                "gasPrice": await self.web3.eth.gas_price,
            }

            if call is not None:
                contract = self._contract(call.address)
                fn = contract.functions[call.function](*call.args)
                tx_params = await fn.build_transaction(tx_params)
            else:
                tx_params["to"] = Web3.to_checksum_address(to)
                tx_params["gas"] = await self.web3.eth.estimate_gas(tx_params)

            signed = self.account.sign_transaction(tx_params)
            tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)

        except ContractLogicError as e:
            raise ChainRevertError(e.message or str(e)) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderConnectionError(f"RPC unreachable: {e}") from e
        except Web3Exception as e:
            raise TransactionRejectedError(str(e)) from e

        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"Submitted tx {tx_hex} nonce={nonce}")
        return tx_hex

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        while True:
            try:
                receipt = await self.web3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.receipt_poll_timeout
                )
                break
            except TimeExhausted:
                logger.info(f"Tx {tx_hash} still pending after {self.receipt_poll_timeout}s")
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise ProviderConnectionError(f"RPC unreachable: {e}") from e

        status = receipt["status"] == 1
        return TxReceipt(
            tx_hash=tx_hash,
            status=status,
            block_number=receipt["blockNumber"],
            revert_reason=None if status else "execution reverted",
        )

    async def get_logs(self, address: str, event: str) -> list[EventLog]:
        contract = self._contract(address)
        try:
            entries = await contract.events[event].get_logs(from_block=0)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderConnectionError(f"RPC unreachable: {e}") from e

        return [
            EventLog(
                address=contract.address,
                name=event,
                args={_ARG_RENAMES.get(k, k): v for k, v in entry["args"].items()},
                tx_hash=Web3.to_hex(entry["transactionHash"]),
                block_number=entry["blockNumber"],
            )
            for entry in entries
        ]


def create_web3_provider(
    rpc_url: str,
    private_key: str,
    token_address: str,
    vault_address: str,
) -> Web3Provider:
    """Build a provider with the asset and vault ABIs registered."""
    provider = Web3Provider(rpc_url, private_key)
    provider.register_contract(token_address, ERC20_ABI)
    provider.register_contract(vault_address, VAULT_ABI)
    return provider
