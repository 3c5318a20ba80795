"""Per-action state machine for every asset-moving action.

Each action runs IDLE -> VALIDATING -> SUBMITTING -> PENDING -> CONFIRMED,
or stops at FAILED from any of the middle states. Every transition is
published to the store as one ActionUpdate. There is no retry and no
cancellation: once submitted, an action waits for the provider's receipt
for as long as it takes.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from eth_utils import is_address

from savingsvault.client.allowance import AllowanceGate
from savingsvault.client.gateways import TokenGateway, VaultGateway
from savingsvault.client.models import (
    ActionKind,
    ActionPhase,
    ActionUpdate,
    FailureKind,
    VaultState,
)
from savingsvault.client.store import VaultStore
from savingsvault.client.synchronizer import BalanceSyncError, BalanceSynchronizer
from savingsvault.units import display, parse_units
from savingsvault.utils.inflight import InFlightGuard
from savingsvault.wallet.base import (
    ChainRevertError,
    ProviderError,
    ProviderUnavailableError,
    TransactionRejectedError,
    UserRejectedError,
    WalletProvider,
    WrongNetworkError,
)

logger = logging.getLogger(__name__)

PENDING_MESSAGE = "Transaction pending..."
SUBMITTING_MESSAGE = "Waiting for wallet confirmation..."


class ValidationFailure(Exception):
    """Local refusal; the action ends FAILED without touching the chain."""

    def __init__(self, kind: FailureKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class _Request:
    """A validated action ready to submit."""

    account: str
    amount: Optional[int] = None
    recipient: Optional[str] = None


def classify_provider_error(error: ProviderError) -> FailureKind:
    """Map a wallet failure onto the failure taxonomy."""
    if isinstance(error, UserRejectedError):
        return FailureKind.USER_REJECTED
    if isinstance(error, (ProviderUnavailableError, WrongNetworkError)):
        return FailureKind.ENVIRONMENT
    if isinstance(error, (ChainRevertError, TransactionRejectedError)):
        return FailureKind.CHAIN_REJECTION
    return FailureKind.NETWORK


class TransferOrchestrator:
    """Validates, submits and tracks native transfers, asset transfers,
    deposits, withdrawals and authorizations."""

    def __init__(
        self,
        provider: WalletProvider,
        token: TokenGateway,
        vault: VaultGateway,
        gate: AllowanceGate,
        synchronizer: BalanceSynchronizer,
        store: VaultStore,
        token_decimals: int = 18,
        token_symbol: str = "wINJ",
        native_symbol: str = "INJ",
    ):
        self.provider = provider
        self.token = token
        self.vault = vault
        self.gate = gate
        self.synchronizer = synchronizer
        self.store = store
        self.token_decimals = token_decimals
        self.token_symbol = token_symbol
        self.native_symbol = native_symbol
        self._guard = InFlightGuard()

    def is_in_flight(self, action: ActionKind) -> bool:
        return self._guard.is_busy(action.value)

    # ======================
    # Actions
    # ======================

    async def native_transfer(self, recipient: str, amount: str) -> ActionUpdate:
        """Send native asset to ``recipient``."""

        def validate(state: VaultState) -> _Request:
            recipient_addr = self._require_recipient(recipient, amount)
            value = self._require_amount(amount, 18)
            if value > state.native_balance:
                raise ValidationFailure(
                    FailureKind.INSUFFICIENT_FUNDS, f"Insufficient {self.native_symbol} balance"
                )
            return _Request(state.account, value, recipient_addr)

        async def submit(req: _Request) -> str:
            return await self.provider.send_transaction(req.account, req.recipient, value=req.amount)

        def done(req: _Request) -> str:
            return f"Sent {display(req.amount)} {self.native_symbol} to {req.recipient}"

        return await self._run(ActionKind.NATIVE_TRANSFER, validate, submit, done)

    async def token_transfer(self, recipient: str, amount: str) -> ActionUpdate:
        """Send ledger asset from the wallet to ``recipient``."""

        def validate(state: VaultState) -> _Request:
            recipient_addr = self._require_recipient(recipient, amount)
            value = self._require_amount(amount, self.token_decimals)
            self._require_authorization(state, value)
            self._require_token_balance(state, value)
            return _Request(state.account, value, recipient_addr)

        async def submit(req: _Request) -> str:
            return await self.provider.send_transaction(
                req.account, self.token.address, call=self.token.transfer(req.recipient, req.amount)
            )

        def done(req: _Request) -> str:
            return (
                f"Sent {display(req.amount, self.token_decimals)} {self.token_symbol} "
                f"to {req.recipient}"
            )

        return await self._run(ActionKind.TOKEN_TRANSFER, validate, submit, done)

    async def deposit(self, amount: str) -> ActionUpdate:
        """Move ledger asset from the wallet into the vault."""

        def validate(state: VaultState) -> _Request:
            value = self._require_amount(amount, self.token_decimals, single_field=True)
            self._require_authorization(state, value)
            self._require_token_balance(state, value)
            return _Request(state.account, value)

        async def submit(req: _Request) -> str:
            return await self.provider.send_transaction(
                req.account, self.vault.address, call=self.vault.deposit(req.amount)
            )

        def done(req: _Request) -> str:
            return f"Deposited {display(req.amount, self.token_decimals)} {self.token_symbol}"

        return await self._run(ActionKind.DEPOSIT, validate, submit, done)

    async def withdraw(self, amount: str) -> ActionUpdate:
        """Move ledger asset from the vault back to the wallet."""

        def validate(state: VaultState) -> _Request:
            value = self._require_amount(amount, self.token_decimals, single_field=True)
            if value > state.vault_balance:
                raise ValidationFailure(
                    FailureKind.INSUFFICIENT_FUNDS,
                    f"Insufficient {self.token_symbol} balance in vault",
                )
            return _Request(state.account, value)

        async def submit(req: _Request) -> str:
            return await self.provider.send_transaction(
                req.account, self.vault.address, call=self.vault.withdraw(req.amount)
            )

        def done(req: _Request) -> str:
            return f"Withdrew {display(req.amount, self.token_decimals)} {self.token_symbol}"

        return await self._run(ActionKind.WITHDRAW, validate, submit, done)

    async def approve(self) -> ActionUpdate:
        """Authorize the vault to pull the ledger asset (unlimited)."""

        def validate(state: VaultState) -> _Request:
            if self.gate.in_flight:
                raise ValidationFailure(
                    FailureKind.VALIDATION, "An authorization is already pending"
                )
            return _Request(state.account)

        async def submit(req: _Request) -> str:
            return await self.gate.request_authorization(req.account)

        def done(req: _Request) -> str:
            return f"{self.token_symbol} spending approved"

        return await self._run(
            ActionKind.APPROVE, validate, submit, done, on_settled=self.gate.settle
        )

    # ======================
    # State machine
    # ======================

    async def _run(
        self,
        action: ActionKind,
        validate: Callable[[VaultState], _Request],
        submit: Callable[[_Request], Awaitable[str]],
        done: Callable[[_Request], str],
        on_settled: Optional[Callable[[], None]] = None,
    ) -> ActionUpdate:
        """Drive one action to a terminal state.

        Args:
            action: Action kind, also the in-flight key
            validate: Local checks against the current snapshot
            submit: Sends the transaction, returns its hash
            done: Success message for the validated request
            on_settled: Called once a submitted transaction reaches a terminal state

        Raises:
            ActionInProgressError: The same action is already in flight; nothing
                is published and the in-flight action is unaffected
        """
        with self._guard.claim(action.value):
            epoch = self.store.epoch
            self._emit(action, ActionPhase.VALIDATING)

            try:
                state = self.store.state
                if state.account is None:
                    raise ValidationFailure(
                        FailureKind.VALIDATION, "Please connect your wallet first"
                    )
                request = validate(state)
            except ValidationFailure as e:
                logger.info(f"{action.value} refused: {e.message}")
                return self._emit(action, ActionPhase.FAILED, e.message, failure=e.kind)

            self._emit(action, ActionPhase.SUBMITTING, SUBMITTING_MESSAGE, amount=request.amount)

            try:
                tx_hash = await submit(request)
            except ProviderError as e:
                return self._provider_failure(action, e, request, epoch=epoch)

            try:
                return await self._confirm(action, request, tx_hash, done, epoch)
            finally:
                if on_settled is not None:
                    on_settled()

    async def _confirm(
        self,
        action: ActionKind,
        request: _Request,
        tx_hash: str,
        done: Callable[[_Request], str],
        epoch: int,
    ) -> ActionUpdate:
        self._emit(
            action, ActionPhase.PENDING, PENDING_MESSAGE,
            tx_hash=tx_hash, amount=request.amount, epoch=epoch,
        )

        try:
            receipt = await self.provider.wait_for_receipt(tx_hash)
        except ProviderError as e:
            return self._provider_failure(action, e, request, tx_hash, epoch)

        if not receipt.status:
            reason = receipt.revert_reason or "Transaction reverted"
            logger.warning(f"{action.value} reverted on-chain: {reason}")
            return self._emit(
                action, ActionPhase.FAILED, reason,
                tx_hash=tx_hash, failure=FailureKind.CHAIN_REJECTION, amount=request.amount,
                epoch=epoch,
            )

        message = done(request)
        if self.store.epoch != epoch:
            logger.info(f"{action.value} confirmed after the session changed; not published")
            return self._emit(
                action, ActionPhase.CONFIRMED, message,
                tx_hash=tx_hash, amount=request.amount, epoch=epoch,
            )

        try:
            await self.synchronizer.refresh_all(request.account)
        except BalanceSyncError as e:
            message = f"{message} ({e})"

        if self.store.epoch == epoch:
            self.store.publish_inputs(self.store.inputs.cleared_for(action))
        return self._emit(
            action, ActionPhase.CONFIRMED, message,
            tx_hash=tx_hash, amount=request.amount, epoch=epoch,
        )

    def _provider_failure(
        self,
        action: ActionKind,
        error: ProviderError,
        request: _Request,
        tx_hash: Optional[str] = None,
        epoch: Optional[int] = None,
    ) -> ActionUpdate:
        kind = classify_provider_error(error)
        logger.warning(f"{action.value} failed ({kind.value}): {error.message}")
        return self._emit(
            action, ActionPhase.FAILED, error.message,
            tx_hash=tx_hash, failure=kind, amount=request.amount, epoch=epoch,
        )

    def _emit(
        self,
        action: ActionKind,
        phase: ActionPhase,
        message: str = "",
        tx_hash: Optional[str] = None,
        failure: Optional[FailureKind] = None,
        amount: Optional[int] = None,
        epoch: Optional[int] = None,
    ) -> ActionUpdate:
        """Publish one transition, unless the store was reset since ``epoch``."""
        update = ActionUpdate(
            action=action,
            phase=phase,
            message=message,
            tx_hash=tx_hash,
            failure=failure,
            amount=amount,
        )
        if phase.is_terminal or phase == ActionPhase.PENDING:
            logger.info(f"{action.value} -> {phase.value}: {message} {tx_hash or ''}".rstrip())
        if epoch is not None and epoch != self.store.epoch:
            return update
        self.store.apply_update(update)
        return update

    # ======================
    # Validation helpers
    # ======================

    def _require_recipient(self, recipient: str, amount: str) -> str:
        recipient = (recipient or "").strip()
        if not recipient or not (amount or "").strip():
            raise ValidationFailure(FailureKind.VALIDATION, "Please enter both address and amount")
        if not is_address(recipient):
            raise ValidationFailure(FailureKind.VALIDATION, "Please enter a valid recipient address")
        return recipient

    def _require_amount(self, amount: str, decimals: int, single_field: bool = False) -> int:
        if single_field and not (amount or "").strip():
            raise ValidationFailure(FailureKind.VALIDATION, "Please enter an amount")
        try:
            value = parse_units(amount, decimals)
        except ValueError:
            raise ValidationFailure(FailureKind.VALIDATION, "Please enter a valid amount")
        if value <= 0:
            raise ValidationFailure(FailureKind.VALIDATION, "Please enter a valid amount")
        return value

    def _require_authorization(self, state: VaultState, amount: int) -> None:
        if not self.gate.is_authorized(state.allowance, amount):
            raise ValidationFailure(
                FailureKind.AUTHORIZATION,
                f"Please approve {self.token_symbol} spending first",
            )

    def _require_token_balance(self, state: VaultState, amount: int) -> None:
        if amount > state.token_balance:
            raise ValidationFailure(
                FailureKind.INSUFFICIENT_FUNDS, f"Insufficient {self.token_symbol} balance"
            )
