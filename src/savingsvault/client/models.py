"""Immutable client-side values.

Every value here is frozen: the store swaps whole instances rather than
mutating fields, so anything holding an old snapshot keeps seeing a
consistent picture.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StatusKind(str, Enum):
    """Kind of the user-visible transaction status."""

    NONE = "none"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class TransactionStatus(BaseModel):
    """Ephemeral status line shown to the user."""

    model_config = ConfigDict(frozen=True)

    kind: StatusKind = Field(default=StatusKind.NONE, description="Status kind")
    message: str = Field(default="", description="Human-readable message")
    tx_hash: Optional[str] = Field(None, description="Transaction hash, once submitted")


class VaultState(BaseModel):
    """Snapshot of everything the client shows about one account.

    Derived from chain reads; never authoritative on its own.
    """

    model_config = ConfigDict(frozen=True)

    account: Optional[str] = Field(None, description="Connected account")
    native_balance: int = Field(default=0, ge=0, description="Native asset, base units")
    token_balance: int = Field(default=0, ge=0, description="Ledger asset in wallet, base units")
    vault_balance: int = Field(default=0, ge=0, description="Ledger asset deposited, base units")
    allowance: int = Field(default=0, ge=0, description="Vault allowance over the wallet asset")
    is_approved: bool = Field(default=False, description="Authorization policy satisfied")

    @property
    def is_connected(self) -> bool:
        return self.account is not None


class ActionKind(str, Enum):
    """User-initiated, asset-moving actions."""

    NATIVE_TRANSFER = "native_transfer"
    TOKEN_TRANSFER = "token_transfer"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    APPROVE = "approve"


class ActionPhase(str, Enum):
    """States of the per-action state machine."""

    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ActionPhase.CONFIRMED, ActionPhase.FAILED)


class FailureKind(str, Enum):
    """Why an action ended in FAILED."""

    VALIDATION = "validation"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    AUTHORIZATION = "authorization"
    CHAIN_REJECTION = "chain_rejection"
    USER_REJECTED = "user_rejected"
    ENVIRONMENT = "environment"
    NETWORK = "network"


class ActionUpdate(BaseModel):
    """One state machine transition."""

    model_config = ConfigDict(frozen=True)

    action: ActionKind
    phase: ActionPhase
    message: str = ""
    tx_hash: Optional[str] = None
    failure: Optional[FailureKind] = None
    amount: Optional[int] = Field(None, description="Requested amount in base units")


class FormInputs(BaseModel):
    """Last values entered into each form."""

    model_config = ConfigDict(frozen=True)

    recipient: str = ""
    transfer_amount: str = ""
    deposit_amount: str = ""
    withdraw_amount: str = ""

    def cleared_for(self, action: ActionKind) -> "FormInputs":
        """Copy with the fields belonging to ``action`` emptied."""
        if action in (ActionKind.NATIVE_TRANSFER, ActionKind.TOKEN_TRANSFER):
            return self.model_copy(update={"recipient": "", "transfer_amount": ""})
        if action == ActionKind.DEPOSIT:
            return self.model_copy(update={"deposit_amount": ""})
        if action == ActionKind.WITHDRAW:
            return self.model_copy(update={"withdraw_amount": ""})
        return self
