"""Client-side orchestration over a wallet provider."""

from savingsvault.client.allowance import AllowanceGate
from savingsvault.client.models import (
    ActionKind,
    ActionPhase,
    ActionUpdate,
    FailureKind,
    FormInputs,
    StatusKind,
    TransactionStatus,
    VaultState,
)
from savingsvault.client.orchestrator import TransferOrchestrator, ValidationFailure
from savingsvault.client.session import VaultSession
from savingsvault.client.store import VaultStore
from savingsvault.client.synchronizer import BalanceSyncError, BalanceSynchronizer

__all__ = [
    "VaultSession",
    "VaultStore",
    "AllowanceGate",
    "TransferOrchestrator",
    "BalanceSynchronizer",
    "BalanceSyncError",
    "ValidationFailure",
    "ActionKind",
    "ActionPhase",
    "ActionUpdate",
    "FailureKind",
    "FormInputs",
    "StatusKind",
    "TransactionStatus",
    "VaultState",
]
