"""Single owner of the client-visible state.

Holds the current VaultState, TransactionStatus and FormInputs, plus the set
of actions awaiting confirmation. Values are replaced wholesale and every
replacement notifies subscribers.
"""

import logging
from typing import Callable, Optional

from savingsvault.client.models import (
    ActionKind,
    ActionPhase,
    ActionUpdate,
    FormInputs,
    StatusKind,
    TransactionStatus,
    VaultState,
)

logger = logging.getLogger(__name__)

Subscriber = Callable[["VaultStore"], None]

_STATUS_FOR_PHASE = {
    ActionPhase.IDLE: StatusKind.NONE,
    ActionPhase.VALIDATING: StatusKind.NONE,
    ActionPhase.SUBMITTING: StatusKind.PENDING,
    ActionPhase.PENDING: StatusKind.PENDING,
    ActionPhase.CONFIRMED: StatusKind.SUCCESS,
    ActionPhase.FAILED: StatusKind.ERROR,
}


class VaultStore:
    """Snapshot holder for state, status, inputs and pending actions."""

    def __init__(self):
        self.state = VaultState()
        self.status = TransactionStatus()
        self.inputs = FormInputs()
        self.pending: frozenset[ActionKind] = frozenset()
        self.last_update: Optional[ActionUpdate] = None
        self.history: list[ActionUpdate] = []
        # Bumped on every reset; actions started under an older epoch are stale
        self.epoch = 0
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change callback. Returns an unsubscribe function."""
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self)

    def publish_state(self, state: VaultState) -> None:
        self.state = state
        self._notify()

    def publish_status(self, status: TransactionStatus) -> None:
        self.status = status
        self._notify()

    def publish_inputs(self, inputs: FormInputs) -> None:
        self.inputs = inputs
        self._notify()

    def apply_update(self, update: ActionUpdate) -> None:
        """Record a transition and derive the status line and pending set from it."""
        self.last_update = update
        self.history.append(update)

        if update.phase in (ActionPhase.SUBMITTING, ActionPhase.PENDING):
            self.pending = self.pending | {update.action}
        elif update.phase.is_terminal:
            self.pending = self.pending - {update.action}

        self.status = TransactionStatus(
            kind=_STATUS_FOR_PHASE[update.phase],
            message=update.message,
            tx_hash=update.tx_hash,
        )
        self._notify()

    def reset(self) -> None:
        """Back to a disconnected, empty store."""
        self.state = VaultState()
        self.status = TransactionStatus()
        self.inputs = FormInputs()
        self.pending = frozenset()
        self.last_update = None
        self.epoch += 1
        self._notify()
        logger.debug("Store reset")
