"""In-flight guards for wallet actions.

An action kind may have at most one transaction awaiting confirmation.
Unlike a lock, a claim never waits: a second claim on a busy key fails
immediately so the caller can report "already in progress".
"""

import logging
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


class ActionInProgressError(Exception):
    """Raised when an action of the same kind is already awaiting confirmation."""

    def __init__(self, key: str):
        super().__init__(f"A {key} is already in progress")
        self.key = key


class InFlightGuard:
    """Set of busy keys with non-blocking claim/release.

    Example:
        with guard.claim("deposit"):
            tx_hash = await provider.send_transaction(...)
            await provider.wait_for_receipt(tx_hash)
    """

    def __init__(self):
        self._busy: set[str] = set()

    def is_busy(self, key: str) -> bool:
        return key in self._busy

    @property
    def busy(self) -> frozenset[str]:
        return frozenset(self._busy)

    def acquire(self, key: str) -> None:
        """Mark ``key`` busy.

        Raises:
            ActionInProgressError: If ``key`` is already busy
        """
        if key in self._busy:
            logger.warning(f"Rejected duplicate {key}: already in flight")
            raise ActionInProgressError(key)
        self._busy.add(key)
        logger.debug(f"In flight: {key}")

    def release(self, key: str) -> None:
        if key in self._busy:
            self._busy.discard(key)
            logger.debug(f"Released: {key}")

    @contextmanager
    def claim(self, key: str) -> Iterator[None]:
        """Hold ``key`` for the duration of the block."""
        self.acquire(key)
        try:
            yield
        finally:
            self.release(key)
