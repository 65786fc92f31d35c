"""Abstract client-local store for the PendingPaymentHandle.

Defined in the domain layer so recovery logic never depends on where
the handle is kept (a JSON file, browser storage, an in-memory fake).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from checkout.domain.model.pending_payment import PendingPaymentHandle


class PendingPaymentRepository(ABC):

    @abstractmethod
    def get(self) -> PendingPaymentHandle | None:
        """Return the stored handle, or None."""

    @abstractmethod
    def save(self, handle: PendingPaymentHandle) -> None:
        """Store the handle, replacing any previous one."""

    @abstractmethod
    def clear(self) -> None:
        """Forget the handle."""
