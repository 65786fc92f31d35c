"""JSON-file-backed implementation of PendingPaymentRepository.

The file holds a single JSON object, or ``null`` when no payment is in
flight.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from checkout.domain.model.payment import PaymentMethod
from checkout.domain.model.pending_payment import PendingPaymentHandle
from checkout.domain.repository.pending_payment_repository import PendingPaymentRepository


class JsonPendingPaymentRepository(PendingPaymentRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    # --- PendingPaymentRepository interface -----------------------------------

    def get(self) -> PendingPaymentHandle | None:
        raw = self._load_raw()
        return self._to_domain(raw) if raw else None

    def save(self, handle: PendingPaymentHandle) -> None:
        self._persist_raw(self._to_raw(handle))

    def clear(self) -> None:
        self._persist_raw(None)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(handle: PendingPaymentHandle) -> dict:
        return {
            "payment_id": handle.payment_id,
            "method": handle.method.value,
            "created_at": handle.created_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> PendingPaymentHandle:
        return PendingPaymentHandle(
            payment_id=raw["payment_id"],
            method=PaymentMethod(raw["method"]),
            created_at=datetime.fromisoformat(raw["created_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> dict | None:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, handle: dict | None) -> None:
        self._file_path.write_text(
            json.dumps(handle, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("null", encoding="utf-8")
