"""
Ledger state for escrowledger.

Four keyed stores:
    payment_status   — order_id            → PaymentStatus
    partial_payments — (order_id, part_id) → PartialPayment
    refunds          — order_id            → Refund
    payment_history  — payment_id          → PaymentHistoryEntry (append-only)

Records are frozen and written once. The record_* methods refuse to
overwrite a settled record; that is a bookkeeping bug in the caller,
not a business rejection, so it raises LedgerError.
"""

from typing import Any, Dict, List, Optional, Tuple

from escrowledger.core.canonical import canonical_hash
from escrowledger.core.exceptions import LedgerError
from escrowledger.core.models import (
    PartialPayment,
    PaymentHistoryEntry,
    PaymentStatus,
    Refund,
)


PartKey = Tuple[int, int]


class LedgerState:
    """Keyed settlement records plus the payment audit trail."""

    def __init__(self):
        self._payment_status:   Dict[int, PaymentStatus]           = {}
        self._partial_payments: Dict[PartKey, PartialPayment]      = {}
        self._refunds:          Dict[int, Refund]                  = {}
        self._payment_history:  Dict[int, PaymentHistoryEntry]     = {}

    # ── Accessors ─────────────────────────────────────────────

    def get_payment_status(self, order_id: int) -> Optional[PaymentStatus]:
        return self._payment_status.get(order_id)

    def get_partial_payment(self, order_id: int, part_id: int) -> Optional[PartialPayment]:
        return self._partial_payments.get((order_id, part_id))

    def get_refund(self, order_id: int) -> Optional[Refund]:
        return self._refunds.get(order_id)

    def get_payment_history(self, payment_id: int) -> Optional[PaymentHistoryEntry]:
        return self._payment_history.get(payment_id)

    def get_partial_payments_for_order(self, order_id: int) -> Dict[int, PartialPayment]:
        """All partial payments recorded under one order, keyed by part id."""
        return {
            part_id: record
            for (oid, part_id), record in self._partial_payments.items()
            if oid == order_id
        }

    def history(self) -> List[PaymentHistoryEntry]:
        """Payment history in counter order."""
        return [self._payment_history[i] for i in sorted(self._payment_history)]

    def history_size(self) -> int:
        return len(self._payment_history)

    # ── Settled checks ────────────────────────────────────────

    def is_paid(self, order_id: int) -> bool:
        status = self._payment_status.get(order_id)
        return status is not None and status.paid

    def is_refunded(self, order_id: int) -> bool:
        refund = self._refunds.get(order_id)
        return refund is not None and refund.processed

    def is_part_paid(self, order_id: int, part_id: int) -> bool:
        part = self._partial_payments.get((order_id, part_id))
        return part is not None and part.paid

    # ── Writes ────────────────────────────────────────────────

    def record_payment(
        self,
        order_id:   int,
        status:     PaymentStatus,
        payment_id: int,
        entry:      PaymentHistoryEntry,
    ) -> None:
        """Write a PaymentStatus and its history entry together."""
        if self.is_paid(order_id):
            raise LedgerError("order already paid", {"order_id": order_id})
        if payment_id != len(self._payment_history):
            raise LedgerError(
                "payment history out of sequence",
                {"payment_id": payment_id, "history_size": len(self._payment_history)},
            )
        self._payment_status[order_id]    = status
        self._payment_history[payment_id] = entry

    def record_refund(self, order_id: int, refund: Refund) -> None:
        if self.is_refunded(order_id):
            raise LedgerError("refund already processed", {"order_id": order_id})
        self._refunds[order_id] = refund

    def record_partial_payment(self, order_id: int, part_id: int, part: PartialPayment) -> None:
        if self.is_part_paid(order_id, part_id):
            raise LedgerError(
                "partial payment already settled",
                {"order_id": order_id, "part_id": part_id},
            )
        self._partial_payments[(order_id, part_id)] = part

    def reset(self) -> None:
        self._payment_status   = {}
        self._partial_payments = {}
        self._refunds          = {}
        self._payment_history  = {}

    # ── Inspection ────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        """
        Plain-dict view of every store.

        Keys are strings so the snapshot is JSON- and JCS-serializable.
        Partial payment keys are "<order_id>-<part_id>".
        """
        return {
            "payment_status": {
                str(k): v.to_dict() for k, v in sorted(self._payment_status.items())
            },
            "partial_payments": {
                f"{oid}-{pid}": v.to_dict()
                for (oid, pid), v in sorted(self._partial_payments.items())
            },
            "refunds": {
                str(k): v.to_dict() for k, v in sorted(self._refunds.items())
            },
            "payment_history": {
                str(k): v.to_dict() for k, v in sorted(self._payment_history.items())
            },
        }

    def state_hash(self) -> str:
        """Canonical SHA-256 of snapshot(). Equal states hash equal."""
        return canonical_hash(self.snapshot())

    def get_stats(self) -> dict:
        return {
            "payments":         len(self._payment_status),
            "partial_payments": len(self._partial_payments),
            "refunds":          len(self._refunds),
            "history_entries":  len(self._payment_history),
            "total_paid":       sum(s.amount for s in self._payment_status.values() if s.paid),
            "total_refunded":   sum(r.amount for r in self._refunds.values() if r.processed),
            "total_partial":    sum(p.amount for p in self._partial_payments.values() if p.paid),
        }
