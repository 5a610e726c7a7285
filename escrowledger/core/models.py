"""
escrowledger/core/models.py

Escrow Ledger Data Model

═══════════════════════════════════════════════════════════════════
RECORD CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Borrowed facts
    Order and Escrow are supplied by the caller for one call only.
    The ledger never stores them. Escrow is consulted for `locked` only.

CONTRACT 2 — Settled records
    PaymentStatus, PartialPayment, Refund and PaymentHistoryEntry are
    frozen. A settled record is replaced never, deleted never.

CONTRACT 3 — Error codes
    ErrorCode values are the numeric codes 100..120. They are stable
    wire values: journals, CLI output and collaborators all use them.

CONTRACT 4 — Results
    Every ledger operation returns a Result. Rejections are values,
    not exceptions. bool(result) is True iff the operation committed.
═══════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional

from escrowledger.core.canonical import canonical_hash


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

GENESIS_HASH = "0" * 64

# Upper bound on the grace window, in logical-clock units (blocks)
MAX_GRACE_PERIOD = 1000

PERCENT_BASE = 100


# ─────────────────────────────────────────────────────────────
# Error taxonomy (closed)
# ─────────────────────────────────────────────────────────────

class ErrorCode(IntEnum):
    """
    Failure kinds returned in Result.error.

    Codes 105, 107-111 and 115-117 are never produced by validation
    inside the processor. They are reserved for custody and verification
    collaborators, which raise TransferError with one of them.
    """
    NOT_AUTHORIZED        = 100
    INVALID_ORDER         = 101
    NO_ESCROW             = 102
    ALREADY_PAID          = 103
    DISPUTE_ACTIVE        = 104
    INSUFFICIENT_FUNDS    = 105
    INVALID_AMOUNT        = 106
    INVALID_RECIPIENT     = 107
    PAYMENT_FAILED        = 108
    REFUND_FAILED         = 109
    PARTIAL_NOT_ALLOWED   = 110
    INVALID_TOKEN         = 111
    NO_DISPUTE            = 112
    INVALID_PERCENTAGE    = 113
    CONTRACT_DISABLED     = 114
    INVALID_TIMESTAMP     = 115
    ORDER_EXPIRED         = 116
    INVALID_CURRENCY      = 117
    MAX_PAYMENTS_EXCEEDED = 118
    INVALID_GRACE_PERIOD  = 119
    INVALID_STATUS        = 120


class Operation:
    """Operation name constants, used in Result.operation and in logs."""
    PROCESS_PAYMENT         = "process_payment"
    PROCESS_REFUND          = "process_refund"
    PROCESS_PARTIAL_PAYMENT = "process_partial_payment"
    SET_CONTRACT_OWNER      = "set_contract_owner"
    TOGGLE_ENABLED          = "toggle_enabled"
    SET_MAX_PAYMENTS        = "set_max_payments"
    SET_GRACE_PERIOD        = "set_grace_period"
    SET_SUPPORTED_CURRENCY  = "set_supported_currency"


# ─────────────────────────────────────────────────────────────
# Result
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Result:
    """
    Discriminated outcome of a ledger operation.

    Returned — not raised — so callers can branch on the error kind.
    On success `value` carries the committed value (usually True).
    On failure `error` carries exactly one ErrorCode.
    """
    ok:        bool
    value:     Any = None
    error:     Optional[ErrorCode] = None
    operation: Optional[str] = None

    @classmethod
    def success(cls, value: Any = True, operation: Optional[str] = None) -> "Result":
        return cls(ok=True, value=value, operation=operation)

    @classmethod
    def failure(cls, error: ErrorCode, operation: Optional[str] = None) -> "Result":
        return cls(ok=False, value=None, error=ErrorCode(error), operation=operation)

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        if self.ok:
            return f"Result(OK, value={self.value!r})"
        return f"Result(ERR, error={self.error.name}, operation={self.operation})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok":        self.ok,
            "value":     self.value,
            "error":     self.error.name if self.error is not None else None,
            "code":      int(self.error) if self.error is not None else None,
            "operation": self.operation,
        }


# ─────────────────────────────────────────────────────────────
# Borrowed facts
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Order:
    """A buyer/supplier agreement, created and verified upstream."""
    buyer:    str
    supplier: str
    amount:   int
    due_date: int = 0
    status:   str = ""
    token:    Optional[str] = None

    @staticmethod
    def from_dict(data: dict) -> "Order":
        return Order(
            buyer=data["buyer"],
            supplier=data["supplier"],
            amount=int(data["amount"]),
            due_date=int(data.get("due_date", 0)),
            status=data.get("status", ""),
            token=data.get("token"),
        )


@dataclass(frozen=True)
class Escrow:
    """Custodied funds backing an order. Only `locked` is consulted."""
    amount: int
    locked: bool
    token:  Optional[str] = None

    @staticmethod
    def from_dict(data: dict) -> "Escrow":
        return Escrow(
            amount=int(data.get("amount", 0)),
            locked=bool(data["locked"]),
            token=data.get("token"),
        )


# ─────────────────────────────────────────────────────────────
# Transfer intent: the only outward effect
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TransferIntent:
    """A fund movement request handed to the custody collaborator."""
    amount:    int
    sender:    str
    recipient: str
    token:     Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount":    self.amount,
            "sender":    self.sender,
            "recipient": self.recipient,
            "token":     self.token,
        }

    @staticmethod
    def from_dict(data: dict) -> "TransferIntent":
        return TransferIntent(
            amount=data["amount"],
            sender=data["sender"],
            recipient=data["recipient"],
            token=data.get("token"),
        )

    def intent_hash(self) -> str:
        """SHA-256 over the canonical form of this intent."""
        return canonical_hash(self.to_dict())


# ─────────────────────────────────────────────────────────────
# Ledger records
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PaymentStatus:
    paid:      bool
    amount:    int
    recipient: str
    timestamp: int
    token:     Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paid":      self.paid,
            "amount":    self.amount,
            "recipient": self.recipient,
            "timestamp": self.timestamp,
            "token":     self.token,
        }


@dataclass(frozen=True)
class PartialPayment:
    amount: int
    paid:   bool

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "paid": self.paid}


@dataclass(frozen=True)
class Refund:
    amount:    int
    recipient: str
    processed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount":    self.amount,
            "recipient": self.recipient,
            "processed": self.processed,
        }


@dataclass(frozen=True)
class PaymentHistoryEntry:
    order_id: int
    amount:   int
    success:  bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "amount":   self.amount,
            "success":  self.success,
        }


# ─────────────────────────────────────────────────────────────
# Journal record
# ─────────────────────────────────────────────────────────────

@dataclass
class JournalRecord:
    """
    One recorded transfer intent.

    causal_hash = canonical_hash(prev.to_chain_dict()), GENESIS_HASH first.
    intent_hash = canonical_hash(intent.to_dict()).
    """
    sequence:    int
    height:      int
    operation:   str
    order_id:    int
    intent:      TransferIntent
    intent_hash: str
    causal_hash: str
    part_id:     Optional[int] = None

    def to_chain_dict(self) -> Dict[str, Any]:
        return {
            "sequence":    self.sequence,
            "height":      self.height,
            "operation":   self.operation,
            "order_id":    self.order_id,
            "part_id":     self.part_id,
            "intent":      self.intent.to_dict(),
            "intent_hash": self.intent_hash,
            "causal_hash": self.causal_hash,
        }

    def to_dict(self) -> Dict[str, Any]:
        return self.to_chain_dict()

    @staticmethod
    def from_dict(data: dict) -> "JournalRecord":
        return JournalRecord(
            sequence=data["sequence"],
            height=data["height"],
            operation=data["operation"],
            order_id=data["order_id"],
            part_id=data.get("part_id"),
            intent=TransferIntent.from_dict(data["intent"]),
            intent_hash=data["intent_hash"],
            causal_hash=data["causal_hash"],
        )

    def chain_hash(self) -> str:
        """The causal_hash the next record must carry."""
        return canonical_hash(self.to_chain_dict())
