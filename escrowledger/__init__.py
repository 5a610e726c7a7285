"""
escrowledger/__init__.py

escrowledger: Escrow-Mediated Payment Ledger

Full payment, dispute-triggered refund and percentage-based partial
settlement of buyer/supplier orders, under owner-controlled policy.
The ledger decides admissibility and keeps the books; it emits
transfer intents and never moves funds itself.
"""

__version__ = "0.1.0"

from escrowledger.core.clock import LogicalClock
from escrowledger.core.emitter import TransferEmitter
from escrowledger.core.exceptions import (
    ConfigError,
    EscrowLedgerError,
    JournalError,
    LedgerError,
    TransferError,
)
from escrowledger.core.models import (
    ErrorCode,
    Escrow,
    Operation,
    Order,
    PartialPayment,
    PaymentHistoryEntry,
    PaymentStatus,
    Refund,
    Result,
    TransferIntent,
)
from escrowledger.ledger.ledger import LedgerState
from escrowledger.policy.config import PolicyConfig
from escrowledger.policy.policy import Policy, PolicyStore
from escrowledger.runtime.context import EscrowRuntime
from escrowledger.settlement.engine import PaymentProcessor

__all__ = [
    # Engine
    "PaymentProcessor",
    "EscrowRuntime",
    "PolicyStore",
    "Policy",
    "PolicyConfig",
    "LedgerState",
    "TransferEmitter",
    "LogicalClock",
    # Records
    "Order",
    "Escrow",
    "TransferIntent",
    "PaymentStatus",
    "PartialPayment",
    "Refund",
    "PaymentHistoryEntry",
    "Result",
    "ErrorCode",
    "Operation",
    # Errors
    "EscrowLedgerError",
    "ConfigError",
    "LedgerError",
    "JournalError",
    "TransferError",
]
