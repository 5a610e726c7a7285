"""
Transition engine for escrow payments, refunds and partial payments.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from escrowledger.core.clock import LogicalClock
from escrowledger.core.emitter import TransferEmitter
from escrowledger.core.exceptions import TransferError
from escrowledger.core.models import (
    PERCENT_BASE,
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
from escrowledger.policy.policy import PolicyStore

logger = logging.getLogger(__name__)


class PaymentProcessor:
    """
    Escrow ledger state machine.

    Every entity (payment, refund, partial payment) is a two-state
    machine: unsettled → settled. Settled is terminal.

    Each operation:
        1. Acquires the processor lock
        2. Checks preconditions in a fixed order; the first failure wins
        3. Emits exactly one transfer intent
        4. Commits the ledger write

    A rejected precondition or a refused transfer returns a failed
    Result with zero side effects.
    """

    def __init__(
        self,
        policy:  Optional[PolicyStore] = None,
        ledger:  Optional[LedgerState] = None,
        emitter: Optional[TransferEmitter] = None,
        clock:   Optional[LogicalClock] = None,
    ):
        self.policy  = policy or PolicyStore(PolicyConfig())
        self.ledger  = ledger or LedgerState()
        self.emitter = emitter or TransferEmitter()
        self.clock   = clock or LogicalClock()
        self._lock   = threading.RLock()

    # ── Transitions ───────────────────────────────────────────

    def process_payment(
        self,
        order_id:       int,
        order:          Order,
        escrow:         Escrow,
        verified:       bool,
        dispute_active: bool,
    ) -> Result:
        """
        Release the full order amount from buyer to supplier.

        Preconditions, in order:
            enabled → cap not reached → order id → amount → verified
            → no dispute → not already paid → escrow locked
        """
        op = Operation.PROCESS_PAYMENT
        with self._lock:
            code = self._payment_precondition(order_id, order, escrow, verified, dispute_active)
            if code is not None:
                return self._reject(op, order_id, code)

            intent = TransferIntent(
                amount=    order.amount,
                sender=    order.buyer,
                recipient= order.supplier,
                token=     order.token,
            )
            refused = self._emit(intent, op, order_id)
            if refused is not None:
                return refused

            payment_id = self.policy.get_next_payment_id()
            self.ledger.record_payment(
                order_id,
                PaymentStatus(
                    paid=      True,
                    amount=    order.amount,
                    recipient= order.supplier,
                    timestamp= self.clock.height,
                    token=     order.token,
                ),
                payment_id,
                PaymentHistoryEntry(order_id=order_id, amount=order.amount, success=True),
            )
            self.policy.allocate_payment_id()

            logger.info(
                "payment %d committed: order=%d amount=%d %s -> %s",
                payment_id, order_id, order.amount, order.buyer, order.supplier,
            )
            return Result.success(True, op)

    def process_refund(
        self,
        order_id:       int,
        order:          Order,
        escrow:         Escrow,
        dispute_active: bool,
    ) -> Result:
        """
        Return the full order amount from supplier to buyer.

        Preconditions, in order:
            enabled → order id → amount → dispute active → not already refunded

        escrow.locked is not consulted: a disputed order's escrow is
        released upstream by the adjudication collaborator.
        """
        op = Operation.PROCESS_REFUND
        with self._lock:
            code = self._refund_precondition(order_id, order, dispute_active)
            if code is not None:
                return self._reject(op, order_id, code)

            intent = TransferIntent(
                amount=    order.amount,
                sender=    order.supplier,
                recipient= order.buyer,
                token=     order.token,
            )
            refused = self._emit(intent, op, order_id)
            if refused is not None:
                return refused

            self.ledger.record_refund(
                order_id,
                Refund(amount=order.amount, recipient=order.buyer, processed=True),
            )

            logger.info(
                "refund committed: order=%d amount=%d %s -> %s",
                order_id, order.amount, order.supplier, order.buyer,
            )
            return Result.success(True, op)

    def process_partial_payment(
        self,
        order_id:   int,
        part_id:    int,
        percentage: int,
        order:      Order,
        escrow:     Escrow,
        verified:   bool,
    ) -> Result:
        """
        Release floor(amount * percentage / 100) from buyer to supplier
        for one (order, part) key.

        Preconditions, in order:
            enabled → order id → partial amount > 0 → 1 <= percentage <= 100
            → verified → part not already paid

        The amount check runs before the percentage range check, so
        percentage 0 is reported as INVALID_AMOUNT and percentage 101 as
        INVALID_PERCENTAGE.
        """
        op = Operation.PROCESS_PARTIAL_PAYMENT
        with self._lock:
            partial_amount = self.partial_amount(order.amount, percentage)
            code = self._partial_precondition(
                order_id, part_id, percentage, partial_amount, verified,
            )
            if code is not None:
                return self._reject(op, order_id, code)

            intent = TransferIntent(
                amount=    partial_amount,
                sender=    order.buyer,
                recipient= order.supplier,
                token=     order.token,
            )
            refused = self._emit(intent, op, order_id, part_id)
            if refused is not None:
                return refused

            self.ledger.record_partial_payment(
                order_id, part_id, PartialPayment(amount=partial_amount, paid=True),
            )

            logger.info(
                "partial payment committed: order=%d part=%d pct=%d amount=%d",
                order_id, part_id, percentage, partial_amount,
            )
            return Result.success(True, op)

    @staticmethod
    def partial_amount(amount: int, percentage: int) -> int:
        """floor(amount * percentage / 100)"""
        return (amount * percentage) // PERCENT_BASE

    # ── Read-only accessors ───────────────────────────────────

    def get_payment_status(self, order_id: int) -> Optional[PaymentStatus]:
        return self.ledger.get_payment_status(order_id)

    def get_partial_payment(self, order_id: int, part_id: int) -> Optional[PartialPayment]:
        return self.ledger.get_partial_payment(order_id, part_id)

    def get_refund(self, order_id: int) -> Optional[Refund]:
        return self.ledger.get_refund(order_id)

    def get_payment_history(self, payment_id: int) -> Optional[PaymentHistoryEntry]:
        return self.ledger.get_payment_history(payment_id)

    def get_contract_owner(self) -> str:
        return self.policy.get_contract_owner()

    def is_contract_enabled(self) -> bool:
        return self.policy.is_contract_enabled()

    @property
    def transfers(self) -> List[TransferIntent]:
        return self.emitter.transfers

    # ── Administrator setters (serialized with transitions) ───

    def set_contract_owner(self, caller: str, new_owner: str) -> Result:
        with self._lock:
            return self.policy.set_contract_owner(caller, new_owner)

    def toggle_enabled(self, caller: str) -> Result:
        with self._lock:
            return self.policy.toggle_enabled(caller)

    def set_max_payments(self, caller: str, new_max: int) -> Result:
        with self._lock:
            return self.policy.set_max_payments(caller, new_max)

    def set_grace_period(self, caller: str, new_period: int) -> Result:
        with self._lock:
            return self.policy.set_grace_period(caller, new_period)

    def set_supported_currency(self, caller: str, new_currency: str) -> Result:
        with self._lock:
            return self.policy.set_supported_currency(caller, new_currency)

    # ── Lifecycle ─────────────────────────────────────────────

    def reset(self) -> None:
        """
        Back to initial policy, empty ledger, height 0, no in-memory transfers.
        An attached journal keeps its chain; see TransferEmitter.clear().
        """
        with self._lock:
            self.policy.reset()
            self.ledger.reset()
            self.clock.reset()
            self.emitter.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "height":    self.clock.height,
                "policy":    self.policy.get_policy_stats(),
                "ledger":    self.ledger.get_stats(),
                "transfers": self.emitter.get_stats(),
            }

    # ── Preconditions ─────────────────────────────────────────

    def _payment_precondition(
        self,
        order_id:       int,
        order:          Order,
        escrow:         Escrow,
        verified:       bool,
        dispute_active: bool,
    ) -> Optional[ErrorCode]:
        if not self.policy.is_contract_enabled():
            return ErrorCode.CONTRACT_DISABLED
        if self.policy.payments_exhausted():
            return ErrorCode.MAX_PAYMENTS_EXCEEDED
        if order_id <= 0:
            return ErrorCode.INVALID_ORDER
        if order.amount <= 0:
            return ErrorCode.INVALID_AMOUNT
        if not verified:
            return ErrorCode.INVALID_STATUS
        if dispute_active:
            return ErrorCode.DISPUTE_ACTIVE
        if self.ledger.is_paid(order_id):
            return ErrorCode.ALREADY_PAID
        if not escrow.locked:
            return ErrorCode.NO_ESCROW
        return None

    def _refund_precondition(
        self,
        order_id:       int,
        order:          Order,
        dispute_active: bool,
    ) -> Optional[ErrorCode]:
        if not self.policy.is_contract_enabled():
            return ErrorCode.CONTRACT_DISABLED
        if order_id <= 0:
            return ErrorCode.INVALID_ORDER
        if order.amount <= 0:
            return ErrorCode.INVALID_AMOUNT
        if not dispute_active:
            return ErrorCode.NO_DISPUTE
        if self.ledger.is_refunded(order_id):
            return ErrorCode.ALREADY_PAID
        return None

    def _partial_precondition(
        self,
        order_id:       int,
        part_id:        int,
        percentage:     int,
        partial_amount: int,
        verified:       bool,
    ) -> Optional[ErrorCode]:
        if not self.policy.is_contract_enabled():
            return ErrorCode.CONTRACT_DISABLED
        if order_id <= 0:
            return ErrorCode.INVALID_ORDER
        if partial_amount <= 0:
            return ErrorCode.INVALID_AMOUNT
        if percentage <= 0 or percentage > PERCENT_BASE:
            return ErrorCode.INVALID_PERCENTAGE
        if not verified:
            return ErrorCode.INVALID_STATUS
        if self.ledger.is_part_paid(order_id, part_id):
            return ErrorCode.ALREADY_PAID
        return None

    # ── Internal ──────────────────────────────────────────────

    def _emit(
        self,
        intent:    TransferIntent,
        operation: str,
        order_id:  int,
        part_id:   Optional[int] = None,
    ) -> Optional[Result]:
        """Hand the intent to the emitter. Returns a failed Result if custody refused."""
        try:
            self.emitter.emit(
                intent,
                operation=operation,
                order_id=order_id,
                height=self.clock.height,
                part_id=part_id,
            )
        except TransferError as exc:
            return Result.failure(exc.code, operation)
        return None

    def _reject(self, operation: str, order_id: int, code: ErrorCode) -> Result:
        logger.debug("%s rejected for order %s: %s", operation, order_id, code.name)
        return Result.failure(code, operation)
