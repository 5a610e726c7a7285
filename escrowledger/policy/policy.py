"""
Policy store for escrowledger.

Holds the administrator-tunable singleton (owner, enabled flag, payment
cap, payment counter, grace period, currency) and guards its setters.

PROTOCOL INVARIANT: every setter checks the caller against the stored
owner FIRST, then validates its argument. A refused call leaves the
store untouched.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from escrowledger.core.models import (
    MAX_GRACE_PERIOD,
    ErrorCode,
    Operation,
    Result,
)
from escrowledger.policy.config import PolicyConfig

logger = logging.getLogger(__name__)


@dataclass
class Policy:
    """The administrator policy record. Mutated only through PolicyStore."""
    owner:              str
    enabled:            bool
    max_payments:       int
    next_payment_id:    int
    grace_period:       int
    supported_currency: str

    @staticmethod
    def from_config(config: PolicyConfig) -> "Policy":
        return Policy(
            owner=config.owner,
            enabled=config.enabled,
            max_payments=config.max_payments,
            next_payment_id=0,
            grace_period=config.grace_period,
            supported_currency=config.supported_currency,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PolicyStore:
    """
    Guarded access to the Policy record.

    Not locked on its own: the PaymentProcessor that owns the store
    serializes every call.
    """

    def __init__(self, config: Optional[PolicyConfig] = None):
        self._config = config or PolicyConfig()
        self.policy  = Policy.from_config(self._config)

    # ── Getters (never fail) ──────────────────────────────────

    def get_contract_owner(self) -> str:
        return self.policy.owner

    def is_contract_enabled(self) -> bool:
        return self.policy.enabled

    def get_max_payments(self) -> int:
        return self.policy.max_payments

    def get_next_payment_id(self) -> int:
        return self.policy.next_payment_id

    def get_grace_period(self) -> int:
        return self.policy.grace_period

    def get_supported_currency(self) -> str:
        return self.policy.supported_currency

    def is_owner(self, caller: str) -> bool:
        return caller == self.policy.owner

    # ── Administrator setters ─────────────────────────────────

    def set_contract_owner(self, caller: str, new_owner: str) -> Result:
        op = Operation.SET_CONTRACT_OWNER
        if not self.is_owner(caller):
            return self._refuse(op, caller, ErrorCode.NOT_AUTHORIZED)

        previous = self.policy.owner
        self.policy.owner = new_owner
        logger.info("contract owner changed from %s to %s", previous, new_owner)
        return Result.success(True, op)

    def toggle_enabled(self, caller: str) -> Result:
        """Flip the enabled flag. The result value is the new flag."""
        op = Operation.TOGGLE_ENABLED
        if not self.is_owner(caller):
            return self._refuse(op, caller, ErrorCode.NOT_AUTHORIZED)

        self.policy.enabled = not self.policy.enabled
        logger.info("contract %s", "enabled" if self.policy.enabled else "disabled")
        return Result.success(self.policy.enabled, op)

    def set_max_payments(self, caller: str, new_max: int) -> Result:
        op = Operation.SET_MAX_PAYMENTS
        if not self.is_owner(caller):
            return self._refuse(op, caller, ErrorCode.NOT_AUTHORIZED)
        if new_max <= 0:
            return self._refuse(op, caller, ErrorCode.INVALID_AMOUNT)

        self.policy.max_payments = new_max
        logger.info("max payments set to %d", new_max)
        return Result.success(True, op)

    def set_grace_period(self, caller: str, new_period: int) -> Result:
        op = Operation.SET_GRACE_PERIOD
        if not self.is_owner(caller):
            return self._refuse(op, caller, ErrorCode.NOT_AUTHORIZED)
        if new_period < 0 or new_period > MAX_GRACE_PERIOD:
            return self._refuse(op, caller, ErrorCode.INVALID_GRACE_PERIOD)

        self.policy.grace_period = new_period
        logger.info("grace period set to %d blocks", new_period)
        return Result.success(True, op)

    def set_supported_currency(self, caller: str, new_currency: str) -> Result:
        op = Operation.SET_SUPPORTED_CURRENCY
        if not self.is_owner(caller):
            return self._refuse(op, caller, ErrorCode.NOT_AUTHORIZED)

        self.policy.supported_currency = new_currency
        logger.info("supported currency set to %s", new_currency)
        return Result.success(True, op)

    # ── Payment counter ───────────────────────────────────────

    def payments_exhausted(self) -> bool:
        return self.policy.next_payment_id >= self.policy.max_payments

    def allocate_payment_id(self) -> int:
        """Return the current payment id and advance the counter by one."""
        payment_id = self.policy.next_payment_id
        self.policy.next_payment_id += 1
        return payment_id

    def reset(self) -> None:
        self.policy = Policy.from_config(self._config)

    def get_policy_stats(self) -> Dict[str, Any]:
        return {
            **self.policy.to_dict(),
            "payments_remaining": max(0, self.policy.max_payments - self.policy.next_payment_id),
        }

    # ── Internal ──────────────────────────────────────────────

    def _refuse(self, operation: str, caller: str, code: ErrorCode) -> Result:
        logger.warning("%s refused for caller %s: %s", operation, caller, code.name)
        return Result.failure(code, operation)
