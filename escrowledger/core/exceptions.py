"""
escrowledger Exception Hierarchy

All exceptions inherit from EscrowLedgerError for easy catching.

Business rejections (AlreadyPaid, NoDispute, ...) are NOT exceptions.
They are returned as Result values. Exceptions here cover misuse and
infrastructure failures only.
"""

from typing import Optional

from escrowledger.core.models import ErrorCode


class EscrowLedgerError(Exception):
    """Base exception for all escrowledger errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(EscrowLedgerError):
    """Raised when a policy config or scenario file is invalid"""
    pass


class LedgerError(EscrowLedgerError):
    """Raised when ledger bookkeeping is inconsistent"""
    pass


class JournalError(EscrowLedgerError):
    """Raised when the transfer journal cannot be read or written"""
    pass


class TransferError(EscrowLedgerError):
    """
    Raised by a custody collaborator that refuses a transfer intent.

    Carries one of the reserved collaborator codes (PaymentFailed,
    InsufficientFunds, InvalidToken, ...). The processor surfaces the
    code unchanged in a failed Result.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.PAYMENT_FAILED,
        message: Optional[str] = None,
        details: dict = None,
    ):
        self.code = ErrorCode(code)
        super().__init__(message or f"Transfer refused: {self.code.name}", details)
