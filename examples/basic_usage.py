"""
escrowledger: Basic Usage Example

Demonstrates:
- Wiring a runtime with a JSONL transfer journal
- Full payment, partial payment and dispute refund
- Rejections returned as Result values
- Custody refusal leaving the ledger untouched
- Journal verification
"""

import tempfile
from pathlib import Path

from escrowledger import (
    ErrorCode,
    Escrow,
    EscrowRuntime,
    Order,
    TransferError,
    TransferIntent,
)
from escrowledger.core.replay import JournalReplay


def custody(intent: TransferIntent) -> None:
    """Toy custody: refuses any single transfer above 5,000 units."""
    if intent.amount > 5_000:
        raise TransferError(ErrorCode.INSUFFICIENT_FUNDS, "custody limit exceeded")


def main():
    print("=" * 60)
    print("escrowledger: Basic Usage Example")
    print("=" * 60)
    print()

    journal = Path(tempfile.mkdtemp()) / "transfers.jsonl"
    runtime = EscrowRuntime.create(journal_path=journal, custody=custody)
    processor = runtime.processor

    order  = Order(buyer="ST1BUYER", supplier="ST1SUPPLIER", amount=1_000)
    escrow = Escrow(amount=1_000, locked=True)

    # 1. Full payment
    print("1. Full payment")
    print("  ", processor.process_payment(1, order, escrow, verified=True, dispute_active=False))
    print("  ", processor.get_payment_status(1))
    print()

    # 2. Same order again: rejected, no transfer
    print("2. Duplicate payment")
    print("  ", processor.process_payment(1, order, escrow, verified=True, dispute_active=False))
    print()

    # 3. Partial payment, 30% of a second order
    runtime.clock.advance(6)
    print("3. Partial payment (30%)")
    print("  ", processor.process_partial_payment(2, 1, 30, order, escrow, verified=True))
    print("  ", processor.get_partial_payment(2, 1))
    print()

    # 4. Dispute refund
    print("4. Dispute refund")
    print("  ", processor.process_refund(3, order, escrow, dispute_active=True))
    print("  ", processor.get_refund(3))
    print()

    # 5. Custody refuses a large order
    big = Order(buyer="ST1BUYER", supplier="ST1SUPPLIER", amount=50_000)
    print("5. Custody refusal")
    print("  ", processor.process_payment(4, big, escrow, verified=True, dispute_active=False))
    print("   paid:", processor.get_payment_status(4))
    print()

    # 6. Verify the journal
    replay = JournalReplay()
    replay.load(journal)
    summary = replay.verify()
    print("6. Journal")
    print(f"   file       : {journal}")
    print(f"   entries    : {summary.total_entries}")
    print(f"   valid      : {summary.valid}")
    print(f"   state hash : {runtime.ledger.state_hash()}")
    print()
    print(runtime)


if __name__ == "__main__":
    main()
