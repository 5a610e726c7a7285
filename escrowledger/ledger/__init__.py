"""
escrowledger Ledger - keyed settlement records

The ledger state is the source of truth for what has been settled.
"""

from escrowledger.ledger.ledger import LedgerState

__all__ = ["LedgerState"]
