"""
escrowledger Transition Engine

The PaymentProcessor decides whether a requested payment, refund or
partial payment is admissible and commits it.

Critical Invariants:
- The processor never moves funds; it emits transfer intents
- Preconditions run in a fixed order; the first failure wins
- A rejection has zero side effects
- Settled records never revert
"""

from escrowledger.settlement.engine import PaymentProcessor

__all__ = ["PaymentProcessor"]
