"""
Runtime context for escrowledger.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from escrowledger.core.clock import LogicalClock
from escrowledger.core.emitter import CustodyFn, TransferEmitter
from escrowledger.ledger.ledger import LedgerState
from escrowledger.policy.config import PolicyConfig
from escrowledger.policy.policy import PolicyStore
from escrowledger.settlement.engine import PaymentProcessor


@dataclass
class EscrowRuntime:
    """All components of one escrow ledger, wired together."""

    processor: PaymentProcessor
    policy:    PolicyStore
    ledger:    LedgerState
    emitter:   TransferEmitter
    clock:     LogicalClock

    @classmethod
    def create(
        cls,
        config:       Optional[PolicyConfig] = None,
        journal_path: Optional[Union[str, Path]] = None,
        custody:      Optional[CustodyFn] = None,
        height:       int = 0,
    ) -> "EscrowRuntime":
        clock   = LogicalClock(height)
        policy  = PolicyStore(config or PolicyConfig())
        ledger  = LedgerState()
        emitter = TransferEmitter(
            custody=custody,
            journal_path=str(journal_path) if journal_path is not None else None,
        )
        processor = PaymentProcessor(
            policy=policy,
            ledger=ledger,
            emitter=emitter,
            clock=clock,
        )
        return cls(
            processor=processor,
            policy=policy,
            ledger=ledger,
            emitter=emitter,
            clock=clock,
        )

    @classmethod
    def from_config(
        cls,
        config_path:  Optional[Path] = None,
        journal_path: Optional[Path] = None,
        custody:      Optional[CustodyFn] = None,
    ) -> "EscrowRuntime":
        """Create a runtime from a YAML policy file (defaults if None)."""
        config = PolicyConfig.from_yaml(config_path) if config_path else PolicyConfig()
        return cls.create(config=config, journal_path=journal_path, custody=custody)

    def __repr__(self) -> str:
        return (
            f"EscrowRuntime("
            f"owner={self.policy.get_contract_owner()!r}, "
            f"height={self.clock.height}, "
            f"transfers={len(self.emitter.records)})"
        )
