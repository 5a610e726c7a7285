"""
escrowledger/core/replay.py

Transfer Journal Replay

Checks enforced here, per record, in journal order:
    1. Sequence  → record.sequence == position in file
    2. Intent    → record.intent_hash == canonical_hash(record.intent)
    3. Chain     → record.causal_hash == prev.chain_hash() (GENESIS_HASH first)

Load is fail-fast (malformed JSON, missing fields or wrongly typed
fields raise ValueError).
Verify is exhaustive (every violation is collected and reported).
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from escrowledger.core.models import GENESIS_HASH, JournalRecord

# field -> (JSON type, nullable)
_RECORD_FIELDS = {
    "sequence":    (int, False),
    "height":      (int, False),
    "operation":   (str, False),
    "order_id":    (int, False),
    "part_id":     (int, True),
    "intent_hash": (str, False),
    "causal_hash": (str, False),
}
_INTENT_FIELDS = {
    "amount":    (int, False),
    "sender":    (str, False),
    "recipient": (str, False),
    "token":     (str, True),
}


def _field_type_error(data: dict, fields: dict, prefix: str = "") -> Optional[str]:
    """Name the first field whose value has the wrong JSON type, if any."""
    for name, (expected, nullable) in fields.items():
        value = data.get(name)
        if value is None and nullable:
            continue
        if isinstance(value, bool) or not isinstance(value, expected):
            return (
                f"{prefix}{name} must be {expected.__name__}"
                f"{' or null' if nullable else ''}, got {type(value).__name__}"
            )
    return None


@dataclass
class JournalViolation:
    """A single detected violation in the journal."""
    at_sequence:    int
    violation_type: str   # "sequence_gap" | "intent_hash" | "chain_break"
    detail:         str


@dataclass
class ReplaySummary:
    """Aggregate result of a full journal verification pass."""
    total_entries:    int
    chain_valid:      bool
    violations:       List[JournalViolation]
    operation_counts: Dict[str, int]
    amount_by_operation: Dict[str, int]
    first_height:     Optional[int]
    last_height:      Optional[int]

    @property
    def valid(self) -> bool:
        return not self.violations


class JournalReplay:
    """
    Usage:
        replay = JournalReplay()
        replay.load(Path("transfers.jsonl"))
        summary = replay.verify()
    """

    def __init__(self) -> None:
        self.records:    List[JournalRecord]    = []
        self.violations: List[JournalViolation] = []

    def load(self, journal_path: Path) -> None:
        """
        Load a transfer journal JSONL file.

        Raises:
            FileNotFoundError — journal file does not exist
            ValueError        — malformed JSON, missing fields or wrong field types
        """
        journal_path  = Path(journal_path)
        self.records    = []
        self.violations = []

        if not journal_path.exists():
            raise FileNotFoundError(f"Transfer journal not found: {journal_path}")

        with open(journal_path, "r", encoding="utf-8") as f:
            for line_num, raw in enumerate(f, 1):
                raw = raw.strip()
                if not raw:
                    continue

                try:
                    data = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise ValueError(
                        f"Malformed JSON at journal line {line_num}: {e}"
                    ) from e

                try:
                    record = JournalRecord.from_dict(data)
                except (KeyError, TypeError) as e:
                    raise ValueError(
                        f"Missing required journal field at line {line_num}: {e}"
                    ) from e

                problem = (
                    _field_type_error(data, _RECORD_FIELDS)
                    or _field_type_error(data["intent"], _INTENT_FIELDS, "intent.")
                )
                if problem:
                    raise ValueError(f"Invalid journal field at line {line_num}: {problem}")

                self.records.append(record)

    def verify(self) -> ReplaySummary:
        self.violations = []
        operation_counts:    Dict[str, int] = {}
        amount_by_operation: Dict[str, int] = {}
        chain_valid = True

        prev: Optional[JournalRecord] = None
        for i, record in enumerate(self.records):
            if record.sequence != i:
                self.violations.append(JournalViolation(
                    at_sequence=    i,
                    violation_type= "sequence_gap",
                    detail=         f"Expected sequence {i}, got {record.sequence}",
                ))

            expected_intent = record.intent.intent_hash()
            if record.intent_hash != expected_intent:
                self.violations.append(JournalViolation(
                    at_sequence=    record.sequence,
                    violation_type= "intent_hash",
                    detail=(
                        f"intent_hash mismatch: "
                        f"expected ...{expected_intent[-12:]}, "
                        f"got ...{record.intent_hash[-12:]}"
                    ),
                ))

            expected_causal = prev.chain_hash() if prev else GENESIS_HASH
            if record.causal_hash != expected_causal:
                chain_valid = False
                self.violations.append(JournalViolation(
                    at_sequence=    record.sequence,
                    violation_type= "chain_break",
                    detail=(
                        f"causal_hash mismatch: "
                        f"expected ...{expected_causal[-12:]}, "
                        f"got ...{record.causal_hash[-12:]}"
                    ),
                ))

            operation_counts[record.operation] = operation_counts.get(record.operation, 0) + 1
            amount_by_operation[record.operation] = (
                amount_by_operation.get(record.operation, 0) + record.intent.amount
            )
            prev = record

        return ReplaySummary(
            total_entries=       len(self.records),
            chain_valid=         chain_valid,
            violations=          list(self.violations),
            operation_counts=    operation_counts,
            amount_by_operation= amount_by_operation,
            first_height=        self.records[0].height if self.records else None,
            last_height=         self.records[-1].height if self.records else None,
        )
