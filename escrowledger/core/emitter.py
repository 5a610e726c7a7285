"""
escrowledger/core/emitter.py

Transfer Emitter

emit() MUST, in this exact order:
  1. Acquire lock
  2. Forward the intent to the custody collaborator (if any)
     (a TransferError here aborts emit() with no state change)
  3. Build a JournalRecord chained to the previous record
  4. Append to the JSONL journal (if a path was given)
  5. Advance internal state, only after the write succeeded
  6. Return the record

The emitter never checks balances. Custody is authoritative.
"""

import json
import logging
import threading
import warnings
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from escrowledger.core.exceptions import JournalError, TransferError
from escrowledger.core.models import GENESIS_HASH, JournalRecord, TransferIntent

logger = logging.getLogger(__name__)

CustodyFn = Callable[[TransferIntent], None]


class TransferEmitter:
    """
    Records transfer intents and forwards them to custody.

    Maintains per-emitter chain state:
        _sequence     — monotonically increasing integer (0, 1, 2, ...)
        _last_record  — the last JournalRecord appended (or None)

    Thread-safe via internal lock (single-process only).
    When a journal path is given, state survives process restart by
    replaying the journal file on __init__.
    """

    def __init__(
        self,
        custody:      Optional[CustodyFn] = None,
        journal_path: Optional[str] = None,
    ) -> None:
        self.custody = custody

        self._lock:        threading.Lock          = threading.Lock()
        self._sequence:    int                     = 0
        self._last_record: Optional[JournalRecord] = None
        self._records:     List[JournalRecord]     = []

        self._journal_file: Optional[Path] = None
        if journal_path is not None:
            self._journal_file = Path(journal_path)
            self._journal_file.parent.mkdir(parents=True, exist_ok=True)
            self._restore_state()

    # ── Public API ────────────────────────────────────────────

    def emit(
        self,
        intent:    TransferIntent,
        operation: str,
        order_id:  int,
        height:    int,
        part_id:   Optional[int] = None,
    ) -> JournalRecord:
        """
        Forward one intent to custody and record it.

        Raises TransferError if custody refuses; nothing is recorded.
        Raises JournalError if the journal write fails; state does not
        advance.
        """
        with self._lock:
            if self.custody is not None:
                try:
                    self.custody(intent)
                except TransferError as exc:
                    logger.warning(
                        "custody refused %s for order %s: %s",
                        operation, order_id, exc.code.name,
                    )
                    raise

            record = JournalRecord(
                sequence=    self._sequence,
                height=      height,
                operation=   operation,
                order_id=    order_id,
                part_id=     part_id,
                intent=      intent,
                intent_hash= intent.intent_hash(),
                causal_hash= (
                    self._last_record.chain_hash()
                    if self._last_record else GENESIS_HASH
                ),
            )

            if self._journal_file is not None:
                self._append_to_journal(record)

            self._sequence    += 1
            self._last_record  = record
            self._records.append(record)

            return record

    @property
    def records(self) -> List[JournalRecord]:
        return list(self._records)

    @property
    def transfers(self) -> List[TransferIntent]:
        """Intents emitted through this emitter, in emission order."""
        return [r.intent for r in self._records]

    def clear(self) -> None:
        """
        Forget in-memory records.

        With a journal attached, the file is left untouched and the chain
        position is kept, so later records keep extending the same chain.
        Without one, the chain restarts at GENESIS_HASH.
        """
        with self._lock:
            self._records = []
            if self._journal_file is None:
                self._sequence    = 0
                self._last_record = None

    def get_stats(self) -> Dict[str, Any]:
        return {
            "next_sequence":    self._sequence,
            "recorded":         len(self._records),
            "last_causal_hash": (
                self._last_record.chain_hash()
                if self._last_record else GENESIS_HASH
            ),
            "journal_file":     str(self._journal_file) if self._journal_file else None,
        }

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Restore sequence and last record from an existing journal.
        Only chain position is restored; earlier records are not loaded
        into memory. If the last line is corrupted, state stays at genesis
        defaults and a RuntimeWarning is issued.
        """
        if not self._journal_file.exists():
            return

        last_line = None
        with open(self._journal_file, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            record = JournalRecord.from_dict(json.loads(last_line))
            self._sequence    = record.sequence + 1
            self._last_record = record
        except (ValueError, KeyError, TypeError) as exc:
            warnings.warn(
                f"TransferEmitter: could not restore state from {self._journal_file}: {exc}. "
                "Last line may be corrupted. Run `escrowledger verify` before emitting.",
                RuntimeWarning,
                stacklevel=3,
            )

    def _append_to_journal(self, record: JournalRecord) -> None:
        try:
            with open(self._journal_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(record.to_dict()) + "\n")
        except OSError as exc:
            raise JournalError(
                f"journal write failed — {exc}",
                {"journal": str(self._journal_file), "sequence": record.sequence},
            ) from exc
