"""
tests/test_transfer_journal.py

Transfer emitter, JSONL journal and journal replay.

Laws:
    records are numbered 0, 1, 2, ... with no gaps
    first record chains to GENESIS_HASH, each later one to its predecessor
    intent_hash is the canonical hash of the intent (key-order agnostic)
    a refused transfer is not recorded
    a reopened journal continues the chain
    clearing an emitter with a journal attached continues the chain
    replay detects tampered amounts, broken links and sequence gaps
"""

import json

import pytest

from escrowledger import (
    ErrorCode,
    JournalError,
    LogicalClock,
    Operation,
    TransferEmitter,
    TransferError,
    TransferIntent,
)
from escrowledger.core.canonical import canonical_hash
from escrowledger.core.models import GENESIS_HASH
from escrowledger.core.replay import JournalReplay
from escrowledger.runtime.context import EscrowRuntime

from conftest import make_escrow, make_order


def _intent(amount: int = 100) -> TransferIntent:
    return TransferIntent(amount=amount, sender="ST1BUYER", recipient="ST1SUPPLIER")


def _emit_n(emitter: TransferEmitter, n: int) -> None:
    for i in range(n):
        emitter.emit(_intent(100 + i), Operation.PROCESS_PAYMENT, order_id=i + 1, height=i)


def _read_lines(path):
    with open(path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def _write_lines(path, rows):
    with open(path, "w", encoding="utf-8") as f:
        for row in rows:
            f.write(json.dumps(row) + "\n")


def _verify(path):
    replay = JournalReplay()
    replay.load(path)
    return replay.verify()


class TestEmitter:

    def test_chain_and_sequence(self):
        emitter = TransferEmitter()
        _emit_n(emitter, 3)

        records = emitter.records
        assert [r.sequence for r in records] == [0, 1, 2]
        assert records[0].causal_hash == GENESIS_HASH
        assert records[1].causal_hash == records[0].chain_hash()
        assert records[2].causal_hash == records[1].chain_hash()

    def test_intent_hash_is_key_order_agnostic(self):
        intent = _intent()
        reordered = {"token": None, "recipient": "ST1SUPPLIER", "amount": 100, "sender": "ST1BUYER"}
        assert intent.intent_hash() == canonical_hash(reordered)

    def test_refused_transfer_not_recorded(self):
        def refuse(intent):
            raise TransferError(ErrorCode.INSUFFICIENT_FUNDS)

        emitter = TransferEmitter(custody=refuse)
        with pytest.raises(TransferError) as exc_info:
            emitter.emit(_intent(), Operation.PROCESS_PAYMENT, order_id=1, height=0)

        assert exc_info.value.code == ErrorCode.INSUFFICIENT_FUNDS
        assert emitter.records == []
        assert emitter.get_stats()["next_sequence"] == 0

    def test_clear(self):
        emitter = TransferEmitter()
        _emit_n(emitter, 2)
        emitter.clear()
        assert emitter.transfers == []
        assert emitter.get_stats()["last_causal_hash"] == GENESIS_HASH

    def test_unwritable_journal_does_not_advance(self, tmp_path):
        journal = tmp_path / "journal.jsonl"
        emitter = TransferEmitter(journal_path=str(journal))
        journal.mkdir()

        with pytest.raises(JournalError):
            emitter.emit(_intent(), Operation.PROCESS_PAYMENT, order_id=1, height=0)
        assert emitter.records == []


class TestJournalFile:

    def test_journal_written_and_valid(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        _emit_n(TransferEmitter(journal_path=str(path)), 5)

        rows = _read_lines(path)
        assert len(rows) == 5
        assert rows[4]["order_id"] == 5

        summary = _verify(path)
        assert summary.valid
        assert summary.total_entries == 5
        assert summary.operation_counts == {Operation.PROCESS_PAYMENT: 5}
        assert summary.amount_by_operation[Operation.PROCESS_PAYMENT] == 100 + 101 + 102 + 103 + 104
        assert (summary.first_height, summary.last_height) == (0, 4)

    def test_reopen_continues_chain(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        _emit_n(TransferEmitter(journal_path=str(path)), 2)

        reopened = TransferEmitter(journal_path=str(path))
        record = reopened.emit(_intent(7), Operation.PROCESS_REFUND, order_id=9, height=50)

        assert record.sequence == 2
        assert _verify(path).valid

    def test_corrupted_tail_warns_on_restore(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        _emit_n(TransferEmitter(journal_path=str(path)), 1)
        with open(path, "a", encoding="utf-8") as f:
            f.write('{"sequence": 1, "heig\n')

        with pytest.warns(RuntimeWarning):
            emitter = TransferEmitter(journal_path=str(path))
        assert emitter.get_stats()["next_sequence"] == 0

    def test_empty_lines_ignored(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        _emit_n(TransferEmitter(journal_path=str(path)), 2)
        with open(path, "a", encoding="utf-8") as f:
            f.write("\n\n")
        assert _verify(path).valid


class TestReplayDetection:

    @pytest.fixture
    def journal(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        _emit_n(TransferEmitter(journal_path=str(path)), 4)
        return path

    def test_tampered_amount(self, journal):
        rows = _read_lines(journal)
        rows[1]["intent"]["amount"] = 999_999
        _write_lines(journal, rows)

        summary = _verify(journal)

        kinds = {v.violation_type for v in summary.violations}
        assert "intent_hash" in kinds
        # the next record's link covered the old intent
        assert "chain_break" in kinds
        assert not summary.chain_valid

    def test_tampered_amount_with_rehashed_intent(self, journal):
        rows = _read_lines(journal)
        rows[1]["intent"]["amount"] = 5
        rows[1]["intent_hash"] = TransferIntent.from_dict(rows[1]["intent"]).intent_hash()
        _write_lines(journal, rows)

        summary = _verify(journal)

        assert [v.violation_type for v in summary.violations] == ["chain_break"]
        assert summary.violations[0].at_sequence == 2

    def test_removed_record(self, journal):
        rows = _read_lines(journal)
        del rows[1]
        _write_lines(journal, rows)

        kinds = [v.violation_type for v in _verify(journal).violations]
        assert "sequence_gap" in kinds
        assert "chain_break" in kinds

    def test_malformed_json_raises(self, journal):
        with open(journal, "a", encoding="utf-8") as f:
            f.write("{not json}\n")
        with pytest.raises(ValueError, match="Malformed JSON"):
            JournalReplay().load(journal)

    def test_missing_field_raises(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        _write_lines(path, [{"sequence": 0}])
        with pytest.raises(ValueError, match="Missing required journal field"):
            JournalReplay().load(path)

    @pytest.mark.parametrize("field, value", [
        ("intent_hash", 5),
        ("causal_hash", None),
        ("sequence", "0"),
        ("sequence", True),
        ("part_id", "1"),
        ("intent.amount", "lots"),
        ("intent.amount", 1.5),
        ("intent.sender", 7),
    ])
    def test_wrongly_typed_field_raises(self, journal, field, value):
        rows = _read_lines(journal)
        target = rows[0]
        if field.startswith("intent."):
            target, field = target["intent"], field[len("intent."):]
        target[field] = value
        _write_lines(journal, rows)

        with pytest.raises(ValueError, match="Invalid journal field at line 1"):
            JournalReplay().load(journal)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            JournalReplay().load(tmp_path / "absent.jsonl")

    def test_empty_journal(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        path.write_text("", encoding="utf-8")
        summary = _verify(path)
        assert summary.valid
        assert summary.total_entries == 0
        assert summary.first_height is None


class TestRuntimeJournal:

    def test_processor_operations_land_in_journal(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        runtime = EscrowRuntime.create(journal_path=path)
        processor = runtime.processor
        order, escrow = make_order(1000), make_escrow()

        processor.process_payment(1, order, escrow, True, False)
        runtime.clock.advance(5)
        processor.process_partial_payment(2, 3, 25, order, escrow, True)
        processor.process_refund(4, order, escrow, True)
        processor.process_refund(4, order, escrow, True)  # rejected, not journaled

        rows = _read_lines(path)
        assert [r["operation"] for r in rows] == [
            Operation.PROCESS_PAYMENT,
            Operation.PROCESS_PARTIAL_PAYMENT,
            Operation.PROCESS_REFUND,
        ]
        assert rows[1]["part_id"] == 3
        assert rows[1]["intent"]["amount"] == 250
        assert rows[1]["height"] == 5
        assert rows[2]["intent"]["sender"] == "ST1SUPPLIER"
        assert _verify(path).valid

    def test_reset_keeps_journal_chain(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        runtime = EscrowRuntime.create(journal_path=path)
        order, escrow = make_order(1000), make_escrow()

        assert runtime.processor.process_payment(1, order, escrow, True, False)
        runtime.processor.reset()
        assert runtime.processor.transfers == []
        assert runtime.processor.process_payment(1, order, escrow, True, False)

        rows = _read_lines(path)
        assert [r["sequence"] for r in rows] == [0, 1]
        summary = _verify(path)
        assert summary.valid, summary.violations
        assert summary.total_entries == 2

    def test_clear_without_journal_restarts_chain(self):
        emitter = TransferEmitter()
        _emit_n(emitter, 2)
        emitter.clear()
        record = emitter.emit(_intent(), Operation.PROCESS_PAYMENT, order_id=1, height=0)
        assert record.sequence == 0
        assert record.causal_hash == GENESIS_HASH


class TestLogicalClock:

    def test_advance(self):
        clock = LogicalClock()
        assert clock.advance() == 1
        assert clock.advance(9) == 10
        assert clock.height == 10

    def test_cannot_go_backwards(self):
        clock = LogicalClock(5)
        with pytest.raises(ValueError):
            clock.advance(-1)
        assert clock.height == 5

    def test_negative_start_rejected(self):
        with pytest.raises(ValueError):
            LogicalClock(-1)
