"""
escrowledger verify — Transfer Journal Verification

Usage:
    escrowledger verify <journal>                  Human output (default)
    escrowledger verify <journal> --format json    Machine-readable JSON
    escrowledger verify <journal> --quiet          Exit code only

Exit codes:
    0  Journal fully valid (sequence + intent hashes + chain)
    1  Journal has violations
    2  Error (file missing, malformed JSON, wrongly typed fields)
"""

import json
import sys
from pathlib import Path

import click

from escrowledger.cli.formatting import (
    BAR_LIGHT,
    Color,
    emit_error,
    header,
    row_fail,
    row_info,
    row_ok,
)
from escrowledger.core.replay import JournalReplay, ReplaySummary


@click.command(name="verify")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def verify_command(journal: str, fmt: str, quiet: bool, no_color: bool) -> None:
    """
    Verify a transfer journal — sequence, intent hashes, chain.

    JOURNAL is the path to a .jsonl transfer journal.
    """
    Color.configure(not no_color)
    journal_path = Path(journal)

    if not journal_path.exists():
        emit_error("escrowledger_verify", f"Journal not found: {journal}", fmt, quiet)
        sys.exit(2)

    replay = JournalReplay()
    try:
        replay.load(journal_path)
    except ValueError as e:
        emit_error("escrowledger_verify", str(e), fmt, quiet)
        sys.exit(2)

    summary = replay.verify()

    if quiet:
        sys.exit(0 if summary.valid else 1)

    if fmt == "json":
        _output_json(summary, journal_path)
    else:
        _output_human(summary, journal_path)

    sys.exit(0 if summary.valid else 1)


def _output_human(summary: ReplaySummary, journal_path: Path) -> None:
    header("escrowledger  ·  Transfer Journal Verification")

    click.echo(row_info("Journal", str(journal_path)))
    click.echo(row_info("Entries", f"{summary.total_entries:,}"))
    if summary.first_height is not None:
        click.echo(row_info("Heights", f"{summary.first_height} → {summary.last_height}"))
    click.echo()

    seq_v    = [v for v in summary.violations if v.violation_type == "sequence_gap"]
    intent_v = [v for v in summary.violations if v.violation_type == "intent_hash"]
    chain_v  = [v for v in summary.violations if v.violation_type == "chain_break"]

    if not chain_v:
        click.echo(row_ok("Chain", "intact — all causal hashes valid"))
    else:
        click.echo(row_fail("Chain", Color.red(f"{len(chain_v)} break(s) detected")))

    if not intent_v:
        click.echo(row_ok("Intents", "all intent hashes match"))
    else:
        click.echo(row_fail("Intents", Color.red(f"{len(intent_v)} mismatch(es)")))

    if not seq_v:
        click.echo(row_ok("Sequence", "no gaps"))
    else:
        click.echo(row_fail("Sequence", Color.red(f"{len(seq_v)} gap(s) detected")))

    click.echo()
    for op, count in sorted(summary.operation_counts.items()):
        click.echo(row_info(op, f"{count:,} transfer(s), {summary.amount_by_operation[op]:,} units"))
    click.echo()

    if summary.violations:
        click.echo(f"  {BAR_LIGHT}")
        for v in summary.violations:
            click.echo(
                f"  {Color.red(str(v.at_sequence)):>6}  "
                f"{Color.yellow(f'{v.violation_type:<14}')}  {v.detail}"
            )
        click.echo(f"  {BAR_LIGHT}")
        click.echo()

    click.echo(f"  {BAR_LIGHT}")
    if summary.valid:
        click.echo(Color.green(Color.bold("  VALID  ·  0 violations")))
    else:
        click.echo(Color.red(Color.bold(
            f"  INVALID  ·  {len(summary.violations)} violation(s)"
        )))
    click.echo(f"  {BAR_LIGHT}")
    click.echo()


def _output_json(summary: ReplaySummary, journal_path: Path) -> None:
    out = {
        "escrowledger_verify": {
            "journal":             str(journal_path),
            "total_entries":       summary.total_entries,
            "journal_valid":       summary.valid,
            "chain_valid":         summary.chain_valid,
            "operation_counts":    summary.operation_counts,
            "amount_by_operation": summary.amount_by_operation,
            "first_height":        summary.first_height,
            "last_height":         summary.last_height,
            "violations": [
                {
                    "at_sequence":    v.at_sequence,
                    "violation_type": v.violation_type,
                    "detail":         v.detail,
                }
                for v in summary.violations
            ],
        }
    }
    click.echo(json.dumps(out, indent=2))
