"""
escrowledger simulate — run a YAML scenario through a fresh ledger.

Usage:
    escrowledger simulate scenario.yaml
    escrowledger simulate scenario.yaml --format json
    escrowledger simulate scenario.yaml --journal transfers.jsonl
    escrowledger simulate scenario.yaml --snapshot state.json

Exit codes:
    0  Scenario ran to completion (individual steps may have been rejected)
    2  Error (missing file, malformed scenario, journal write failure)
"""

import json
import sys
from pathlib import Path
from typing import List, Optional

import click

from escrowledger.cli.formatting import (
    BAR_LIGHT,
    Color,
    emit_error,
    header,
    row_info,
)
from escrowledger.core.exceptions import ConfigError, JournalError
from escrowledger.runtime.context import EscrowRuntime
from escrowledger.runtime.scenario import Scenario, ScenarioRunner, StepOutcome


@click.command(name="simulate")
@click.argument("scenario", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--journal",
    "journal_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Append emitted transfer intents to this JSONL journal.",
)
@click.option(
    "--snapshot",
    "snapshot_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Write the final ledger snapshot to a JSON file.",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def simulate_command(
    scenario:      str,
    fmt:           str,
    journal_path:  Optional[str],
    snapshot_path: Optional[str],
    no_color:      bool,
) -> None:
    """
    Run SCENARIO (YAML) through a fresh escrow ledger and report each step.
    """
    Color.configure(not no_color)

    try:
        parsed  = Scenario.from_yaml(Path(scenario))
        runtime = EscrowRuntime.create(config=parsed.policy, journal_path=journal_path)
        outcomes = ScenarioRunner(parsed, runtime).run()
    except (ConfigError, JournalError) as e:
        emit_error("escrowledger_simulate", str(e), fmt)
        sys.exit(2)

    snapshot = runtime.ledger.snapshot()
    if snapshot_path:
        Path(snapshot_path).write_text(json.dumps(snapshot, indent=2), encoding="utf-8")

    if fmt == "json":
        click.echo(json.dumps({
            "escrowledger_simulate": {
                "scenario":   scenario,
                "steps":      [o.to_dict() for o in outcomes],
                "policy":     runtime.policy.get_policy_stats(),
                "ledger":     snapshot,
                "state_hash": runtime.ledger.state_hash(),
                "transfers":  [t.to_dict() for t in runtime.emitter.transfers],
            }
        }, indent=2))
    else:
        _output_human(scenario, outcomes, runtime)


def _output_human(scenario: str, outcomes: List[StepOutcome], runtime: EscrowRuntime) -> None:
    header("escrowledger  ·  Scenario")
    click.echo(row_info("Scenario", scenario))
    click.echo(row_info("Owner", runtime.policy.get_contract_owner()))
    click.echo()

    click.echo(f"  {BAR_LIGHT}")
    for o in outcomes:
        if o.result.ok:
            status = Color.green(f"OK  {o.result.value!r}")
        else:
            status = Color.red(f"ERR {o.result.error.name} ({int(o.result.error)})")
        click.echo(f"  {o.index:>4}  {Color.dim(f'h={o.height:<6}')}  {o.op:<26}  {status}")
    click.echo(f"  {BAR_LIGHT}")
    click.echo()

    stats = runtime.ledger.get_stats()
    ok    = sum(1 for o in outcomes if o.result.ok)
    click.echo(row_info("Steps", f"{ok} committed, {len(outcomes) - ok} rejected"))
    click.echo(row_info("Paid", f"{stats['payments']} order(s), {stats['total_paid']:,} units"))
    click.echo(row_info("Refunded", f"{stats['refunds']} order(s), {stats['total_refunded']:,} units"))
    click.echo(row_info("Partial", f"{stats['partial_payments']} part(s), {stats['total_partial']:,} units"))
    click.echo(row_info("Transfers", f"{len(runtime.emitter.records)}"))
    click.echo(row_info("State hash", runtime.ledger.state_hash()))
    click.echo()
