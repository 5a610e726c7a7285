"""
escrowledger/cli/__init__.py

escrowledger CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    escrowledger = "escrowledger.cli:cli"

Adding a new command:
    1. Create escrowledger/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import logging

import click

from escrowledger.cli.policy import policy_command
from escrowledger.cli.simulate import simulate_command
from escrowledger.cli.verify import verify_command


@click.group()
@click.version_option(package_name="escrowledger")
@click.option("-v", "--verbose", count=True, help="Log ledger events (-v info, -vv debug).")
def cli(verbose: int) -> None:
    """
    escrowledger — escrow payment ledger CLI.

    \b
    Commands:
      simulate  Run a YAML scenario through a fresh ledger.
      verify    Verify a transfer journal — sequence, intents, chain.
      policy    Validate and print a policy config.

    \b
    Quick start:
      escrowledger simulate scenario.yaml --journal transfers.jsonl
      escrowledger verify transfers.jsonl
      escrowledger policy policy.yaml --format json
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


cli.add_command(simulate_command)
cli.add_command(verify_command)
cli.add_command(policy_command)
