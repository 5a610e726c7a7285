"""
escrowledger policy — load and display a policy config.
"""

import json
import sys
from pathlib import Path

import click

from escrowledger.cli.formatting import Color, emit_error, header, row_info
from escrowledger.core.exceptions import ConfigError
from escrowledger.policy.config import PolicyConfig


@click.command(name="policy")
@click.argument("config", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def policy_command(config: str, fmt: str, no_color: bool) -> None:
    """Validate CONFIG (YAML) and print the resulting policy."""
    Color.configure(not no_color)

    try:
        loaded = PolicyConfig.from_yaml(Path(config))
    except ConfigError as e:
        emit_error("escrowledger_policy", str(e), fmt)
        sys.exit(2)

    if fmt == "json":
        click.echo(json.dumps({"escrowledger_policy": loaded.to_dict()}, indent=2))
        return

    header("escrowledger  ·  Policy")
    for key, value in loaded.to_dict().items():
        click.echo(row_info(key, str(value)))
    click.echo()
