"""
Shared terminal formatting for escrowledger commands.
"""

import json
import sys

import click


class Color:
    """
    Minimal ANSI color wrapper.
    Auto-disables when not a TTY or --no-color is passed.
    """
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def green(cls, s: str) -> str:
        return f"\033[32m{s}\033[0m" if cls._on else s

    @classmethod
    def red(cls, s: str) -> str:
        return f"\033[31m{s}\033[0m" if cls._on else s

    @classmethod
    def yellow(cls, s: str) -> str:
        return f"\033[33m{s}\033[0m" if cls._on else s

    @classmethod
    def bold(cls, s: str) -> str:
        return f"\033[1m{s}\033[0m" if cls._on else s

    @classmethod
    def dim(cls, s: str) -> str:
        return f"\033[2m{s}\033[0m" if cls._on else s


BAR_HEAVY = "═" * 68
BAR_LIGHT = "─" * 68


def row_ok(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}  {Color.green('OK ')}  {value}"


def row_fail(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}  {Color.red('ERR')}  {value}"


def row_info(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}       {value}"


def header(title: str) -> None:
    click.echo()
    click.echo(Color.bold(f"  {BAR_HEAVY}"))
    click.echo(Color.bold(f"  {title}"))
    click.echo(Color.bold(f"  {BAR_HEAVY}"))
    click.echo()


def emit_error(command: str, msg: str, fmt: str, quiet: bool = False) -> None:
    """Emit an error in the requested format. Never raises."""
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({command: {"error": msg}}))
    else:
        click.echo(Color.red(f"\n  ERROR: {msg}\n"), err=True)
