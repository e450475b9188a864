from __future__ import annotations

import json
import os
import sys
from typing import Any

import boto3
import click
import typer
from rich.console import Console

import list_store
from command_parser import evaluate
from command_parser import tokenize

from . import __version__

MARCUS_LIST_BUCKET_NAME = "MARCUS_LIST_BUCKET_NAME"


class UsageError(Exception):
    pass


app = typer.Typer(
    name="marcus",
    help="Run Marcus list commands (e.g. 'la,groceries,milk') from a terminal.",
    no_args_is_help=True,
    add_completion=False,
)

_ERROR_CONSOLE = Console(stderr=True)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {msg}")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"marcus {__version__}")
        raise typer.Exit(code=0)


def _session(profile: str | None, region: str | None) -> Any:
    return boto3.session.Session(
        profile_name=(profile or os.environ.get("AWS_PROFILE") or None),
        region_name=(region or os.environ.get("AWS_REGION") or None),
    )


@app.callback()
def app_callback(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    del version


@app.command("tokens")
def tokens_cmd(
    text: str = typer.Argument(..., help="Raw command text, e.g. 'lr,groceries,2,eggs'"),
) -> None:
    """Show how a command string is tokenized, without running it."""
    tokens, err = tokenize(text)
    if err:
        raise UsageError(err)
    assert tokens is not None
    sys.stdout.write(
        json.dumps([{"kind": t.kind, "text": t.text} for t in tokens], separators=(",", ":")) + "\n"
    )


@app.command("run")
def run_cmd(
    text: str = typer.Argument(..., help="Raw command text, e.g. 'lp,groceries'"),
    bucket: str | None = typer.Option(
        None,
        "--bucket",
        help=f"List bucket name (env override: {MARCUS_LIST_BUCKET_NAME})",
    ),
    profile: str | None = typer.Option(None, "--profile", help="AWS profile"),
    region: str | None = typer.Option(None, "--region", help="AWS region"),
) -> None:
    """Evaluate a command against the list bucket and print the reply."""
    bucket_name = (bucket or os.environ.get(MARCUS_LIST_BUCKET_NAME) or "").strip()
    if not bucket_name:
        raise UsageError(f"missing list bucket (pass --bucket or set {MARCUS_LIST_BUCKET_NAME})")

    list_store.configure(bucket_name, _session(profile, region).client("s3"))

    result = evaluate(text)
    if not result.ok:
        _rich_error(f"{result.outcome}: {result.message}")
        raise typer.Exit(code=1)
    sys.stdout.write(result.message if result.message.endswith("\n") else result.message + "\n")


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    try:
        result = app(args=argv, prog_name="marcus", standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.ClickException as e:
        _rich_error(e.format_message())
        return int(e.exit_code)
    except UsageError as e:
        _rich_error(str(e))
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
