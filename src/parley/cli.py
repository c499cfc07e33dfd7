"""Developer CLI for inspecting argument parsing and message splitting."""

from __future__ import annotations

import json
from typing import Optional

import typer

from parley.args import parse_args, parse_single
from parley.config import get_settings
from parley.errors import InvalidConfigurationError
from parley.logging_utils import configure_logging
from parley.response.split import SplitPolicy, split_message

app = typer.Typer(name="parley", help="Inspect how parley parses and splits text.", add_completion=False)


@app.callback()
def main_callback() -> None:
    configure_logging(profile="compact")


@app.command("tokenize")
def tokenize(
    text: str = typer.Argument(..., help="Raw argument string"),
    count: Optional[int] = typer.Option(None, "--count", "-n", help="Number of arguments to extract"),
    single_quotes: bool = typer.Option(True, "--single-quotes/--no-single-quotes", help="Allow single quotes"),
    single: bool = typer.Option(False, "--single", help="Treat the whole string as one argument"),
) -> None:
    """Print the parsed arguments as JSON."""
    result = parse_single(text, single_quotes) if single else parse_args(text, count, single_quotes)
    typer.echo(json.dumps(result, ensure_ascii=False))


@app.command("split")
def split(
    text: str = typer.Argument(..., help="Text to split"),
    max_length: Optional[int] = typer.Option(None, "--max-length", "-m", help="Maximum chunk length"),
    prepend: str = typer.Option("", "--prepend", help="Prefix for continuation chunks"),
    append: str = typer.Option("", "--append", help="Suffix for continued chunks"),
) -> None:
    """Print the message chunks as JSON."""
    policy = SplitPolicy(
        max_length=max_length or get_settings().split_max_length,
        prepend=prepend,
        append=append,
    )
    try:
        chunks = split_message(text, policy)
    except InvalidConfigurationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo(json.dumps(chunks, ensure_ascii=False))


if __name__ == "__main__":
    app()
