"""Conductor CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.logging import RichHandler

from conductor import __version__
from conductor.cli_commands._output import err_console


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="conductor")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (defaults to $CONDUCTOR_HOME/conductor.yaml).",
)
@click.option("--db", default=None, help="Database path (overrides CONDUCTOR_DB and settings).")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, db: str | None, verbose: bool) -> None:
    """Conductor — coordinate teams of AI agents."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["db"] = db


# Register subcommands
from conductor.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
