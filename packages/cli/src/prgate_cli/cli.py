"""CLI entry point for prgate.

Commands:
  review   — review the current pull request and enforce the quality gate
  history  — list the automated reviews already posted on a pull request
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.logging import RichHandler

from prgate_cli.commands.history import history_cmd
from prgate_cli.commands.review import review_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("prgate"),
    prog_name="prgate",
)
@click.option(
    "--config",
    "config_path",
    default=".prgate.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRGATE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI pull request reviewer with a merge-blocking quality gate."""
    from prgate_core.config import load_config
    from prgate_core.errors import ConfigurationError
    from prgate_cli.auth import resolve_github_token

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        click.echo(f"::error::{e.category}: {e}")
        ctx.exit(1)

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(history_cmd)
