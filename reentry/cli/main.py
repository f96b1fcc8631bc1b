"""CLI entry point for reentry."""

import logging
from dataclasses import replace
from pathlib import Path

import click

from reentry.cli.sessions import sessions, show
from reentry.cli.status import status
from reentry.cli.track import capture, feedback, start
from reentry.config import load_config


@click.group()
@click.version_option(package_name="reentry")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Override the data directory (default: ~/.reentry or $REENTRY_HOME).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a YAML config file (default: ~/.reentry/config.yml).",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log store activity.")
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None, config_path: Path | None, verbose: bool) -> None:
    """Reentry — pick up where you left off."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(config_path)
    except ValueError as err:
        raise click.BadParameter(str(err), param_hint="--config") from err
    if data_dir is not None:
        config = replace(config, data_dir=data_dir)
    ctx.obj = config


cli.add_command(start)
cli.add_command(capture)
cli.add_command(feedback)
cli.add_command(sessions)
cli.add_command(show)
cli.add_command(status)
