"""CLI entrypoint for missiongraph."""

import logging
import sys
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import GraphConfig, find_config, load_config
from .graph.layout import DIRECTIONS
from .graph.views import GROUP_KEYS, VIEW_MODES

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="missiongraph")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to missiongraph.toml (defaults to the nearest one above the working directory)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str) -> None:
    """missiongraph - live agent/task graph layout and reconciliation.

    Lay out a workspace data file, or watch it and reconcile every edit.
    """
    ctx.ensure_object(dict)
    _setup_logging(log_level.upper())

    if config_path is None:
        config_path = find_config(Path.cwd())

    config = GraphConfig()
    if config_path is not None:
        try:
            config = load_config(config_path)
        except (OSError, ValueError) as e:
            raise click.ClickException(f"Invalid config {config_path}: {e}") from e

    ctx.obj["config"] = config


@cli.command()
@click.argument(
    "workspace_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--mode",
    type=click.Choice(VIEW_MODES),
    default="default",
    show_default=True,
    help="View mode",
)
@click.option(
    "--group-by",
    type=click.Choice(GROUP_KEYS),
    default="none",
    show_default=True,
    help="Group nodes into horizontal buckets",
)
@click.option(
    "--direction",
    type=click.Choice(DIRECTIONS, case_sensitive=False),
    default=None,
    help="Layout direction (overrides config)",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
    help="Output format",
)
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write output to a file instead of stdout",
)
@click.pass_context
def layout(
    ctx: click.Context,
    workspace_file: Path,
    mode: str,
    group_by: str,
    direction: str | None,
    fmt: str,
    out: Path | None,
) -> None:
    """Compute node positions for a workspace file (JSON or YAML).

    Pinned positions stored in the file's `positions` list override the
    automatic layout in the default view.

    Examples:

        missiongraph layout workspace.yml

        missiongraph layout workspace.json --mode timeline --format json

        missiongraph layout workspace.yml --group-by role --direction LR
    """
    from .commands.layout_cmd import run_layout

    try:
        exit_code = run_layout(
            workspace_file,
            config=ctx.obj["config"],
            mode=mode,
            group_by=group_by,
            direction=direction.upper() if direction else None,
            fmt=fmt,
            out=out,
        )
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.argument(
    "workspace_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.pass_context
def watch(ctx: click.Context, workspace_file: Path) -> None:
    """Watch a workspace file and reconcile the graph on every save.

    Runs until interrupted (Ctrl+C). Status-only edits merge into the
    rendered graph; added or removed entities trigger a full relayout.
    """
    from .commands.watch_cmd import run_watch

    try:
        run_watch(workspace_file, config=ctx.obj["config"])
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(str(e)) from e


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
