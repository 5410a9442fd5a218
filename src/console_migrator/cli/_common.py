"""Shared CLI helpers."""

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from ..config import CONFIG_FILENAME, MigrationConfig, load_config
from ..exceptions import MigratorError

console = Console()


def project_option() -> Path:
    return typer.Option(
        Path("."),
        "--project",
        "-p",
        help="Project root (default: current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
        readable=True,
    )


def resolve_config(
    ctx: typer.Context,
    project: Path,
    verbose: bool = False,
) -> MigrationConfig:
    """Build config from the root ``--config`` option, the project's TOML and flags."""
    obj = ctx.obj or {}
    config_file: Optional[Path] = obj.get("config")
    if config_file is None:
        candidate = Path(project) / CONFIG_FILENAME
        if candidate.is_file():
            config_file = candidate
    return load_config(config_file=config_file, verbose=verbose or None)


def fail(error: MigratorError, logger: logging.Logger, verbose: bool = False) -> NoReturn:
    """Print ``error`` in red and exit with status 1."""
    if verbose:
        logger.exception(str(error))
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(1)
