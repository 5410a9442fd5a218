"""CLI entry point: registers all subcommands."""

import typer

app = typer.Typer(
    name="console-migrator",
    help="Console Migrator - move diagnostic console calls onto a structured component logger",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from .root import root as _root_callback  # noqa: F401, E402
from .migrate import migrate as _migrate  # noqa: F401, E402
from .validate import validate as _validate  # noqa: F401, E402
from .status import status as _status  # noqa: F401, E402
from .rollback import rollback as _rollback  # noqa: F401, E402
from .report import report as _report  # noqa: F401, E402
from .analytics import analytics as _analytics  # noqa: F401, E402
from .cleanup import cleanup as _cleanup  # noqa: F401, E402


def main() -> None:
    """Console-script entry point."""
    app()


__all__ = ["app", "main"]
