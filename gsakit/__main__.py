#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
"""Main entrypoint for the GSAKit CLI."""

import logging
from datetime import datetime
from pathlib import Path
from sys import stderr
from typing import Annotated, Final

import typer
from rich.console import Console
from rich.logging import RichHandler

from ._cli import auth
from ._cli.util.app_dirs import USER_LOG_DIR
from ._cli.util.rich_console import console, err_console

# Libraries that log every request at INFO.
NOISY_LOGGERS: Final = ("httpx", "httpcore")

app = typer.Typer()
app.add_typer(auth.app, name="auth", help="Authenticate with GrandSlam.")
app.add_typer(auth.app, name=auth.__ALIAS__, hidden=True)

logger = logging.getLogger(__name__)


def _setup_logging(level: int) -> Path:
    """
    Send log records to stderr and to a per-run file in the user log directory.

    The file keeps every sign-in attempt's handshake steps, so a failed attempt can be inspected after the fact.
    HTTP client loggers are held at WARNING or above, as their request lines duplicate the handshake steps.

    :param level: The level for the `gsakit` loggers.
    :return: The path of the log file.
    """
    log_file = USER_LOG_DIR / f"gsakit_{datetime.now().astimezone():%Y-%m-%d_%H-%M-%S}.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(file=stderr), rich_tracebacks=True), file_handler],
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return log_file


@app.callback(no_args_is_help=True)
def main(
    *,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log each handshake step and request."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only log critical errors."),
    ] = False,
    silent: Annotated[
        bool,
        typer.Option("--silent", help="Completely disable logging."),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option("--no-color", envvar="NO_COLOR", help="Disable color output."),
    ] = False,
) -> None:
    """GSAKit - sign in to Apple's GrandSlam Authentication service from the command line."""
    if (verbose, quiet, silent).count(True) > 1:
        typer.echo("Can only enable one of --verbose, --quiet, or --silent.", err=True)
        raise typer.Abort

    if no_color:
        console.no_color = True
        err_console.no_color = True

    if silent:
        logging.disable(logging.CRITICAL)
        return

    level = logging.DEBUG if verbose else logging.CRITICAL if quiet else logging.INFO
    log_file = _setup_logging(level)
    logger.debug(f"Writing {logging.getLevelName(level)} logs to {log_file}.")


__entrypoint__ = app
if __name__ == "__main__":
    __entrypoint__()
