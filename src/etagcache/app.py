"""Typer application and CLI entry point for etagcache.

The CLI is a maintenance tool for a cache directory: it reports statistics,
lists and classifies entries, clears or expires entries by pattern, and can
fill the cache from a URL through the HTTP revalidation adapter.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under
the data directory.

See Also:
    :mod:`etagcache.config`: Cache root resolution used by every command.
    :mod:`etagcache.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from etagcache import __version__
from etagcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="etagcache",
    help="Inspect and maintain an ETag-aware disk cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from etagcache.commands.cache import (  # noqa: E402
    clear_command,
    expire_command,
    fetch_command,
    list_command,
    show_command,
    stats_command,
)
from etagcache.commands.config import config_app  # noqa: E402

app.command("stats")(stats_command)
app.command("list")(list_command)
app.command("show")(show_command)
app.command("clear")(clear_command)
app.command("expire")(expire_command)
app.command("fetch")(fetch_command)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"etagcache {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Send package log records to stderr through Rich."""
    from rich.console import Console
    from rich.logging import RichHandler

    logger = logging.getLogger("etagcache")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Cache base directory."
    ),
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-N", help="Cache namespace (subdirectory)."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~etagcache.output.OutputManager`, configures
    logging, and stores the cache location overrides in ``ctx.obj``.
    """
    from etagcache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet)
    )
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["cache_dir"] = cache_dir
    ctx.obj["namespace"] = namespace


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback to disk and return the log file path."""
    from etagcache.config import get_data_dir

    logs_dir = get_data_dir()
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``etagcache`` console script.

    :class:`~etagcache.exceptions.EtagCacheError` instances cause a clean
    exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from etagcache.exceptions import EtagCacheError
        from etagcache.output import error

        if isinstance(exc, EtagCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
