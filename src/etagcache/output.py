"""Output formatting for the maintenance CLI.

Follows `clig.dev <https://clig.dev/>`_ stream discipline:

* **stdout** -- primary data only (stats, entry listings, fetched bytes).
* **stderr** -- every diagnostic (status and errors).
* **TTY detection** -- Rich tables when stdout is an interactive terminal,
  tab-separated text when piped.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

:class:`OutputManager` is created once in :func:`etagcache.app.main_callback`
and installed with :func:`set_output`; the module-level helpers
(:func:`info`, :func:`error`, ...) delegate to it.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormat(str, Enum):
    """Supported output formats.

    ``AUTO`` resolves to ``RICH`` on an interactive TTY with colour enabled,
    otherwise to ``PLAIN``.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Route CLI output to stdout (data) or stderr (diagnostics).

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational and success messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Print a dict or list of records in the active format."""
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif isinstance(data, dict):
            if self._format == OutputFormat.RICH:
                self.print_table(["key", "value"], [[str(k), str(v)] for k, v in data.items()])
            else:
                for key, value in data.items():
                    self.print_data(f"{key}\t{value}")
        else:
            self.print_data(str(data))

    def print_data(self, text: str) -> None:
        """Print a line of text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def write_bytes(self, data: bytes) -> None:
        """Write raw bytes to stdout."""
        sys.stdout.buffer.write(data)
        sys.stdout.flush()

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a Rich table, JSON records, or tab-separated lines."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for h in headers:
                table.add_column(h)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, "")

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, "green")

    def error(self, message: str) -> None:
        """Never suppressed by ``--quiet``."""
        self._diagnostic(f"Error: {message}", "bold red")

    def _diagnostic(self, message: str, style: str) -> None:
        if self._no_color or not style:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(message, style=style, markup=False, highlight=False)


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Return True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global :class:`OutputManager` (used between tests)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def error(message: str) -> None:
    get_output().error(message)
