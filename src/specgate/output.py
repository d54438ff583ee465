"""Rendering for the ``specgate`` command line.

Results (locators, operation tables, parameter writes, violation lists) go
to stdout; everything else (status lines, warnings, errors, debug notes) goes
to stderr, so ``specgate check ... --json | jq`` always sees clean JSON.

Three formats are supported.  ``json`` prints machine-readable documents,
``plain`` prints tab-separated lines, and ``rich`` draws
:class:`rich.table.Table` output.  ``auto`` picks ``rich`` for an
interactive terminal with colour enabled and ``plain`` otherwise.  Colour is
off when ``--no-color`` is given, ``NO_COLOR`` is set, or ``TERM=dumb``.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from rich.console import Console
from rich.table import Table

from specgate.models import SchemaViolation

VIOLATION_HEADERS = ["Type", "Error", "Data pointer"]


class OutputFormat(str, Enum):
    """How results are written to stdout."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes command results to stdout and diagnostics to stderr.

    Args:
        format: Requested format; ``AUTO`` is resolved on construction.
        no_color: Disable colour and Rich markup.
        quiet: Hide success lines.  Warnings and errors are always shown.
        verbose: Show debug lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format

        self._console = Console(file=sys.stdout, no_color=self._no_color, force_terminal=format == OutputFormat.RICH)
        self._err_console = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        """The resolved output format, never ``AUTO``."""
        return self._format

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_json(self, data: Any) -> None:
        """Print *data* as indented JSON; unknown values fall back to ``str``."""
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def print_table(
        self,
        headers: Sequence[str],
        rows: Iterable[Sequence[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows in the active format.

        JSON mode prints a list of objects keyed by *headers*; plain mode
        prints a header line and one tab-separated line per row.
        """
        rows = [list(row) for row in rows]
        if self._format == OutputFormat.JSON:
            self.print_json([dict(zip(headers, row)) for row in rows])
        elif self._format == OutputFormat.PLAIN:
            for line in [list(headers), *rows]:
                self.print_data("\t".join(line))
        else:
            table = Table(*headers, title=title, header_style="bold cyan")
            for row in rows:
                table.add_row(*row)
            self._console.print(table)

    def print_violations(self, violations: Iterable[SchemaViolation]) -> None:
        """Print schema violations as a Type / Error / Data pointer table.

        The root of the instance is shown as ``/``.
        """
        rows = [[v["type"], v["error"], v["data_pointer"] or "/"] for v in violations]
        if rows:
            self.print_table(VIOLATION_HEADERS, rows, title="Violations")

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic("", "green", message)

    def warning(self, message: str) -> None:
        self._diagnostic("Warning: ", "yellow", message)

    def error(self, message: str) -> None:
        self._diagnostic("Error: ", "bold red", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic("[debug] ", "dim", message)

    def _diagnostic(self, prefix: str, style: str, message: str) -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._err_console.print(f"{prefix}{message}", style=style, markup=False, highlight=False)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide instance, installed by the CLI callback
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)
