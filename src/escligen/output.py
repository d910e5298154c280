"""Diagnostics and data output with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (inspection tables, JSON documents,
  dry-run request descriptors). This is what downstream tools pipe.
* **stderr** -- all diagnostics: stage progress, warnings about
  ambiguous URL templates, errors. Never contaminates the data stream.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

The generator never uses the :mod:`logging` module; every stage reports
through the global :class:`OutputManager` installed by
:func:`~escligen.app.main_callback`, or through the module-level helpers
(:func:`info`, :func:`warning`, :func:`debug`, ...) that delegate to it.
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How data written to stdout is rendered.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` everywhere else (pipes, CI logs, ``NO_COLOR``).
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


@dataclass(frozen=True)
class _Level:
    """Presentation of one diagnostic level on stderr."""

    prefix: str = ""
    markup: str = "{}"
    quiet: bool = True
    """Suppressed by ``--quiet``."""


_LEVELS: dict[str, _Level] = {
    "info": _Level(),
    "success": _Level(markup="[green]{}[/green]"),
    "warning": _Level(prefix="Warning: ", markup="[yellow]Warning:[/yellow] {}", quiet=False),
    "error": _Level(prefix="Error: ", markup="[bold red]Error:[/bold red] {}", quiet=False),
    "suggest": _Level(prefix="→ ", markup="[dim]→ {}[/dim]"),
    "debug": _Level(prefix="[debug] ", markup="[dim]\\[debug] {}[/dim]", quiet=False),
    "progress": _Level(markup="[dim]{}[/dim]"),
}


class OutputManager:
    """Routes data to stdout and diagnostics to stderr.

    One Rich :class:`~rich.console.Console` is kept per stream. With colour
    disabled, diagnostics bypass Rich and are written as plain lines.

    Args:
        format: Desired data format; ``AUTO`` is resolved immediately.
        no_color: Disable colour and Rich markup.
        quiet: Drop informational diagnostics (warnings and errors stay).
        verbose: Show ``debug`` diagnostics.
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
        self._format = _resolve_format(format, self._no_color)

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=self._format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_json(self, data: Any) -> None:
        """Write *data* as an indented JSON document.

        Syntax-highlighted in Rich mode; in every other mode the text is
        plain so that ``| jq`` keeps working.
        """
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        else:
            self.print_data(text)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows under *headers*.

        JSON mode emits an array of objects keyed by header, plain mode one
        tab-separated line per row (header first), Rich mode a styled table
        with *title*.
        """
        if self._format == OutputFormat.JSON:
            self.print_json([dict(zip(headers, row)) for row in rows])
        elif self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
        else:
            self._stdout.print(_rich_table(headers, rows, title))

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._diagnostic("info", message)

    def success(self, message: str) -> None:
        self._diagnostic("success", message)

    def warning(self, message: str) -> None:
        """Warnings are shown even with ``--quiet``."""
        self._diagnostic("warning", message)

    def error(self, message: str) -> None:
        """Errors are always shown."""
        self._diagnostic("error", message)

    def suggest(self, message: str) -> None:
        """A next step for the user, e.g. how to run the generated CLI."""
        self._diagnostic("suggest", message)

    def debug(self, message: str) -> None:
        """Shown only with ``--verbose``."""
        if self._verbose:
            self._diagnostic("debug", message)

    def progress(self, message: str) -> None:
        """Stage progress; shown only when stdout is a terminal."""
        if _is_tty():
            self._diagnostic("progress", message)

    def _diagnostic(self, level: str, message: str) -> None:
        style = _LEVELS[level]
        if self._quiet and style.quiet:
            return
        if self._no_color:
            print(f"{style.prefix}{message}", file=sys.stderr, flush=True)
        else:
            # Messages may contain brackets such as "[DEPRECATED]"; print them literally.
            self._stderr.print(style.markup.format(escape(message)))


def _resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    if requested != OutputFormat.AUTO:
        return requested
    if _is_tty() and not no_color:
        return OutputFormat.RICH
    return OutputFormat.PLAIN


def _rich_table(headers: list[str], rows: list[list[str]], title: Optional[str]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    return table


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to any value, or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The global :class:`OutputManager`; a default one is created on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global manager so the next :func:`get_output` builds a fresh one.

    Tests call this between runs: a manager keeps the streams that were
    current when it was created.
    """
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Shortcuts delegating to the global instance
# ------------------------------------------------------------------ #


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_json(data: Any) -> None:
    get_output().print_json(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)


def progress(message: str) -> None:
    get_output().progress(message)
