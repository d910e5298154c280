"""Typer application factory and CLI entry point for escligen.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``generate`` and the ``inspect`` group).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands and
invokes the Typer app. :class:`~escligen.exceptions.GeneratorError`
escaping a command exits with the error's code; any other exception is
written to a crash log under the data directory.

See Also:
    :mod:`escligen.config`: Configuration resolution.
    :mod:`escligen.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from escligen import __version__
from escligen.commands.generate import generate_command
from escligen.commands.inspect import inspect_app
from escligen.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="escligen",
    help="Generate a command-line interface from the Elasticsearch API specification.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("generate")(generate_command)
app.add_typer(
    inspect_app, name="inspect", help="Inspect the specification as the generator sees it."
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"escligen {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Install the global :class:`~escligen.output.OutputManager` for this run.

    ``--json`` wins over ``--plain``; with neither, the format follows the
    terminal.
    """
    from escligen.output import OutputFormat, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to disk and return the log file path."""
    from escligen.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}")
    return str(log_path)


def main() -> None:
    """Console-script entry point (``escligen``).

    Commands report their own failures and exit with the matching code; a
    :class:`~escligen.exceptions.GeneratorError` that still escapes is
    reported the same way. Anything else is a bug: the traceback goes to a
    crash log and the process exits with :data:`EXIT_GENERIC_FAILURE`.
    """
    from escligen.exceptions import GeneratorError
    from escligen.output import error

    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except GeneratorError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Debug log: {_write_crash_log(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)
