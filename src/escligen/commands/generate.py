"""Generate command -- build the CLI package from ``schema.json``.

Implements the ``escligen generate`` top-level command. It resolves the
effective :class:`~escligen.models.GeneratorConfig` (flags, environment,
``./escligen.json``, defaults), runs the whole pipeline and reports what
was written. With ``--check`` every stage runs but nothing is written,
which makes the command usable as a CI gate against a new specification
snapshot.
"""

from __future__ import annotations

from typing import Optional

import typer

from escligen.exceptions import GeneratorError
from escligen.output import OutputFormat, error, get_output, success, suggest


def generate_command(
    spec: Optional[str] = typer.Option(
        None,
        "--spec",
        "-s",
        help="schema.json URL or file path (use '-' for stdin).",
    ),
    branch: Optional[str] = typer.Option(
        None,
        "--branch",
        "-b",
        help="elasticsearch-specification branch to download (default: main).",
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Directory that receives the package."
    ),
    package: Optional[str] = typer.Option(
        None, "--package", help="Import name of the generated package."
    ),
    cli_name: Optional[str] = typer.Option(
        None, "--cli-name", help="Program name of the generated CLI."
    ),
    exclude: Optional[list[str]] = typer.Option(
        None,
        "--exclude",
        "-x",
        help="Glob of endpoint names to leave out (repeatable; replaces the defaults).",
    ),
    refresh: Optional[bool] = typer.Option(
        None, "--refresh", help="Ignore the schema download cache."
    ),
    check: bool = typer.Option(
        False, "--check", help="Run every stage but write nothing."
    ),
) -> None:
    """Generate the command-line package from the Elasticsearch specification.

    Example::

        escligen generate --branch 8.15 --output build
        escligen generate --spec ./schema.json --package escli_gen --check
        curl -s https://example.com/schema.json | escligen generate --spec -
    """
    from escligen.config import resolve_config
    from escligen.generator.pipeline import run_generation

    try:
        config = resolve_config(
            spec=spec,
            branch=branch,
            output=output,
            package=package,
            cli_name=cli_name,
            exclude=exclude or None,
            refresh=refresh,
        )
        result = run_generation(config, check=check)
    except GeneratorError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    summary = {
        "output_dir": str(result.output_dir),
        "written": result.written,
        "endpoints": result.endpoints,
        "namespaces": result.namespaces,
        "enums": result.enums,
        "excluded": result.excluded,
        "files": result.files,
    }
    out = get_output()
    if out.format == OutputFormat.JSON:
        out.print_json(summary)
        return

    if result.written:
        success(
            f"Generated {result.endpoints} commands in {result.namespaces} namespaces "
            f"at {result.output_dir}"
        )
        suggest(f"Try it: cd {config.output} && python -m {config.package}.cli --help")
