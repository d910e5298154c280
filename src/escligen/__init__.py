"""escligen -- Generate an Elasticsearch CLI from the API specification.

This package reads the machine-readable Elasticsearch API specification
(``schema.json`` from the elasticsearch-specification repository) and
emits a self-contained Python package: one Typer command per endpoint,
grouped by namespace, plus a typed request-builder function per command.

Typical workflow::

    escligen generate --branch 8.15 --output build
    python -m elasticsearch_cli.cli indices create my-index --input body.json

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware directories and configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    runtime: Helpers imported by the generated package at run time.
"""

__version__ = "0.1.0"
