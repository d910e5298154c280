"""Shared test fixtures for escligen.

Provides reusable fixtures for loading the synthetic specification,
running the pure pipeline stages, isolating configuration, managing
output state, and running CLI commands. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from escligen import runtime
from escligen.models import GeneratorConfig, Specification
from escligen.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"
MINI_SCHEMA = FIXTURES_DIR / "mini_schema.json"


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and runtime dispatcher after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()
    runtime.set_dispatcher(None)


# ---------------------------------------------------------------------------
# Raw spec fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


@pytest.fixture
def mini_raw() -> dict[str, Any]:
    """Load the raw synthetic ``schema.json`` as a fresh dict."""
    with open(MINI_SCHEMA) as f:
        return json.load(f)


def find_type(raw: dict[str, Any], namespace: str, name: str) -> dict[str, Any]:
    """Return the raw type entry ``namespace:name`` of *raw* (for mutation)."""
    for entry in raw["types"]:
        if entry["name"] == {"name": name, "namespace": namespace}:
            return entry
    raise KeyError(f"{namespace}:{name}")


def find_endpoint(raw: dict[str, Any], name: str) -> dict[str, Any]:
    for entry in raw["endpoints"]:
        if entry["name"] == name:
            return entry
    raise KeyError(name)


def instance_of(namespace: str, name: str) -> dict[str, Any]:
    return {"kind": "instance_of", "type": {"name": name, "namespace": namespace}}


def builtin(name: str) -> dict[str, Any]:
    return instance_of("_builtins", name)


def simple_endpoint(
    name: str,
    urls: list[tuple[str, list[str]]],
    path: list[dict[str, Any]] | None = None,
    query: list[dict[str, Any]] | None = None,
    body: dict[str, Any] | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Build a raw ``(endpoint, request type)`` pair for a one-off schema."""
    endpoint = {
        "name": name,
        "description": f"The {name} API.",
        "request": {"name": "Request", "namespace": name},
        "requestBodyRequired": False,
        "urls": [{"path": p, "methods": m} for p, m in urls],
    }
    request = {
        "kind": "request",
        "name": {"name": "Request", "namespace": name},
        "path": path or [],
        "query": query or [],
        "body": body or {"kind": "no_body"},
    }
    return endpoint, request


def schema_with(*pairs: tuple[dict[str, Any], dict[str, Any]], types: Any = ()) -> dict[str, Any]:
    """A minimal raw document holding *pairs* plus extra *types*."""
    return {
        "_info": {"title": "Test"},
        "endpoints": [endpoint for endpoint, _ in pairs],
        "types": [request for _, request in pairs] + list(types),
    }


# ---------------------------------------------------------------------------
# Parsed spec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mini_spec(mini_raw: dict[str, Any]) -> Specification:
    """Extracted synthetic specification."""
    from escligen.parser.extractor import extract_specification

    return extract_specification(copy.deepcopy(mini_raw))


@pytest.fixture
def mini_plan(mini_spec: Specification):  # noqa: ANN201
    """Pure pipeline stages run over the synthetic specification."""
    from escligen.generator.pipeline import plan_generation

    return plan_generation(mini_spec, GeneratorConfig())


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CACHE_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user state. Clears all ESCLIGEN_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "ESCLIGEN_SPEC",
        "ESCLIGEN_BRANCH",
        "ESCLIGEN_OUTPUT",
        "ESCLIGEN_PACKAGE",
        "ESCLIGEN_CLI_NAME",
        "ESCLIGEN_EXCLUDE",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Set up a quiet output manager for tests that don't care about output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Set up JSON output for tests that check JSON-formatted output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
