"""Load the Elasticsearch API specification from a URL, local file, or stdin.

This module handles all I/O for fetching the raw ``schema.json`` document
and converting it into a Python dictionary. JSON is expected, but YAML is
accepted as a fallback for hand-written test specifications.

The public functions are:

* :func:`schema_url` -- URL of ``schema.json`` on a branch of the upstream
  ``elasticsearch-specification`` repository.
* :func:`load_schema` -- Load and parse a document from any supported
  source, going through :class:`~escligen.cache.SchemaCache` for URLs.
* :func:`validate_schema_shape` -- Reject documents whose top level is not
  the ``schema.json`` layout.

After loading, the raw dict is passed to
:func:`~escligen.parser.extractor.extract_specification`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from escligen.cache import SchemaCache
from escligen.exceptions import SpecificationError
from escligen.models import GeneratorConfig
from escligen.output import debug

SCHEMA_URL_TEMPLATE = (
    "https://raw.githubusercontent.com/elastic/elasticsearch-specification/"
    "{branch}/output/schema/schema.json"
)

ALLOWED_TOP_LEVEL_KEYS = frozenset({"_info", "endpoints", "types"})


def schema_url(branch: str = "main") -> str:
    """Return the raw ``schema.json`` URL for *branch*.

    Example::

        >>> schema_url("8.15")
        'https://raw.githubusercontent.com/elastic/elasticsearch-specification/8.15/output/schema/schema.json'
    """
    return SCHEMA_URL_TEMPLATE.format(branch=branch)


def source_for(config: GeneratorConfig) -> str:
    """Pick the document source for a run: an explicit spec beats the branch."""
    if config.spec:
        return config.spec
    return schema_url(config.branch)


def load_schema(
    source: str,
    cache: Optional[SchemaCache] = None,
    refresh: bool = False,
) -> dict[str, Any]:
    """Load a specification document from URL, file path, or stdin (``-``).

    Args:
        source: A URL (http/https), file path, or ``-`` for stdin.
        cache: Optional download cache, consulted for URL sources only.
        refresh: Ignore any cached copy and download again.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SpecificationError: If the source cannot be loaded or parsed.
    """
    if source == "-":
        return _load_from_stdin()
    if source.startswith(("http://", "https://")):
        return _load_from_url(source, cache, refresh)
    return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecificationError(f"Failed to read specification from stdin: {exc}") from exc

    if not content.strip():
        raise SpecificationError("No specification received on stdin")

    return _parse_content(content, hint="stdin")


def _load_from_url(
    url: str,
    cache: Optional[SchemaCache],
    refresh: bool,
) -> dict[str, Any]:
    """Fetch the document from *url*, reusing a cached copy when allowed.

    Only documents that parse successfully are written to the cache.
    """
    if cache is not None and not refresh:
        cached = cache.get(url)
        if cached is not None:
            debug(f"Using cached specification for {url}")
            return _parse_content(cached, hint="json")

    debug(f"Downloading specification from {url}")
    try:
        response = httpx.get(url, timeout=60.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecificationError(
            f"HTTP {exc.response.status_code} fetching specification from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecificationError(f"Failed to fetch specification from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = "yaml" if "yaml" in content_type else ""
    result = _parse_content(response.text, hint=hint)

    if cache is not None:
        cache.set(url, response.text)
    return result


def _load_from_file(path: str) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecificationError(f"Specification file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecificationError(f"Failed to read specification file {path}: {exc}") from exc

    if not content.strip():
        raise SpecificationError(f"Specification file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = "json" if suffix == ".json" else "yaml" if suffix in (".yaml", ".yml") else ""
    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON, falling back to YAML unless *hint* is ``json``.

    Raises:
        SpecificationError: If neither parser accepts the content, or the
            document is not a mapping.
    """
    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecificationError(f"Invalid JSON: {exc}") from exc
            json_error: Optional[Exception] = exc
    else:
        json_error = None

    try:
        return _require_mapping(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        msg = "Failed to parse specification as JSON or YAML"
        if json_error is not None:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise SpecificationError(msg) from exc


def _require_mapping(document: Any) -> dict[str, Any]:
    if not isinstance(document, dict):
        kind = type(document).__name__ if document is not None else "empty document"
        raise SpecificationError(f"Specification must be a JSON object (got {kind})")
    return document


def validate_schema_shape(raw: dict[str, Any]) -> None:
    """Check that *raw* has the top-level layout of ``schema.json``.

    The document must carry ``endpoints`` and ``types`` arrays; ``_info`` is
    optional. Any other top-level key means the input is a different
    dialect (an OpenAPI document, a later schema revision) and is rejected
    rather than half-understood.

    Raises:
        SpecificationError: Naming the unknown or missing keys.
    """
    unknown = sorted(set(raw) - ALLOWED_TOP_LEVEL_KEYS)
    if unknown:
        raise SpecificationError(
            "Unknown top-level key(s) in specification: "
            + ", ".join(unknown)
            + f" (expected only {', '.join(sorted(ALLOWED_TOP_LEVEL_KEYS))})"
        )
    for key in ("endpoints", "types"):
        if key not in raw:
            raise SpecificationError(f"Specification is missing the '{key}' array")
        if not isinstance(raw[key], list):
            raise SpecificationError(
                f"Specification '{key}' must be an array (got {type(raw[key]).__name__})"
            )
    info = raw.get("_info")
    if info is not None and not isinstance(info, dict):
        raise SpecificationError("Specification '_info' must be an object")
