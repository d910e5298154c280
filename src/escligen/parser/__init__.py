"""Specification parser -- load ``schema.json``, extract and resolve types.

This sub-package is responsible for the first half of the escligen
pipeline: turning the raw specification document (local file, stdin or a
branch of the elasticsearch-specification repository) into a
:class:`~escligen.models.Specification` whose reachable types have been
resolved into :class:`~escligen.models.ResolvedShape` values.

Typical usage::

    from escligen.parser import load_schema, validate_schema_shape
    from escligen.parser import extract_specification, resolve_types

    raw = load_schema("./schema.json")
    validate_schema_shape(raw)
    spec = extract_specification(raw)
    resolver = resolve_types(spec)

Sub-modules:

* :mod:`~escligen.parser.loader` -- I/O layer (URL, file, stdin) plus the
  top-level shape check.
* :mod:`~escligen.parser.extractor` -- Validates every endpoint and type
  entry into the pydantic specification model.
* :mod:`~escligen.parser.resolver` -- Alias expansion, union checks and
  struct reachability, with cycle and dangling-reference detection.
"""

from escligen.parser.extractor import extract_specification
from escligen.parser.loader import load_schema, validate_schema_shape
from escligen.parser.resolver import TypeResolver, resolve_types

__all__ = [
    "load_schema",
    "validate_schema_shape",
    "extract_specification",
    "TypeResolver",
    "resolve_types",
]
