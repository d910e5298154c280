"""Deterministic case conversion and collision detection for generated names.

Every name the generator emits -- command and namespace names, flags,
Python identifiers, module names, enum classes and enum members -- is
derived from a specification name by one rule:

1. :func:`split_words` splits on ``_``, ``-``, ``.``, whitespace and any
   other non-alphanumeric character, and on camelCase boundaries
   (``XMLParser`` gives ``xml``, ``parser``), then lowercases.
2. The words are joined with ``-`` for command-line names and with ``_``
   for Python identifiers.

So ``bar_baz``, ``bar-baz`` and ``barBaz`` all become ``bar-baz`` on the
command line. Because the rule is lossy, every scope that receives names
goes through a :class:`NameRegistry`, which raises
:class:`~escligen.exceptions.NamingConflictError` instead of silently
letting one name shadow another.
"""

from __future__ import annotations

import keyword
import re

from escligen.exceptions import NamingConflictError

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")

RESERVED_FLAGS = frozenset({"help", "input", "header"})
"""Flags every generated command defines for itself."""

RESERVED_IDENTIFIERS = frozenset(
    {
        "app",
        "descriptor",
        "enums",
        "header",
        "headers",
        "input_file",
        "payload",
        "runtime",
        "typer",
    }
)
"""Parameter, local and module names used inside generated functions."""


def split_words(name: str) -> list[str]:
    """Split *name* into lowercase words.

    Example::

        >>> split_words("ignore_unavailable")
        ['ignore', 'unavailable']
        >>> split_words("bar-baz")
        ['bar', 'baz']
        >>> split_words("waitForActiveShards")
        ['wait', 'for', 'active', 'shards']
        >>> split_words("_source")
        ['source']
    """
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", name)
    spaced = _ACRONYM_BOUNDARY.sub(r"\1 \2", spaced)
    return [w.lower() for w in _NON_ALNUM.split(spaced) if w]


def cli_name(name: str) -> str:
    """Command-line spelling of *name* (``bar_baz`` -> ``bar-baz``)."""
    words = split_words(name)
    if not words:
        raise NamingConflictError(f"Name {name!r} has no usable characters")
    return "-".join(words)


def flag_name(name: str) -> str:
    """``--flag`` spelling of a parameter, avoiding the reserved flags."""
    base = cli_name(name)
    if base in RESERVED_FLAGS:
        base = f"{base}-param"
    return f"--{base}"


def python_identifier(name: str) -> str:
    """Valid, non-reserved Python identifier for *name*.

    Leading digits get an underscore prefix; keywords and
    :data:`RESERVED_IDENTIFIERS` get a trailing underscore (PEP 8).
    """
    words = split_words(name)
    result = "_".join(words) or "param"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result) or result in RESERVED_IDENTIFIERS:
        result = f"{result}_"
    return result


def module_name(path: tuple[str, ...]) -> str:
    """Python module name of a namespace; the root namespace is ``core``."""
    if not path:
        return "core"
    return "_".join(python_identifier(segment) for segment in path)


def class_name(name: str) -> str:
    """``CamelCase`` class name, e.g. ``expand_wildcard`` -> ``ExpandWildcard``."""
    words = split_words(name)
    result = "".join(w.capitalize() for w in words) or "Unnamed"
    if result[0].isdigit():
        result = f"_{result}"
    return result


def enum_member_name(value: str) -> str:
    """``UPPER_SNAKE`` member name for an enum value (``wait_for`` -> ``WAIT_FOR``)."""
    words = split_words(value)
    result = "_".join(words).upper()
    if not result:
        # Symbol-only values such as "*" are spelled by code point.
        result = "V_" + "_".join(f"{ord(c):X}" for c in value) if value else "EMPTY"
    if result[0].isdigit():
        result = f"V_{result}"
    return result


class NameRegistry:
    """Names claimed within one scope, keyed by generated name.

    Args:
        scope: Description used in error messages (e.g. ``"namespace 'indices'"``).

    Example::

        registry = NameRegistry("command 'indices create'")
        registry.claim("--wait-for-active-shards", "wait_for_active_shards")
        registry.claim("--wait-for-active-shards", "waitForActiveShards")  # raises
    """

    def __init__(self, scope: str) -> None:
        self._scope = scope
        self._owners: dict[str, str] = {}

    def claim(self, generated: str, owner: str) -> str:
        """Record that *owner* maps to *generated* in this scope.

        Raises:
            NamingConflictError: If a different owner already maps there.
        """
        existing = self._owners.get(generated)
        if existing is not None and existing != owner:
            raise NamingConflictError(
                f"Naming conflict in {self._scope}: '{existing}' and '{owner}' "
                f"both map to '{generated}'"
            )
        self._owners[generated] = owner
        return generated

    def __contains__(self, generated: str) -> bool:
        return generated in self._owners
