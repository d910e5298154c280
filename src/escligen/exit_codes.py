"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to one failure category and is referenced by the
corresponding :class:`~escligen.exceptions.GeneratorError` subclass. Build
scripts that run the generator can branch on the exit code instead of
parsing stderr.

Example::

    $ escligen generate --spec broken.json
    $ echo $?
    8   # EXIT_TYPE_RESOLUTION_ERROR -- a type reference did not resolve
"""

EXIT_SUCCESS = 0
"""Generation (or the generated command) completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, a value outside a closed set, or no route matched."""

EXIT_SPECIFICATION_ERROR = 7
"""The specification document could not be read, parsed or validated."""

EXIT_TYPE_RESOLUTION_ERROR = 8
"""A type reference was dangling, an alias chain was cyclic, or a shape is unsupported."""

EXIT_NAMING_CONFLICT = 9
"""Two specification names map to the same generated name."""

EXIT_WRITE_ERROR = 11
"""The generated output could not be written."""
