"""Exception hierarchy for escligen.

All exceptions inherit from :class:`GeneratorError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`escligen.exit_codes`.
The top-level handler in :func:`escligen.app.main` catches
``GeneratorError`` and exits with that code; unexpected exceptions produce a
crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Every generation error is fatal and is never retried. Messages always name
the offending entity (type id, endpoint name or parameter name) so that a
failing run against a new specification snapshot can be diagnosed from the
message alone.

Subclass hierarchy::

    GeneratorError          (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- SpecificationError  (exit 7)
    +-- TypeResolutionError (exit 8)
    +-- NamingConflictError (exit 9)
    +-- WriteError          (exit 11)
    +-- ConfigError         (exit 1)
"""

from escligen.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NAMING_CONFLICT,
    EXIT_SPECIFICATION_ERROR,
    EXIT_TYPE_RESOLUTION_ERROR,
    EXIT_WRITE_ERROR,
)


class GeneratorError(Exception):
    """Base exception for all escligen errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(GeneratorError):
    """Raised for invalid CLI input, including values outside a closed variant set."""

    exit_code = EXIT_INVALID_USAGE


class SpecificationError(GeneratorError):
    """Raised when the specification is unreadable, malformed, or internally inconsistent."""

    exit_code = EXIT_SPECIFICATION_ERROR


class TypeResolutionError(GeneratorError):
    """Raised for dangling type references, alias cycles, and unsupported shapes."""

    exit_code = EXIT_TYPE_RESOLUTION_ERROR


class NamingConflictError(GeneratorError):
    """Raised when two names collide after case conversion within one scope."""

    exit_code = EXIT_NAMING_CONFLICT


class WriteError(GeneratorError):
    """Raised when generated output cannot be written or swapped into place."""

    exit_code = EXIT_WRITE_ERROR


class ConfigError(GeneratorError):
    """Raised for configuration problems (invalid project file, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
