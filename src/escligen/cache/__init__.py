"""Disk cache for downloaded specification documents.

This package provides :class:`SchemaCache`, consumed by
:func:`~escligen.parser.loader.load_schema` when the source is a URL. The
entry lifetime comes from ``cache_ttl_seconds`` in the generator
configuration; ``--refresh`` bypasses it.
"""

from escligen.cache.cache import SchemaCache

__all__ = ["SchemaCache"]
