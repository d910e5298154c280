"""Built-in CLI sub-commands for escligen.

* :mod:`~escligen.commands.generate` -- render and write the package.
* :mod:`~escligen.commands.inspect` -- read-only views of the catalog and
  type resolution.

``generate`` is a plain callback registered directly on the root app;
``inspect`` is a :class:`typer.Typer` sub-application.
"""
