"""CLI generator -- turn a resolved specification into a Python package.

This sub-package is the second half of the escligen pipeline:

* :mod:`~escligen.generator.catalog` -- Endpoint selection, URL template
  parsing and route folding.
* :mod:`~escligen.generator.naming` -- Case conversion and collision
  detection for every generated name.
* :mod:`~escligen.generator.param_mapper` -- Map specification properties
  to positional arguments and ``--option`` flags.
* :mod:`~escligen.generator.command_tree` -- Build the namespace/leaf
  command tree and collect closed enums.
* :mod:`~escligen.generator.bindings` -- One request-builder binding per
  leaf command.
* :mod:`~escligen.generator.writer` -- Render the Jinja2 templates and
  write the package atomically.
* :mod:`~escligen.generator.pipeline` -- Compose all of the above.
"""

from escligen.generator.pipeline import (
    GenerationPlan,
    GenerationResult,
    load_specification,
    plan_generation,
    run_generation,
)

__all__ = [
    "GenerationPlan",
    "GenerationResult",
    "load_specification",
    "plan_generation",
    "run_generation",
]
