"""Per-endpoint request bindings.

A binding is the pure function behind a leaf command: given path and query
values and an optional payload, it returns a
:class:`~escligen.models.RequestDescriptor`. :func:`emit_bindings` produces
one :class:`~escligen.models.BindingDefinition` per leaf of the command
tree; the writer renders each into the leaf's namespace module and lists
it in the generated ``registry`` module.
"""

from __future__ import annotations

from escligen.exceptions import GeneratorError
from escligen.models import (
    ArgumentDefinition,
    BindingDefinition,
    BindingParameter,
    Catalog,
    NamespaceCommand,
    ParameterLocation,
)


def binding_function_name(identifier: str) -> str:
    return f"build_{identifier}"


def emit_bindings(catalog: Catalog, tree: NamespaceCommand) -> list[BindingDefinition]:
    """Build the bindings for every leaf of *tree*, sorted by endpoint name.

    Raises:
        GeneratorError: If a leaf names an endpoint missing from *catalog*,
            or two leaves name the same endpoint.
    """
    bindings: dict[str, BindingDefinition] = {}
    for namespace in tree.namespaces():
        for leaf in namespace.children:
            if isinstance(leaf, NamespaceCommand):
                continue
            entry = catalog.get(leaf.endpoint)
            if entry is None:
                raise GeneratorError(
                    f"Command '{leaf.name}' targets unknown endpoint '{leaf.endpoint}'"
                )
            if leaf.endpoint in bindings:
                raise GeneratorError(f"Endpoint '{leaf.endpoint}' is bound twice")
            bindings[leaf.endpoint] = BindingDefinition(
                endpoint=leaf.endpoint,
                module=namespace.module,
                function_name=binding_function_name(leaf.identifier),
                routes=entry.routes,
                path_params=[
                    _parameter(a) for a in leaf.arguments if a.location == ParameterLocation.PATH
                ],
                query_params=[
                    _parameter(a) for a in leaf.arguments if a.location == ParameterLocation.QUERY
                ],
                body=leaf.payload,
            )

    missing = sorted(e.name for e in catalog.endpoints if e.name not in bindings)
    if missing:
        raise GeneratorError(f"Endpoints without a command: {', '.join(missing)}")
    return [bindings[name] for name in sorted(bindings)]


def _parameter(arg: ArgumentDefinition) -> BindingParameter:
    return BindingParameter(
        name=arg.name,
        identifier=arg.identifier,
        location=arg.location,
        kind=arg.kind,
        item_kind=arg.item_kind,
        choices=arg.choices,
        required=arg.required,
    )
