"""Build the command tree from an endpoint catalog.

This is the core algorithm of escligen. It takes the
:class:`~escligen.models.Catalog` and produces a strict tree of
:class:`~escligen.models.NamespaceCommand` and
:class:`~escligen.models.LeafCommand` definitions that the code writer
renders into Typer apps.

**Algorithm summary**

1. Create one namespace node per distinct dotted prefix; the root node has
   an empty path and lives in the ``core`` module.
2. For each endpoint, map its path and query parameters to arguments
   (:mod:`~escligen.generator.param_mapper`) and attach a payload input if
   the request has a body.
3. Claim every generated name in its scope -- sibling commands, module
   names, flags and identifiers within a command -- so that two
   specification names converging on one generated name raise
   :class:`~escligen.exceptions.NamingConflictError`.
4. Sort each node's children by command-line name.

Closed enums referenced by arguments are collected separately by
:func:`collect_enums` for the generated ``enums`` module.
"""

from __future__ import annotations

import textwrap
from typing import Optional

from escligen.generator.naming import (
    NameRegistry,
    cli_name,
    enum_member_name,
    module_name,
    python_identifier,
)
from escligen.generator.param_mapper import map_parameter
from escligen.models import (
    ArgumentDefinition,
    Catalog,
    CatalogEndpoint,
    CommandDefinition,
    EnumDefinition,
    EnumMemberDefinition,
    LeafCommand,
    NamespaceCommand,
    ParameterLocation,
    PayloadDefinition,
)
from escligen.output import debug
from escligen.parser.resolver import TypeResolver

ROOT_LABEL = "<root>"
DEFAULT_MEDIA_TYPE = "application/json"

_STABILITY_MARKERS = {"beta": "[BETA]", "experimental": "[EXPERIMENTAL]"}


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def synthesize_commands(
    catalog: Catalog,
    resolver: TypeResolver,
    title: str = "",
) -> NamespaceCommand:
    """Build the command tree for every endpoint in *catalog*.

    Args:
        catalog: The endpoint catalog.
        resolver: Resolver used to classify parameter types.
        title: Help text of the root command.

    Returns:
        The root :class:`~escligen.models.NamespaceCommand`.

    Raises:
        NamingConflictError: If two endpoints, namespaces, flags or
            identifiers map to the same generated name in one scope.
        TypeResolutionError: If a parameter's type has no command-line
            representation.
    """
    modules = NameRegistry("generated modules")
    leaves_by_namespace: dict[tuple[str, ...], list[LeafCommand]] = {}
    for namespace in catalog.namespaces:
        modules.claim(module_name(namespace.path), _label(namespace.path))
        leaves_by_namespace[namespace.path] = []

    for entry in catalog.endpoints:
        leaves_by_namespace[entry.namespace].append(_build_leaf(entry, resolver))

    root = _build_namespace((), leaves_by_namespace, title)
    debug(
        f"Synthesized {sum(1 for _ in root.leaves())} commands in "
        f"{sum(1 for _ in root.namespaces())} namespaces"
    )
    return root


def collect_enums(tree: NamespaceCommand) -> list[EnumDefinition]:
    """Closed enums used by the arguments of *tree*, sorted by class name.

    Raises:
        NamingConflictError: If two enum types share a class name, or two
            members of one enum share an identifier.
    """
    classes = NameRegistry("module 'enums'")
    found: dict[str, EnumDefinition] = {}
    for leaf in tree.leaves():
        for arg in leaf.arguments:
            if arg.enum_name is None or arg.enum_type_id is None:
                continue
            classes.claim(arg.enum_name, arg.enum_type_id)
            if arg.enum_name in found:
                continue
            members = NameRegistry(f"enum '{arg.enum_name}'")
            found[arg.enum_name] = EnumDefinition(
                class_name=arg.enum_name,
                type_id=arg.enum_type_id,
                members=[
                    EnumMemberDefinition(
                        identifier=members.claim(enum_member_name(value), value),
                        value=value,
                    )
                    for value in arg.choices
                ],
            )
    return [found[name] for name in sorted(found)]


# ---------------------------------------------------------------------------
# Tree construction
# ---------------------------------------------------------------------------


def _label(path: tuple[str, ...]) -> str:
    return ".".join(path) or ROOT_LABEL


def _build_namespace(
    path: tuple[str, ...],
    leaves_by_namespace: dict[tuple[str, ...], list[LeafCommand]],
    title: str,
) -> NamespaceCommand:
    siblings = NameRegistry(f"namespace '{_label(path)}'")
    functions = NameRegistry(f"module '{module_name(path)}'")
    children: list[CommandDefinition] = []

    for leaf in leaves_by_namespace.get(path, []):
        siblings.claim(leaf.name, leaf.endpoint)
        functions.claim(leaf.identifier, leaf.endpoint)
        children.append(leaf)

    depth = len(path) + 1
    subpaths = sorted(
        p for p in leaves_by_namespace if len(p) == depth and p[: len(path)] == path
    )
    for subpath in subpaths:
        child = _build_namespace(subpath, leaves_by_namespace, title)
        siblings.claim(child.name, _label(subpath))
        children.append(child)

    children.sort(key=lambda c: c.name)
    return NamespaceCommand(
        name=cli_name(path[-1]) if path else "",
        path=path,
        module=module_name(path),
        help=_namespace_help(path, title),
        children=children,
    )


def _namespace_help(path: tuple[str, ...], title: str) -> str:
    if not path:
        return title
    return f"{'.'.join(path)} APIs."


def _build_leaf(entry: CatalogEndpoint, resolver: TypeResolver) -> LeafCommand:
    endpoint = entry.endpoint
    flags = NameRegistry(f"command '{endpoint.name}'")
    identifiers = NameRegistry(f"command '{endpoint.name}' (identifiers)")
    arguments: list[ArgumentDefinition] = []

    everywhere = set.intersection(*(set(r.parameters) for r in entry.routes))
    for prop in entry.path_params:
        shape = resolver.shape_of(
            prop.type, f"{endpoint.name}.{prop.name}", entry.request_generics
        )
        arguments.append(
            map_parameter(
                prop,
                shape,
                ParameterLocation.PATH,
                endpoint.name,
                optional_path=prop.name not in everywhere,
            )
        )
    for prop in entry.query_params:
        shape = resolver.shape_of(
            prop.type, f"{endpoint.name}.{prop.name}", entry.request_generics
        )
        arguments.append(map_parameter(prop, shape, ParameterLocation.QUERY, endpoint.name))

    for arg in arguments:
        identifiers.claim(arg.identifier, arg.name)
        if arg.flag is not None:
            flags.claim(arg.flag, arg.name)

    payload: Optional[PayloadDefinition] = None
    if entry.has_body:
        media_types = endpoint.request_media_types or [DEFAULT_MEDIA_TYPE]
        payload = PayloadDefinition(
            required=endpoint.body_required,
            media_types=list(media_types),
            description=f"Request body ({', '.join(media_types)}); a file path or '-' for stdin.",
        )

    help_text = _build_help_text(entry)
    return LeafCommand(
        name=cli_name(entry.leaf),
        identifier=python_identifier(entry.leaf),
        endpoint=endpoint.name,
        help=help_text,
        short_help=_short_help(entry),
        arguments=_positional_first(arguments, entry.routes[0].parameters),
        payload=payload,
        deprecated=endpoint.deprecation is not None,
    )


def _positional_first(
    arguments: list[ArgumentDefinition], template_order: list[str]
) -> list[ArgumentDefinition]:
    """Positional arguments in URL order, then flags in declaration order."""
    positional = sorted(
        (a for a in arguments if a.positional), key=lambda a: template_order.index(a.name)
    )
    return positional + [a for a in arguments if not a.positional]


# ---------------------------------------------------------------------------
# Help / display helpers
# ---------------------------------------------------------------------------


def _markers(entry: CatalogEndpoint) -> list[str]:
    endpoint = entry.endpoint
    markers: list[str] = []
    if endpoint.deprecation is not None:
        version = endpoint.deprecation.version
        markers.append(f"[DEPRECATED since {version}]" if version else "[DEPRECATED]")
    if endpoint.stability in _STABILITY_MARKERS:
        markers.append(_STABILITY_MARKERS[endpoint.stability])
    if endpoint.visibility and endpoint.visibility != "public":
        markers.append(f"[{endpoint.visibility.upper()}]")
    return markers


def _build_help_text(entry: CatalogEndpoint) -> str:
    """Compose a command help string for *entry*.

    Availability markers come first, then the description and the
    documentation link. Deprecated URL forms and templates folded into
    another route are listed at the end rather than dropped.
    """
    endpoint = entry.endpoint
    parts: list[str] = []

    markers = _markers(entry)
    if markers:
        parts.append(" ".join(markers))
    if endpoint.deprecation is not None and endpoint.deprecation.description:
        parts.append(endpoint.deprecation.description)

    parts.append(endpoint.description or _route_summary(entry))
    if endpoint.doc_url:
        parts.extend(["", f"Documentation: {endpoint.doc_url}"])

    deprecated = [r.template for r in entry.routes if r.deprecated]
    if deprecated:
        parts.extend(["", f"Deprecated URL forms: {', '.join(deprecated)}"])
    alternates = [alt for r in entry.routes for alt in r.alternates]
    if alternates:
        parts.extend(["", f"Unreachable URL forms: {', '.join(alternates)}"])

    return "\n".join(parts)


def _route_summary(entry: CatalogEndpoint) -> str:
    route = entry.routes[0]
    return f"{'|'.join(route.methods)} {route.template}"


def _short_help(entry: CatalogEndpoint) -> str:
    """First line of the description, shortened for command listings."""
    first_line = (entry.endpoint.description or _route_summary(entry)).strip().split("\n", 1)[0]
    summary = textwrap.shorten(first_line, width=80, placeholder="...")
    markers = _markers(entry)
    return " ".join([*markers, summary]) if markers else summary
