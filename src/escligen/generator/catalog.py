"""Endpoint catalog: URL templates, parameter sets and namespaces.

For every selected endpoint the catalog joins the endpoint with its request
type and produces a :class:`~escligen.models.CatalogEndpoint`:

1. Each URL template is parsed into literal and parameter segments
   (:func:`parse_template`).
2. Path parameters are checked for bidirectional completeness: every
   placeholder must be declared, every declared parameter must appear in
   at least one template, and no parameter may be declared twice.
3. Query parameters are the request's own, followed by those of its
   attached behaviors (``CommonQueryParameters`` and friends); names that
   are already path parameters or were declared earlier are skipped.
4. Templates sharing one parameter set cannot be told apart by route
   selection. The non-deprecated (then first declared) one becomes the
   route and the others are recorded as its ``alternates``, with a
   warning.
5. Routes are ordered by parameter count, most specific first.

Endpoints are then partitioned into namespaces by their dotted names.
"""

from __future__ import annotations

import fnmatch
import re
from collections import defaultdict
from typing import Iterable, Optional, Sequence

from escligen.exceptions import NamingConflictError, SpecificationError
from escligen.models import (
    DEFAULT_EXCLUDES,
    Catalog,
    CatalogEndpoint,
    EndpointDefinition,
    Namespace,
    NoBody,
    PathSegment,
    Property,
    Route,
    Specification,
    StructType,
    UrlTemplate,
)
from escligen.output import debug, warning
from escligen.parser.resolver import TypeResolver

_PLACEHOLDER_RE = re.compile(r"\{([^{}]*)\}")


# ---------------------------------------------------------------------------
# Endpoint selection
# ---------------------------------------------------------------------------


def is_excluded(name: str, patterns: Iterable[str]) -> bool:
    """Return True when *name* matches any glob in *patterns*."""
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def select_endpoints(
    spec: Specification,
    exclude: Sequence[str] = DEFAULT_EXCLUDES,
) -> tuple[list[EndpointDefinition], list[str]]:
    """Split the endpoints of *spec* into included definitions and excluded names."""
    included: list[EndpointDefinition] = []
    excluded: list[str] = []
    for endpoint in spec.endpoints:
        if is_excluded(endpoint.name, exclude):
            excluded.append(endpoint.name)
        else:
            included.append(endpoint)
    return included, sorted(excluded)


# ---------------------------------------------------------------------------
# Templates and namespaces
# ---------------------------------------------------------------------------


def parse_template(template: str, endpoint: str = "?") -> list[PathSegment]:
    """Parse a URL template into ordered literal and parameter segments.

    Example::

        >>> [s.value for s in parse_template("/{index}/_doc/{id}")]
        ['/', 'index', '/_doc/', 'id']

    Raises:
        SpecificationError: For unbalanced braces, empty or repeated
            placeholder names, or a template not starting with ``/``.
    """
    if not template.startswith("/"):
        raise SpecificationError(
            f"Endpoint '{endpoint}': URL template '{template}' must start with '/'"
        )

    segments: list[PathSegment] = []
    seen: set[str] = set()
    position = 0
    for match in _PLACEHOLDER_RE.finditer(template):
        _append_literal(segments, template[position : match.start()], template, endpoint)
        name = match.group(1).strip()
        if not name:
            raise SpecificationError(
                f"Endpoint '{endpoint}': URL template '{template}' has an empty placeholder"
            )
        if name in seen:
            raise SpecificationError(
                f"Endpoint '{endpoint}': URL template '{template}' repeats '{{{name}}}'"
            )
        seen.add(name)
        segments.append(PathSegment(kind="parameter", value=name))
        position = match.end()
    _append_literal(segments, template[position:], template, endpoint)
    return segments


def _append_literal(
    segments: list[PathSegment], text: str, template: str, endpoint: str
) -> None:
    if "{" in text or "}" in text:
        raise SpecificationError(
            f"Endpoint '{endpoint}': URL template '{template}' has unbalanced braces"
        )
    if text:
        segments.append(PathSegment(kind="literal", value=text))


def split_endpoint_name(name: str) -> tuple[tuple[str, ...], str]:
    """Split a dotted endpoint name into ``(namespace, leaf)``.

    ``indices.create`` gives ``(("indices",), "create")``; ``search`` gives
    ``((), "search")``.

    Raises:
        SpecificationError: If any segment is empty (``"a..b"``, ``".a"``).
    """
    segments = name.split(".")
    if any(not segment for segment in segments):
        raise SpecificationError(f"Endpoint name '{name}' has an empty namespace segment")
    return tuple(segments[:-1]), segments[-1]


# ---------------------------------------------------------------------------
# Catalog construction
# ---------------------------------------------------------------------------


def build_catalog(
    spec: Specification,
    resolver: TypeResolver,
    exclude: Sequence[str] = DEFAULT_EXCLUDES,
) -> Catalog:
    """Build the :class:`~escligen.models.Catalog` of *spec*.

    Args:
        spec: The loaded specification.
        resolver: A resolver that has already visited the selected
            endpoints; used to locate attached behaviors.
        exclude: Glob patterns of endpoint names to leave out.

    Raises:
        SpecificationError: For malformed or incomplete URL templates.
        NamingConflictError: When a leaf command and a namespace share a
            name at the same level.
    """
    included, excluded = select_endpoints(spec, exclude)
    for name in excluded:
        debug(f"Excluding endpoint {name}")

    entries = [_catalog_endpoint(endpoint, spec, resolver) for endpoint in included]
    entries.sort(key=lambda e: (e.namespace, e.leaf))

    groups: dict[tuple[str, ...], list[str]] = defaultdict(list)
    for entry in entries:
        groups[entry.namespace].append(entry.name)
        for depth in range(len(entry.namespace)):
            groups.setdefault(entry.namespace[:depth], [])

    leaves = {(entry.namespace, entry.leaf): entry.name for entry in entries}
    for path in groups:
        if path and (path[:-1], path[-1]) in leaves:
            raise NamingConflictError(
                f"Endpoint '{leaves[(path[:-1], path[-1])]}' and namespace "
                f"'{'.'.join(path)}' claim the same name"
            )

    namespaces = [Namespace(path=path, endpoints=groups[path]) for path in sorted(groups)]
    return Catalog(endpoints=entries, namespaces=namespaces, excluded=excluded)


def _catalog_endpoint(
    endpoint: EndpointDefinition,
    spec: Specification,
    resolver: TypeResolver,
) -> CatalogEndpoint:
    namespace, leaf = split_endpoint_name(endpoint.name)

    request: Optional[StructType] = None
    if endpoint.request is not None:
        definition = spec.get_type(endpoint.request)
        if isinstance(definition, StructType):
            request = definition

    path_params = list(request.path) if request else []
    declared = _unique_names(path_params, endpoint.name, "path")

    parsed = [(url, parse_template(url.path, endpoint.name)) for url in endpoint.urls]
    used: set[str] = set()
    for url, segments in parsed:
        names = {s.value for s in segments if s.kind == "parameter"}
        undeclared = sorted(names - declared)
        if undeclared:
            raise SpecificationError(
                f"Endpoint '{endpoint.name}': URL template '{url.path}' references "
                f"undeclared path parameter(s): {', '.join(undeclared)}"
            )
        used |= names
    unused = sorted(declared - used)
    if unused:
        raise SpecificationError(
            f"Endpoint '{endpoint.name}': path parameter(s) {', '.join(unused)} "
            "appear in no URL template"
        )

    query_params: list[Property] = []
    if request is not None:
        _unique_names(request.query, endpoint.name, "query")
        seen = set(declared)
        for prop in request.query:
            if prop.name not in seen:
                seen.add(prop.name)
                query_params.append(prop)
        for behavior in request.attached_behaviors:
            behavior_type = spec.get_type(resolver.behavior_id(behavior, endpoint.request or ""))
            assert isinstance(behavior_type, StructType)  # checked by behavior_id
            for prop in behavior_type.properties:
                if prop.name not in seen:
                    seen.add(prop.name)
                    query_params.append(prop)

    return CatalogEndpoint(
        endpoint=endpoint,
        namespace=namespace,
        leaf=leaf,
        routes=_build_routes(endpoint.name, parsed),
        path_params=path_params,
        query_params=query_params,
        has_body=request is not None
        and request.body is not None
        and not isinstance(request.body, NoBody),
        request_generics=list(request.generics) if request else [],
    )


def _unique_names(params: list[Property], endpoint: str, location: str) -> set[str]:
    names: set[str] = set()
    for param in params:
        if param.name in names:
            raise SpecificationError(
                f"Endpoint '{endpoint}': {location} parameter '{param.name}' is declared twice"
            )
        names.add(param.name)
    return names


def _build_routes(
    endpoint: str,
    parsed: list[tuple[UrlTemplate, list[PathSegment]]],
) -> list[Route]:
    """Fold templates with equal parameter sets and order routes by specificity."""
    by_params: dict[frozenset[str], list[tuple[UrlTemplate, list[PathSegment]]]] = {}
    for url, segments in parsed:
        key = frozenset(s.value for s in segments if s.kind == "parameter")
        by_params.setdefault(key, []).append((url, segments))

    routes: list[Route] = []
    for group in by_params.values():
        primary_url, primary_segments = next(
            (item for item in group if item[0].deprecation is None), group[0]
        )
        alternates = [url.path for url, _ in group if url is not primary_url]
        if alternates:
            warning(
                f"Endpoint '{endpoint}': URL template(s) {', '.join(alternates)} accept "
                f"the same parameters as {primary_url.path}; only the latter is routed"
            )
        routes.append(
            Route(
                template=primary_url.path,
                methods=[m.value for m in primary_url.methods],
                parameters=[s.value for s in primary_segments if s.kind == "parameter"],
                segments=primary_segments,
                deprecated=primary_url.deprecation is not None,
                alternates=alternates,
            )
        )

    routes.sort(key=lambda r: -len(r.parameters))
    return routes
