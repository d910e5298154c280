"""Resolve type references and classify every reachable type into a shape.

The resolver walks every type reachable from the endpoints of a
:class:`~escligen.models.Specification` -- request path and query
parameters, attached behaviors, request and response bodies, struct
properties, inheritance, behaviors and generic arguments -- and reduces
each value to a :data:`~escligen.models.ResolvedShape`:

* Aliases are flattened to the shape of their target. Passing through one
  of the integral number aliases (``integer``, ``long``, ...) turns a
  ``number`` primitive into an ``integer`` one so that generated flags can
  be typed precisely.
* Structs are never inlined: a struct reference resolves to a
  :class:`~escligen.models.StructShape` carrying the type id, and its
  properties are resolved once, in a fresh alias context.
* An alias that reaches itself again without crossing a collection or a
  union is a cycle and raises :class:`~escligen.exceptions.TypeResolutionError`
  naming the chain (``a:TypeA -> a:TypeB -> a:TypeA``). Crossing a
  collection or union makes the recursion structural; the inner occurrence
  becomes a :class:`~escligen.models.RefShape`.
* Unions must be representable: they either declare variants or codegen
  names, or their members can be told apart by JSON kind (see
  :func:`_check_union`).

Cycle detection uses an explicit stack of the aliases currently being
expanded (mirroring the ``seen`` set used for ``$ref`` chains in OpenAPI
resolvers), so resolution terminates on any input.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Union

from escligen.exceptions import TypeResolutionError
from escligen.models import (
    AliasType,
    ArrayOf,
    CollectionShape,
    DictionaryOf,
    EndpointDefinition,
    EnumShape,
    EnumType,
    GenericShape,
    InstanceOf,
    LiteralShape,
    LiteralValue,
    PrimitiveShape,
    PrimitiveType,
    PropertiesBody,
    RefShape,
    ResolvedShape,
    Specification,
    StructShape,
    StructType,
    TypeDefinition,
    UnionOf,
    UnionShape,
    UnionType,
    UserDefinedShape,
    UserDefinedValue,
    ValueBody,
    ValueOf,
)
from escligen.output import debug

INTEGER_ALIASES = frozenset({"byte", "short", "integer", "long", "uint", "ulong"})
"""Alias names (in any namespace) whose ``number`` target is integral."""

SPEC_UTILS_NAMESPACE = "_spec_utils"

# Marker pushed on the expansion stack when entering an array, dictionary or
# union. Recursion that crosses one is structural, not an alias cycle.
_CONTAINER = None

Scope = dict[str, Optional[ResolvedShape]]


class TypeResolver:
    """Resolves values of one :class:`~escligen.models.Specification`.

    Results for non-generic aliases and unions are memoised, and each struct
    is visited once, so resolving the full Elasticsearch schema is linear in
    its size.

    Args:
        spec: The specification whose type arena is resolved.
    """

    def __init__(self, spec: Specification) -> None:
        self._spec = spec
        self._stack: list[Optional[str]] = []
        self._memo: dict[str, ResolvedShape] = {}
        self._visited: set[str] = set()
        self._struct_keys: dict[str, frozenset[str]] = {}

    @property
    def visited_types(self) -> list[str]:
        """Type ids of every struct visited so far, sorted."""
        return sorted(self._visited)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def resolve_endpoints(self, endpoints: Iterable[EndpointDefinition]) -> None:
        """Visit every type reachable from *endpoints*.

        Raises:
            TypeResolutionError: For dangling references, alias cycles and
                unsupported unions anywhere in the reachable graph.
        """
        for endpoint in sorted(endpoints, key=lambda e: e.name):
            referrer = f"endpoint '{endpoint.name}'"
            if endpoint.request is not None:
                request = self._require(endpoint.request, referrer)
                if not isinstance(request, StructType):
                    raise TypeResolutionError(
                        f"Request type '{endpoint.request}' of {referrer} is not a request struct"
                    )
                self.visit_struct(endpoint.request)
                for behavior in request.attached_behaviors:
                    self.visit_struct(self.behavior_id(behavior, endpoint.request))
            if endpoint.response is not None:
                self._require(endpoint.response, referrer)
                self.visit_struct(endpoint.response)

    def shape_of(
        self,
        value: ValueOf,
        referrer: str,
        generics: Iterable[str] = (),
    ) -> ResolvedShape:
        """Resolve a single value, e.g. the type of a query parameter.

        Args:
            value: The value to resolve.
            referrer: Description of where *value* occurs, used in errors.
            generics: Type parameters in scope (left unbound).
        """
        scope: Scope = {name: None for name in generics}
        saved, self._stack = self._stack, []
        try:
            return self._resolve(value, scope, referrer)
        finally:
            self._stack = saved

    def behavior_id(self, behavior: str, referrer: str) -> str:
        """Type id of an attached behavior, which must be a ``_spec_utils`` struct."""
        type_id = f"{SPEC_UTILS_NAMESPACE}:{behavior}"
        definition = self._require(type_id, f"'{referrer}' (attached behavior)")
        if not isinstance(definition, StructType):
            raise TypeResolutionError(
                f"Attached behavior '{type_id}' of '{referrer}' is not an interface"
            )
        return type_id

    def visit_struct(self, type_id: str) -> None:
        """Resolve every value inside the struct *type_id* (once)."""
        if type_id in self._visited:
            return
        definition = self._require(type_id, "struct visit")
        if not isinstance(definition, StructType):
            return
        self._visited.add(type_id)

        scope: Scope = {name: None for name in definition.generics}
        saved, self._stack = self._stack, []
        try:
            for prop in [*definition.properties, *definition.path, *definition.query]:
                self._resolve(prop.type, scope, f"{type_id}.{prop.name}")
            for parent in [definition.inherits, *definition.behaviors]:
                if parent is None:
                    continue
                self._require(parent.type, f"'{type_id}' (inherits)")
                for arg in parent.generics:
                    self._resolve(arg, scope, f"{type_id} (generic argument)")
                self.visit_struct(parent.type)
            body = definition.body
            if isinstance(body, PropertiesBody):
                for prop in body.properties:
                    self._resolve(prop.type, scope, f"{type_id}.body.{prop.name}")
            elif isinstance(body, ValueBody):
                self._resolve(body.value, scope, f"{type_id}.body")
        finally:
            self._stack = saved

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #

    def _require(self, type_id: str, referrer: str) -> TypeDefinition:
        definition = self._spec.get_type(type_id)
        if definition is None:
            raise TypeResolutionError(
                f"Type '{type_id}' referenced by {referrer} is not defined"
            )
        return definition

    def _resolve(self, value: ValueOf, scope: Scope, referrer: str) -> ResolvedShape:
        if isinstance(value, InstanceOf):
            return self._resolve_instance(value, scope, referrer)

        if isinstance(value, ArrayOf):
            self._stack.append(_CONTAINER)
            try:
                item = self._resolve(value.value, scope, referrer)
            finally:
                self._stack.pop()
            return CollectionShape(collection="array", item=item)

        if isinstance(value, DictionaryOf):
            self._stack.append(_CONTAINER)
            try:
                key = self._resolve(value.key, scope, referrer)
                item = self._resolve(value.value, scope, referrer)
            finally:
                self._stack.pop()
            return CollectionShape(collection="dictionary", key=key, item=item)

        if isinstance(value, UnionOf):
            members = self._resolve_members(value.items, scope, referrer)
            _check_union(members, f"inline union in {referrer}", self._keys_of)
            return UnionShape(members=members)

        if isinstance(value, LiteralValue):
            return LiteralShape(value=value.value)

        if isinstance(value, UserDefinedValue):
            return UserDefinedShape()

        raise TypeResolutionError(f"Unsupported value in {referrer}: {value!r}")

    def _resolve_members(
        self, items: list[ValueOf], scope: Scope, referrer: str
    ) -> list[ResolvedShape]:
        self._stack.append(_CONTAINER)
        try:
            return [self._resolve(item, scope, referrer) for item in items]
        finally:
            self._stack.pop()

    def _resolve_instance(
        self, value: InstanceOf, scope: Scope, referrer: str
    ) -> ResolvedShape:
        if value.type in scope:
            bound = scope[value.type]
            return bound if bound is not None else GenericShape(name=value.type)

        definition = self._require(value.type, f"'{referrer}'")
        args = [self._resolve(arg, scope, referrer) for arg in value.generics]

        if isinstance(definition, PrimitiveType):
            return PrimitiveShape(primitive=definition.name.name)

        if isinstance(definition, EnumType):
            return EnumShape(
                type_id=value.type,
                members=[m.name for m in definition.members],
                is_open=definition.is_open,
            )

        if isinstance(definition, StructType):
            self.visit_struct(value.type)
            return StructShape(type_id=value.type)

        return self._expand_alias(value.type, definition, args, referrer)

    def _expand_alias(
        self,
        type_id: str,
        definition: Union[AliasType, UnionType],
        args: list[ResolvedShape],
        referrer: str,
    ) -> ResolvedShape:
        if type_id in self._stack:
            start = self._stack.index(type_id)
            if _CONTAINER in self._stack[start:]:
                return RefShape(type_id=type_id)
            chain = [t for t in self._stack[start:] if t is not None] + [type_id]
            raise TypeResolutionError(f"Alias cycle detected: {' -> '.join(chain)}")

        generic = bool(definition.generics)
        if not generic and type_id in self._memo:
            return self._memo[type_id]

        scope: Scope = dict.fromkeys(definition.generics)
        scope.update(zip(definition.generics, args))

        self._stack.append(type_id)
        try:
            if isinstance(definition, UnionType):
                members = self._resolve_members(definition.items, scope, type_id)
                tagged = bool(definition.variants or definition.codegen_names)
                if not tagged:
                    _check_union(members, f"union '{type_id}'", self._keys_of)
                shape: ResolvedShape = UnionShape(type_id=type_id, members=members, tagged=tagged)
            else:
                shape = self._resolve(definition.value, scope, type_id)
                if (
                    isinstance(shape, PrimitiveShape)
                    and shape.primitive == "number"
                    and definition.name.name in INTEGER_ALIASES
                ):
                    shape = PrimitiveShape(primitive="integer")
        finally:
            self._stack.pop()

        if not generic and not _contains_ref(shape):
            self._memo[type_id] = shape
        return shape

    def _keys_of(self, type_id: str) -> frozenset[str]:
        """Property names of a struct including inherited ones."""
        if type_id in self._struct_keys:
            return self._struct_keys[type_id]
        self._struct_keys[type_id] = frozenset()
        definition = self._spec.get_type(type_id)
        keys: set[str] = set()
        if isinstance(definition, StructType):
            keys.update(p.name for p in definition.properties)
            if isinstance(definition.body, PropertiesBody):
                keys.update(p.name for p in definition.body.properties)
            if definition.inherits is not None:
                keys.update(self._keys_of(definition.inherits.type))
        self._struct_keys[type_id] = frozenset(keys)
        return self._struct_keys[type_id]


def resolve_types(
    spec: Specification,
    endpoints: Optional[Iterable[EndpointDefinition]] = None,
) -> TypeResolver:
    """Resolve every type reachable from *endpoints* (default: all of them).

    Returns:
        The :class:`TypeResolver`, reusable by later stages through
        :meth:`TypeResolver.shape_of`.

    Raises:
        TypeResolutionError: On the first dangling reference, alias cycle or
            unsupported union found.
    """
    resolver = TypeResolver(spec)
    resolver.resolve_endpoints(spec.endpoints if endpoints is None else endpoints)
    debug(f"Resolved {len(resolver.visited_types)} struct types")
    return resolver


# ---------------------------------------------------------------------------
# Union support
# ---------------------------------------------------------------------------


_JSON_CLASS = {
    "string": "string",
    "binary": "string",
    "integer": "integer",
    "number": "number",
    "boolean": "boolean",
    "null": "null",
    "void": "null",
}


def json_class(shape: ResolvedShape) -> Optional[str]:
    """JSON kind a value of *shape* serialises to, or ``None`` if opaque."""
    if isinstance(shape, PrimitiveShape):
        return _JSON_CLASS.get(shape.primitive)
    if isinstance(shape, EnumShape):
        return "string"
    if isinstance(shape, LiteralShape):
        if isinstance(shape.value, bool):
            return "boolean"
        if isinstance(shape.value, int):
            return "integer"
        if isinstance(shape.value, float):
            return "number"
        return "string"
    if isinstance(shape, StructShape):
        return "object"
    if isinstance(shape, CollectionShape):
        return "array" if shape.collection == "array" else "object"
    return None


def _flatten(members: list[ResolvedShape]) -> list[ResolvedShape]:
    flat: list[ResolvedShape] = []
    for member in members:
        if isinstance(member, UnionShape) and not member.tagged:
            flat.extend(_flatten(member.members))
        else:
            flat.append(member)
    return flat


def _check_union(
    members: list[ResolvedShape],
    label: str,
    keys_of: Callable[[str], frozenset[str]],
) -> None:
    """Reject unions whose members cannot be told apart.

    Members are grouped by :func:`json_class`; integral and floating-point
    numbers form separate classes, as ``1`` and ``1.5`` do. Closed members
    (enums that are not open, literals) are distinguishable by value. Among the rest,
    each JSON class may hold at most one distinct member, except that
    several structs may share the ``object`` class when their property
    sets differ. Opaque members (generic parameters, recursive references,
    user-defined values, tagged unions) are exempt.

    Raises:
        TypeResolutionError: Naming the union and the clashing members.
    """
    open_members: dict[str, list[ResolvedShape]] = {}
    for member in _flatten(members):
        cls = json_class(member)
        if cls is None:
            continue
        if isinstance(member, LiteralShape):
            continue
        if isinstance(member, EnumShape) and not member.is_open:
            continue
        bucket = open_members.setdefault(cls, [])
        if member not in bucket:
            bucket.append(member)

    for cls, bucket in sorted(open_members.items()):
        structs = [m for m in bucket if isinstance(m, StructShape)]
        others = [m for m in bucket if not isinstance(m, StructShape)]
        if len(others) > 1:
            raise TypeResolutionError(
                f"Unsupported {label}: members {_describe(others)} "
                f"are indistinguishable ({cls})"
            )
        seen: dict[frozenset[str], str] = {}
        for struct in structs:
            keys = keys_of(struct.type_id)
            if keys in seen:
                raise TypeResolutionError(
                    f"Unsupported {label}: structs '{seen[keys]}' and "
                    f"'{struct.type_id}' have the same properties"
                )
            seen[keys] = struct.type_id


def _describe(shapes: list[ResolvedShape]) -> str:
    parts = []
    for shape in shapes:
        type_id = getattr(shape, "type_id", None)
        if type_id:
            parts.append(type_id)
        elif isinstance(shape, PrimitiveShape):
            parts.append(shape.primitive)
        elif isinstance(shape, CollectionShape):
            parts.append(shape.collection)
        else:
            parts.append(shape.shape)
    return ", ".join(parts)


def _contains_ref(shape: ResolvedShape) -> bool:
    if isinstance(shape, RefShape):
        return True
    if isinstance(shape, UnionShape):
        return any(_contains_ref(m) for m in shape.members)
    if isinstance(shape, CollectionShape):
        return _contains_ref(shape.item) or (
            shape.key is not None and _contains_ref(shape.key)
        )
    return False
