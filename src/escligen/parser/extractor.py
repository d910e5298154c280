"""Build a frozen :class:`~escligen.models.Specification` from raw ``schema.json``.

The single public entry point is :func:`extract_specification`. Private
helpers each handle one construct of the document:

* ``_extract_type`` -- dispatch on the ``kind`` of a type definition
  (``interface``, ``request``, ``response``, ``enum``, ``type_alias``).
* ``_extract_value`` -- the recursive ``ValueOf`` variants.
* ``_extract_property`` -- struct properties and request parameters.
* ``_extract_endpoint`` -- endpoint metadata and URL templates.

Types of the ``_builtins`` namespace are never declared in the document;
they are synthesised here as :class:`~escligen.models.PrimitiveType`
entries so that every reference has a definition to resolve to.

Anything the models do not know (an unrecognised type kind, value kind,
body kind or HTTP method) is a :class:`~escligen.exceptions.SpecificationError`
whose message carries the location in the document, e.g.
``types[12] (indices.create:Request).query[3]``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from escligen.exceptions import NamingConflictError, SpecificationError
from escligen.models import (
    AliasType,
    ArrayOf,
    Body,
    Deprecation,
    DictionaryOf,
    EndpointDefinition,
    EnumMember,
    EnumType,
    HTTPMethod,
    Inherits,
    InstanceOf,
    LiteralValue,
    NoBody,
    PrimitiveType,
    PropertiesBody,
    Property,
    SpecInfo,
    Specification,
    StructType,
    TypeDefinition,
    TypeName,
    UnionOf,
    UnionType,
    UrlTemplate,
    UserDefinedValue,
    ValueBody,
    ValueOf,
)
from escligen.output import debug

BUILTINS_NAMESPACE = "_builtins"
BUILTIN_PRIMITIVES = ("string", "boolean", "number", "null", "void", "binary")

_STRUCT_KINDS = frozenset({"interface", "request", "response"})
_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)


def extract_specification(raw: dict[str, Any]) -> Specification:
    """Extract a :class:`~escligen.models.Specification` from a raw document.

    Args:
        raw: The document as returned by
            :func:`~escligen.parser.loader.load_schema` and checked by
            :func:`~escligen.parser.loader.validate_schema_shape`.

    Returns:
        The immutable specification: type arena plus endpoints in document
        order.

    Raises:
        SpecificationError: On malformed constructs, duplicate type ids or
            duplicate endpoint names.

    Example::

        raw = load_schema("schema.json")
        validate_schema_shape(raw)
        spec = extract_specification(raw)
        print(len(spec.endpoints), "endpoints")
    """
    types: dict[str, TypeDefinition] = {}
    for primitive in BUILTIN_PRIMITIVES:
        name = TypeName(namespace=BUILTINS_NAMESPACE, name=primitive)
        types[name.id] = PrimitiveType(name=name)

    for index, raw_type in enumerate(raw.get("types", [])):
        location = f"types[{index}]"
        try:
            definition = _extract_type(raw_type, location)
        except ValidationError as exc:
            raise SpecificationError(f"{location}: invalid type definition: {exc}") from exc
        type_id = definition.name.id
        if definition.name.namespace == BUILTINS_NAMESPACE:
            debug(f"Ignoring declared builtin type {type_id}")
            continue
        if type_id in types:
            raise SpecificationError(f"Duplicate type definition '{type_id}' at {location}")
        types[type_id] = definition

    endpoints: list[EndpointDefinition] = []
    seen: set[str] = set()
    for index, raw_endpoint in enumerate(raw.get("endpoints", [])):
        try:
            endpoint = _extract_endpoint(raw_endpoint, f"endpoints[{index}]")
        except ValidationError as exc:
            raise SpecificationError(f"endpoints[{index}]: invalid endpoint: {exc}") from exc
        if endpoint.name in seen:
            raise NamingConflictError(
                f"Duplicate endpoint name '{endpoint.name}' at endpoints[{index}]: "
                "two endpoints claim the same command"
            )
        seen.add(endpoint.name)
        endpoints.append(endpoint)

    return Specification(
        info=_extract_info(raw.get("_info") or {}),
        types=types,
        endpoints=endpoints,
    )


def _extract_info(raw: dict[str, Any]) -> SpecInfo:
    license_info = raw.get("license")
    license_name = license_info.get("name") if isinstance(license_info, dict) else None
    title = raw.get("title")
    if title:
        return SpecInfo(title=title, license=license_name)
    return SpecInfo(license=license_name)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


def _extract_type(raw: Any, location: str) -> TypeDefinition:
    if not isinstance(raw, dict):
        raise SpecificationError(f"{location}: type definition must be an object")

    name = _extract_type_name(raw.get("name"), f"{location}.name")
    where = f"{location} ({name.id})"
    kind = raw.get("kind")
    description = raw.get("description") or ""
    generics = [
        _extract_type_name(g, f"{where}.generics[{i}]").id
        for i, g in enumerate(raw.get("generics") or [])
    ]

    if kind in _STRUCT_KINDS:
        return StructType(
            name=name,
            schema_kind=kind,
            description=description,
            properties=_extract_properties(raw.get("properties"), f"{where}.properties"),
            generics=generics,
            inherits=_extract_inherits(raw.get("inherits"), f"{where}.inherits"),
            behaviors=[
                _extract_inherits(b, f"{where}.behaviors[{i}]")
                for i, b in enumerate(raw.get("behaviors") or [])
            ],
            path=_extract_properties(raw.get("path"), f"{where}.path"),
            query=_extract_properties(raw.get("query"), f"{where}.query"),
            body=_extract_body(raw.get("body"), f"{where}.body") if kind != "interface" else None,
            attached_behaviors=list(raw.get("attachedBehaviors") or []),
        )

    if kind == "enum":
        members = []
        for i, member in enumerate(raw.get("members") or []):
            if not isinstance(member, dict) or not member.get("name"):
                raise SpecificationError(f"{where}.members[{i}]: enum member without a name")
            members.append(
                EnumMember(
                    name=str(member["name"]),
                    aliases=[str(a) for a in member.get("aliases") or []],
                    description=member.get("description") or "",
                )
            )
        return EnumType(
            name=name,
            description=description,
            members=members,
            is_open=bool(raw.get("isOpen", False)),
        )

    if kind == "type_alias":
        value = _extract_value(raw.get("type"), f"{where}.type")
        if isinstance(value, UnionOf):
            variants = raw.get("variants") or {}
            return UnionType(
                name=name,
                description=description,
                items=value.items,
                generics=generics,
                variants=variants.get("kind"),
                tag=variants.get("tag"),
                codegen_names=list(raw.get("codegenNames") or []),
            )
        return AliasType(name=name, description=description, value=value, generics=generics)

    raise SpecificationError(f"{where}: unknown type kind {kind!r}")


def _extract_type_name(raw: Any, location: str) -> TypeName:
    if not isinstance(raw, dict) or not raw.get("name") or raw.get("namespace") is None:
        raise SpecificationError(f"{location}: expected a type name with namespace and name")
    return TypeName(namespace=str(raw["namespace"]), name=str(raw["name"]))


def _extract_inherits(raw: Any, location: str) -> Optional[Inherits]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise SpecificationError(f"{location}: expected an object")
    return Inherits(
        type=_extract_type_name(raw.get("type"), f"{location}.type").id,
        generics=[
            _extract_value(g, f"{location}.generics[{i}]")
            for i, g in enumerate(raw.get("generics") or [])
        ],
    )


def _extract_value(raw: Any, location: str) -> ValueOf:
    """Convert one ``ValueOf`` object, recursing into nested values."""
    if not isinstance(raw, dict):
        raise SpecificationError(f"{location}: expected a value definition object")

    kind = raw.get("kind")
    if kind == "instance_of":
        return InstanceOf(
            type=_extract_type_name(raw.get("type"), f"{location}.type").id,
            generics=[
                _extract_value(g, f"{location}.generics[{i}]")
                for i, g in enumerate(raw.get("generics") or [])
            ],
        )
    if kind == "array_of":
        return ArrayOf(value=_extract_value(raw.get("value"), f"{location}.value"))
    if kind == "dictionary_of":
        return DictionaryOf(
            key=_extract_value(raw.get("key"), f"{location}.key"),
            value=_extract_value(raw.get("value"), f"{location}.value"),
            single_key=bool(raw.get("singleKey", False)),
        )
    if kind == "union_of":
        items = raw.get("items") or []
        if not items:
            raise SpecificationError(f"{location}: union without members")
        return UnionOf(
            items=[_extract_value(item, f"{location}.items[{i}]") for i, item in enumerate(items)]
        )
    if kind == "literal_value":
        if "value" not in raw:
            raise SpecificationError(f"{location}: literal without a value")
        return LiteralValue(value=raw["value"])
    if kind == "user_defined_value":
        return UserDefinedValue()

    raise SpecificationError(f"{location}: unknown value kind {kind!r}")


def _extract_properties(raw: Any, location: str) -> list[Property]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SpecificationError(f"{location}: expected an array of properties")
    return [_extract_property(p, f"{location}[{i}]") for i, p in enumerate(raw)]


def _extract_property(raw: Any, location: str) -> Property:
    if not isinstance(raw, dict) or not raw.get("name"):
        raise SpecificationError(f"{location}: property without a name")
    where = f"{location} ({raw['name']})"
    availability = (raw.get("availability") or {}).get("stack") or {}
    return Property(
        name=str(raw["name"]),
        type=_extract_value(raw.get("type"), f"{where}.type"),
        required=bool(raw.get("required", False)),
        description=raw.get("description") or "",
        server_default=raw.get("serverDefault"),
        deprecation=_extract_deprecation(raw.get("deprecation")),
        stability=availability.get("stability"),
    )


def _extract_body(raw: Any, location: str) -> Body:
    if raw is None:
        return NoBody()
    if not isinstance(raw, dict):
        raise SpecificationError(f"{location}: expected a body object")
    kind = raw.get("kind")
    if kind == "no_body":
        return NoBody()
    if kind == "properties":
        return PropertiesBody(
            properties=_extract_properties(raw.get("properties"), f"{location}.properties")
        )
    if kind == "value":
        return ValueBody(
            value=_extract_value(raw.get("value"), f"{location}.value"),
            codegen_name=raw.get("codegenName"),
        )
    raise SpecificationError(f"{location}: unknown body kind {kind!r}")


def _extract_deprecation(raw: Any) -> Optional[Deprecation]:
    if not isinstance(raw, dict):
        return None
    return Deprecation(
        version=str(raw.get("version") or ""),
        description=raw.get("description") or "",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


def _extract_endpoint(raw: Any, location: str) -> EndpointDefinition:
    if not isinstance(raw, dict) or not raw.get("name"):
        raise SpecificationError(f"{location}: endpoint without a name")
    name = str(raw["name"])
    where = f"{location} ({name})"

    urls: list[UrlTemplate] = []
    for i, url in enumerate(raw.get("urls") or []):
        if not isinstance(url, dict) or not url.get("path"):
            raise SpecificationError(f"{where}.urls[{i}]: URL template without a path")
        methods = [str(m).upper() for m in url.get("methods") or []]
        unknown = [m for m in methods if m not in _HTTP_METHODS]
        if not methods or unknown:
            raise SpecificationError(
                f"{where}.urls[{i}]: invalid HTTP methods {url.get('methods')!r}"
            )
        urls.append(
            UrlTemplate(
                path=str(url["path"]),
                methods=[HTTPMethod(m) for m in methods],
                deprecation=_extract_deprecation(url.get("deprecation")),
            )
        )
    if not urls:
        raise SpecificationError(f"{where}: endpoint declares no URL templates")

    stack = (raw.get("availability") or {}).get("stack") or {}
    request = raw.get("request")
    response = raw.get("response")
    return EndpointDefinition(
        name=name,
        description=raw.get("description") or "",
        doc_url=raw.get("docUrl"),
        urls=urls,
        request=_extract_type_name(request, f"{where}.request").id if request else None,
        response=_extract_type_name(response, f"{where}.response").id if response else None,
        request_media_types=list(raw.get("requestMediaType") or []),
        response_media_types=list(raw.get("responseMediaType") or []),
        body_required=bool(raw.get("requestBodyRequired", False)),
        deprecation=_extract_deprecation(raw.get("deprecation")),
        stability=stack.get("stability"),
        visibility=stack.get("visibility"),
        since=stack.get("since"),
    )
