"""Canonical Pydantic models shared across all escligen modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into five groups:

**Configuration** -- :class:`GeneratorConfig`, resolved by
:func:`escligen.config.resolve_config`.

**Specification** -- the frozen, normalised form of ``schema.json`` produced by
the loader: :class:`Specification` holds an arena of
:class:`TypeDefinition` variants keyed by type id (``"namespace:name"``) and
the ordered :class:`EndpointDefinition` list. Type references are stored as
type ids, never as nested objects, so recursive types need no special care.

**Resolved shapes** -- :data:`ResolvedShape` variants produced by the type
resolver after alias flattening.

**Catalog** -- :class:`Route`, :class:`CatalogEndpoint`, :class:`Namespace`
and :class:`Catalog`, produced by the endpoint catalog.

**Generator output** -- the :data:`CommandDefinition` tree,
:class:`EnumDefinition`, :class:`BindingDefinition`, and the runtime
:class:`RequestDescriptor`.

Closed variant sets are Pydantic discriminated unions on a ``kind`` (or
``shape``) literal so that ``model_validate`` and ``model_dump`` round-trip
them without custom code.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_EXCLUDES: tuple[str, ...] = ("knn_search", "_internal*")
"""Endpoint name patterns skipped unless the configuration overrides them."""


# --- Configuration ---


class GeneratorConfig(BaseModel):
    """Effective configuration of one generation run.

    Built by :func:`~escligen.config.resolve_config` from CLI flags,
    ``ESCLIGEN_*`` environment variables, ``./escligen.json`` and the
    defaults declared here.

    Example::

        GeneratorConfig(branch="8.15", output="build", package="escli_gen")
    """

    model_config = ConfigDict(extra="forbid")

    spec: Optional[str] = Field(
        default=None,
        description="URL, file path or '-' for the schema; takes priority over branch",
    )
    branch: str = Field(
        default="main",
        description="elasticsearch-specification branch to download when spec is unset",
    )
    output: str = Field(
        default="generated", description="Directory that receives the generated package"
    )
    package: str = Field(
        default="escli_generated", description="Import name of the generated package"
    )
    cli_name: str = Field(default="escli", description="Program name of the generated CLI")
    exclude: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDES),
        description="Glob patterns of endpoint names to leave out",
    )
    refresh: bool = Field(default=False, description="Bypass the schema download cache")
    cache_ttl_seconds: int = Field(
        default=86400, description="Lifetime of a cached schema download"
    )


# --- Specification ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods that may appear in a URL template declaration."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"


class TypeName(BaseModel):
    """Qualified name of a type in the specification."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    @property
    def id(self) -> str:
        """Stable identifier used as the arena key, ``"namespace:name"``."""
        return f"{self.namespace}:{self.name}"


class Deprecation(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = ""
    description: str = ""


class InstanceOf(BaseModel):
    """Reference to a named type, with optional generic arguments."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["instance_of"] = "instance_of"
    type: str
    generics: list[ValueOf] = Field(default_factory=list)


class ArrayOf(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["array_of"] = "array_of"
    value: ValueOf


class DictionaryOf(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["dictionary_of"] = "dictionary_of"
    key: ValueOf
    value: ValueOf
    single_key: bool = False


class UnionOf(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["union_of"] = "union_of"
    items: list[ValueOf]


class LiteralValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["literal_value"] = "literal_value"
    value: Union[bool, int, float, str]


class UserDefinedValue(BaseModel):
    """Arbitrary JSON supplied by the user (e.g. document sources)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["user_defined_value"] = "user_defined_value"


ValueOf = Annotated[
    Union[InstanceOf, ArrayOf, DictionaryOf, UnionOf, LiteralValue, UserDefinedValue],
    Field(discriminator="kind"),
]


class Property(BaseModel):
    """A struct property, or a path/query parameter of a request."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ValueOf
    required: bool = False
    description: str = ""
    server_default: Optional[Union[bool, int, float, str, list[str]]] = None
    deprecation: Optional[Deprecation] = None
    stability: Optional[str] = None


class Inherits(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    generics: list[ValueOf] = Field(default_factory=list)


class PropertiesBody(BaseModel):
    """Request or response body given as an inline list of properties."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["properties"] = "properties"
    properties: list[Property] = Field(default_factory=list)


class ValueBody(BaseModel):
    """Body whose whole value is a single type (e.g. an array of documents)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["value"] = "value"
    value: ValueOf
    codegen_name: Optional[str] = None


class NoBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["no_body"] = "no_body"


Body = Annotated[Union[PropertiesBody, ValueBody, NoBody], Field(discriminator="kind")]


class StructType(BaseModel):
    """Schema kinds ``interface``, ``request`` and ``response``.

    Request structs carry ``path``, ``query``, ``body`` and
    ``attached_behaviors``; response structs carry ``body``; interfaces
    carry ``properties``. Unused fields keep their empty defaults.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["struct"] = "struct"
    name: TypeName
    schema_kind: Literal["interface", "request", "response"] = "interface"
    description: str = ""
    properties: list[Property] = Field(default_factory=list)
    generics: list[str] = Field(default_factory=list)
    inherits: Optional[Inherits] = None
    behaviors: list[Inherits] = Field(default_factory=list)
    path: list[Property] = Field(default_factory=list)
    query: list[Property] = Field(default_factory=list)
    body: Optional[Body] = None
    attached_behaviors: list[str] = Field(default_factory=list)


class EnumMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    aliases: list[str] = Field(default_factory=list)
    description: str = ""


class EnumType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["enum"] = "enum"
    name: TypeName
    description: str = ""
    members: list[EnumMember] = Field(default_factory=list)
    is_open: bool = False


class UnionType(BaseModel):
    """A ``type_alias`` whose value is a union.

    ``variants`` records declared tagging (``internal_tag``,
    ``external_tag``, ``untagged``); ``codegen_names`` names each member.
    Either one makes the union representable regardless of its members.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["union"] = "union"
    name: TypeName
    description: str = ""
    items: list[ValueOf] = Field(default_factory=list)
    generics: list[str] = Field(default_factory=list)
    variants: Optional[str] = None
    tag: Optional[str] = None
    codegen_names: list[str] = Field(default_factory=list)


class AliasType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["alias"] = "alias"
    name: TypeName
    description: str = ""
    value: ValueOf
    generics: list[str] = Field(default_factory=list)


class PrimitiveType(BaseModel):
    """A ``_builtins`` type, synthesised by the loader."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["primitive"] = "primitive"
    name: TypeName


TypeDefinition = Annotated[
    Union[StructType, EnumType, UnionType, AliasType, PrimitiveType],
    Field(discriminator="kind"),
]


class UrlTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    methods: list[HTTPMethod]
    deprecation: Optional[Deprecation] = None


class EndpointDefinition(BaseModel):
    """One named API operation.

    Path and query parameters live on the request type referenced by
    ``request``; the endpoint catalog joins the two.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    doc_url: Optional[str] = None
    urls: list[UrlTemplate]
    request: Optional[str] = None
    response: Optional[str] = None
    request_media_types: list[str] = Field(default_factory=list)
    response_media_types: list[str] = Field(default_factory=list)
    body_required: bool = False
    deprecation: Optional[Deprecation] = None
    stability: Optional[str] = None
    visibility: Optional[str] = None
    since: Optional[str] = None


class SpecInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = "Elasticsearch Request & Response Specification"
    license: Optional[str] = None


class Specification(BaseModel):
    """The whole parsed document. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    info: SpecInfo = Field(default_factory=SpecInfo)
    types: dict[str, TypeDefinition] = Field(default_factory=dict)
    endpoints: list[EndpointDefinition] = Field(default_factory=list)

    def get_type(self, type_id: str) -> Optional[TypeDefinition]:
        return self.types.get(type_id)


# --- Resolved shapes ---


class PrimitiveShape(BaseModel):
    """``primitive`` is one of string, integer, number, boolean, null, binary, void."""

    model_config = ConfigDict(frozen=True)

    shape: Literal["primitive"] = "primitive"
    primitive: str


class EnumShape(BaseModel):
    model_config = ConfigDict(frozen=True)

    shape: Literal["enum"] = "enum"
    type_id: str
    members: list[str]
    is_open: bool = False


class LiteralShape(BaseModel):
    model_config = ConfigDict(frozen=True)

    shape: Literal["literal"] = "literal"
    value: Union[bool, int, float, str]


class StructShape(BaseModel):
    model_config = ConfigDict(frozen=True)

    shape: Literal["struct"] = "struct"
    type_id: str


class UnionShape(BaseModel):
    model_config = ConfigDict(frozen=True)

    shape: Literal["union"] = "union"
    type_id: Optional[str] = None
    members: list[ResolvedShape]
    tagged: bool = False


class CollectionShape(BaseModel):
    """An array (``key`` unset) or a dictionary."""

    model_config = ConfigDict(frozen=True)

    shape: Literal["collection"] = "collection"
    collection: Literal["array", "dictionary"]
    item: ResolvedShape
    key: Optional[ResolvedShape] = None


class RefShape(BaseModel):
    """Indirection to a type whose expansion would recurse."""

    model_config = ConfigDict(frozen=True)

    shape: Literal["ref"] = "ref"
    type_id: str


class GenericShape(BaseModel):
    """An unbound type parameter of a generic definition."""

    model_config = ConfigDict(frozen=True)

    shape: Literal["generic"] = "generic"
    name: str


class UserDefinedShape(BaseModel):
    model_config = ConfigDict(frozen=True)

    shape: Literal["user_defined"] = "user_defined"


ResolvedShape = Annotated[
    Union[
        PrimitiveShape,
        EnumShape,
        LiteralShape,
        StructShape,
        UnionShape,
        CollectionShape,
        RefShape,
        GenericShape,
        UserDefinedShape,
    ],
    Field(discriminator="shape"),
]


# --- Catalog ---


class PathSegment(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["literal", "parameter"]
    value: str


class Route(BaseModel):
    """One URL template of an endpoint with its methods and parameter set.

    ``alternates`` lists templates with the same parameter set that were
    folded into this route; route selection can never reach them.
    """

    model_config = ConfigDict(frozen=True)

    template: str
    methods: list[str]
    parameters: list[str] = Field(default_factory=list)
    segments: list[PathSegment] = Field(default_factory=list)
    deprecated: bool = False
    alternates: list[str] = Field(default_factory=list)


class CatalogEndpoint(BaseModel):
    """An endpoint joined with its request type, ready for synthesis."""

    model_config = ConfigDict(frozen=True)

    endpoint: EndpointDefinition
    namespace: tuple[str, ...]
    leaf: str
    routes: list[Route]
    path_params: list[Property] = Field(default_factory=list)
    query_params: list[Property] = Field(default_factory=list)
    has_body: bool = False
    request_generics: list[str] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.endpoint.name


class Namespace(BaseModel):
    """Grouping key derived from dotted endpoint names; ``()`` is the root."""

    model_config = ConfigDict(frozen=True)

    path: tuple[str, ...]
    endpoints: list[str] = Field(default_factory=list)


class Catalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    endpoints: list[CatalogEndpoint] = Field(default_factory=list)
    namespaces: list[Namespace] = Field(default_factory=list)
    excluded: list[str] = Field(default_factory=list)

    def get(self, name: str) -> Optional[CatalogEndpoint]:
        for entry in self.endpoints:
            if entry.name == name:
                return entry
        return None


# --- Generator output ---


class ParameterLocation(str, enum.Enum):
    PATH = "path"
    QUERY = "query"


class ArgumentKind(str, enum.Enum):
    """Command-line value kinds a parameter can map to."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    LIST = "list"


class ArgumentDefinition(BaseModel):
    """A positional argument or ``--flag`` of a leaf command.

    ``name`` is the wire name sent to the server, ``identifier`` the Python
    parameter name in the generated function, and ``flag`` the command-line
    spelling (``None`` for positional arguments). ``default`` is the
    server-side default, shown in help but never sent.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    identifier: str
    flag: Optional[str] = None
    location: ParameterLocation
    positional: bool = False
    required: bool = False
    kind: ArgumentKind = ArgumentKind.STRING
    item_kind: Optional[ArgumentKind] = None
    choices: list[str] = Field(default_factory=list)
    enum_name: Optional[str] = None
    enum_type_id: Optional[str] = None
    default: Optional[Any] = None
    description: str = ""
    deprecation: Optional[Deprecation] = None


class PayloadDefinition(BaseModel):
    """The single structured input that carries a request body."""

    model_config = ConfigDict(frozen=True)

    required: bool = False
    media_types: list[str] = Field(default_factory=list)
    description: str = ""


class LeafCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["leaf"] = "leaf"
    name: str
    identifier: str
    endpoint: str
    help: str = ""
    short_help: str = ""
    arguments: list[ArgumentDefinition] = Field(default_factory=list)
    payload: Optional[PayloadDefinition] = None
    deprecated: bool = False


class NamespaceCommand(BaseModel):
    """A namespace node. The root has ``name == ""`` and ``path == ()``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["namespace"] = "namespace"
    name: str
    path: tuple[str, ...] = ()
    module: str
    help: str = ""
    children: list[CommandDefinition] = Field(default_factory=list)

    def leaves(self) -> Iterator[LeafCommand]:
        """Yield every leaf in the subtree, depth first, in child order."""
        for child in self.children:
            if isinstance(child, LeafCommand):
                yield child
            else:
                yield from child.leaves()

    def namespaces(self) -> Iterator[NamespaceCommand]:
        """Yield this node and every namespace below it, depth first."""
        yield self
        for child in self.children:
            if isinstance(child, NamespaceCommand):
                yield from child.namespaces()


CommandDefinition = Annotated[Union[NamespaceCommand, LeafCommand], Field(discriminator="kind")]


class EnumMemberDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    value: str


class EnumDefinition(BaseModel):
    """A closed enum emitted into the generated ``enums`` module."""

    model_config = ConfigDict(frozen=True)

    class_name: str
    type_id: str
    members: list[EnumMemberDefinition]


class BindingParameter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    identifier: str
    location: ParameterLocation
    kind: ArgumentKind
    item_kind: Optional[ArgumentKind] = None
    choices: list[str] = Field(default_factory=list)
    required: bool = False


class BindingDefinition(BaseModel):
    """Per-endpoint request builder signature.

    ``routes`` are ordered most specific first so that route selection can
    take the first exact match.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str
    module: str
    function_name: str
    routes: list[Route]
    path_params: list[BindingParameter] = Field(default_factory=list)
    query_params: list[BindingParameter] = Field(default_factory=list)
    body: Optional[PayloadDefinition] = None

    @property
    def qualified_name(self) -> str:
        return f"{self.module}.{self.function_name}"


class RequestDescriptor(BaseModel):
    """A fully formed HTTP request, as produced by a generated binding."""

    method: str
    path: str
    query_string: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None

    @property
    def url(self) -> str:
        """Path plus query string, relative to the cluster base URL."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path


for _model in (
    InstanceOf,
    ArrayOf,
    DictionaryOf,
    UnionOf,
    Property,
    Inherits,
    ValueBody,
    PropertiesBody,
    StructType,
    UnionType,
    AliasType,
    UnionShape,
    CollectionShape,
    NamespaceCommand,
    Specification,
):
    _model.model_rebuild()
