"""Map resolved request parameters to command-line arguments.

This module bridges the gap between the resolved shapes of a request's path
and query parameters and the arguments of a generated Typer command. It
turns a :class:`~escligen.models.Property` plus its
:data:`~escligen.models.ResolvedShape` into an
:class:`~escligen.models.ArgumentDefinition`, and supplies the annotation,
help and default strings the code writer renders for it.

**Mapping rules:**

* **Required path parameters** become positional :func:`typer.Argument`
  values. Optional path parameters (those missing from some URL template)
  and all query parameters become ``--flag`` options; required query
  parameters become required flags.
* **Primitive shapes** map directly: ``string`` to ``str``, ``integer`` to
  ``int``, ``number`` to ``float``, ``boolean`` to a ``--x/--no-x`` switch.
* **Closed enums, literals and unions of closed members** become choices.
  Open enums accept any string.
* **Arrays and ``T | T[]`` unions** become comma-separated lists, whose
  items may themselves be choices.
* **Structs and dictionaries** have no flag representation and raise
  :class:`~escligen.exceptions.TypeResolutionError`.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from escligen.exceptions import TypeResolutionError
from escligen.generator.naming import class_name, flag_name, python_identifier
from escligen.models import (
    ArgumentDefinition,
    ArgumentKind,
    CollectionShape,
    EnumShape,
    GenericShape,
    LiteralShape,
    ParameterLocation,
    PrimitiveShape,
    Property,
    ResolvedShape,
    UnionShape,
    UserDefinedShape,
)


# ---------------------------------------------------------------------------
# Type mapping
# ---------------------------------------------------------------------------

_PRIMITIVE_KINDS: dict[str, ArgumentKind] = {
    "string": ArgumentKind.STRING,
    "binary": ArgumentKind.STRING,
    "integer": ArgumentKind.INTEGER,
    "number": ArgumentKind.NUMBER,
    "boolean": ArgumentKind.BOOLEAN,
    "null": ArgumentKind.STRING,
    "void": ArgumentKind.STRING,
}

_PYTHON_TYPES: dict[ArgumentKind, str] = {
    ArgumentKind.STRING: "str",
    ArgumentKind.INTEGER: "int",
    ArgumentKind.NUMBER: "float",
    ArgumentKind.BOOLEAN: "bool",
    ArgumentKind.CHOICE: "str",
    ArgumentKind.LIST: "str",  # comma separated, split by the binding
}


class ValueKind(NamedTuple):
    """Command-line classification of one resolved shape."""

    kind: ArgumentKind
    item_kind: Optional[ArgumentKind] = None
    choices: tuple[str, ...] = ()
    enum_type_id: Optional[str] = None


def literal_text(value: object) -> str:
    """Wire spelling of a literal (``True`` -> ``"true"``)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def value_kind(shape: ResolvedShape, referrer: str) -> ValueKind:
    """Classify *shape* for use as a command-line value.

    Example::

        >>> value_kind(PrimitiveShape(primitive="integer"), "q").kind
        <ArgumentKind.INTEGER: 'integer'>

    Raises:
        TypeResolutionError: If *shape* is a struct, a dictionary, a
            recursive reference, or a list of lists.
    """
    if isinstance(shape, PrimitiveShape):
        return ValueKind(_PRIMITIVE_KINDS.get(shape.primitive, ArgumentKind.STRING))

    if isinstance(shape, EnumShape):
        if shape.is_open:
            return ValueKind(ArgumentKind.STRING)
        return ValueKind(
            ArgumentKind.CHOICE, choices=tuple(shape.members), enum_type_id=shape.type_id
        )

    if isinstance(shape, LiteralShape):
        return ValueKind(ArgumentKind.CHOICE, choices=(literal_text(shape.value),))

    if isinstance(shape, (GenericShape, UserDefinedShape)):
        return ValueKind(ArgumentKind.STRING)

    if isinstance(shape, CollectionShape) and shape.collection == "array":
        item = value_kind(shape.item, referrer)
        if item.kind == ArgumentKind.LIST:
            raise TypeResolutionError(f"Parameter {referrer} is a nested array")
        return ValueKind(ArgumentKind.LIST, item.kind, item.choices, item.enum_type_id)

    if isinstance(shape, UnionShape):
        return _union_kind(shape, referrer)

    raise TypeResolutionError(
        f"Parameter {referrer} has a {_shape_label(shape)} type, "
        "which has no command-line representation"
    )


def _shape_label(shape: ResolvedShape) -> str:
    if isinstance(shape, CollectionShape):
        return shape.collection
    return shape.shape


def _union_kind(shape: UnionShape, referrer: str) -> ValueKind:
    scalars: list[ValueKind] = []
    is_list = False
    for member in shape.members:
        kind = value_kind(member, referrer)
        if kind.kind == ArgumentKind.LIST:
            is_list = True
            item_kind = kind.item_kind or ArgumentKind.STRING
            scalars.append(ValueKind(item_kind, None, kind.choices, kind.enum_type_id))
        else:
            scalars.append(kind)

    merged = _merge(scalars)
    if is_list:
        return ValueKind(ArgumentKind.LIST, merged.kind, merged.choices, merged.enum_type_id)
    return merged


def _merge(kinds: list[ValueKind]) -> ValueKind:
    """Common kind of union members; choices survive only if every member is closed."""
    distinct = {k.kind for k in kinds}
    if distinct == {ArgumentKind.CHOICE}:
        choices: list[str] = []
        for k in kinds:
            choices.extend(c for c in k.choices if c not in choices)
        enum_ids = {k.enum_type_id for k in kinds}
        enum_type_id = enum_ids.pop() if len(enum_ids) == 1 else None
        return ValueKind(ArgumentKind.CHOICE, choices=tuple(choices), enum_type_id=enum_type_id)
    if len(distinct) == 1:
        return kinds[0]
    if distinct == {ArgumentKind.INTEGER, ArgumentKind.NUMBER}:
        return ValueKind(ArgumentKind.NUMBER)
    return ValueKind(ArgumentKind.STRING)


# ---------------------------------------------------------------------------
# Parameter mapping
# ---------------------------------------------------------------------------


def map_parameter(
    prop: Property,
    shape: ResolvedShape,
    location: ParameterLocation,
    endpoint: str,
    optional_path: bool = False,
) -> ArgumentDefinition:
    """Map one path or query parameter to an :class:`ArgumentDefinition`.

    Args:
        prop: The parameter as declared on the request type.
        shape: Its resolved shape.
        location: Where the parameter travels.
        endpoint: Endpoint name, used in error messages.
        optional_path: For path parameters, True when some URL template of
            the endpoint does not contain it.

    Raises:
        TypeResolutionError: If the parameter's shape has no command-line
            representation.
    """
    classified = value_kind(shape, f"'{prop.name}' of endpoint '{endpoint}'")
    positional = location == ParameterLocation.PATH and not optional_path
    enum_name = None
    if classified.enum_type_id is not None:
        enum_name = class_name(classified.enum_type_id.split(":", 1)[1])

    return ArgumentDefinition(
        name=prop.name,
        identifier=python_identifier(prop.name),
        flag=None if positional else flag_name(prop.name),
        location=location,
        positional=positional,
        required=positional or (location == ParameterLocation.QUERY and prop.required),
        kind=classified.kind,
        item_kind=classified.item_kind,
        choices=list(classified.choices),
        enum_name=enum_name,
        enum_type_id=classified.enum_type_id,
        default=prop.server_default,
        description=prop.description,
        deprecation=prop.deprecation,
    )


# ---------------------------------------------------------------------------
# Rendering helpers (used as Jinja2 filters by the writer)
# ---------------------------------------------------------------------------


def python_annotation(arg: ArgumentDefinition) -> str:
    """Annotation of *arg* in a generated command signature."""
    base = _PYTHON_TYPES[arg.kind]
    if arg.kind == ArgumentKind.CHOICE and arg.enum_name:
        base = f"enums.{arg.enum_name}"
    if arg.required:
        return base
    return f"Optional[{base}]"


def binding_annotation(arg: ArgumentDefinition) -> str:
    """Annotation of *arg* in a generated binding signature."""
    if arg.kind == ArgumentKind.LIST:
        item = _PYTHON_TYPES[arg.item_kind or ArgumentKind.STRING]
        base = f"Union[str, list[{item}]]"
    else:
        base = _PYTHON_TYPES[arg.kind]
    if arg.required:
        return base
    return f"Optional[{base}]"


def default_display(arg: ArgumentDefinition) -> Optional[str]:
    """Server default of *arg* as shown in help, or ``None``."""
    if arg.default is None:
        return None
    if isinstance(arg.default, list):
        return ",".join(literal_text(v) for v in arg.default)
    return literal_text(arg.default)


def argument_help(arg: ArgumentDefinition) -> str:
    """Help text for *arg*: deprecation marker, description, choices, list hint."""
    parts: list[str] = []
    if arg.deprecation is not None:
        since = f" since {arg.deprecation.version}" if arg.deprecation.version else ""
        parts.append(f"[DEPRECATED{since}]")
    if arg.description:
        parts.append(" ".join(arg.description.split()))
    if arg.choices:
        parts.append(f"[choices: {', '.join(arg.choices)}]")
    if arg.kind == ArgumentKind.LIST:
        parts.append("(comma separated)")
    return " ".join(parts)
