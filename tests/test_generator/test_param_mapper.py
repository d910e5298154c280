"""Tests for escligen.generator.param_mapper."""

from __future__ import annotations

import pytest

from escligen.exceptions import TypeResolutionError
from escligen.generator.param_mapper import (
    argument_help,
    binding_annotation,
    default_display,
    map_parameter,
    python_annotation,
    value_kind,
)
from escligen.models import (
    ArgumentDefinition,
    ArgumentKind,
    CollectionShape,
    Deprecation,
    EnumShape,
    GenericShape,
    InstanceOf,
    LiteralShape,
    ParameterLocation,
    PrimitiveShape,
    Property,
    RefShape,
    StructShape,
    UnionShape,
    UserDefinedShape,
)

STRING = PrimitiveShape(primitive="string")
INTEGER = PrimitiveShape(primitive="integer")
CLOSED = EnumShape(type_id="_types:ExpandWildcard", members=["all", "open"])


def _prop(name: str = "value", **kwargs) -> Property:
    return Property(name=name, type=InstanceOf(type="_builtins:string"), **kwargs)


def _arg(**kwargs) -> ArgumentDefinition:
    defaults = {"name": "value", "identifier": "value", "location": ParameterLocation.QUERY}
    defaults.update(kwargs)
    return ArgumentDefinition(**defaults)


# ---------------------------------------------------------------------------
# value_kind
# ---------------------------------------------------------------------------


class TestValueKind:
    """Resolved shapes classified as command-line value kinds."""

    @pytest.mark.parametrize(
        "primitive, kind",
        [
            ("string", ArgumentKind.STRING),
            ("integer", ArgumentKind.INTEGER),
            ("number", ArgumentKind.NUMBER),
            ("boolean", ArgumentKind.BOOLEAN),
            ("binary", ArgumentKind.STRING),
        ],
    )
    def test_primitives(self, primitive: str, kind: ArgumentKind) -> None:
        assert value_kind(PrimitiveShape(primitive=primitive), "p").kind == kind

    def test_closed_enum(self) -> None:
        result = value_kind(CLOSED, "p")
        assert result.kind == ArgumentKind.CHOICE
        assert result.choices == ("all", "open")
        assert result.enum_type_id == "_types:ExpandWildcard"

    def test_open_enum_is_string(self) -> None:
        shape = EnumShape(type_id="a:Open", members=["x"], is_open=True)
        assert value_kind(shape, "p").kind == ArgumentKind.STRING

    def test_literal(self) -> None:
        result = value_kind(LiteralShape(value=True), "p")
        assert result.kind == ArgumentKind.CHOICE
        assert result.choices == ("true",)

    def test_array(self) -> None:
        result = value_kind(CollectionShape(collection="array", item=INTEGER), "p")
        assert result.kind == ArgumentKind.LIST
        assert result.item_kind == ArgumentKind.INTEGER

    def test_scalar_or_array_union(self) -> None:
        shape = UnionShape(members=[CLOSED, CollectionShape(collection="array", item=CLOSED)])
        result = value_kind(shape, "p")
        assert result.kind == ArgumentKind.LIST
        assert result.item_kind == ArgumentKind.CHOICE
        assert result.choices == ("all", "open")
        assert result.enum_type_id == "_types:ExpandWildcard"

    def test_integer_or_number_union(self) -> None:
        shape = UnionShape(members=[INTEGER, PrimitiveShape(primitive="number")])
        assert value_kind(shape, "p").kind == ArgumentKind.NUMBER

    def test_integer_or_enum_union_is_string(self) -> None:
        shape = UnionShape(members=[INTEGER, CLOSED])
        result = value_kind(shape, "p")
        assert result.kind == ArgumentKind.STRING
        assert result.enum_type_id is None

    def test_choices_merge_across_enums(self) -> None:
        other = EnumShape(type_id="a:Other", members=["open", "none"])
        result = value_kind(UnionShape(members=[CLOSED, other]), "p")
        assert result.kind == ArgumentKind.CHOICE
        assert result.choices == ("all", "open", "none")
        assert result.enum_type_id is None

    def test_opaque_shapes_are_strings(self) -> None:
        assert value_kind(GenericShape(name="a:T"), "p").kind == ArgumentKind.STRING
        assert value_kind(UserDefinedShape(), "p").kind == ArgumentKind.STRING

    def test_struct_rejected(self) -> None:
        with pytest.raises(TypeResolutionError, match="has a struct type"):
            value_kind(StructShape(type_id="a:S"), "'q' of endpoint 'x'")

    def test_dictionary_rejected(self) -> None:
        shape = CollectionShape(collection="dictionary", key=STRING, item=STRING)
        with pytest.raises(TypeResolutionError, match="has a dictionary type"):
            value_kind(shape, "p")

    def test_ref_rejected(self) -> None:
        with pytest.raises(TypeResolutionError, match="has a ref type"):
            value_kind(RefShape(type_id="a:R"), "p")

    def test_nested_array_rejected(self) -> None:
        shape = CollectionShape(
            collection="array", item=CollectionShape(collection="array", item=STRING)
        )
        with pytest.raises(TypeResolutionError, match="nested array"):
            value_kind(shape, "p")


# ---------------------------------------------------------------------------
# map_parameter
# ---------------------------------------------------------------------------


class TestMapParameter:
    """Properties mapped to positional arguments or flags."""

    def test_path_parameter_is_positional(self) -> None:
        arg = map_parameter(_prop("index"), STRING, ParameterLocation.PATH, "get")
        assert arg.positional is True
        assert arg.required is True
        assert arg.flag is None

    def test_optional_path_parameter_is_flag(self) -> None:
        arg = map_parameter(
            _prop("index"), STRING, ParameterLocation.PATH, "search", optional_path=True
        )
        assert arg.positional is False
        assert arg.required is False
        assert arg.flag == "--index"

    def test_query_parameter(self) -> None:
        arg = map_parameter(
            _prop("wait_for_active_shards"), STRING, ParameterLocation.QUERY, "x"
        )
        assert arg.flag == "--wait-for-active-shards"
        assert arg.identifier == "wait_for_active_shards"
        assert arg.required is False

    def test_required_query_parameter(self) -> None:
        arg = map_parameter(_prop("q", required=True), STRING, ParameterLocation.QUERY, "x")
        assert arg.required is True
        assert arg.positional is False

    def test_enum_name(self) -> None:
        arg = map_parameter(_prop("expand_wildcards"), CLOSED, ParameterLocation.QUERY, "x")
        assert arg.kind == ArgumentKind.CHOICE
        assert arg.enum_name == "ExpandWildcard"
        assert arg.choices == ["all", "open"]

    def test_metadata_carried(self) -> None:
        prop = _prop(
            "size",
            server_default=10,
            description="Number of hits.",
            deprecation=Deprecation(version="9.0.0"),
        )
        arg = map_parameter(prop, INTEGER, ParameterLocation.QUERY, "search")
        assert arg.default == 10
        assert arg.description == "Number of hits."
        assert arg.deprecation is not None

    def test_error_names_endpoint(self) -> None:
        with pytest.raises(TypeResolutionError, match="'body' of endpoint 'search'"):
            map_parameter(
                _prop("body"), StructShape(type_id="a:S"), ParameterLocation.QUERY, "search"
            )


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


class TestRendering:
    """Annotation, default and help strings used by the templates."""

    def test_annotation_required(self) -> None:
        assert python_annotation(_arg(kind=ArgumentKind.INTEGER, required=True)) == "int"

    def test_annotation_optional(self) -> None:
        assert python_annotation(_arg(kind=ArgumentKind.NUMBER)) == "Optional[float]"

    def test_annotation_enum(self) -> None:
        arg = _arg(kind=ArgumentKind.CHOICE, choices=["a"], enum_name="Refresh")
        assert python_annotation(arg) == "Optional[enums.Refresh]"

    def test_annotation_choice_without_enum(self) -> None:
        assert python_annotation(_arg(kind=ArgumentKind.CHOICE, choices=["a"])) == "Optional[str]"

    def test_binding_annotation_list(self) -> None:
        arg = _arg(kind=ArgumentKind.LIST, item_kind=ArgumentKind.INTEGER)
        assert binding_annotation(arg) == "Optional[Union[str, list[int]]]"

    def test_default_display(self) -> None:
        assert default_display(_arg()) is None
        assert default_display(_arg(default=True)) == "true"
        assert default_display(_arg(default=["open", "hidden"])) == "open,hidden"
        assert default_display(_arg(default="30s")) == "30s"

    def test_help(self) -> None:
        arg = _arg(
            kind=ArgumentKind.LIST,
            item_kind=ArgumentKind.CHOICE,
            choices=["all", "open"],
            description="Type of index\n   to match.",
            deprecation=Deprecation(version="8.0.0"),
        )
        assert argument_help(arg) == (
            "[DEPRECATED since 8.0.0] Type of index to match. "
            "[choices: all, open] (comma separated)"
        )

    def test_help_empty(self) -> None:
        assert argument_help(_arg()) == ""
