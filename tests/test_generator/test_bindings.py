"""Tests for escligen.generator.bindings."""

from __future__ import annotations

import pytest

from escligen.exceptions import GeneratorError
from escligen.generator.bindings import binding_function_name, emit_bindings
from escligen.models import (
    ArgumentKind,
    BindingDefinition,
    Catalog,
    LeafCommand,
    NamespaceCommand,
)


def _binding(plan, endpoint: str) -> BindingDefinition:
    return next(b for b in plan.bindings if b.endpoint == endpoint)


class TestEmitBindings:
    """One binding per leaf, sorted by endpoint name."""

    def test_one_per_endpoint(self, mini_plan) -> None:
        assert [b.endpoint for b in mini_plan.bindings] == sorted(
            e.name for e in mini_plan.catalog.endpoints
        )

    def test_qualified_name(self, mini_plan) -> None:
        assert _binding(mini_plan, "indices.create").qualified_name == "indices.build_create"
        assert _binding(mini_plan, "search").qualified_name == "core.build_search"

    def test_function_name(self) -> None:
        assert binding_function_name("get_upgrade") == "build_get_upgrade"

    def test_parameters_split_by_location(self, mini_plan) -> None:
        index = _binding(mini_plan, "index")
        assert [p.name for p in index.path_params] == ["index", "id"]
        assert [p.name for p in index.query_params][:2] == ["refresh", "version"]

    def test_parameter_bijection(self, mini_plan) -> None:
        """Binding parameters are exactly the endpoint's path and query parameters."""
        for entry in mini_plan.catalog.endpoints:
            binding = _binding(mini_plan, entry.name)
            assert {p.name for p in binding.path_params} == {p.name for p in entry.path_params}
            assert {p.name for p in binding.query_params} == {
                p.name for p in entry.query_params
            }
            assert len(binding.path_params) == len(entry.path_params)
            assert len(binding.query_params) == len(entry.query_params)

    def test_routes_and_body(self, mini_plan) -> None:
        bulk = _binding(mini_plan, "bulk")
        assert [r.template for r in bulk.routes] == ["/{index}/_bulk", "/_bulk"]
        assert bulk.body is not None
        assert bulk.body.media_types == ["application/x-ndjson"]
        assert _binding(mini_plan, "get").body is None

    def test_choices_carried(self, mini_plan) -> None:
        refresh = _binding(mini_plan, "index").query_params[0]
        assert refresh.kind == ArgumentKind.CHOICE
        assert refresh.choices == ["true", "false", "wait_for"]

    def test_unknown_endpoint(self, mini_plan) -> None:
        stray = LeafCommand(name="x", identifier="x", endpoint="nope")
        tree = NamespaceCommand(name="", module="core", children=[stray])
        with pytest.raises(GeneratorError, match="targets unknown endpoint 'nope'"):
            emit_bindings(mini_plan.catalog, tree)

    def test_endpoint_without_command(self, mini_plan) -> None:
        tree = NamespaceCommand(name="", module="core", children=[])
        with pytest.raises(GeneratorError, match="Endpoints without a command: bulk"):
            emit_bindings(mini_plan.catalog, tree)

    def test_bound_twice(self, mini_plan) -> None:
        leaf = LeafCommand(name="get", identifier="get", endpoint="get")
        tree = NamespaceCommand(name="", module="core", children=[leaf, leaf])
        with pytest.raises(GeneratorError, match="'get' is bound twice"):
            emit_bindings(Catalog(endpoints=[mini_plan.catalog.get("get")]), tree)
