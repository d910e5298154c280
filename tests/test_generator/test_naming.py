"""Tests for escligen.generator.naming."""

from __future__ import annotations

import pytest

from escligen.exceptions import NamingConflictError
from escligen.generator.naming import (
    NameRegistry,
    class_name,
    cli_name,
    enum_member_name,
    flag_name,
    module_name,
    python_identifier,
    split_words,
)


# ---------------------------------------------------------------------------
# split_words
# ---------------------------------------------------------------------------


class TestSplitWords:
    """One splitting rule feeds every generated spelling."""

    @pytest.mark.parametrize(
        "name, words",
        [
            ("ignore_unavailable", ["ignore", "unavailable"]),
            ("bar-baz", ["bar", "baz"]),
            ("bar_baz", ["bar", "baz"]),
            ("waitForActiveShards", ["wait", "for", "active", "shards"]),
            ("XMLParser", ["xml", "parser"]),
            ("_source_includes", ["source", "includes"]),
            ("get.script", ["get", "script"]),
            ("ml", ["ml"]),
        ],
    )
    def test_split(self, name: str, words: list[str]) -> None:
        assert split_words(name) == words


# ---------------------------------------------------------------------------
# Spellings
# ---------------------------------------------------------------------------


class TestSpellings:
    """Command-line, identifier, module, class and enum member spellings."""

    def test_cli_name(self) -> None:
        assert cli_name("put_mapping") == cli_name("put-mapping") == "put-mapping"

    def test_cli_name_rejects_symbol_only(self) -> None:
        with pytest.raises(NamingConflictError, match="no usable characters"):
            cli_name("__")

    def test_flag_name(self) -> None:
        assert flag_name("wait_for_active_shards") == "--wait-for-active-shards"

    @pytest.mark.parametrize("name", ["help", "input", "header"])
    def test_flag_name_avoids_reserved(self, name: str) -> None:
        assert flag_name(name) == f"--{name}-param"

    def test_python_identifier(self) -> None:
        assert python_identifier("_source_includes") == "source_includes"

    def test_python_identifier_keyword(self) -> None:
        assert python_identifier("from") == "from_"

    def test_python_identifier_reserved(self) -> None:
        assert python_identifier("payload") == "payload_"
        assert python_identifier("headers") == "headers_"

    def test_python_identifier_leading_digit(self) -> None:
        assert python_identifier("1st") == "_1st"

    def test_module_name(self) -> None:
        assert module_name(()) == "core"
        assert module_name(("indices",)) == "indices"
        assert module_name(("security", "api_key")) == "security_api_key"

    def test_class_name(self) -> None:
        assert class_name("ExpandWildcard") == "ExpandWildcard"
        assert class_name("expand_wildcard") == "ExpandWildcard"

    def test_enum_member_name(self) -> None:
        assert enum_member_name("wait_for") == "WAIT_FOR"
        assert enum_member_name("index-setting") == "INDEX_SETTING"
        assert enum_member_name("1d") == "V_1D"

    def test_enum_member_name_symbols(self) -> None:
        assert enum_member_name("*") == "V_2A"
        assert enum_member_name("") == "EMPTY"


# ---------------------------------------------------------------------------
# NameRegistry
# ---------------------------------------------------------------------------


class TestNameRegistry:
    """Two owners may never share a generated name in one scope."""

    def test_claim_returns_name(self) -> None:
        registry = NameRegistry("test")
        assert registry.claim("bar-baz", "bar_baz") == "bar-baz"
        assert "bar-baz" in registry

    def test_same_owner_may_reclaim(self) -> None:
        registry = NameRegistry("test")
        registry.claim("x", "x")
        registry.claim("x", "x")

    def test_conflict(self) -> None:
        registry = NameRegistry("namespace 'foo'")
        registry.claim(cli_name("bar-baz"), "foo.bar-baz")
        with pytest.raises(
            NamingConflictError,
            match="Naming conflict in namespace 'foo': 'foo.bar-baz' and 'foo.bar_baz' "
            "both map to 'bar-baz'",
        ):
            registry.claim(cli_name("bar_baz"), "foo.bar_baz")
