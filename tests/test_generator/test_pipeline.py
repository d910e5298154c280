"""Tests for escligen.generator.pipeline -- the composed generator run."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import MINI_SCHEMA, find_endpoint
from escligen.cache import SchemaCache
from escligen.exceptions import SpecificationError, TypeResolutionError, WriteError
from escligen.generator.pipeline import load_specification, plan_generation, run_generation
from escligen.models import GeneratorConfig


def _config(tmp_path: Path, **overrides) -> GeneratorConfig:
    values = {"spec": str(MINI_SCHEMA), "output": str(tmp_path / "out"), "package": "escli_mini"}
    values.update(overrides)
    return GeneratorConfig(**values)


# ---------------------------------------------------------------------------
# load_specification
# ---------------------------------------------------------------------------


class TestLoadSpecification:
    def test_from_file(self, tmp_path: Path, quiet_output) -> None:
        spec = load_specification(_config(tmp_path))
        assert spec.info.title == "Mini Elasticsearch Specification"
        assert "search" in [e.name for e in spec.endpoints]

    def test_shape_validated(self, tmp_path: Path, quiet_output) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"endpoints": [], "types": [], "extra": 1}))
        with pytest.raises(SpecificationError, match="extra"):
            load_specification(_config(tmp_path, spec=str(bad)))

    def test_url_uses_cache(self, isolated_config: Path, mini_raw, quiet_output) -> None:
        url = "https://example.com/schema.json"
        with patch("escligen.generator.pipeline.load_schema", return_value=mini_raw) as loader:
            load_specification(GeneratorConfig(spec=url, refresh=True))
        args, kwargs = loader.call_args
        assert args == (url,)
        assert isinstance(kwargs["cache"], SchemaCache)
        assert kwargs["refresh"] is True


# ---------------------------------------------------------------------------
# plan_generation
# ---------------------------------------------------------------------------


class TestPlanGeneration:
    def test_excluded_endpoints_not_resolved(self, mini_spec) -> None:
        """knn_search references an undefined type and is excluded by default."""
        plan = plan_generation(mini_spec, GeneratorConfig())
        assert plan.catalog.excluded == ["knn_search"]

    def test_included_dangling_reference_fails(self, mini_spec) -> None:
        with pytest.raises(TypeResolutionError, match="_types:Routing"):
            plan_generation(mini_spec, GeneratorConfig(exclude=[]))

    def test_plan_counts(self, mini_plan) -> None:
        assert len(mini_plan.catalog.endpoints) == 8
        assert len(mini_plan.bindings) == 8
        assert len(mini_plan.enums) == 2


# ---------------------------------------------------------------------------
# run_generation
# ---------------------------------------------------------------------------


class TestRunGeneration:
    def test_writes_package(self, tmp_path: Path, quiet_output) -> None:
        result = run_generation(_config(tmp_path))
        assert result.written is True
        assert result.output_dir == (tmp_path / "out" / "escli_mini").resolve()
        assert (result.output_dir / "namespaces" / "indices.py").is_file()
        assert result.endpoints == 8
        assert result.namespaces == 3
        assert result.enums == 2
        assert result.excluded == ["knn_search"]
        assert "cli.py" in result.files

    def test_check_writes_nothing(self, tmp_path: Path, quiet_output) -> None:
        result = run_generation(_config(tmp_path), check=True)
        assert result.written is False
        assert not (tmp_path / "out").exists()

    def test_failure_writes_nothing(self, tmp_path: Path, quiet_output) -> None:
        with pytest.raises(TypeResolutionError):
            run_generation(_config(tmp_path, exclude=[]))
        assert not (tmp_path / "out").exists()

    def test_reproducible(self, tmp_path: Path, quiet_output) -> None:
        first = run_generation(_config(tmp_path, output=str(tmp_path / "a")))
        second = run_generation(_config(tmp_path, output=str(tmp_path / "b")))
        for name in first.files:
            assert (first.output_dir / name).read_bytes() == (
                second.output_dir / name
            ).read_bytes()

    def test_unencodable_text_writes_nothing(
        self, tmp_path: Path, mini_raw, quiet_output
    ) -> None:
        """A lone surrogate escape in a description fails before the disk is touched."""
        find_endpoint(mini_raw, "search")["description"] = "Split emoji \ud83d here"
        schema = tmp_path / "schema.json"
        schema.write_text(json.dumps(mini_raw), encoding="utf-8")
        previous = tmp_path / "out" / "escli_mini"
        previous.mkdir(parents=True)
        (previous / "keep.py").write_text("previous")

        with pytest.raises(WriteError, match="Cannot encode generated file") as exc_info:
            run_generation(_config(tmp_path, spec=str(schema)))

        assert exc_info.value.exit_code == 11
        assert (previous / "keep.py").read_text() == "previous"
        assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["escli_mini"]
