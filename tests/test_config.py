"""Tests for escligen.config -- XDG paths, project config, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from escligen.config import get_cache_dir, get_data_dir, load_project_config, resolve_config
from escligen.exceptions import ConfigError
from escligen.models import DEFAULT_EXCLUDES


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write *data* as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_cache_dir_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("escligen.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
        path = get_cache_dir()
        assert path == tmp_path / "xdg-cache" / "escligen"
        assert path.is_dir()

    def test_cache_dir_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("escligen.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_cache_dir() == tmp_path / ".cache" / "escligen"

    def test_data_dir_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("escligen.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_data_dir() == tmp_path / ".local" / "share" / "escligen"


class TestFallbackPaths:
    """macOS and Windows keep everything under ``~/.escligen``."""

    def test_cache_and_data(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("escligen.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_cache_dir() == tmp_path / ".escligen" / "cache"
        assert get_data_dir() == tmp_path / ".escligen" / "data"


# ---------------------------------------------------------------------------
# Project config
# ---------------------------------------------------------------------------


class TestProjectConfig:
    def test_missing(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_loaded(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "escligen.json", {"branch": "8.15"})
        assert load_project_config() == {"branch": "8.15"}

    def test_invalid_json(self, isolated_config: Path) -> None:
        (isolated_config / "escligen.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config()

    def test_not_an_object(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "escligen.json", ["main"])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_project_config()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    """CLI flags > environment > ./escligen.json > defaults."""

    def test_defaults(self, isolated_config: Path) -> None:
        config = resolve_config()
        assert config.spec is None
        assert config.branch == "main"
        assert config.output == "generated"
        assert config.package == "escli_generated"
        assert config.cli_name == "escli"
        assert config.exclude == list(DEFAULT_EXCLUDES)
        assert config.refresh is False

    def test_project_over_defaults(self, isolated_config: Path) -> None:
        _write_json(
            isolated_config / "escligen.json", {"branch": "8.15", "exclude": ["ml.*"]}
        )
        config = resolve_config()
        assert config.branch == "8.15"
        assert config.exclude == ["ml.*"]

    def test_env_over_project(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_json(isolated_config / "escligen.json", {"branch": "8.15", "output": "build"})
        monkeypatch.setenv("ESCLIGEN_BRANCH", "8.16")
        monkeypatch.setenv("ESCLIGEN_EXCLUDE", "ml.*, security.*,")
        config = resolve_config()
        assert config.branch == "8.16"
        assert config.output == "build"
        assert config.exclude == ["ml.*", "security.*"]

    def test_flags_over_env(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ESCLIGEN_PACKAGE", "from_env")
        monkeypatch.setenv("ESCLIGEN_CLI_NAME", "es")
        config = resolve_config(package="from_flag", cli_name=None, refresh=True)
        assert config.package == "from_flag"
        assert config.cli_name == "es"
        assert config.refresh is True

    def test_unknown_project_key(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "escligen.json", {"brnach": "8.15"})
        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_config()

    def test_wrong_type(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "escligen.json", {"exclude": "ml.*"})
        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_config()
