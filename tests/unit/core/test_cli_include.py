"""Tests for layered YAML loading and --include."""

import sys

import pytest
import yaml

from pretested.core.config import State
from pretested.core.yaml_settings import (
    YamlWithIncludesSettingsSource,
    cli_includes,
    deep_merge,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch, mock_argv):
    """Run from an empty directory with no user configuration."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    sys.argv = ["prog"]
    return tmp_path


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_cli_includes_collects_pairs():
    argv = ["prog", "--include", "a.yaml", "integrate", "--include", "b.yaml"]

    assert cli_includes(argv) == ["a.yaml", "b.yaml"]


def test_cli_includes_ignores_dangling_flag():
    assert cli_includes(["prog", "--include"]) == []


def test_deep_merge_overrides_leaves():
    base = {"config": {"job": {"name": "a", "strategy": "squash"}}}
    override = {"config": {"job": {"name": "b"}}}

    merged = deep_merge(base, override)

    assert merged == {"config": {"job": {"name": "b", "strategy": "squash"}}}
    # Inputs are not mutated
    assert base["config"]["job"]["name"] == "a"


def test_package_defaults_are_loaded(isolated):
    data = YamlWithIncludesSettingsSource(State)()

    job = data["config"]["job"]
    assert job["ready_branch"] == "ready"
    assert job["target_branch"] == "master"
    assert job["strategy"] == "fast-forward"


def test_project_file_overrides_defaults(isolated):
    write_yaml(isolated / "pretested.yaml",
               {"config": {"job": {"target_branch": "main"}}})

    data = YamlWithIncludesSettingsSource(State)()

    assert data["config"]["job"]["target_branch"] == "main"
    assert data["config"]["job"]["ready_branch"] == "ready"


def test_cli_include_wins_over_project_file(isolated):
    write_yaml(isolated / "pretested.yaml",
               {"config": {"job": {"strategy": "squash"}}})
    extra = write_yaml(isolated / "extra.yaml",
                       {"config": {"job": {"strategy": "accumulate"}}})
    sys.argv = ["prog", "--include", str(extra), "integrate"]

    data = YamlWithIncludesSettingsSource(State)()

    assert data["config"]["job"]["strategy"] == "accumulate"


def test_include_key_is_relative_to_including_file(isolated):
    sub = isolated / "conf"
    sub.mkdir()
    write_yaml(sub / "checks.yaml",
               {"config": {"check": {"commands": {"unit": "make test"}}}})
    main = write_yaml(sub / "main.yaml", {
        "include": "checks.yaml",
        "config": {"check": {"timeout": 60}},
    })

    data = YamlWithIncludesSettingsSource(State, yaml_file=str(main))()

    assert data["config"]["check"]["commands"] == {"unit": "make test"}
    assert data["config"]["check"]["timeout"] == 60
    assert "include" not in data


def test_including_file_wins_over_included(isolated):
    write_yaml(isolated / "base.yaml", {"config": {"job": {"name": "base"}}})
    top = write_yaml(isolated / "top.yaml", {
        "include": ["base.yaml"],
        "config": {"job": {"name": "top"}},
    })

    data = YamlWithIncludesSettingsSource(State, yaml_file=str(top))()

    assert data["config"]["job"]["name"] == "top"


def test_circular_include_is_rejected(isolated):
    write_yaml(isolated / "a.yaml", {"include": "b.yaml"})
    write_yaml(isolated / "b.yaml", {"include": "a.yaml"})

    with pytest.raises(ValueError, match="Circular include"):
        YamlWithIncludesSettingsSource(State, yaml_file=str(isolated / "a.yaml"))()
