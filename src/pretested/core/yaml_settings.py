"""YAML settings source with ``include:`` support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

PROJECT_CONFIG = "pretested.yaml"

# Logger used while the configuration itself is being read
_bootstrap_logger = None


def _get_bootstrap_logger():
    global _bootstrap_logger
    if _bootstrap_logger is None:
        from pretested.core.log import ConsoleSink, Logger
        _bootstrap_logger = Logger(console=ConsoleSink(level="warn"))
        _bootstrap_logger.setup(log_root=Path.home(), job_name="bootstrap")
    return _bootstrap_logger


def _cleanup_bootstrap_logger():
    """Close the bootstrap logger once the real one is configured."""
    global _bootstrap_logger
    if _bootstrap_logger:
        _bootstrap_logger.close()
        _bootstrap_logger = None


def deep_merge(base: dict, override: dict) -> dict:
    """Return base with override merged in; override wins."""
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# Alias: ``_read_files`` has a ``deep_merge`` parameter that shadows the function
_deep_merge = deep_merge


def cli_includes(argv: list[str]) -> list[str]:
    """Collect the values of every ``--include FILE`` pair."""
    return [
        argv[i + 1]
        for i in range(1, len(argv) - 1)
        if argv[i] == "--include"
    ]


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """Layered YAML configuration.

    Files are deep-merged in this order, later files winning:
    package defaults (defaults/default.yaml), the user config
    file, ./pretested.yaml, then each ``--include`` file from the
    command line. Any file may pull in others with ``include:``,
    resolved relative to the including file.
    """

    def __init__(
        self, settings_cls: type[BaseSettings], yaml_file=None
    ):
        includes = cli_includes(sys.argv)
        base = yaml_file or settings_cls.model_config.get("yaml_file")

        if base and includes:
            base = [base] if isinstance(base, (str, os.PathLike)) else list(base)
            yaml_file = base + includes
        else:
            yaml_file = base or includes or None

        super().__init__(settings_cls, yaml_file)

    def _read_files(self, files, deep_merge: bool = True):  # noqa: ARG002
        """Merge every layer; layers are always deep-merged."""
        result = {}

        candidates = [
            Path(__file__).parent.parent / "defaults" / "default.yaml",
            Path(user_config_dir("pretested", appauthor=False))
            / PROJECT_CONFIG,
        ]
        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            candidates.extend(Path(f).expanduser() for f in files)
        if Path(PROJECT_CONFIG) not in candidates:
            candidates.insert(2, Path(PROJECT_CONFIG))

        for file_path in candidates:
            if not file_path.is_file():
                _get_bootstrap_logger().debug(
                    "Configuration file not found (skipping)",
                    file=str(file_path),
                )
                continue
            with _get_bootstrap_logger().span(
                "Configuration loading", file=str(file_path)
            ):
                result = _deep_merge(
                    result, self._load_file_recursive(file_path, set())
                )

        return result

    def _load_file_recursive(
        self, filepath: Path, visited: set[Path]
    ) -> dict:
        """Load a YAML file and everything it includes.

        Raises:
            ValueError: On a circular include chain
        """
        filepath = filepath.resolve()
        if filepath in visited:
            raise ValueError(f"Circular include: {filepath}")
        visited.add(filepath)

        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        includes = data.pop("include", None) or []
        if isinstance(includes, str):
            includes = [includes]

        for inc in includes:
            inc_path = Path(inc)
            if not inc_path.is_absolute():
                inc_path = filepath.parent / inc_path
            inc_data = self._load_file_recursive(inc_path, visited.copy())
            # The including file wins over what it includes
            data = deep_merge(inc_data, data)

        return data
