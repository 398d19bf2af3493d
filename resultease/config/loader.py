from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..excel.column_mapper import FIELD_LABELS
from ..models.config_models import AnalysisConfig, AppConfig, MappingConfig, ReaderConfig
from ..models.mapping import SUBJECT_PREFIX

"""Config loader.

Responsibilities:
- Load YAML (config/analysis.yml by default, or $RESULTEASE_CONFIG)
- Validate against the bundled JSON schema (unknown keys are rejected)
- Apply defaults for omitted sections and keys
- Reject values the schema cannot express (range ordering, override targets)
"""

__all__ = [
    "ConfigError",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "resolve_config",
]

SCHEMA_PATH = Path(__file__).with_name("schema.json")
DEFAULT_CONFIG_PATH = Path("config") / "analysis.yml"
CONFIG_ENV_VAR = "RESULTEASE_CONFIG"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data violates the schema (unknown keys, wrong types, ranges).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path)
        suffix = f" (at {location})" if location else ""
        raise ConfigError(f"config validation failed: {e.message}{suffix}") from e


def _check_override_target(header: str, target: str | None) -> None:
    if target is None or target in ("", "subject") or target in FIELD_LABELS:
        return
    if target.startswith(SUBJECT_PREFIX) and len(target) > len(SUBJECT_PREFIX):
        return
    raise ConfigError(f"unknown mapping target for '{header}': {target}")


def _build_config(data: dict[str, Any]) -> AppConfig:
    reader_raw = data.get("reader") or {}
    analysis_raw = data.get("analysis") or {}
    mapping_raw = data.get("mapping") or {}

    defaults = AnalysisConfig()
    ranges = tuple(analysis_raw.get("distribution_ranges", defaults.distribution_ranges))
    if any(b <= a for a, b in zip(ranges, ranges[1:])):
        raise ConfigError(f"distribution_ranges must be strictly increasing: {list(ranges)}")

    overrides = dict(mapping_raw.get("overrides") or {})
    for header, target in overrides.items():
        _check_override_target(header, target)

    return AppConfig(
        reader=ReaderConfig(**reader_raw),
        analysis=AnalysisConfig(
            pass_threshold=float(analysis_raw.get("pass_threshold", defaults.pass_threshold)),
            excellence_threshold=float(analysis_raw.get("excellence_threshold", defaults.excellence_threshold)),
            min_failures=int(analysis_raw.get("min_failures", defaults.min_failures)),
            trend_threshold=float(analysis_raw.get("trend_threshold", defaults.trend_threshold)),
            distribution_ranges=ranges,
        ),
        mapping=MappingConfig(overrides=overrides),
    )


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)
    return _build_config(data)


def resolve_config(path: Path | None = None) -> AppConfig:
    """Load the explicit path, else $RESULTEASE_CONFIG, else config/analysis.yml.

    Only the implicit default may be absent; it then yields built-in defaults.
    """
    if path is not None:
        return load_config(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return load_config(Path(env_path))
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return AppConfig()
