"""YAML settings file parsing.

This module loads tunable option groups from a YAML document and
overlays them on a base config. Unknown keys are rejected so typos
surface immediately instead of silently using defaults.
"""

from __future__ import annotations

from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from core.config import SieveConfig
from core.errors import SieveConfigError
from core.types import (
    IngestOptions,
    PurifyOptions,
    RetentionPolicy,
    SimilarityOptions,
    TierIntervals,
)

_SECTION_TYPES: dict[str, type] = {
    "retention": RetentionPolicy,
    "ingest": IngestOptions,
    "similarity": SimilarityOptions,
    "purify": PurifyOptions,
}


def apply_settings_file(config: SieveConfig, settings_path: str) -> SieveConfig:
    """Overlay a YAML settings file onto a config.

    Args:
        config: Base configuration.
        settings_path: Path to the YAML settings document.

    Returns:
        New config with overridden option groups.

    Raises:
        SieveConfigError: If the file is missing, unparsable, or has invalid fields.
    """
    payload = _load_yaml_payload(settings_path)
    root_mapping = _expect_mapping(payload, "settings root")
    unknown_sections = sorted(set(root_mapping) - set(_SECTION_TYPES))
    if unknown_sections:
        raise SieveConfigError(
            f"Settings file contains unknown sections: {', '.join(unknown_sections)}. "
            f"Use only: {', '.join(_SECTION_TYPES)}."
        )
    overrides: dict[str, object] = {}
    for section_name, section_type in _SECTION_TYPES.items():
        if section_name not in root_mapping:
            continue
        section_mapping = _expect_mapping(root_mapping[section_name], f"settings '{section_name}'")
        current_value = getattr(config, section_name)
        overrides[section_name] = _overlay_section(
            current_value, section_type, section_mapping, section_name
        )
    return replace(config, **overrides)


def _load_yaml_payload(settings_path: str) -> object:
    settings_file = Path(settings_path).expanduser().resolve()
    if not settings_file.exists():
        raise SieveConfigError(
            f"Settings file does not exist at {settings_file}. "
            "Provide a valid YAML file path or unset SIEVE_SETTINGS_FILE."
        )
    try:
        payload = cast(object, yaml.safe_load(settings_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise SieveConfigError(
            f"Failed to read settings at {settings_file}: {error}. Check file permissions."
        ) from error
    except yaml.YAMLError as error:
        raise SieveConfigError(
            f"Failed to parse YAML settings at {settings_file}: {error}. Fix YAML syntax."
        ) from error
    if payload is None:
        return {}
    return payload


def _overlay_section(
    current_value: Any,
    section_type: type,
    section_mapping: Mapping[str, object],
    section_name: str,
) -> Any:
    allowed_fields = {item.name: item for item in fields(section_type)}
    unknown_keys = sorted(set(section_mapping) - set(allowed_fields))
    if unknown_keys:
        raise SieveConfigError(
            f"Settings section '{section_name}' contains unknown fields: "
            f"{', '.join(unknown_keys)}."
        )
    updates: dict[str, object] = {}
    for key, raw_value in section_mapping.items():
        default_value = getattr(current_value, key)
        updates[key] = _coerce_value(raw_value, default_value, f"{section_name}.{key}")
    return replace(current_value, **updates)


def _coerce_value(raw_value: object, default_value: object, field_path: str) -> object:
    """Coerce a YAML scalar to the type of the field default."""
    if isinstance(default_value, TierIntervals):
        tier_mapping = _expect_mapping(raw_value, f"settings '{field_path}'")
        return _overlay_section(default_value, TierIntervals, tier_mapping, field_path)
    if isinstance(default_value, frozenset):
        if not isinstance(raw_value, list) or not all(isinstance(item, str) for item in raw_value):
            raise SieveConfigError(
                f"Settings field '{field_path}' must be a list of strings."
            )
        return frozenset(raw_value)
    if isinstance(default_value, bool):
        if not isinstance(raw_value, bool):
            raise SieveConfigError(f"Settings field '{field_path}' must be a boolean.")
        return raw_value
    if isinstance(default_value, int):
        if isinstance(raw_value, bool) or not isinstance(raw_value, int):
            raise SieveConfigError(f"Settings field '{field_path}' must be an integer.")
        return raw_value
    if isinstance(default_value, float):
        if isinstance(raw_value, bool) or not isinstance(raw_value, (int, float)):
            raise SieveConfigError(f"Settings field '{field_path}' must be a number.")
        return float(raw_value)
    raise SieveConfigError(f"Settings field '{field_path}' is not configurable.")


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise SieveConfigError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise SieveConfigError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )
