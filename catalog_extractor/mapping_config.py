"""Layered mapping configuration: supplier -> tenant -> hardcoded default"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .schema import DEFAULT_MAPPING, FieldMapping

logger = logging.getLogger(__name__)

Mapping = Dict[str, FieldMapping]


class MappingConfigError(Exception):
    """Raised when a mapping file cannot be read or has an invalid shape"""


@dataclass
class AutoGenerateRule:
    """Template rule, e.g. ``{"dependsOn": "voltage", "rule": "Akkus > {{voltage}}"}``"""

    depends_on: str
    rule: str
    fallback: Optional[str] = None


@dataclass
class MappingFile:
    """Parsed contents of one mapping JSON file"""

    mapping: Mapping = field(default_factory=dict)
    fixed_values: Dict[str, Any] = field(default_factory=dict)
    auto_generate: Dict[str, AutoGenerateRule] = field(default_factory=dict)


def resolve_mapping(layers: Sequence[Optional[Mapping]]) -> Mapping:
    """
    Merge mapping layers, highest priority first

    Each target field takes its entry from the first layer that defines it.
    ``None`` layers are skipped.
    """
    resolved: Mapping = {}
    for layer in layers:
        if not layer:
            continue
        for target_field, entry in layer.items():
            resolved.setdefault(target_field, entry)
    return resolved


def build_mapping(supplier: Optional[Mapping] = None, tenant: Optional[Mapping] = None) -> Mapping:
    return resolve_mapping([supplier, tenant, DEFAULT_MAPPING])


def parse_mapping(data: Dict[str, Any]) -> Mapping:
    """Convert ``{target: {source, field, value}}`` into FieldMapping entries"""
    if not isinstance(data, dict):
        raise MappingConfigError("Mapping must be a JSON object")

    mapping: Mapping = {}
    for target_field, entry in data.items():
        try:
            mapping[target_field] = FieldMapping.from_dict(target_field, entry)
        except ValueError as e:
            raise MappingConfigError(str(e)) from e
    return mapping


def _parse_auto_generate(data: Dict[str, Any]) -> Dict[str, AutoGenerateRule]:
    rules = {}
    for target_field, entry in data.items():
        if not isinstance(entry, dict) or "dependsOn" not in entry or "rule" not in entry:
            raise MappingConfigError(f"autoGenerate rule for {target_field!r} needs dependsOn and rule")
        rules[target_field] = AutoGenerateRule(
            depends_on=entry["dependsOn"],
            rule=entry["rule"],
            fallback=entry.get("fallback"),
        )
    return rules


def load_mapping_file(path: Union[str, Path]) -> MappingFile:
    """
    Load a mapping JSON file

    Either a bare ``{target: entry}`` object, or an object with a ``mapping``
    section plus optional ``fixedValues`` and ``autoGenerate`` sections.

    Raises:
        MappingConfigError: if the file is unreadable, not JSON or malformed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise MappingConfigError(f"Cannot load mapping file {path}: {e}") from e

    if not isinstance(data, dict):
        raise MappingConfigError(f"Mapping file {path} must contain a JSON object")

    sectioned = any(key in data for key in ("mapping", "fixedValues", "autoGenerate"))
    if not sectioned:
        result = MappingFile(mapping=parse_mapping(data))
    else:
        fixed_values = data.get("fixedValues") or {}
        if not isinstance(fixed_values, dict):
            raise MappingConfigError("fixedValues must be a JSON object")
        result = MappingFile(
            mapping=parse_mapping(data.get("mapping") or {}),
            fixed_values=dict(fixed_values),
            auto_generate=_parse_auto_generate(data.get("autoGenerate") or {}),
        )

    logger.info(
        "Loaded mapping %s: %d field(s), %d fixed value(s), %d auto rule(s)",
        path, len(result.mapping), len(result.fixed_values), len(result.auto_generate),
    )
    return result


def mapping_to_dict(mapping: Mapping) -> Dict[str, Dict[str, Any]]:
    return {target_field: entry.to_dict() for target_field, entry in mapping.items()}


def merge_files(files: List[Optional[MappingFile]]) -> MappingFile:
    """Combine files in priority order: mappings layered, fixed values and rules first-wins"""
    present = [f for f in files if f is not None]
    merged = MappingFile(mapping=resolve_mapping([f.mapping for f in present] + [DEFAULT_MAPPING]))
    for mapping_file in present:
        for key, value in mapping_file.fixed_values.items():
            merged.fixed_values.setdefault(key, value)
        for key, rule in mapping_file.auto_generate.items():
            merged.auto_generate.setdefault(key, rule)
    return merged
