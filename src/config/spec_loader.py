# src/config/spec_loader.py — v1
"""Load workflow specs from JSON or YAML files.

A data file (JSON) can be overlaid on the spec's ``initial`` mapping; the
spec's own ``_mock`` entry is kept so that mocked fixtures survive the
overlay.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from daftflow.core.models import Spec

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}
_JSON_SUFFIXES = {".json"}


class SpecLoadError(Exception):
    """Raised when a spec or data file cannot be read or validated."""


def _read_document(path: Path) -> Any:
    if not path.is_file():
        raise SpecLoadError(f"File not found: {path}")

    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    try:
        if suffix in _YAML_SUFFIXES:
            return yaml.safe_load(text)
        if suffix in _JSON_SUFFIXES:
            return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise SpecLoadError(f"Cannot parse {path}: {exc}") from exc
    raise SpecLoadError(f"Unsupported spec format: {path.suffix or '(none)'}")


def parse_spec(raw: Any) -> Spec:
    """Validate an already-parsed document into a Spec."""
    if not isinstance(raw, Mapping):
        raise SpecLoadError(f"Spec must be a mapping, got {type(raw).__name__}")
    try:
        return Spec.model_validate(dict(raw))
    except ValidationError as exc:
        raise SpecLoadError(f"Invalid spec: {exc}") from exc


def load_spec(path: Path) -> Spec:
    """Load and validate a spec file (.json, .yaml, .yml)."""
    spec = parse_spec(_read_document(path))
    logger.debug("Loaded spec %s: %d steps", path, len(spec.steps))
    return spec


def overlay_initial(spec: Spec, data: Any) -> Spec:
    """Return a copy of ``spec`` with ``data`` merged over its initial data."""
    initial = spec.initial
    if isinstance(initial, Mapping) and isinstance(data, Mapping):
        merged = {**initial, **data}
        if "_mock" in initial:
            merged["_mock"] = initial["_mock"]
        else:
            merged.pop("_mock", None)
    else:
        merged = data
    return spec.model_copy(update={"initial": merged})


def load_spec_with_data(spec_path: Path, data_path: Path | None = None) -> Spec:
    """Load a spec and optionally overlay a JSON data file onto ``initial``."""
    spec = load_spec(spec_path)
    if data_path is None:
        return spec
    if data_path.suffix.lower() not in _JSON_SUFFIXES:
        raise SpecLoadError(f"Data file must be JSON: {data_path}")
    data = _read_document(data_path)
    logger.info("Loaded data from: %s", data_path)
    return overlay_initial(spec, data)
