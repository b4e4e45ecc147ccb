"""Build the pipeline's configuration struct from YAML defaults and the environment.

Layers, later ones winning:

  1. ``Settings`` field defaults
  2. ``config/config.yaml`` -- the ``pipeline:`` section, checked into the repo
  3. values explicitly set in the environment or ``.env``

A value only counts as "explicitly set" when pydantic-settings actually read
it (``Settings.model_fields_set``); defaults never override the YAML file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from essayvec.config.settings import Settings
from essayvec.models.pipeline import PipelineConfig
from essayvec.utils.errors import ConfigurationError


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Read a YAML mapping from *path*; a missing file yields ``{}``."""
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{config_path} must contain a YAML mapping")
    return loaded


def load_pipeline_config(
    path: str | Path = "config/config.yaml",
    settings: Settings | None = None,
    **overrides: Any,
) -> PipelineConfig:
    """Resolve the :class:`PipelineConfig` for a run.

    Keyword *overrides* (e.g. CLI flags) win over every other layer.
    """
    settings = settings or Settings()
    fields = PipelineConfig.model_fields

    values: dict[str, Any] = {name: getattr(settings, name) for name in fields if hasattr(settings, name)}

    yaml_pipeline = load_yaml(path).get("pipeline") or {}
    unknown = sorted(set(yaml_pipeline) - set(fields))
    if unknown:
        raise ConfigurationError(f"Unknown pipeline keys in {path}: {', '.join(unknown)}")
    _deep_merge(values, yaml_pipeline)

    explicit = {name: getattr(settings, name) for name in settings.model_fields_set if name in fields}
    _deep_merge(values, explicit)
    _deep_merge(values, {k: v for k, v in overrides.items() if v is not None})

    if isinstance(values.get("url_denylist"), list):
        values["url_denylist"] = tuple(values["url_denylist"])

    try:
        return PipelineConfig(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid pipeline configuration: {exc}") from exc


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
