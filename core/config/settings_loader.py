"""Settings loading utilities for the label engine."""

from __future__ import annotations

import os
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from core.config.models import EngineSettings

_SETTINGS_PATH_ENV = "LABELOPS_SETTINGS_PATH"
_RENDERER_URL_ENV = "LABELOPS_RENDERER_URL"


def load_settings(path: Path | None = None) -> EngineSettings:
    """Load and validate engine settings from YAML.

    Resolution order: explicit ``path``, ``LABELOPS_SETTINGS_PATH``, then the
    packaged ``settings.yaml``. ``LABELOPS_RENDERER_URL`` overrides the
    renderer URL of whichever file was loaded.
    """

    settings_path = path or _path_from_env() or Path(__file__).with_name("settings.yaml")

    try:
        raw = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Settings file not found: {settings_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in settings file: {settings_path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Settings file must contain a mapping: {settings_path}")

    normalized = dict(raw)
    renderer_url = os.getenv(_RENDERER_URL_ENV, "").strip()
    if renderer_url:
        normalized["renderer_url"] = renderer_url

    try:
        return EngineSettings.model_validate(normalized)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings schema: {settings_path}") from exc


def _path_from_env() -> Path | None:
    raw = os.getenv(_SETTINGS_PATH_ENV, "").strip()
    return Path(raw) if raw else None
