"""Settings loading: TOML file, then environment, then explicit overrides."""
from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from place_trace.errors import ConfigError
from place_trace.models import Settings

LOG = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.toml")

ENV_OVERRIDES: Dict[str, str] = {
    "csv_location": "PLACE_TRACE_CSV",
    "workers": "PLACE_TRACE_WORKERS",
}


def read_config_file(path: Optional[Path]) -> Dict[str, Any]:
    required = path is not None
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if required:
            raise ConfigError(f"Configuration file {config_path} does not exist.", {"path": str(config_path)})
        LOG.debug("No %s found; using defaults.", config_path)
        return {}
    try:
        with config_path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError("Configuration file contains errors.", {"path": str(config_path), "error": str(exc)}) from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read {config_path}.", {"path": str(config_path), "error": str(exc)}) from exc


def environment_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for key, name in ENV_OVERRIDES.items():
        raw = env.get(name)
        if raw:
            values[key] = raw.strip()
    return values


def load_settings(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    data = read_config_file(path)
    data.update(environment_overrides(environ))
    data.update({key: value for key, value in (overrides or {}).items() if value is not None})
    try:
        settings = Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError("Failed to parse configurations.", {"errors": _format_errors(exc)}) from exc
    LOG.debug("Loaded settings: %s", settings.model_dump(mode="json"))
    return settings


def _format_errors(exc: ValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location or 'settings'}: {error.get('msg')}")
    return messages
