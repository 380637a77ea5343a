import os
from pathlib import Path
from typing import Dict, Any, Mapping, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

from .editors import split_field_path
from .errors import SettingsError
from .logging_config import get_logger
from .types import PatchSettings, EDITOR_CHOICES

_logger = get_logger(__name__)

ENV_KEYS = {
    "config_path": "TUISETUP_CONFIG_PATH",
    "target_address": "TUISETUP_TARGET_ADDRESS",
    "editor": "TUISETUP_EDITOR",
    "log_file": "TUISETUP_LOG_FILE",
}
REQUIRED_STRINGS = ("config_path", "target_address", "field_path", "tui_command", "service_name", "editor")


def load_settings_file(path: str) -> Dict[str, Any]:
    """
    Load a YAML settings file. Keys are PatchSettings field names, e.g.:

      config_path: /etc/opensnitchd/default-config.json
      target_address: unix:///tmp/osui.sock
      editor: auto
    """
    p = Path(path)
    if not p.exists():
        raise SettingsError(f"settings file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise SettingsError(f"invalid YAML in {p}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SettingsError(f"{p}: expected a mapping at top level")
    unknown = set(data) - PatchSettings.field_names()
    if unknown:
        raise SettingsError(f"{p}: unknown settings: {', '.join(sorted(unknown))}")
    return data


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    return {field: environ[var] for field, var in ENV_KEYS.items() if environ.get(var)}


def build_settings(
    settings_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[str] = None,
) -> PatchSettings:
    """Defaults, then YAML file, then environment (.env included), then explicit overrides."""
    if environ is None:
        # look for .env from the operator's cwd, not from this package
        env_file = dotenv_path or find_dotenv(usecwd=True)
        if env_file:
            load_dotenv(dotenv_path=env_file)

    values: Dict[str, Any] = {}
    if settings_file:
        values.update(load_settings_file(settings_file))
        _logger.debug("loaded settings file %s", settings_file)
    values.update(settings_from_env(environ))
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})

    settings = PatchSettings(**values)
    validate_settings(settings)
    return settings


def validate_settings(settings: PatchSettings) -> None:
    """Reject blank or non-string values before anything on disk is touched."""
    for name in REQUIRED_STRINGS:
        value = getattr(settings, name)
        if not isinstance(value, str) or not value.strip():
            raise SettingsError(f"{name} must be a non-empty string, got {value!r}")
    if settings.log_file is not None and not isinstance(settings.log_file, str):
        raise SettingsError(f"log_file must be a string, got {settings.log_file!r}")
    if settings.editor not in EDITOR_CHOICES:
        raise SettingsError(f"unknown editor {settings.editor!r}; expected one of {', '.join(EDITOR_CHOICES)}")
    split_field_path(settings.field_path)
