"""YAML settings for the title-editor command line.

Three scopes, each one file:
- User (~/.title-editor/settings.yaml)
- Project (.title-editor/settings.yaml)
- Local (.title-editor/settings.local.yaml)

Only non-secret connection details are stored. The password comes from the
TITLE_EDITOR_PASSWORD environment variable or an interactive prompt.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import Field

from .connection import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

PASSWORD_ENV_VAR = "TITLE_EDITOR_PASSWORD"

SETTINGS_DIRNAME = ".title-editor"

Scope = Literal["user", "project", "local"]
# Merge order, lowest precedence first
SCOPES: tuple[Scope, ...] = ("user", "project", "local")

# Keys of the connection section that may be written to settings files
CONNECTION_KEYS = ("url", "user", "timeout", "verify")


class ConnectionSettings(BaseModel):
    """The ``connection`` section of merged settings."""

    url: str | None = None
    user: str | None = None
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    verify: bool = True


class SettingsManager:
    """Reads and writes title-editor settings in the user, project and local scopes.

    Files are merged in SCOPES order, so a local value beats a project value,
    which beats a user value.
    """

    def __init__(self, settings_dir: Path | None = None, user_dir: Path | None = None):
        """Locate the three settings files. Nothing is read until needed.

        Args:
            settings_dir: Directory holding the project and local files.
                Defaults to .title-editor in the current directory.
            user_dir: Directory holding the user file. Defaults to
                ~/.title-editor.
        """
        settings_dir = settings_dir or Path(SETTINGS_DIRNAME)
        user_dir = user_dir or Path.home() / SETTINGS_DIRNAME

        self.user_settings_file = user_dir / "settings.yaml"
        self.project_settings_file = settings_dir / "settings.yaml"
        self.local_settings_file = settings_dir / "settings.local.yaml"

    def scope_file(self, scope: Scope) -> Path:
        return getattr(self, f"{scope}_settings_file")

    def get_connection_settings(self) -> ConnectionSettings:
        """Connection settings merged from all scopes.

        Raises:
            pydantic.ValidationError: If a stored value has the wrong type
        """
        section = self.get_merged_settings().get("connection") or {}
        return ConnectionSettings.model_validate(section)

    def set_connection_value(self, key: str, value: Any, scope: Scope = "local") -> None:
        """Store one connection setting in a scope.

        Args:
            key: One of url, user, timeout, verify
            value: The value; validated against ConnectionSettings
            scope: "user", "project", or "local"

        Raises:
            KeyError: For an unknown key, including 'password'
            pydantic.ValidationError: If the value has the wrong type
        """
        if key not in CONNECTION_KEYS:
            raise KeyError(f"Unknown connection setting '{key}'. Valid keys: {', '.join(CONNECTION_KEYS)}")

        # Let pydantic coerce strings from the command line, e.g. 'false'
        validated = ConnectionSettings.model_validate({key: value})
        path = self.scope_file(scope)
        stored = self._read_settings(path) or {}
        self._write_settings(path, self._deep_merge(stored, {"connection": {key: getattr(validated, key)}}))
        logger.info(f"Set {scope} connection setting {key} in {path}")

    def get_merged_settings(self) -> dict[str, Any]:
        """All scopes merged into one dict, later scopes winning."""
        merged: dict[str, Any] = {}
        for scope in SCOPES:
            merged = self._deep_merge(merged, self._read_settings(self.scope_file(scope)) or {})
        return merged

    def _read_settings(self, path: Path) -> dict[str, Any] | None:
        """Load one settings file.

        Returns:
            Its contents ({} for an empty file), or None if it is missing or
            unreadable. Unreadable files are logged and skipped.
        """
        if not path.is_file():
            return None
        try:
            return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Ignoring settings file {path}: {e}")
            return None

    def _write_settings(self, path: Path, settings: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(settings, default_flow_style=False, sort_keys=False), encoding="utf-8")

    def _deep_merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Merge overlay into a copy of base. Nested dicts merge; anything else is replaced."""
        merged = dict(base)
        for key, value in overlay.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                value = self._deep_merge(current, value)
            merged[key] = value
        return merged


def password_from_env() -> str | None:
    return os.environ.get(PASSWORD_ENV_VAR) or None
