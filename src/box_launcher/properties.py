"""Launcher properties and user-level configuration.

Two layers are read here:

- ``launcher.yaml`` bundled with the package (program name, usage text,
  default shell path, archive names, collaborator main classes)
- an optional per-user ``config.yaml`` whose ``properties`` mapping plays the
  role of process-level system properties (e.g. ``COMMANDBOX_HOME``) and
  whose ``java`` key overrides the Java executable
"""

from __future__ import annotations

import importlib.resources
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml
from platformdirs import user_config_dir

from box_launcher.errors import PropertiesError

CONFIG_ENV_VAR = "BOX_LAUNCHER_CONFIG"
LAUNCHER_PROPERTIES = "launcher.yaml"


@dataclass(frozen=True)
class LauncherProperties:
    """Static properties describing the program being launched."""

    name: str
    usage: str
    version: str = "0.0.0"
    engine: str = "railo"
    shell_path: str = "/cfml/system/Bootstrap.cfm"
    library_extension: str = ".jar"
    recipe_pattern: str = r"\.boxr$"
    execute_keyword: str | None = "execute"
    recipe_keyword: str = "recipe"
    library_archive: str = "libs.zip"
    content_archive: str = "cfml.zip"
    tray_icon: str = "trayicon.png"
    shell_main_class: str = "railocli.CLIMain"
    server_main_class: str = "runwar.Start"

    @property
    def lower_name(self) -> str:
        return self.name.lower()

    @property
    def upper_name(self) -> str:
        return self.name.upper()

    def is_recipe(self, filename: str) -> bool:
        return re.search(self.recipe_pattern, filename, re.IGNORECASE) is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LauncherProperties":
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        for required in ("name", "usage"):
            value = values.get(required)
            if not isinstance(value, str) or not value.strip():
                raise PropertiesError(f"Launcher properties are missing {required!r}")
        values["name"] = values["name"].strip()
        try:
            re.compile(values.get("recipe_pattern", cls.recipe_pattern))
        except re.error as exc:
            raise PropertiesError(f"Invalid recipe_pattern: {exc}") from exc
        return cls(**values)


@dataclass(frozen=True)
class UserConfig:
    """Per-user launcher configuration."""

    properties: dict[str, str] = field(default_factory=dict)
    java: str | None = None
    path: Path | None = None


def _read_yaml(text: str, source: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise PropertiesError(f"Error loading {source}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise PropertiesError(f"Error loading {source}: expected a mapping")
    return data


def load_launcher_properties() -> LauncherProperties:
    """Read the bundled ``launcher.yaml``."""
    resource = importlib.resources.files("box_launcher") / "resources" / LAUNCHER_PROPERTIES
    try:
        text = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError) as exc:
        raise PropertiesError(f"Error loading {LAUNCHER_PROPERTIES}: {exc}") from exc
    return LauncherProperties.from_dict(_read_yaml(text, LAUNCHER_PROPERTIES))


def get_user_config_path(name: str) -> Path:
    """Return the user configuration file path.

    Resolution order:
    1. BOX_LAUNCHER_CONFIG environment variable
    2. ``<platform user config dir>/<name>/config.yaml`` (via platformdirs)
    """
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        return Path(env_path)
    return Path(user_config_dir(name.lower())) / "config.yaml"


def load_user_config(name: str) -> UserConfig:
    """Load the user configuration; a missing file yields an empty config."""
    path = get_user_config_path(name)
    if not path.is_file():
        return UserConfig(path=path)

    data = _read_yaml(path.read_text(encoding="utf-8"), str(path))
    raw_properties = data.get("properties") or {}
    if not isinstance(raw_properties, dict):
        raise PropertiesError(f"Error loading {path}: 'properties' must be a mapping")
    properties = {
        str(key): str(value)
        for key, value in raw_properties.items()
        if value is not None
    }

    java = data.get("java")
    return UserConfig(
        properties=properties,
        java=str(java).strip() if isinstance(java, str) and java.strip() else None,
        path=path,
    )
