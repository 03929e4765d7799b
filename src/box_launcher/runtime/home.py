"""Home directory resolution and bundled resource discovery.

Provides the canonical functions for locating:
- The launcher's persistent home directory (e.g. ~/.commandbox/)
- The bundled resources (library archives, tray icon) to provision from
"""

from __future__ import annotations

import importlib.resources
import logging
import os
import sys
from pathlib import Path
from typing import Mapping

from box_launcher.errors import HomeDirectoryError
from box_launcher.models import OptionMap

logger = logging.getLogger(__name__)

RESOURCE_ROOT_ENV_VAR = "BOX_LAUNCHER_RESOURCE_ROOT"


def home_option_name(name: str) -> str:
    """Option that overrides the home directory, e.g. ``commandbox_home``."""
    return f"{name.lower()}_home"


def home_variable_name(name: str) -> str:
    """Property / environment variable name, e.g. ``COMMANDBOX_HOME``."""
    return f"{name.upper()}_HOME"


def _launcher_dir() -> Path:
    """Return the directory containing the running launcher."""
    return Path(sys.argv[0] or __file__).resolve().parent


def discover_home(
    name: str,
    options: OptionMap,
    properties: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Return the home directory for *name* without touching the disk.

    Resolution order:
    1. ``-<name>_home=<path>`` command-line option
    2. ``<NAME>_HOME`` configuration property
    3. ``<NAME>_HOME`` environment variable
    4. ``~/.<name>/`` (lower-cased)
    5. The launcher's own directory when the user home cannot be determined
    """
    properties = properties if properties is not None else {}
    environ = environ if environ is not None else os.environ
    variable = home_variable_name(name)

    if option_home := options.get(home_option_name(name), "").strip():
        logger.debug("Home passed as argument: %s", option_home)
        return Path(option_home)

    if property_home := (properties.get(variable) or "").strip():
        logger.debug("Home discovered from property: %s", property_home)
        return Path(property_home)

    if env_home := (environ.get(variable) or "").strip():
        logger.debug("Home detected from environment: %s", env_home)
        return Path(env_home)

    try:
        return Path.home() / f".{name.lower()}"
    except RuntimeError:
        fallback = _launcher_dir()
        logger.debug("User home unavailable, using launcher directory %s", fallback)
        return fallback


def resolve_home(
    name: str,
    options: OptionMap,
    properties: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Discover the home directory and create it when missing.

    Creation is not recursive: the parent directory must already exist.

    Raises:
        HomeDirectoryError: If the directory cannot be created.
    """
    home = discover_home(name, options, properties, environ)
    if home.is_dir():
        logger.debug("Home: %s", home)
        return home

    logger.info(
        "Creating %s home: %s (change with -%s=/path/to/dir)",
        name,
        home,
        home_option_name(name),
    )
    try:
        home.mkdir()
    except FileExistsError as exc:
        raise HomeDirectoryError(home, "a file with that name already exists") from exc
    except OSError as exc:
        raise HomeDirectoryError(home, exc.strerror or str(exc)) from exc
    return home


def get_resource_root() -> Path:
    """Return the directory holding the bundled archives.

    Resolution order:
    1. BOX_LAUNCHER_RESOURCE_ROOT environment variable (CI/testing)
    2. importlib.resources.files("box_launcher") / "resources" (installed package)

    Raises:
        FileNotFoundError: If the override path does not exist.
    """
    if env_root := os.environ.get(RESOURCE_ROOT_ENV_VAR):
        root = Path(env_root)
        if root.is_dir():
            return root
        raise FileNotFoundError(f"{RESOURCE_ROOT_ENV_VAR} path does not exist: {env_root}")

    return Path(str(importlib.resources.files("box_launcher"))) / "resources"
