"""The launch pipeline from raw arguments to a collaborator exit code."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Mapping, Sequence

from rich.console import Console

from box_launcher.arguments import ArgumentList, parse_options
from box_launcher.collaborators import LaunchableRuntime, default_runtimes
from box_launcher.dispatch import build_plan, dispatch, select_mode, strip_launcher_flags
from box_launcher.logging_config import configure_logging
from box_launcher.models import ResolvedEnvironment, RunMode
from box_launcher.properties import (
    LauncherProperties,
    UserConfig,
    load_launcher_properties,
    load_user_config,
)
from box_launcher.runtime.cache import ensure_libraries
from box_launcher.runtime.home import resolve_home

logger = logging.getLogger(__name__)

HELP_FLUSH_SECONDS = 1.0


def show_usage(properties: LauncherProperties, console: Console) -> None:
    console.print(properties.usage.rstrip(), markup=False, highlight=False)
    time.sleep(HELP_FLUSH_SECONDS)


def resolve_environment(
    options: dict[str, str],
    properties: LauncherProperties,
    user_config: UserConfig,
    *,
    environ: Mapping[str, str] | None = None,
    resource_root: Path | None = None,
    console: Console | None = None,
) -> ResolvedEnvironment:
    """Resolve the home directory and provision its library cache."""
    debug = "debug" in options
    home = resolve_home(properties.name, options, user_config.properties, environ)
    force_update = "update" in options
    if force_update:
        console = console or Console()
        console.print(f"Force updating {properties.name} home")

    cache = ensure_libraries(
        home,
        properties,
        library_override=options.get("lib") or None,
        force_update=force_update,
        resource_root=resource_root,
        console=console,
    )
    server_config_dir = home / "server"
    env = ResolvedEnvironment(
        home_dir=home,
        library_dir=cache.directory,
        server_config_dir=server_config_dir,
        web_config_dir=server_config_dir / f"{properties.engine}-web",
        debug=debug,
        library_files=cache.files,
    )
    logger.debug("Resolved environment: %s", env)
    return env


def launch(
    argv: Sequence[str],
    *,
    properties: LauncherProperties | None = None,
    user_config: UserConfig | None = None,
    runtimes: Mapping[RunMode, LaunchableRuntime] | None = None,
    environ: Mapping[str, str] | None = None,
    resource_root: Path | None = None,
    cwd: Path | None = None,
    console: Console | None = None,
) -> int:
    """Run one launcher invocation and return the process exit code.

    Raises:
        LauncherError: For fatal configuration or environment errors.
    """
    console = console or Console()
    properties = properties or load_launcher_properties()
    arguments = ArgumentList(argv)
    options, _ = parse_options(arguments)

    configure_logging("debug" in options)
    logger.debug("Sent raw args: %s", list(argv))
    logger.debug("Sent config map: %s", options)

    forwarded = strip_launcher_flags(arguments, properties)
    logger.debug("Sent argList: %s", forwarded.tokens)

    mode = select_mode(options, forwarded, properties, cwd=cwd)
    logger.debug("Selected mode: %s", mode.value)
    if mode is RunMode.HELP:
        show_usage(properties, console)
        return 0

    user_config = user_config or load_user_config(properties.name)
    env = resolve_environment(
        options,
        properties,
        user_config,
        environ=environ,
        resource_root=resource_root,
        console=console,
    )
    if mode is RunMode.FORCE_UPDATE_ONLY:
        return 0

    plan = build_plan(mode, env, options, forwarded, properties, cwd=cwd)
    if runtimes is None:
        runtimes = default_runtimes(properties, user_config)
    return dispatch(env, plan, runtimes)
