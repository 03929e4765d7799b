"""Run mode selection and collaborator hand-off.

One invocation selects exactly one ``RunMode``. When several flags are
given together the precedence is:

    stop > server start > -shell overriding -server > execute keyword
    > recipe file > existing file > default shell

``build_plan`` then assembles the argument vector and published properties
for the selected collaborator, and ``dispatch`` runs it, turning any failure
into exit code 1.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Mapping

from box_launcher.arguments import ArgumentList
from box_launcher.collaborators import LaunchableRuntime
from box_launcher.errors import CollaboratorError
from box_launcher.models import LaunchPlan, OptionMap, ResolvedEnvironment, RunMode
from box_launcher.properties import LauncherProperties
from box_launcher.runtime.home import home_option_name

logger = logging.getLogger(__name__)

HELP_OPTIONS = ("help", "?")


def help_requested(options: OptionMap) -> bool:
    return any(name in options for name in HELP_OPTIONS)


def strip_launcher_flags(arguments: ArgumentList, properties: LauncherProperties) -> ArgumentList:
    """Return a copy of *arguments* without the flags the launcher consumes."""
    forwarded = arguments.copy()
    consumed = ("debug", home_option_name(properties.name), "lib", "update", "shell", *HELP_OPTIONS)
    for flag in consumed:
        forwarded.remove_prefixed(f"-{flag}", ignore_case=True)
    return forwarded


def _current_dir() -> Path:
    try:
        return Path.cwd()
    except OSError:
        return Path(".")


def _execute_target_index(arguments: ArgumentList, properties: LauncherProperties) -> int:
    """Index of the execute keyword when a path follows it, else -1."""
    keyword = properties.execute_keyword
    if not keyword:
        return -1
    index = arguments.index_of(keyword)
    if index < 0 or index + 1 >= len(arguments):
        return -1
    return index


def select_mode(
    options: OptionMap,
    forwarded: ArgumentList,
    properties: LauncherProperties,
    *,
    cwd: Path | None = None,
) -> RunMode:
    """Pick the single run mode for this invocation."""
    cwd = cwd or _current_dir()
    update = "update" in options

    if help_requested(options) and not update:
        return RunMode.HELP
    if update and not len(forwarded):
        return RunMode.FORCE_UPDATE_ONLY
    if "stop" in options:
        return RunMode.STOP_SERVER
    if "server" in options and "shell" not in options:
        if "background" in options:
            return RunMode.START_SERVER_BACKGROUND
        return RunMode.START_SERVER

    if _execute_target_index(forwarded, properties) >= 0:
        return RunMode.EXECUTE_FILE

    positionals = forwarded.positionals()
    if positionals:
        first = positionals[0]
        if properties.is_recipe(first):
            return RunMode.EXECUTE_RECIPE
        if (cwd / first).is_file():
            return RunMode.EXECUTE_FILE
    return RunMode.SHELL


def path_root(path: str) -> str:
    """Return the leading segment of *path* including its separator.

    ``/home/me/x.cfm`` gives ``/``; ``C:\\site\\x.cfm`` gives ``C:\\``.
    """
    return re.sub(r"^([^\\/]*?[\\/]).*$", r"\1", path, flags=re.DOTALL)


def resolve_web_root(options: OptionMap, cwd: Path | None = None) -> Path:
    """Web root for server modes: -webroot, else the working directory, else ``.``."""
    if explicit := options.get("webroot", "").strip():
        return Path(explicit).resolve()
    if cwd is not None:
        return cwd.resolve()
    try:
        return Path.cwd().resolve()
    except OSError:
        return Path(".")


def published_properties(env: ResolvedEnvironment, properties: LauncherProperties) -> dict[str, str]:
    """System properties every collaborator receives."""
    engine = properties.engine
    return {
        f"{engine}.server.config.dir": str(env.server_config_dir.absolute()),
        f"{engine}.web.config.dir": str(env.web_config_dir.absolute()),
        "cfml.cli.home": str(env.home_dir.absolute()),
        "cfml.server.trayicon": str(env.tray_icon),
        "cfml.server.dockicon": "",
    }


def server_arguments(
    mode: RunMode,
    web_root: Path,
    env: ResolvedEnvironment,
    properties: LauncherProperties,
) -> list[str]:
    """The embedded server's own flags for a start or stop request."""
    if mode is RunMode.START_SERVER_BACKGROUND:
        return [
            "-war", str(web_root),
            "--background", "true",
            "--iconpath", str(env.tray_icon),
            "--libdir", str(env.library_dir),
            "--processname", properties.name,
        ]
    return [
        "-war", str(web_root),
        "--iconpath", str(env.tray_icon),
        "--background", "false",
        "--processname", properties.name,
    ]


def _server_plan(
    mode: RunMode,
    env: ResolvedEnvironment,
    options: OptionMap,
    forwarded: ArgumentList,
    properties: LauncherProperties,
    cwd: Path | None,
) -> LaunchPlan:
    web_root = resolve_web_root(options, cwd)
    arguments = forwarded.copy()
    arguments.remove_prefixed("-webroot", ignore_case=True)
    arguments.remove_prefixed("-background", ignore_case=True)
    arguments.remove_then_append(
        "-server",
        server_arguments(mode, web_root, env, properties),
        ignore_case=True,
    )
    return LaunchPlan(
        mode=mode,
        arguments=tuple(arguments),
        web_root=web_root,
        properties=published_properties(env, properties),
    )


def _shell_plan(
    mode: RunMode,
    env: ResolvedEnvironment,
    forwarded: ArgumentList,
    properties: LauncherProperties,
    cwd: Path,
) -> LaunchPlan:
    entry_uri = (env.home_dir / properties.shell_path.lstrip("/\\")).resolve()
    arguments = forwarded.copy()

    if mode is RunMode.EXECUTE_FILE:
        index = _execute_target_index(arguments, properties)
        if index >= 0:
            target = cwd / arguments.tokens[index + 1]
            if target.exists():
                entry_uri = target.resolve()
            else:
                logger.warning("File to execute does not exist: %s", target)
            arguments.remove_at(index + 1)
            arguments.remove_at(index)
        else:
            entry_uri = (cwd / arguments.positionals()[0]).resolve()
        logger.debug("Executing: %s", entry_uri)
    elif mode is RunMode.EXECUTE_RECIPE:
        recipe = arguments.positionals()[0]
        arguments.insert(arguments.index_of(recipe), properties.recipe_keyword)

    published = published_properties(env, properties)
    published["cfml.cli.arguments"] = arguments.joined(" ")
    logger.debug("Sent cfml.cli.arguments: %s", published["cfml.cli.arguments"])
    return LaunchPlan(
        mode=mode,
        arguments=tuple(arguments),
        entry_uri=entry_uri,
        web_root=Path(path_root(str(entry_uri))).resolve(),
        properties=published,
    )


def build_plan(
    mode: RunMode,
    env: ResolvedEnvironment,
    options: OptionMap,
    forwarded: ArgumentList,
    properties: LauncherProperties,
    *,
    cwd: Path | None = None,
) -> LaunchPlan:
    """Assemble what the selected mode's collaborator expects."""
    if mode.is_terminal_without_launch:
        return LaunchPlan(mode=mode)
    if mode.is_server:
        logger.debug("Running in server mode")
        return _server_plan(mode, env, options, forwarded, properties, cwd)
    logger.debug("Running in CLI mode")
    return _shell_plan(mode, env, forwarded, properties, cwd or _current_dir())


def dispatch(
    env: ResolvedEnvironment,
    plan: LaunchPlan,
    runtimes: Mapping[RunMode, LaunchableRuntime],
) -> int:
    """Run the collaborator for ``plan.mode`` and return the process exit code.

    Any exception from the collaborator is logged and yields exit code 1.
    """
    if plan.mode.is_terminal_without_launch:
        return 0

    runtime = runtimes.get(plan.mode)
    try:
        if runtime is None:
            raise CollaboratorError(f"No runtime registered for {plan.mode.value}")
        exit_code = runtime.run(env, plan)
    except Exception:
        logger.exception("%s failed", plan.mode.value)
        return 1
    logger.debug("%s exited with %s", plan.mode.value, exit_code)
    return exit_code
