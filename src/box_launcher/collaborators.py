"""Launchable runtimes: the engine shell and the embedded server.

Both collaborators are JVM programs started as child processes with the
library cache as class path and the launcher's published properties as
``-D`` system properties. The dispatcher picks one by ``RunMode``.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping, Protocol

from box_launcher.errors import CollaboratorError
from box_launcher.models import LaunchPlan, ResolvedEnvironment, RunMode
from box_launcher.properties import LauncherProperties, UserConfig

logger = logging.getLogger(__name__)


class LaunchableRuntime(Protocol):
    """A collaborator the dispatcher can hand the resolved environment to."""

    def run(self, env: ResolvedEnvironment, plan: LaunchPlan) -> int:
        ...


def find_java(configured: str | None = None, environ: Mapping[str, str] | None = None) -> str:
    """Return the Java executable to launch collaborators with.

    Resolution order:
    1. ``java`` from the user configuration
    2. ``$JAVA_HOME/bin/java``
    3. ``java`` on PATH

    Raises:
        CollaboratorError: If no Java executable can be found.
    """
    environ = environ if environ is not None else os.environ
    if configured:
        return configured

    if java_home := environ.get("JAVA_HOME"):
        executable = "java.exe" if os.name == "nt" else "java"
        candidate = Path(java_home) / "bin" / executable
        if candidate.is_file():
            return str(candidate)

    if found := shutil.which("java"):
        return found

    raise CollaboratorError("Java executable not found. Install Java or set JAVA_HOME.")


@contextmanager
def _ignore_interrupts() -> Iterator[None]:
    """Let the child process handle Ctrl+C while it runs."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


class JavaRuntime:
    """Start a JVM main class from the library cache."""

    def __init__(self, main_class: str, java: str | None = None):
        self.main_class = main_class
        self.java = java

    def arguments(self, env: ResolvedEnvironment, plan: LaunchPlan) -> list[str]:
        return list(plan.arguments)

    def command(self, env: ResolvedEnvironment, plan: LaunchPlan) -> list[str]:
        java = find_java(self.java)
        system_properties = [f"-D{key}={value}" for key, value in plan.properties.items()]
        return [
            java,
            *system_properties,
            "-cp",
            env.search_path,
            self.main_class,
            *self.arguments(env, plan),
        ]

    def working_directory(self, plan: LaunchPlan) -> Path | None:
        """Directory the child starts in; ``None`` keeps the caller's."""
        return None

    def run(self, env: ResolvedEnvironment, plan: LaunchPlan) -> int:
        cmd = self.command(env, plan)
        cwd = self.working_directory(plan)
        logger.debug("Launching %s in %s: %s", self.main_class, cwd or ".", " ".join(cmd))
        with _ignore_interrupts():
            completed = subprocess.run(cmd, cwd=cwd, check=False)
        return completed.returncode


class ShellRuntime(JavaRuntime):
    """The engine's CLI entry point, loading an entry script."""

    def arguments(self, env: ResolvedEnvironment, plan: LaunchPlan) -> list[str]:
        if plan.entry_uri is None or plan.web_root is None:
            raise CollaboratorError("Shell launch requires an entry script and web root")
        return [
            str(plan.web_root),
            str(env.server_config_dir.absolute()),
            str(env.web_config_dir.absolute()),
            str(plan.entry_uri),
            "true" if env.debug else "false",
        ]


class ServerRuntime(JavaRuntime):
    """The embedded HTTP server, for both start and stop."""

    def working_directory(self, plan: LaunchPlan) -> Path | None:
        return plan.web_root


def default_runtimes(
    properties: LauncherProperties,
    user_config: UserConfig | None = None,
) -> dict[RunMode, LaunchableRuntime]:
    """Map every launching mode to its collaborator."""
    java = user_config.java if user_config is not None else None
    shell = ShellRuntime(properties.shell_main_class, java)
    server = ServerRuntime(properties.server_main_class, java)
    return {
        RunMode.SHELL: shell,
        RunMode.EXECUTE_FILE: shell,
        RunMode.EXECUTE_RECIPE: shell,
        RunMode.START_SERVER: server,
        RunMode.START_SERVER_BACKGROUND: server,
        RunMode.STOP_SERVER: server,
    }
