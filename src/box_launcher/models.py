"""Data model shared by the resolution, dispatch and launch stages."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

OptionMap = dict[str, str]
PositionalArgs = list[str]


class RunMode(Enum):
    """The single top-level behavior selected for one invocation."""

    SHELL = "shell"
    EXECUTE_FILE = "execute_file"
    EXECUTE_RECIPE = "execute_recipe"
    START_SERVER = "start_server"
    START_SERVER_BACKGROUND = "start_server_background"
    STOP_SERVER = "stop_server"
    HELP = "help"
    FORCE_UPDATE_ONLY = "force_update_only"

    @property
    def is_server(self) -> bool:
        return self in (
            RunMode.START_SERVER,
            RunMode.START_SERVER_BACKGROUND,
            RunMode.STOP_SERVER,
        )

    @property
    def is_terminal_without_launch(self) -> bool:
        """True for modes that exit without starting a collaborator."""
        return self in (RunMode.HELP, RunMode.FORCE_UPDATE_ONLY)


class LibraryCacheState(Enum):
    """State of the library cache, computed fresh on every run."""

    ABSENT = "absent"
    STALE = "stale"
    CURRENT = "current"
    FORCE_UPDATE = "force_update"

    @property
    def needs_provisioning(self) -> bool:
        return self is not LibraryCacheState.CURRENT


@dataclass(frozen=True)
class ResolvedEnvironment:
    """Home and library locations resolved for this invocation."""

    home_dir: Path
    library_dir: Path
    server_config_dir: Path
    web_config_dir: Path
    debug: bool = False
    library_files: tuple[Path, ...] = ()

    @property
    def tray_icon(self) -> Path:
        return self.library_dir.absolute() / "trayicon.png"

    @property
    def search_path(self) -> str:
        """Library files joined into a module search path string."""
        return os.pathsep.join(str(path) for path in self.library_files)


@dataclass(frozen=True)
class LaunchPlan:
    """Everything a launchable runtime needs to start its collaborator."""

    mode: RunMode
    arguments: tuple[str, ...] = ()
    entry_uri: Path | None = None
    web_root: Path | None = None
    properties: dict[str, str] = field(default_factory=dict)
