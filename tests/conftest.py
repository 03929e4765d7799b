from __future__ import annotations

import gzip
import io
import zipfile
from pathlib import Path
from typing import Mapping

import pytest
from rich.console import Console

from box_launcher.models import LaunchPlan, ResolvedEnvironment
from box_launcher.properties import LauncherProperties, load_launcher_properties


def build_zip(path: Path, entries: Mapping[str, bytes]) -> Path:
    """Write a zip archive with the given entry names and contents."""
    with zipfile.ZipFile(path, "w") as zip_ref:
        for name, data in entries.items():
            zip_ref.writestr(name, data)
    return path


LIBRARY_ENTRIES = {
    "engine.jar": b"engine",
    "runwar.jar": b"runwar",
    "extra.jar.pack.gz": gzip.compress(b"extra"),
}

CONTENT_ENTRIES = {
    "system/": b"",
    "system/Bootstrap.cfm": b"<cfoutput>hello</cfoutput>",
}


@pytest.fixture()
def properties() -> LauncherProperties:
    return load_launcher_properties()


@pytest.fixture()
def quiet_console() -> Console:
    return Console(file=io.StringIO())


@pytest.fixture()
def resource_root(tmp_path: Path) -> Path:
    """A bundled-resource directory with library and content archives."""
    root = tmp_path / "resources"
    root.mkdir()
    build_zip(root / "libs.zip", LIBRARY_ENTRIES)
    build_zip(root / "cfml.zip", CONTENT_ENTRIES)
    (root / "trayicon.png").write_bytes(b"\x89PNG\r\n")
    return root


@pytest.fixture()
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture()
def env(home: Path) -> ResolvedEnvironment:
    library_dir = home / "lib"
    library_dir.mkdir()
    files = []
    for name in ("engine.jar", "runwar.jar"):
        (library_dir / name).write_bytes(b"jar")
        files.append(library_dir / name)
    return ResolvedEnvironment(
        home_dir=home,
        library_dir=library_dir,
        server_config_dir=home / "server",
        web_config_dir=home / "server" / "railo-web",
        debug=False,
        library_files=tuple(files),
    )


class RecordingRuntime:
    """Launchable runtime that records what it was asked to run."""

    def __init__(self, exit_code: int = 0, error: Exception | None = None):
        self.exit_code = exit_code
        self.error = error
        self.calls: list[tuple[ResolvedEnvironment, LaunchPlan]] = []

    def run(self, env: ResolvedEnvironment, plan: LaunchPlan) -> int:
        self.calls.append((env, plan))
        if self.error is not None:
            raise self.error
        return self.exit_code


@pytest.fixture()
def recording_runtime() -> type[RecordingRuntime]:
    return RecordingRuntime


@pytest.fixture()
def zip_builder():
    return build_zip
