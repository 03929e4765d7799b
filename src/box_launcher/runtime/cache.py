"""Library cache: ensure_libraries() and related functions.

On every launch, ``ensure_libraries()`` guarantees that ``<home>/lib``
contains the engine libraries. A cache holding at least two libraries is
used as-is without taking any lock. Otherwise the bundled archives are
unpacked under an exclusive file lock so that parallel first-run
invocations do not corrupt the cache.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from rich.console import Console

from box_launcher.errors import ArchiveNotFoundError, LibraryCacheError, ProvisioningError
from box_launcher.models import LibraryCacheState
from box_launcher.properties import LauncherProperties
from box_launcher.runtime.provision import (
    PACKED_SUFFIXES,
    copy_resource,
    extract_archive,
)

logger = logging.getLogger(__name__)

MIN_LIBRARY_COUNT = 2
LOCK_FILE_NAME = ".provision.lock"
CONTENT_DIR_NAME = "cfml"
TRAY_ICON_NAME = "trayicon.png"


@dataclass(frozen=True)
class LibraryCache:
    """A validated library directory and the libraries found in it."""

    directory: Path
    files: tuple[Path, ...]
    provisioned: bool = False


def _lock_exclusive(fd: IO[str]) -> None:
    """Acquire an exclusive file lock, blocking if another process holds it.

    On Unix: uses ``fcntl.flock`` with a non-blocking attempt first.
    On Windows: uses ``msvcrt.locking`` with ``LK_LOCK`` (blocking).
    """
    if sys.platform == "win32":
        import msvcrt

        msvcrt.locking(fd.fileno(), msvcrt.LK_LOCK, 1)
    else:
        import fcntl

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            logger.debug("Another launcher is provisioning, waiting for it")
            fcntl.flock(fd, fcntl.LOCK_EX)


def list_libraries(directory: Path, extension: str = ".jar") -> list[Path]:
    """Return the library files directly inside *directory*, sorted by name."""
    if not directory.is_dir():
        return []
    extension = extension.lower()
    return sorted(
        entry
        for entry in directory.iterdir()
        if entry.is_file() and entry.name.lower().endswith(extension)
    )


def cleanup_packed_fragments(directory: Path) -> int:
    """Delete packed leftovers of an interrupted extraction.

    Errors during removal are silently ignored (best-effort cleanup).
    """
    if not directory.is_dir():
        return 0
    removed = 0
    for entry in directory.iterdir():
        if entry.is_file() and entry.name.lower().endswith(PACKED_SUFFIXES):
            try:
                entry.unlink()
                removed += 1
            except OSError:
                pass  # best-effort cleanup
    return removed


def library_cache_state(
    library_dir: Path,
    *,
    force_update: bool = False,
    extension: str = ".jar",
) -> LibraryCacheState:
    """Classify the cache; computed fresh on every call.

    Libraries nested one level deeper (``<library_dir>/lib``) count too, so an
    archive that unpacks into a ``lib/`` folder stays current across launches.
    """
    if force_update:
        return LibraryCacheState.FORCE_UPDATE
    if not library_dir.is_dir():
        return LibraryCacheState.ABSENT
    if (
        len(list_libraries(library_dir, extension)) < MIN_LIBRARY_COUNT
        and len(list_libraries(library_dir / "lib", extension)) < MIN_LIBRARY_COUNT
    ):
        return LibraryCacheState.STALE
    return LibraryCacheState.CURRENT


def provision(
    home: Path,
    library_dir: Path,
    properties: LauncherProperties,
    *,
    resource_root: Path | None = None,
    console: Console | None = None,
) -> None:
    """Unpack the library and content archives and copy the tray icon.

    Re-running after a partial success overwrites whatever is on disk.

    Raises:
        ProvisioningError: If the library or content directory cannot be
            written.
    """
    try:
        library_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ProvisioningError(f"Cannot create library directory {library_dir}: {exc}") from exc
    extract_archive(
        properties.library_archive,
        library_dir,
        resource_root=resource_root,
        console=console,
    )
    extract_archive(
        properties.content_archive,
        home / CONTENT_DIR_NAME,
        resource_root=resource_root,
        console=console,
    )
    try:
        copy_resource(
            properties.tray_icon,
            library_dir / TRAY_ICON_NAME,
            resource_root=resource_root,
        )
    except ArchiveNotFoundError as exc:
        logger.warning("Tray icon not installed: %s", exc)
    except OSError as exc:
        raise ProvisioningError(f"Cannot install tray icon into {library_dir}: {exc}") from exc


def _provision_locked(
    home: Path,
    library_dir: Path,
    properties: LauncherProperties,
    *,
    force_update: bool,
    resource_root: Path | None,
    console: Console,
) -> bool:
    """Provision under the home directory lock; returns True if work was done."""
    lock_path = home / LOCK_FILE_NAME
    try:
        lock_fd = open(lock_path, "w")  # noqa: SIM115 -- need fd for flock
    except OSError as exc:
        raise ProvisioningError(f"Cannot open lock file {lock_path}: {exc}") from exc
    try:
        _lock_exclusive(lock_fd)

        # Fragments may belong to an extraction that held the lock until now
        cleanup_packed_fragments(library_dir)

        # Double-check after lock acquired (another process may have finished)
        state = library_cache_state(
            library_dir,
            force_update=force_update,
            extension=properties.library_extension,
        )
        if not state.needs_provisioning:
            logger.debug("Library cache was provisioned by another process")
            return False

        if state is LibraryCacheState.FORCE_UPDATE:
            console.print("Library force update detected, starting to unpack!")
        else:
            console.print(
                f"Lookey Here! First time running {properties.name}, so I have to "
                "unpack some libraries for you -- this will only happen once, "
                "and takes a few seconds..."
            )

        provision(
            home,
            library_dir,
            properties,
            resource_root=resource_root,
            console=console,
        )
        console.print("")
        console.print("Yeehaaw! We are ready to go, libraries initialized!")
        return True
    finally:
        lock_fd.close()


def ensure_libraries(
    home: Path,
    properties: LauncherProperties,
    *,
    library_override: str | None = None,
    force_update: bool = False,
    resource_root: Path | None = None,
    console: Console | None = None,
) -> LibraryCache:
    """Return a library directory holding at least two libraries.

    An explicit *library_override* is trusted verbatim and never
    provisioned. Otherwise ``<home>/lib`` is (re)provisioned when absent,
    stale or when *force_update* is set.

    Raises:
        ArchiveNotFoundError: If a bundled archive is missing.
        LibraryCacheError: If fewer than two libraries exist afterwards.
    """
    console = console or Console()
    extension = properties.library_extension
    provisioned = False

    if library_override:
        library_dir = Path(library_override)
        logger.debug("Library dir override: %s", library_dir)
        if force_update:
            logger.warning("Ignoring -update because the library directory was overridden")
    else:
        library_dir = home / "lib"
        state = library_cache_state(library_dir, force_update=force_update, extension=extension)
        logger.debug("Library cache %s is %s", library_dir, state.value)
        if state.needs_provisioning:
            provisioned = _provision_locked(
                home,
                library_dir,
                properties,
                force_update=force_update,
                resource_root=resource_root,
                console=console,
            )

    files = list_libraries(library_dir, extension)
    if len(files) < MIN_LIBRARY_COUNT:
        nested = library_dir / "lib"
        logger.debug("Less than %d libraries in %s, trying %s", MIN_LIBRARY_COUNT, library_dir, nested)
        nested_files = list_libraries(nested, extension)
        if len(nested_files) < MIN_LIBRARY_COUNT:
            raise LibraryCacheError(library_dir, max(len(files), len(nested_files)), MIN_LIBRARY_COUNT)
        library_dir, files = nested, nested_files

    for library in files:
        logger.debug("- %s", library)
    return LibraryCache(directory=library_dir, files=tuple(files), provisioned=provisioned)
