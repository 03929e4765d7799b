"""Extraction of bundled archives into the home directory.

Unpacking a multi-megabyte library bundle takes a few seconds, so a
``ProgressTicker`` prints a dot every couple of seconds while
``extract_archive`` runs. The ticker is always stopped before the
extraction call returns, whether it succeeded or not.
"""

from __future__ import annotations

import gzip
import logging
import shutil
import threading
import zipfile
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console

from box_launcher.errors import ArchiveNotFoundError, ProvisioningError
from box_launcher.runtime.home import get_resource_root

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECONDS = 2.0
PACKED_SUFFIXES = (".pack.gz", ".gz")
_CHUNK_SIZE = 8 * 1024


class ProgressTicker:
    """Emit a liveness tick immediately and then every *interval* seconds."""

    def __init__(
        self,
        emit: Callable[[], None],
        interval: float = TICK_INTERVAL_SECONDS,
    ):
        self.emit = emit
        self.interval = interval
        self.ticks = 0
        self._timer: Optional[threading.Timer] = None
        self._running = False
        self._lock = threading.Lock()

    def __enter__(self) -> "ProgressTicker":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._schedule(0.0)

    def stop(self) -> None:
        """Cancel the pending tick and wait for an in-flight one to finish."""
        with self._lock:
            self._running = False
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            if timer is not threading.current_thread():
                timer.join()

    def _schedule(self, delay: float) -> None:
        # Caller holds _lock
        self._timer = threading.Timer(delay, self._on_timer)
        self._timer.daemon = True
        self._timer.start()

    def _on_timer(self) -> None:
        # This timer stays in _timer until the next one is scheduled, so
        # stop() joins whichever thread is emitting.
        with self._lock:
            if not self._running:
                return
            self.ticks += 1
        self.emit()
        with self._lock:
            if self._running:
                self._schedule(self.interval)


def locate_resource(resource_name: str, resource_root: Path | None = None) -> Path:
    """Return the path of a bundled resource.

    Raises:
        ArchiveNotFoundError: If the resource does not exist.
    """
    try:
        root = resource_root if resource_root is not None else get_resource_root()
    except FileNotFoundError as exc:
        raise ArchiveNotFoundError(resource_name) from exc

    path = root / resource_name
    if not path.is_file():
        raise ArchiveNotFoundError(resource_name, root)
    return path


def _unpacked_name(path: Path) -> Path:
    name = path.name
    for suffix in PACKED_SUFFIXES:
        if name.lower().endswith(suffix):
            return path.with_name(name[: -len(suffix)])
    return path.with_name(name + ".unpacked")


def unpack(packed: Path) -> Path:
    """Decompress a packed entry next to itself and delete the packed file."""
    target = _unpacked_name(packed)
    with gzip.open(packed, "rb") as src, open(target, "wb") as dst:
        shutil.copyfileobj(src, dst, _CHUNK_SIZE)
    packed.unlink()
    logger.debug("Unpacked %s -> %s", packed.name, target.name)
    return target


def _entry_target(destination: Path, entry_name: str) -> Path:
    target = (destination / entry_name).resolve()
    root = destination.resolve()
    if target != root and root not in target.parents:
        raise ProvisioningError(f"Archive entry {entry_name!r} escapes {destination}")
    return target


def extract_archive(
    resource_name: str,
    destination: Path,
    *,
    resource_root: Path | None = None,
    console: Console | None = None,
    tick_interval: float = TICK_INTERVAL_SECONDS,
) -> list[Path]:
    """Extract every entry of a bundled archive into *destination*.

    Existing files are overwritten so that an interrupted extraction can be
    re-run. Entries ending in a packed marker are decompressed after being
    written.

    Returns:
        The files written, after unpacking.

    Raises:
        ArchiveNotFoundError: If the archive is not bundled.
        ProvisioningError: If an entry would be written outside *destination*,
            the archive is not a valid zip file, or *destination* cannot be
            written.
    """
    archive = locate_resource(resource_name, resource_root)
    logger.debug("Extracting %s into %s", archive, destination)

    console = console or Console()
    written: list[Path] = []
    with ProgressTicker(lambda: console.print(".", end=""), tick_interval):
        try:
            destination.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(archive) as zip_ref:
                for info in zip_ref.infolist():
                    target = _entry_target(destination, info.filename)
                    if info.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with zip_ref.open(info) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst, _CHUNK_SIZE)
                    if target.name.lower().endswith(PACKED_SUFFIXES):
                        target = unpack(target)
                    written.append(target)
        except zipfile.BadZipFile as exc:
            raise ProvisioningError(f"{archive} is not a valid archive: {exc}") from exc
        except OSError as exc:
            raise ProvisioningError(f"Cannot extract {resource_name} into {destination}: {exc}") from exc

    logger.debug("Extracted %d files from %s", len(written), resource_name)
    return written


def copy_resource(
    resource_name: str,
    destination: Path,
    *,
    resource_root: Path | None = None,
) -> Path:
    """Copy a single bundled resource to *destination*, overwriting it."""
    source = locate_resource(resource_name, resource_root)
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, destination)
    return destination
