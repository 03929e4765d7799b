"""Exception hierarchy for the launcher.

Lower layers raise these unmodified; only ``dispatch()`` and the CLI entry
point translate them into exit codes.
"""

from __future__ import annotations

from pathlib import Path


class LauncherError(RuntimeError):
    """Base exception for launcher failures."""


class PropertiesError(LauncherError):
    """Raised when launcher properties or user configuration are unreadable."""


class ArchiveNotFoundError(LauncherError):
    """A bundled archive is missing; the launcher package is corrupt."""

    def __init__(self, resource_name: str, resource_root: Path | None = None):
        self.resource_name = resource_name
        self.resource_root = resource_root
        location = f" in {resource_root}" if resource_root is not None else ""
        super().__init__(
            f"Could not find the bundled resource {resource_name!r}{location}. "
            f"The launcher installation is corrupt; reinstall it."
        )


class HomeDirectoryError(LauncherError):
    """Raised when the home directory cannot be created."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Cannot create home directory {path}: {reason}")


class ProvisioningError(LauncherError):
    """Raised when an archive cannot be unpacked into the home directory."""


class LibraryCacheError(LauncherError):
    """Raised when the library cache holds too few libraries after provisioning."""

    def __init__(self, library_dir: Path, found: int, required: int):
        self.library_dir = library_dir
        self.found = found
        self.required = required
        super().__init__(
            f"Library directory {library_dir} contains {found} libraries, "
            f"at least {required} are required. Run with -update to re-provision."
        )


class CollaboratorError(LauncherError):
    """Raised when a downstream runtime cannot be started."""
