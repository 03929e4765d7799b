"""Runtime environment resolution for the launcher.

This subpackage manages the per-user home directory (e.g. ~/.commandbox/),
including path resolution, library cache provisioning and archive
extraction.
"""

from box_launcher.runtime.cache import (
    LibraryCache,
    ensure_libraries,
    library_cache_state,
    list_libraries,
)
from box_launcher.runtime.home import (
    discover_home,
    get_resource_root,
    home_option_name,
    home_variable_name,
    resolve_home,
)
from box_launcher.runtime.provision import ProgressTicker, extract_archive

__all__ = [
    "LibraryCache",
    "ProgressTicker",
    "discover_home",
    "ensure_libraries",
    "extract_archive",
    "get_resource_root",
    "home_option_name",
    "home_variable_name",
    "library_cache_state",
    "list_libraries",
    "resolve_home",
]
