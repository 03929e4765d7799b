"""Launch bootstrapper for the CommandBox CFML engine runtime.

Resolves the runtime's home directory, unpacks the bundled engine libraries
into it on first run, and hands off to the shell, a script, or the embedded
server.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("box-launcher")
except PackageNotFoundError:
    __version__ = "0.0.0"

from box_launcher.launcher import launch
from box_launcher.models import LaunchPlan, ResolvedEnvironment, RunMode

__all__ = [
    "LaunchPlan",
    "ResolvedEnvironment",
    "RunMode",
    "__version__",
    "launch",
]
