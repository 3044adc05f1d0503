"""
Lockfile discovery for the League client
Locates the lockfile for the current platform and watches it for changes
"""

from .locator import CredentialLocator, parse_lockfile
from .paths import MACOS_LOCKFILE, WINDOWS_LOCKFILE, get_lockfile_path
from .watcher import CredentialChange, CredentialWatcher

__all__ = [
    "CredentialChange",
    "CredentialLocator",
    "CredentialWatcher",
    "MACOS_LOCKFILE",
    "WINDOWS_LOCKFILE",
    "get_lockfile_path",
    "parse_lockfile",
]
