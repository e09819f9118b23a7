"""Exception types raised by hostsync components.

Brief:
  Startup problems (ConfigurationError, WatchError) are fatal. Registry,
  decode and write failures are recovered inside HostsGenerator.generate(),
  which reports them and leaves the published hosts file untouched.
"""

from __future__ import annotations


class HostSyncError(Exception):
    """Base class for all hostsync errors."""

    pass


class ConfigurationError(HostSyncError):
    """
    A missing or invalid configuration setting.

    Inputs:
      - message: Description listing every offending setting.
    Outputs:
      - Exception instance.

    Brief: Raised before the watcher starts; the CLI exits with status 1.
    """

    pass


class RegistryReadError(HostSyncError):
    """Raised when the registry database cannot be opened or queried."""

    pass


class DecodeError(HostSyncError):
    """Raised when a stored hostname array is not a JSON array of strings."""

    pass


class FilesystemWriteError(HostSyncError):
    """Raised when the temp file cannot be written or renamed into place."""

    pass


class WatchError(HostSyncError):
    """Raised when a change subscription cannot be established."""

    pass
