"""Exception types raised by savekeep.

All errors inherit from SaveKeepError and carry a human-readable message
that the CLI shows as-is.
"""


class SaveKeepError(Exception):
    """Base exception for all savekeep errors."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotConfigured(SaveKeepError):
    """No tracked file has been selected."""


class SourceMissing(SaveKeepError):
    """The tracked file is absent (or not a regular file) at snapshot time."""

    def __init__(self, path):
        super().__init__(f"Tracked file not found: {path}")
        self.path = path


class DirectoryUnreadable(SaveKeepError):
    """Listing a snapshot directory failed. Distinct from an empty directory."""

    def __init__(self, directory, cause=None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Cannot read snapshot directory {directory}{detail}")
        self.directory = directory


class SnapshotIOError(SaveKeepError):
    """Copying bytes or creating a directory failed."""


class SnapshotNotFound(SaveKeepError):
    """A snapshot name or index does not match any listed snapshot."""


class ForeignSnapshot(SaveKeepError):
    """A snapshot from another directory was passed to a restore."""


class WatchInitError(SaveKeepError):
    """The change notification source could not be established."""


class WatchChannelError(SaveKeepError):
    """The change notification source failed mid-session."""
