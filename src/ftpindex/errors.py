"""Exception hierarchy shared across ftpindex."""

from __future__ import annotations


class FtpIndexError(Exception):
    """Base class for all ftpindex errors."""


class ConfigError(FtpIndexError):
    """Configuration file is missing or invalid."""


class SiteConnectionError(FtpIndexError):
    """A session with a remote site could not be established."""


class ListingError(FtpIndexError):
    """A single remote directory could not be listed."""

    def __init__(self, path: str, reason: object = None) -> None:
        self.path = path
        self.reason = reason
        message = f"listing {path} failed"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)


class ListingUnavailable(ListingError):
    """The root of a walk could not be listed."""


class PersistenceError(FtpIndexError):
    """The snapshot store rejected an operation."""
