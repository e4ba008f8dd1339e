"""Error taxonomy for the archiver."""

from __future__ import annotations


class ArchiverError(Exception):
    """Base class for all archiver errors."""


class ValidationError(ArchiverError):
    """Malformed or mismatched issue key range endpoints."""


class ConfigurationError(ArchiverError):
    """No resolvable server address, or a required credential is absent."""


class FilesystemError(ArchiverError):
    """Archive root or issue subdirectory could not be created."""


class RemoteFetchError(ArchiverError):
    """Issue retrieval, search, or attachment listing failed."""


class DownloadError(ArchiverError):
    """Both download attempts failed for one attachment."""
