"""
Importer Errors

Every failure aborts the current operation and reaches the caller with the
path, shortname or status needed to diagnose it.
"""

from typing import Optional


class MagicAppError(Exception):
    """Base error for the MAGICapp importer."""
    pass


class ConfigurationError(MagicAppError):
    """Required settings (usually credentials) are missing."""
    pass


# =============================================================================
# Authentication
# =============================================================================

class AuthenticationError(MagicAppError):
    """Session handshake failed."""
    pass


class AuthTransportError(AuthenticationError):
    """Network or protocol failure during the handshake."""
    pass


class MissingCsrfTokenError(AuthenticationError):
    """The pre-flight response did not set any cookie for the API."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Could not get a XSRF cookie from {url}")


class AuthRejectedError(AuthenticationError):
    """The platform refused the credentials."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"Authentication rejected by {url} (HTTP {status_code})")


# =============================================================================
# Resource reads
# =============================================================================

class ResourceError(MagicAppError):
    """Failure on an authenticated resource read."""

    def __init__(self, message: str, path: str, url: Optional[str] = None):
        self.path = path
        self.url = url
        super().__init__(message)


class ResourceNotFoundError(ResourceError):
    """The requested resource does not exist."""

    def __init__(self, path: str, url: Optional[str] = None):
        super().__init__(f"Resource not found: {path}", path=path, url=url)


class GuidelineNotFoundError(ResourceNotFoundError):
    """No published guideline with the requested shortname."""

    def __init__(self, shortname: str, path: str, url: Optional[str] = None):
        super().__init__(path=path, url=url)
        self.shortname = shortname
        self.args = (f"Guideline not found: {shortname}",)


class AuthExpiredError(ResourceError):
    """The read was rejected because the session is not authenticated."""
    pass


class TransportError(ResourceError):
    """Network or protocol failure on a resource read."""
    pass
