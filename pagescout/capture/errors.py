"""Exception types raised and reported by page capture sessions.

Only SessionError, CloseError and PageRuntimeError are ever reported on the
public ``error``/``page-error`` topics. Navigation and serialization failures
are absorbed where they happen, and a missing main record ends the session
without any report.
"""

from typing import Optional


class CaptureError(Exception):
    """Base class for page capture errors."""


class NavigationError(CaptureError):
    """Navigation failed or exceeded its time budget."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        super().__init__(f"Navigation to {url} failed: {cause}")


class MissingMainRecord(CaptureError):
    """Navigation produced no usable primary request."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"No main request recorded for {url}")


class PageRuntimeError(CaptureError):
    """The page crashed or raised a fatal runtime error."""

    def __init__(self, url: Optional[str], detail: str = "Page crashed"):
        self.url = url
        self.detail = detail
        super().__init__(f"{detail} ({url})" if url else detail)


class SerializationError(CaptureError):
    """A window property could not be serialized.

    Instances are stored as the property's value in the window diff rather
    than raised.
    """

    def __init__(self, property_name: str, name: str = "Error", message: str = ""):
        self.property_name = property_name
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}")

    def to_dict(self):
        return {'name': self.name, 'message': self.message}

    def __eq__(self, other):
        if not isinstance(other, SerializationError):
            return NotImplemented
        return (self.property_name, self.name, self.message) == (
            other.property_name, other.name, other.message
        )

    def __hash__(self):
        return hash((self.property_name, self.name, self.message))


class SessionError(CaptureError):
    """Unexpected failure anywhere in the session timeline."""

    def __init__(self, url: str, cause: BaseException):
        self.url = url
        self.cause = cause
        super().__init__(f"Loading of web page failed ({url}): {cause}")


class CloseError(CaptureError):
    """Closing the page failed."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Error closing page: {cause}")
