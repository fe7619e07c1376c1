"""
Exception hierarchy for dlna-cast.

Every failure surfaced to callers derives from DLNACastError, so the command
line can report any of them with a single handler. The underlying transport
or parsing error, when there is one, is kept as ``cause`` and chained with
``raise ... from``.
"""

from typing import Optional


class DLNACastError(Exception):
    """Base class for all dlna-cast errors."""


class DiscoveryError(DLNACastError):
    """The SSDP search itself could not be carried out."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to discover devices: {cause}")


class RenderNotFound(DLNACastError):
    """No render matched the selector."""

    def __init__(self, selector):
        self.selector = selector
        super().__init__(f"No render found {selector}")


class UrlParseError(DLNACastError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Failed to parse URL '{url}'")


class DeviceCreateError(DLNACastError):
    def __init__(self, url: str, cause: Exception):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to parse and create device from '{url}': {cause}")


class FileNotFound(DLNACastError):
    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"File '{self.path}' does not exist")


class AddressParseError(DLNACastError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Failed to parse host address '{address}'")


class LocalAddressError(DLNACastError):
    """The local address used to reach a render could not be determined."""

    def __init__(self, host: str, cause: Optional[Exception] = None):
        self.host = host
        self.cause = cause
        super().__init__(f"Failed to identify local address to reach '{host}': {cause}")


class SetUriError(DLNACastError):
    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to set AVTransportURI: {cause}")


class PlayError(DLNACastError):
    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to Play: {cause}")


class StreamingTaskError(DLNACastError):
    """The background streaming server stopped on its own."""

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is None:
            super().__init__("Failed to stream: streaming server exited unexpectedly")
        else:
            super().__init__(f"Failed to stream: {cause}")
