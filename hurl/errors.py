"""
Error taxonomy for hurl.

Every failure the tool can report is one of the HurlError subclasses below.
External failures (httpx, json, the OS, URL parsing) are converted at the
boundary where they happen with the from_* functions.
"""

import errno
import json
from typing import Optional

import httpx


class HurlError(Exception):
    """Base class for every error hurl reports to the user."""

    message = "Unknown error"

    def __str__(self) -> str:
        return self.message


class ParameterMissingSeparator(HurlError):
    def __init__(self, raw: str):
        super().__init__(raw)
        self.raw = raw

    def __str__(self) -> str:
        return f"Missing separator when parsing parameter: {self.raw}"


class MissingUrlAndCommand(HurlError):
    message = "Must specify a url or a command"


class NotFormButHasFormFile(HurlError):
    message = "Cannot have a form file 'key@filename' unless --form option is set"


class ClientSerialization(HurlError):
    message = "Serializing the request/response failed"


class ClientTimeout(HurlError):
    message = "Timeout during request"


class ClientWithStatus(HurlError):
    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(status_code)
        self.status_code = status_code
        self.reason = reason

    def __str__(self) -> str:
        return f"Got status code: {self.status_code} {self.reason}".rstrip()


class ClientOther(HurlError):
    message = "Unknown client error"


class SerdeJson(HurlError):
    """JSON could not be read or written. `category` is Syntax, Data or Eof."""

    def __init__(self, category: str):
        super().__init__(category)
        self.category = category

    def __str__(self) -> str:
        return f"JSON error: {self.category}"


class IoError(HurlError):
    """A file or session could not be read or written."""

    def __init__(self, kind: str):
        super().__init__(kind)
        self.kind = kind

    def __str__(self) -> str:
        return f"IO error: {self.kind}"


class UrlParseError(HurlError):
    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"URL parsing error: {self.detail}"


class SyntaxLoadError(HurlError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Error loading syntax for {self.name}"


def from_http_error(err: httpx.HTTPError) -> HurlError:
    """Classify a transport failure.

    Checked in order: decoding, timeout, status, anything else. A request
    body that fails to encode and a response body that fails to decode are
    reported as the same ClientSerialization kind.
    """
    if isinstance(err, httpx.DecodingError):
        return ClientSerialization()
    if isinstance(err, httpx.TimeoutException):
        return ClientTimeout()
    if isinstance(err, httpx.HTTPStatusError):
        return ClientWithStatus(err.response.status_code, err.response.reason_phrase)
    return ClientOther()


def from_json_error(err: Exception) -> SerdeJson:
    if isinstance(err, json.JSONDecodeError):
        if err.pos >= len(err.doc):
            return SerdeJson("Eof")
        return SerdeJson("Syntax")
    return SerdeJson("Data")


_ERRNO_KINDS = {
    errno.ENOENT: "NotFound",
    errno.EACCES: "PermissionDenied",
    errno.EPERM: "PermissionDenied",
    errno.EEXIST: "AlreadyExists",
    errno.EISDIR: "IsADirectory",
    errno.ENOTDIR: "NotADirectory",
    errno.ENOSPC: "StorageFull",
    errno.EROFS: "ReadOnlyFilesystem",
    errno.EINTR: "Interrupted",
    errno.EINVAL: "InvalidInput",
}


def from_os_error(err: OSError) -> IoError:
    """Map an OSError to its kind name, e.g. NotFound or PermissionDenied."""
    kind: Optional[str] = _ERRNO_KINDS.get(err.errno) if err.errno is not None else None
    return IoError(kind or "Other")


def from_url_error(err: Exception) -> UrlParseError:
    return UrlParseError(str(err) or type(err).__name__)
