"""Error taxonomy for the Paperless-ngx client.

Every failure the client surfaces is one of the ``ApiError`` subclasses
below. Each carries a stable ``kind`` and a distinct process exit code so
scripts can branch on the failure category without parsing stderr::

    $ pngx documents get 999
    Error: not found
    $ echo $?
    4

Raw transport outcomes are mapped onto the taxonomy by two total
functions, :func:`error_for_status` and :func:`error_for_transport`.
"""

from enum import StrEnum
from typing import ClassVar

import httpx

EXIT_SUCCESS = 0
EXIT_GENERIC_FAILURE = 1
EXIT_USAGE = 2  # reserved by click for bad arguments
EXIT_UNAUTHORIZED = 3
EXIT_NOT_FOUND = 4
EXIT_SERVER = 5
EXIT_NETWORK = 6
EXIT_TIMEOUT = 7
EXIT_SCHEME_MISMATCH = 8
EXIT_INVALID_ADDRESS = 9
EXIT_IO = 10
EXIT_DESERIALIZATION = 11


class ErrorKind(StrEnum):
    """Closed set of failure categories."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INVALID_ADDRESS = "invalid_address"
    IO = "io"
    NETWORK = "network"
    TIMEOUT = "timeout"
    DESERIALIZATION = "deserialization"
    SCHEME_MISMATCH = "scheme_mismatch"
    SERVER = "server"


class ApiError(Exception):
    """Base class for every error raised by the Paperless client."""

    kind: ClassVar[ErrorKind]
    exit_code: ClassVar[int] = EXIT_GENERIC_FAILURE


class UnauthorizedError(ApiError):
    """The API token was rejected or lacks permission (401 or 403)."""

    kind = ErrorKind.UNAUTHORIZED
    exit_code = EXIT_UNAUTHORIZED

    def __init__(self) -> None:
        super().__init__("unauthorized: invalid or missing API token")


class NotFoundError(ApiError):
    """The requested resource does not exist."""

    kind = ErrorKind.NOT_FOUND
    exit_code = EXIT_NOT_FOUND

    def __init__(self) -> None:
        super().__init__("not found")


class InvalidAddressError(ApiError):
    """A server address or page reference is not a usable URL."""

    kind = ErrorKind.INVALID_ADDRESS
    exit_code = EXIT_INVALID_ADDRESS

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"invalid URL: {detail}")


class LocalIoError(ApiError):
    """Writing a downloaded file to local storage failed."""

    kind = ErrorKind.IO
    exit_code = EXIT_IO

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"I/O error: {detail}")


class NetworkError(ApiError):
    """A transport failure: refused connection, DNS, TLS, dropped stream."""

    kind = ErrorKind.NETWORK
    exit_code = EXIT_NETWORK

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"network error: {detail}")


class RequestTimeoutError(ApiError):
    """The configured request timeout elapsed."""

    kind = ErrorKind.TIMEOUT
    exit_code = EXIT_TIMEOUT

    def __init__(self) -> None:
        super().__init__("request timed out")


class DeserializationError(ApiError):
    """A response body did not match the expected schema."""

    kind = ErrorKind.DESERIALIZATION
    exit_code = EXIT_DESERIALIZATION

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"failed to deserialize response: {detail}")


class SchemeMismatchError(ApiError):
    """A pagination link uses a different scheme than the configured base URL.

    Typically the server sits behind a TLS-terminating reverse proxy but does
    not trust forwarded headers, so it hands out ``http`` links to an
    ``https`` client.
    """

    kind = ErrorKind.SCHEME_MISMATCH
    exit_code = EXIT_SCHEME_MISMATCH

    def __init__(self, expected: str, returned: str) -> None:
        self.expected = expected
        self.returned = returned
        super().__init__(
            f'server returned pagination URL with scheme "{returned}" but client uses '
            f'"{expected}"; configure your server to trust proxy headers '
            "(e.g. PAPERLESS_PROXY_SSL_HEADER)"
        )


class ServerError(ApiError):
    """The server answered with a status code the client has no mapping for."""

    kind = ErrorKind.SERVER
    exit_code = EXIT_SERVER

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"server error ({status}): {message}")


def error_for_status(status: int, message: str = "") -> ApiError:
    """Map a non-2xx HTTP status to its error kind.

    401 and 403 both collapse to ``UnauthorizedError``; the client cannot act
    differently on them.
    """
    if status in (401, 403):
        return UnauthorizedError()
    if status == 404:
        return NotFoundError()
    return ServerError(status, message or "unexpected status code")


def error_for_transport(exc: httpx.HTTPError) -> ApiError:
    """Map an httpx transport exception to its error kind."""
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeoutError()
    return NetworkError(str(exc) or type(exc).__name__)
