"""Error taxonomy shared by both probe runners."""

from collections.abc import Sequence
from typing import Literal

import aiohttp
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

type ErrorCode = Literal[
    "NETWORK_ERROR",
    "TIMEOUT",
    "NAVIGATION_FAILED",
    "ELEMENT_NOT_FOUND",
    "BROWSER_CRASHED",
    "AUTHENTICATION_FAILED",
    "VALIDATION_FAILED",
    "UNKNOWN_ERROR",
]

# Checked in order against lower-cased messages of exceptions we don't own.
MESSAGE_PATTERNS: Sequence[tuple[str, ErrorCode]] = (
    ("timeout", "TIMEOUT"),
    ("navigation", "NAVIGATION_FAILED"),
    ("selector", "ELEMENT_NOT_FOUND"),
    ("browser", "BROWSER_CRASHED"),
    ("authentication", "AUTHENTICATION_FAILED"),
)

BROWSER_GONE_MARKERS = (
    "target closed",
    "target page, context or browser has been closed",
    "browser has been closed",
    "browser has disconnected",
)


class ProbeError(Exception):
    """Base class for failures raised by the runners themselves."""

    code: ErrorCode = "UNKNOWN_ERROR"


class NetworkError(ProbeError):
    """Connection refused, DNS failure or TLS handshake failure."""

    code: ErrorCode = "NETWORK_ERROR"


class ProbeTimeoutError(ProbeError):
    """A request or step exceeded its allotted time."""

    code: ErrorCode = "TIMEOUT"


class NavigationFailedError(ProbeError):
    """Page navigation did not complete."""

    code: ErrorCode = "NAVIGATION_FAILED"


class ElementNotFoundError(ProbeError):
    """A step's selector never resolved."""

    code: ErrorCode = "ELEMENT_NOT_FOUND"


class BrowserCrashedError(ProbeError):
    """The browser process could not be launched or went away."""

    code: ErrorCode = "BROWSER_CRASHED"


class AuthenticationFailedError(ProbeError):
    """The application explicitly rejected the login."""

    code: ErrorCode = "AUTHENTICATION_FAILED"


class ValidationFailedError(ProbeError):
    """A response or page did not match expectations."""

    code: ErrorCode = "VALIDATION_FAILED"


def error_code_for(exc: BaseException) -> ErrorCode:
    """Map an exception to the taxonomy code reported to the dashboard.

    Args:
        exc: Exception caught while executing a probe

    Returns:
        The most specific error code for the exception

    """
    if isinstance(exc, ProbeError):
        return exc.code

    if isinstance(exc, TimeoutError | PlaywrightTimeoutError):
        return "TIMEOUT"

    if isinstance(exc, aiohttp.ClientError):
        return "NETWORK_ERROR"

    message = str(exc).lower()

    if isinstance(exc, PlaywrightError) and any(
        marker in message for marker in BROWSER_GONE_MARKERS
    ):
        return "BROWSER_CRASHED"

    for pattern, code in MESSAGE_PATTERNS:
        if pattern in message:
            return code

    return "UNKNOWN_ERROR"
