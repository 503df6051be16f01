"""Response body handling and validation for health checks."""

import json
from collections.abc import Mapping
from typing import Any

from app_probe.models.result import TimingBreakdown

MAX_BODY_SIZE = 10 * 1024
TRUNCATION_MARKER = "... [truncated]"

# Share of the total round trip attributed to each phase.
TIMING_FRACTIONS: Mapping[str, float] = {
    "dns": 0.10,
    "connect": 0.10,
    "ssl": 0.10,
    "send": 0.05,
    "wait": 0.60,
    "receive": 0.05,
}


def approximate_timing(total_ms: int) -> TimingBreakdown:
    """Apportion a measured round trip across request phases.

    aiohttp traces cannot separate the TLS handshake from the TCP connect,
    so phases are fixed fractions of the total rather than measurements.
    """
    phases = {
        phase: round(total_ms * share) for phase, share in TIMING_FRACTIONS.items()
    }
    return TimingBreakdown(**phases, total=total_ms)


def decode_text(raw: bytes, charset: str | None) -> str:
    """Decode a response body, tolerating bad bytes and unknown charsets."""
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def parse_body(text: str) -> Any:
    """Decode JSON bodies, keeping anything else as text."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def truncate_text(text: str) -> str:
    """Cut text longer than ``MAX_BODY_SIZE`` characters and mark it."""
    if len(text) <= MAX_BODY_SIZE:
        return text
    return text[:MAX_BODY_SIZE] + TRUNCATION_MARKER


def body_for_storage(parsed: Any, text: str) -> Any:
    """Bound the body kept in the result.

    Text bodies and oversized JSON documents are stored as (truncated) text;
    JSON documents within the limit keep their structure.
    """
    if isinstance(parsed, str):
        return truncate_text(parsed)
    if len(text) > MAX_BODY_SIZE:
        return truncate_text(text)
    return parsed


def json_kind(value: Any) -> str:
    """Name the JSON type of a decoded value."""
    match value:
        case None:
            return "null"
        case bool():
            return "boolean"
        case int() | float():
            return "number"
        case str():
            return "string"
        case Mapping():
            return "object"
        case list() | tuple():
            return "array"
        case _:
            return type(value).__name__


def find_body_mismatch(actual: Any, expected: Any, path: str = "body") -> str | None:
    """Check that ``expected`` is contained in ``actual``.

    Objects match when every expected key exists in the actual object with a
    matching value; extra actual keys are ignored. Arrays match index by
    index, so the expected array must be a prefix of the actual one.
    Primitives must have the same JSON type and be equal.

    Args:
        actual: Decoded response body (or a nested part of it)
        expected: Configured expectation
        path: Location used in the mismatch description

    Returns:
        A description of the first mismatch, or None when the body matches

    """
    expected_kind = json_kind(expected)
    actual_kind = json_kind(actual)

    if expected_kind != actual_kind:
        return f"{path}: expected {expected_kind}, got {actual_kind}"

    if expected_kind == "object":
        for key, value in expected.items():
            if key not in actual:
                return f"{path}.{key}: missing"
            mismatch = find_body_mismatch(actual[key], value, f"{path}.{key}")
            if mismatch is not None:
                return mismatch
        return None

    if expected_kind == "array":
        if len(actual) < len(expected):
            return (
                f"{path}: expected at least {len(expected)} items, got {len(actual)}"
            )
        for index, value in enumerate(expected):
            mismatch = find_body_mismatch(actual[index], value, f"{path}[{index}]")
            if mismatch is not None:
                return mismatch
        return None

    if actual != expected:
        return f"{path}: expected {expected!r}, got {actual!r}"

    return None
