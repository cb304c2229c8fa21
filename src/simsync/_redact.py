"""Helpers for safe debug logging of frame traffic.

CONNECT frames carry broker credentials and state bodies can run to
hundreds of kilobytes; both are trimmed before they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping

from stomp.utils import Frame

_SENSITIVE_HEADERS: frozenset[str] = frozenset({"login", "passcode", "authorization", "cookie"})


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy *headers* with credential values replaced."""
    return {key: "<redacted>" if key.lower() in _SENSITIVE_HEADERS else value for key, value in headers.items()}


def truncate_body(body: str, *, max_chars: int = 256) -> str:
    if len(body) <= max_chars:
        return body
    return f"{body[:max_chars]}…<{len(body) - max_chars} more chars>"


def describe_frame(frame: Frame, *, max_chars: int = 256) -> str:
    """One-line summary of *frame* for logs."""
    headers = redact_headers(frame.headers or {})
    body = frame.body.decode("utf-8", "replace") if isinstance(frame.body, bytes) else frame.body
    if not body:
        return f"{frame.cmd} {headers}"
    return f"{frame.cmd} {headers} body={truncate_body(str(body), max_chars=max_chars)!r}"
