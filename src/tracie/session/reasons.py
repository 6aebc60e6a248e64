"""Disconnect status codes reported by the protocol layer."""

from __future__ import annotations

import enum
from typing import Any, Mapping


class DisconnectReason(enum.IntEnum):
    CONNECTION_LOST = 408
    CONNECTION_CLOSED = 428
    LOGGED_OUT = 401
    FORBIDDEN = 403
    MULTIDEVICE_MISMATCH = 411
    CONNECTION_REPLACED = 440
    BAD_SESSION = 500
    UNAVAILABLE_SERVICE = 503
    RESTART_REQUIRED = 515


_DESCRIPTIONS = {
    DisconnectReason.BAD_SESSION: "Bad Session",
    DisconnectReason.CONNECTION_CLOSED: "Connection Closed",
    DisconnectReason.CONNECTION_LOST: "Connection Lost",
    DisconnectReason.CONNECTION_REPLACED: "Connection Replaced",
    DisconnectReason.LOGGED_OUT: "Logged Out",
    DisconnectReason.RESTART_REQUIRED: "Restart Required",
    DisconnectReason.MULTIDEVICE_MISMATCH: "Multi-device Mismatch",
    DisconnectReason.FORBIDDEN: "Forbidden",
    DisconnectReason.UNAVAILABLE_SERVICE: "Service Unavailable",
}

# Reasons after which the stored credentials are worthless.
CREDENTIAL_INVALIDATING = frozenset({DisconnectReason.BAD_SESSION, DisconnectReason.LOGGED_OUT})


def describe(code: int | None) -> str:
    try:
        return _DESCRIPTIONS[DisconnectReason(code)]
    except (ValueError, KeyError):
        return f"Unknown ({code})"


def invalidates_credentials(code: int | None) -> bool:
    return code in CREDENTIAL_INVALIDATING


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def status_code_from(update: Mapping[str, Any]) -> int | None:
    """
    Pull the status code out of a ``connection.update`` payload.

    Accepts ``{"lastDisconnect": {"statusCode": 401}}`` as well as the nested
    ``{"lastDisconnect": {"error": {"output": {"statusCode": 401}}}}`` shape.
    """

    last = _mapping(update.get("lastDisconnect"))
    code = last.get("statusCode")
    if code is None:
        error = _mapping(last.get("error"))
        code = error.get("statusCode") or _mapping(error.get("output")).get("statusCode")
    try:
        return int(code) if code is not None else None
    except (TypeError, ValueError):
        return None


__all__ = [
    "CREDENTIAL_INVALIDATING",
    "DisconnectReason",
    "describe",
    "invalidates_credentials",
    "status_code_from",
]
