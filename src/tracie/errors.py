"""
Error taxonomy for the connection and cache layer.

Only :class:`InvalidSessionError` and exhausted reconnect attempts lead to an
observable reset (session and cache wipe). Everything raised inside an event
handler or a maintenance tick is logged and isolated.
"""

from __future__ import annotations


class TracieError(Exception):
    """Base class for all errors raised by this package."""


class ConnectError(TracieError):
    """Establishing a session failed (auth rejected or network unreachable)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidSessionError(TracieError):
    """The remote side rejected our credentials or logged the device out."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientHandlerError(TracieError):
    """A single event handler failed; the event is dropped and the router continues."""

    def __init__(self, kind: str, cause: BaseException) -> None:
        super().__init__(f"{kind} handler failed: {cause}")
        self.kind = kind
        self.__cause__ = cause


class MaintenanceTaskError(TracieError):
    """A periodic maintenance tick failed; the schedule continues."""


class CredentialPersistError(TracieError):
    """Renewed credential material could not be written to the credential store."""


class BridgeRequestError(TracieError):
    """The bridge answered a request with an error frame (or never answered)."""

    def __init__(self, op: str, code: str, message: str) -> None:
        super().__init__(f"{op} failed ({code}): {message}")
        self.op = op
        self.code = code


__all__ = [
    "TracieError",
    "ConnectError",
    "InvalidSessionError",
    "TransientHandlerError",
    "MaintenanceTaskError",
    "CredentialPersistError",
    "BridgeRequestError",
]
