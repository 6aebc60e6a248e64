"""
Session boundary package.

Modules
=======

``contracts``
    :class:`Session` protocol, :class:`EventKind` enumeration and the
    :class:`Event` value delivered by a session's event stream.
``reasons``
    Disconnect status codes and the helpers that classify them.
``credentials``
    :class:`CredentialStore`, the on-disk home of the credential material.
"""

from .contracts import Event, EventKind, Session, SessionFactory
from .credentials import CredentialStore
from .reasons import DisconnectReason, describe, invalidates_credentials, status_code_from

__all__ = [
    "CredentialStore",
    "DisconnectReason",
    "Event",
    "EventKind",
    "Session",
    "SessionFactory",
    "describe",
    "invalidates_credentials",
    "status_code_from",
]
