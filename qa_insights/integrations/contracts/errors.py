"""
Error taxonomy for the data-access layer.

Every failure raised by a data source carries an ``ErrorKind`` tag so the
facade (and anything above it) can branch on the kind instead of inspecting
exception classes:

- TRANSPORT: search backend unreachable (DNS, connection, TLS) or timed out
- BACKEND: search backend answered with a non-2xx status or a malformed body
- LOAD: local snapshot could not be read or parsed (terminal, no further fallback)
- CONFIG_DISABLED: the search backend is switched off in configuration
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    BACKEND = "backend"
    LOAD = "load"
    CONFIG_DISABLED = "config_disabled"


class DataAccessError(Exception):
    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class TransportError(DataAccessError):
    kind = ErrorKind.TRANSPORT


class BackendError(DataAccessError):
    kind = ErrorKind.BACKEND

    def __init__(
        self,
        status_code: int,
        reason: str,
        *,
        message: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or f"Search backend error: {status_code} {reason}", payload=payload)
        self.status_code = status_code
        self.reason = reason


class ResponseShapeError(BackendError):
    """The backend answered 2xx but the body does not match the expected shape."""

    def __init__(self, message: str, *, status_code: int = 200, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(status_code, "Unexpected response shape", message=message, payload=payload)


class SnapshotLoadError(DataAccessError):
    kind = ErrorKind.LOAD

    def __init__(self, collection: str, message: str) -> None:
        super().__init__(f"Failed to load {collection}: {message}")
        self.collection = collection


class RemoteDisabledError(DataAccessError):
    kind = ErrorKind.CONFIG_DISABLED
