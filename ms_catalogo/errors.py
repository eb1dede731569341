"""Tagged results shared by the catalog handlers.

Operations return ``Ok(value)`` or ``Err(kind, message, ...)`` instead of
raising, so the handler picks the HTTP status from ``Err.kind`` and never
from the text of a message.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ms_catalogo.utils import response


class ErrorKind(Enum):
    AUTH = 401
    VALIDATION = 400
    NOT_FOUND = 404
    STORAGE = 502
    UPSTREAM = 500

    @property
    def status(self) -> int:
        return self.value


class TokenError(str, Enum):
    MISSING = "MISSING"
    EXPIRED = "EXPIRED"
    MALFORMED = "MALFORMED"
    INVALID = "INVALID"


class ImageError(str, Enum):
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    INVALID_ENCODING = "INVALID_ENCODING"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"


@dataclass(frozen=True)
class Ok:
    value: Any = None


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    field: str | None = None
    reason: str | None = None
    detail: dict | None = None


GENERIC_MESSAGES = {
    ErrorKind.STORAGE: "Image storage is unavailable",
    ErrorKind.UPSTREAM: "Error interno del servidor",
}


def error_response(err: Err, debug: bool = False):
    """Build the API response for ``err``.

    5xx messages are replaced by a generic text; ``detail`` is only shown
    when ``debug`` is on.
    """
    body: dict[str, Any] = {"error": GENERIC_MESSAGES.get(err.kind, err.message)}
    if err.field:
        body["field"] = err.field
    if err.reason:
        body["reason"] = str(err.reason.value if isinstance(err.reason, Enum) else err.reason)
    if debug and err.detail:
        body["debug"] = err.detail
    return response(err.kind.status, body)


def internal_error():
    return error_response(Err(ErrorKind.UPSTREAM, "internal error"))
