"""Error taxonomy rendered into the response envelope."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class BridgeError(Exception):
    """Base failure with the status code and context it is reported with."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None, data: Any = None) -> None:
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    @property
    def code(self) -> int:
        return int(self.status)


class AuthError(BridgeError):
    status = HTTPStatus.UNAUTHORIZED
    default_message = "Unauthorized"


class MethodError(BridgeError):
    status = HTTPStatus.METHOD_NOT_ALLOWED
    default_message = "Use POST"


class ValidationError(BridgeError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Bad request"


class NotFoundError(BridgeError):
    status = HTTPStatus.NOT_FOUND
    default_message = "Not found"


class WriteFailed(BridgeError):
    """Both write paths failed; ``data`` carries the attempted path and error."""

    default_message = "Set failed"


class InternalError(BridgeError):
    default_message = "Exception"
