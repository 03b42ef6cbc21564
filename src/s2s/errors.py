"""Domain error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations


class S2SError(Exception):
    """Base class for all scroll2study domain errors."""

    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotAuthenticated(S2SError):
    """Missing or invalid credential, or the owning session has signed out."""

    status_code = 401


class NotFound(S2SError):
    """A referenced catalog item or document does not exist."""

    status_code = 404


class ValidationError(S2SError):
    """Input rejected by local validation rules."""

    status_code = 400


class RemoteError(S2SError):
    """A backing store or AI service call failed."""

    status_code = 502

    def __init__(self, message: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ParseError(S2SError):
    """An AI response did not have the expected shape."""

    status_code = 502


class DecodeError(S2SError):
    """A stored document failed schema validation."""

    status_code = 500
