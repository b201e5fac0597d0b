from __future__ import annotations


class SheetError(RuntimeError):
    """Base class for failures talking to the remote sheet service."""


class NetworkError(SheetError):
    """Raised when the transport fails or the service answers with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(SheetError):
    """Raised when a sheet payload is not well-formed."""


class NotFoundError(SheetError):
    """Raised when a lookup across sheets finds no matching row."""


class ConfirmationTimeout(SheetError):
    """Raised when a server-assigned identifier is not observed within the retry budget."""

    def __init__(self, message: str, *, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class DuplicateMemberError(ValueError):
    """Raised when adding someone who is already an active member of a squad."""
