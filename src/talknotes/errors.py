"""Exception types shared across TalkNotes."""

from __future__ import annotations

from typing import Any, Optional


class TalkNotesError(Exception):
    """Base exception for all TalkNotes errors."""

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ValidationError(TalkNotesError):
    """Raised when input is rejected and the operation is a no-op."""


class DeviceError(TalkNotesError):
    """Raised when the microphone cannot be opened or read."""


class RemoteError(TalkNotesError):
    """Raised when the transcription service call fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message, detail=detail)
        self.status_code = status_code


class SessionStateError(TalkNotesError):
    """Raised on an invalid capture session transition."""


class StorageError(TalkNotesError):
    """Raised when the key-value store cannot read or write a key."""


class PersistenceError(TalkNotesError):
    """The in-memory mutation succeeded but could not be written.

    ``result`` holds the value the operation would have returned.
    """

    def __init__(self, message: str, result: Any = None, detail: Optional[str] = None):
        super().__init__(message, detail=detail)
        self.result = result
