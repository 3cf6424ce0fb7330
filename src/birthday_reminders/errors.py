from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    STORE = "store"
    SINK = "sink"
    FATAL = "fatal"


class ReminderError(Exception):
    """Base error carrying a ``kind`` tag; handlers branch on the tag only."""

    kind: ErrorKind = ErrorKind.FATAL

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class StoreError(ReminderError):
    kind = ErrorKind.STORE


class SinkError(ReminderError):
    kind = ErrorKind.SINK
