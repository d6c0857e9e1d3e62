"""Exceptions for whole-layout failures.

Per-object problems never raise; they are collected as LayoutWarning
records on the resolved scene.
"""

from typing import Optional, Tuple

from models import ResolutionState, WarningCode


class ResolutionError(Exception):
    """Base class for failures that abort the whole layout."""

    code: Optional[WarningCode] = None

    def __init__(self, message: str, object_ids: Tuple[str, ...] = ()):
        super().__init__(message)
        self.object_ids = object_ids
        self.state = ResolutionState.FAILED

    def to_dict(self) -> dict:
        return {
            "code": self.code.value if self.code else None,
            "message": str(self),
            "object_ids": list(self.object_ids),
            "state": self.state.value,
        }


class InvalidRoomError(ResolutionError):
    """Room has a missing, non-finite or non-positive dimension."""

    code = WarningCode.INVALID_ROOM


class LayoutParseError(ValueError):
    """Generator output could not be turned into a layout dict."""

    def __init__(self, message: str, snippet: str = ""):
        super().__init__(message)
        self.snippet = snippet
