"""Exceptions raised by the gab core."""

from typing import Optional


class GabError(Exception):
    """Base class for all gab errors."""


class ScriptParseError(GabError):
    """Raised in strict mode when a script has a structural error."""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.line = line


class ScriptReferenceError(GabError):
    """Raised when traversal reaches a title that is not in the node table."""

    def __init__(self, message: str, title: Optional[str] = None):
        super().__init__(message)
        self.title = title


class SessionProtocolError(GabError):
    """Raised when the host drives a session out of protocol."""


class UnknownSpeakerError(GabError, KeyError):
    """Raised when a speaker is not defined in the speaker table."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class SessionLoopError(GabError):
    """Raised when navigation cycles through nodes without emitting an event."""
