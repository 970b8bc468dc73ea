# errors.py
from __future__ import annotations


class RdeditError(Exception):
    """Base class for errors raised by rdedit."""
    pass


class UserAbandoned(RdeditError):
    """Raised when a prompt comes back empty and the action should stop."""
    pass


class MissingConnection(RdeditError):
    """Raised when no token or server URL has been stored."""
    pass


class ParseError(RdeditError):
    """Raised when a job document is not valid YAML or has an unusable root."""
    pass


class DocumentShapeError(RdeditError):
    """
    Raised when a parsed document no longer matches what a session expects:
    the commands list is gone, or the addressed slot holds no script.
    """
    pass


class StateFileError(RdeditError):
    """Raised when sessions.json or connection.json cannot be decoded."""

    def __init__(self, path, reason: str):
        super().__init__(f"{path} is not a valid rdedit state file: {reason}")
        self.path = path
        self.reason = reason
