# connection.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from .errors import MissingConnection, StateFileError
from .fileio import write_atomic
from .model import Connection

# Stored as <home>/connection.json:
#   {"token": "...", "url": "https://rundeck.example.com", "project": "ops"}
# Three independent slots; a missing key means "not set".

SLOTS = ("token", "url", "project")


class ConnectionStore:
    """Persists the Rundeck token, server URL and project name."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def _read(self) -> dict:
        """
        Raises:
            StateFileError: the file is not a JSON object of strings
        """
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StateFileError(self.path, str(e)) from e
        if not isinstance(data, dict):
            raise StateFileError(self.path, f"expected an object, got {type(data).__name__}")
        for k in SLOTS:
            if data.get(k) is not None and not isinstance(data[k], str):
                raise StateFileError(self.path, f"{k!r} must be a string")
        return {k: data[k] for k in SLOTS if data.get(k)}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_atomic(self.path, json.dumps(data, indent=2), mode=0o600)

    def save(self, token: str, url: str, project: Optional[str] = None) -> None:
        """Store token and url; project is only overwritten when given."""
        data = self._read()
        data["token"] = token
        data["url"] = url.rstrip("/")
        if project is not None:
            data["project"] = project
        self._write(data)

    def get(self) -> Connection:
        data = self._read()
        return Connection(
            token=data.get("token"),
            url=data.get("url"),
            project=data.get("project"),
        )

    def clear(self) -> None:
        # writes an empty object even if nothing was ever stored,
        # and does not read the old file, so it also repairs a corrupt one
        self._write({})


def require(store: ConnectionStore) -> Connection:
    """
    Return the stored connection, or raise MissingConnection when the
    token or URL has not been set.
    """
    conn = store.get()
    if not conn.is_complete:
        raise MissingConnection(
            'No Rundeck connection found. Please run "rdedit connect" first.'
        )
    return conn
