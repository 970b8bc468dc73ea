# sessions.py
from __future__ import annotations

import contextlib
import json
import os
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional

from filelock import FileLock

from . import settings
from .errors import StateFileError
from .fileio import write_atomic
from .model import EditSession

# ---------------------------------------------------------------------
# Session registry
# ---------------------------------------------------------------------
# One entry per temp file handed out for editing:
#   temp path  ->  (job document path, command index)
#
# With a backing file the registry survives between CLI invocations, so
# `rdedit edit` in one terminal and `rdedit watch` / `rdedit upload` in
# another see the same sessions:
#   <home>/sessions.json
#     {"sessions": [{"session_id": ..., "document_path": ..., "command_index": 3}]}
#
# Writers hold <home>/sessions.json.lock around read-modify-write, so
# concurrent invocations never drop each other's entries.
#
# Entries are never evicted on their own; `prune()` drops the ones whose
# temp file has disappeared.
# ---------------------------------------------------------------------


def normalize_path(path: str | Path) -> str:
    return str(Path(path).expanduser().resolve())


class SessionRegistry:
    """Maps temp-file sessions back to the command slot they were opened from."""

    def __init__(self, path: str | Path | None = None, temp_dir: str | Path | None = None):
        self.path = Path(path).expanduser() if path is not None else None
        self.temp_dir = str(temp_dir) if temp_dir is not None else None
        self._sessions: Dict[str, EditSession] = {}
        self.refresh()

    # ---- persistence ----

    def _lock(self):
        if self.path is None:
            return contextlib.nullcontext()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return FileLock(str(self.path) + ".lock", timeout=settings.LOCK_TIMEOUT)

    def refresh(self) -> None:
        """
        Reload entries from the backing file (no-op without one).

        Raises:
            StateFileError: the file cannot be decoded; the entries loaded
                before are kept
        """
        if self.path is None or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StateFileError(self.path, str(e)) from e
        if not isinstance(data, dict) or not isinstance(data.get("sessions", []), list):
            raise StateFileError(self.path, 'expected {"sessions": [...]}')
        try:
            sessions = [EditSession.from_dict(d) for d in data.get("sessions", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise StateFileError(self.path, f"bad session entry ({e!r})") from e
        self._sessions = {s.session_id: s for s in sessions}

    def _save(self) -> None:
        if self.path is None:
            return
        payload = {"sessions": [s.to_dict() for s in self._sessions.values()]}
        write_atomic(self.path, json.dumps(payload, indent=2))

    # ---- operations ----

    def open(
        self,
        document_path: str | Path,
        command_index: int,
        script_text: str,
        extension: str,
    ) -> EditSession:
        """
        Write `script_text` to a fresh temp file and record the session.

        The temp name is rdedit-<timestamp>-<random><extension>; mkstemp
        guarantees it is new. If the temp file cannot be written or the
        registry cannot be saved, the temp file is removed and nothing is
        recorded.

        Returns:
            The new EditSession (session_id is the temp file path).

        Raises:
            OSError: temp file or registry write failed (includes a lock
                timeout)
            StateFileError: the backing file is corrupt
        """
        if extension and not extension.startswith("."):
            extension = "." + extension
        stamp = time.strftime("%Y%m%d-%H%M%S")
        fd, temp_path = tempfile.mkstemp(
            prefix=f"rdedit-{stamp}-", suffix=extension, dir=self.temp_dir
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(script_text)
        except OSError:
            Path(temp_path).unlink(missing_ok=True)
            raise

        session = EditSession(
            session_id=normalize_path(temp_path),
            document_path=normalize_path(document_path),
            command_index=command_index,
        )

        try:
            with self._lock():
                # pick up sessions other invocations may have added meanwhile
                self.refresh()
                self._sessions[session.session_id] = session
                self._save()
        except (OSError, StateFileError):
            self._sessions.pop(session.session_id, None)
            Path(temp_path).unlink(missing_ok=True)
            raise
        return session

    def lookup(self, session_id: str | Path) -> Optional[EditSession]:
        return self._sessions.get(normalize_path(session_id))

    def sessions_for(self, document_path: str | Path) -> List[EditSession]:
        target = normalize_path(document_path)
        return [s for s in self._sessions.values() if s.document_path == target]

    def all(self) -> List[EditSession]:
        return list(self._sessions.values())

    def prune(self) -> List[EditSession]:
        """Forget sessions whose temp file no longer exists."""
        with self._lock():
            self.refresh()
            stale = [s for s in self._sessions.values() if not Path(s.session_id).exists()]
            for s in stale:
                del self._sessions[s.session_id]
            if stale:
                self._save()
        return stale

    def __len__(self) -> int:
        return len(self._sessions)
