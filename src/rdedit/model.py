# model.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class JobDocument:
    """
    A parsed job-definition file.

    The YAML root is either one job mapping or a list of them. `jobs` always
    holds a list; `is_sequence` remembers which shape the file had so it can
    be written back the same way. Only jobs[0] (the working job) is read
    or patched.
    """
    jobs: List[Dict[str, Any]]
    is_sequence: bool = False

    @property
    def working_job(self) -> Dict[str, Any]:
        return self.jobs[0]


@dataclass(frozen=True)
class ScriptCommandRef:
    """A script-carrying command slot, as shown in pick-lists."""
    index: int
    description: str
    script: str
    interpreter: Optional[str]
    extension: str  # ".py" | ".sh"

    @property
    def label(self) -> str:
        return f"[{self.index}] {self.description} ({self.extension})"


@dataclass(frozen=True)
class EditSession:
    """Links a temp file being edited to the command slot it came from."""
    session_id: str  # absolute temp file path
    document_path: str  # resolved absolute path
    command_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "document_path": self.document_path,
            "command_index": self.command_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EditSession:
        return cls(
            session_id=data["session_id"],
            document_path=data["document_path"],
            command_index=int(data["command_index"]),
        )


@dataclass
class Connection:
    """Stored connection details. Any field may be missing."""
    token: Optional[str] = None
    url: Optional[str] = None
    project: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.token and self.url)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"token": self.token, "url": self.url, "project": self.project}
