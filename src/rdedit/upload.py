# upload.py
from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol

from . import document
from .connection import ConnectionStore
from .errors import DocumentShapeError, UserAbandoned
from .model import JobDocument
from .sessions import SessionRegistry
from .ui.console import Console, get_console
from .ui.prompts import Prompter


class Transport(Protocol):
    def import_jobs(self, project: str, yaml_text: str) -> dict: ...


def ensure_project(store: ConnectionStore, prompter: Prompter) -> str:
    """
    Return the stored project, asking for it once if it is not set.
    The answer is saved so later uploads do not ask again.
    """
    conn = store.get()
    if conn.project:
        return conn.project

    project = prompter.ask_text("Enter the Rundeck project name to upload the job file to")
    if not project:
        raise UserAbandoned("Project name is required.")
    if conn.token and conn.url:
        store.save(conn.token, conn.url, project)
    return project


class UploadReconciler:
    """
    Builds the upload payload for a job document from disk plus every open
    edit session on it, then sends it to Rundeck.

    It does not rely on SyncEngine having written anything: each session's
    temp file is read again here.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        transport: Transport,
        console: Optional[Console] = None,
    ):
        self.registry = registry
        self.transport = transport
        self.console = console

    def _console(self) -> Console:
        return self.console or get_console()

    def reconcile(self, document_path: str | Path) -> JobDocument:
        """
        Read the document fresh, patch in every session's temp file, strip
        uuid/id and force the list shape the import API expects.

        A session that cannot be applied is skipped with a warning; the
        others are still patched.

        Raises:
            OSError: the document itself cannot be read
            ParseError: the document is not a valid job document
        """
        console = self._console()
        doc = document.load(document_path)

        sessions = sorted(
            self.registry.sessions_for(document_path), key=lambda s: s.command_index
        )
        for session in sessions:
            try:
                text = Path(session.session_id).read_text(encoding="utf-8")
                document.replace_script(doc, session.command_index, text)
            except (OSError, UnicodeDecodeError, DocumentShapeError) as e:
                console.print_warning(
                    f"Skipping edit session for command #{session.command_index}",
                    details=[session.session_id, str(e)],
                )
                continue
            console.print_debug(
                f"patched command #{session.command_index} from {session.session_id}"
            )

        doc = document.strip_identity_fields(doc)
        return document.force_sequence_shape(doc)

    def build_payload(self, document_path: str | Path) -> str:
        return document.serialize(self.reconcile(document_path))

    def upload(self, document_path: str | Path, project: str) -> dict:
        """
        Reconcile and POST the document to the project's import endpoint.

        Returns:
            The parsed import result

        Raises:
            RundeckError: non-2xx response or network failure
        """
        payload = self.build_payload(document_path)
        self._console().print_debug(f"uploading {len(payload)} bytes to project {project}")
        return self.transport.import_jobs(project, payload)
