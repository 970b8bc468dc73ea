# sync.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from . import document
from .errors import DocumentShapeError, ParseError
from .sessions import SessionRegistry
from .ui.console import Console, get_console


class SyncEngine:
    """
    Writes a saved temp file back into the command slot it came from.

    Each call re-reads the job document from disk, patches one slot and
    writes the whole document back. Nothing is cached between calls and no
    lock is taken: two saves for the same document that land at the same
    moment race, and the later write wins.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        console: Optional[Console] = None,
        on_document_written: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            registry: Session registry used to resolve temp files
            console: Where notifications go (defaults to the global console)
            on_document_written: Called with the document path after a write,
                so a live view of that document can reload it
        """
        self.registry = registry
        self.console = console
        self.on_document_written = on_document_written

    def _console(self) -> Console:
        return self.console or get_console()

    def on_saved(self, session_id: str | Path) -> bool:
        """
        Handle a "temp file saved" event.

        Returns:
            True if the document was updated. Unknown temp files return
            False without any output; every other failure is reported.
        """
        session = self.registry.lookup(session_id)
        if session is None:
            return False

        console = self._console()
        doc_path = Path(session.document_path)
        label = f"{doc_path.name} command #{session.command_index}"

        try:
            doc = document.load(doc_path)
            new_script = Path(session.session_id).read_text(encoding="utf-8")
            document.replace_script(doc, session.command_index, new_script)
            document.dump(doc, doc_path)
        except DocumentShapeError as e:
            console.print_warning(
                f"Not syncing {label}: the job document changed shape",
                details=[str(e)],
            )
            return False
        except ParseError as e:
            console.print_error("Sync failed", f"Could not parse {doc_path}", details=[str(e)])
            return False
        except (OSError, UnicodeDecodeError) as e:
            console.print_error("Sync failed", f"Could not sync {label}", details=[str(e)])
            return False

        if self.on_document_written is not None:
            self.on_document_written(str(doc_path))

        console.print_success(f"Synced script into {label}")
        return True
