# watcher.py
from __future__ import annotations

import os
import signal
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional

from . import settings
from .errors import StateFileError
from .model import EditSession
from .sessions import SessionRegistry
from .sync import SyncEngine
from .ui.console import get_console


class SessionWatcher:
    """Polls edit-session temp files and syncs the ones that were saved."""

    def __init__(
        self,
        registry: SessionRegistry,
        engine: SyncEngine,
        interval: float = settings.WATCH_INTERVAL,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize watcher.

        Args:
            registry: Session registry (re-read every poll)
            engine: Sync engine that handles each save
            interval: Seconds to wait between polls
            max_workers: Thread pool size (defaults to cpu count - 1)
        """
        self.registry = registry
        self.engine = engine
        self.interval = interval
        if max_workers is None:
            c = os.cpu_count() or 2
            max_workers = max(1, c - 1)
        self.max_workers = max_workers
        self.running = True
        # session_id -> last seen mtime
        self._seen: Dict[str, float] = {}
        self._state_error = False

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        get_console().print_info(f"\nReceived signal {signum}, stopping watcher...")
        self.running = False

    def _mtime(self, session: EditSession) -> Optional[float]:
        try:
            return Path(session.session_id).stat().st_mtime
        except OSError:
            return None

    def prime(self) -> None:
        """Record current mtimes so only later saves trigger a sync."""
        self.registry.refresh()
        for s in self.registry.all():
            mtime = self._mtime(s)
            if mtime is not None:
                self._seen[s.session_id] = mtime

    def _changed(self) -> List[EditSession]:
        changed: List[EditSession] = []
        for s in self.registry.all():
            mtime = self._mtime(s)
            if mtime is None:
                continue
            last = self._seen.get(s.session_id)
            self._seen[s.session_id] = mtime
            # a session first seen mid-watch still holds the unedited script
            if last is not None and mtime > last:
                changed.append(s)
        return changed

    def _sync_group(self, sessions: List[EditSession]) -> List[str]:
        synced = []
        for s in sessions:
            if self.engine.on_saved(s.session_id):
                synced.append(s.session_id)
        return synced

    def poll_once(self) -> List[str]:
        """
        Sync every session whose temp file changed since the last poll.

        Sessions of one document run in order in a single worker; different
        documents run in parallel.

        Returns:
            Session ids that were dispatched
        """
        console = get_console()
        try:
            self.registry.refresh()
        except StateFileError as e:
            # keep watching the sessions loaded last time
            if not self._state_error:
                console.print_warning("Could not reload edit sessions", details=[str(e)])
            self._state_error = True
        else:
            self._state_error = False
        changed = self._changed()
        if not changed:
            return []

        by_doc: Dict[str, List[EditSession]] = {}
        for s in changed:
            by_doc.setdefault(s.document_path, []).append(s)

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(self._sync_group, group): doc for doc, group in by_doc.items()}
            for fut in as_completed(futures):
                doc = futures[fut]
                try:
                    fut.result()
                except Exception as e:
                    console.print_error("Sync failed", f"Unexpected error while syncing {doc}")
                    console.print_exception(e)

        return [s.session_id for s in changed]

    def run(self) -> None:
        """Run the watch loop until interrupted."""
        console = get_console()
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.prime()
        console.print_info(
            f"Watching {len(self.registry)} edit session(s), polling every {self.interval}s"
        )
        while self.running:
            self.poll_once()
            time.sleep(self.interval)
        console.print_info("Watcher stopped.")
