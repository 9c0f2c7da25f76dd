"""
Periodic bulk sync plus propagation of note deletions.
"""
from __future__ import annotations

import logging
import threading
from logging import Logger
from pathlib import Path

from watchdog.events import (
    FileDeletedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ..core import Note, Outcome, ReconciliationEngine, SyncReport, Vault

__all__ = [
    "DeletionHandler",
    "Watcher",
]


class DeletionHandler(FileSystemEventHandler):
    """
    Deletes the remote record of notes removed from the vault, using the
    front-matter the vault last saw for them.

    Moving a note into a hidden folder (e.g. `.trash`) or out of the vault
    counts as deletion; a rename within the vault carries the snapshot over,
    and a move to a non-note name within the vault is ignored.
    """

    _engine: ReconciliationEngine
    _vault: Vault
    _logger: Logger

    def __init__(
        self,
        engine: ReconciliationEngine,
        vault: Vault,
        *,
        logger: Logger | None = None,
    ):
        super().__init__()
        self._engine = engine
        self._vault = vault
        self._logger = logger or logging.getLogger()

    def on_deleted(self, event: FileDeletedEvent):
        if event.is_directory:
            return

        note = self._vault.note_for(Path(str(event.src_path)))
        if note is not None:
            self.handle_deleted(note)

    def on_moved(self, event: FileMovedEvent):
        if event.is_directory:
            return

        src = self._vault.note_for(Path(str(event.src_path)))
        if src is None:
            return

        dest_path = Path(str(event.dest_path))
        dest_rel = self._vault.relative_path(dest_path)

        if dest_rel is None or self._vault.is_hidden(Note(dest_rel)):
            self.handle_deleted(src)
            return

        dest = self._vault.note_for(dest_path)
        if dest is not None:
            self._vault.rename_snapshot(src, dest)
        else:
            # e.g. editor backup like "Note.md~"; the note is rewritten in
            # place, so its snapshot stays
            self._logger.debug(f"Ignoring move of {src} to '{dest_rel}'")

    def handle_deleted(self, note: Note) -> Outcome | None:
        """
        Propagate deletion of note; errors are logged rather than raised
        since this runs on the observer thread.
        """
        metadata = self._vault.last_known_front_matter(note)
        self._vault.forget(note)
        self._engine.forget(note)

        try:
            outcome = self._engine.on_note_deleted(metadata)
        except Exception as e:
            self._logger.error(f"Failed to delete record of {note}: {e}")
            return None

        self._logger.debug(f"Deletion of {note}: {outcome.value}")
        return outcome


class Watcher:
    """
    Runs the bulk scan on a fixed interval while watching the vault for
    deleted notes.

    Scans run back to back on the calling thread so they never overlap;
    deletions are handled on the observer's thread.
    """

    engine: ReconciliationEngine
    vault: Vault
    interval: float
    active: Note | None
    handler: DeletionHandler

    _stop: threading.Event
    _logger: Logger

    def __init__(
        self,
        engine: ReconciliationEngine,
        vault: Vault,
        *,
        interval: float,
        active: Note | None = None,
        logger: Logger | None = None,
    ):
        """
        :param engine: Engine to invoke
        :param vault: Vault to scan and watch
        :param interval: Seconds to wait after a scan before starting the next
        :param active: Note currently being edited, excluded from scans
        :param logger: Logger to use, or `None` to use default logger
        """
        self.engine = engine
        self.vault = vault
        self.interval = interval
        self.active = active
        self._logger = logger or logging.getLogger()
        self.handler = DeletionHandler(engine, vault, logger=self._logger)
        self._stop = threading.Event()

    def run_once(self) -> SyncReport:
        report = self.engine.reconcile_all(excluding=self.active)
        self._logger.info(f"Sync finished: {report.summary}")
        return report

    def run(self, *, max_cycles: int | None = None):
        """
        Run until {obj}`stop` is called or `max_cycles` scans are done.
        """
        # populate snapshots so notes deleted before the first scan are known
        self.vault.refresh()

        observer = Observer()
        observer.schedule(self.handler, str(self.vault.root), recursive=True)
        observer.start()

        cycles = 0
        try:
            while not self._stop.is_set():
                self.run_once()

                cycles += 1
                if max_cycles is not None and cycles >= max_cycles:
                    break

                self._stop.wait(self.interval)
        finally:
            observer.stop()
            observer.join()

    def stop(self):
        self._stop.set()
