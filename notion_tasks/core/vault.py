"""
Filesystem vault: a folder of markdown notes with YAML front-matter.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from collections.abc import Callable
from copy import deepcopy
from logging import Logger
from pathlib import Path

import frontmatter

from .metadata import FrontMatter, MetadataStore, Note, NoteStore

__all__ = [
    "Vault",
]

NOTE_SUFFIX = ".md"


class Vault(NoteStore, MetadataStore):
    """
    Implements {obj}`NoteStore` and {obj}`MetadataStore` on top of a folder.

    Keeps a snapshot of each note's front-matter as last read or written,
    so that the metadata of a note is still available after its file is
    deleted.
    """

    root: Path
    """
    Vault root folder.
    """

    _snapshots: dict[str, FrontMatter]
    """
    Mapping of note path to its last known front-matter.
    """

    _locks: dict[str, threading.Lock]
    _locks_lock: threading.Lock
    _logger: Logger

    def __init__(self, root: Path, *, logger: Logger | None = None):
        assert root.is_dir(), f"Vault folder does not exist: '{root}'"

        self.root = root.resolve()
        self._snapshots = {}
        self._locks = {}
        self._locks_lock = threading.Lock()
        self._logger = logger or logging.getLogger()

    def list_notes(self) -> list[Note]:
        notes: list[Note] = []

        for path in sorted(self.root.rglob(f"*{NOTE_SUFFIX}")):
            note = Note(path.relative_to(self.root).as_posix())
            if path.is_file() and not self.is_hidden(note):
                notes.append(note)

        return notes

    def get(self, path: str) -> Note | None:
        note = self.note_for(Path(path))
        if note is None or not self._path(note).is_file():
            return None
        return note

    def note_for(self, path: Path) -> Note | None:
        """
        Get note handle for an absolute or vault-relative path, whether or
        not the file exists. Returns `None` for paths outside the vault or
        which aren't markdown files.
        """
        if path.suffix != NOTE_SUFFIX:
            return None

        rel_path = self.relative_path(path)
        return Note(rel_path) if rel_path is not None else None

    def relative_path(self, path: Path) -> str | None:
        """
        Get vault-relative path using forward slashes, or `None` if the path
        is outside the vault.
        """
        abs_path = path if path.is_absolute() else self.root / path
        try:
            return abs_path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None

    def read(self, note: Note) -> str:
        return self._path(note).read_text(encoding="utf-8")

    def get_front_matter(self, note: Note) -> FrontMatter | None:
        post = self._load(note)
        if not post.metadata:
            return None
        return deepcopy(post.metadata)

    def process_front_matter(
        self, note: Note, fn: Callable[[FrontMatter], None]
    ):
        with self._lock(note):
            post = self._load(note)
            fn(post.metadata)
            self._write(note, frontmatter.dumps(post, sort_keys=False) + "\n")
            self._snapshots[note.path] = deepcopy(post.metadata)

        self._logger.debug(f"Wrote front-matter of {note}")

    def last_known_front_matter(self, note: Note) -> FrontMatter | None:
        """
        Get front-matter of note as of the last time it was read or written.
        """
        snapshot = self._snapshots.get(note.path)
        return deepcopy(snapshot) if snapshot is not None else None

    def forget(self, note: Note):
        self._snapshots.pop(note.path, None)
        with self._locks_lock:
            self._locks.pop(note.path, None)

    def rename_snapshot(self, src: Note, dest: Note):
        snapshot = self._snapshots.pop(src.path, None)
        if snapshot is not None:
            self._snapshots[dest.path] = snapshot

    def refresh(self):
        """
        Read front-matter of all notes to populate snapshots.
        """
        for note in self.list_notes():
            try:
                self._load(note)
            except Exception as e:
                self._logger.warning(f"Failed to read front-matter of {note}: {e}")

    def is_hidden(self, note: Note) -> bool:
        """
        Whether note is under a hidden folder such as `.obsidian` or `.trash`.
        """
        return _is_hidden(note.path)

    def _lock(self, note: Note) -> threading.Lock:
        with self._locks_lock:
            lock = self._locks.get(note.path)
            if lock is None:
                lock = self._locks[note.path] = threading.Lock()
            return lock

    def _path(self, note: Note) -> Path:
        return self.root / note.path

    def _load(self, note: Note) -> frontmatter.Post:
        post = frontmatter.loads(self.read(note))
        if post.metadata:
            self._snapshots[note.path] = deepcopy(post.metadata)
        else:
            # front-matter removed: note no longer refers to a record
            self._snapshots.pop(note.path, None)
        return post

    def _write(self, note: Note, text: str):
        """
        Replace file contents atomically.
        """
        path = self._path(note)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp, path)
        except BaseException:
            os.unlink(tmp)
            raise


def _is_hidden(rel_path: str) -> bool:
    return any(part.startswith(".") for part in rel_path.split("/"))
