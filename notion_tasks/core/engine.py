"""
Reconciliation of task notes with their Notion records.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from enum import Enum
from logging import Logger
from typing import Any

from .client import NOT_FOUND, RecordClient, get_id_from_url
from .content import Block, ContentTranslator
from .exceptions import ContentTranslationError
from .metadata import (
    LINK_KEY,
    TAGS_KEY,
    MetadataAccessor,
    MetadataStore,
    Note,
    NoteStore,
    TaskMetadata,
)
from .status import STATUS_MAPPING, LocalStatus, StatusMapper

__all__ = [
    "EngineConfig",
    "Outcome",
    "SyncReport",
    "ReconciliationEngine",
]


@dataclass(kw_only=True)
class EngineConfig:
    """
    Behavior switches of {obj}`ReconciliationEngine`.
    """

    status_mapping: dict[str, LocalStatus] = field(
        default_factory=lambda: dict(STATUS_MAPPING)
    )
    """
    Mapping of remote status to local status.
    """

    update_page_content: bool = False
    """
    Replace the body of existing records with the note's current content
    on every reconciliation. Destructive: edits made in Notion are lost.
    """

    serialize_notes: bool = True
    """
    Hold a per-note lock while reconciling, so that overlapping triggers
    for the same note run one after the other.
    """


class Outcome(Enum):
    """
    Result of reconciling a single note.
    """

    SKIPPED = "skipped"
    """Not a task, or nothing to do"""

    CREATED = "created"
    """Remote record created and linked"""

    UPDATED = "updated"
    """Record or note metadata written"""

    UNCHANGED = "unchanged"
    """Linked and already in agreement"""

    UNLINKED = "unlinked"
    """Record was gone; link cleared"""

    MALFORMED_LINK = "malformed link"
    """Link present but no record id could be extracted"""

    DELETED = "deleted"
    """Record of a deleted note was deleted"""


@dataclass(kw_only=True)
class SyncReport:
    """
    Encapsulates results of a bulk reconciliation.
    """

    outcomes: dict[Outcome, int] = field(default_factory=dict)
    """
    Number of notes per outcome.
    """

    errors: dict[str, str] = field(default_factory=dict)
    """
    Mapping of note path to error message for notes which failed.
    """

    def add(self, outcome: Outcome):
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1

    def count(self, outcome: Outcome) -> int:
        return self.outcomes.get(outcome, 0)

    @property
    def summary(self) -> str:
        parts = [
            f"{count} {outcome.value}"
            for outcome, count in self.outcomes.items()
            if outcome is not Outcome.SKIPPED
        ]
        parts.append(f"{len(self.errors)} failed")
        return ", ".join(parts)


class ReconciliationEngine:
    """
    Decides, for one note at a time, whether to create, update, unlink or
    delete its remote record.

    State is recomputed from the note's current front-matter on every
    invocation; nothing is persisted besides the note's `tags` and `link`.
    """

    client: RecordClient
    notes: NoteStore
    metadata: MetadataAccessor
    config: EngineConfig
    mapper: StatusMapper
    translator: ContentTranslator

    _locks: dict[str, threading.Lock]
    _locks_lock: threading.Lock
    _logger: Logger

    def __init__(
        self,
        client: RecordClient,
        notes: NoteStore,
        metadata: MetadataStore,
        config: EngineConfig | None = None,
        *,
        translator: ContentTranslator | None = None,
        logger: Logger | None = None,
    ):
        self.client = client
        self.notes = notes
        self.metadata = MetadataAccessor(metadata)
        self.config = config or EngineConfig()
        self.mapper = StatusMapper(self.config.status_mapping)
        self.translator = translator or ContentTranslator()

        self._locks = {}
        self._locks_lock = threading.Lock()
        self._logger = logger or logging.getLogger()

    def reconcile_one(self, note: Note) -> Outcome:
        """
        Reconcile a single note with its remote record.
        """
        with self._lock(note):
            return self._reconcile(note)

    def reconcile_all(
        self,
        notes: Iterable[Note] | None = None,
        excluding: Note | None = None,
    ) -> SyncReport:
        """
        Reconcile each of the given notes, or all notes in the store,
        skipping `excluding` (typically the note open for editing).

        Notes are processed independently: a failure is logged and recorded
        in the report, and processing continues with the next note.
        """
        report = SyncReport()

        for note in self.notes.list_notes() if notes is None else notes:
            if excluding is not None and note.path == excluding.path:
                self._logger.debug(f"Skipping excluded {note}")
                continue

            try:
                outcome = self.reconcile_one(note)
            except Exception as e:
                self._logger.error(f"Failed to reconcile {note}: {e}")
                report.errors[note.path] = str(e)
            else:
                report.add(outcome)

        return report

    def on_note_deleted(
        self, last_known_metadata: Mapping[str, Any] | TaskMetadata | None
    ) -> Outcome:
        """
        Delete the remote record of a note which was deleted locally, given
        the note's last known front-matter.
        """
        if last_known_metadata is None:
            return Outcome.SKIPPED

        metadata = (
            last_known_metadata
            if isinstance(last_known_metadata, TaskMetadata)
            else TaskMetadata.from_front_matter(last_known_metadata)
        )

        if not metadata.link:
            return Outcome.SKIPPED

        record_id = get_id_from_url(metadata.link)
        if record_id is None:
            # record is orphaned; nothing more can be done
            self._logger.info(
                f"Couldn't get record id from '{metadata.link}', skipping"
            )
            return Outcome.MALFORMED_LINK

        self.client.delete_record(record_id)
        self._logger.info(f"Deleted record {record_id}")

        return Outcome.DELETED

    def forget(self, note: Note):
        """
        Drop per-note state of a note which no longer exists.
        """
        with self._locks_lock:
            self._locks.pop(note.path, None)

    def _reconcile(self, note: Note) -> Outcome:
        metadata = self.metadata.read_task_metadata(note)
        if metadata is None or not metadata.is_task:
            return Outcome.SKIPPED

        if not metadata.link:
            return self._create(note, metadata)

        record_id = get_id_from_url(metadata.link)
        if record_id is None:
            self._logger.warning(
                f"Invalid record link in {note}: '{metadata.link}'"
            )
            return Outcome.MALFORMED_LINK

        return self._update(note, metadata, record_id)

    def _create(self, note: Note, metadata: TaskMetadata) -> Outcome:
        blocks = self._compose(note) or []
        status = self.mapper.initial_remote_status(metadata.tags)

        url = self.client.create(note.title, status, blocks)

        try:
            self.metadata.write_field(note, LINK_KEY, url)
        except Exception:
            # the next cycle will see no link and create a duplicate
            self._logger.error(
                f"Created record {url} but failed to store link in {note}"
            )
            raise

        self._logger.info(f"Created record for {note}: {url}")
        return Outcome.CREATED

    def _update(
        self, note: Note, metadata: TaskMetadata, record_id: str
    ) -> Outcome:
        record = self.client.fetch(record_id)

        if record is NOT_FOUND:
            self._logger.info(f"Record of {note} no longer exists, clearing link")
            self.metadata.write_field(note, LINK_KEY, "")
            return Outcome.UNLINKED

        changed = False

        new_tags, new_status = self.mapper.resolve_status(
            metadata.tags, record.status
        )

        if new_tags != metadata.tags:
            self.metadata.write_field(note, TAGS_KEY, new_tags)
            self._logger.info(f"Updated tags of {note}: {new_tags}")
            changed = True

        if new_status != record.status or note.title != record.title:
            self.client.update_properties(record_id, note.title, new_status)
            self._logger.info(
                f"Updated record of {note}: title='{note.title}', "
                f"status='{new_status}'"
            )
            changed = True

        if self.config.update_page_content:
            blocks = self._compose(note)
            if blocks is not None:
                self.client.replace_children(record_id, blocks)
                changed = True

        return Outcome.UPDATED if changed else Outcome.UNCHANGED

    def _compose(self, note: Note) -> list[Block] | None:
        """
        Translate note content to blocks, or `None` if it can't be
        translated.
        """
        try:
            return self.translator.translate(self.notes.read(note))
        except ContentTranslationError as e:
            self._logger.warning(f"Skipping body of {note}: {e}")
            return None

    def _lock(self, note: Note) -> AbstractContextManager:
        if not self.config.serialize_notes:
            return nullcontext()

        with self._locks_lock:
            lock = self._locks.get(note.path)
            if lock is None:
                lock = self._locks[note.path] = threading.Lock()
            return lock
