"""
Access to the task-related front-matter of notes.

The engine never touches files directly; it goes through the
{obj}`NoteStore` and {obj}`MetadataStore` capabilities, which the
filesystem {obj}`Vault` implements and tests replace with fakes.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, field_validator

from .status import CLOSED, OPEN, TASK_TAG, LocalStatus

__all__ = [
    "Note",
    "TaskMetadata",
    "FrontMatter",
    "NoteStore",
    "MetadataStore",
    "MetadataAccessor",
    "TAGS_KEY",
    "LINK_KEY",
]

FrontMatter = dict[str, Any]

TAGS_KEY = "tags"
LINK_KEY = "link"


@dataclass(frozen=True)
class Note:
    """
    Handle to a note in the vault.
    """

    path: str
    """
    Path relative to the vault root using forward slashes, e.g.
    `projects/Write report.md`.
    """

    @property
    def title(self) -> str:
        """
        Title derived from the filename.
        """
        return PurePosixPath(self.path).stem

    def __str__(self) -> str:
        return f"Note('{self.path}')"


class TaskMetadata(BaseModel):
    """
    Projection of a note's front-matter relevant to task tracking.
    """

    tags: list[str] = []
    link: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        # allow "tags: task" as shorthand for a single tag
        if isinstance(value, str):
            return [value]
        if isinstance(value, Iterable) and not isinstance(value, Mapping):
            return [str(v) for v in value if v is not None]
        return value

    @field_validator("link", mode="before")
    @classmethod
    def validate_link(cls, value: Any) -> Any:
        if value is None:
            return None
        return str(value).strip() or None

    @classmethod
    def from_front_matter(cls, front_matter: Mapping[str, Any]) -> TaskMetadata:
        return cls(
            tags=front_matter.get(TAGS_KEY),
            link=front_matter.get(LINK_KEY),
        )

    @property
    def is_task(self) -> bool:
        return TASK_TAG in self.tags

    @property
    def status(self) -> LocalStatus:
        """
        Local status; a note with neither tag counts as open.
        """
        return CLOSED if CLOSED in self.tags else OPEN


class NoteStore(ABC):
    """
    Read access to the notes of a vault.
    """

    @abstractmethod
    def list_notes(self) -> list[Note]:
        """
        Get all markdown notes in the vault.
        """
        ...

    @abstractmethod
    def get(self, path: str) -> Note | None:
        """
        Get note by vault-relative path, or `None` if it doesn't exist.
        """
        ...

    @abstractmethod
    def read(self, note: Note) -> str:
        """
        Get full text of note, including front-matter.
        """
        ...


class MetadataStore(ABC):
    """
    Access to notes' front-matter.
    """

    @abstractmethod
    def get_front_matter(self, note: Note) -> FrontMatter | None:
        """
        Get front-matter of note, or `None` if it has none.
        """
        ...

    @abstractmethod
    def process_front_matter(
        self, note: Note, fn: Callable[[FrontMatter], None]
    ):
        """
        Atomically read the note's current front-matter, pass it to `fn` to
        modify in place, and persist the result.
        """
        ...


class MetadataAccessor:
    """
    Task-level view of a {obj}`MetadataStore`.
    """

    store: MetadataStore

    def __init__(self, store: MetadataStore):
        self.store = store

    def read_task_metadata(self, note: Note) -> TaskMetadata | None:
        front_matter = self.store.get_front_matter(note)
        if front_matter is None:
            return None
        return TaskMetadata.from_front_matter(front_matter)

    def is_task(self, note: Note) -> bool:
        metadata = self.read_task_metadata(note)
        return metadata is not None and metadata.is_task

    def write_field(self, note: Note, key: str, value: Any):
        """
        Set a single front-matter key, keeping the rest as is.
        """

        def update(front_matter: FrontMatter):
            front_matter[key] = value

        self.store.process_front_matter(note, update)
