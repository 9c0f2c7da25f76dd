"""
In-memory stand-ins for the vault and Notion used by engine tests.
"""

from __future__ import annotations

import uuid
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Callable

import frontmatter

from notion_tasks import (
    NOT_FOUND,
    Block,
    FrontMatter,
    MetadataStore,
    Note,
    NoteStore,
    NotFound,
    Record,
    RemoteRequestError,
)

__all__ = [
    "MemoryVault",
    "FakeClient",
    "Call",
]


class MemoryVault(NoteStore, MetadataStore):
    """
    Vault holding notes in memory and recording front-matter writes.
    """

    front_matter: dict[str, FrontMatter | None]
    bodies: dict[str, str]
    writes: list[tuple[str, FrontMatter]]

    def __init__(self):
        self.front_matter = {}
        self.bodies = {}
        self.writes = []

    def add(
        self,
        path: str,
        front_matter: FrontMatter | None = None,
        body: str = "",
    ) -> Note:
        self.front_matter[path] = deepcopy(front_matter)
        self.bodies[path] = body
        return Note(path)

    def list_notes(self) -> list[Note]:
        return [Note(path) for path in self.front_matter]

    def get(self, path: str) -> Note | None:
        return Note(path) if path in self.front_matter else None

    def read(self, note: Note) -> str:
        post = frontmatter.Post(
            self.bodies[note.path], **(self.front_matter[note.path] or {})
        )
        return frontmatter.dumps(post)

    def get_front_matter(self, note: Note) -> FrontMatter | None:
        return deepcopy(self.front_matter[note.path])

    def process_front_matter(
        self, note: Note, fn: Callable[[FrontMatter], None]
    ):
        front_matter = deepcopy(self.front_matter[note.path] or {})
        fn(front_matter)
        self.front_matter[note.path] = front_matter
        self.writes.append((note.path, deepcopy(front_matter)))


@dataclass
class Call:
    method: str
    args: tuple[Any, ...]


class FakeClient:
    """
    Records calls and keeps records in memory, mimicking
    {obj}`RecordClient`.
    """

    records: dict[str, Record]
    bodies: dict[str, list[Block]]
    calls: list[Call]
    fail: set[str]

    def __init__(self):
        self.records = {}
        self.bodies = {}
        self.calls = []
        self.fail = set()

    def add_record(
        self, title: str, status: str | None, record_id: str | None = None
    ) -> Record:
        record_id = record_id or uuid.uuid4().hex
        slug = title.replace(" ", "-")
        record = Record(
            record_id=record_id,
            url=f"https://www.notion.so/{slug}-{record_id}",
            title=title,
            status=status,
        )
        self.records[record_id] = record
        self.bodies[record_id] = []
        return record

    @property
    def write_calls(self) -> list[Call]:
        return [c for c in self.calls if c.method != "fetch"]

    def create(self, title: str, status: str, blocks: list[Block]) -> str:
        self._call("create", title, status, blocks)
        record = self.add_record(title, status)
        self.bodies[record.record_id] = list(blocks)
        return record.url

    def fetch(self, record_id: str) -> Record | NotFound:
        self._call("fetch", record_id)
        return self.records.get(record_id, NOT_FOUND)

    def update_properties(
        self, record_id: str, title: str, status: str | None
    ):
        self._call("update_properties", record_id, title, status)
        record = self.records[record_id]
        self.records[record_id] = Record(
            record_id=record_id,
            url=record.url,
            title=title,
            status=status,
        )

    def replace_children(self, record_id: str, blocks: list[Block]):
        self._call("replace_children", record_id, blocks)
        self.bodies[record_id] = list(blocks)

    def delete_record(self, record_id: str):
        self._call("delete_record", record_id)
        self.records.pop(record_id, None)

    def _call(self, method: str, *args: Any):
        self.calls.append(Call(method, args))
        if method in self.fail:
            raise RemoteRequestError(
                method.upper(), f"fake://{method}", 500, "internal error"
            )
