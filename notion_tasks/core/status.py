"""
Mapping between Notion's status vocabulary and the local open/closed tags.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Literal

__all__ = [
    "OPEN",
    "CLOSED",
    "TASK_TAG",
    "STATUS_MAPPING",
    "STATUS_NOT_STARTED",
    "STATUS_DONE",
    "LocalStatus",
    "StatusMapper",
]

LocalStatus = Literal["open", "closed"]

OPEN: LocalStatus = "open"
CLOSED: LocalStatus = "closed"

TASK_TAG = "task"
"""
Tag which puts a note in scope for synchronization.
"""

STATUS_NOT_STARTED = "Not started"
STATUS_DONE = "Done"

STATUS_MAPPING: dict[str, LocalStatus] = {
    "Not started": OPEN,
    "In progress": OPEN,
    "Done": CLOSED,
}
"""
Default mapping of remote status to local status. Several remote statuses
collapse to `open`, so the reverse direction is lossy.
"""


class StatusMapper:
    """
    Translates statuses between Notion and local tags. Holds no state other
    than the mapping table, so it may be shared freely.
    """

    mapping: Mapping[str, LocalStatus]

    def __init__(self, mapping: Mapping[str, LocalStatus] | None = None):
        self.mapping = dict(STATUS_MAPPING if mapping is None else mapping)

    def to_local(self, remote_status: str | None) -> LocalStatus:
        """
        Map remote status to local status. Unknown statuses are treated
        as open.
        """
        if remote_status is None:
            return OPEN
        return self.mapping.get(remote_status, OPEN)

    def to_remote_on_close(self) -> str:
        return STATUS_DONE

    def initial_remote_status(self, tags: Iterable[str]) -> str:
        """
        Status to create a new record with.
        """
        return (
            self.to_remote_on_close()
            if CLOSED in set(tags)
            else STATUS_NOT_STARTED
        )

    def resolve_status(
        self, tags: Iterable[str], remote_status: str | None
    ) -> tuple[list[str], str | None]:
        """
        Resolve a possible conflict between local tags and remote status.

        A local `closed` tag always wins. Otherwise the remote status
        decides. Returns the rewritten tags, holding exactly one of
        `open`/`closed` in place of any previous ones, and the status the
        remote record should have: `Done` if closed, else the remote
        status as it was.
        """
        tags = list(tags)

        closed = CLOSED in tags or self.to_local(remote_status) == CLOSED
        resolved: LocalStatus = CLOSED if closed else OPEN

        new_tags = [t for t in tags if t not in (OPEN, CLOSED)]
        new_tags.append(resolved)

        remote_out = (
            self.to_remote_on_close() if resolved == CLOSED else remote_status
        )

        return new_tags, remote_out
