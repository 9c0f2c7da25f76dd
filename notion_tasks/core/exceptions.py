__all__ = [
    "SyncError",
    "RemoteRequestError",
    "MalformedLinkError",
    "ContentTranslationError",
]


class SyncError(Exception):
    """
    Base class of errors raised while synchronizing a note. None of these
    are fatal to the process; each is scoped to a single note.
    """


class RemoteRequestError(SyncError):
    """
    Raised when a request to Notion fails for a reason other than the
    record being missing, e.g. a network error or a non-404 error status.

    The note is skipped for the current cycle; there is no retry.
    """

    status: int | None
    reason: str

    def __init__(self, method: str, url: str, status: int | None, reason: str):
        self.status = status
        self.reason = reason
        super().__init__(f"{method} {url} failed: status={status}, {reason}")


class MalformedLinkError(SyncError):
    """
    Raised when a record id can't be extracted from a note's link.
    """

    def __init__(self, link: str):
        self.link = link
        super().__init__(f"Could not extract record id from link '{link}'")


class ContentTranslationError(SyncError):
    """
    Raised when a note body can't be converted to Notion blocks. Record
    creation carries on without a body.
    """
