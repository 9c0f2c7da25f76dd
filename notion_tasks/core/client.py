"""
Client for Notion pages acting as task records.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from logging import Logger
from typing import Any
from urllib.parse import urlsplit

import requests

from .content import Block
from .exceptions import MalformedLinkError, RemoteRequestError

__all__ = [
    "NOTION_URL",
    "NOTION_VERSION",
    "NOT_FOUND",
    "NotFound",
    "Record",
    "RecordClient",
    "get_id_from_url",
    "require_id_from_url",
]

NOTION_URL = "https://api.notion.com/v1"

NOTION_VERSION = "2022-06-28"
"""
Value of `Notion-Version` header sent with every request.
"""

REQUEST_TIMEOUT = 30.0
"""
Default timeout in seconds for each request.
"""

PAGE_SIZE = 100
"""
Max number of blocks Notion returns per page, and accepts per append.
"""

TITLE_PROPERTY = "Name"
STATUS_PROPERTY = "Status"
TAGS_PROPERTY = "Tags"


class NotFound(Enum):
    """
    Outcome of {obj}`RecordClient.fetch` when the record no longer exists.
    """

    NOT_FOUND = auto()


NOT_FOUND = NotFound.NOT_FOUND


@dataclass(frozen=True)
class Record:
    """
    Properties of a remote task record.
    """

    record_id: str
    url: str
    title: str
    status: str | None

    @classmethod
    def from_page(cls, page: dict[str, Any]) -> Record:
        """
        Populate from a page object as returned by Notion.
        """
        properties = page.get("properties", {})

        title_items = properties.get(TITLE_PROPERTY, {}).get("title") or []
        title = "".join(
            item.get("plain_text") or item.get("text", {}).get("content", "")
            for item in title_items
        )

        status_prop = properties.get(STATUS_PROPERTY, {}).get("status") or {}

        return cls(
            record_id=page["id"],
            url=page.get("url", ""),
            title=title,
            status=status_prop.get("name"),
        )


def get_id_from_url(url: str) -> str | None:
    """
    Extract record id from its URL: the suffix after the last hyphen of the
    last path segment.

    Returns `None` if the URL has no such suffix.
    """
    if not isinstance(url, str):
        return None

    segment = urlsplit(url.strip()).path.split("/")[-1]
    if "-" not in segment:
        return None

    record_id = segment.rsplit("-", maxsplit=1)[1]
    return record_id or None


def require_id_from_url(url: str) -> str:
    """
    Like {obj}`get_id_from_url`, but raises {obj}`MalformedLinkError` if no
    id can be extracted.
    """
    record_id = get_id_from_url(url)
    if record_id is None:
        raise MalformedLinkError(url)
    return record_id


class RecordClient:
    """
    Thin request layer over Notion's page and block endpoints.

    No retries are attempted: every call either succeeds, reports a missing
    record, or raises {obj}`RemoteRequestError`.
    """

    _api_key: str
    _database_id: str
    _default_tags: list[str]
    _timeout: float
    _session: requests.Session
    _logger: Logger

    def __init__(
        self,
        api_key: str,
        database_id: str,
        *,
        default_tags: list[str] | None = None,
        timeout: float = REQUEST_TIMEOUT,
        session: requests.Session | None = None,
        logger: Logger | None = None,
    ):
        """
        :param api_key: Notion integration secret, sent as bearer credential
        :param database_id: Database in which to create records
        :param default_tags: Values of `Tags` multi-select set on created records
        :param timeout: Timeout of each request in seconds
        :param session: Requests session to use, mainly for testing
        :param logger: Logger to use, or `None` to use default logger
        """
        self._api_key = api_key
        self._database_id = database_id
        self._default_tags = default_tags or []
        self._timeout = timeout
        self._logger = logger or logging.getLogger()

        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": NOTION_VERSION,
                "Content-Type": "application/json",
            }
        )

    def create(self, title: str, status: str, blocks: list[Block]) -> str:
        """
        Create a record and attach its body, returning the record's URL.

        The body is attached in a second step; if that fails the error is
        logged and the bare record is kept.
        """
        body = {
            "parent": {"database_id": self._database_id},
            "properties": {
                TITLE_PROPERTY: _title_property(title),
                TAGS_PROPERTY: {
                    "multi_select": [{"name": t} for t in self._default_tags]
                },
                STATUS_PROPERTY: {"status": {"name": status}},
            },
        }

        page = self._request("POST", "/pages", json=body).json()
        record_id: str = page["id"]
        url: str = page["url"]

        self._logger.debug(f"Created record '{title}': {url}")

        if blocks:
            try:
                self.append_children(record_id, blocks)
            except RemoteRequestError as e:
                self._logger.warning(
                    f"Error adding body of record '{title}', will carry on: {e}"
                )

        return url

    def fetch(self, record_id: str) -> Record | NotFound:
        response = self._request(
            "GET", f"/pages/{record_id}", allow_not_found=True
        )
        if response is None:
            return NOT_FOUND

        page = response.json()

        # trashed pages are still returned, but are gone from the user's view
        if page.get("archived") or page.get("in_trash"):
            return NOT_FOUND

        return Record.from_page(page)

    def update_properties(self, record_id: str, title: str, status: str | None):
        properties: dict[str, Any] = {TITLE_PROPERTY: _title_property(title)}
        if status is not None:
            properties[STATUS_PROPERTY] = {"status": {"name": status}}

        self._request(
            "PATCH", f"/pages/{record_id}", json={"properties": properties}
        )

    def list_children(self, record_id: str) -> list[Block]:
        """
        Get all child blocks of a record, following pagination.
        """
        blocks: list[Block] = []
        params: dict[str, Any] = {"page_size": PAGE_SIZE}

        while True:
            data = self._request(
                "GET", f"/blocks/{record_id}/children", params=params
            ).json()

            blocks += data.get("results", [])

            if not data.get("has_more") or not data.get("next_cursor"):
                break

            params["start_cursor"] = data["next_cursor"]

        return blocks

    def append_children(self, record_id: str, blocks: list[Block]):
        for start in range(0, len(blocks), PAGE_SIZE):
            self._request(
                "PATCH",
                f"/blocks/{record_id}/children",
                json={"children": blocks[start : start + PAGE_SIZE]},
            )

    def replace_children(self, record_id: str, blocks: list[Block]):
        """
        Delete the record's current body and append new blocks.

        Deletions are issued one at a time; Notion rejects overlapping
        deletes under the same parent with a conflict error.
        """
        for block in self.list_children(record_id):
            self._request("DELETE", f"/blocks/{block['id']}")

        self.append_children(record_id, blocks)

    def delete_record(self, record_id: str):
        """
        Move the record to trash. Deleting a record which is already gone
        succeeds.
        """
        try:
            response = self._request(
                "DELETE", f"/blocks/{record_id}", allow_not_found=True
            )
        except RemoteRequestError as e:
            if e.status == 400 and "archived" in e.reason.lower():
                self._logger.debug(f"Record {record_id} already deleted")
                return
            raise

        if response is None:
            self._logger.debug(f"Record {record_id} not found, nothing to delete")

    def check(self) -> dict[str, Any]:
        """
        Get the bot user associated with the credential.
        """
        return self._request("GET", "/users/me").json()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> requests.Response | None:
        url = f"{NOTION_URL}{path}"

        try:
            response = self._session.request(
                method, url, json=json, params=params, timeout=self._timeout
            )
        except requests.RequestException as e:
            raise RemoteRequestError(method, url, None, str(e)) from e

        if response.status_code == 404 and allow_not_found:
            return None

        if not response.ok:
            raise RemoteRequestError(
                method, url, response.status_code, _error_message(response)
            )

        return response


def _title_property(title: str) -> dict[str, Any]:
    return {"title": [{"type": "text", "text": {"content": title}}]}


def _error_message(response: requests.Response) -> str:
    """
    Get error message from a Notion error response, falling back to the
    HTTP reason.
    """
    try:
        message = response.json().get("message")
    except ValueError:
        message = None
    return message or response.reason or ""
