import json
from collections.abc import Callable
from typing import Any

import requests
from pytest import fixture, mark, raises

from notion_tasks import *

DATABASE_ID = "db0123"

Handler = Callable[[str, str, dict[str, Any]], requests.Response]


class FakeSession(requests.Session):
    """
    Session which records requests and answers them with canned responses
    instead of going to the network.
    """

    requests: list[tuple[str, str, dict[str, Any]]]
    handler: Handler | None

    def __init__(self):
        super().__init__()
        self.requests = []
        self.handler = None

    def request(self, method, url, **kwargs):  # type: ignore[override]
        self.requests.append((method, url, kwargs))
        if self.handler is None:
            return _response(200, {})
        return self.handler(method, url, kwargs)


def _response(
    status: int, body: dict[str, Any] | None = None
) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.reason = "Reason"
    response._content = json.dumps(body or {}).encode()
    return response


def _page(record_id: str, title: str, status: str | None) -> dict[str, Any]:
    return {
        "object": "page",
        "id": record_id,
        "url": f"https://www.notion.so/{title}-{record_id}",
        "archived": False,
        "properties": {
            "Name": {"title": [{"plain_text": title}]},
            "Status": {"status": {"name": status} if status else None},
        },
    }


@fixture
def session() -> FakeSession:
    return FakeSession()


@fixture
def record_client(session: FakeSession) -> RecordClient:
    return RecordClient(
        "secret", DATABASE_ID, default_tags=["obsidian"], session=session
    )


@mark.parametrize(
    "url,record_id",
    [
        ("https://www.notion.so/Title-abc123", "abc123"),
        ("https://www.notion.so/ws/Some-Long-Title-abcdef123", "abcdef123"),
        ("https://www.notion.so/Title-abc123?pvs=4#frag", "abc123"),
        ("https://x/y/Some-Title-abcdef123", "abcdef123"),
        ("https://www.notion.so/nohyphen", None),
        ("https://www.notion.so/Title-", None),
        ("https://www.notion.so/", None),
        ("", None),
    ],
)
def test_get_id_from_url(url: str, record_id: str | None):
    assert get_id_from_url(url) == record_id


def test_require_id_from_url():
    assert require_id_from_url("https://www.notion.so/T-1") == "1"

    with raises(MalformedLinkError):
        require_id_from_url("https://www.notion.so/nohyphen")


def test_headers(record_client: RecordClient, session: FakeSession):
    assert session.headers["Authorization"] == "Bearer secret"
    assert session.headers["Notion-Version"] == NOTION_VERSION


def test_create(record_client: RecordClient, session: FakeSession):
    blocks = [{"object": "block", "type": "divider", "divider": {}}] * 150

    def handler(method: str, url: str, kwargs: dict[str, Any]):
        if url.endswith("/pages"):
            return _response(200, _page("abc", "Title", "Done"))
        return _response(200, {"results": []})

    session.handler = handler

    url = record_client.create("Title", "Done", blocks)
    assert url == "https://www.notion.so/Title-abc"

    (create, *appends) = session.requests

    method, request_url, kwargs = create
    assert (method, request_url) == ("POST", f"{NOTION_URL}/pages")
    body = kwargs["json"]
    assert body["parent"] == {"database_id": DATABASE_ID}
    assert body["properties"]["Status"] == {"status": {"name": "Done"}}
    assert body["properties"]["Tags"] == {"multi_select": [{"name": "obsidian"}]}
    assert body["properties"]["Name"]["title"][0]["text"]["content"] == "Title"

    # body is appended in chunks
    assert [a[1] for a in appends] == [f"{NOTION_URL}/blocks/abc/children"] * 2
    assert [len(a[2]["json"]["children"]) for a in appends] == [100, 50]


def test_create_attach_failure(
    record_client: RecordClient, session: FakeSession
):
    """
    Failure to attach the body keeps the created record.
    """

    def handler(method: str, url: str, kwargs: dict[str, Any]):
        if url.endswith("/pages"):
            return _response(200, _page("abc", "Title", "Not started"))
        return _response(400, {"message": "body.children should be defined"})

    session.handler = handler

    blocks = [{"object": "block", "type": "divider", "divider": {}}]
    assert record_client.create("Title", "Not started", blocks) == (
        "https://www.notion.so/Title-abc"
    )


def test_fetch(record_client: RecordClient, session: FakeSession):
    session.handler = lambda *_: _response(200, _page("abc", "Title", "Done"))

    record = record_client.fetch("abc")

    assert record == Record(
        record_id="abc",
        url="https://www.notion.so/Title-abc",
        title="Title",
        status="Done",
    )
    assert session.requests[0][:2] == ("GET", f"{NOTION_URL}/pages/abc")


def test_fetch_not_found(record_client: RecordClient, session: FakeSession):
    session.handler = lambda *_: _response(404, {"message": "not found"})
    assert record_client.fetch("abc") is NOT_FOUND

    page = _page("abc", "Title", "Done") | {"archived": True}
    session.handler = lambda *_: _response(200, page)
    assert record_client.fetch("abc") is NOT_FOUND


def test_fetch_no_status(record_client: RecordClient, session: FakeSession):
    session.handler = lambda *_: _response(200, _page("abc", "Title", None))

    record = record_client.fetch("abc")
    assert isinstance(record, Record)
    assert record.status is None


def test_update_properties(record_client: RecordClient, session: FakeSession):
    record_client.update_properties("abc", "New", "Done")
    record_client.update_properties("abc", "New", None)

    (first, second) = session.requests

    assert first[:2] == ("PATCH", f"{NOTION_URL}/pages/abc")
    assert first[2]["json"]["properties"]["Status"] == {
        "status": {"name": "Done"}
    }
    assert "Status" not in second[2]["json"]["properties"]


def test_list_children_paginated(
    record_client: RecordClient, session: FakeSession
):
    pages = {
        None: {
            "results": [{"id": "b1"}, {"id": "b2"}],
            "has_more": True,
            "next_cursor": "c1",
        },
        "c1": {
            "results": [{"id": "b3"}],
            "has_more": False,
            "next_cursor": None,
        },
    }

    def handler(method: str, url: str, kwargs: dict[str, Any]):
        return _response(200, pages[kwargs["params"].get("start_cursor")])

    session.handler = handler

    blocks = record_client.list_children("abc")

    assert [b["id"] for b in blocks] == ["b1", "b2", "b3"]
    assert len(session.requests) == 2


def test_replace_children(record_client: RecordClient, session: FakeSession):
    def handler(method: str, url: str, kwargs: dict[str, Any]):
        if method == "GET":
            return _response(
                200, {"results": [{"id": "b1"}, {"id": "b2"}], "has_more": False}
            )
        return _response(200, {})

    session.handler = handler

    blocks = [{"object": "block", "type": "divider", "divider": {}}]
    record_client.replace_children("abc", blocks)

    assert [(m, u) for m, u, _ in session.requests] == [
        ("GET", f"{NOTION_URL}/blocks/abc/children"),
        ("DELETE", f"{NOTION_URL}/blocks/b1"),
        ("DELETE", f"{NOTION_URL}/blocks/b2"),
        ("PATCH", f"{NOTION_URL}/blocks/abc/children"),
    ]
    assert session.requests[-1][2]["json"] == {"children": blocks}


def test_delete_record(record_client: RecordClient, session: FakeSession):
    record_client.delete_record("abc")
    assert session.requests[0][:2] == ("DELETE", f"{NOTION_URL}/blocks/abc")

    # already gone
    session.handler = lambda *_: _response(404, {"message": "not found"})
    record_client.delete_record("abc")

    session.handler = lambda *_: _response(
        400, {"message": "Can't edit block that is archived."}
    )
    record_client.delete_record("abc")

    session.handler = lambda *_: _response(403, {"message": "forbidden"})
    with raises(RemoteRequestError):
        record_client.delete_record("abc")


def test_errors(record_client: RecordClient, session: FakeSession):
    session.handler = lambda *_: _response(500, {"message": "oops"})

    with raises(RemoteRequestError) as e:
        record_client.update_properties("abc", "Title", None)

    assert e.value.status == 500
    assert e.value.reason == "oops"

    # not found is only tolerated where a missing record is meaningful
    session.handler = lambda *_: _response(404, {})
    with raises(RemoteRequestError):
        record_client.update_properties("abc", "Title", None)

    def unreachable(*_):
        raise requests.ConnectionError("connection refused")

    session.handler = unreachable

    with raises(RemoteRequestError) as e:
        record_client.fetch("abc")

    assert e.value.status is None
    assert isinstance(e.value, SyncError)


def test_check(record_client: RecordClient, session: FakeSession):
    session.handler = lambda *_: _response(200, {"object": "user", "name": "Bot"})

    assert record_client.check()["name"] == "Bot"
    assert session.requests[0][:2] == ("GET", f"{NOTION_URL}/users/me")
